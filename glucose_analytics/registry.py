"""Registry for discovering and executing pattern rules."""
from __future__ import annotations

from typing import Dict, Type

import pandas as pd

from .models import PatternContext, PatternDetection
from .rule_base import PatternRule


class RuleRegistry:
    """Keeps track of available rules by id, in registration order."""

    def __init__(self) -> None:
        self._rules: Dict[str, PatternRule] = {}

    def register(self, rule_cls: Type[PatternRule]) -> Type[PatternRule]:
        if rule_cls.id in self._rules:
            raise ValueError(f"Rule '{rule_cls.id}' already registered")
        self._rules[rule_cls.id] = rule_cls()
        return rule_cls

    def ids(self) -> list[str]:
        return list(self._rules)

    def detect_all(self, frame: pd.DataFrame, context: PatternContext) -> list[PatternDetection]:
        """Run every registered rule in registration order."""

        return [rule.detect(frame, context) for rule in self._rules.values()]


registry = RuleRegistry()


def register_rule(rule_cls: Type[PatternRule]) -> Type[PatternRule]:
    """Decorator for registering a rule at definition time."""

    return registry.register(rule_cls)

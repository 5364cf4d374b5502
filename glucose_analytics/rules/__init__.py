"""Rule package that ensures registration on import.

Module order is report order: the analyzer emits pattern sentences in the
order the rules were registered.
"""
from __future__ import annotations

from importlib import import_module

_MODULES = [
    "dawn_phenomenon",
    "meal_response",
    "overnight_stability",
    "hypoglycemic_episodes",
    "hyperglycemic_periods",
]

# Import selected rules to trigger registration side-effects.
for _module in _MODULES:
    import_module(f"{__name__}.{_module}")

__all__ = list(_MODULES)

"""
Settings for the LibreLink connection, reading cache and target range.
"""
from __future__ import annotations

import os
from enum import Enum
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import TargetRange

DEFAULT_CLIENT_VERSION = "4.12.0"


class LibreLinkRegion(str, Enum):
    US = "US"
    EU = "EU"


class CredentialSettings(BaseModel):
    """
    LibreLink Up account credentials.
    """
    model_config = ConfigDict(frozen=True)

    email: str = Field(default="", description="LibreLink Up account email")
    password: str = Field(default="", description="LibreLink Up account password", repr=False)


class ClientSettings(BaseModel):
    """
    Upstream client identification.
    """
    model_config = ConfigDict(frozen=True)

    version: str = Field(default=DEFAULT_CLIENT_VERSION, description="LibreLink app version sent upstream")
    region: LibreLinkRegion = Field(default=LibreLinkRegion.US, description="API region")


class CacheSettings(BaseModel):
    """
    Raw reading cache.
    """
    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Cache upstream reads")
    ttl_minutes: float = Field(default=5.0, ge=0, description="Cache time-to-live in minutes")


class RangeSettings(BaseModel):
    """
    Target glucose range in mg/dL.
    """
    model_config = ConfigDict(frozen=True)

    target_low: float = Field(default=70.0, description="Target range low")
    target_high: float = Field(default=180.0, description="Target range high")

    @model_validator(mode="after")
    def _check_bounds(self) -> "RangeSettings":
        problems = range_errors(self.target_low, self.target_high)
        if problems:
            raise ValueError("; ".join(problems))
        return self


class LibreLinkSettings(BaseModel):
    """
    Complete server configuration.
    """
    model_config = ConfigDict(frozen=True)

    credentials: CredentialSettings = Field(default_factory=CredentialSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    ranges: RangeSettings = Field(default_factory=RangeSettings)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LibreLinkSettings":
        env = os.environ if environ is None else environ
        return cls(
            credentials=CredentialSettings(
                email=env.get("LIBRELINK_EMAIL", ""),
                password=env.get("LIBRELINK_PASSWORD", ""),
            ),
            client=ClientSettings(
                version=env.get("LIBRELINK_CLIENT_VERSION", DEFAULT_CLIENT_VERSION),
                region=env.get("LIBRELINK_REGION", "US").upper(),
            ),
            cache=CacheSettings(
                enabled=env.get("LIBRELINK_CACHE_ENABLED", "true").strip().lower() not in {"0", "false", "no", "off"},
                ttl_minutes=env.get("LIBRELINK_CACHE_TTL_MINUTES", "5"),
            ),
            ranges=RangeSettings(
                target_low=env.get("LIBRELINK_TARGET_LOW", "70"),
                target_high=env.get("LIBRELINK_TARGET_HIGH", "180"),
            ),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.credentials.email and self.credentials.password)

    @property
    def target_range(self) -> TargetRange:
        return TargetRange(low=self.ranges.target_low, high=self.ranges.target_high)

    def validation_errors(self) -> list[str]:
        errors: list[str] = []
        if not self.credentials.email:
            errors.append("Email is required")
        if not self.credentials.password:
            errors.append("Password is required")
        errors.extend(range_errors(self.ranges.target_low, self.ranges.target_high))
        return errors

    def with_credentials(self, email: str, password: str) -> "LibreLinkSettings":
        return self.model_copy(update={"credentials": CredentialSettings(email=email, password=password)})

    def with_region(self, region: LibreLinkRegion | str) -> "LibreLinkSettings":
        if not isinstance(region, LibreLinkRegion):
            region = LibreLinkRegion(region.upper())
        client = ClientSettings(version=self.client.version, region=region)
        return self.model_copy(update={"client": client})

    def with_ranges(self, target_low: float, target_high: float) -> "LibreLinkSettings":
        return self.model_copy(update={"ranges": RangeSettings(target_low=target_low, target_high=target_high)})


def range_errors(target_low: float, target_high: float) -> list[str]:
    errors: list[str] = []
    if target_low >= target_high:
        errors.append("Target low must be less than target high")
    if target_low < 50 or target_low > 150:
        errors.append("Target low should be between 50-150 mg/dL")
    if target_high < 100 or target_high > 300:
        errors.append("Target high should be between 100-300 mg/dL")
    return errors

"""
config/settings.py - Configuration contract for check_riverbed.

Uses pydantic-settings to validate every knob the probe reads. The CLI flags
(-H, -c, -p, ...) are applied on top of these values by check_riverbed.py.

Two usage modes:
  Production / plugin runs:
      cfg = load_settings()                      # os.environ only
      cfg = load_settings("/etc/riverbed.env")   # env file + os.environ

  Tests (isolated - no env file, no os.environ bleed):
      cfg = Settings(SNMP_HOST="10.0.0.1", REQUIRED_PEERS="peer-a,peer-b")
"""
from __future__ import annotations

import os
import re
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    # Settings() reads only its kwargs. load_settings() is the entry point that
    # feeds os.environ and the env file in as explicit kwargs, so monitoring
    # hosts with stray variables never change a test run.
    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings,)

    # -------------------------------------------------------------------------
    # Target agent
    # -------------------------------------------------------------------------
    SNMP_HOST: Optional[str] = None
    SNMP_COMMUNITY: str = "public"
    SNMP_TIMEOUT_SECONDS: int = 5
    SNMP_RETRIES: int = 1

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------
    # Comma-separated peer hostnames or IPv4 addresses; empty disables the peer check
    REQUIRED_PEERS: str = ""
    WALK_PAGE_SIZE: int = 10

    # -------------------------------------------------------------------------
    # net-snmp tools
    # -------------------------------------------------------------------------
    SNMPGET_BIN: str = "snmpget"
    SNMPBULKGET_BIN: str = "snmpbulkget"

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    # -------------------------------------------------------------------------
    # Convenience properties
    # -------------------------------------------------------------------------

    @property
    def required_peers(self) -> frozenset[str]:
        """Lower-cased peer identities from REQUIRED_PEERS, blanks dropped."""
        return frozenset(
            peer.strip().lower() for peer in self.REQUIRED_PEERS.split(",") if peer.strip()
        )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("SNMP_HOST", mode="before")
    @classmethod
    def blank_host_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("SNMP_COMMUNITY")
    @classmethod
    def community_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("SNMP_COMMUNITY must not be empty")
        return v

    @field_validator("SNMP_TIMEOUT_SECONDS", "WALK_PAGE_SIZE")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}")
        return v

    @field_validator("SNMP_RETRIES")
    @classmethod
    def not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"must be >= 0, got {v}")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v


def load_settings(env_file: Optional[str] = None, **overrides: object) -> Settings:
    """Load and validate settings from an optional env file + os.environ.

    os.environ takes precedence over env file values, and `overrides` (the
    CLI flags that were actually given) take precedence over both.

    Raises:
        FileNotFoundError: if env_file is given but does not exist.
        ValidationError: if any value is out of range.
    """
    file_vals: dict[str, str] = {}
    if env_file is not None:
        with open(env_file, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                k, _, v = line.partition("=")
                k = k.strip()
                # Strip inline comments: "public   # read-only" -> "public"
                v = re.sub(r"\s+#.*$", "", v.strip())
                if k:
                    file_vals[k] = v
    merged = {**file_vals, **os.environ}  # os.environ wins
    known: dict[str, object] = {k: v for k, v in merged.items() if k in Settings.model_fields}
    known.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**known)

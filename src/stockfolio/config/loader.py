"""
Configuration loader for stockfolio.

What it does:
- Reads static settings from `config/config.yaml` (missing file = defaults).
- Applies environment overrides named `STOCKFOLIO_<FIELD>`, e.g.
  `STOCKFOLIO_PORTFOLIO_FILE=/tmp/p.txt` or `STOCKFOLIO_MAX_HOLDINGS=none`.
- Validates the result using Pydantic models.

Where it is used:
- Called by `stockfolio.main` to build a `Settings` object for the session.
"""

import os
import pathlib
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, field_validator

ENV_PREFIX = "STOCKFOLIO_"
_NONE_STRINGS = {"", "none", "null", "unbounded"}


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    portfolio_file: str = "portfolio.txt"
    max_holdings: Optional[int] = 100
    symbol_max_len: int = 15
    autoload: bool = True
    autosave: bool = True
    log_level: str = "WARNING"
    metrics_port: Optional[int] = None

    @field_validator("portfolio_file")
    @classmethod
    def not_empty(cls, v, info):
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return v

    @field_validator("max_holdings", "metrics_port", mode="before")
    @classmethod
    def none_strings(cls, v):
        if isinstance(v, str) and v.strip().lower() in _NONE_STRINGS:
            return None
        return v

    @field_validator("max_holdings", "symbol_max_len")
    @classmethod
    def at_least_one(cls, v, info):
        if v is not None and v < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return v

    @field_validator("log_level")
    @classmethod
    def known_level(cls, v):
        level = str(v).upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name in Settings.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            overrides[name] = raw
    return overrides


def load_settings(path: str = "config/config.yaml", **overrides: Any) -> Settings:
    """Load YAML config, apply env-var overrides, then explicit overrides.

    Explicit keyword overrides (typically from command-line flags) win over
    the environment, which wins over the YAML file. `None` overrides are ignored.
    """
    config: Dict[str, Any] = {}
    p = pathlib.Path(path)
    if p.exists():
        with open(p, "r") as f:
            config = yaml.safe_load(f) or {}
    known = {k: v for k, v in config.items() if k in Settings.model_fields}
    known.update(_env_overrides())
    known.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**known)

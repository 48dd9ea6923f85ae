"""Configuration for pqledger."""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError, field_validator

from .backends import JSONFileBackend, SQLiteBackend, StorageBackend
from .core.exceptions import ConfigurationError
from .crypto.signatures import DEFAULT_SCHEME, SUPPORTED_SCHEMES

ENV_PREFIX = "PQLEDGER_"
SQLITE_SUFFIXES = {".db", ".sqlite", ".sqlite3"}


class LedgerConfig(BaseModel):
    """Runtime settings shared by the CLI and embedding applications."""

    chain_name: str = "Main Chain"
    scheme: str = DEFAULT_SCHEME
    store_path: Optional[Path] = None
    log_level: str = "WARNING"

    @field_validator("chain_name")
    @classmethod
    def validate_chain_name(cls, v):
        if not v.strip():
            raise ValueError("Chain name cannot be empty")
        return v

    @field_validator("scheme")
    @classmethod
    def validate_scheme(cls, v):
        v = v.lower()
        if v not in SUPPORTED_SCHEMES:
            raise ValueError(f"Unsupported scheme: {v}. Supported: {list(SUPPORTED_SCHEMES)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"Unknown log level: {v}")
        return v

    @classmethod
    def load(cls, **overrides) -> "LedgerConfig":
        """Build a config, turning validation failures into ConfigurationError."""
        try:
            return cls(**{k: v for k, v in overrides.items() if v is not None})
        except PydanticValidationError as e:
            error = e.errors()[0]
            setting = str(error["loc"][0]) if error["loc"] else None
            raise ConfigurationError(
                f"Invalid configuration: {error['msg']}",
                setting=setting,
                value=error.get("input"),
            ) from e

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "LedgerConfig":
        """Read settings from ``PQLEDGER_*`` variables; keyword overrides win."""
        environ = os.environ if environ is None else environ
        values = {
            "chain_name": environ.get(f"{ENV_PREFIX}CHAIN_NAME"),
            "scheme": environ.get(f"{ENV_PREFIX}SCHEME"),
            "store_path": environ.get(f"{ENV_PREFIX}STORE") or None,
            "log_level": environ.get(f"{ENV_PREFIX}LOG_LEVEL"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.load(**values)


def create_backend(config: LedgerConfig) -> Optional[StorageBackend]:
    """Pick a storage backend from the store path's suffix.

    Returns None when no store is configured.
    """
    if config.store_path is None:
        return None
    if config.store_path.suffix.lower() in SQLITE_SUFFIXES:
        return SQLiteBackend(config.store_path)
    return JSONFileBackend(config.store_path)

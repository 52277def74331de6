"""
Configuration loader module.

Loads the optional JSON settings file and validates it into
:class:`EngineSettings`. Command-line flags are applied on top with
:meth:`EngineSettings.with_overrides`.

Example ``mssqlhop.json``::

    {
        "default_timeout": 120,
        "max_retries": 3,
        "rpc_cache_scope": "context",
        "odbc_driver": "ODBC Driver 18 for SQL Server"
    }
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mssqlhop.domain.errors import ConfigurationError


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("mssqlhop.json")


class RpcCacheScope(Enum):
    """Lifetime of the "RPC out is disabled here" knowledge."""

    CONTEXT = "context"  # every execution context re-learns it
    PROCESS = "process"  # shared by all contexts in this process


class OutputFormat(Enum):
    TABLE = "table"
    CSV = "csv"
    JSON = "json"
    MARKDOWN = "markdown"


class EngineSettings(BaseModel):
    """Execution engine and connection settings."""

    model_config = ConfigDict(extra="ignore")

    default_timeout: int = Field(120, description="Initial per-statement timeout in seconds")
    max_retries: int = Field(3, description="Retry budget shared by all recovery actions")
    connect_timeout: int = Field(15, description="Seconds to wait for the login to complete")
    rpc_cache_scope: RpcCacheScope = Field(RpcCacheScope.CONTEXT, description="RPC availability cache lifetime")
    odbc_driver: Optional[str] = Field(None, description="Force a specific ODBC driver")
    encrypt: bool = Field(False, description="Request TLS encryption")
    trust_server_certificate: bool = Field(True, description="Skip server certificate validation")
    output_format: OutputFormat = Field(OutputFormat.TABLE, description="Result rendering")

    @field_validator("default_timeout", "connect_timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Timeout must be a positive number of seconds")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries cannot be negative")
        return v

    def with_overrides(self, **overrides: Any) -> EngineSettings:
        """Return a copy with every non-None override applied and validated."""
        values = self.model_dump()
        values.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return EngineSettings.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid setting: {e}") from e


class ConfigLoader:
    """Load and validate the settings file."""

    def __init__(self, config_path: str | Path | None = None):
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_FILE
        self.required = config_path is not None

    def load(self) -> EngineSettings:
        """
        Load settings, falling back to defaults when the default file is absent.

        Raises:
            ConfigurationError: If an explicitly requested file is missing, or
                any file is unreadable, empty, malformed or fails validation
        """
        data = self._load_json_file(self.config_path, required=self.required)
        if data is None:
            return EngineSettings()

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration root must be a JSON object: {self.config_path}"
            )

        try:
            settings = EngineSettings.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration in {self.config_path}:\n{e}"
            ) from e

        logger.info("Loaded settings from %s", self.config_path)
        return settings

    def _load_json_file(self, filepath: Path, required: bool = True) -> Any:
        """
        Load and parse a JSON file with clear error messages.

        Returns:
            Parsed JSON, or None if an optional file does not exist
        """
        if not filepath.exists():
            if required:
                raise ConfigurationError(f"Configuration file not found: {filepath}")
            logger.debug("Optional config not found: %s", filepath)
            return None

        try:
            content = filepath.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read config file: {filepath}\n"
                f"Hint: Check file permissions or if another process has it locked."
            ) from e

        if not content.strip():
            raise ConfigurationError(f"Configuration file is empty: {filepath}")

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {filepath}\n"
                f"Error at line {e.lineno}, column {e.colno}: {e.msg}\n"
                f"Hint: Validate JSON syntax. Note: .json files cannot have comments."
            ) from e

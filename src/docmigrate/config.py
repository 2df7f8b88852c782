"""
Configuration for docmigrate runs.

Settings are explicit objects constructed once at startup and passed down;
library code never reads the process environment on its own. ``from_env``
helpers exist for the command line, and take a prefix so that several
stores (for example a source/destination pair) can be configured side by
side.

This module provides:
- CosmosSettings: Connection details for one Cosmos DB container
- RunSettings: Tuning knobs for a migration run
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from docmigrate.bulk.retry import RetryPolicy
from docmigrate.exceptions import ConfigurationError
from docmigrate.operations import DEFAULT_CHUNK_SIZE

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


class CosmosSettings(BaseModel):
    """
    Connection details for one Cosmos DB container.

    Example:
        >>> settings = CosmosSettings.from_env()  # COSMOSDB_CONNECTION, ...
        >>> target = CosmosSettings.from_env(prefix="TARGET_COSMOSDB_")
    """

    model_config = ConfigDict(frozen=True)

    connection_string: SecretStr = Field(
        ...,
        description="Account connection string (AccountEndpoint=...;AccountKey=...;)",
    )
    database: str = Field(..., min_length=1, description="Database name")
    container: str = Field(..., min_length=1, description="Container name")

    @classmethod
    def from_env(
        cls,
        prefix: str = "COSMOSDB_",
        environ: Mapping[str, str] | None = None,
    ) -> CosmosSettings:
        """
        Build settings from ``<prefix>CONNECTION``, ``<prefix>DATABASE`` and
        ``<prefix>CONTAINER``.

        Args:
            prefix: Variable name prefix.
            environ: Mapping to read from; defaults to ``os.environ``.

        Returns:
            Validated settings.

        Raises:
            ConfigurationError: If any variable is missing or empty.
        """
        env = os.environ if environ is None else environ
        names = {
            "connection_string": f"{prefix}CONNECTION",
            "database": f"{prefix}DATABASE",
            "container": f"{prefix}CONTAINER",
        }
        missing = [name for name in names.values() if not env.get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing,
            )
        return _validated(cls, {field: env[name] for field, name in names.items()})


class RunSettings(BaseModel):
    """
    Tuning knobs for a migration run.

    Attributes:
        chunk_size: Operations per bulk request (1-100).
        max_retries: Resubmissions allowed per batch.
        base_delay_ms: Minimum backoff before the first resubmission.
        max_delay_ms: Upper bound for any backoff wait.
        retry_all_failures: Retry permanent failures too.
        assume_yes: Skip the interactive confirmation.
        log_level: Root logging level for the command line.
    """

    model_config = ConfigDict(frozen=True)

    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1, le=DEFAULT_CHUNK_SIZE)
    max_retries: int = Field(default=10, ge=0)
    base_delay_ms: float = Field(default=0.0, ge=0)
    max_delay_ms: float = Field(default=30000.0, gt=0)
    retry_all_failures: bool = False
    assume_yes: bool = False
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return level

    @classmethod
    def from_env(
        cls,
        prefix: str = "DOCMIGRATE_",
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> RunSettings:
        """
        Build settings from ``<prefix><FIELD>`` variables.

        Unset variables keep their defaults; ``overrides`` (for example from
        command-line flags) win over the environment when not None.

        Raises:
            ConfigurationError: If a value fails validation.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for field in cls.model_fields:
            raw = env.get(f"{prefix}{field.upper()}")
            if raw is not None and raw != "":
                values[field] = raw
        values.update({key: value for key, value in overrides.items() if value is not None})
        return _validated(cls, values)

    def retry_policy(self) -> RetryPolicy:
        """Build the bulk writer retry policy described by these settings."""
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            max_delay_ms=max(self.max_delay_ms, self.base_delay_ms),
            retry_all_failures=self.retry_all_failures,
        )

    @property
    def logging_level(self) -> int:
        return logging.getLevelName(self.log_level)


def _validated(model: type[Any], values: dict[str, Any]) -> Any:
    try:
        return model.model_validate(values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise ConfigurationError(f"Invalid {model.__name__}: {problems}") from e


__all__ = [
    "CosmosSettings",
    "RunSettings",
]

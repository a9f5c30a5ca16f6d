"""
Configuration management for entmodel.

Configuration comes from environment variables; every setting has a
default so the library works with no environment at all.

Invariants:
    - Library code never reads the environment itself; callers pass a
      config object or use the defaults
    - The CLI loads AppConfig.from_env() once at startup

How to change safely:
    - Add new settings with defaults that keep current behavior
    - Document new variables in the class docstring
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# Bound type name used when an entity does not name its own runtime type.
DEFAULT_BOUND_TYPE_NAME = "ManagedObject"


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class CompilerConfig:
    """Schema compiler configuration.

    Attributes:
        default_bound_type_name: Runtime type used by entities that do not
            name one (ENTMODEL_DEFAULT_BOUND_TYPE)
        strict_consistency: Fail compilation on consistency findings
            instead of logging them (ENTMODEL_STRICT_CONSISTENCY)
    """

    default_bound_type_name: str = DEFAULT_BOUND_TYPE_NAME
    strict_consistency: bool = False

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.default_bound_type_name:
            raise ValueError("default_bound_type_name cannot be empty")

    @classmethod
    def from_env(cls) -> CompilerConfig:
        """Load configuration from environment variables."""
        return cls(
            default_bound_type_name=os.getenv(
                "ENTMODEL_DEFAULT_BOUND_TYPE", DEFAULT_BOUND_TYPE_NAME
            ),
            strict_consistency=_env_bool("ENTMODEL_STRICT_CONSISTENCY", False),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format ('text' or 'json')
    """

    log_level: str = "INFO"
    log_format: str = "text"

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got '{self.log_format}'")

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass(frozen=True)
class AppConfig:
    """Complete configuration for the entmodel tools.

    Example:
        >>> config = AppConfig.from_env()
        >>> config.compiler.default_bound_type_name
        'ManagedObject'
    """

    compiler: CompilerConfig = field(default_factory=CompilerConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load complete configuration from environment variables."""
        config = cls(
            compiler=CompilerConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        logger.debug(f"Loaded configuration: {config.to_dict()}")
        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary for display."""
        return {
            "compiler": {
                "default_bound_type_name": self.compiler.default_bound_type_name,
                "strict_consistency": self.compiler.strict_consistency,
            },
            "observability": {
                "log_level": self.observability.log_level,
                "log_format": self.observability.log_format,
            },
        }

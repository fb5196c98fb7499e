"""Collector settings and configuration management."""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from .properties import DEFAULT_MAX_PASSES

# Build-output directory names that never occur as groupId segments.
DEFAULT_SKIP_DIRS = ("target", "node_modules")

DEFAULT_TRANSITIVE_SCOPES = ("compile", "runtime")


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class CollectorSettings(BaseSettings):
    """Collector settings with environment variable support.

    ``MAVEN_REPO_LOCAL`` plays the role of Maven's ``maven.repo.local``
    override; the remaining settings use the ``GAVCOLLECT_`` prefix.
    """

    repo_local: Optional[Path] = Field(default=None, description="Local repository root override",
                                       alias="MAVEN_REPO_LOCAL")
    max_property_passes: int = Field(default=DEFAULT_MAX_PASSES,
                                     description="Interpolation re-scan limit",
                                     alias="GAVCOLLECT_MAX_PROPERTY_PASSES")
    skip_dirs: List[str] = Field(default=list(DEFAULT_SKIP_DIRS),
                                 description="Directory names pruned by the batch scanner",
                                 alias="GAVCOLLECT_SKIP_DIRS")
    transitive_scopes: List[str] = Field(default=list(DEFAULT_TRANSITIVE_SCOPES),
                                         description="Scopes followed into a dependency's own dependencies",
                                         alias="GAVCOLLECT_TRANSITIVE_SCOPES")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level",
                                alias="GAVCOLLECT_LOG_LEVEL")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("max_property_passes")
    @classmethod
    def _at_least_one_pass(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_property_passes must be at least 1")
        return value

    @property
    def repository_root(self) -> Path:
        """Effective local repository root (``~/.m2/repository`` unless overridden)."""
        if self.repo_local:
            return Path(self.repo_local).expanduser().absolute()
        return Path.home() / ".m2" / "repository"


# Global settings instance
settings = CollectorSettings()


def get_settings() -> CollectorSettings:
    """Get collector settings."""
    return settings


def reload_settings() -> CollectorSettings:
    """Reload settings from environment."""
    global settings
    settings = CollectorSettings()
    return settings

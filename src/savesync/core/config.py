"""
savesync configuration management.

Provides centralized configuration with validation using Pydantic.
"""

from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator, model_validator

from savesync.core.errors import ConfigurationError, TargetNotSyncableError, UnknownTargetError

CONFIG_ENV_VAR = "SAVESYNC_CONFIG_PATH"


def default_config_path() -> Path:
    return Path.home() / ".savesync" / "config.toml"


def _expand(v: str | Path) -> Path:
    return Path(v).expanduser().resolve()


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_enabled: bool = False
    console_enabled: bool = True
    json_format: bool = False
    log_directory: Path = Field(default_factory=lambda: Path.home() / ".savesync" / "logs")

    @field_validator("log_directory", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return _expand(v)


class SyncSettings(BaseModel):
    """Configuration for sync passes."""

    conflict_policy: Literal["ask", "local", "remote", "ignore"] = "ask"
    staged_replace: bool = False


class TargetConfig(BaseModel):
    """One synchronized directory.

    Accepts either a bare path (sync enabled) or a table with ``dir`` and
    an optional ``sync`` flag.
    """

    dir: Path
    sync: bool = True

    @model_validator(mode="before")
    @classmethod
    def accept_flat_path(cls, data: Any) -> Any:
        if isinstance(data, (str, Path)):
            return {"dir": data}
        return data

    @field_validator("dir", mode="before")
    @classmethod
    def expand_dir(cls, v: str | Path) -> Path:
        return _expand(v)


class SaveSyncConfig(BaseModel):
    """Main savesync configuration."""

    remote: Path | None = None
    local_dir: Path = Field(default_factory=lambda: Path.home() / ".savesync" / "local")
    targets: dict[str, TargetConfig] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("targets", "target"),
    )
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("remote", mode="before")
    @classmethod
    def expand_remote(cls, v: str | Path | None) -> Path | None:
        return None if v is None else _expand(v)

    @field_validator("local_dir", mode="before")
    @classmethod
    def expand_local_dir(cls, v: str | Path) -> Path:
        return _expand(v)

    @classmethod
    def load(cls, config_path: Path | None = None) -> SaveSyncConfig:
        """Load configuration from file or create default."""
        if config_path is None:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            config_path = Path(env_path) if env_path else default_config_path()

        if not config_path.exists():
            return cls()

        try:
            if config_path.suffix == ".json":
                with open(config_path) as f:
                    data = json.load(f)
            else:
                with open(config_path, "rb") as f:
                    data = tomllib.load(f)
            return cls.model_validate(data)
        except OSError as exc:
            raise ConfigurationError(f"cannot read config file '{config_path}': {exc}") from exc
        except (json.JSONDecodeError, tomllib.TOMLDecodeError, ValidationError) as exc:
            raise ConfigurationError(f"failed to parse config file '{config_path}'\n{exc}") from exc

    def save(self, config_path: Path) -> None:
        """Save configuration to file as JSON."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

    def get_target(self, name: str) -> TargetConfig:
        try:
            return self.targets[name]
        except KeyError:
            raise UnknownTargetError(name) from None

    def get_syncable_target(self, name: str) -> TargetConfig:
        target = self.get_target(name)
        if not target.sync:
            raise TargetNotSyncableError(name)
        return target

    def require_remote(self) -> Path:
        if self.remote is None:
            raise ConfigurationError("no remote directory configured")
        return self.remote


def load_config(config_path: Path | None = None) -> SaveSyncConfig:
    """Load or create configuration."""
    return SaveSyncConfig.load(config_path)

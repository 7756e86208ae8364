"""
Configuration loading for Backup Guard.

Settings are read once per run from a YAML file and validated into an
immutable BackupConfig that is passed explicitly to each engine. Missing
required settings and unrecognized values are fatal; nothing falls back to a
default for the settings that decide what gets written or deleted.

Config file location, in order of precedence:
    1. --config option on the command line
    2. BACKUP_GUARD_CONFIG environment variable
    3. /etc/backup-guard/config.yaml
"""

import os
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from backup_guard.artifacts.models import RetentionPolicy
from backup_guard.artifacts.naming import ArtifactNaming
from backup_guard.core.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path("/etc/backup-guard/config.yaml")
CONFIG_ENV_VAR = "BACKUP_GUARD_CONFIG"


class DatabaseSettings(BaseModel):
    """Connection settings handed to the dump collaborator."""

    model_config = {"frozen": True, "extra": "forbid"}

    host: str = "localhost"
    port: int = Field(default=5432, gt=0, lt=65536)
    user: str = "postgres"
    passfile: Path | None = Field(
        default=None, description="Exported as PGPASSFILE for the dump process"
    )
    dump_command: str = "pg_dump"
    timeout_seconds: float | None = Field(default=None, gt=0)


class CaptureSettings(BaseModel):
    """Capture engine tuning."""

    model_config = {"frozen": True, "extra": "forbid"}

    stale_staging_minutes: int | None = Field(
        default=120,
        gt=0,
        description="Remove orphaned staging files older than this; null disables",
    )


class LoggingSettings(BaseModel):
    """Log sink locations."""

    model_config = {"frozen": True, "extra": "forbid"}

    directory: Path | None = Field(
        default=None, description="Defaults to the destination root"
    )
    backup_log: str = "backup.log"
    error_log: str = "backup_errors.log"
    retention_log: str = "retention_cleanup.log"
    console: bool = True


class SafetySettings(BaseModel):
    """Extra path safety configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    extra_denied_roots: tuple[str, ...] = Field(
        default=(), description="Paths added to the built-in deny-list"
    )


class LockSettings(BaseModel):
    """Advisory run lock."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    directory: Path | None = Field(
        default=None, description="Defaults to the system temporary directory"
    )


class BackupConfig(BaseModel):
    """Complete, immutable configuration for one run."""

    model_config = {"frozen": True, "extra": "forbid"}

    source_database: str = Field(min_length=1, description="Database to dump")
    destination_root: Path = Field(description="Root of the date-partitioned tree")
    allowed_root: Path = Field(description="The only root retention may delete under")
    artifact_prefix: str = Field(min_length=1, description="Artifact filename prefix")
    retention: RetentionPolicy
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    safety: SafetySettings = Field(default_factory=SafetySettings)
    lock: LockSettings = Field(default_factory=LockSettings)

    @field_validator("destination_root", "allowed_root", mode="before")
    @classmethod
    def validate_root(cls, v):
        """Reject empty paths instead of letting them become '.'."""
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("path must not be empty")
        return v

    @field_validator("artifact_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        ArtifactNaming(v)
        return v

    @property
    def log_dir(self) -> Path:
        return self.logging.directory or self.destination_root

    @property
    def lock_dir(self) -> Path:
        return self.lock.directory or Path(tempfile.gettempdir())

    def naming(self) -> ArtifactNaming:
        return ArtifactNaming(self.artifact_prefix)


def resolve_config_path(path: Path | None = None) -> Path:
    """Pick the config file from the option, the environment, or the default."""
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def parse_config(data: dict[str, Any], config_file: str | None = None) -> BackupConfig:
    """
    Validate raw settings into a BackupConfig.

    Raises:
        ConfigurationError: Naming every missing or invalid key
    """
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration must be a mapping of settings",
            config_file=config_file,
        )

    try:
        return BackupConfig.model_validate(data)
    except ValidationError as e:
        problems = []
        for err in e.errors():
            key = ".".join(str(part) for part in err["loc"]) or "<root>"
            problems.append(f"{key}: {err['msg']}")
        first_key = ".".join(str(part) for part in e.errors()[0]["loc"]) or None
        raise ConfigurationError(
            "Invalid configuration: " + "; ".join(problems),
            config_file=config_file,
            config_key=first_key,
            details={"errors": problems},
        ) from e


def load_config(path: Path | None = None) -> BackupConfig:
    """
    Load and validate the configuration file.

    Args:
        path: Explicit config file path

    Returns:
        Validated BackupConfig

    Raises:
        ConfigurationError: If the file is missing, unreadable, or invalid
    """
    config_path = resolve_config_path(path)

    if not config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            config_file=str(config_path),
        )

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read configuration file: {e}", config_file=str(config_path)
        ) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Malformed YAML in configuration file: {e}", config_file=str(config_path)
        ) from e

    return parse_config(data, config_file=str(config_path))

# src/sharegate/core/config.py
"""
Configuration schema and loading for sharegate deployments.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# Minimum master secret length, matching the envelope's own check
MIN_MASTER_SECRET_LENGTH = 32


class DatabaseSettings(BaseModel):
    """Item store connection configuration."""

    model_config = {"frozen": True}

    url: str = Field(
        default="sqlite:///./sharegate.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")
    busy_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="SQLite only: how long a writer waits for the write lock",
    )


class IdentifierSettings(BaseModel):
    """Public identifier allocation.

    Example YAML:
        identifiers:
          length: 8
          max_attempts: 5
    """

    model_config = {"frozen": True}

    length: int = Field(
        default=8,
        ge=6,
        le=32,
        description="Symbols per identifier (62-symbol alphabet)",
    )
    max_attempts: int = Field(
        default=5,
        gt=0,
        description="Candidates tried before reporting capacity exhaustion",
    )


class EnvelopeSettings(BaseModel):
    """Sealing of inline text content.

    The master secret normally comes from SHAREGATE_MASTER_SECRET, not from
    the YAML file. It is excluded from repr and from resolved config dumps.
    """

    model_config = {"frozen": True}

    master_secret: str | None = Field(
        default=None,
        repr=False,
        description="Per-deployment master secret (>= 32 characters)",
    )
    kdf_iterations: int = Field(
        default=100_000,
        ge=100_000,
        description="PBKDF2 iterations per seal/open",
    )

    @field_validator("master_secret")
    @classmethod
    def validate_master_secret(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if len(v.strip()) < MIN_MASTER_SECRET_LENGTH:
            raise ValueError(
                f"master_secret must be at least {MIN_MASTER_SECRET_LENGTH} characters"
            )
        return v


class CredentialSettings(BaseModel):
    """Password and quiz answer hashing."""

    model_config = {"frozen": True}

    bcrypt_rounds: int = Field(
        default=10, ge=4, le=31, description="bcrypt cost factor"
    )
    enforce_password_strength: bool = Field(
        default=True, description="Reject weak gate passwords at creation"
    )


class SweeperSettings(BaseModel):
    """Background lifecycle sweep."""

    model_config = {"frozen": True}

    enabled: bool = True
    interval_seconds: float = Field(
        default=3600.0, gt=0, description="Seconds between sweeps"
    )
    release_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound on a single blob release",
    )


class BlobStoreSettings(BaseModel):
    """External blob store configuration."""

    model_config = {"frozen": True}

    backend: Literal["filesystem"] = Field(
        default="filesystem", description="Storage backend type"
    )
    base_path: Path = Field(
        default=Path(".sharegate/blobs"),
        description="Base path for filesystem backend",
    )


class AnalyticsSettings(BaseModel):
    """Per-access analytics recording."""

    model_config = {"frozen": True}

    enabled: bool = Field(default=True, description="Record consumed accesses")
    default_limit: int = Field(
        default=50, gt=0, description="Recent accesses returned by default"
    )
    max_limit: int = Field(
        default=200, gt=0, description="Upper bound on recent accesses returned"
    )


class LoggingSettings(BaseModel):
    """structlog output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_output: bool = Field(
        default=False, description="Render JSON lines instead of console output"
    )


class ShareGateSettings(BaseModel):
    """Top-level sharegate configuration.

    Every section has defaults, so an empty settings file is valid.
    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    identifiers: IdentifierSettings = Field(default_factory=IdentifierSettings)
    envelope: EnvelopeSettings = Field(default_factory=EnvelopeSettings)
    credentials: CredentialSettings = Field(default_factory=CredentialSettings)
    sweeper: SweeperSettings = Field(default_factory=SweeperSettings)
    blob_store: BlobStoreSettings = Field(default_factory=BlobStoreSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: Path) -> ShareGateSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (SHAREGATE_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: SHAREGATE_DATABASE__URL for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ShareGateSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="SHAREGATE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = _lower_keys(
        {
            k: v
            for k, v in dynaconf_settings.as_dict().items()
            if k not in internal_keys
        }
    )
    # SHAREGATE_MASTER_SECRET is read by the envelope itself, not as a section
    raw_config.pop("master_secret", None)
    return ShareGateSettings(**raw_config)


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def resolve_config(settings: ShareGateSettings) -> dict[str, Any]:
    """Convert validated settings to a dict for display.

    The master secret is replaced by a presence marker.

    Args:
        settings: Validated ShareGateSettings instance

    Returns:
        Dict representation suitable for JSON serialization
    """
    resolved = settings.model_dump(mode="json")
    secret = resolved["envelope"].pop("master_secret", None)
    resolved["envelope"]["master_secret_configured"] = secret is not None
    return resolved

"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- No patient data in configuration, only how to interpret it
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ClinicalConfig(BaseModel):
    """How dates and medications are interpreted for this patient."""

    patient_timezone: str = Field(
        default="UTC", description="IANA timezone that defines the patient's calendar day"
    )
    drug_catalog_path: str | None = Field(
        default=None, description="Optional JSON file replacing the built-in drug catalog"
    )

    @field_validator("patient_timezone")
    def validate_timezone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v!r}") from e
        return v

    @field_validator("drug_catalog_path")
    def validate_catalog_path(cls, v):
        if v and not Path(v).is_file():
            raise ValueError(f"Drug catalog file not found: {v}")
        return v or None

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.patient_timezone)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    clinical: ClinicalConfig = Field(default_factory=ClinicalConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(
            LogLevel,
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    clinical_config = ClinicalConfig(
        patient_timezone=os.getenv("PATIENT_TIMEZONE", "UTC").strip() or "UTC",
        drug_catalog_path=os.getenv("DRUG_CATALOG_PATH") or None,
    )

    log_format = os.getenv("LOG_FORMAT", "console" if debug else "json").strip().lower()
    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if log_format == "console" else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        clinical=clinical_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")

        if config.clinical.drug_catalog_path:
            print(f"✅ Custom drug catalog: {config.clinical.drug_catalog_path}")

    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")
    print(f"Log Format: {config.logging.format}")

    print("\n💊 CLINICAL CONFIGURATION")
    print(f"Patient Timezone: {config.clinical.patient_timezone}")
    print(f"Drug Catalog: {config.clinical.drug_catalog_path or 'built-in'}")


if __name__ == "__main__":
    # Test configuration loading
    validate_config()
    print_config_summary()

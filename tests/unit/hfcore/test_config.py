"""
Tests for configuration management in `hfcore/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level coercion to the expected Literal
- Log format defaults per environment
- Patient timezone and drug catalog path validation
- get_config cache behavior
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from hfcore.config import (
    AppConfig,
    ClinicalConfig,
    LoggingConfig,
    get_config,
    load_config_from_env,
)

_ENV_VARS = ("ENVIRONMENT", "PATIENT_TIMEZONE", "DRUG_CATALOG_PATH", "LOG_LEVEL", "LOG_FORMAT")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Start every test from an empty config environment and a cold cache."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.logging.level == "INFO"
    assert config.clinical.patient_timezone == "UTC"
    assert config.clinical.drug_catalog_path is None


def test_production_defaults_to_json_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.debug is False
    assert config.logging.format == "json"


def test_explicit_log_format_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")
    monkeypatch.setenv("LOG_FORMAT", "Console")

    config = load_config_from_env()

    assert config.environment == "staging"
    assert config.logging.format == "console"


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    config = load_config_from_env()
    assert config.logging.level == "INFO"

    # Known level should pass through
    monkeypatch.setenv("LOG_LEVEL", "error")
    config = load_config_from_env()
    assert config.logging.level == "ERROR"


def test_patient_timezone_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PATIENT_TIMEZONE", "America/New_York")

    config = load_config_from_env()

    assert config.clinical.tzinfo == ZoneInfo("America/New_York")


def test_unknown_timezone_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown timezone"):
        ClinicalConfig(patient_timezone="Mars/Olympus_Mons")


def test_missing_catalog_file_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not found"):
        ClinicalConfig(drug_catalog_path=str(tmp_path / "missing.json"))


def test_existing_catalog_file_accepted(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    catalog = tmp_path / "catalog.json"
    catalog.write_text('{"medications": []}', encoding="utf-8")
    monkeypatch.setenv("DRUG_CATALOG_PATH", str(catalog))

    config = load_config_from_env()

    assert config.clinical.drug_catalog_path == str(catalog)


def test_get_config_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    # First call populates cache
    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache


def test_app_config_debug_only_in_dev_validation() -> None:
    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(
            environment="production",
            debug=True,
            clinical=ClinicalConfig(),
            logging=LoggingConfig(),
        )

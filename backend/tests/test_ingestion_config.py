"""
Tests for services/ingestion_config.py environment parsing.
"""

import pytest

from services import ingestion_config
from scrapers.strategies import DEFAULT_STRATEGY_ORDER


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "INGESTION_ENABLED", "INGESTION_STRATEGIES", "INGESTION_MAX_WORKERS",
        "INGESTION_MAX_RUNTIME_MINUTES", "INGESTION_MIN_RECORDS", "SYNTHETIC_SEED",
        "RERA_BASE_URL", "INGESTION_COOLDOWN_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize("value,expected", [
    (None, True),
    ("true", True),
    ("FALSE", False),
    ("0", False),
    ("disabled", False),
])
def test_kill_switch(monkeypatch, value, expected):
    if value is not None:
        monkeypatch.setenv("INGESTION_ENABLED", value)
    assert ingestion_config.is_ingestion_enabled() is expected


def test_strategy_order_accepts_underscores(monkeypatch):
    monkeypatch.setenv("INGESTION_STRATEGIES", "paginated_table, human-paced,bogus")
    assert ingestion_config.get_strategy_names() == ["paginated-table", "human-paced"]


def test_strategy_order_defaults(monkeypatch):
    assert ingestion_config.get_strategy_names() == list(DEFAULT_STRATEGY_ORDER)
    monkeypatch.setenv("INGESTION_STRATEGIES", "nothing-valid")
    assert ingestion_config.get_strategy_names() == list(DEFAULT_STRATEGY_ORDER)


@pytest.mark.parametrize("value,expected", [("0", 1), ("3", 3), ("12", 5), ("lots", 3)])
def test_worker_pool_clamped(monkeypatch, value, expected):
    monkeypatch.setenv("INGESTION_MAX_WORKERS", value)
    assert ingestion_config.get_max_workers() == expected


def test_runtime_budget(monkeypatch):
    assert ingestion_config.get_max_runtime_seconds() == 1800
    monkeypatch.setenv("INGESTION_MAX_RUNTIME_MINUTES", "0")
    assert ingestion_config.get_max_runtime_seconds() is None


def test_min_records_floor(monkeypatch):
    monkeypatch.setenv("INGESTION_MIN_RECORDS", "-4")
    assert ingestion_config.get_min_records() == 1


def test_synthetic_seed(monkeypatch):
    assert ingestion_config.get_synthetic_seed() is None
    monkeypatch.setenv("SYNTHETIC_SEED", "42")
    assert ingestion_config.get_synthetic_seed() == 42
    monkeypatch.setenv("SYNTHETIC_SEED", "forty-two")
    assert ingestion_config.get_synthetic_seed() is None


def test_base_url_trailing_slash(monkeypatch):
    monkeypatch.setenv("RERA_BASE_URL", "https://mirror.test/")
    assert ingestion_config.get_base_url() == "https://mirror.test"


def test_summary_keys():
    summary = ingestion_config.get_config_summary()
    assert summary["enabled"] is True
    assert summary["max_workers"] == 3
    assert summary["cooldown_seconds"] == 30.0

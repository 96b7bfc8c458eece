import json
from pathlib import Path

import pytest

from order_insights.core.config import InsightsConfig


def test_insights_config_defaults():
    config = InsightsConfig()
    assert config.timezone == "UTC"
    assert config.cache_enabled is True
    assert config.default_cache_ttl == 3600
    assert config.max_workers == 8
    assert config.default_page_limit == 5
    assert config.top_cities == 7


def test_ttl_for_prefers_overrides_then_family_defaults():
    config = InsightsConfig(cache_ttls={"analytics:revenue": 60, "admin:overview": 0})

    assert config.ttl_for("analytics:revenue") == 60
    assert config.ttl_for("admin:overview") == 0
    assert config.ttl_for("admin:states") == 7200
    assert config.ttl_for("analytics:hourly") == 3600


def test_insights_config_from_env(monkeypatch):
    monkeypatch.setenv("INSIGHTS_TIMEZONE", "UTC")
    monkeypatch.setenv("INSIGHTS_CACHE_ENABLED", "false")
    monkeypatch.setenv("INSIGHTS_DEFAULT_CACHE_TTL", "120")
    monkeypatch.setenv("INSIGHTS_CACHE_TTLS", "analytics:revenue=30, admin:overview=600")
    monkeypatch.setenv("INSIGHTS_REQUEST_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("INSIGHTS_MAX_WORKERS", "3")
    monkeypatch.setenv("INSIGHTS_TOP_CITIES", "4")

    config = InsightsConfig.from_env()

    assert config.cache_enabled is False
    assert config.default_cache_ttl == 120
    assert config.cache_ttls == {"analytics:revenue": 30, "admin:overview": 600}
    assert config.request_timeout_seconds == 12.5
    assert config.max_workers == 3
    assert config.top_cities == 4


def test_insights_config_from_env_rejects_bad_numbers(monkeypatch):
    monkeypatch.setenv("INSIGHTS_MAX_WORKERS", "many")

    with pytest.raises(ValueError):
        InsightsConfig.from_env()


def test_insights_config_from_env_rejects_bad_ttl_entry(monkeypatch):
    monkeypatch.setenv("INSIGHTS_CACHE_TTLS", "analytics:revenue")

    with pytest.raises(ValueError):
        InsightsConfig.from_env()


def test_insights_config_from_file_json(tmp_path: Path):
    data = {
        "timezone": "UTC",
        "default_cache_ttl": 900,
        "cache_ttls": {"analytics:overview": 10},
        "max_page_limit": 50,
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))

    config = InsightsConfig.from_file(str(path))

    assert config.default_cache_ttl == 900
    assert config.ttl_for("analytics:overview") == 10
    assert config.max_page_limit == 50
    assert config.cache_enabled is True


def test_insights_config_from_file_yaml(tmp_path: Path):
    yaml = pytest.importorskip("yaml")
    data = {"cache_enabled": False, "store_timeout_seconds": 3}
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))

    config = InsightsConfig.from_file(str(path))

    assert config.cache_enabled is False
    assert config.store_timeout_seconds == 3


def test_insights_config_from_file_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        InsightsConfig.from_file(str(tmp_path / "missing.json"))

    path = tmp_path / "config.toml"
    path.write_text("x = 1")
    with pytest.raises(ValueError):
        InsightsConfig.from_file(str(path))


@pytest.mark.parametrize(
    "overrides",
    [
        {"timezone": "Not/AZone"},
        {"default_cache_ttl": -1},
        {"cache_ttls": {"analytics:revenue": -5}},
        {"store_timeout_seconds": 0},
        {"max_workers": 0},
        {"default_page_limit": 0},
        {"default_page_limit": 200},
        {"top_cities": 0},
    ],
)
def test_insights_config_validate_rejects_invalid_values(overrides):
    with pytest.raises(ValueError):
        InsightsConfig(**overrides)

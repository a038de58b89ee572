import pytest
from pydantic import ValidationError

from fleetlink.config import PRODUCTION_BASE_URL, Environment, FallbackPolicy, LinkSettings
from fleetlink.discovery import DiscoveryConfig


def test_defaults():
    settings = LinkSettings()

    assert settings.environment == Environment.DEVELOPMENT
    assert not settings.is_production
    assert settings.health_path == "/health/"
    assert settings.probe_timeout == 2.0
    assert settings.discovery_ttl == 300
    assert settings.request_timeout == 10
    assert settings.storage_key == "@backend_url"
    assert settings.production_url == PRODUCTION_BASE_URL
    assert settings.fallback_policy == FallbackPolicy.LENIENT


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("FLEETLINK_ENVIRONMENT", "production")
    monkeypatch.setenv("FLEETLINK_BATCH_SIZE", "8")
    monkeypatch.setenv("FLEETLINK_SUBNET_PREFIXES", '["192.168.0", "10.0.0."]')

    settings = LinkSettings()

    assert settings.is_production
    assert settings.batch_size == 8
    assert settings.subnet_prefixes == ["192.168.0", "10.0.0"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"subnet_prefixes": ["8.8.8"]},
        {"subnet_prefixes": ["192.168"]},
        {"backend_scheme": "ftp"},
        {"batch_size": 0},
        {"scan_width": 255},
        {"probe_timeout": 0},
        {"log_level": "LOUD"},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        LinkSettings(**overrides)


def test_health_path_and_log_level_are_normalised():
    settings = LinkSettings(health_path="status", log_level="debug")

    assert settings.health_path == "/status"
    assert settings.log_level == "DEBUG"
    assert LinkSettings(log_level="off").log_level == "OFF"


def test_from_yaml_with_overrides(tmp_path):
    path = tmp_path / "fleetlink.yaml"
    path.write_text(
        "candidate_urls:\n"
        "  - http://10.1.1.1:5000\n"
        "fallback_policy: strict\n"
        "discovery_ttl: 60\n"
    )

    settings = LinkSettings.from_yaml(path, discovery_ttl=30)

    assert settings.candidate_urls == ["http://10.1.1.1:5000"]
    assert settings.fallback_policy == FallbackPolicy.STRICT
    assert settings.discovery_ttl == 30


def test_from_yaml_rejects_non_mapping(tmp_path):
    path = tmp_path / "fleetlink.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ValueError):
        LinkSettings.from_yaml(path)


def test_discovery_config_from_settings():
    config = DiscoveryConfig.from_settings(LinkSettings(batch_size=2, discovery_ttl=120))

    assert config.batch_size == 2
    assert config.cache_ttl == 120
    assert config.fallback_address == PRODUCTION_BASE_URL


def test_lenient_policy_requires_fallback_address():
    with pytest.raises(ValueError):
        DiscoveryConfig(fallback_policy=FallbackPolicy.LENIENT)

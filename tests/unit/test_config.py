import json

import pytest

from llm_gateway.core.config import GatewayConfig
from llm_gateway.domain.exceptions import ConfigurationError


def test_defaults_are_valid():
    config = GatewayConfig()

    assert config.port == 8765
    assert config.default_strategy == "priority"
    assert config.fallback_provider == "deepseek"
    assert config.rate_limit == "100/60 seconds"


def test_from_env_reads_overrides():
    config = GatewayConfig.from_env(
        {
            "GATEWAY_PORT": "9000",
            "GATEWAY_DEFAULT_STRATEGY": "round_robin",
            "RATE_LIMIT_ENABLED": "off",
            "RATE_LIMIT_MAX_REQUESTS": "5",
            "RATE_LIMIT_WINDOW_SECONDS": "10",
            "GATEWAY_HEALTH_CHECK_INTERVAL": "2.5",
            "LOG_LEVEL": "debug",
        }
    )

    assert config.port == 9000
    assert config.default_strategy == "round_robin"
    assert config.rate_limit_enabled is False
    assert config.rate_limit == "5/10 seconds"
    assert config.health_check_interval_seconds == 2.5
    assert config.log_level == "DEBUG"


def test_from_env_ignores_blank_numbers_and_unknown_booleans():
    config = GatewayConfig.from_env({"GATEWAY_PORT": " ", "RATE_LIMIT_ENABLED": "maybe"})

    assert config.port == 8765
    assert config.rate_limit_enabled is True


def test_from_env_rejects_bad_integers():
    with pytest.raises(ConfigurationError):
        GatewayConfig.from_env({"GATEWAY_PORT": "eighty"})


@pytest.mark.parametrize(
    "changes",
    [
        {"default_strategy": "weighted"},
        {"port": 0},
        {"provider_max_retries": -1},
        {"health_check_interval_seconds": 0},
        {"rate_limit_window_seconds": 0},
        {"request_log_size": 0},
    ],
)
def test_invalid_values_are_rejected(changes):
    with pytest.raises(ConfigurationError):
        GatewayConfig(**changes)


def test_update_returns_validated_copy():
    config = GatewayConfig()

    updated = config.update({"default_strategy": "least_requests"})

    assert updated.default_strategy == "least_requests"
    assert config.default_strategy == "priority"
    with pytest.raises(ConfigurationError):
        config.update({"unknown_key": 1})
    with pytest.raises(ConfigurationError):
        config.update({"default_strategy": "weighted"})


def test_as_dict_lists_every_field():
    data = GatewayConfig().as_dict()

    assert data["default_provider"] == "openai"
    assert data["env_file"] == ".env"
    assert "rate_limit" not in data


def test_from_json_file_merges_with_defaults(tmp_path):
    path = tmp_path / "gateway.json"
    path.write_text(json.dumps({"port": 9100, "default_strategy": "random"}))

    config = GatewayConfig.from_file(str(path))

    assert config.port == 9100
    assert config.default_strategy == "random"
    assert config.host == "localhost"


def test_from_yaml_file(tmp_path):
    pytest.importorskip("yaml")
    path = tmp_path / "gateway.yaml"
    path.write_text("default_strategy: cost_optimized\nrate_limit_enabled: false\n")

    config = GatewayConfig.from_file(str(path))

    assert config.default_strategy == "cost_optimized"
    assert config.rate_limit_enabled is False


def test_from_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        GatewayConfig.from_file(str(tmp_path / "missing.json"))

    other = tmp_path / "gateway.toml"
    other.write_text("port = 1")
    with pytest.raises(ConfigurationError):
        GatewayConfig.from_file(str(other))

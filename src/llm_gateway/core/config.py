"""Gateway configuration management helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from llm_gateway.domain.exceptions import ConfigurationError
from llm_gateway.domain.models import BalancingStrategy


def _str_to_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _str_to_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid integer value: {value}") from exc


def _str_to_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid number: {value}") from exc


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable configuration object loaded from env or files."""

    host: str = "localhost"
    port: int = 8765
    default_strategy: str = BalancingStrategy.PRIORITY.value
    default_provider: str = "openai"
    fallback_provider: str = "deepseek"
    config_path: str = "config/providers.json"
    config_max_age_hours: float = 24
    health_check_interval_seconds: float = 30
    health_check_timeout_seconds: float = 10
    health_stale_after_seconds: float = 300
    request_timeout_seconds: float = 30
    provider_max_retries: int = 0
    rate_limit_enabled: bool = True
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 60
    cors_origin: str = "*"
    env_file: str = ".env"
    request_log_size: int = 1000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GatewayConfig":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            host=env.get("GATEWAY_HOST", defaults.host),
            port=_str_to_int(env.get("GATEWAY_PORT"), defaults.port),
            default_strategy=env.get(
                "GATEWAY_DEFAULT_STRATEGY", defaults.default_strategy
            ),
            default_provider=env.get(
                "GATEWAY_DEFAULT_PROVIDER", defaults.default_provider
            ),
            fallback_provider=env.get(
                "GATEWAY_FALLBACK_PROVIDER", defaults.fallback_provider
            ),
            config_path=env.get("GATEWAY_PROVIDERS_FILE", defaults.config_path),
            config_max_age_hours=_str_to_float(
                env.get("GATEWAY_CONFIG_MAX_AGE_HOURS"), defaults.config_max_age_hours
            ),
            health_check_interval_seconds=_str_to_float(
                env.get("GATEWAY_HEALTH_CHECK_INTERVAL"),
                defaults.health_check_interval_seconds,
            ),
            health_check_timeout_seconds=_str_to_float(
                env.get("GATEWAY_HEALTH_CHECK_TIMEOUT"),
                defaults.health_check_timeout_seconds,
            ),
            request_timeout_seconds=_str_to_float(
                env.get("GATEWAY_REQUEST_TIMEOUT"), defaults.request_timeout_seconds
            ),
            provider_max_retries=_str_to_int(
                env.get("GATEWAY_PROVIDER_MAX_RETRIES"), defaults.provider_max_retries
            ),
            rate_limit_enabled=_str_to_bool(
                env.get("RATE_LIMIT_ENABLED"), defaults.rate_limit_enabled
            ),
            rate_limit_max_requests=_str_to_int(
                env.get("RATE_LIMIT_MAX_REQUESTS"), defaults.rate_limit_max_requests
            ),
            rate_limit_window_seconds=_str_to_int(
                env.get("RATE_LIMIT_WINDOW_SECONDS"),
                defaults.rate_limit_window_seconds,
            ),
            cors_origin=env.get("CORS_ORIGIN", defaults.cors_origin),
            env_file=env.get("GATEWAY_ENV_FILE", defaults.env_file),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
        )

    @classmethod
    def from_file(cls, path: str) -> "GatewayConfig":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        raw = file_path.read_text()
        data: Dict[str, Any]
        suffix = file_path.suffix.lower()
        if suffix == ".json":
            data = json.loads(raw)
        elif suffix in {".yaml", ".yml"}:
            data = cls._load_yaml(raw)
        else:
            raise ConfigurationError("Unsupported config format. Use JSON or YAML.")
        return cls(**cls._merge_with_defaults(data))

    def validate(self) -> None:
        allowed = {strategy.value for strategy in BalancingStrategy}
        if self.default_strategy not in allowed:
            raise ConfigurationError(
                f"default_strategy must be one of {sorted(allowed)}"
            )
        if not 0 < self.port < 65536:
            raise ConfigurationError("port must be between 1 and 65535")
        if self.provider_max_retries < 0:
            raise ConfigurationError("provider_max_retries must be non-negative")
        for name in (
            "health_check_interval_seconds",
            "health_check_timeout_seconds",
            "health_stale_after_seconds",
            "request_timeout_seconds",
            "config_max_age_hours",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be greater than zero")
        if self.rate_limit_max_requests <= 0 or self.rate_limit_window_seconds <= 0:
            raise ConfigurationError("rate limit values must be greater than zero")
        if self.request_log_size <= 0:
            raise ConfigurationError("request_log_size must be greater than zero")

    def update(self, changes: Mapping[str, Any]) -> "GatewayConfig":
        """Return a validated copy with ``changes`` applied; unknown keys are rejected."""

        known = {item.name for item in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {unknown}")
        return replace(self, **dict(changes))

    def as_dict(self) -> Dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}

    @property
    def rate_limit(self) -> str:
        """slowapi limit string, e.g. ``100/60 seconds``."""

        return f"{self.rate_limit_max_requests}/{self.rate_limit_window_seconds} seconds"

    @classmethod
    def _merge_with_defaults(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        defaults = cls()
        return {
            item.name: data.get(item.name, getattr(defaults, item.name))
            for item in fields(cls)
        }

    @staticmethod
    def _load_yaml(raw: str) -> Dict[str, Any]:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to parse YAML config files") from exc
        return yaml.safe_load(raw) or {}

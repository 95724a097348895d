"""Dependency injection container for building fully-wired Gateway instances."""

from __future__ import annotations

import os
from typing import MutableMapping, Optional

import httpx

from llm_gateway.core.config import GatewayConfig
from llm_gateway.core.environment import EnvironmentManager
from llm_gateway.core.gateway import Gateway
from llm_gateway.core.middleware import (
    LoggingMiddleware,
    MiddlewareChain,
    RequestLogMiddleware,
)
from llm_gateway.domain.interfaces import (
    HttpClientFactory,
    IProviderConfigStore,
    IProviderFactory,
)
from llm_gateway.health.monitor import HealthMonitor
from llm_gateway.providers.factory import ProviderFactory
from llm_gateway.registry.registry import ProviderRegistry
from llm_gateway.registry.store import ProviderConfigStore
from llm_gateway.routing.router import ProviderRouter
from llm_gateway.routing.state import RouterState
from llm_gateway.selection.selector import ModelSelector
from llm_gateway.tokens.allocator import TokenAllocator
from llm_gateway.translation.translator import FormatTranslator


class DIContainer:
    """Factory helpers that assemble a Gateway with default wiring."""

    @staticmethod
    def create_gateway(
        config: Optional[GatewayConfig] = None,
        *,
        environ: Optional[MutableMapping[str, str]] = None,
        store: Optional[IProviderConfigStore] = None,
        http_client_factory: Optional[HttpClientFactory] = None,
        provider_factory: Optional[IProviderFactory] = None,
        registry: Optional[ProviderRegistry] = None,
    ) -> Gateway:
        cfg = config or GatewayConfig.from_env()
        env = environ if environ is not None else os.environ
        client_factory = http_client_factory or DIContainer._build_http_client_factory()

        registry = registry or ProviderRegistry(
            store
            or ProviderConfigStore(
                cfg.config_path, max_age_hours=cfg.config_max_age_hours
            ),
            http_client_factory=client_factory,
            environ=env,
        )
        state = RouterState()
        router = ProviderRouter(
            state,
            default_strategy=cfg.default_strategy,
            stale_after_seconds=cfg.health_stale_after_seconds,
            last_resort_provider=cfg.default_provider,
        )
        factory = provider_factory or ProviderFactory(
            registry,
            http_client_factory=client_factory,
            timeout=cfg.request_timeout_seconds,
            max_retries=cfg.provider_max_retries,
        )
        monitor = HealthMonitor(
            state,
            factory,
            interval_seconds=cfg.health_check_interval_seconds,
            timeout_seconds=cfg.health_check_timeout_seconds,
        )
        request_log = RequestLogMiddleware(cfg.request_log_size)

        return Gateway(
            config=cfg,
            registry=registry,
            router=router,
            monitor=monitor,
            provider_factory=factory,
            selector=ModelSelector(),
            translator=FormatTranslator(TokenAllocator()),
            middleware=MiddlewareChain([LoggingMiddleware(), request_log]),
            request_log=request_log,
            environment=EnvironmentManager(env, cfg.env_file),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _build_http_client_factory() -> HttpClientFactory:
        def factory(timeout: float) -> httpx.Client:
            return httpx.Client(timeout=timeout)

        return factory

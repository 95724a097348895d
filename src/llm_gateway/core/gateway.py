"""Per-request orchestration: validate, select, route, translate and call."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from llm_gateway.core.config import GatewayConfig
from llm_gateway.core.environment import EnvironmentManager
from llm_gateway.core.middleware import (
    MiddlewareChain,
    ProviderCall,
    RequestLogMiddleware,
)
from llm_gateway.domain.exceptions import (
    ConfigurationError,
    InvalidRequestError,
    RoutingError,
)
from llm_gateway.domain.interfaces import IProviderFactory
from llm_gateway.domain.models import (
    CanonicalResponse,
    HealthRecord,
    ModelSelection,
    Preferences,
    ProviderCallPayload,
    ProviderDescriptor,
)
from llm_gateway.health.monitor import HealthMonitor
from llm_gateway.registry.registry import ProviderRegistry
from llm_gateway.routing.router import ProviderRouter
from llm_gateway.selection.selector import ModelSelector
from llm_gateway.translation.extractors import flatten_text_blocks
from llm_gateway.translation.translator import FormatTranslator, sse_event


logger = logging.getLogger(__name__)

# Model choice for inbound chat requests favours cheap, high-quality models.
SELECTION_PREFERENCES = Preferences(
    prioritize_speed=False, prioritize_cost=True, prioritize_quality=True
)


@dataclass(frozen=True)
class PreparedCall:
    """Everything decided about a request before the provider is called."""

    request_id: str
    provider: str
    payload: ProviderCallPayload
    selection: ModelSelection


class Gateway:
    """Wires the registry, router, health monitor, selector and translator.

    One instance serves the whole process. ``start`` loads or discovers the
    provider table and launches the health ticker; ``shutdown`` stops it.
    """

    def __init__(
        self,
        *,
        config: GatewayConfig,
        registry: ProviderRegistry,
        router: ProviderRouter,
        monitor: HealthMonitor,
        provider_factory: IProviderFactory,
        selector: ModelSelector,
        translator: FormatTranslator,
        middleware: MiddlewareChain,
        request_log: RequestLogMiddleware,
        environment: EnvironmentManager,
    ) -> None:
        self.config = config
        self.registry = registry
        self.router = router
        self.monitor = monitor
        self.provider_factory = provider_factory
        self.selector = selector
        self.translator = translator
        self.request_log = request_log
        self.environment = environment
        self._middleware = middleware

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, *, run_health_checks: bool = True) -> None:
        descriptors = self.registry.ensure_loaded()
        self.router.state.load_providers(descriptors)
        logger.info(
            "gateway_started",
            extra={
                "providers": len(descriptors),
                "enabled": sum(1 for item in descriptors if item.enabled),
            },
        )
        if run_health_checks:
            self.monitor.start(run_immediately=True)

    def shutdown(self) -> None:
        self.monitor.stop(timeout=self.config.health_check_timeout_seconds)
        close = getattr(self.provider_factory, "close", None)
        if callable(close):
            close()
        logger.info("gateway_stopped")

    def refresh_providers(self) -> List[ProviderDescriptor]:
        descriptors = self.registry.discover()
        self.router.state.load_providers(descriptors)
        return descriptors

    def sync_providers(self) -> None:
        """Push the registry's current table into the router state."""

        self.router.state.load_providers(self.registry.list_providers())

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------
    def prepare(self, request: Mapping[str, Any], request_id: str) -> PreparedCall:
        errors = self.translator.validate(request)
        if errors:
            raise InvalidRequestError(errors=errors, context={"request_id": request_id})

        healthy = self.router.healthy_providers()
        user_input = self.translator.last_user_text(request)
        system_prompt = flatten_text_blocks(request.get("system") or "")
        selection = self.selector.select_best(
            user_input,
            system_prompt,
            self.available_models(healthy),
            SELECTION_PREFERENCES,
        )

        hint = request.get("provider")
        explicit_model = selection.selected_model
        if hint:
            provider = self.router.select(
                request.get("model"),
                preferred_provider=hint,
                strategy=self.config.default_strategy,
            )
            if explicit_model not in self._models_of(provider):
                explicit_model = None
        elif explicit_model:
            provider = self.find_provider_for_model(explicit_model, healthy)
        else:
            provider = self.router.select(
                request.get("model"), strategy=self.config.default_strategy
            )

        self.router.record_request(provider)
        payload = self.translator.to_provider_format(
            request,
            provider,
            explicit_model,
            selection.task_type,
            selection.complexity,
        )
        logger.info(
            "request_routed",
            extra={
                "request_id": request_id,
                "provider": provider,
                "model": payload.model,
                "task_type": selection.task_type.value,
            },
        )
        return PreparedCall(
            request_id=request_id,
            provider=provider,
            payload=payload,
            selection=selection,
        )

    def complete(self, request: Mapping[str, Any], request_id: str) -> CanonicalResponse:
        prepared = self.prepare(request, request_id)
        descriptor = self._descriptor_for(prepared.provider)
        call = ProviderCall(
            request_id=request_id,
            provider=prepared.provider,
            payload=prepared.payload,
        )

        def handler(current: ProviderCall) -> Dict[str, Any]:
            adapter = self.provider_factory.create(descriptor)
            return adapter.complete(current.payload)

        try:
            result = self._middleware.execute(call, handler)
        except Exception:
            self.selector.update_model_performance(
                prepared.payload.model, call.elapsed_ms(), False
            )
            raise

        self.selector.update_model_performance(
            prepared.payload.model, result.duration_ms, True
        )
        return self.translator.from_provider_format(
            result.data, prepared.provider, request_id, model=prepared.payload.model
        )

    def stream(self, request: Mapping[str, Any], request_id: str) -> Iterator[str]:
        """Validate and route eagerly, then return the SSE event iterator.

        Routing failures raise here so the caller can still answer with a
        JSON error; failures after the first event become an error event.
        """

        prepared = self.prepare(request, request_id)
        return self._stream_events(prepared)

    def find_provider_for_model(self, model: str, healthy: Sequence[str]) -> str:
        for name in healthy:
            if model in self._models_of(name):
                return name
        if healthy:
            return healthy[0]
        return self.config.fallback_provider

    def available_models(self, providers: Sequence[str]) -> List[str]:
        """Union of the listed providers' models, first occurrence order."""

        seen: Dict[str, None] = {}
        for name in providers:
            for model in self._models_of(name):
                seen.setdefault(model, None)
        return list(seen)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------
    def set_provider_enabled(self, name: str, enabled: bool) -> ProviderDescriptor:
        descriptor = self.registry.set_enabled(name, enabled)
        self.sync_providers()
        return descriptor

    def update_provider(self, name: str, fields: Mapping[str, Any]) -> ProviderDescriptor:
        try:
            descriptor = self.registry.update(name, fields)
        except ValidationError as exc:
            raise InvalidRequestError(
                errors=[
                    f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                    for error in exc.errors()
                ],
                context={"provider": name},
            ) from exc
        self.sync_providers()
        return descriptor

    def add_provider(
        self, name: str, api_key: str, priority: Optional[int] = None
    ) -> Optional[ProviderDescriptor]:
        descriptor = self.registry.add_provider(name, api_key, priority)
        self.sync_providers()
        return descriptor

    def remove_provider(self, name: str) -> bool:
        removed = self.registry.remove(name)
        if removed:
            self.sync_providers()
        return removed

    def test_provider(self, name: str) -> HealthRecord:
        return self.monitor.check_one(name)

    def test_all_providers(self) -> Dict[str, HealthRecord]:
        return self.monitor.check_all()

    def save_environment(self, variables: Mapping[str, Optional[str]]) -> Dict[str, str]:
        applied = self.environment.apply(variables)
        self.refresh_providers()
        return applied

    def test_environment_key(self, key: str, value: str) -> Optional[HealthRecord]:
        """Probe the provider owning ``key`` with ``value``; None if no provider does."""

        provider = self.registry.provider_for_env_key(key)
        if provider is None or provider not in self.router.state.providers:
            return None
        with self.environment.temporarily(key, value):
            return self.monitor.check_one(provider)

    def update_settings(self, changes: Mapping[str, Any]) -> GatewayConfig:
        try:
            self.config = self.config.update(changes)
        except ConfigurationError as exc:
            raise InvalidRequestError(exc.message) from exc
        except TypeError as exc:
            raise InvalidRequestError(str(exc)) from exc
        logger.info("gateway_settings_updated", extra={"keys": sorted(changes)})
        return self.config

    def stats(self) -> Dict[str, Any]:
        stats = self.router.stats()
        stats["logged_requests"] = len(self.request_log)
        return stats

    def reset_stats(self) -> None:
        self.router.reset_stats()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _stream_events(self, prepared: PreparedCall) -> Iterator[str]:
        call = ProviderCall(
            request_id=prepared.request_id,
            provider=prepared.provider,
            payload=prepared.payload,
        )
        yield sse_event({"type": "message_start", "message": {"id": prepared.request_id}})
        try:
            adapter = self.provider_factory.create(self._descriptor_for(prepared.provider))
            for chunk in adapter.stream(prepared.payload):
                yield self.translator.convert_stream_chunk(chunk, prepared.provider)
        except Exception as exc:
            logger.warning(
                "stream_failed",
                extra={
                    "request_id": prepared.request_id,
                    "provider": prepared.provider,
                    "error": str(exc),
                },
            )
            self._record_outcome(call, False, str(exc))
            yield sse_event({"type": "error", "error": {"message": str(exc)}})
            return

        self._record_outcome(call, True)
        yield sse_event({"type": "message_delta", "delta": {"stop_reason": "end_turn"}})
        yield sse_event("[DONE]")

    def _record_outcome(
        self, call: ProviderCall, success: bool, error: Optional[str] = None
    ) -> None:
        duration = call.elapsed_ms()
        self.request_log.record(call.request_id, call.provider, duration, success, error)
        self.selector.update_model_performance(call.payload.model, duration, success)

    def _descriptor_for(self, name: str) -> ProviderDescriptor:
        descriptor = self.router.state.providers.get(name)
        if descriptor is None and name in self.registry:
            descriptor = self.registry.describe(name)
        if descriptor is None:
            raise RoutingError(
                f"Provider {name} is not configured", context={"provider": name}
            )
        return descriptor

    def _models_of(self, name: str) -> Sequence[str]:
        descriptor = self.router.state.providers.get(name)
        return descriptor.models if descriptor else ()

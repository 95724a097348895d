"""Provider selection: explicit override, model heuristic, then load balancing."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from llm_gateway.domain.models import FailureKind, HealthRecord, ProviderDescriptor

from .state import RouterState
from .strategies.base import ILoadBalancingStrategy
from .strategies.cost_strategy import CostOptimizedStrategy
from .strategies.least_requests_strategy import LeastRequestsStrategy
from .strategies.priority_strategy import PriorityStrategy
from .strategies.random_strategy import RandomStrategy
from .strategies.round_robin_strategy import RoundRobinStrategy


logger = logging.getLogger(__name__)

# Checked in order; the first keyword found in the model name wins.
MODEL_KEYWORDS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("gpt",), "openai"),
    (("gemini",), "google"),
    (("claude",), "anthropic"),
    (("mistral",), "mistral"),
    (("llama", "codellama"), "ollama"),
    (("command",), "cohere"),
)

DEFAULT_STALE_AFTER_SECONDS = 300.0
LAST_RESORT_PROVIDER = "openai"


def default_strategies() -> Dict[str, ILoadBalancingStrategy]:
    strategies: Sequence[ILoadBalancingStrategy] = (
        PriorityStrategy(),
        RoundRobinStrategy(),
        LeastRequestsStrategy(),
        CostOptimizedStrategy(),
        RandomStrategy(),
    )
    return {strategy.name(): strategy for strategy in strategies}


class ProviderRouter:
    """Chooses one provider name per request and never raises doing so."""

    def __init__(
        self,
        state: RouterState,
        *,
        strategies: Optional[Mapping[str, ILoadBalancingStrategy]] = None,
        default_strategy: str = "priority",
        stale_after_seconds: float = DEFAULT_STALE_AFTER_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
        last_resort_provider: str = LAST_RESORT_PROVIDER,
    ) -> None:
        self._state = state
        self._strategies = dict(strategies or default_strategies())
        self._default_strategy = default_strategy
        self._stale_after = stale_after_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._last_resort = last_resort_provider

    @property
    def state(self) -> RouterState:
        return self._state

    def select(
        self,
        model: Optional[str],
        *,
        preferred_provider: Optional[str] = None,
        strategy: Optional[str] = None,
    ) -> str:
        try:
            if preferred_provider and self.is_provider_healthy(preferred_provider):
                logger.info(
                    "provider_selected",
                    extra={"provider": preferred_provider, "reason": "preferred"},
                )
                return preferred_provider

            by_model = self.select_by_model(model)
            if by_model and self.is_provider_healthy(by_model):
                logger.info(
                    "provider_selected",
                    extra={"provider": by_model, "reason": "model", "model": model},
                )
                return by_model

            candidates = self._healthy_descriptors()
            if not candidates:
                logger.warning("no_healthy_providers")
                return self.default_provider()

            balancer = self.strategy_for(strategy or self._default_strategy)
            chosen = balancer.choose(candidates, self._state)
            logger.info(
                "provider_selected",
                extra={"provider": chosen.name, "reason": balancer.name()},
            )
            return chosen.name
        except Exception:
            logger.exception("provider_selection_failed")
            return self.default_provider()

    @staticmethod
    def select_by_model(model: Optional[str]) -> Optional[str]:
        if not model:
            return None
        lowered = model.lower()
        for keywords, provider in MODEL_KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                return provider
        return None

    def strategy_for(self, name: str) -> ILoadBalancingStrategy:
        """Unknown names fall back to priority ordering."""

        return self._strategies.get(name) or self._strategies["priority"]

    def is_provider_healthy(self, name: str) -> bool:
        record = self._state.health.get(name)
        if record is None:
            return False
        return record.healthy and record.is_fresh(self._stale_after, self._clock())

    def healthy_providers(self) -> List[str]:
        return [item.name for item in self._healthy_descriptors()]

    def default_provider(self) -> str:
        enabled = [item for item in self._state.providers.values() if item.enabled]
        if not enabled:
            return self._last_resort
        return sorted(enabled, key=lambda item: item.priority)[0].name

    def record_request(self, name: str) -> None:
        self._state.request_counts[name] = self._state.request_counts.get(name, 0) + 1

    def set_provider_health(
        self, name: str, healthy: bool, error: Optional[str] = None
    ) -> HealthRecord:
        record = HealthRecord(
            healthy=healthy,
            last_checked_at=self._clock(),
            failure_kind=FailureKind.NONE if healthy else FailureKind.OTHER_ERROR,
            error=error,
        )
        self._state.health[name] = record
        return record

    def provider_status(self) -> Dict[str, Dict[str, Any]]:
        status: Dict[str, Dict[str, Any]] = {}
        for name, descriptor in self._state.providers.items():
            record = self._state.health.get(name)
            status[name] = {
                "enabled": descriptor.enabled,
                "priority": descriptor.priority,
                "healthy": self.is_provider_healthy(name),
                "last_check": record.last_checked_at.isoformat() if record else None,
                "response_time": record.latency_ms if record else None,
                "failure_kind": record.failure_kind.value if record else None,
                "error": record.error if record else None,
                "request_count": self._state.request_counts.get(name, 0),
                "models": list(descriptor.models),
                "local": descriptor.is_local,
                "cost_per_1k_tokens": descriptor.cost_per_1k_tokens,
            }
        return status

    def stats(self) -> Dict[str, Any]:
        counts = self._state.request_counts
        last_check = self._state.last_health_check
        return {
            "total_requests": sum(counts.values()),
            "healthy_providers": len(self._healthy_descriptors()),
            "total_providers": len(self._state.providers),
            "last_health_check": last_check.isoformat() if last_check else None,
            "request_distribution": dict(counts),
            "round_robin_index": self._state.round_robin_index,
        }

    def reset_stats(self) -> None:
        self._state.reset_counters()
        logger.info("router_stats_reset")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _healthy_descriptors(self) -> List[ProviderDescriptor]:
        healthy = [
            item
            for item in self._state.providers.values()
            if item.enabled and self.is_provider_healthy(item.name)
        ]
        return sorted(healthy, key=lambda item: item.priority)

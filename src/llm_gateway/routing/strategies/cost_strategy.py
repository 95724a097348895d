"""Cheapest-first balancing."""

from __future__ import annotations

from typing import Sequence

from llm_gateway.domain.models import ProviderDescriptor
from llm_gateway.routing.state import RouterState

from .base import ILoadBalancingStrategy


class CostOptimizedStrategy(ILoadBalancingStrategy):
    """Prefers the lowest ``cost_per_1k_tokens``; ties keep priority order."""

    def name(self) -> str:
        return "cost_optimized"

    def choose(
        self, candidates: Sequence[ProviderDescriptor], state: RouterState
    ) -> ProviderDescriptor:
        return min(candidates, key=lambda item: item.cost_per_1k_tokens)

"""Least-loaded balancing by recorded request count."""

from __future__ import annotations

from typing import Sequence

from llm_gateway.domain.models import ProviderDescriptor
from llm_gateway.routing.state import RouterState

from .base import ILoadBalancingStrategy


class LeastRequestsStrategy(ILoadBalancingStrategy):
    def name(self) -> str:
        return "least_requests"

    def choose(
        self, candidates: Sequence[ProviderDescriptor], state: RouterState
    ) -> ProviderDescriptor:
        # min() keeps the first of equal counts, preserving priority order.
        return min(
            candidates, key=lambda item: state.request_counts.get(item.name, 0)
        )

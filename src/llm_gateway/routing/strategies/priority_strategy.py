"""Lowest-priority-number-first balancing."""

from __future__ import annotations

from typing import Sequence

from llm_gateway.domain.models import ProviderDescriptor
from llm_gateway.routing.state import RouterState

from .base import ILoadBalancingStrategy


class PriorityStrategy(ILoadBalancingStrategy):
    """Candidates arrive priority-sorted, so the head wins."""

    def name(self) -> str:
        return "priority"

    def choose(
        self, candidates: Sequence[ProviderDescriptor], state: RouterState
    ) -> ProviderDescriptor:
        return candidates[0]

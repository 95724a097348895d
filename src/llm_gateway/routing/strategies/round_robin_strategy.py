"""Rotating balancing over the healthy set."""

from __future__ import annotations

from typing import Sequence

from llm_gateway.domain.models import ProviderDescriptor
from llm_gateway.routing.state import RouterState

from .base import ILoadBalancingStrategy


class RoundRobinStrategy(ILoadBalancingStrategy):
    """Uses the shared index in ``RouterState``; it advances on every pick."""

    def name(self) -> str:
        return "round_robin"

    def choose(
        self, candidates: Sequence[ProviderDescriptor], state: RouterState
    ) -> ProviderDescriptor:
        chosen = candidates[state.round_robin_index % len(candidates)]
        state.round_robin_index += 1
        return chosen

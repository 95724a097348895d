"""Uniform random balancing."""

from __future__ import annotations

import random
from typing import Optional, Sequence

from llm_gateway.domain.models import ProviderDescriptor
from llm_gateway.routing.state import RouterState

from .base import ILoadBalancingStrategy


class RandomStrategy(ILoadBalancingStrategy):
    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def name(self) -> str:
        return "random"

    def choose(
        self, candidates: Sequence[ProviderDescriptor], state: RouterState
    ) -> ProviderDescriptor:
        return self._rng.choice(list(candidates))

"""Load-balancing strategy protocol used among equally healthy providers."""

from __future__ import annotations

from typing import Protocol, Sequence

from llm_gateway.domain.models import ProviderDescriptor
from llm_gateway.routing.state import RouterState


class ILoadBalancingStrategy(Protocol):
    """Picks one provider from a non-empty, priority-sorted candidate list."""

    def choose(
        self, candidates: Sequence[ProviderDescriptor], state: RouterState
    ) -> ProviderDescriptor:
        """Return the chosen candidate; may update ``state`` bookkeeping."""

    def name(self) -> str:
        """Stable identifier used for configuration and logging."""

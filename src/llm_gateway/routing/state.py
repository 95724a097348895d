"""Mutable routing state shared by the health monitor and the provider router."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional

from llm_gateway.domain.models import HealthRecord, ProviderDescriptor


@dataclass
class RouterState:
    """One instance per gateway; never a module-level global.

    Reads and writes are not locked. Health flags and counters tolerate
    racing requests since they only steer best-effort balancing.
    """

    providers: Dict[str, ProviderDescriptor] = field(default_factory=dict)
    health: Dict[str, HealthRecord] = field(default_factory=dict)
    request_counts: Dict[str, int] = field(default_factory=dict)
    round_robin_index: int = 0
    last_health_check: Optional[datetime] = None

    def load_providers(self, descriptors: Iterable[ProviderDescriptor]) -> None:
        self.providers = {item.name: item for item in descriptors}
        for name in self.providers:
            self.request_counts.setdefault(name, 0)
        for name in list(self.health):
            if name not in self.providers:
                del self.health[name]

    def reset_counters(self) -> None:
        self.request_counts.clear()
        self.round_robin_index = 0

"""Domain-level interfaces defining contracts for gateway collaborators."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Protocol

import httpx

from .models import ProviderCallPayload, ProviderDescriptor


HttpClientFactory = Callable[[float], httpx.Client]
"""Builds an ``httpx.Client`` for the given timeout in seconds."""


class IProvider(Protocol):
    """Contract every provider adapter must satisfy."""

    name: str

    def complete(self, payload: ProviderCallPayload) -> Dict[str, Any]:
        """Submit a call and return the provider's raw JSON response."""

    def stream(self, payload: ProviderCallPayload) -> Iterator[Dict[str, Any]]:
        """Yield raw chunk dictionaries as the provider streams output."""

    def supports_streaming(self) -> bool:
        """Return True when the provider can stream partial outputs."""


class IProviderFactory(Protocol):
    """Builds provider adapters from registry descriptors."""

    def create(
        self,
        descriptor: ProviderDescriptor,
        *,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> IProvider:
        """Return an adapter able to call the described provider."""


class IComplexityEstimator(Protocol):
    """Produces a normalized 0-1 complexity score for prompts."""

    def estimate(self, prompt: str) -> float:
        """Return a float between 0 and 1 indicating prompt complexity."""


class IProviderConfigStore(Protocol):
    """Persists the discovered provider table."""

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None when nothing is stored."""

    def save(self, providers: Mapping[str, Mapping[str, Any]]) -> Dict[str, Any]:
        """Persist provider records and return the written document."""

    def is_stale(self) -> bool:
        """Return True when the stored table should be rediscovered."""

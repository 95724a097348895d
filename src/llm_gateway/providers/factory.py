"""Provider factory that wires HTTP clients to concrete dialect adapters."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional, Protocol, Tuple, Type

import httpx

from llm_gateway.domain.exceptions import ProviderAuthError, ProviderError
from llm_gateway.domain.interfaces import HttpClientFactory
from llm_gateway.domain.models import ProviderDescriptor
from llm_gateway.registry import catalog

from .anthropic_provider import AnthropicProvider
from .base import BaseProvider, ProviderConfig
from .google_provider import GoogleProvider
from .ollama_provider import OllamaProvider
from .openai_provider import OpenAIProvider


logger = logging.getLogger(__name__)

ProviderClass = Callable[[httpx.Client, ProviderConfig], BaseProvider]


class ICredentialSource(Protocol):
    """Resolves API keys and base URLs; the provider registry satisfies it."""

    def api_key_for(self, name: str) -> Optional[str]:
        ...

    def api_key_env_var(self, name: str) -> str:
        ...

    def base_url_for(self, name: str) -> str:
        ...


def _default_http_client_factory(timeout: float) -> httpx.Client:
    return httpx.Client(timeout=timeout)


class ProviderFactory:
    """Caches adapters per (provider, api_key, base_url, timeout, retries)."""

    def __init__(
        self,
        credentials: ICredentialSource,
        *,
        http_client_factory: Optional[HttpClientFactory] = None,
        timeout: float = 30.0,
        max_retries: int = 0,
    ) -> None:
        self._credentials = credentials
        self._http_client_factory = http_client_factory or _default_http_client_factory
        self._timeout = timeout
        self._max_retries = max_retries
        self._dialects: Dict[str, ProviderClass] = {}
        self._cache: Dict[Tuple[str, str, str, float, int], BaseProvider] = {}
        self._lock = threading.Lock()
        self._register_defaults()

    def create(
        self,
        descriptor: ProviderDescriptor,
        *,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> BaseProvider:
        name = descriptor.name
        api_key = self._credentials.api_key_for(name) or ""
        if descriptor.requires_api_key and not api_key:
            raise ProviderAuthError(
                f"API key not configured for {name}",
                context={
                    "provider": name,
                    "env_var": self._credentials.api_key_env_var(name),
                },
            )

        entry = catalog.catalog_entry(name)
        provider_cls = self._dialects.get(entry.dialect)
        if provider_cls is None:
            raise ProviderError(
                f"No adapter registered for dialect '{entry.dialect}'",
                context={"provider": name},
            )

        base_url = self._credentials.base_url_for(name)
        effective_timeout = timeout or self._timeout
        retries = self._max_retries if max_retries is None else max_retries
        cache_key = (name, api_key, base_url, effective_timeout, retries)
        with self._lock:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached
            superseded = self._evict_superseded(name, api_key, base_url)

            config = ProviderConfig(
                name=name,
                base_url=base_url,
                api_key=api_key,
                timeout=effective_timeout,
                max_retries=retries,
                chat_path=entry.chat_path,
            )
            instance = provider_cls(self._http_client_factory(effective_timeout), config)
            self._cache[cache_key] = instance
        for stale in superseded:
            stale.close()
        logger.debug(
            "provider_adapter_created",
            extra={"provider": name, "dialect": entry.dialect},
        )
        return instance

    def register_dialect(self, dialect: str, provider_class: ProviderClass) -> None:
        self._dialects[dialect] = provider_class

    def close(self) -> None:
        with self._lock:
            instances = list(self._cache.values())
            self._cache.clear()
        for instance in instances:
            instance.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _evict_superseded(
        self, name: str, api_key: str, base_url: str
    ) -> List[BaseProvider]:
        # Caller holds the lock. Entries for other timeouts with the same
        # credentials stay cached.
        stale_keys = [
            key
            for key in self._cache
            if key[0] == name and (key[1], key[2]) != (api_key, base_url)
        ]
        return [self._cache.pop(key) for key in stale_keys]

    def _register_defaults(self) -> None:
        defaults: Dict[str, Type[BaseProvider]] = {
            catalog.DIALECT_OPENAI: OpenAIProvider,
            catalog.DIALECT_ANTHROPIC: AnthropicProvider,
            catalog.DIALECT_GOOGLE: GoogleProvider,
            catalog.DIALECT_OLLAMA: OllamaProvider,
        }
        for dialect, provider_cls in defaults.items():
            self.register_dialect(dialect, provider_cls)

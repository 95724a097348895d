"""Provider registry: discovery, persistence and admin mutations."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional

import httpx

from llm_gateway.domain.exceptions import ProviderNotFoundError
from llm_gateway.domain.interfaces import HttpClientFactory, IProviderConfigStore
from llm_gateway.domain.models import ProviderDescriptor

from . import catalog


logger = logging.getLogger(__name__)

OLLAMA_VERSION_PATH = "/api/version"
OLLAMA_TAGS_PATH = "/api/tags"
LLAMACPP_HEALTH_PATH = "/health"


def _default_http_client_factory(timeout: float) -> httpx.Client:
    return httpx.Client(timeout=timeout)


class ProviderRegistry:
    """Static catalog merged with environment and local-service checks."""

    def __init__(
        self,
        store: IProviderConfigStore,
        *,
        http_client_factory: Optional[HttpClientFactory] = None,
        environ: Optional[MutableMapping[str, str]] = None,
        provider_names: Optional[Iterable[str]] = None,
        probe_timeout: float = 5.0,
    ) -> None:
        self._store = store
        self._http_client_factory = http_client_factory or _default_http_client_factory
        self._environ = environ if environ is not None else os.environ
        self._names = list(provider_names or catalog.CATALOG)
        self._probe_timeout = probe_timeout
        self._providers: Dict[str, ProviderDescriptor] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_providers(self) -> List[ProviderDescriptor]:
        """All known providers, lowest priority number first."""

        return sorted(self._providers.values(), key=lambda item: item.priority)

    def enabled_providers(self) -> List[ProviderDescriptor]:
        return [item for item in self.list_providers() if item.enabled]

    def describe(self, name: str) -> ProviderDescriptor:
        try:
            return self._providers[name]
        except KeyError as exc:
            raise ProviderNotFoundError(context={"provider": name}) from exc

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def as_mapping(self) -> Dict[str, ProviderDescriptor]:
        return dict(self._providers)

    def is_configured(self, name: str) -> bool:
        """Cloud providers need their key variable; local ones must answer a probe."""

        entry = catalog.catalog_entry(name)
        if entry.local:
            return self._probe_local(name)
        return bool(self.api_key_for(name))

    def api_key_env_var(self, name: str) -> str:
        return catalog.api_key_env_var(name)

    def api_key_for(self, name: str) -> Optional[str]:
        value = self._environ.get(self.api_key_env_var(name))
        if value:
            return value
        for alias, provider in catalog.ENV_KEY_ALIASES.items():
            if provider == name and self._environ.get(alias):
                return self._environ[alias]
        return None

    def base_url_for(self, name: str) -> str:
        override = self._environ.get(catalog.base_url_env_var(name))
        if override:
            return override.rstrip("/")
        return catalog.catalog_entry(name).base_url

    @staticmethod
    def provider_for_env_key(env_key: str) -> Optional[str]:
        return catalog.provider_for_env_key(env_key)

    # ------------------------------------------------------------------
    # Discovery and persistence
    # ------------------------------------------------------------------
    def discover(self) -> List[ProviderDescriptor]:
        """Rebuild every descriptor from the catalog and persist the result."""

        discovered: Dict[str, ProviderDescriptor] = {}
        for name in self._names:
            descriptor = self._build_descriptor(name)
            discovered[name] = descriptor
            logger.info(
                "provider_discovered",
                extra={
                    "provider": name,
                    "enabled": descriptor.enabled,
                    "models": len(descriptor.models),
                },
            )
        self._providers = discovered
        self._persist()
        return self.list_providers()

    def load(self) -> bool:
        """Populate from the store; returns False when nothing is stored."""

        document = self._store.load()
        if document is None:
            return False
        providers = document.get("providers") or {}
        self._providers = {
            name: ProviderDescriptor.from_record(name, record)
            for name, record in providers.items()
        }
        logger.info("provider_config_loaded", extra={"total": len(self._providers)})
        return True

    def should_refresh(self) -> bool:
        return self._store.is_stale()

    def ensure_loaded(self) -> List[ProviderDescriptor]:
        if self.should_refresh() or not self.load():
            return self.discover()
        return self.list_providers()

    def document(self) -> Optional[Dict[str, Any]]:
        return self._store.load()

    # ------------------------------------------------------------------
    # Admin mutations (each one is persisted)
    # ------------------------------------------------------------------
    def set_enabled(self, name: str, enabled: bool) -> ProviderDescriptor:
        return self.update(name, {"enabled": enabled})

    def set_priority(self, name: str, priority: int) -> ProviderDescriptor:
        return self.update(name, {"priority": priority})

    def update(self, name: str, fields: Mapping[str, Any]) -> ProviderDescriptor:
        current = self.describe(name)
        record = current.to_record()
        record.update(fields)
        record["last_updated"] = datetime.now(timezone.utc).isoformat()
        updated = ProviderDescriptor.from_record(name, record)
        self._providers[name] = updated
        self._persist()
        logger.info(
            "provider_updated", extra={"provider": name, "fields": sorted(fields)}
        )
        return updated

    def add_provider(
        self, name: str, api_key: str, priority: Optional[int] = None
    ) -> Optional[ProviderDescriptor]:
        """Export the key, rediscover, and apply the requested priority."""

        self._environ[self.api_key_env_var(name)] = api_key
        if name not in self._names:
            self._names.append(name)
        self.discover()
        if name not in self._providers:
            return None
        return self.set_priority(name, priority if priority is not None else 10)

    def remove(self, name: str) -> bool:
        if name not in self._providers:
            return False
        del self._providers[name]
        if name in self._names:
            self._names.remove(name)
        self._persist()
        logger.info("provider_removed", extra={"provider": name})
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _build_descriptor(self, name: str) -> ProviderDescriptor:
        entry = catalog.catalog_entry(name)
        models = self._discover_models(name) or list(entry.default_models)
        return ProviderDescriptor(
            name=name,
            enabled=self.is_configured(name),
            priority=catalog.priority_for(name),
            models=models,
            requires_api_key=entry.requires_api_key,
            local=entry.local,
            cost_per_1k_tokens=entry.cost_per_1k_tokens,
            rate_limit=entry.rate_limit,
            streaming_support=entry.streaming_support,
            capabilities=entry.capabilities,
            last_updated=datetime.now(timezone.utc),
        )

    def _discover_models(self, name: str) -> List[str]:
        if catalog.catalog_entry(name).dialect != catalog.DIALECT_OLLAMA:
            return []
        url = f"{self.base_url_for(name)}{OLLAMA_TAGS_PATH}"
        try:
            with self._http_client_factory(self._probe_timeout) as client:
                response = client.get(url)
            if response.status_code != 200:
                return []
            data = response.json()
        except (httpx.HTTPError, ValueError):
            logger.info("ollama_models_unavailable", extra={"url": url})
            return []
        return [str(item["name"]) for item in data.get("models", []) if "name" in item]

    def _probe_local(self, name: str) -> bool:
        entry = catalog.catalog_entry(name)
        path = (
            OLLAMA_VERSION_PATH
            if entry.dialect == catalog.DIALECT_OLLAMA
            else LLAMACPP_HEALTH_PATH
        )
        url = f"{self.base_url_for(name)}{path}"
        try:
            with self._http_client_factory(self._probe_timeout) as client:
                response = client.get(url)
        except httpx.HTTPError:
            logger.info("local_provider_unreachable", extra={"provider": name})
            return False
        return response.is_success

    def _persist(self) -> None:
        self._store.save(
            {name: item.to_record() for name, item in self._providers.items()}
        )

"""JSON-file persistence for the discovered provider table."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from llm_gateway import __version__
from llm_gateway.domain.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


class ProviderConfigStore:
    """Reads and writes ``providers.json`` with summary counts and a timestamp."""

    def __init__(self, path: str | Path, *, max_age_hours: float = 24) -> None:
        self._path = Path(path)
        self._max_age = timedelta(hours=max_age_hours)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[Dict[str, Any]]:
        if not self._path.exists():
            logger.info("provider_config_missing", extra={"path": str(self._path)})
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                "Provider configuration file is not valid JSON",
                context={"path": str(self._path)},
            ) from exc
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Provider configuration must be a JSON object",
                context={"path": str(self._path)},
            )
        data.setdefault("providers", {})
        return data

    def save(self, providers: Mapping[str, Mapping[str, Any]]) -> Dict[str, Any]:
        records = {name: dict(record) for name, record in providers.items()}
        document: Dict[str, Any] = {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "total_providers": len(records),
            "enabled_providers": sum(
                1 for record in records.values() if record.get("enabled")
            ),
            "providers": records,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        logger.info(
            "provider_config_saved",
            extra={"path": str(self._path), "total": document["total_providers"]},
        )
        return document

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        """True when nothing is stored or the stored table is older than the max age."""

        document = self.load()
        if document is None:
            return True
        generated_at = document.get("generated_at")
        if not generated_at:
            return True
        try:
            stamp = datetime.fromisoformat(str(generated_at).replace("Z", "+00:00"))
        except ValueError:
            return True
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        current = now or datetime.now(timezone.utc)
        return current - stamp > self._max_age


class InMemoryConfigStore:
    """Store used when no file should be touched (tests, ephemeral gateways)."""

    def __init__(self, document: Optional[Dict[str, Any]] = None) -> None:
        self._document = document

    def load(self) -> Optional[Dict[str, Any]]:
        return self._document

    def save(self, providers: Mapping[str, Mapping[str, Any]]) -> Dict[str, Any]:
        records = {name: dict(record) for name, record in providers.items()}
        self._document = {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "total_providers": len(records),
            "enabled_providers": sum(1 for r in records.values() if r.get("enabled")),
            "providers": records,
        }
        return self._document

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        return self._document is None

"""Provider key management through process environment and a ``.env`` file."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, Mapping, MutableMapping, Optional

from dotenv import dotenv_values, set_key


logger = logging.getLogger(__name__)

MASK = "••••••••"


class EnvironmentManager:
    """Reads, sets and persists ``KEY=value`` pairs; values are never logged."""

    def __init__(self, environ: MutableMapping[str, str], env_file: str | Path) -> None:
        self._environ = environ
        self._path = Path(env_file)

    @property
    def path(self) -> Path:
        return self._path

    def masked(self, keys: Iterable[str]) -> Dict[str, str]:
        return {key: MASK if self._environ.get(key) else "" for key in keys}

    def apply(self, variables: Mapping[str, Optional[str]]) -> Dict[str, str]:
        """Set every non-blank value and persist it; blank values are ignored."""

        applied = {
            key: str(value).strip()
            for key, value in variables.items()
            if value is not None and str(value).strip()
        }
        self._environ.update(applied)
        self.write(applied)
        logger.info("environment_updated", extra={"keys": sorted(applied)})
        return applied

    def write(self, variables: Mapping[str, str]) -> None:
        """Update or append each key, leaving the file's other lines intact."""

        if not variables:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        for key, value in variables.items():
            set_key(self._path, key, value)

    def read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        # Keys declared without a value parse as None.
        values = dotenv_values(self._path, interpolate=False)
        return {key: value for key, value in values.items() if value is not None}

    @contextmanager
    def temporarily(self, key: str, value: str) -> Iterator[None]:
        """Set ``key`` for the duration of the block, then restore it."""

        original = self._environ.get(key)
        self._environ[key] = value
        try:
            yield
        finally:
            if original:
                self._environ[key] = original
            else:
                self._environ.pop(key, None)

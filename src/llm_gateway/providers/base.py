"""Provider abstractions and shared behavior implementations."""

from __future__ import annotations

import json
import logging
import math
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional

import httpx

from llm_gateway.domain.exceptions import (
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitError,
    ProviderUnavailableError,
)
from llm_gateway.domain.models import ProviderCallPayload


@dataclass(frozen=True)
class ProviderConfig:
    """Configuration values shared by all provider adapters.

    ``api_key`` may be empty for local providers that take no credentials.
    """

    name: str
    base_url: str
    api_key: str = ""
    timeout: float = 30.0
    max_retries: int = 0
    backoff_factor: float = 0.5
    chat_path: str = "/chat/completions"

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name must be provided")
        if not self.base_url:
            raise ValueError("base_url must be provided")
        if self.timeout <= 0:
            raise ValueError("timeout must be greater than zero")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.backoff_factor <= 0:
            raise ValueError("backoff_factor must be greater than zero")

    def url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}{path}"


class BaseProvider(ABC):
    """Template-method base class that handles retries, logging and HTTP errors.

    Subclasses implement ``_make_api_call`` and ``_stream_api_call`` for their
    wire dialect. Completions are retried with exponential backoff on rate
    limits and unavailability; streams are attempted once.
    """

    def __init__(
        self,
        http_client: httpx.Client,
        config: ProviderConfig,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.name = config.name
        self._http = http_client
        self.logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}"
        )

    def complete(self, payload: ProviderCallPayload) -> Dict[str, Any]:
        return self.execute_request(payload)

    def stream(self, payload: ProviderCallPayload) -> Iterator[Dict[str, Any]]:
        self.log_request(payload, 0)
        return self._stream_api_call(payload)

    def supports_streaming(self) -> bool:
        return True

    def close(self) -> None:
        self._http.close()

    def execute_request(self, payload: ProviderCallPayload) -> Dict[str, Any]:
        """Run the call with retry/backoff when transient errors occur."""

        for attempt in range(self.config.max_retries + 1):
            self.log_request(payload, attempt)
            try:
                data = self._make_api_call(payload)
                self.log_response(payload, data)
                return data
            except ProviderRateLimitError as exc:
                if attempt == self.config.max_retries:
                    raise
                delay = self._backoff_delay(attempt)
                self.handle_rate_limit(exc, delay)
                self._sleep(delay)
            except ProviderUnavailableError as exc:
                if attempt == self.config.max_retries:
                    raise
                delay = self._backoff_delay(attempt)
                self.logger.warning(
                    "provider_unavailable_backoff",
                    extra={"provider": self.name, "delay": delay, "error": str(exc)},
                )
                self._sleep(delay)
            except ProviderError:
                raise
            except Exception as exc:
                self.logger.exception("provider_unexpected_failure")
                raise ProviderError(
                    "Unexpected provider failure", context={"provider": self.name}
                ) from exc

        raise ProviderError("Failed to execute request", context={"provider": self.name})

    @abstractmethod
    def _make_api_call(self, payload: ProviderCallPayload) -> Dict[str, Any]:
        """Dialect-specific completion call returning a JSON dict."""

    @abstractmethod
    def _stream_api_call(self, payload: ProviderCallPayload) -> Iterator[Dict[str, Any]]:
        """Dialect-specific streaming call yielding chunk dicts."""

    def log_request(self, payload: ProviderCallPayload, attempt: int) -> None:
        self.logger.debug(
            "provider_request",
            extra={
                "provider": self.name,
                "model": payload.model,
                "max_tokens": payload.max_tokens,
                "stream": payload.stream,
                "attempt": attempt,
            },
        )

    def log_response(self, payload: ProviderCallPayload, data: Mapping[str, Any]) -> None:
        self.logger.debug(
            "provider_response",
            extra={
                "provider": self.name,
                "model": payload.model,
                "usage": data.get("usage"),
            },
        )

    def handle_rate_limit(self, error: ProviderRateLimitError, delay: float) -> None:
        self.logger.warning(
            "provider_rate_limited",
            extra={"provider": self.name, "delay": delay, "context": error.context},
        )

    # ------------------------------------------------------------------
    # HTTP helpers shared by the dialects
    # ------------------------------------------------------------------
    def _post_json(
        self, url: str, body: Mapping[str, Any], headers: Mapping[str, str]
    ) -> Dict[str, Any]:
        try:
            response = self._http.post(
                url, json=body, headers=dict(headers), timeout=self.config.timeout
            )
        except httpx.TimeoutException as exc:
            raise ProviderUnavailableError(
                f"{self.name} request timed out", context={"provider": self.name}
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderUnavailableError(
                f"{self.name} unreachable: {exc}", context={"provider": self.name}
            ) from exc

        self._raise_for_status(response)
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"Malformed {self.name} response", context={"provider": self.name}
            ) from exc
        if not isinstance(data, dict):
            raise ProviderError(
                f"Malformed {self.name} response", context={"provider": self.name}
            )
        return data

    @contextmanager
    def _open_stream(
        self, url: str, body: Mapping[str, Any], headers: Mapping[str, str]
    ) -> Iterator[httpx.Response]:
        try:
            with self._http.stream(
                "POST", url, json=body, headers=dict(headers), timeout=self.config.timeout
            ) as response:
                if response.status_code >= 400:
                    response.read()
                    self._raise_for_status(response)
                yield response
        except httpx.TimeoutException as exc:
            raise ProviderUnavailableError(
                f"{self.name} stream timed out", context={"provider": self.name}
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderUnavailableError(
                f"{self.name} unreachable: {exc}", context={"provider": self.name}
            ) from exc

    def _iter_sse_data(
        self, url: str, body: Mapping[str, Any], headers: Mapping[str, str]
    ) -> Iterator[Dict[str, Any]]:
        """Yield decoded ``data:`` payloads until the ``[DONE]`` sentinel."""

        with self._open_stream(url, body, headers) as response:
            for line in response.iter_lines():
                if not line.startswith("data:"):
                    continue
                data = line[len("data:") :].strip()
                if not data:
                    continue
                if data == "[DONE]":
                    return
                try:
                    yield json.loads(data)
                except ValueError:
                    self.logger.debug(
                        "provider_stream_skip", extra={"provider": self.name}
                    )

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        message = self._error_message(response)
        context = {"provider": self.name, "status_code": status}
        if status in (401, 403):
            raise ProviderAuthError(message, context=context)
        if status == 429:
            raise ProviderRateLimitError(message, context=context)
        if status == 404 or status >= 500:
            raise ProviderUnavailableError(message, context=context)
        raise ProviderError(message, context=context)

    def _error_message(self, response: httpx.Response) -> str:
        fallback = f"{self.name} request failed with status {response.status_code}"
        try:
            data = response.json()
        except ValueError:
            return response.text[:200] or fallback
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            return str(error.get("message") or fallback)
        if isinstance(error, str):
            return error
        return fallback

    def _backoff_delay(self, attempt: int) -> float:
        return self.config.backoff_factor * math.pow(2, attempt)

    def _sleep(self, delay: float) -> None:
        time.sleep(delay)

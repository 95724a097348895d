"""Middleware wrapped around every outbound provider call."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from llm_gateway.domain.models import ProviderCallPayload


@dataclass
class ProviderCall:
    """One outbound call as seen by the middleware chain."""

    request_id: str
    provider: str
    payload: ProviderCallPayload
    started_at: float = field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)


@dataclass
class ProviderResult:
    call: ProviderCall
    data: Dict[str, Any]
    duration_ms: int


class IMiddleware(Protocol):
    """Protocol describing middleware hooks."""

    def process_request(self, call: ProviderCall) -> ProviderCall: ...

    def process_response(self, result: ProviderResult) -> ProviderResult: ...

    def process_error(self, call: ProviderCall, error: Exception) -> None: ...


class LoggingMiddleware(IMiddleware):
    """Logs outbound calls and their outcome."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def process_request(self, call: ProviderCall) -> ProviderCall:
        self._logger.info(
            "provider_call",
            extra={
                "request_id": call.request_id,
                "provider": call.provider,
                "model": call.payload.model,
                "max_tokens": call.payload.max_tokens,
            },
        )
        return call

    def process_response(self, result: ProviderResult) -> ProviderResult:
        self._logger.info(
            "provider_call_completed",
            extra={
                "request_id": result.call.request_id,
                "provider": result.call.provider,
                "duration_ms": result.duration_ms,
            },
        )
        return result

    def process_error(self, call: ProviderCall, error: Exception) -> None:
        self._logger.warning(
            "provider_call_failed",
            extra={
                "request_id": call.request_id,
                "provider": call.provider,
                "duration_ms": call.elapsed_ms(),
                "error": str(error),
            },
        )


class RequestLogMiddleware(IMiddleware):
    """Keeps the most recent ``max_entries`` call outcomes, oldest evicted first."""

    def __init__(self, max_entries: int = 1000) -> None:
        self._max_entries = max_entries
        self._entries: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    def process_request(self, call: ProviderCall) -> ProviderCall:
        return call

    def process_response(self, result: ProviderResult) -> ProviderResult:
        self.record(
            result.call.request_id, result.call.provider, result.duration_ms, True
        )
        return result

    def process_error(self, call: ProviderCall, error: Exception) -> None:
        self.record(call.request_id, call.provider, call.elapsed_ms(), False, str(error))

    def record(
        self,
        request_id: str,
        provider: str,
        duration_ms: int,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        with self._lock:
            self._entries.pop(request_id, None)
            self._entries[request_id] = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "provider": provider,
                "duration": duration_ms,
                "success": success,
                "error": error,
            }
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def entries(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                {"request_id": request_id, **entry}
                for request_id, entry in self._entries.items()
            ]

    def __len__(self) -> int:
        return len(self._entries)


class MiddlewareChain:
    """Applies middleware around a handler using chain of responsibility."""

    def __init__(self, middlewares: Sequence[IMiddleware]) -> None:
        self._middlewares = list(middlewares)

    def execute(
        self, call: ProviderCall, handler: Callable[[ProviderCall], Dict[str, Any]]
    ) -> ProviderResult:
        for middleware in self._middlewares:
            call = middleware.process_request(call)

        try:
            data = handler(call)
        except Exception as exc:
            for middleware in reversed(self._middlewares):
                middleware.process_error(call, exc)
            raise

        result = ProviderResult(call=call, data=data, duration_ms=call.elapsed_ms())
        for middleware in reversed(self._middlewares):
            result = middleware.process_response(result)

        return result

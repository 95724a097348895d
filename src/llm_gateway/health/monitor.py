"""Periodic provider health probing."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Dict, Optional

from llm_gateway.domain.exceptions import ProviderNotFoundError
from llm_gateway.domain.interfaces import IProviderFactory
from llm_gateway.domain.models import (
    FailureKind,
    HealthRecord,
    ProviderCallPayload,
    ProviderDescriptor,
)
from llm_gateway.routing.state import RouterState

from .classifier import classify_exception


logger = logging.getLogger(__name__)

PING_MESSAGE = "ping"
PING_MAX_TOKENS = 5


class HealthMonitor:
    """Probes enabled providers with a tiny completion and records the outcome.

    Checks run sequentially, so one hanging provider delays the rest of the
    cycle by at most its own call timeout. ``start`` hands every cycle,
    including the optional immediate one, to a daemon thread that repeats
    until ``stop`` is called.
    """

    def __init__(
        self,
        state: RouterState,
        provider_factory: IProviderFactory,
        *,
        interval_seconds: float = 30.0,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._state = state
        self._factory = provider_factory
        self._interval = interval_seconds
        self._timeout = timeout_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def check_one(self, name: str) -> HealthRecord:
        descriptor = self._state.providers.get(name)
        if descriptor is None:
            raise ProviderNotFoundError(context={"provider": name})

        started = time.perf_counter()
        try:
            provider = self._factory.create(
                descriptor, timeout=self._timeout, max_retries=0
            )
            provider.complete(self._ping_payload(descriptor))
        except Exception as exc:
            kind = classify_exception(exc)
            record = HealthRecord(healthy=False, failure_kind=kind, error=str(exc))
            logger.warning(
                "provider_unhealthy",
                extra={"provider": name, "failure_kind": kind.value, "error": str(exc)},
            )
        else:
            latency_ms = int((time.perf_counter() - started) * 1000)
            record = HealthRecord(
                healthy=True, latency_ms=latency_ms, failure_kind=FailureKind.NONE
            )
            logger.info(
                "provider_healthy", extra={"provider": name, "latency_ms": latency_ms}
            )

        self._state.health[name] = record
        return record

    def check_all(self) -> Dict[str, HealthRecord]:
        enabled = [
            name for name, item in self._state.providers.items() if item.enabled
        ]
        logger.info("health_check_cycle", extra={"providers": len(enabled)})
        results: Dict[str, HealthRecord] = {}
        for name in enabled:
            results[name] = self.check_one(name)
        self._state.last_health_check = datetime.now(timezone.utc)
        return results

    def start(self, *, run_immediately: bool = True) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(run_immediately,),
            name="llm-gateway-health",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run(self, run_immediately: bool) -> None:
        if run_immediately:
            self._run_cycle()
        while not self._stop_event.wait(self._interval):
            self._run_cycle()

    def _run_cycle(self) -> None:
        try:
            self.check_all()
        except Exception:
            logger.exception("health_check_cycle_failed")

    @staticmethod
    def _ping_payload(descriptor: ProviderDescriptor) -> ProviderCallPayload:
        model = descriptor.models[0] if descriptor.models else "default"
        return ProviderCallPayload(
            model=model,
            messages=({"role": "user", "content": PING_MESSAGE},),
            max_tokens=PING_MAX_TOKENS,
        )

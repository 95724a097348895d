import threading
import time

import httpx
import pytest

from llm_gateway.domain.exceptions import (
    ProviderAuthError,
    ProviderError,
    ProviderNotFoundError,
    ProviderRateLimitError,
    ProviderUnavailableError,
)
from llm_gateway.domain.models import FailureKind, ProviderDescriptor
from llm_gateway.health.classifier import classify, classify_exception
from llm_gateway.health.monitor import HealthMonitor
from llm_gateway.routing.state import RouterState


class _PingAdapter:
    def __init__(self, error=None):
        self.error = error
        self.payloads = []

    def complete(self, payload):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return {"choices": [{"message": {"content": "pong"}}]}


class _FactoryStub:
    def __init__(self, adapters):
        self.adapters = adapters
        self.calls = []

    def create(self, descriptor, *, timeout=None, max_retries=None):
        self.calls.append((descriptor.name, timeout, max_retries))
        adapter = self.adapters[descriptor.name]
        if isinstance(adapter, Exception):
            raise adapter
        return adapter


def _state(*descriptors):
    state = RouterState()
    state.load_providers(descriptors)
    return state


@pytest.mark.parametrize(
    "status,message,expected",
    [
        (401, "", FailureKind.NO_API_KEY),
        (403, "", FailureKind.NO_API_KEY),
        (404, "", FailureKind.UNREACHABLE),
        (429, "invalid api key", FailureKind.RATE_LIMITED),
        (None, "Invalid API key provided", FailureKind.NO_API_KEY),
        (None, "connect ECONNREFUSED 127.0.0.1:11434", FailureKind.UNREACHABLE),
        (None, "Request timed out", FailureKind.UNREACHABLE),
        (None, "Too Many Requests", FailureKind.RATE_LIMITED),
        (500, "internal failure", FailureKind.OTHER_ERROR),
        (None, "", FailureKind.OTHER_ERROR),
    ],
)
def test_classify_rules(status, message, expected):
    assert classify(status, message) is expected


def test_classify_exception_uses_error_types_and_causes():
    unreachable = ProviderUnavailableError("ollama unreachable")
    unreachable.__cause__ = httpx.ConnectError("refused")

    assert classify_exception(ProviderAuthError()) is FailureKind.NO_API_KEY
    assert classify_exception(ProviderRateLimitError()) is FailureKind.RATE_LIMITED
    assert classify_exception(unreachable) is FailureKind.UNREACHABLE
    assert (
        classify_exception(ProviderError("gone", context={"status_code": 404}))
        is FailureKind.UNREACHABLE
    )
    assert classify_exception(RuntimeError("boom")) is FailureKind.OTHER_ERROR


def test_check_one_records_success_with_latency():
    state = _state(ProviderDescriptor(name="openai", enabled=True, models=["gpt-4"]))
    adapter = _PingAdapter()
    monitor = HealthMonitor(state, _FactoryStub({"openai": adapter}), timeout_seconds=3)

    record = monitor.check_one("openai")

    assert record.healthy
    assert record.failure_kind is FailureKind.NONE
    assert record.latency_ms is not None
    assert state.health["openai"] is record
    ping = adapter.payloads[0]
    assert ping.model == "gpt-4"
    assert ping.max_tokens == 5
    assert ping.messages[0]["content"] == "ping"


def test_check_one_pings_without_retries_and_with_check_timeout():
    state = _state(ProviderDescriptor(name="openai", enabled=True))
    factory = _FactoryStub({"openai": _PingAdapter()})

    HealthMonitor(state, factory, timeout_seconds=3).check_one("openai")

    assert factory.calls == [("openai", 3, 0)]


def test_check_one_classifies_failures():
    state = _state(
        ProviderDescriptor(name="nokey", enabled=True),
        ProviderDescriptor(name="busy", enabled=True),
    )
    factory = _FactoryStub(
        {
            "nokey": ProviderAuthError("API key not configured for nokey"),
            "busy": _PingAdapter(ProviderRateLimitError()),
        }
    )
    monitor = HealthMonitor(state, factory)

    assert monitor.check_one("nokey").failure_kind is FailureKind.NO_API_KEY
    busy = monitor.check_one("busy")
    assert not busy.healthy
    assert busy.failure_kind is FailureKind.RATE_LIMITED


def test_check_one_unknown_provider_raises():
    monitor = HealthMonitor(_state(), _FactoryStub({}))

    with pytest.raises(ProviderNotFoundError):
        monitor.check_one("ghost")


def test_check_all_only_checks_enabled_providers():
    state = _state(
        ProviderDescriptor(name="on", enabled=True),
        ProviderDescriptor(name="off", enabled=False),
    )
    factory = _FactoryStub({"on": _PingAdapter(), "off": _PingAdapter()})
    monitor = HealthMonitor(state, factory)

    results = monitor.check_all()

    assert list(results) == ["on"]
    assert "off" not in state.health
    assert state.last_health_check is not None


class _BlockingAdapter(_PingAdapter):
    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def complete(self, payload):
        self.release.wait(5)
        return super().complete(payload)


def test_start_returns_before_the_first_cycle_finishes():
    state = _state(ProviderDescriptor(name="on", enabled=True))
    adapter = _BlockingAdapter()
    monitor = HealthMonitor(state, _FactoryStub({"on": adapter}), interval_seconds=60)

    monitor.start(run_immediately=True)
    try:
        assert monitor.running
        assert "on" not in state.health

        adapter.release.set()
        deadline = time.monotonic() + 5
        while state.last_health_check is None and time.monotonic() < deadline:
            time.sleep(0.01)

        assert state.health["on"].healthy
    finally:
        monitor.stop(timeout=1)

    assert not monitor.running


def test_start_without_immediate_cycle_waits_for_the_interval():
    state = _state(ProviderDescriptor(name="on", enabled=True))
    adapter = _PingAdapter()
    monitor = HealthMonitor(state, _FactoryStub({"on": adapter}), interval_seconds=60)

    monitor.start(run_immediately=False)
    monitor.stop(timeout=1)

    assert adapter.payloads == []
    assert not monitor.running

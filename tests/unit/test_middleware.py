from typing import List

import pytest

from llm_gateway.core.middleware import (
    LoggingMiddleware,
    MiddlewareChain,
    ProviderCall,
    RequestLogMiddleware,
)
from llm_gateway.domain.models import ProviderCallPayload


class _FakeLogger:
    def __init__(self):
        self.messages: List[str] = []

    def info(self, msg, *_, **__):
        self.messages.append(msg)

    def warning(self, msg, *_, **__):
        self.messages.append(msg)


class _RecordingMiddleware:
    def __init__(self, name: str, log: List[str]):
        self.name = name
        self.log = log

    def process_request(self, call):
        self.log.append(f"req:{self.name}")
        return call

    def process_response(self, result):
        self.log.append(f"res:{self.name}")
        return result

    def process_error(self, call, error):
        self.log.append(f"err:{self.name}")


def _call(request_id: str = "req-1", provider: str = "openai") -> ProviderCall:
    payload = ProviderCallPayload(
        model="gpt-4", messages=({"role": "user", "content": "hi"},), max_tokens=16
    )
    return ProviderCall(request_id=request_id, provider=provider, payload=payload)


def test_middleware_chain_runs_in_order():
    log: List[str] = []
    chain = MiddlewareChain(
        [_RecordingMiddleware("a", log), _RecordingMiddleware("b", log)]
    )

    def handler(call):
        log.append("handler")
        return {"text": "ok"}

    result = chain.execute(_call(), handler)

    assert log == ["req:a", "req:b", "handler", "res:b", "res:a"]
    assert result.data == {"text": "ok"}
    assert result.duration_ms >= 0


def test_middleware_chain_reports_errors_in_reverse_and_reraises():
    log: List[str] = []
    chain = MiddlewareChain(
        [_RecordingMiddleware("a", log), _RecordingMiddleware("b", log)]
    )

    def handler(call):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        chain.execute(_call(), handler)

    assert log == ["req:a", "req:b", "err:b", "err:a"]


def test_logging_middleware_logs_event_names():
    fake_logger = _FakeLogger()
    middleware = LoggingMiddleware(logger=fake_logger)  # type: ignore[arg-type]
    chain = MiddlewareChain([middleware])

    chain.execute(_call(), lambda call: {"text": "ok"})
    with pytest.raises(ValueError):
        chain.execute(_call(), lambda call: (_ for _ in ()).throw(ValueError("bad")))

    assert fake_logger.messages == [
        "provider_call",
        "provider_call_completed",
        "provider_call",
        "provider_call_failed",
    ]


def test_request_log_records_successes_and_failures():
    request_log = RequestLogMiddleware()
    chain = MiddlewareChain([request_log])

    chain.execute(_call("ok-1"), lambda call: {"text": "ok"})
    with pytest.raises(RuntimeError):
        chain.execute(_call("bad-1"), lambda call: (_ for _ in ()).throw(RuntimeError("x")))

    entries = request_log.entries()
    assert [entry["request_id"] for entry in entries] == ["ok-1", "bad-1"]
    assert entries[0]["success"] is True
    assert entries[0]["error"] is None
    assert entries[1]["success"] is False
    assert entries[1]["error"] == "x"


def test_request_log_evicts_oldest_first():
    request_log = RequestLogMiddleware(max_entries=3)

    for index in range(5):
        request_log.record(f"req-{index}", "openai", 10, True)

    assert len(request_log) == 3
    assert [entry["request_id"] for entry in request_log.entries()] == [
        "req-2",
        "req-3",
        "req-4",
    ]


def test_request_log_rerecording_moves_entry_to_newest():
    request_log = RequestLogMiddleware(max_entries=2)
    request_log.record("a", "openai", 10, True)
    request_log.record("b", "openai", 10, True)

    request_log.record("a", "openai", 20, False, "retry failed")
    request_log.record("c", "openai", 10, True)

    assert [entry["request_id"] for entry in request_log.entries()] == ["a", "c"]

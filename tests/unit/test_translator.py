import json

import pytest

from llm_gateway.domain.exceptions import TranslationError
from llm_gateway.translation.extractors import (
    EXTRACTION_FAILED,
    extract_content,
    extract_usage,
)
from llm_gateway.translation.translator import (
    FormatTranslator,
    request_preferences,
    sse_event,
)


@pytest.fixture
def translator() -> FormatTranslator:
    return FormatTranslator()


def _request(**overrides):
    body = {
        "model": "claude-3-sonnet",
        "messages": [{"role": "user", "content": "Hello"}],
        "max_tokens": 50,
    }
    body.update(overrides)
    return body


def _parse_event(event: str):
    assert event.startswith("data: ") and event.endswith("\n\n")
    return json.loads(event[len("data: ") : -2])


def test_valid_request_has_no_errors(translator):
    assert translator.validate(_request()) == []
    assert translator.validate(_request(temperature=0, top_p=1, max_tokens=8192)) == []


def test_missing_or_empty_messages_are_reported(translator):
    missing = translator.validate({"model": "claude-3-sonnet"})
    empty = translator.validate(_request(messages=[]))

    assert any("messages" in error for error in missing)
    assert any("messages" in error for error in empty)


def test_every_violation_is_collected(translator):
    errors = translator.validate(
        {
            "messages": [{"role": "bot", "content": "x"}, {"role": "user"}],
            "max_tokens": 0,
            "temperature": 3,
            "top_p": -0.1,
        }
    )

    assert errors == [
        "message 0 has invalid role: bot",
        "message 1 is missing content",
        "max_tokens must be between 1 and 8192",
        "temperature must be between 0 and 2",
        "top_p must be between 0 and 1",
    ]


def test_non_numeric_sampling_values_are_rejected(translator):
    errors = translator.validate(_request(max_tokens=True, temperature="hot"))

    assert errors == [
        "max_tokens must be an integer between 1 and 8192",
        "temperature must be a number between 0 and 2",
    ]


def test_to_provider_format_builds_payload(translator):
    request = _request(
        system="Be brief",
        messages=[
            {"role": "user", "content": "Hello"},
            {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "first"},
                    {"type": "image", "source": {}},
                    {"type": "text", "text": "second"},
                ],
            },
            {"role": "user", "content": 42},
        ],
        temperature=0,
        stop_sequences=[],
    )

    payload = translator.to_provider_format(request, "openai")

    assert payload.model == "gpt-4"
    assert payload.messages == (
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "Hello"},
        {"role": "assistant", "content": "first\nsecond"},
        {"role": "user", "content": ""},
    )
    assert payload.temperature == 0
    assert payload.top_p is None
    assert payload.stop is None
    assert payload.max_tokens == payload.token_allocation.tokens


def test_system_is_prepended_even_when_messages_hold_one(translator):
    request = _request(
        system="outer",
        messages=[
            {"role": "system", "content": "inner"},
            {"role": "user", "content": "Hello"},
        ],
    )

    payload = translator.to_provider_format(request, "openai")

    assert [message["content"] for message in payload.messages] == [
        "outer",
        "inner",
        "Hello",
    ]


def test_optional_sampling_fields_are_forwarded(translator):
    payload = translator.to_provider_format(
        _request(top_p=0.5, stop_sequences=["END"], stream=True), "openai"
    )

    assert payload.top_p == 0.5
    assert payload.stop == ("END",)
    assert payload.stream is True
    assert payload.temperature == 0.7


@pytest.mark.parametrize(
    "alias,provider,explicit,expected",
    [
        ("claude-3-haiku", "google", None, "gemini-flash"),
        ("claude-3-sonnet", "deepseek", None, "deepseek-chat"),
        ("claude-3-sonnet", "acme", None, "gpt-3.5-turbo"),
        (None, "anthropic", None, "claude-3-sonnet"),
        ("claude-3-opus", "openai", "gpt-4o", "gpt-4o"),
    ],
)
def test_model_resolution(translator, alias, provider, explicit, expected):
    request = _request(model=alias) if alias else {"messages": [{"role": "user", "content": "x"}]}

    payload = translator.to_provider_format(request, provider, explicit)

    assert payload.model == expected


def test_conversion_failures_raise_translation_error(translator):
    with pytest.raises(TranslationError):
        translator.to_provider_format({"messages": ["not-a-message"]}, "openai")


def test_round_trip_preserves_order_and_text(translator):
    request = _request(
        messages=[
            {"role": "user", "content": "one"},
            {"role": "assistant", "content": "two"},
            {"role": "user", "content": "three"},
        ]
    )
    payload = translator.to_provider_format(request, "openai")
    provider_response = {
        "choices": [
            {"message": {"content": payload.messages[-1]["content"]}, "finish_reason": "stop"}
        ],
        "usage": {"prompt_tokens": 9, "completion_tokens": 1},
    }

    response = translator.from_provider_format(provider_response, "openai", "req-1")

    assert [message["content"] for message in payload.messages] == ["one", "two", "three"]
    assert response.id == "req-1"
    assert response.content == [{"type": "text", "text": "three"}]
    assert response.stop_reason == "end_turn"
    assert response.usage.input_tokens == 9
    assert response.model == "openai-model"


def test_response_model_prefers_provider_then_payload_model(translator):
    with_model = translator.from_provider_format({"text": "x", "model": "m1"}, "openai")
    payload_model = translator.from_provider_format({"text": "x"}, "openai", model="m2")

    assert with_model.model == "m1"
    assert payload_model.model == "m2"
    assert with_model.id.startswith("msg_")


@pytest.mark.parametrize(
    "response,expected",
    [
        ({"results": "r", "content": "c"}, "r"),
        ({"content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]}, "a\nb"),
        ({"message": {"content": "m"}, "choices": [{"text": "t"}]}, "m"),
        ({"choices": [{"message": {"content": "c"}}], "text": "t"}, "c"),
        ({"choices": [{"text": "legacy"}]}, "legacy"),
        ({"text": "t", "response": "r"}, "t"),
        ({"response": "ollama"}, "ollama"),
        ({}, EXTRACTION_FAILED),
    ],
)
def test_content_extraction_order(response, expected):
    assert extract_content(response) == expected


def test_usage_accepts_both_naming_styles_and_estimates_otherwise():
    assert extract_usage({"usage": {"input_tokens": 3, "output_tokens": 4}}, "") == {
        "input_tokens": 3,
        "output_tokens": 4,
    }
    assert extract_usage({}, "abcdefghi") == {"input_tokens": 0, "output_tokens": 3}


@pytest.mark.parametrize(
    "response",
    [
        {"text": "hi", "usage": {"prompt_tokens": "lots", "completion_tokens": None}},
        {"text": "hi", "usage": {"input_tokens": [1], "output_tokens": -4}},
        {"text": "hi", "finish_reason": ["stop"]},
        {"text": "hi", "choices": {"finish_reason": "stop"}},
        {"text": "hi", "stop_reason": {"kind": "max_tokens"}, "model": {"id": 1}},
    ],
)
def test_malformed_upstream_fields_never_break_conversion(translator, response):
    converted = translator.from_provider_format(response, "openai")

    assert converted.content == [{"type": "text", "text": "hi"}]
    assert converted.stop_reason == "end_turn"
    assert converted.model == "openai-model"
    assert converted.usage.input_tokens == 0
    assert converted.usage.output_tokens >= 0


@pytest.mark.parametrize(
    "response,expected",
    [
        ({"finish_reason": "length"}, "max_tokens"),
        ({"choices": [{"finish_reason": "content_filter"}]}, "stop_sequence"),
        ({"choices": [{"finish_reason": "function_call"}]}, "tool_use"),
        ({"finish_reason": "mystery"}, "end_turn"),
        ({"stop_reason": "max_tokens"}, "max_tokens"),
        ({}, "end_turn"),
    ],
)
def test_stop_reason_mapping(response, expected):
    assert FormatTranslator.map_stop_reason(response) == expected


@pytest.mark.parametrize(
    "chunk,text",
    [
        ({"choices": [{"delta": {"content": "Hi"}}]}, "Hi"),
        ({"choices": [{"delta": {}}]}, ""),
        ({"content": "ollama"}, "ollama"),
        ({"text": "gemini"}, "gemini"),
        ({}, ""),
    ],
)
def test_stream_chunks_become_content_deltas(translator, chunk, text):
    event = _parse_event(translator.convert_stream_chunk(chunk, "openai"))

    assert event == {
        "type": "content_block_delta",
        "index": 0,
        "delta": {"type": "text_delta", "text": text},
    }


def test_broken_stream_chunk_becomes_error_event(translator):
    event = _parse_event(
        translator.convert_stream_chunk({"choices": [{"delta": "oops"}]}, "openai")
    )

    assert event["type"] == "error"


def test_sse_event_keeps_sentinel_and_unicode():
    assert sse_event("[DONE]") == "data: [DONE]\n\n"
    assert "你好" in sse_event({"text": "你好"})


def test_chat_completions_body_is_repackaged():
    canonical = FormatTranslator.chat_completions_to_canonical(
        {"messages": [{"role": "user", "content": "hi"}]}
    )

    assert canonical == {
        "model": "claude-3-sonnet",
        "messages": [{"role": "user", "content": "hi"}],
        "max_tokens": 1000,
        "temperature": 0.7,
        "stream": False,
    }


def test_request_preferences_default_to_quality():
    assert request_preferences({}).prioritize_quality
    assert not request_preferences({"prioritize_quality": False}).prioritize_quality
    assert request_preferences({"prioritize_cost": True}).prioritize_cost


def test_user_input_extraction(translator):
    request = _request(
        system="sys",
        messages=[
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "ignored"},
            {"role": "user", "content": [{"type": "text", "text": "last"}]},
        ],
    )

    assert translator.extract_user_input(request) == "sys first last"
    assert FormatTranslator.last_user_text(request) == "last"


def test_model_catalog_helpers(translator):
    assert translator.supported_models() == [
        "claude-3-sonnet",
        "claude-3-haiku",
        "claude-3-opus",
    ]
    assert translator.provider_models("anthropic")["claude-3-opus"] == "claude-3-opus"
    assert translator.model_targets("claude-3-haiku")["openai"] == "gpt-3.5-turbo"
    assert translator.model_targets("unknown") == {}

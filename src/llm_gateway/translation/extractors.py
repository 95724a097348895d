"""Ordered content and usage extraction from heterogeneous provider replies."""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

EXTRACTION_FAILED = "Unable to extract response content"

ContentExtractor = Callable[[Mapping[str, Any]], Optional[str]]


def flatten_text_blocks(content: Any) -> str:
    """Newline-join the ``text`` blocks of a typed content list."""

    if isinstance(content, str):
        return content
    if isinstance(content, (list, tuple)):
        return "\n".join(
            str(block.get("text", ""))
            for block in content
            if isinstance(block, Mapping) and block.get("type") == "text"
        )
    return ""


def _from_results(response: Mapping[str, Any]) -> Optional[str]:
    value = response.get("results")
    return None if value is None else _as_text(value)


def _from_content(response: Mapping[str, Any]) -> Optional[str]:
    value = response.get("content")
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return flatten_text_blocks(value)
    return _as_text(value)


def _from_message(response: Mapping[str, Any]) -> Optional[str]:
    value = response.get("message")
    if value is None:
        return None
    if isinstance(value, Mapping):
        return _as_text(value.get("content", ""))
    return _as_text(value)


def _from_choices(response: Mapping[str, Any]) -> Optional[str]:
    choices = response.get("choices")
    if not choices:
        return None
    first = choices[0] if isinstance(choices[0], Mapping) else {}
    message = first.get("message") if isinstance(first.get("message"), Mapping) else {}
    return _as_text(message.get("content") or first.get("text") or "")


def _from_text(response: Mapping[str, Any]) -> Optional[str]:
    value = response.get("text")
    return None if value is None else _as_text(value)


def _from_response(response: Mapping[str, Any]) -> Optional[str]:
    value = response.get("response")
    return None if value is None else _as_text(value)


CONTENT_EXTRACTORS: Sequence[ContentExtractor] = (
    _from_results,
    _from_content,
    _from_message,
    _from_choices,
    _from_text,
    _from_response,
)


def extract_content(
    response: Mapping[str, Any],
    extractors: Sequence[ContentExtractor] = CONTENT_EXTRACTORS,
) -> str:
    """First extractor returning a value wins; never raises."""

    for extractor in extractors:
        try:
            value = extractor(response)
        except (AttributeError, IndexError, KeyError, TypeError):
            continue
        if value is not None:
            return value
    return EXTRACTION_FAILED


def _token_count(value: Any) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


def extract_usage(response: Mapping[str, Any], content: str) -> Dict[str, int]:
    usage = response.get("usage")
    if isinstance(usage, Mapping):
        return {
            "input_tokens": _token_count(
                usage.get("prompt_tokens") or usage.get("input_tokens")
            ),
            "output_tokens": _token_count(
                usage.get("completion_tokens") or usage.get("output_tokens")
            ),
        }
    return {"input_tokens": 0, "output_tokens": math.ceil(len(content) / 4)}


def extract_stream_text(chunk: Mapping[str, Any]) -> str:
    choices = chunk.get("choices")
    if choices and isinstance(choices[0], Mapping) and choices[0].get("delta") is not None:
        return _as_text(choices[0]["delta"].get("content") or "")
    if chunk.get("content"):
        return _as_text(chunk["content"])
    if chunk.get("text"):
        return _as_text(chunk["text"])
    return ""


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)

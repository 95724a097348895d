"""Conversion between the canonical messages format and provider calls."""

from __future__ import annotations

import json
import logging
import uuid
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional

from llm_gateway.domain.exceptions import TranslationError
from llm_gateway.domain.models import (
    CanonicalResponse,
    CanonicalUsage,
    Preferences,
    ProviderCallPayload,
    TokenAllocationResult,
)
from llm_gateway.tokens.allocator import TokenAllocator
from llm_gateway.tokens.limits import DEFAULT_COMPLEXITY, DEFAULT_TASK

from .extractors import (
    extract_content,
    extract_stream_text,
    extract_usage,
    flatten_text_blocks,
)
from .mappings import (
    DEFAULT_CANONICAL_MODEL,
    GLOBAL_DEFAULT_MODEL,
    MODEL_MAPPINGS,
    PROVIDER_DEFAULT_MODELS,
)


logger = logging.getLogger(__name__)

DEFAULT_REQUESTED_TOKENS = 1000
DEFAULT_TEMPERATURE = 0.7
MAX_TOKENS_RANGE = (1, 8192)
TEMPERATURE_RANGE = (0, 2)
TOP_P_RANGE = (0, 1)
VALID_ROLES = ("user", "assistant", "system")

STOP_REASONS = {
    "stop": "end_turn",
    "length": "max_tokens",
    "content_filter": "stop_sequence",
    "function_call": "tool_use",
}
CANONICAL_STOP_REASONS = frozenset(
    {"end_turn", "max_tokens", "stop_sequence", "tool_use"}
)


class FormatTranslator:
    """Builds provider calls from canonical requests and back again.

    Output-token budgets come from the ``TokenAllocator``; the requested
    ``max_tokens`` is only an input to that decision.
    """

    def __init__(
        self,
        allocator: Optional[TokenAllocator] = None,
        *,
        model_mappings: Optional[Mapping[str, Mapping[str, str]]] = None,
        default_models: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._allocator = allocator or TokenAllocator()
        self._mappings = {
            alias: dict(targets)
            for alias, targets in (model_mappings or MODEL_MAPPINGS).items()
        }
        self._default_models = dict(default_models or PROVIDER_DEFAULT_MODELS)

    @property
    def allocator(self) -> TokenAllocator:
        return self._allocator

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def validate(self, request: Mapping[str, Any]) -> List[str]:
        """Collect every problem with ``request``; an empty list means valid."""

        errors: List[str] = []
        messages = request.get("messages")
        if not isinstance(messages, list):
            errors.append("messages is required and must be an array")
        elif not messages:
            errors.append("messages must not be empty")
        else:
            for index, message in enumerate(messages):
                if not isinstance(message, Mapping):
                    errors.append(f"message {index} must be an object")
                    continue
                role = message.get("role")
                if not role:
                    errors.append(f"message {index} is missing role")
                elif role not in VALID_ROLES:
                    errors.append(f"message {index} has invalid role: {role}")
                if not message.get("content"):
                    errors.append(f"message {index} is missing content")

        _check_range(errors, request, "max_tokens", MAX_TOKENS_RANGE, integer=True)
        _check_range(errors, request, "temperature", TEMPERATURE_RANGE)
        _check_range(errors, request, "top_p", TOP_P_RANGE)
        return errors

    def to_provider_format(
        self,
        request: Mapping[str, Any],
        provider: str,
        explicit_model: Optional[str] = None,
        task_type: Any = DEFAULT_TASK,
        complexity: Any = DEFAULT_COMPLEXITY,
    ) -> ProviderCallPayload:
        try:
            model = explicit_model or self.map_model(request.get("model"), provider)
            messages = self._convert_messages(request.get("messages") or [])
            system = request.get("system")
            if system:
                messages.insert(
                    0, {"role": "system", "content": flatten_text_blocks(system)}
                )

            allocation = self._allocate(request, provider, model, task_type, complexity)
            temperature = request.get("temperature")
            stop = request.get("stop_sequences")
            payload = ProviderCallPayload(
                model=model,
                messages=tuple(messages),
                max_tokens=allocation.tokens,
                temperature=DEFAULT_TEMPERATURE if temperature is None else temperature,
                stream=bool(request.get("stream", False)),
                top_p=request.get("top_p"),
                stop=tuple(stop) if stop else None,
                token_allocation=allocation,
            )
        except TranslationError:
            raise
        except Exception as exc:
            logger.error(
                "request_translation_failed",
                extra={"provider": provider, "error": str(exc)},
            )
            raise TranslationError(
                f"Request transformation failed: {exc}", context={"provider": provider}
            ) from exc

        logger.info(
            "request_translated",
            extra={
                "provider": provider,
                "model": model,
                "requested_tokens": request.get("max_tokens"),
                "allocated_tokens": allocation.tokens,
                "strategy": allocation.strategy.value,
            },
        )
        return payload

    def map_model(self, canonical_model: Optional[str], provider: str) -> str:
        alias = canonical_model or DEFAULT_CANONICAL_MODEL
        mapped = self._mappings.get(alias, {}).get(provider)
        if mapped:
            return mapped
        return self._default_models.get(provider, GLOBAL_DEFAULT_MODEL)

    def extract_user_input(self, request: Mapping[str, Any]) -> str:
        """System text plus the text of every user message, space separated."""

        parts: List[str] = []
        system = request.get("system")
        if system:
            parts.append(flatten_text_blocks(system))
        for message in request.get("messages") or []:
            if isinstance(message, Mapping) and message.get("role") == "user":
                text = flatten_text_blocks(message.get("content"))
                if text:
                    parts.append(text)
        return " ".join(parts).strip()

    @staticmethod
    def last_user_text(request: Mapping[str, Any]) -> str:
        for message in reversed(request.get("messages") or []):
            if isinstance(message, Mapping) and message.get("role") == "user":
                return flatten_text_blocks(message.get("content"))
        return ""

    def token_report(
        self,
        request: Mapping[str, Any],
        provider: str,
        model: str,
        task_type: Any = DEFAULT_TASK,
        complexity: Any = DEFAULT_COMPLEXITY,
    ) -> TokenAllocationResult:
        return self._allocate(request, provider, model, task_type, complexity)

    def supported_models(self) -> List[str]:
        return list(self._mappings)

    def model_targets(self, alias: str) -> Dict[str, str]:
        return dict(self._mappings.get(alias, {}))

    def provider_models(self, provider: str) -> Dict[str, str]:
        return {
            alias: targets[provider]
            for alias, targets in self._mappings.items()
            if provider in targets
        }

    @staticmethod
    def chat_completions_to_canonical(body: Mapping[str, Any]) -> Dict[str, Any]:
        """Repackage a chat-completions body into the canonical request shape."""

        return {
            "model": body.get("model") or DEFAULT_CANONICAL_MODEL,
            "messages": body.get("messages") or [],
            "max_tokens": body.get("max_tokens") or DEFAULT_REQUESTED_TOKENS,
            "temperature": body.get("temperature") or DEFAULT_TEMPERATURE,
            "stream": body.get("stream") or False,
        }

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------
    def from_provider_format(
        self,
        response: Mapping[str, Any],
        provider: str,
        request_id: Optional[str] = None,
        *,
        model: Optional[str] = None,
    ) -> CanonicalResponse:
        content = extract_content(response)
        usage = extract_usage(response, content)
        return CanonicalResponse(
            id=request_id or f"msg_{uuid.uuid4().hex}",
            content=[{"type": "text", "text": content}],
            model=_response_model(response) or model or f"{provider}-model",
            stop_reason=self.map_stop_reason(response),
            usage=CanonicalUsage(**usage),
        )

    @staticmethod
    def map_stop_reason(response: Mapping[str, Any]) -> str:
        reason = response.get("finish_reason")
        if reason is None:
            choices = response.get("choices")
            if isinstance(choices, list) and choices and isinstance(choices[0], Mapping):
                reason = choices[0].get("finish_reason")
        if isinstance(reason, str):
            return STOP_REASONS.get(reason, "end_turn")
        if reason is not None:
            return "end_turn"
        stop_reason = response.get("stop_reason")
        if isinstance(stop_reason, str) and stop_reason in CANONICAL_STOP_REASONS:
            return stop_reason
        return "end_turn"

    def convert_stream_chunk(self, chunk: Mapping[str, Any], provider: str) -> str:
        """Wrap one provider chunk as a ``content_block_delta`` SSE event."""

        try:
            event = {
                "type": "content_block_delta",
                "index": 0,
                "delta": {"type": "text_delta", "text": extract_stream_text(chunk)},
            }
            return sse_event(event)
        except Exception as exc:
            logger.warning(
                "stream_chunk_conversion_failed",
                extra={"provider": provider, "error": str(exc)},
            )
            return sse_event({"type": "error", "error": {"message": str(exc)}})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _allocate(
        self,
        request: Mapping[str, Any],
        provider: str,
        model: str,
        task_type: Any,
        complexity: Any,
    ) -> TokenAllocationResult:
        return self._allocator.allocate(
            request.get("max_tokens") or DEFAULT_REQUESTED_TOKENS,
            provider,
            model,
            task_type,
            complexity,
            self.extract_user_input(request),
            request_preferences(request),
        )

    @staticmethod
    def _convert_messages(messages: Any) -> List[Dict[str, str]]:
        if not isinstance(messages, list):
            raise TranslationError("messages must be an array")
        converted: List[Dict[str, str]] = []
        for message in messages:
            content = message.get("content")
            if isinstance(content, str):
                text = content
            elif isinstance(content, list):
                text = flatten_text_blocks(content)
            else:
                text = ""
            converted.append({"role": message.get("role"), "content": text})
        return converted


def request_preferences(request: Mapping[str, Any]) -> Preferences:
    """Quality is on unless the request sends ``prioritize_quality: false``."""

    return Preferences(
        prioritize_cost=bool(request.get("prioritize_cost", False)),
        prioritize_quality=request.get("prioritize_quality") is not False,
        prioritize_speed=bool(request.get("prioritize_speed", False)),
    )


def sse_event(event: Any) -> str:
    data = event if isinstance(event, str) else json.dumps(event, ensure_ascii=False)
    return f"data: {data}\n\n"


def _check_range(
    errors: List[str],
    request: Mapping[str, Any],
    field: str,
    bounds: tuple,
    *,
    integer: bool = False,
) -> None:
    value = request.get(field)
    if value is None:
        return
    low, high = bounds
    kind = "an integer" if integer else "a number"
    if isinstance(value, bool) or not isinstance(value, Real) or (
        integer and int(value) != value
    ):
        errors.append(f"{field} must be {kind} between {low} and {high}")
        return
    if not low <= value <= high:
        errors.append(f"{field} must be between {low} and {high}")


def _response_model(response: Mapping[str, Any]) -> Optional[str]:
    model = response.get("model")
    return model if isinstance(model, str) and model else None

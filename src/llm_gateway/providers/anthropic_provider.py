"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Tuple

from llm_gateway.domain.models import ProviderCallPayload

from .base import BaseProvider


ANTHROPIC_MESSAGES_PATH = "/messages"
ANTHROPIC_VERSION = "2023-06-01"

# Messages API stop reasons expressed in chat-completions vocabulary.
STOP_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "tool_use": "function_call",
}


class AnthropicProvider(BaseProvider):
    """Moves system messages to the top-level ``system`` field and flattens
    the text blocks of the reply into a single ``content`` string."""

    def _make_api_call(self, payload: ProviderCallPayload) -> Dict[str, Any]:
        data = self._post_json(
            self.config.url(ANTHROPIC_MESSAGES_PATH),
            self._build_body(payload, stream=False),
            self._headers(),
        )
        return {
            "id": data.get("id"),
            "content": self._extract_text(data.get("content")),
            "usage": data.get("usage") or {},
            "finish_reason": STOP_REASONS.get(data.get("stop_reason") or "", "stop"),
        }

    def _stream_api_call(self, payload: ProviderCallPayload) -> Iterator[Dict[str, Any]]:
        for event in self._iter_sse_data(
            self.config.url(ANTHROPIC_MESSAGES_PATH),
            self._build_body(payload, stream=True),
            self._headers(),
        ):
            if event.get("type") != "content_block_delta":
                continue
            delta = event.get("delta") or {}
            text = delta.get("text")
            if text:
                yield {"text": text}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    @staticmethod
    def _split_system(payload: ProviderCallPayload) -> Tuple[str, List[Dict[str, str]]]:
        system_parts: List[str] = []
        messages: List[Dict[str, str]] = []
        for message in payload.messages:
            if message.get("role") == "system":
                system_parts.append(message.get("content", ""))
            else:
                messages.append({"role": message["role"], "content": message["content"]})
        return "\n".join(part for part in system_parts if part), messages

    def _build_body(self, payload: ProviderCallPayload, *, stream: bool) -> Dict[str, Any]:
        system, messages = self._split_system(payload)
        body: Dict[str, Any] = {
            "model": payload.model,
            "messages": messages,
            "max_tokens": payload.max_tokens,
            "temperature": payload.temperature,
            "stream": stream,
        }
        if system:
            body["system"] = system
        if payload.top_p is not None:
            body["top_p"] = payload.top_p
        if payload.stop:
            body["stop_sequences"] = list(payload.stop)
        return body

    @staticmethod
    def _extract_text(content: Any) -> str:
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts = [
                item.get("text", "")
                for item in content
                if isinstance(item, dict) and item.get("type") == "text"
            ]
            return "\n".join(filter(None, parts))
        return ""

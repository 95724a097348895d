"""Ollama ``/api/chat`` adapter for locally served models."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator

from llm_gateway.domain.models import ProviderCallPayload

from .base import BaseProvider


OLLAMA_CHAT_PATH = "/api/chat"


class OllamaProvider(BaseProvider):
    """Streams newline-delimited JSON rather than server-sent events."""

    def _make_api_call(self, payload: ProviderCallPayload) -> Dict[str, Any]:
        data = self._post_json(
            self.config.url(OLLAMA_CHAT_PATH),
            self._build_body(payload, stream=False),
            {"Content-Type": "application/json"},
        )
        message = data.get("message") or {}
        return {
            "content": message.get("content", ""),
            "usage": {
                "prompt_tokens": int(data.get("prompt_eval_count", 0) or 0),
                "completion_tokens": int(data.get("eval_count", 0) or 0),
            },
            "finish_reason": data.get("done_reason") or "stop",
        }

    def _stream_api_call(self, payload: ProviderCallPayload) -> Iterator[Dict[str, Any]]:
        with self._open_stream(
            self.config.url(OLLAMA_CHAT_PATH),
            self._build_body(payload, stream=True),
            {"Content-Type": "application/json"},
        ) as response:
            for line in response.iter_lines():
                if not line.strip():
                    continue
                try:
                    chunk = json.loads(line)
                except ValueError:
                    continue
                text = (chunk.get("message") or {}).get("content")
                if text:
                    yield {"content": text}
                if chunk.get("done"):
                    return

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _build_body(payload: ProviderCallPayload, *, stream: bool) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "num_predict": payload.max_tokens,
            "temperature": payload.temperature,
        }
        if payload.top_p is not None:
            options["top_p"] = payload.top_p
        if payload.stop:
            options["stop"] = list(payload.stop)
        return {
            "model": payload.model,
            "messages": [dict(message) for message in payload.messages],
            "stream": stream,
            "options": options,
        }

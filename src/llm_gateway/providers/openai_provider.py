"""OpenAI-compatible chat-completions adapter.

Most hosted providers in the catalog (DeepSeek, Groq, Mistral, Together and
friends) and llama.cpp's server speak this dialect.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator

from llm_gateway.domain.models import ProviderCallPayload

from .base import BaseProvider


class OpenAIProvider(BaseProvider):
    """Speaks ``POST {base_url}{chat_path}`` with bearer-token auth."""

    def _make_api_call(self, payload: ProviderCallPayload) -> Dict[str, Any]:
        return self._post_json(
            self.config.url(self.config.chat_path),
            self._build_body(payload, stream=False),
            self._headers(),
        )

    def _stream_api_call(self, payload: ProviderCallPayload) -> Iterator[Dict[str, Any]]:
        yield from self._iter_sse_data(
            self.config.url(self.config.chat_path),
            self._build_body(payload, stream=True),
            self._headers(),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    @staticmethod
    def _build_body(payload: ProviderCallPayload, *, stream: bool) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": payload.model,
            "messages": [dict(message) for message in payload.messages],
            "stream": stream,
        }
        body.update(payload.to_params())
        return body

"""Google Gemini ``generateContent`` adapter."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

from llm_gateway.domain.models import ProviderCallPayload

from .base import BaseProvider


GEMINI_GENERATE_PATH_TEMPLATE = "/models/{model}:generateContent"
GEMINI_STREAM_PATH_TEMPLATE = "/models/{model}:streamGenerateContent?alt=sse"

FINISH_REASONS = {
    "STOP": "stop",
    "MAX_TOKENS": "length",
    "SAFETY": "content_filter",
    "RECITATION": "content_filter",
}


class GoogleProvider(BaseProvider):
    """Normalizes Gemini replies to ``{text, usage, finish_reason}``."""

    def _make_api_call(self, payload: ProviderCallPayload) -> Dict[str, Any]:
        data = self._post_json(
            self.config.url(GEMINI_GENERATE_PATH_TEMPLATE.format(model=payload.model)),
            self._build_body(payload),
            self._headers(),
        )
        usage = data.get("usageMetadata") or {}
        candidate = self._first_candidate(data)
        return {
            "text": self._extract_text(candidate),
            "usage": {
                "input_tokens": int(usage.get("promptTokenCount", 0) or 0),
                "output_tokens": int(usage.get("candidatesTokenCount", 0) or 0),
            },
            "finish_reason": FINISH_REASONS.get(
                (candidate or {}).get("finishReason", ""), "stop"
            ),
        }

    def _stream_api_call(self, payload: ProviderCallPayload) -> Iterator[Dict[str, Any]]:
        for event in self._iter_sse_data(
            self.config.url(GEMINI_STREAM_PATH_TEMPLATE.format(model=payload.model)),
            self._build_body(payload),
            self._headers(),
        ):
            text = self._extract_text(self._first_candidate(event))
            if text:
                yield {"text": text}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.config.api_key,
        }

    @staticmethod
    def _build_body(payload: ProviderCallPayload) -> Dict[str, Any]:
        contents: List[Dict[str, Any]] = []
        system_parts: List[Dict[str, str]] = []
        for message in payload.messages:
            role = message.get("role")
            text = message.get("content", "")
            if role == "system":
                system_parts.append({"text": text})
                continue
            contents.append(
                {
                    "role": "model" if role == "assistant" else "user",
                    "parts": [{"text": text}],
                }
            )

        generation: Dict[str, Any] = {
            "maxOutputTokens": payload.max_tokens,
            "temperature": payload.temperature,
        }
        if payload.top_p is not None:
            generation["topP"] = payload.top_p
        if payload.stop:
            generation["stopSequences"] = list(payload.stop)

        body: Dict[str, Any] = {"contents": contents, "generationConfig": generation}
        if system_parts:
            body["systemInstruction"] = {"parts": system_parts}
        return body

    @staticmethod
    def _first_candidate(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        candidates = data.get("candidates") or []
        if candidates and isinstance(candidates[0], dict):
            return candidates[0]
        return None

    @staticmethod
    def _extract_text(candidate: Optional[Dict[str, Any]]) -> str:
        if not candidate:
            return ""
        content = candidate.get("content")
        parts = content.get("parts", []) if isinstance(content, dict) else []
        texts = [
            part["text"] for part in parts if isinstance(part, dict) and "text" in part
        ]
        return "\n".join(filter(None, texts))

"""Static capability records for the models the selector knows about."""

from __future__ import annotations

from typing import Dict, Sequence

from llm_gateway.domain.models import ModelCapabilityRecord


def _caps(
    strengths: Sequence[str],
    weaknesses: Sequence[str],
    speed: str,
    cost: str,
    quality: str,
    base_score: int,
) -> ModelCapabilityRecord:
    return ModelCapabilityRecord(
        strengths=frozenset(strengths),
        weaknesses=frozenset(weaknesses),
        speed=speed,
        cost=cost,
        quality=quality,
        base_score=base_score,
    )


MODEL_CAPABILITIES: Dict[str, ModelCapabilityRecord] = {
    # OpenAI
    "gpt-4o": _caps(("coding", "analysis", "creative", "translation", "multimodal"), (), "fast", "high", "very_high", 98),
    "gpt-4": _caps(("coding", "analysis", "creative", "translation"), (), "medium", "high", "very_high", 95),
    "gpt-4-turbo": _caps(("coding", "analysis", "creative", "translation", "multimodal"), (), "fast", "medium", "very_high", 96),
    "gpt-3.5-turbo": _caps(("conversation", "analysis"), ("coding", "creative"), "very_fast", "very_low", "high", 80),
    "gpt-4o-mini": _caps(("conversation", "analysis", "coding"), ("creative",), "very_fast", "low", "high", 85),
    # Anthropic
    "claude-3-opus": _caps(("analysis", "creative", "translation", "reasoning"), ("coding",), "slow", "very_high", "very_high", 97),
    "claude-3-sonnet": _caps(("analysis", "creative", "translation"), ("coding",), "medium", "medium", "very_high", 90),
    "claude-3-haiku": _caps(("conversation", "analysis"), ("coding", "creative"), "very_fast", "low", "high", 85),
    "claude-3.5-sonnet": _caps(("coding", "analysis", "creative", "translation"), (), "medium", "medium", "very_high", 94),
    # Google
    "gemini-pro": _caps(("analysis", "conversation", "multimodal"), ("coding",), "fast", "low", "high", 82),
    "gemini-1.5-pro": _caps(("analysis", "conversation", "multimodal", "long_context"), ("coding",), "medium", "medium", "very_high", 88),
    "gemini-ultra": _caps(("analysis", "reasoning", "multimodal", "creative"), ("coding",), "slow", "high", "very_high", 92),
    # DeepSeek
    "deepseek-chat": _caps(("conversation", "analysis", "translation"), ("creative",), "fast", "very_low", "high", 85),
    "deepseek-coder": _caps(("coding",), ("creative", "conversation"), "fast", "very_low", "very_high", 95),
    "deepseek-v3": _caps(("coding", "analysis", "reasoning"), ("creative",), "fast", "low", "very_high", 93),
    # Meta
    "llama-3.1-405b": _caps(("coding", "analysis", "reasoning"), ("creative",), "slow", "high", "very_high", 91),
    "llama-3.1-70b": _caps(("coding", "analysis"), ("creative",), "medium", "medium", "high", 87),
    "llama-3.1-8b": _caps(("conversation",), ("coding", "creative", "analysis"), "very_fast", "very_low", "medium", 75),
    # Mistral
    "mistral-large": _caps(("coding", "analysis", "multilingual"), ("creative",), "medium", "medium", "very_high", 89),
    "mistral-medium": _caps(("conversation", "analysis"), ("coding",), "fast", "low", "high", 82),
    "mistral-small": _caps(("conversation",), ("coding", "analysis"), "very_fast", "very_low", "medium", 78),
    # Chinese-language models
    "qianwen-max": _caps(("chinese", "analysis", "translation"), ("coding",), "medium", "medium", "high", 86),
    "qianwen-plus": _caps(("chinese", "conversation"), ("coding", "creative"), "fast", "low", "high", 83),
    "zhipu-glm-4": _caps(("chinese", "analysis"), ("coding",), "medium", "low", "high", 84),
    "baichuan-13b": _caps(("chinese", "conversation"), ("coding", "analysis"), "fast", "low", "medium", 79),
    "chatglm-6b": _caps(("chinese", "conversation"), ("coding", "analysis"), "fast", "very_low", "medium", 76),
    # Cohere
    "command-r-plus": _caps(("analysis", "reasoning", "retrieval"), ("coding",), "medium", "medium", "high", 86),
    "command-r": _caps(("conversation", "retrieval"), ("coding",), "fast", "low", "high", 81),
    # xAI
    "grok-1": _caps(("creative", "conversation", "humor"), ("coding",), "medium", "medium", "high", 83),
    # Others
    "moonshot-v1": _caps(("chinese", "long_context"), ("coding",), "medium", "low", "high", 82),
    "yi-large": _caps(("chinese", "analysis"), ("coding",), "medium", "low", "high", 84),
}

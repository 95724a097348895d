"""Reference tables for per-model output limits and per-task token bands."""

from __future__ import annotations

from typing import Dict

from llm_gateway.domain.models import TokenBand, TokenLimit


DEFAULT_KEY = "default"


def _limit(max_tokens: int, optimal: int, cost: float) -> TokenLimit:
    return TokenLimit(min=1, max=max_tokens, optimal=optimal, cost_per_1k=cost)


PROVIDER_LIMITS: Dict[str, Dict[str, TokenLimit]] = {
    "openai": {
        "gpt-4": _limit(8192, 4096, 0.03),
        "gpt-4-turbo": _limit(128000, 8192, 0.01),
        "gpt-4o": _limit(128000, 8192, 0.005),
        "gpt-3.5-turbo": _limit(4096, 2048, 0.002),
        "gpt-3.5-turbo-16k": _limit(16384, 8192, 0.004),
    },
    "deepseek": {
        "deepseek-chat": _limit(8192, 4096, 0.0014),
        "deepseek-coder": _limit(8192, 4096, 0.0014),
        "deepseek-v2": _limit(8192, 4096, 0.0014),
    },
    "anthropic": {
        "claude-3-opus": _limit(4096, 2048, 0.075),
        "claude-3-sonnet": _limit(4096, 2048, 0.015),
        "claude-3-haiku": _limit(4096, 2048, 0.00125),
        "claude-3-5-sonnet": _limit(8192, 4096, 0.015),
    },
    "google": {
        "gemini-pro": _limit(8192, 4096, 0.0005),
        "gemini-1.5-pro": _limit(32768, 8192, 0.0035),
        "gemini-1.5-flash": _limit(8192, 4096, 0.000375),
    },
    "groq": {
        "mixtral-8x7b-32768": _limit(32768, 8192, 0.00027),
        "llama2-70b-4096": _limit(4096, 2048, 0.0008),
        "gemma-7b-it": _limit(8192, 4096, 0.0001),
    },
    "cohere": {
        "command": _limit(4096, 2048, 0.015),
        "command-r": _limit(128000, 8192, 0.0005),
        "command-r-plus": _limit(128000, 8192, 0.003),
    },
    "mistral": {
        "mistral-tiny": _limit(8192, 4096, 0.00025),
        "mistral-small": _limit(8192, 4096, 0.0006),
        "mistral-medium": _limit(8192, 4096, 0.0027),
        "mistral-large": _limit(8192, 4096, 0.008),
    },
    # Local models run with smaller context windows.
    "ollama": {
        "llama2": _limit(2048, 1024, 0.0),
        "codellama": _limit(2048, 1024, 0.0),
        "mistral": _limit(4096, 2048, 0.0),
        "qwen": _limit(2048, 1024, 0.0),
    },
    "huggingface": {
        "microsoft/DialoGPT-medium": _limit(1024, 512, 0.0),
        "microsoft/DialoGPT-large": _limit(1024, 512, 0.0),
        "facebook/blenderbot-400M-distill": _limit(1024, 512, 0.0),
    },
    DEFAULT_KEY: {
        DEFAULT_KEY: _limit(4096, 2048, 0.001),
    },
}

GLOBAL_DEFAULT_LIMIT = PROVIDER_LIMITS[DEFAULT_KEY][DEFAULT_KEY]


def _bands(low: int) -> Dict[str, TokenBand]:
    """Bands double from simple to complex, starting at ``low``."""

    return {
        "simple": TokenBand(min=low, recommended=low * 2, max=low * 4),
        "medium": TokenBand(min=low * 2, recommended=low * 4, max=low * 8),
        "complex": TokenBand(min=low * 4, recommended=low * 8, max=low * 16),
    }


TASK_TOKEN_BANDS: Dict[str, Dict[str, TokenBand]] = {
    "coding": _bands(512),
    "conversation": _bands(256),
    "analysis": _bands(512),
    "creative": _bands(1024),
    "translation": _bands(256),
    "summary": _bands(256),
}

DEFAULT_TASK = "conversation"
DEFAULT_COMPLEXITY = "medium"

"""Canonical model aliases mapped onto each provider's own model names."""

from __future__ import annotations

from typing import Dict


DEFAULT_CANONICAL_MODEL = "claude-3-sonnet"
GLOBAL_DEFAULT_MODEL = "gpt-3.5-turbo"

MODEL_MAPPINGS: Dict[str, Dict[str, str]] = {
    "claude-3-sonnet": {
        "openai": "gpt-4",
        "google": "gemini-pro",
        "ollama": "llama2:13b",
        "cohere": "command-r-plus",
        "mistral": "mistral-large",
        "groq": "llama2-70b-4096",
        "anthropic": "claude-3-sonnet",
    },
    "claude-3-haiku": {
        "openai": "gpt-3.5-turbo",
        "google": "gemini-flash",
        "ollama": "llama2:7b",
        "cohere": "command",
        "mistral": "mistral-small",
        "groq": "mixtral-8x7b-32768",
        "anthropic": "claude-3-haiku",
    },
    "claude-3-opus": {
        "openai": "gpt-4-turbo",
        "google": "gemini-ultra",
        "ollama": "codellama",
        "cohere": "command-r-plus",
        "mistral": "mistral-large",
        "groq": "llama2-70b-4096",
        "anthropic": "claude-3-opus",
    },
}

PROVIDER_DEFAULT_MODELS: Dict[str, str] = {
    "openai": "gpt-3.5-turbo",
    "google": "gemini-pro",
    "ollama": "llama2",
    "cohere": "command",
    "mistral": "mistral-small",
    "groq": "mixtral-8x7b-32768",
    "anthropic": "claude-3-haiku",
    "huggingface": "microsoft/DialoGPT-medium",
    "deepseek": "deepseek-chat",
}

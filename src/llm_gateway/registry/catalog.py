"""Static provider catalog merged with environment checks during discovery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

from llm_gateway.domain.models import Capability


DIALECT_OPENAI = "openai"
DIALECT_ANTHROPIC = "anthropic"
DIALECT_GOOGLE = "google"
DIALECT_OLLAMA = "ollama"

DEFAULT_PRIORITY = 10

_CHAT = frozenset({Capability.CHAT, Capability.COMPLETION})


@dataclass(frozen=True)
class CatalogEntry:
    """Static facts about one provider before any discovery happens."""

    requires_api_key: bool = True
    local: bool = False
    cost_per_1k_tokens: float = 0.01
    rate_limit: int = 30
    default_models: Tuple[str, ...] = ("default-model",)
    streaming_support: bool = True
    capabilities: FrozenSet[Capability] = field(default=_CHAT)
    api_key_env: Optional[str] = None
    base_url: str = ""
    dialect: str = DIALECT_OPENAI
    chat_path: str = "/chat/completions"


CATALOG: Dict[str, CatalogEntry] = {
    "openai": CatalogEntry(
        cost_per_1k_tokens=0.03,
        rate_limit=60,
        default_models=("gpt-4", "gpt-3.5-turbo", "gpt-4-turbo", "gpt-4o"),
        capabilities=_CHAT | {Capability.EMBEDDINGS},
        api_key_env="OPENAI_API_KEY",
        base_url="https://api.openai.com/v1",
    ),
    "anthropic": CatalogEntry(
        cost_per_1k_tokens=0.015,
        rate_limit=50,
        default_models=("claude-3-sonnet", "claude-3-haiku", "claude-3-opus"),
        api_key_env="ANTHROPIC_API_KEY",
        base_url="https://api.anthropic.com/v1",
        dialect=DIALECT_ANTHROPIC,
    ),
    "google": CatalogEntry(
        cost_per_1k_tokens=0.001,
        rate_limit=100,
        default_models=("gemini-pro", "gemini-flash", "gemini-ultra"),
        capabilities=_CHAT | {Capability.VISION},
        api_key_env="GOOGLE_API_KEY",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        dialect=DIALECT_GOOGLE,
    ),
    "ollama": CatalogEntry(
        requires_api_key=False,
        local=True,
        cost_per_1k_tokens=0.0,
        rate_limit=1000,
        default_models=("llama2", "codellama", "mistral", "vicuna"),
        base_url="http://localhost:11434",
        dialect=DIALECT_OLLAMA,
    ),
    "cohere": CatalogEntry(
        cost_per_1k_tokens=0.02,
        rate_limit=40,
        default_models=("command-r-plus", "command", "command-light"),
        capabilities=_CHAT | {Capability.EMBEDDINGS},
        api_key_env="COHERE_API_KEY",
        base_url="https://api.cohere.ai/compatibility/v1",
    ),
    "huggingface": CatalogEntry(
        cost_per_1k_tokens=0.001,
        rate_limit=30,
        default_models=("microsoft/DialoGPT-large", "microsoft/DialoGPT-medium"),
        streaming_support=False,
        api_key_env="HUGGINGFACE_API_KEY",
        base_url="https://api-inference.huggingface.co/v1",
    ),
    "mistral": CatalogEntry(
        cost_per_1k_tokens=0.025,
        rate_limit=50,
        default_models=("mistral-large", "mistral-medium", "mistral-small"),
        api_key_env="MISTRAL_API_KEY",
        base_url="https://api.mistral.ai/v1",
    ),
    "groq": CatalogEntry(
        cost_per_1k_tokens=0.001,
        rate_limit=30,
        default_models=("llama2-70b-4096", "mixtral-8x7b-32768"),
        api_key_env="GROQ_API_KEY",
        base_url="https://api.groq.com/openai/v1",
    ),
    "perplexity": CatalogEntry(
        cost_per_1k_tokens=0.02,
        rate_limit=20,
        default_models=(
            "pplx-7b-online",
            "pplx-70b-online",
            "pplx-7b-chat",
            "pplx-70b-chat",
        ),
        api_key_env="PERPLEXITY_API_KEY",
        base_url="https://api.perplexity.ai",
    ),
    "ai21": CatalogEntry(
        cost_per_1k_tokens=0.025,
        rate_limit=20,
        default_models=("j2-ultra", "j2-mid", "j2-light"),
        api_key_env="AI21_API_KEY",
        base_url="https://api.ai21.com/studio/v1",
    ),
    "nvidia": CatalogEntry(
        cost_per_1k_tokens=0.015,
        rate_limit=30,
        default_models=("nv-llama2-70b", "nv-code-llama-70b"),
        api_key_env="NVIDIA_API_KEY",
        base_url="https://integrate.api.nvidia.com/v1",
    ),
    "fireworks": CatalogEntry(
        cost_per_1k_tokens=0.002,
        rate_limit=40,
        default_models=("llama-v2-7b-chat", "llama-v2-13b-chat", "llama-v2-70b-chat"),
        api_key_env="FIREWORKS_API_KEY",
        base_url="https://api.fireworks.ai/inference/v1",
    ),
    "together": CatalogEntry(
        cost_per_1k_tokens=0.002,
        rate_limit=40,
        default_models=(
            "togethercomputer/llama-2-7b-chat",
            "togethercomputer/llama-2-13b-chat",
            "togethercomputer/llama-2-70b-chat",
        ),
        api_key_env="TOGETHER_API_KEY",
        base_url="https://api.together.xyz/v1",
    ),
    "anyscale": CatalogEntry(
        cost_per_1k_tokens=0.001,
        rate_limit=50,
        default_models=(
            "meta-llama/Llama-2-7b-chat-hf",
            "meta-llama/Llama-2-13b-chat-hf",
            "meta-llama/Llama-2-70b-chat-hf",
        ),
        api_key_env="ANYSCALE_API_KEY",
        base_url="https://api.endpoints.anyscale.com/v1",
    ),
    "deepseek": CatalogEntry(
        cost_per_1k_tokens=0.001,
        rate_limit=30,
        default_models=("deepseek-chat", "deepseek-coder"),
        api_key_env="DEEPSEEK_API_KEY",
        base_url="https://api.deepseek.com/v1",
    ),
    "replicate": CatalogEntry(
        cost_per_1k_tokens=0.005,
        rate_limit=20,
        default_models=("llama-2-70b-chat", "llama-2-13b-chat", "llama-2-7b-chat"),
        api_key_env="REPLICATE_API_KEY",
        base_url="https://openai-proxy.replicate.com/v1",
    ),
    "llamacpp": CatalogEntry(
        requires_api_key=False,
        local=True,
        cost_per_1k_tokens=0.0,
        rate_limit=1000,
        default_models=("llama-2-7b-chat", "llama-2-13b-chat", "codellama-7b-instruct"),
        base_url="http://localhost:8080",
        chat_path="/v1/chat/completions",
    ),
}

PRIORITIES: Dict[str, int] = {
    "deepseek": 1,
    "openai": 2,
    "anthropic": 3,
    "google": 4,
    "ollama": 5,
    "cohere": 6,
    "mistral": 7,
    "groq": 8,
    "huggingface": 9,
}

# Alternate key names accepted by the environment admin routes.
ENV_KEY_ALIASES: Dict[str, str] = {
    "GEMINI_API_KEY": "google",
    "HUGGINGFACE_TOKEN": "huggingface",
}

MANAGED_ENV_KEYS: Tuple[str, ...] = (
    "DEEPSEEK_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_API_KEY",
    "GROQ_API_KEY",
    "MISTRAL_API_KEY",
    "HUGGINGFACE_TOKEN",
    "COHERE_API_KEY",
)

_GENERIC_ENTRY = CatalogEntry()


def catalog_entry(name: str) -> CatalogEntry:
    """Return the static entry for ``name``; unknown providers get a generic one."""

    return CATALOG.get(name, _GENERIC_ENTRY)


def priority_for(name: str) -> int:
    return PRIORITIES.get(name, DEFAULT_PRIORITY)


def api_key_env_var(name: str) -> str:
    entry = CATALOG.get(name)
    if entry is not None and entry.api_key_env:
        return entry.api_key_env
    return f"{name.upper()}_API_KEY"


def base_url_env_var(name: str) -> str:
    return f"{name.upper()}_BASE_URL"


def provider_for_env_key(env_key: str) -> Optional[str]:
    """Reverse lookup from an API-key variable name to its provider."""

    if env_key in ENV_KEY_ALIASES:
        return ENV_KEY_ALIASES[env_key]
    for name, entry in CATALOG.items():
        if entry.api_key_env == env_key:
            return name
    return None

"""LLM Gateway: routes canonical chat requests to interchangeable providers."""

__version__ = "1.1.0"

from .core.config import GatewayConfig
from .core.container import DIContainer
from .core.gateway import Gateway

__all__ = [
    "Gateway",
    "GatewayConfig",
    "DIContainer",
    "__version__",
    "api",
    "core",
    "domain",
    "health",
    "providers",
    "registry",
    "routing",
    "selection",
    "tokens",
    "translation",
]

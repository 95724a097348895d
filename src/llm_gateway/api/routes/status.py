"""Service descriptor, health, provider status, models and statistics."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from llm_gateway import __version__
from llm_gateway.api.dependencies import get_gateway
from llm_gateway.core.gateway import Gateway


router = APIRouter(tags=["status"])

SERVICE_NAME = "LLM Gateway"
MODELS_OWNER = "llm-gateway"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
def describe_service(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    return {
        "name": SERVICE_NAME,
        "version": __version__,
        "description": "Multi-provider LLM gateway speaking the messages API",
        "endpoints": {
            "messages": "/v1/messages",
            "chat": "/v1/chat/completions",
            "health": "/health",
            "providers": "/providers",
            "models": "/models",
            "stats": "/stats",
        },
        "providers": list(gateway.router.state.providers),
    }


@router.get("/health")
def health(request: Request, gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    status = gateway.router.provider_status()
    healthy = sum(1 for item in status.values() if item["healthy"])
    return {
        "status": "healthy",
        "timestamp": _now(),
        "providers": {
            "total": len(status),
            "healthy": healthy,
            "unhealthy": len(status) - healthy,
        },
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "version": __version__,
    }


@router.get("/providers")
def providers(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    status = gateway.router.provider_status()
    return {
        "providers": status,
        "summary": {
            "total": len(status),
            "enabled": sum(1 for item in status.values() if item["enabled"]),
            "healthy": sum(1 for item in status.values() if item["healthy"]),
        },
    }


@router.get("/providers/refresh")
def refresh_providers(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    descriptors = gateway.refresh_providers()
    return {
        "success": True,
        "message": "Provider configuration refreshed",
        "timestamp": _now(),
        "total_providers": len(descriptors),
    }


@router.get("/models")
def models(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    created = int(time.time())
    translator = gateway.translator
    data = [
        {
            "id": alias,
            "object": "model",
            "created": created,
            "owned_by": MODELS_OWNER,
            "providers": translator.model_targets(alias),
        }
        for alias in translator.supported_models()
    ]
    return {"object": "list", "data": data}


@router.get("/stats")
def stats(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    return gateway.stats()


@router.post("/stats/reset")
def reset_stats(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    gateway.reset_stats()
    return {"success": True, "message": "Statistics reset"}


@router.get("/model-stats")
def model_stats(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    return {
        "success": True,
        "stats": gateway.selector.performance_stats(),
        "timestamp": _now(),
    }

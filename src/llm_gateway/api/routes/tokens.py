"""Token limit lookup, allocation analysis and input estimation."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends

from llm_gateway.api.dependencies import get_gateway
from llm_gateway.api.schemas import AnalyzeTokensRequest, EstimateTokensRequest
from llm_gateway.core.gateway import Gateway
from llm_gateway.domain.models import TokenLimit


router = APIRouter(prefix="/tokens", tags=["tokens"])

LISTED_PROVIDERS = (
    "openai",
    "anthropic",
    "google",
    "deepseek",
    "groq",
    "cohere",
    "mistral",
    "ollama",
    "huggingface",
)


def _dump_limits(
    limits: Union[TokenLimit, Dict[str, TokenLimit]],
) -> Dict[str, Any]:
    if isinstance(limits, TokenLimit):
        return limits.model_dump()
    return {model: limit.model_dump() for model, limit in limits.items()}


@router.get("/limits")
def token_limits(
    provider: Optional[str] = None, gateway: Gateway = Depends(get_gateway)
) -> Dict[str, Any]:
    allocator = gateway.translator.allocator
    if provider:
        return {
            "success": True,
            "provider": provider,
            "limits": _dump_limits(allocator.limits_for(provider)),
        }
    return {
        "success": True,
        "limits": {
            name: _dump_limits(allocator.limits_for(name)) for name in LISTED_PROVIDERS
        },
    }


@router.post("/analyze")
def analyze_tokens(
    body: AnalyzeTokensRequest, gateway: Gateway = Depends(get_gateway)
) -> Dict[str, Any]:
    analysis = gateway.translator.token_report(
        body.request, body.provider, body.model, body.task_type, body.complexity
    )
    return {"success": True, "analysis": analysis.model_dump(mode="json")}


@router.get("/stats")
def token_stats(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    return {"success": True, "stats": gateway.translator.allocator.usage_stats()}


@router.post("/estimate")
def estimate_tokens(
    body: EstimateTokensRequest, gateway: Gateway = Depends(get_gateway)
) -> Dict[str, Any]:
    allocator = gateway.translator.allocator
    estimated = allocator.estimate_input_tokens(body.text)
    limits = (
        _dump_limits(allocator.limits_for(body.provider, body.model))
        if body.provider and body.model
        else None
    )
    return {
        "success": True,
        "estimated_tokens": estimated,
        "text_length": len(body.text),
        "limits": limits,
        "recommendations": {
            "conservative": min(estimated * 2, 1024),
            "recommended": min(estimated * 3, 2048),
            "generous": min(estimated * 4, 4096),
        },
    }

"""Gateway configuration and provider-key environment endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from llm_gateway.api.dependencies import get_gateway
from llm_gateway.api.schemas import TestEnvironmentRequest
from llm_gateway.core.gateway import Gateway
from llm_gateway.registry.catalog import MANAGED_ENV_KEYS


router = APIRouter(prefix="/config", tags=["config"])


@router.get("")
def get_config(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    document = gateway.registry.document()
    if document is not None:
        return document
    return {
        "providers": {
            item.name: item.to_record() for item in gateway.registry.list_providers()
        }
    }


@router.get("/environment")
def get_environment(gateway: Gateway = Depends(get_gateway)) -> Dict[str, str]:
    return gateway.environment.masked(MANAGED_ENV_KEYS)


@router.post("/environment")
def save_environment(
    variables: Dict[str, Optional[str]] = Body(...),
    gateway: Gateway = Depends(get_gateway),
) -> Dict[str, Any]:
    applied = gateway.save_environment(variables)
    return {
        "success": True,
        "message": "Environment variables saved successfully",
        "keys": sorted(applied),
    }


@router.post("/test-env")
def test_environment(
    body: TestEnvironmentRequest, gateway: Gateway = Depends(get_gateway)
) -> Dict[str, Any]:
    record = gateway.test_environment_key(body.key, body.value)
    if record is None:
        return {"success": True, "message": "Environment variable format is valid"}
    return {
        "success": record.healthy,
        "response_time": record.latency_ms,
        "failure_kind": record.failure_kind.value,
        "error": record.error,
    }


@router.post("/gateway")
def save_gateway_settings(
    settings: Dict[str, Any] = Body(...),
    gateway: Gateway = Depends(get_gateway),
) -> Dict[str, Any]:
    config = gateway.update_settings(settings)
    return {
        "success": True,
        "message": "Gateway settings saved successfully",
        "settings": config.as_dict(),
    }

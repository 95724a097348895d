"""Provider administration: toggle, test, add, remove and per-provider config."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from llm_gateway.api.dependencies import get_gateway
from llm_gateway.api.schemas import AddProviderRequest, ToggleProviderRequest
from llm_gateway.core.gateway import Gateway
from llm_gateway.domain.exceptions import ProviderNotFoundError
from llm_gateway.domain.models import HealthRecord


router = APIRouter(prefix="/providers", tags=["providers"])


def _probe_result(record: HealthRecord) -> Dict[str, Any]:
    return {
        "success": record.healthy,
        "response_time": record.latency_ms,
        "failure_kind": record.failure_kind.value,
        "error": record.error,
    }


# Registered before the ``/{name}`` routes so the literal paths win.
@router.post("/test-all")
def test_all(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    results = gateway.test_all_providers()
    return {
        "success": True,
        "results": {
            name: {
                "healthy": record.healthy,
                "response_time": record.latency_ms,
                "failure_kind": record.failure_kind.value,
                "error": record.error,
            }
            for name, record in results.items()
        },
    }


@router.post("/add")
def add_provider(
    body: AddProviderRequest, gateway: Gateway = Depends(get_gateway)
) -> Dict[str, Any]:
    descriptor = gateway.add_provider(body.name, body.api_key, body.priority)
    return {
        "success": descriptor is not None,
        "message": f"Provider {body.name} added successfully"
        if descriptor is not None
        else f"Provider {body.name} could not be discovered",
        "provider": descriptor.to_record() if descriptor is not None else None,
    }


@router.post("/{name}/toggle")
def toggle_provider(
    name: str,
    body: Optional[ToggleProviderRequest] = None,
    gateway: Gateway = Depends(get_gateway),
) -> Dict[str, Any]:
    current = gateway.registry.describe(name)
    requested = body.enabled if body is not None else None
    enabled = (not current.enabled) if requested is None else requested
    gateway.set_provider_enabled(name, enabled)
    return {
        "success": True,
        "message": f"Provider {name} {'enabled' if enabled else 'disabled'}",
        "enabled": enabled,
    }


@router.post("/{name}/test")
def test_provider(name: str, gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    return _probe_result(gateway.test_provider(name))


@router.delete("/{name}")
def delete_provider(name: str, gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    removed = gateway.remove_provider(name)
    return {
        "success": True,
        "removed": removed,
        "message": f"Provider {name} deleted successfully",
    }


@router.get("/{name}/config")
def get_provider_config(
    name: str, gateway: Gateway = Depends(get_gateway)
) -> Dict[str, Any]:
    return gateway.registry.describe(name).to_record()


@router.post("/{name}/config")
def save_provider_config(
    name: str,
    fields: Dict[str, Any] = Body(...),
    gateway: Gateway = Depends(get_gateway),
) -> Dict[str, Any]:
    if name not in gateway.registry:
        raise ProviderNotFoundError(context={"provider": name})
    descriptor = gateway.update_provider(name, fields)
    return {
        "success": True,
        "message": f"Provider {name} configuration updated",
        "provider": descriptor.to_record(),
    }

"""Canonical chat endpoints: messages and chat completions."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import StreamingResponse

from llm_gateway.api.dependencies import get_gateway, get_request_id
from llm_gateway.core.gateway import Gateway
from llm_gateway.translation.translator import FormatTranslator


router = APIRouter(tags=["messages"])

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


def _respond(gateway: Gateway, body: Dict[str, Any], request_id: str) -> Any:
    if body.get("stream"):
        return StreamingResponse(
            gateway.stream(body, request_id),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )
    return gateway.complete(body, request_id).model_dump()


@router.post("/v1/messages")
@router.post("/anthropic/v1/messages")
def create_message(
    body: Dict[str, Any] = Body(...),
    gateway: Gateway = Depends(get_gateway),
    request_id: str = Depends(get_request_id),
) -> Any:
    return _respond(gateway, body, request_id)


@router.post("/v1/chat/completions")
def create_chat_completion(
    body: Dict[str, Any] = Body(...),
    gateway: Gateway = Depends(get_gateway),
    request_id: str = Depends(get_request_id),
) -> Any:
    return _respond(gateway, FormatTranslator.chat_completions_to_canonical(body), request_id)

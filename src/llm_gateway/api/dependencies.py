"""FastAPI dependencies resolving per-app collaborators."""

from __future__ import annotations

from fastapi import Request

from llm_gateway.core.gateway import Gateway


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


def get_request_id(request: Request) -> str:
    return request.state.request_id

"""Request bodies for the administrative endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ToggleProviderRequest(_Body):
    """``enabled`` omitted flips the current state."""

    enabled: Optional[bool] = None


class AddProviderRequest(_Body):
    name: str = Field(min_length=1)
    api_key: str = Field(alias="apiKey", min_length=1)
    priority: Optional[int] = None


class TestEnvironmentRequest(_Body):
    key: str = Field(min_length=1)
    value: str


class AnalyzeTokensRequest(_Body):
    request: Dict[str, Any] = Field(alias="claudeRequest")
    provider: str
    model: str
    task_type: str = Field(default="conversation", alias="taskType")
    complexity: str = Field(default="medium", alias="taskComplexity")


class EstimateTokensRequest(_Body):
    text: str = Field(min_length=1)
    provider: Optional[str] = None
    model: Optional[str] = None

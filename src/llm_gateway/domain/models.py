"""Domain value objects shared by the routing and translation core."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Capability(str, Enum):
    """Call shapes a provider can serve."""

    CHAT = "chat"
    COMPLETION = "completion"
    EMBEDDINGS = "embeddings"
    VISION = "vision"


class TaskType(str, Enum):
    """Task categories used to bias model choice and token budgets."""

    CODING = "coding"
    ANALYSIS = "analysis"
    CREATIVE = "creative"
    TRANSLATION = "translation"
    CONVERSATION = "conversation"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class FailureKind(str, Enum):
    """Fine-grained health-check failure classification."""

    NONE = "none"
    NO_API_KEY = "noApiKey"
    UNREACHABLE = "unreachable"
    RATE_LIMITED = "rateLimited"
    OTHER_ERROR = "otherError"


class BalancingStrategy(str, Enum):
    """Load-balancing policies used among equally healthy providers."""

    PRIORITY = "priority"
    ROUND_ROBIN = "round_robin"
    LEAST_REQUESTS = "least_requests"
    COST_OPTIMIZED = "cost_optimized"
    RANDOM = "random"


class AllocationStrategy(str, Enum):
    COST_OPTIMIZED = "cost-optimized"
    QUALITY_FOCUSED = "quality-focused"
    SPEED_OPTIMIZED = "speed-optimized"
    BALANCED = "balanced"
    DEFAULT = "default"
    FALLBACK = "fallback"


class ProviderDescriptor(BaseModel):
    """Static and discovered metadata for one provider."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    enabled: bool = False
    priority: int = 10
    models: Tuple[str, ...] = Field(default_factory=tuple)
    requires_api_key: bool = True
    is_local: bool = Field(default=False, alias="local")
    cost_per_1k_tokens: float = Field(default=0.001, ge=0)
    rate_limit: int = 60
    streaming_support: bool = True
    capabilities: FrozenSet[Capability] = Field(
        default_factory=lambda: frozenset({Capability.CHAT, Capability.COMPLETION})
    )
    last_updated: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("provider name must not be empty")
        return value.strip()

    @field_validator("models", mode="before")
    @classmethod
    def validate_models(cls, value: Any) -> Tuple[str, ...]:
        if value is None:
            return ()
        return tuple(str(item) for item in value)

    @field_validator("capabilities", mode="before")
    @classmethod
    def validate_capabilities(cls, value: Any) -> FrozenSet[Capability]:
        # Persisted files may hold either a list or a {name: bool} mapping.
        if value is None:
            return frozenset()
        if isinstance(value, Mapping):
            value = [name for name, flag in value.items() if flag]
        known = {cap.value for cap in Capability}
        names = [getattr(item, "value", item) for item in value]
        return frozenset(
            Capability(name) for name in names if isinstance(name, str) and name in known
        )

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the persisted provider-configuration shape."""

        return {
            "enabled": self.enabled,
            "priority": self.priority,
            "models": list(self.models),
            "capabilities": sorted(cap.value for cap in self.capabilities),
            "rate_limit": self.rate_limit,
            "cost_per_1k_tokens": self.cost_per_1k_tokens,
            "requires_api_key": self.requires_api_key,
            "local": self.is_local,
            "streaming_support": self.streaming_support,
            "last_updated": self.last_updated.isoformat()
            if self.last_updated
            else None,
        }

    @classmethod
    def from_record(cls, name: str, record: Mapping[str, Any]) -> "ProviderDescriptor":
        data = dict(record)
        data["name"] = name
        return cls.model_validate(data)


class HealthRecord(BaseModel):
    """Outcome of the most recent health probe for one provider."""

    model_config = ConfigDict(frozen=True)

    healthy: bool
    last_checked_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    latency_ms: Optional[int] = None
    failure_kind: FailureKind = FailureKind.NONE
    error: Optional[str] = None

    @field_validator("last_checked_at")
    @classmethod
    def ensure_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def is_fresh(self, max_age_seconds: float, now: Optional[datetime] = None) -> bool:
        current = now or datetime.now(timezone.utc)
        return (current - self.last_checked_at).total_seconds() < max_age_seconds


class TokenLimit(BaseModel):
    """Output-token limits and pricing for one provider/model pair."""

    model_config = ConfigDict(frozen=True)

    min: int = 1
    max: int = 4096
    optimal: int = 2048
    cost_per_1k: float = 0.001


class TokenBand(BaseModel):
    """Recommended output budget for a task type and complexity."""

    model_config = ConfigDict(frozen=True)

    min: int
    recommended: int
    max: int


class Preferences(BaseModel):
    """Cost, quality and speed flags shared by model scoring and token allocation."""

    model_config = ConfigDict(frozen=True)

    prioritize_cost: bool = False
    prioritize_quality: bool = False
    prioritize_speed: bool = False


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    message: str
    action: str


class ReportSummary(BaseModel):
    original: Optional[int]
    allocated: int
    change: int
    change_percent: float


class ReportContext(BaseModel):
    provider: str
    model: str
    task_type: str
    complexity: str


class ReportAllocation(BaseModel):
    strategy: AllocationStrategy
    input_tokens: int
    output_tokens: int
    total_tokens: int
    model_limit: int
    utilization_percent: float


class ReportOptimization(BaseModel):
    model_optimal: int
    is_optimal: bool
    efficiency: str


class CostEstimate(BaseModel):
    estimated: float
    currency: str
    formatted: Optional[str] = None


class AllocationReport(BaseModel):
    summary: ReportSummary
    context: ReportContext
    allocation: ReportAllocation
    optimization: ReportOptimization
    cost: CostEstimate
    recommendations: List[Recommendation] = Field(default_factory=list)


class TokenAllocationResult(BaseModel):
    """Output-token budget chosen for one outbound call."""

    model_config = ConfigDict(frozen=True)

    tokens: int
    strategy: AllocationStrategy
    input_tokens_estimate: int = 0
    base_tokens: Optional[float] = None
    adjustment_factor: Optional[float] = None
    report: Optional[AllocationReport] = None
    success: bool = True
    error: Optional[str] = None


class ModelCapabilityRecord(BaseModel):
    """Static strengths and ordinal attributes of a model."""

    model_config = ConfigDict(frozen=True)

    strengths: FrozenSet[str] = Field(default_factory=frozenset)
    weaknesses: FrozenSet[str] = Field(default_factory=frozenset)
    speed: str = "medium"
    cost: str = "medium"
    quality: str = "high"
    base_score: int = 80


class PerformanceRecord(BaseModel):
    """Rolling call statistics for one model."""

    total_requests: int = 0
    successful_requests: int = 0
    total_response_time_ms: float = 0.0
    success_rate: float = 0.5
    avg_response_time_ms: float = 3000.0
    user_ratings: List[float] = Field(default_factory=list)


class TaskDetection(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_type: TaskType
    confidence: float
    all_scores: Dict[str, float] = Field(default_factory=dict)


class ModelScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    score: float
    task_type: TaskType
    confidence: float


class ModelSelection(BaseModel):
    """Ranked model choice for one request."""

    model_config = ConfigDict(frozen=True)

    selected_model: Optional[str]
    task_type: TaskType
    confidence: float
    complexity: Complexity = Complexity.MEDIUM
    reasoning: str
    alternatives: Tuple[ModelScore, ...] = Field(default_factory=tuple)
    all_scores: Tuple[ModelScore, ...] = Field(default_factory=tuple)


class ProviderCallPayload(BaseModel):
    """Provider-neutral outbound call produced by the translator."""

    model_config = ConfigDict(frozen=True)

    model: str
    messages: Tuple[Dict[str, str], ...]
    max_tokens: int
    temperature: float = 0.7
    stream: bool = False
    top_p: Optional[float] = None
    stop: Optional[Tuple[str, ...]] = None
    token_allocation: Optional[TokenAllocationResult] = None

    def to_params(self) -> Dict[str, Any]:
        """Sampling parameters shared by every wire dialect."""

        params: Dict[str, Any] = {
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if self.top_p is not None:
            params["top_p"] = self.top_p
        if self.stop:
            params["stop"] = list(self.stop)
        return params


class CanonicalUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class CanonicalResponse(BaseModel):
    """Canonical (assistant-messages style) response body."""

    id: str
    type: str = "message"
    role: str = "assistant"
    content: List[Dict[str, str]]
    model: str
    stop_reason: str = "end_turn"
    stop_sequence: Optional[str] = None
    usage: CanonicalUsage = Field(default_factory=CanonicalUsage)

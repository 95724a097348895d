"""Output-token budget allocation per provider, model and task."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from llm_gateway.domain.models import (
    Preferences,
    AllocationReport,
    AllocationStrategy,
    CostEstimate,
    Recommendation,
    ReportAllocation,
    ReportContext,
    ReportOptimization,
    ReportSummary,
    TokenAllocationResult,
    TokenBand,
    TokenLimit,
)

from .limits import (
    DEFAULT_COMPLEXITY,
    DEFAULT_KEY,
    DEFAULT_TASK,
    GLOBAL_DEFAULT_LIMIT,
    PROVIDER_LIMITS,
    TASK_TOKEN_BANDS,
)


logger = logging.getLogger(__name__)

CJK_PATTERN = re.compile(r"[\u4e00-\u9fff]")
CJK_CHARS_PER_TOKEN = 1.5
OTHER_CHARS_PER_TOKEN = 4
INPUT_SAFETY_MARGIN = 100
MIN_USEFUL_TOKENS = 100
FALLBACK_REQUEST = 1000
FALLBACK_CEILING = 4096


class TokenAllocator:
    """Computes a final ``max_tokens`` value and a diagnostic report.

    The allocation never raises: any failure degrades to a fallback budget
    with ``success=False`` so callers can keep serving the request.
    """

    def __init__(
        self,
        provider_limits: Optional[Mapping[str, Mapping[str, TokenLimit]]] = None,
        task_bands: Optional[Mapping[str, Mapping[str, TokenBand]]] = None,
    ) -> None:
        self._limits = provider_limits or PROVIDER_LIMITS
        self._bands = task_bands or TASK_TOKEN_BANDS

    def allocate(
        self,
        requested_tokens: Optional[int],
        provider: str,
        model: str,
        task_type: Any = DEFAULT_TASK,
        complexity: Any = DEFAULT_COMPLEXITY,
        user_input: str = "",
        preferences: Optional[Preferences] = None,
    ) -> TokenAllocationResult:
        prefs = preferences or Preferences(prioritize_quality=True)
        task_name = _enum_value(task_type)
        complexity_name = _enum_value(complexity)
        try:
            limit = self.model_limit(provider, model)
            band = self._band_for(task_name, complexity_name)
            input_tokens = self.estimate_input_tokens(user_input)
            strategy = self.strategy_name(prefs)

            base = self._base_tokens(requested_tokens, limit, band, input_tokens, prefs)
            factor = self.adjustment_factor(limit, band)
            adjusted = _js_round(base * factor)
            final = self.validate_and_adjust(adjusted, limit)

            report = self._build_report(
                requested=requested_tokens,
                final=final,
                provider=provider,
                model=model,
                task_type=task_name,
                complexity=complexity_name,
                limit=limit,
                strategy=strategy,
                input_tokens=input_tokens,
            )
        except Exception as exc:
            logger.error(
                "token_allocation_failed",
                extra={"provider": provider, "model": model, "error": str(exc)},
            )
            return TokenAllocationResult(
                tokens=min(requested_tokens or FALLBACK_REQUEST, FALLBACK_CEILING),
                strategy=AllocationStrategy.FALLBACK,
                success=False,
                error=str(exc),
            )

        logger.debug(
            "token_allocation",
            extra={
                "provider": provider,
                "model": model,
                "requested": requested_tokens,
                "allocated": final,
                "strategy": strategy.value,
            },
        )
        return TokenAllocationResult(
            tokens=final,
            strategy=strategy,
            input_tokens_estimate=input_tokens,
            base_tokens=base,
            adjustment_factor=factor,
            report=report,
        )

    def limits_for(
        self, provider: str, model: Optional[str] = None
    ) -> Union[TokenLimit, Dict[str, TokenLimit]]:
        """Whole provider table when ``model`` is None, else a single entry."""

        if model is None:
            return dict(self._provider_table(provider))
        return self.model_limit(provider, model)

    def model_limit(self, provider: str, model: str) -> TokenLimit:
        table = self._provider_table(provider)
        return table.get(model) or table.get(DEFAULT_KEY) or GLOBAL_DEFAULT_LIMIT

    def _provider_table(self, provider: str) -> Mapping[str, TokenLimit]:
        return self._limits.get(provider) or self._limits.get(DEFAULT_KEY, {})

    def estimate_input_tokens(self, text: Optional[str]) -> int:
        """CJK ideographs count at 1.5 chars/token, everything else at 4."""

        if not text or not isinstance(text, str):
            return 0
        cjk = len(CJK_PATTERN.findall(text))
        other = len(text) - cjk
        return math.ceil(cjk / CJK_CHARS_PER_TOKEN + other / OTHER_CHARS_PER_TOKEN)

    @staticmethod
    def adjustment_factor(limit: TokenLimit, band: TokenBand) -> float:
        capacity = limit.max / 8192
        demand = band.max / 4096
        return max(0.5, min(2.0, capacity * demand))

    @staticmethod
    def strategy_name(prefs: Preferences) -> AllocationStrategy:
        if prefs.prioritize_cost and prefs.prioritize_quality and prefs.prioritize_speed:
            return AllocationStrategy.BALANCED
        if prefs.prioritize_cost:
            return AllocationStrategy.COST_OPTIMIZED
        if prefs.prioritize_quality:
            return AllocationStrategy.QUALITY_FOCUSED
        if prefs.prioritize_speed:
            return AllocationStrategy.SPEED_OPTIMIZED
        return AllocationStrategy.DEFAULT

    @staticmethod
    def validate_and_adjust(tokens: float, limit: TokenLimit) -> int:
        minimum = max(limit.min or 1, 1)
        maximum = limit.max or 4096
        final = max(minimum, min(tokens, maximum))
        if final < MIN_USEFUL_TOKENS:
            final = min(MIN_USEFUL_TOKENS, maximum)
        if final > maximum * 0.95:
            final = math.floor(maximum * 0.95)
        return int(max(final, minimum))

    def validate_max_tokens(
        self, max_tokens: int, provider: str, model: str
    ) -> Dict[str, Any]:
        limit = self.model_limit(provider, model)
        if max_tokens < limit.min:
            return {
                "valid": False,
                "error": f"max_tokens must be at least {limit.min}",
                "suggestion": limit.min,
            }
        if max_tokens > limit.max:
            return {
                "valid": False,
                "error": f"max_tokens cannot exceed {limit.max}",
                "suggestion": limit.max,
            }
        return {"valid": True}

    def batch_allocate(
        self, requests: Sequence[Mapping[str, Any]]
    ) -> List[Dict[str, Any]]:
        results = []
        for index, request in enumerate(requests):
            prefs = request.get("preferences")
            result = self.allocate(
                request.get("requested_tokens"),
                request.get("provider", DEFAULT_KEY),
                request.get("model", DEFAULT_KEY),
                request.get("task_type", DEFAULT_TASK),
                request.get("complexity", DEFAULT_COMPLEXITY),
                request.get("user_input", ""),
                Preferences(**prefs) if isinstance(prefs, Mapping) else prefs,
            )
            results.append({"id": request.get("id", index), "result": result})
        return results

    def usage_stats(self) -> Dict[str, Any]:
        entries = [
            limit for table in self._limits.values() for limit in table.values()
        ]
        optimals = [entry.optimal for entry in entries if entry.optimal]
        costs = sorted(entry.cost_per_1k for entry in entries if entry.cost_per_1k > 0)
        return {
            "total_providers": len([name for name in self._limits if name != DEFAULT_KEY]),
            "supported_task_types": list(self._bands),
            "average_optimal_tokens": _js_round(sum(optimals) / len(optimals))
            if optimals
            else 2048,
            "cost_range": {
                "min": costs[0] if costs else 0,
                "max": costs[-1] if costs else 0,
                "median": costs[len(costs) // 2] if costs else 0,
            },
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _band_for(self, task_type: str, complexity: str) -> TokenBand:
        bands = self._bands.get(task_type) or self._bands[DEFAULT_TASK]
        return bands.get(complexity) or bands[DEFAULT_COMPLEXITY]

    @staticmethod
    def _base_tokens(
        requested: Optional[int],
        limit: TokenLimit,
        band: TokenBand,
        input_tokens: int,
        prefs: Preferences,
    ) -> float:
        # Cost, quality and speed are applied in that order; each may undo the last.
        base: float = requested or band.recommended
        if prefs.prioritize_cost:
            base = min(base, limit.optimal or 2048)
        if prefs.prioritize_quality:
            base = max(base, band.recommended)
            base = min(base, limit.max * 0.8)
        if prefs.prioritize_speed:
            base = min(base, limit.optimal * 0.7)
        if input_tokens > 0 and input_tokens + base > limit.max:
            base = limit.max - input_tokens - INPUT_SAFETY_MARGIN
        return base

    def _build_report(
        self,
        *,
        requested: Optional[int],
        final: int,
        provider: str,
        model: str,
        task_type: str,
        complexity: str,
        limit: TokenLimit,
        strategy: AllocationStrategy,
        input_tokens: int,
    ) -> AllocationReport:
        change_percent = (
            round((final - requested) / requested * 100, 1) if requested else 0.0
        )
        return AllocationReport(
            summary=ReportSummary(
                original=requested,
                allocated=final,
                change=final - (requested or 0),
                change_percent=change_percent,
            ),
            context=ReportContext(
                provider=provider,
                model=model,
                task_type=task_type,
                complexity=complexity,
            ),
            allocation=ReportAllocation(
                strategy=strategy,
                input_tokens=input_tokens,
                output_tokens=final,
                total_tokens=input_tokens + final,
                model_limit=limit.max,
                utilization_percent=round((input_tokens + final) / limit.max * 100, 1),
            ),
            optimization=ReportOptimization(
                model_optimal=limit.optimal,
                is_optimal=abs(final - limit.optimal) <= limit.optimal * 0.2,
                efficiency=f"{final / limit.max * 100:.1f}%",
            ),
            cost=self._cost_estimate(final, limit.cost_per_1k),
            recommendations=self._recommendations(final, limit, task_type),
        )

    @staticmethod
    def _cost_estimate(tokens: int, cost_per_1k: float) -> CostEstimate:
        if not cost_per_1k:
            return CostEstimate(estimated=0.0, currency="FREE")
        cost = tokens / 1000 * cost_per_1k
        return CostEstimate(estimated=cost, currency="USD", formatted=f"${cost:.6f}")

    @staticmethod
    def _recommendations(
        final: int, limit: TokenLimit, task_type: str
    ) -> List[Recommendation]:
        items: List[Recommendation] = []
        utilization = final / limit.max
        if utilization < 0.3:
            items.append(
                Recommendation(
                    type="efficiency",
                    message="Allocation is conservative; raising it may improve output quality",
                    action="increase_tokens",
                )
            )
        elif utilization > 0.9:
            items.append(
                Recommendation(
                    type="warning",
                    message="Close to the model token limit; consider splitting the task",
                    action="split_task",
                )
            )
        if limit.cost_per_1k > 0.01:
            items.append(
                Recommendation(
                    type="cost",
                    message="Model is expensive; a cheaper alternative may be sufficient",
                    action="consider_alternatives",
                )
            )
        if task_type == "coding" and final < 2048:
            items.append(
                Recommendation(
                    type="task_specific",
                    message="Coding tasks usually need more tokens for complete implementations",
                    action="increase_for_coding",
                )
            )
        return items


def _js_round(value: float) -> int:
    """Round half away from zero for positives instead of to even."""

    return math.floor(value + 0.5)


def _enum_value(value: Any) -> str:
    return str(getattr(value, "value", value))

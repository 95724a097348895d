"""Task-aware model ranking with rolling performance feedback."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Sequence

from llm_gateway.domain.interfaces import IComplexityEstimator
from llm_gateway.domain.models import (
    ModelCapabilityRecord,
    ModelScore,
    ModelSelection,
    PerformanceRecord,
    Preferences,
    TaskDetection,
    TaskType,
)

from .capabilities import MODEL_CAPABILITIES
from .detector import TaskDetector
from .estimator import complexity_band, default_complexity_estimator
from .tasks import TASK_LABELS


logger = logging.getLogger(__name__)

STRENGTH_BONUS = 15.0
WEAKNESS_PENALTY = 10.0
SUCCESS_RATE_WEIGHT = 20.0
SPEED_BONUS = 10.0
COST_BONUS = 8.0
QUALITY_BONUS = 12.0
MAX_RATINGS = 100
ALTERNATIVES = 2


class ModelSelector:
    """Ranks candidate models for a prompt.

    The score starts from the model's static base score, moves with the
    detected task's strengths and weaknesses, then with observed success
    rate and latency once the model has served traffic, and finally with the
    caller's cost, quality and speed preferences. Scores never go below 0
    and unknown models always score 0.
    """

    def __init__(
        self,
        capabilities: Optional[Mapping[str, ModelCapabilityRecord]] = None,
        *,
        detector: Optional[TaskDetector] = None,
        complexity_estimator: Optional[IComplexityEstimator] = None,
    ) -> None:
        self._capabilities = dict(capabilities or MODEL_CAPABILITIES)
        self._detector = detector or TaskDetector()
        self._complexity = complexity_estimator or default_complexity_estimator()
        self._performance: Dict[str, PerformanceRecord] = {}
        self._lock = threading.Lock()

    def capabilities(self) -> Dict[str, ModelCapabilityRecord]:
        return dict(self._capabilities)

    def detect_task(self, user_input: str, system_prompt: str = "") -> TaskDetection:
        return self._detector.detect(user_input, system_prompt)

    def score_model(
        self,
        model: str,
        task_type: TaskType,
        preferences: Optional[Preferences] = None,
    ) -> float:
        caps = self._capabilities.get(model)
        if caps is None:
            return 0.0
        prefs = preferences or Preferences()
        task = TaskType(task_type).value

        score = float(caps.base_score)
        if task in caps.strengths:
            score += STRENGTH_BONUS
        if task in caps.weaknesses:
            score -= WEAKNESS_PENALTY

        record = self._performance.get(model)
        if record is not None:
            score += (record.success_rate - 0.5) * SUCCESS_RATE_WEIGHT
            score -= record.avg_response_time_ms / 1000

        if prefs.prioritize_speed and caps.speed == "very_fast":
            score += SPEED_BONUS
        if prefs.prioritize_cost and caps.cost == "low":
            score += COST_BONUS
        if prefs.prioritize_quality and caps.quality == "very_high":
            score += QUALITY_BONUS

        return max(0.0, score)

    def select_best(
        self,
        user_input: str,
        system_prompt: str = "",
        available_models: Sequence[str] = (),
        preferences: Optional[Preferences] = None,
    ) -> ModelSelection:
        """Rank ``available_models``; ``selected_model`` is None when none are given."""

        detection = self.detect_task(user_input, system_prompt)
        complexity = complexity_band(
            self._complexity.estimate(f"{system_prompt or ''}\n{user_input or ''}".strip())
        )
        scores = [
            ModelScore(
                model=model,
                score=self.score_model(model, detection.task_type, preferences),
                task_type=detection.task_type,
                confidence=detection.confidence,
            )
            for model in available_models
        ]
        ranked = sorted(scores, key=lambda item: item.score, reverse=True)
        best = ranked[0] if ranked else None

        selection = ModelSelection(
            selected_model=best.model if best else None,
            task_type=detection.task_type,
            confidence=detection.confidence,
            complexity=complexity,
            reasoning=self._reasoning(best, detection.task_type),
            alternatives=tuple(ranked[1 : 1 + ALTERNATIVES]),
            all_scores=tuple(ranked),
        )
        logger.info(
            "model_selected",
            extra={
                "model": selection.selected_model,
                "task_type": detection.task_type.value,
                "confidence": round(detection.confidence, 3),
                "complexity": complexity.value,
                "candidates": len(ranked),
            },
        )
        return selection

    def update_model_performance(
        self,
        model: str,
        response_time_ms: float,
        success: bool,
        rating: Optional[float] = None,
    ) -> PerformanceRecord:
        with self._lock:
            record = self._performance.setdefault(model, PerformanceRecord())
            record.total_requests += 1
            record.total_response_time_ms += response_time_ms
            if success:
                record.successful_requests += 1
            if rating is not None:
                record.user_ratings.append(rating)
                if len(record.user_ratings) > MAX_RATINGS:
                    del record.user_ratings[: len(record.user_ratings) - MAX_RATINGS]
            record.success_rate = record.successful_requests / record.total_requests
            record.avg_response_time_ms = (
                record.total_response_time_ms / record.total_requests
            )
            return record

    def performance_for(self, model: str) -> Optional[PerformanceRecord]:
        return self._performance.get(model)

    def performance_stats(self) -> Dict[str, Dict[str, Any]]:
        stats: Dict[str, Dict[str, Any]] = {}
        for model, record in self._performance.items():
            ratings = record.user_ratings
            stats[model] = {
                "success_rate": f"{record.success_rate * 100:.1f}%",
                "avg_response_time": f"{round(record.avg_response_time_ms)}ms",
                "total_requests": record.total_requests,
                "avg_user_rating": f"{sum(ratings) / len(ratings):.1f}"
                if ratings
                else "N/A",
            }
        return stats

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _reasoning(self, best: Optional[ModelScore], task_type: TaskType) -> str:
        if best is None:
            return "using default model"
        parts: List[str] = [f"Detected {TASK_LABELS.get(task_type, task_type.value)}"]
        caps = self._capabilities.get(best.model)
        if caps is not None:
            if task_type.value in caps.strengths:
                parts.append(f"{best.model} performs excellently on this type of task")
            if caps.quality == "very_high":
                parts.append("high quality output")
            if caps.cost == "low":
                parts.append("cost effective")
        return ", ".join(parts)

"""Keyword and pattern based task detection."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from llm_gateway.domain.models import TaskDetection, TaskType

from .tasks import PATTERN_MULTIPLIER, TASK_PROFILES, TaskProfile


class TaskDetector:
    """Scores every task profile and returns the best one.

    Confidence is the winning raw score clamped to 1.0; it is not a
    normalized probability.
    """

    def __init__(self, profiles: Optional[Mapping[TaskType, TaskProfile]] = None):
        self._profiles = dict(profiles or TASK_PROFILES)

    def detect(self, user_input: str, system_prompt: str = "") -> TaskDetection:
        text = f"{user_input or ''} {system_prompt or ''}".lower()
        scores: Dict[str, float] = {}
        for task_type, profile in self._profiles.items():
            scores[task_type.value] = self._score(text, profile)

        best_type, best_score = TaskType.CONVERSATION, 0.0
        for task_type in self._profiles:
            score = scores[task_type.value]
            if score > best_score:
                best_type, best_score = task_type, score

        return TaskDetection(
            task_type=best_type,
            confidence=min(best_score, 1.0),
            all_scores=scores,
        )

    @staticmethod
    def _score(text: str, profile: TaskProfile) -> float:
        score = 0.0
        for keyword in profile.keywords:
            if keyword in text:
                score += profile.weight
        for pattern in profile.patterns:
            if pattern.search(text):
                score += profile.weight * PATTERN_MULTIPLIER
        return score

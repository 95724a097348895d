"""Prompt complexity estimation used to pick a token band."""

from __future__ import annotations

import re
from statistics import fmean
from typing import Protocol, Sequence

from llm_gateway.domain.interfaces import IComplexityEstimator
from llm_gateway.domain.models import Complexity


SIMPLE_BELOW = 0.3
MEDIUM_BELOW = 0.6


class IFeatureExtractor(Protocol):
    """Extracts a normalized feature score (0-1) from a prompt."""

    def extract(self, prompt: str) -> float:  # pragma: no cover - Protocol signature
        ...


class ComplexityEstimator(IComplexityEstimator):
    """Averages feature extractor scores into a 0-1 complexity value."""

    def __init__(self, features: Sequence[IFeatureExtractor]):
        if not features:
            raise ValueError("At least one feature extractor must be provided")
        self._features = list(features)

    def estimate(self, prompt: str) -> float:
        if not prompt or not prompt.strip():
            return 0.0
        scores = [_clamp(feature.extract(prompt)) for feature in self._features]
        return _clamp(fmean(scores))

    def band(self, prompt: str) -> Complexity:
        return complexity_band(self.estimate(prompt))


class LengthFeatureExtractor:
    """Longer prompts relative to ``target_chars`` score higher."""

    def __init__(self, target_chars: int = 600):
        self.target_chars = max(1, target_chars)

    def extract(self, prompt: str) -> float:
        return _clamp(len(prompt) / self.target_chars)


class CodeBlockFeatureExtractor:
    """Fenced blocks score 1.0; otherwise the share of syntax markers seen."""

    FENCE_PATTERN = re.compile(r"```.+?```", re.DOTALL)
    CODE_MARKERS = ("def ", "class ", "select ", "function", "import ", "{", ";", "</")

    def extract(self, prompt: str) -> float:
        if self.FENCE_PATTERN.search(prompt):
            return 1.0
        lowered = prompt.lower()
        matches = sum(1 for marker in self.CODE_MARKERS if marker in lowered)
        return _clamp(matches / len(self.CODE_MARKERS))


class ReasoningKeywordExtractor:
    KEYWORDS = (
        "reason",
        "explain",
        "derive",
        "analyze",
        "justify",
        "step-by-step",
        "step by step",
        "compare",
        "evaluate",
        "prove",
        "分析",
        "解释",
        "推理",
        "比较",
    )

    def extract(self, prompt: str) -> float:
        lowered = prompt.lower()
        matches = sum(1 for keyword in self.KEYWORDS if keyword in lowered)
        return _clamp(matches / 2)


class TechnicalTermExtractor:
    """Technical vocabulary across math, systems and machine learning."""

    TERMS = (
        "tensor",
        "gradient",
        "database",
        "encryption",
        "neural",
        "api",
        "schema",
        "complexity",
        "algorithm",
        "probability",
        "latency",
        "concurrency",
        "distributed",
    )

    def extract(self, prompt: str) -> float:
        lowered = prompt.lower()
        matches = sum(1 for term in self.TERMS if term in lowered)
        return _clamp(matches / 3)


def default_complexity_estimator() -> ComplexityEstimator:
    return ComplexityEstimator(
        [
            LengthFeatureExtractor(),
            CodeBlockFeatureExtractor(),
            ReasoningKeywordExtractor(),
            TechnicalTermExtractor(),
        ]
    )


def complexity_band(score: float) -> Complexity:
    if score < SIMPLE_BELOW:
        return Complexity.SIMPLE
    if score < MEDIUM_BELOW:
        return Complexity.MEDIUM
    return Complexity.COMPLEX


def _clamp(value: float, minimum: float = 0.0, maximum: float = 1.0) -> float:
    return max(minimum, min(value, maximum))

import pytest

from llm_gateway.domain.models import Complexity
from llm_gateway.selection.estimator import (
    CodeBlockFeatureExtractor,
    ComplexityEstimator,
    LengthFeatureExtractor,
    ReasoningKeywordExtractor,
    TechnicalTermExtractor,
    complexity_band,
    default_complexity_estimator,
)


@pytest.fixture
def estimator() -> ComplexityEstimator:
    return default_complexity_estimator()


def test_estimator_requires_features():
    with pytest.raises(ValueError):
        ComplexityEstimator([])


def test_blank_prompt_scores_zero(estimator):
    assert estimator.estimate("   ") == 0.0


PROMPTS = [
    ("Hi", Complexity.SIMPLE),
    ("List three fun facts about cats.", Complexity.SIMPLE),
    ("Write a friendly thank-you note to my neighbor.", Complexity.SIMPLE),
    (
        "Explain the API schema for a basic inventory database and compare it "
        "with the old one.",
        Complexity.MEDIUM,
    ),
    (
        "请分析并解释这个算法的原理",
        Complexity.SIMPLE,
    ),
    (
        "Explain and analyze the algorithm complexity and latency of this: "
        "```python\ndef f(x):\n    return x\n```",
        Complexity.COMPLEX,
    ),
]


@pytest.mark.parametrize("prompt,band", PROMPTS)
def test_estimator_places_prompts_into_expected_bands(estimator, prompt, band):
    assert estimator.band(prompt) is band


def test_band_thresholds():
    assert complexity_band(0.0) is Complexity.SIMPLE
    assert complexity_band(0.29) is Complexity.SIMPLE
    assert complexity_band(0.3) is Complexity.MEDIUM
    assert complexity_band(0.59) is Complexity.MEDIUM
    assert complexity_band(0.6) is Complexity.COMPLEX


def test_reasoning_keywords_include_chinese_terms():
    assert ReasoningKeywordExtractor().extract("请分析并解释") == 1.0


def test_feature_extractors_output_normalized_scores():
    features = [
        LengthFeatureExtractor(target_chars=10),
        CodeBlockFeatureExtractor(),
        ReasoningKeywordExtractor(),
        TechnicalTermExtractor(),
    ]
    prompt = "Explain tensor gradients inside ```python``` blocks"
    for feature in features:
        score = feature.extract(prompt)
        assert 0.0 <= score <= 1.0

import itertools

import pytest

from llm_gateway.domain.models import AllocationStrategy, Preferences, TokenLimit
from llm_gateway.tokens.allocator import TokenAllocator
from llm_gateway.tokens.limits import PROVIDER_LIMITS, TASK_TOKEN_BANDS


@pytest.fixture
def allocator() -> TokenAllocator:
    return TokenAllocator()


PREFERENCE_COMBINATIONS = [
    Preferences(prioritize_cost=cost, prioritize_quality=quality, prioritize_speed=speed)
    for cost, quality, speed in itertools.product([False, True], repeat=3)
]


def test_allocation_stays_within_model_limits_for_every_table_entry(allocator):
    for provider, table in PROVIDER_LIMITS.items():
        for model, limit in table.items():
            for task, bands in TASK_TOKEN_BANDS.items():
                for complexity in bands:
                    for requested in (None, 1, 50, 3000, 200000):
                        for prefs in PREFERENCE_COMBINATIONS:
                            result = allocator.allocate(
                                requested, provider, model, task, complexity, "", prefs
                            )
                            assert result.success
                            assert limit.min <= result.tokens <= limit.max, (
                                provider,
                                model,
                                task,
                                complexity,
                                requested,
                                prefs,
                            )


def test_deepseek_coding_request_is_kept(allocator):
    result = allocator.allocate(3000, "deepseek", "deepseek-chat", "coding", "medium", "")

    assert 1 <= result.tokens <= 8192
    assert result.tokens == 3000
    assert result.strategy is AllocationStrategy.QUALITY_FOCUSED
    assert result.adjustment_factor == 1.0
    assert result.report.summary.change == 0
    assert result.report.recommendations == []


def test_cost_preference_caps_at_model_optimal(allocator):
    result = allocator.allocate(
        3000,
        "openai",
        "gpt-3.5-turbo",
        "coding",
        "medium",
        "",
        Preferences(prioritize_cost=True),
    )

    # min(3000, optimal 2048) scaled by the 0.5 capacity factor
    assert result.tokens == 1024
    assert result.strategy is AllocationStrategy.COST_OPTIMIZED


def test_all_preferences_apply_in_cost_quality_speed_order(allocator):
    result = allocator.allocate(
        3000,
        "openai",
        "gpt-3.5-turbo",
        "coding",
        "medium",
        "",
        Preferences(prioritize_cost=True, prioritize_quality=True, prioritize_speed=True),
    )

    assert result.strategy is AllocationStrategy.BALANCED
    assert result.base_tokens == pytest.approx(2048 * 0.7)
    assert result.tokens == 717


def test_large_input_shrinks_budget_to_minimum_useful(allocator):
    result = allocator.allocate(
        1000, "ollama", "llama2", "conversation", "medium", "x" * 8000
    )

    assert result.input_tokens_estimate == 2000
    assert result.tokens == 100


def test_failures_degrade_to_fallback_budget():
    allocator = TokenAllocator(task_bands={"coding": {}})

    result = allocator.allocate(5000, "openai", "gpt-4", "analysis", "medium")

    assert not result.success
    assert result.strategy is AllocationStrategy.FALLBACK
    assert result.tokens == 4096
    assert result.error


def test_strategy_names():
    assert TokenAllocator.strategy_name(Preferences()) is AllocationStrategy.DEFAULT
    assert (
        TokenAllocator.strategy_name(Preferences(prioritize_speed=True))
        is AllocationStrategy.SPEED_OPTIMIZED
    )
    assert (
        TokenAllocator.strategy_name(
            Preferences(prioritize_quality=True, prioritize_speed=True)
        )
        is AllocationStrategy.QUALITY_FOCUSED
    )


def test_estimate_input_tokens_counts_cjk_separately(allocator):
    assert allocator.estimate_input_tokens("") == 0
    assert allocator.estimate_input_tokens(None) == 0
    assert allocator.estimate_input_tokens("abcd") == 1
    assert allocator.estimate_input_tokens("你好") == 2
    assert allocator.estimate_input_tokens("你好ab") == 2


def test_limits_lookup_falls_back_to_defaults(allocator):
    table = allocator.limits_for("openai")
    assert isinstance(table, dict)
    assert table["gpt-4"].max == 8192

    assert allocator.limits_for("openai", "no-such-model") == TokenLimit(
        min=1, max=4096, optimal=2048, cost_per_1k=0.001
    )
    assert set(allocator.limits_for("unknown-provider")) == {"default"}
    assert allocator.model_limit("openai", "gpt-4") is table["gpt-4"]
    assert allocator.model_limit("acme", "x") == allocator.limits_for("default", "x")


def test_validate_max_tokens(allocator):
    assert allocator.validate_max_tokens(100, "openai", "gpt-4") == {"valid": True}

    too_small = allocator.validate_max_tokens(0, "openai", "gpt-4")
    assert not too_small["valid"]
    assert too_small["suggestion"] == 1

    too_large = allocator.validate_max_tokens(9000, "openai", "gpt-4")
    assert too_large["suggestion"] == 8192


def test_report_flags_expensive_models(allocator):
    result = allocator.allocate(1000, "openai", "gpt-4", "coding", "simple")

    actions = {item.action for item in result.report.recommendations}
    assert "consider_alternatives" in actions
    assert "increase_for_coding" in actions
    assert result.report.cost.currency == "USD"
    assert result.report.context.provider == "openai"


def test_free_models_report_no_cost(allocator):
    result = allocator.allocate(500, "ollama", "llama2", "conversation", "simple")

    assert result.report.cost.currency == "FREE"
    assert result.report.cost.estimated == 0.0


def test_batch_allocate_keeps_request_ids(allocator):
    results = allocator.batch_allocate(
        [
            {"id": "a", "requested_tokens": 500, "provider": "openai", "model": "gpt-4"},
            {"provider": "groq", "model": "gemma-7b-it", "preferences": {"prioritize_speed": True}},
        ]
    )

    assert [item["id"] for item in results] == ["a", 1]
    assert results[1]["result"].strategy is AllocationStrategy.SPEED_OPTIMIZED


def test_usage_stats(allocator):
    stats = allocator.usage_stats()

    assert stats["total_providers"] == 9
    assert "summary" in stats["supported_task_types"]
    assert stats["cost_range"]["min"] == 0.0001
    assert stats["cost_range"]["max"] == 0.075

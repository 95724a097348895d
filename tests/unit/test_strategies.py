import random

from llm_gateway.domain.models import ProviderDescriptor
from llm_gateway.routing.state import RouterState
from llm_gateway.routing.strategies.cost_strategy import CostOptimizedStrategy
from llm_gateway.routing.strategies.least_requests_strategy import (
    LeastRequestsStrategy,
)
from llm_gateway.routing.strategies.priority_strategy import PriorityStrategy
from llm_gateway.routing.strategies.random_strategy import RandomStrategy
from llm_gateway.routing.strategies.round_robin_strategy import RoundRobinStrategy


def _provider(name, priority, cost=0.001):
    return ProviderDescriptor(
        name=name, enabled=True, priority=priority, cost_per_1k_tokens=cost
    )


CANDIDATES = [
    _provider("deepseek", 1, cost=0.0014),
    _provider("groq", 2, cost=0.0002),
    _provider("openai", 3, cost=0.03),
]


def test_strategy_names_are_stable():
    names = [
        strategy.name()
        for strategy in (
            PriorityStrategy(),
            RoundRobinStrategy(),
            LeastRequestsStrategy(),
            CostOptimizedStrategy(),
            RandomStrategy(),
        )
    ]

    assert names == [
        "priority",
        "round_robin",
        "least_requests",
        "cost_optimized",
        "random",
    ]


def test_priority_takes_the_head_of_the_sorted_list():
    assert PriorityStrategy().choose(CANDIDATES, RouterState()).name == "deepseek"


def test_round_robin_wraps_and_advances_even_for_one_candidate():
    state = RouterState()
    strategy = RoundRobinStrategy()

    picks = [strategy.choose(CANDIDATES, state).name for _ in range(4)]
    strategy.choose(CANDIDATES[:1], state)

    assert picks == ["deepseek", "groq", "openai", "deepseek"]
    assert state.round_robin_index == 5


def test_least_requests_keeps_priority_order_on_ties():
    state = RouterState(request_counts={"deepseek": 4, "groq": 1, "openai": 1})

    assert LeastRequestsStrategy().choose(CANDIDATES, state).name == "groq"


def test_least_requests_treats_unknown_providers_as_idle():
    state = RouterState(request_counts={"deepseek": 2, "groq": 2})

    assert LeastRequestsStrategy().choose(CANDIDATES, state).name == "openai"


def test_cost_optimized_picks_cheapest():
    assert CostOptimizedStrategy().choose(CANDIDATES, RouterState()).name == "groq"


def test_random_is_reproducible_with_seeded_rng():
    first = RandomStrategy(random.Random(3))
    second = RandomStrategy(random.Random(3))

    picks = [first.choose(CANDIDATES, RouterState()).name for _ in range(5)]
    again = [second.choose(CANDIDATES, RouterState()).name for _ in range(5)]

    assert picks == again
    assert set(picks) <= {"deepseek", "groq", "openai"}

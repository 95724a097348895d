"""Maps health-probe failures onto coarse failure kinds via a rule table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional, Sequence, Tuple

import httpx

from llm_gateway.domain.exceptions import (
    GatewayError,
    ProviderAuthError,
    ProviderRateLimitError,
)
from llm_gateway.domain.models import FailureKind


@dataclass(frozen=True)
class FailureRule:
    kind: FailureKind
    status_codes: FrozenSet[int]
    substrings: Tuple[str, ...]


FAILURE_RULES: Tuple[FailureRule, ...] = (
    FailureRule(
        kind=FailureKind.NO_API_KEY,
        status_codes=frozenset({401, 403}),
        substrings=(
            "api key",
            "api_key",
            "apikey",
            "unauthorized",
            "authentication",
            "forbidden",
        ),
    ),
    FailureRule(
        kind=FailureKind.UNREACHABLE,
        status_codes=frozenset({404}),
        substrings=(
            "not found",
            "econnrefused",
            "connection refused",
            "enotfound",
            "getaddrinfo",
            "name or service not known",
            "timed out",
            "timeout",
            "unreachable",
        ),
    ),
    FailureRule(
        kind=FailureKind.RATE_LIMITED,
        status_codes=frozenset({429}),
        substrings=("rate limit", "too many requests"),
    ),
)


def classify(
    status_code: Optional[int],
    message: str,
    rules: Sequence[FailureRule] = FAILURE_RULES,
) -> FailureKind:
    """Status codes win over message text; unmatched failures are ``otherError``."""

    if status_code is not None:
        for rule in rules:
            if status_code in rule.status_codes:
                return rule.kind
    lowered = (message or "").lower()
    for rule in rules:
        if any(fragment in lowered for fragment in rule.substrings):
            return rule.kind
    return FailureKind.OTHER_ERROR


def classify_exception(exc: BaseException) -> FailureKind:
    if isinstance(exc, ProviderAuthError):
        return FailureKind.NO_API_KEY
    if isinstance(exc, ProviderRateLimitError):
        return FailureKind.RATE_LIMITED
    transport = exc if isinstance(exc, httpx.TransportError) else exc.__cause__
    if isinstance(transport, (httpx.ConnectError, httpx.TimeoutException)):
        return FailureKind.UNREACHABLE
    status_code = None
    if isinstance(exc, GatewayError):
        raw_status = exc.context.get("status_code")
        status_code = int(raw_status) if raw_status is not None else None
    return classify(status_code, str(exc))

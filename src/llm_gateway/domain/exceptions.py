"""Exception hierarchy for gateway routing, translation and provider failures."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence


class GatewayError(Exception):
    """Base class for all domain-level errors in the gateway."""

    default_message = "Gateway error occurred"
    status_code = 500
    error_type = "internal_server_error"

    def __init__(
        self, message: str | None = None, *, context: Mapping[str, Any] | None = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        formatted = self._format_message()
        super().__init__(formatted)

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class ProviderError(GatewayError):
    """Generic provider-related issues (availability, auth, rate limits)."""

    default_message = "Provider error"


class ProviderUnavailableError(ProviderError):
    """Provider service is down or unreachable."""

    default_message = "Provider is unavailable"


class ProviderRateLimitError(ProviderError):
    """Provider refuses request due to rate limiting."""

    default_message = "Provider rate limit exceeded"
    status_code = 429
    error_type = "rate_limit_error"


class ProviderAuthError(ProviderError):
    """Missing or rejected provider API key."""

    default_message = "Provider API key missing or invalid"
    status_code = 401
    error_type = "authentication_error"


class ProviderNotFoundError(GatewayError):
    """Raised when a provider name is not present in the registry."""

    default_message = "Provider not found"
    status_code = 404
    error_type = "not_found"


class RoutingError(GatewayError):
    """Failures while selecting a provider or model."""

    default_message = "Routing error"


class TranslationError(GatewayError):
    """Raised when a canonical request cannot be converted for a provider."""

    default_message = "Request transformation failed"
    status_code = 400
    error_type = "invalid_request_error"


class InvalidRequestError(GatewayError):
    """Canonical request failed validation; carries every violation found."""

    default_message = "Invalid request"
    status_code = 400
    error_type = "invalid_request_error"

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: Optional[Sequence[str]] = None,
        context: Mapping[str, Any] | None = None,
    ):
        self.errors = list(errors or [])
        if message is None and self.errors:
            message = "; ".join(self.errors)
        super().__init__(message, context=context)


class ConfigurationError(GatewayError):
    """Raised when configuration files or values cannot be used."""

    default_message = "Invalid gateway configuration"

"""Error taxonomy for the search core."""


class CommunitySearchError(Exception):
    """Base class for all errors raised by the search core."""


class InputError(CommunitySearchError):
    """Query rejected before any processing (empty or oversized)."""


class ProviderError(CommunitySearchError):
    """A single inference provider call failed."""

    def __init__(self, message: str, provider: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderTransientError(ProviderError):
    """Timeout, 5xx, rate limit or malformed payload. Eligible for retry."""


class ProviderPermanentError(ProviderError):
    """Request rejected by the provider itself. Not retried on the same provider."""


class CircuitOpenError(ProviderTransientError):
    """Call rejected locally because the provider circuit is open."""


class GatewayError(CommunitySearchError):
    """Every configured provider of a gateway was exhausted."""

    def __init__(self, message: str, errors: list[ProviderError] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class AllProvidersUnavailableError(GatewayError):
    """No provider could serve the request (outage, timeouts, open circuits)."""


class InputRejectedError(GatewayError):
    """Every provider rejected the input as invalid. Callers must not retry."""


class StoreUnavailableError(CommunitySearchError):
    """The Relevance Store (or one of its indexes) is unreachable."""


class SearchUnavailableError(CommunitySearchError):
    """Neither semantic nor lexical retrieval could be performed."""

"""Resilient provider gateways."""

from community_search.gateway.circuit_breaker import CircuitBreaker, CircuitState
from community_search.gateway.resilient import ResilientGateway
from community_search.gateway.understanding import LanguageUnderstandingGateway

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "LanguageUnderstandingGateway",
    "ResilientGateway",
]

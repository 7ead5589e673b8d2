"""Response composition."""

from .composer import CLARIFICATION_EXAMPLES, ResponseComposer
from .formatter import ResponseFormatter
from .models import MemberResult, PaginationInfo, ResponsePayload
from .suggestions import SuggestionEngine

__all__ = [
    "CLARIFICATION_EXAMPLES",
    "MemberResult",
    "PaginationInfo",
    "ResponseComposer",
    "ResponseFormatter",
    "ResponsePayload",
    "SuggestionEngine",
]

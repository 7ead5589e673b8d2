"""Language understanding: query text to structured intent and entities via an LLM."""

import json
import logging
import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from community_search.errors import ProviderTransientError
from community_search.gateway.resilient import ResilientGateway
from community_search.llm.base import LLMProvider
from community_search.query.conversation import ConversationContext
from community_search.query.extractor import MIN_YEAR, normalize_two_digit_year
from community_search.query.models import (
    ExtractedEntities,
    Intent,
    UnderstandingResult,
    normalize_query,
)
from community_search.query.vocabulary import normalize_location

logger = logging.getLogger(__name__)

UNDERSTANDING_PROMPT = """You extract search parameters from queries sent to a community member directory.

Query: "{query}"

Return a JSON object with exactly these keys:
- "intent": one of "find_member", "find_service", "compare", "clarify_needed", "other"
- "entities": an object that may contain
    "graduation_years" (list of 4-digit integers),
    "location" (city or state),
    "degree" (degree or branch),
    "skills" (list of strings),
    "services" (list of strings),
    "name" (person name),
    "organization" (company name)
  Omit any key you cannot fill. Never use empty strings or empty lists.
- "confidence": number between 0 and 1
- "normalized_query": short keyword form of the query for search

If the query refers to an earlier search ("what about Chennai?"), reuse the
earlier filters from the conversation context and change only what the user changed.
Answer with the JSON object only."""

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class UnderstandingPayload(BaseModel):
    """Shape a provider's JSON answer must have before it is trusted."""

    intent: Intent
    entities: ExtractedEntities = ExtractedEntities()
    confidence: float
    normalized_query: str | None = None

    @field_validator("intent", mode="before")
    @classmethod
    def _normalize_intent(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_").replace(" ", "_")
        return value

    @field_validator("entities", mode="before")
    @classmethod
    def _plausible_years(cls, value: Any) -> Any:
        # Out-of-range years would become filters that match nobody
        if isinstance(value, dict) and value.get("graduation_years") is not None:
            value = {**value, "graduation_years": _graduation_years(value["graduation_years"])}
        return value


def _graduation_years(raw: Any) -> list[int]:
    """Keep years the extractor would accept; two-digit years map onto a century."""
    current_year = datetime.now().year
    years = []
    for item in raw if isinstance(raw, list) else [raw]:
        try:
            year = int(item)
        except (TypeError, ValueError):
            continue
        if year < 100:
            year = normalize_two_digit_year(year)
        if year is not None and MIN_YEAR <= year <= current_year:
            years.append(year)
    return years


def parse_understanding_payload(content: str, provider: str) -> UnderstandingPayload:
    """Parse and validate a model answer.

    Raises:
        ProviderTransientError: If the answer is not valid JSON of the expected shape
    """
    text = _FENCE_PATTERN.sub("", content.strip())
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise ProviderTransientError(f"{provider} returned no JSON object", provider)

    try:
        data = json.loads(text[start : end + 1])
        return UnderstandingPayload.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Schema mismatch in {provider} understanding payload: {e}")
        raise ProviderTransientError(f"{provider} returned malformed understanding: {e}", provider) from e


class LanguageUnderstandingGateway:
    """Turns a query (plus conversation context) into an UnderstandingResult."""

    def __init__(self, gateway: ResilientGateway) -> None:
        """Initialize gateway.

        Args:
            gateway: Resilient provider chain for text generation
        """
        self.gateway = gateway

    async def understand(
        self,
        query: str,
        context: ConversationContext | None = None,
    ) -> UnderstandingResult:
        """Ask the provider chain for a structured understanding of ``query``.

        Args:
            query: Raw query text
            context: Prior conversation turns, if any

        Returns:
            UnderstandingResult with source "llm"

        Raises:
            GatewayError: If every provider failed or rejected the request
        """
        prompt = UNDERSTANDING_PROMPT.format(query=query.replace('"', "'"))
        context_text = context.summary() if context else None

        async def operation(provider: LLMProvider) -> UnderstandingResult:
            response = await provider.generate_response(prompt, context=context_text, json_output=True)
            logger.debug(f"{provider.name} understanding payload: {response.content}")
            payload = parse_understanding_payload(response.content, provider.name)
            return self._to_result(payload, query)

        result = await self.gateway.call(operation)
        logger.info(f"LLM understanding: intent={result.intent.value}, confidence={result.confidence}")
        return result

    @staticmethod
    def _to_result(payload: UnderstandingPayload, query: str) -> UnderstandingResult:
        entities = payload.entities
        if entities.location:
            entities = entities.model_copy(update={"location": normalize_location(entities.location)})

        return UnderstandingResult(
            intent=payload.intent,
            entities=entities,
            confidence=round(max(0.0, min(1.0, payload.confidence)), 2),
            normalized_query=normalize_query(payload.normalized_query or query) or normalize_query(query),
            source="llm",
        )

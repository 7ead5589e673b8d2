"""Deterministic, regex and dictionary driven entity extraction.

This is the fast path of query understanding: no I/O, no model calls. It
recognises graduation years, a location, a degree or branch, skills and
services, scores its own confidence and decides whether the query should be
handed to the language-understanding gateway.
"""

import logging
import re
from datetime import date

from community_search.query.models import ExtractedEntities, ExtractionResult
from community_search.query.vocabulary import (
    BOOLEAN_PATTERN,
    COMPARISON_PATTERN,
    CONVERSATIONAL_MARKERS,
    DEGREE_ABBREVIATIONS,
    DEGREE_PHRASES,
    DOTTED_DEGREES,
    FREE_TEXT_MAX_LENGTH,
    FREE_TEXT_MIN_LENGTH,
    GAZETTEER,
    SKILL_VOCABULARY,
    SPAN_STOPWORDS,
    alternation,
    normalize_location,
)

logger = logging.getLogger(__name__)

MIN_YEAR = 1950
CONFIDENCE_THRESHOLD = 0.5

_YEAR4 = r"(19\d{2}|20\d{2})"
_YEAR_KEYWORDS = r"(?:pass\s?outs?|batch|grads?|graduates?|graduated|graduating|year|class)"

YEAR_KEYWORD_PATTERNS = [
    # "2018 passout", "1995 batch"
    re.compile(rf"\b{_YEAR4}\s*{_YEAR_KEYWORDS}\b", re.IGNORECASE),
    # "batch of 1995", "graduated in 2010"
    re.compile(rf"\b{_YEAR_KEYWORDS}\s*(?:of|in)?\s*{_YEAR4}\b", re.IGNORECASE),
]

TWO_DIGIT_YEAR_PATTERNS = [
    # "95 passout", "05 batch"
    re.compile(r"(?<![\d'])'?(\d{2})\s*(?:pass\s?outs?|batch)\b", re.IGNORECASE),
    # "batch of 95", "passout '05"
    re.compile(r"\b(?:batch|pass\s?out)\s*(?:of)?\s*'?(\d{2})\b(?!\d)", re.IGNORECASE),
]

YEAR_RANGE_PATTERN = re.compile(rf"\b{_YEAR4}\s*(?:-|–|to)\s*{_YEAR4}\b", re.IGNORECASE)
BARE_YEAR_PATTERN = re.compile(r"(?<![\d-])\b(19\d{2}|20\d{2})\b(?![\d-])")

_PLACES = alternation(GAZETTEER)
LOCATION_PATTERNS = [
    # "in Chennai", "based in Pune", "working at Mumbai"
    re.compile(
        rf"\b(?:in|at|from|near|located(?:\s+in|\s+at)?|based(?:\s+in|\s+at|\s+out\s+of)?|"
        rf"working(?:\s+in|\s+at|\s+from)?)\s+({_PLACES})\b",
        re.IGNORECASE,
    ),
    # "Chennai based", "Bangalore people"
    re.compile(rf"\b({_PLACES})[\s-]+(?:based|people|members|graduates|alumni)\b", re.IGNORECASE),
    # bare mention
    re.compile(rf"\b({_PLACES})\b", re.IGNORECASE),
]

DEGREE_ABBREVIATION_PATTERN = re.compile(rf"\b({'|'.join(DEGREE_ABBREVIATIONS)})\b")
DOTTED_DEGREE_PATTERN = re.compile(r"\b([BM])\.\s?(Tech|E)\b\.?|\b([BM])\s?Tech\b", re.IGNORECASE)
DEGREE_PHRASE_PATTERNS = [(re.compile(rf"\b{pattern}\b", re.IGNORECASE), label) for pattern, label in DEGREE_PHRASES]

_SKILLS = alternation(SKILL_VOCABULARY)
SKILL_PATTERNS = [
    # explicit skill phrases
    re.compile(
        r"\b(web\s+development|software\s+development|app\s+development|"
        r"digital\s+marketing|IT\s+consulting)\b",
        re.IGNORECASE,
    ),
    # company-type phrases: "software companies", "AI startups"
    re.compile(
        r"\b(software|mobile|web|tech|IT|AI|ML|data|cloud|security)\s+"
        r"(?:companies|company|firms?|startups?|businesses|business)\b",
        re.IGNORECASE,
    ),
    # "provides X services", "expert in X work"
    re.compile(
        r"\b(?:provides?|providing|doing|working\s+in|experts?\s+in|speciali[sz]\w*\s+in|with)\s+"
        r"([a-z][a-z\s/&-]*?)\s+(?:services?|business|work|companies|company)\b",
        re.IGNORECASE,
    ),
    # bare vocabulary keyword
    re.compile(rf"(?<![\w-])({_SKILLS})(?![\w-])", re.IGNORECASE),
]

SERVICE_PATTERNS = [
    # "audit services", "cloud solutions", "payroll providers"
    re.compile(r"\b((?:[a-z/&-]+\s+){0,3}[a-z/&-]+)\s+(?:services?|solutions?|providers?)\b", re.IGNORECASE),
    # "provides tax filing for", "offering interior design"
    re.compile(
        r"\b(?:provides?|providing|offers?|offering)\s+((?:[a-z/&-]+\s+){0,2}[a-z/&-]+)",
        re.IGNORECASE,
    ),
]

_VOCABULARY_PATTERNS = [
    (entry, re.compile(rf"(?<![\w-]){re.escape(entry.lower())}(?![\w-])"))
    for entry in sorted(SKILL_VOCABULARY, key=len, reverse=True)
]

_SPAN_TERMINATORS = {"to", "for", "in", "at", "near", "from", "and", "or", "with", "who", "that"}


def normalize_two_digit_year(value: int) -> int | None:
    """Map a 2-digit year onto a century: 00-30 to 2000s, 50-99 to 1900s."""
    if 0 <= value <= 30:
        return 2000 + value
    if 50 <= value <= 99:
        return 1900 + value
    return None


class EntityExtractor:
    """Deterministic entity extractor for member-directory queries."""

    def __init__(self, current_year: int | None = None) -> None:
        """Initialize extractor.

        Args:
            current_year: Upper bound for accepted years, defaults to today's year
        """
        self.current_year = current_year or date.today().year

    def extract(self, query: str) -> ExtractionResult:
        """Extract entities and decide whether deeper understanding is needed.

        Args:
            query: Raw query text

        Returns:
            ExtractionResult with entities, confidence and routing decision
        """
        matched: list[str] = []

        years = self.extract_years(query)
        if years:
            matched.append("graduation_year")

        location = self.extract_location(query)
        if location:
            matched.append("location")

        degree = self.extract_degree(query)
        if degree:
            matched.append("degree")

        skills = self.extract_skills(query)
        if skills:
            matched.append("skills")

        services = self.extract_services(query)
        if services:
            matched.append("services")

        entities = ExtractedEntities(
            graduation_years=years or None,
            location=location,
            degree=degree,
            skills=skills or None,
            services=services or None,
        )
        confidence = self.score_confidence(matched, query)
        reason = self.deeper_understanding_reason(matched, query, confidence)

        logger.debug(
            f"Extracted {matched} from query (confidence={confidence:.2f}, "
            f"needs_deeper_understanding={reason is not None})"
        )

        return ExtractionResult(
            entities=entities,
            confidence=confidence,
            matched_patterns=matched,
            needs_deeper_understanding=reason is not None,
            fallback_reason=reason,
        )

    def extract_years(self, query: str) -> list[int]:
        years: set[int] = set()

        def accept(year: int | None) -> None:
            if year is not None and MIN_YEAR <= year <= self.current_year:
                years.add(year)

        for match in YEAR_RANGE_PATTERN.finditer(query):
            start, end = sorted((int(match.group(1)), int(match.group(2))))
            for year in range(max(start, MIN_YEAR), min(end, self.current_year) + 1):
                years.add(year)

        for pattern in YEAR_KEYWORD_PATTERNS:
            for match in pattern.finditer(query):
                accept(int(match.group(1)))

        for pattern in TWO_DIGIT_YEAR_PATTERNS:
            for match in pattern.finditer(query):
                accept(normalize_two_digit_year(int(match.group(1))))

        for match in BARE_YEAR_PATTERN.finditer(query):
            accept(int(match.group(1)))

        return sorted(years)

    def extract_location(self, query: str) -> str | None:
        # First tier that matches wins
        for pattern in LOCATION_PATTERNS:
            match = pattern.search(query)
            if match:
                return normalize_location(match.group(1))
        return None

    def extract_degree(self, query: str) -> str | None:
        match = DEGREE_ABBREVIATION_PATTERN.search(query)
        if match:
            return DEGREE_ABBREVIATIONS[match.group(1)]

        match = DOTTED_DEGREE_PATTERN.search(query)
        if match:
            if match.group(3):
                key = f"{match.group(3)}tech"
            else:
                key = f"{match.group(1)}{match.group(2)}"
            return DOTTED_DEGREES[key.lower()]

        for pattern, label in DEGREE_PHRASE_PATTERNS:
            if pattern.search(query):
                return label
        return None

    def extract_skills(self, query: str) -> list[str]:
        skills: list[str] = []
        for pattern in SKILL_PATTERNS:
            for match in pattern.finditer(query):
                term = self._accept_span(match.group(1))
                if term and term not in skills:
                    skills.append(term)
        return skills

    def extract_services(self, query: str) -> list[str]:
        services: list[str] = []
        for pattern in SERVICE_PATTERNS:
            for match in pattern.finditer(query):
                term = self._accept_span(_trim_span(match.group(1)))
                if term and term not in services:
                    services.append(term)
        return services

    def _accept_span(self, span: str | None) -> str | None:
        """Map a span onto the vocabulary, or accept it as bounded free text."""
        if not span:
            return None
        span = " ".join(span.split()).lower()

        for entry, pattern in _VOCABULARY_PATTERNS:
            if pattern.search(span):
                return entry
        for entry, _ in _VOCABULARY_PATTERNS:
            if re.search(rf"(?<![\w-]){re.escape(span)}(?![\w-])", entry.lower()):
                return entry

        if FREE_TEXT_MIN_LENGTH <= len(span) <= FREE_TEXT_MAX_LENGTH:
            return span
        return None

    @staticmethod
    def score_confidence(matched: list[str], query: str) -> float:
        """Deterministic confidence from matched categories and query shape."""
        confidence = min(0.25 * len(matched), 0.75)

        if "graduation_year" in matched:
            confidence += 0.1
        if "location" in matched:
            confidence += 0.05
        if "degree" in matched:
            confidence += 0.1

        if len(query) < 15:
            confidence -= 0.1
        if len(query.split()) < 3:
            confidence -= 0.1

        return round(max(0.0, min(1.0, confidence)), 4)

    @staticmethod
    def deeper_understanding_reason(matched: list[str], query: str, confidence: float) -> str | None:
        """First condition requiring the language-understanding gateway, if any."""
        if confidence < CONFIDENCE_THRESHOLD:
            return f"low confidence ({confidence:.2f})"
        if not matched:
            return "no patterns matched"

        lowered = query.lower()
        for marker in CONVERSATIONAL_MARKERS:
            if re.search(rf"\b{re.escape(marker)}\b", lowered):
                return f"conversational marker '{marker}'"
        if COMPARISON_PATTERN.search(lowered):
            return "comparison language"
        if BOOLEAN_PATTERN.search(lowered):
            return "boolean connector"
        return None


def _trim_span(span: str) -> str:
    """Drop leading filler words and cut at the first connector."""
    words = span.lower().split()
    while words and words[0] in SPAN_STOPWORDS:
        words.pop(0)
    for i, word in enumerate(words):
        if word in _SPAN_TERMINATORS:
            words = words[:i]
            break
    while words and words[-1] in SPAN_STOPWORDS:
        words.pop()
    return " ".join(words)

"""Shared test doubles: scripted providers and an in-memory Relevance Store."""

import math
import zlib

import pytest

from community_search.embedding.models import EmbeddingVector, LexicalHit, MemberProfile, VectorHit
from community_search.embedding.store import RelevanceStore, tokenize
from community_search.errors import StoreUnavailableError
from community_search.llm.base import EmbeddingResult, LLMProvider, ResponseResult

DIMENSIONS = 768


def text_vector(text: str, dimensions: int = DIMENSIONS) -> list[float]:
    """Deterministic bag-of-words vector, unit length."""
    values = [0.0] * dimensions
    for token in tokenize(text):
        values[zlib.crc32(token.encode()) % dimensions] += 1.0
    norm = math.sqrt(sum(v * v for v in values))
    if norm == 0:
        values[0] = 1.0
        return values
    return [v / norm for v in values]


class FakeProvider(LLMProvider):
    """Provider whose answers are scripted per call.

    ``responses`` and ``embedding_errors`` are consumed in order; an item that
    is an exception is raised instead of returned.
    """

    def __init__(
        self,
        name: str = "fake",
        responses: list | None = None,
        embedding_errors: list | None = None,
        embedding_model: str = "fake-embed-v1",
        dimensions: int = DIMENSIONS,
        supports_embeddings: bool = True,
    ) -> None:
        self.name = name
        self.responses = list(responses or [])
        self.embedding_errors = list(embedding_errors or [])
        self._embedding_model = embedding_model
        self.dimensions = dimensions
        self.supports_embeddings = supports_embeddings
        self.response_calls: list[dict] = []
        self.embedding_calls: list[str] = []
        self.closed = False

    @property
    def embedding_model(self) -> str | None:
        return self._embedding_model

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        self.embedding_calls.append(text)
        if self.embedding_errors:
            error = self.embedding_errors.pop(0)
            if error is not None:
                raise error
        return EmbeddingResult(
            embedding=text_vector(text, self.dimensions),
            model=self._embedding_model,
            provider=self.name,
        )

    async def generate_response(
        self,
        prompt: str,
        context: str | None = None,
        json_output: bool = False,
    ) -> ResponseResult:
        self.response_calls.append({"prompt": prompt, "context": context, "json_output": json_output})
        if not self.responses:
            raise AssertionError(f"{self.name} received an unexpected generate_response call")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return ResponseResult(content=item, model=f"{self.name}-chat", provider=self.name)

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


class InMemoryRelevanceStore(RelevanceStore):
    """Relevance Store over plain dicts, with switchable outages."""

    def __init__(self) -> None:
        self.profiles: dict[str, MemberProfile] = {}
        self.vectors: dict[str, EmbeddingVector] = {}
        self.vector_down = False
        self.lexical_down = False

    async def vector_search(self, vector: EmbeddingVector, top_k: int) -> list[VectorHit]:
        if self.vector_down:
            raise StoreUnavailableError("vector index down")
        hits = []
        for membership_id, stored in self.vectors.items():
            similarity = sum(a * b for a, b in zip(vector.values, stored.values))
            hits.append(VectorHit(membership_id, 1.0 - similarity, stored.model))
        hits.sort(key=lambda h: (h.distance, h.membership_id))
        return hits[:top_k]

    async def lexical_search(self, tokens: list[str], top_k: int) -> list[LexicalHit]:
        if self.lexical_down:
            raise StoreUnavailableError("lexical index down")
        wanted = set(tokens)
        hits = []
        for membership_id, profile in self.profiles.items():
            overlap = len(wanted & set(tokenize(profile.document())))
            if overlap:
                hits.append(LexicalHit(membership_id, float(overlap)))
        hits.sort(key=lambda h: (-h.rank, h.membership_id))
        return hits[:top_k]

    async def fetch_profiles(self, membership_ids: list[str]) -> dict[str, MemberProfile]:
        return {i: self.profiles[i] for i in membership_ids if i in self.profiles}

    async def upsert_profiles(
        self,
        profiles: list[MemberProfile],
        vectors: list[EmbeddingVector],
    ) -> int:
        for profile, vector in zip(profiles, vectors):
            self.profiles[profile.membership_id] = profile
            self.vectors[profile.membership_id] = vector
        return len(profiles)

    async def health_check(self) -> bool:
        return not (self.vector_down and self.lexical_down)

    def add(self, profile: MemberProfile, model: str = "fake-embed-v1") -> None:
        """Index a profile with the deterministic text vector."""
        self.profiles[profile.membership_id] = profile.model_copy(update={"embedding_model": model})
        self.vectors[profile.membership_id] = EmbeddingVector(
            values=text_vector(profile.document()),
            provider="fake",
            model=model,
        )


SAMPLE_PROFILES = [
    MemberProfile(
        membership_id="m-001",
        name="Priya Raman",
        email="priya@example.com",
        phone="+91 98450 12345",
        city="Bangalore",
        graduation_year=2018,
        degree="B.E",
        branch="Computer Science",
        organization="Acme Analytics",
        designation="Data Scientist",
        skills=["machine learning", "python"],
    ),
    MemberProfile(
        membership_id="m-002",
        name="Arjun Mehta",
        email="arjun@example.com",
        phone="9840011111",
        city="Chennai",
        graduation_year=2015,
        degree="B.E",
        branch="ECE",
        organization="SecureNet",
        designation="Security Consultant",
        skills=["security", "networking"],
        services=["security audits"],
    ),
    MemberProfile(
        membership_id="m-003",
        name="Kavya Iyer",
        email="kavya@example.com",
        city="Bangalore",
        graduation_year=2018,
        degree="MBA",
        organization="Iyer Foods",
        designation="Founder",
        skills=["marketing"],
        services=["catering"],
    ),
    MemberProfile(
        membership_id="m-004",
        name="Rahul Nair",
        email="rahul@example.com",
        city="Mumbai",
        graduation_year=2010,
        degree="B.Tech",
        branch="Mechanical",
        organization="Nair Works",
        designation="Engineer",
        skills=["machine learning", "robotics"],
    ),
]


@pytest.fixture
def store() -> InMemoryRelevanceStore:
    memory_store = InMemoryRelevanceStore()
    for profile in SAMPLE_PROFILES:
        memory_store.add(profile)
    return memory_store


@pytest.fixture
def embed_provider() -> FakeProvider:
    return FakeProvider(name="fake-embed")

"""Embedding vectors, member profiles and store hits."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict


def model_family(model: str | None) -> str:
    """Provider-independent model identifier ("models/text-embedding-004" -> "text-embedding-004")."""
    if not model:
        return ""
    return model.rsplit("/", 1)[-1].lower()


class EmbeddingVector(BaseModel):
    """Fixed-length vector tagged with the provider and model that produced it."""

    model_config = ConfigDict(frozen=True)

    values: list[float]
    provider: str
    model: str

    @property
    def dimensions(self) -> int:
        return len(self.values)

    @property
    def family(self) -> str:
        return model_family(self.model)

    def is_comparable(self, other: "EmbeddingVector | str | None") -> bool:
        """Vectors are only comparable when produced by the same model family."""
        if other is None:
            return False
        other_model = other if isinstance(other, str) else other.model
        return self.family == model_family(other_model)


class MemberProfile(BaseModel):
    """One community membership as held by the Relevance Store."""

    membership_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    city: str | None = None
    graduation_year: int | None = None
    degree: str | None = None
    branch: str | None = None
    organization: str | None = None
    designation: str | None = None
    skills: list[str] = []
    services: list[str] = []
    embedding_model: str | None = None

    def document(self) -> str:
        """Text blob used for both the embedding and the lexical index."""
        parts = [self.name]
        if self.designation or self.organization:
            parts.append(" at ".join(p for p in (self.designation, self.organization) if p))
        if self.city:
            parts.append(f"Based in {self.city}")
        education = " ".join(
            str(p) for p in (self.degree, self.branch, self.graduation_year) if p
        )
        if education:
            parts.append(f"Graduated {education}")
        if self.skills:
            parts.append(f"Skills: {', '.join(self.skills)}")
        if self.services:
            parts.append(f"Services: {', '.join(self.services)}")
        contact = " ".join(p for p in (self.email, self.phone) if p)
        if contact:
            parts.append(contact)
        return ". ".join(parts)

    def to_metadata(self) -> dict[str, Any]:
        """Flatten into scalar metadata (vector stores reject lists and None)."""
        data = self.model_dump(exclude={"membership_id"}, exclude_none=True)
        data["skills"] = "|".join(self.skills)
        data["services"] = "|".join(self.services)
        return data

    @classmethod
    def from_metadata(cls, membership_id: str, metadata: dict[str, Any]) -> "MemberProfile":
        data = dict(metadata)
        for key in ("skills", "services"):
            raw = data.get(key) or ""
            data[key] = [v for v in raw.split("|") if v] if isinstance(raw, str) else list(raw)
        return cls(membership_id=membership_id, **data)


@dataclass(frozen=True)
class VectorHit:
    """Nearest-neighbour result: cosine distance plus the stored vector's model."""

    membership_id: str
    distance: float
    embedding_model: str | None = None


@dataclass(frozen=True)
class LexicalHit:
    """Full-text result; higher rank is better."""

    membership_id: str
    rank: float

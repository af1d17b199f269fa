"""Classification, scoring and export models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from .record import CanonicalRecord


class ProviderCategory(str, Enum):
    """Target business categories."""

    DENTIST = "dentist"
    DERMATOLOGIST = "dermatologist"
    PLASTIC_SURGEON = "plastic_surgeon"
    AESTHETIC_PROVIDER = "aesthetic_provider"
    MEDICAL_SPA = "medical_spa"
    UNCLASSIFIED = "unclassified"


class ConfidenceTier(str, Enum):
    """Coarse bucket derived from the numeric score."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ClassificationResult(BaseModel):
    """Category derived from a record's taxonomy codes."""

    category: ProviderCategory = ProviderCategory.UNCLASSIFIED
    matched_code: Optional[str] = None

    @property
    def is_classified(self) -> bool:
        return self.category != ProviderCategory.UNCLASSIFIED


class ScoreResult(BaseModel):
    """Bounded confidence score with the reasons that produced it."""

    score: float = Field(ge=0.0, le=100.0)
    tier: ConfidenceTier
    profile: str = Field(description="Scoring profile used")
    reasons: list[str] = Field(default_factory=list)
    keyword_categories: list[str] = Field(
        default_factory=list,
        description="Categories whose primary keywords matched the name",
    )


class ScoredProvider(BaseModel):
    """A merged record with its classification and score."""

    record: CanonicalRecord
    classification: ClassificationResult
    score: ScoreResult
    category: ProviderCategory
    category_source: str = Field(default="taxonomy", description="'taxonomy', 'keyword' or 'none'")
    rank: Optional[int] = None


class ExportRow(BaseModel):
    """Flat tabular projection of a scored provider."""

    identifier: str
    name: str
    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    phone: str = ""
    category: str
    score: float
    tier: str
    source_tag: str = ""

    @classmethod
    def columns(cls) -> list[str]:
        return list(cls.model_fields.keys())

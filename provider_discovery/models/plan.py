"""Query plan models consumed by registry connectors."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StrategyKind(str, Enum):
    """Dimension a plan searches along."""

    TAXONOMY = "taxonomy"
    KEYWORD = "keyword"
    POSTAL = "postal"
    OFFICIAL_NAME = "official_name"


class SourceKind(str, Enum):
    """Where raw records come from."""

    REGISTRY = "registry"
    WEB_SEARCH = "web_search"


class Jurisdiction(BaseModel):
    """A single search area: a state, optionally narrowed to a city or postal code."""

    model_config = ConfigDict(frozen=True)

    state: str = Field(description="Two-letter state code")
    city: Optional[str] = None
    postal_code: Optional[str] = None

    def label(self) -> str:
        parts = [self.postal_code or self.city, self.state]
        return ", ".join(p for p in parts if p)


class QueryPlan(BaseModel):
    """One query to run against a source, paged from `cursor` onward."""

    model_config = ConfigDict(frozen=True)

    jurisdiction: Jurisdiction
    strategy: StrategyKind
    value: str = Field(description="Taxonomy code, keyword, postal code or surname pattern")
    source: SourceKind = SourceKind.REGISTRY
    enumeration_type: Optional[str] = Field(
        default=None,
        description="Registry entity type filter: NPI-1 individuals, NPI-2 organizations",
    )
    cursor: int = Field(default=0, ge=0, description="Offset of the first page to fetch")
    safety_cap: int = Field(default=1000, gt=0, description="Stop once the offset exceeds this")

    def describe(self) -> str:
        etype = f" [{self.enumeration_type}]" if self.enumeration_type else ""
        return f"{self.source.value}:{self.strategy.value}={self.value!r} in {self.jurisdiction.label()}{etype}"


@dataclass
class Page:
    """One page of raw records returned for a plan."""

    records: list[dict] = field(default_factory=list)
    cursor: int = 0
    next_cursor: Optional[int] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

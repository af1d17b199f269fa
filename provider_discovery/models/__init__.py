"""Data models for provider discovery."""

from .plan import (
    Jurisdiction,
    Page,
    QueryPlan,
    SourceKind,
    StrategyKind,
)
from .profile import (
    ConfigurationError,
    DiscoveryProfile,
    TargetArea,
)
from .record import (
    Address,
    AlternateIdentifier,
    CanonicalRecord,
    TaxonomyEntry,
)
from .result import (
    ClassificationResult,
    ConfidenceTier,
    ExportRow,
    ProviderCategory,
    ScoredProvider,
    ScoreResult,
)

__all__ = [
    "Jurisdiction",
    "Page",
    "QueryPlan",
    "SourceKind",
    "StrategyKind",
    "ConfigurationError",
    "DiscoveryProfile",
    "TargetArea",
    "Address",
    "AlternateIdentifier",
    "CanonicalRecord",
    "TaxonomyEntry",
    "ClassificationResult",
    "ConfidenceTier",
    "ExportRow",
    "ProviderCategory",
    "ScoredProvider",
    "ScoreResult",
]

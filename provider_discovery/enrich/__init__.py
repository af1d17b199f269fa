"""Plan generation, normalization, deduplication and classification."""

from .strategies import generate_plans
from .identity import DerivedHashIdentity, ExternalIdIdentity, IdentityStrategy
from .normalizer import RecordNormalizer, extract_phone
from .dedupe import ProviderCollection, merge_records
from .classifier import TaxonomyClassifier

__all__ = [
    "generate_plans",
    "IdentityStrategy",
    "ExternalIdIdentity",
    "DerivedHashIdentity",
    "RecordNormalizer",
    "extract_phone",
    "ProviderCollection",
    "merge_records",
    "TaxonomyClassifier",
]

"""Confidence scoring and result assembly."""

from .rules import (
    KEYWORD_PROFILE,
    REGISTRY_PROFILE,
    RuleTarget,
    RuleWeights,
    ScoringProfile,
    ScoringRule,
    build_rules,
)
from .scorer import ConfidenceScorer, tier_for
from .assembler import ResultAssembler, filter_by_tier, rank, to_export_rows

__all__ = [
    "KEYWORD_PROFILE",
    "REGISTRY_PROFILE",
    "RuleTarget",
    "RuleWeights",
    "ScoringProfile",
    "ScoringRule",
    "build_rules",
    "ConfidenceScorer",
    "tier_for",
    "ResultAssembler",
    "filter_by_tier",
    "rank",
    "to_export_rows",
]

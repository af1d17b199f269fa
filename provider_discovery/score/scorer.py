"""Confidence scoring for merged provider records."""

import logging
from functools import reduce
from typing import Optional

from provider_discovery.config import settings
from provider_discovery.models import CanonicalRecord, ConfidenceTier, ScoreResult
from provider_discovery.enrich.classifier import TaxonomyClassifier
from .rules import KEYWORD_PROFILE, REGISTRY_PROFILE, ScoringProfile, ScoringRule

logger = logging.getLogger(__name__)


def tier_for(
    score: float,
    high: Optional[float] = None,
    medium: Optional[float] = None,
) -> ConfidenceTier:
    high = settings.score_high_threshold if high is None else high
    medium = settings.score_medium_threshold if medium is None else medium
    if score >= high:
        return ConfidenceTier.HIGH
    if score >= medium:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


class _Tally:
    """Fold state: ungrouped hits add up, grouped hits keep their strongest member."""

    def __init__(self):
        self.hits: list[ScoringRule] = []
        self.groups: dict[str, ScoringRule] = {}

    def add(self, rule: ScoringRule) -> "_Tally":
        if rule.group is None:
            self.hits.append(rule)
            return self
        best = self.groups.get(rule.group)
        if best is None or (rule.weight, rule.term) > (best.weight, best.term):
            self.groups[rule.group] = rule
        return self

    def applied(self) -> list[ScoringRule]:
        return self.hits + [self.groups[g] for g in sorted(self.groups)]


class ConfidenceScorer:
    """Score records against a rule table.

    Records without taxonomy entries are scored with the keyword profile
    (higher base); the rest with the registry profile.
    """

    def __init__(
        self,
        registry_profile: ScoringProfile = REGISTRY_PROFILE,
        keyword_profile: ScoringProfile = KEYWORD_PROFILE,
        classifier: Optional[TaxonomyClassifier] = None,
        high_threshold: Optional[float] = None,
        medium_threshold: Optional[float] = None,
    ):
        self.registry_profile = registry_profile
        self.keyword_profile = keyword_profile
        self.classifier = classifier or TaxonomyClassifier()
        self.high_threshold = high_threshold
        self.medium_threshold = medium_threshold

    def profile_for(self, record: CanonicalRecord) -> ScoringProfile:
        return self.registry_profile if record.taxonomies else self.keyword_profile

    def score(self, record: CanonicalRecord, profile: Optional[ScoringProfile] = None) -> ScoreResult:
        profile = profile or self.profile_for(record)

        name = (record.name or "").lower()
        text = " ".join(p for p in [name, (record.description or "").lower()] if p)
        codes = {c.upper() for c in record.taxonomy_codes}

        matched = [rule for rule in profile.rules if rule.matches(name, text, codes)]
        keyword_categories = sorted({r.category for r in matched if r.category})

        # Exclusions do not apply to records known to be in the excluded category
        known = set(keyword_categories)
        classification = self.classifier.classify(record)
        if classification.is_classified:
            known.add(classification.category.value)
        matched = [rule for rule in matched if not self._exempt(rule, known, classification.is_classified)]

        tally = reduce(lambda acc, rule: acc.add(rule), matched, _Tally())
        applied = tally.applied()

        raw = profile.base + sum(rule.weight for rule in applied)
        score = max(0.0, min(100.0, float(raw)))

        reasons = [f"base {profile.base:g} ({profile.name} profile)"]
        reasons.extend(rule.reason() for rule in applied)
        if score != raw:
            reasons.append(f"clamped {raw:g} to {score:g}")

        return ScoreResult(
            score=score,
            tier=tier_for(score, self.high_threshold, self.medium_threshold),
            profile=profile.name,
            reasons=reasons,
            keyword_categories=self._ordered_categories(keyword_categories, profile),
        )

    @staticmethod
    def _exempt(rule: ScoringRule, known: set[str], taxonomy_classified: bool) -> bool:
        if rule.weight >= 0:
            return False
        if rule.waived_by_taxonomy and taxonomy_classified:
            return True
        return bool(known.intersection(rule.exempt_categories))

    @staticmethod
    def _ordered_categories(categories: list[str], profile: ScoringProfile) -> list[str]:
        """Categories in rule-table order, so promotion picks deterministically."""
        order: list[str] = []
        for rule in profile.rules:
            if rule.category in categories and rule.category not in order:
                order.append(rule.category)
        return order

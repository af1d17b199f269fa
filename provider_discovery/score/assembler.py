"""Final classification, scoring, filtering and export projection."""

import logging
from typing import Iterable, Optional

from provider_discovery.models import (
    CanonicalRecord,
    ConfidenceTier,
    ExportRow,
    ProviderCategory,
    ScoredProvider,
)
from provider_discovery.enrich.classifier import TaxonomyClassifier
from provider_discovery.enrich.dedupe import ProviderCollection
from .scorer import ConfidenceScorer

logger = logging.getLogger(__name__)


class ResultAssembler:
    """Turn the merged collection into ranked results.

    Classification and scores are always computed from the fully merged
    record. Filtering produces a new list; the collection is never modified.
    """

    def __init__(
        self,
        classifier: Optional[TaxonomyClassifier] = None,
        scorer: Optional[ConfidenceScorer] = None,
        min_score: float = 0.0,
        include_unclassified: bool = False,
    ):
        self.classifier = classifier or TaxonomyClassifier()
        self.scorer = scorer or ConfidenceScorer(classifier=self.classifier)
        self.min_score = min_score
        self.include_unclassified = include_unclassified

    def evaluate(self, record: CanonicalRecord) -> ScoredProvider:
        classification = self.classifier.classify(record)
        score = self.scorer.score(record)

        category = classification.category
        category_source = "taxonomy"
        if not classification.is_classified:
            category_source = "none"
            if score.keyword_categories:
                category = ProviderCategory(score.keyword_categories[0])
                category_source = "keyword"

        return ScoredProvider(
            record=record,
            classification=classification,
            score=score,
            category=category,
            category_source=category_source,
        )

    def evaluate_all(self, records: Iterable[CanonicalRecord]) -> list[ScoredProvider]:
        return rank([self.evaluate(record) for record in records])

    def select(self, results: list[ScoredProvider]) -> list[ScoredProvider]:
        """Apply the score threshold and unclassified policy, then re-rank."""
        kept = [
            result for result in results
            if result.score.score >= self.min_score
            and (self.include_unclassified or result.category != ProviderCategory.UNCLASSIFIED)
        ]
        return rank([result.model_copy() for result in kept])

    def assemble(self, collection: ProviderCollection) -> list[ScoredProvider]:
        evaluated = self.evaluate_all(collection.records())
        selected = self.select(evaluated)
        logger.info(
            f"Assembled {len(selected)} of {len(evaluated)} providers "
            f"(min_score={self.min_score:g}, include_unclassified={self.include_unclassified})"
        )
        return selected


def rank(results: list[ScoredProvider]) -> list[ScoredProvider]:
    """Sort by score descending, then name, then identifier; ranks start at 1."""
    results.sort(key=lambda r: (-r.score.score, r.record.name.lower(), r.record.identifier))
    for i, result in enumerate(results):
        result.rank = i + 1
    return results


def filter_by_tier(results: list[ScoredProvider], tiers: Iterable[ConfidenceTier]) -> list[ScoredProvider]:
    wanted = set(tiers)
    return [r for r in results if r.score.tier in wanted]


def to_export_rows(results: list[ScoredProvider]) -> list[ExportRow]:
    """Flatten results into the fixed export column set."""
    rows = []
    for result in results:
        record = result.record
        address = record.practice_address
        rows.append(ExportRow(
            identifier=record.identifier,
            name=record.name,
            address_1=address.address_1 if address else "",
            address_2=address.address_2 if address else "",
            city=address.city if address else "",
            state=address.state if address else "",
            postal_code=address.postal_code if address else "",
            phone=record.phone or "",
            category=result.category.value,
            score=round(result.score.score, 1),
            tier=result.score.tier.value,
            source_tag=";".join(record.source_tags),
        ))
    return rows

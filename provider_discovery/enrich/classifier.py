"""Taxonomy-code classification into target categories."""

import logging
from typing import Optional

from provider_discovery.models import (
    CanonicalRecord,
    ClassificationResult,
    ProviderCategory,
)
from provider_discovery.models.profile import DEFAULT_TAXONOMY_TABLES

logger = logging.getLogger(__name__)


class TaxonomyClassifier:
    """Map a record's taxonomy codes to a category.

    Codes are walked in record order and the first one found in any table
    decides. Tables are checked in their configured order, so a code listed
    under two categories belongs to the earlier one.
    """

    def __init__(self, tables: Optional[dict[str, list[str]]] = None):
        tables = tables if tables is not None else DEFAULT_TAXONOMY_TABLES
        self._lookup: dict[str, ProviderCategory] = {}
        for category_name, codes in tables.items():
            try:
                category = ProviderCategory(category_name)
            except ValueError:
                logger.warning(f"Ignoring taxonomy table for unknown category '{category_name}'")
                continue
            for code in codes:
                self._lookup.setdefault(code.strip().upper(), category)

    def classify(self, record: CanonicalRecord) -> ClassificationResult:
        return self.classify_codes(record.taxonomy_codes)

    def classify_codes(self, codes: list[str]) -> ClassificationResult:
        for code in codes or []:
            category = self._lookup.get((code or "").strip().upper())
            if category is not None:
                return ClassificationResult(category=category, matched_code=code)
        return ClassificationResult()

    def codes_for(self, category: ProviderCategory) -> list[str]:
        return [code for code, cat in self._lookup.items() if cat == category]

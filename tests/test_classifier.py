"""Tests for taxonomy classification."""

from provider_discovery.enrich import TaxonomyClassifier
from provider_discovery.models import CanonicalRecord, ProviderCategory, TaxonomyEntry


def record_with_codes(*codes) -> CanonicalRecord:
    return CanonicalRecord(
        identifier="1234567890",
        taxonomies=[TaxonomyEntry(code=code) for code in codes],
    )


class TestTaxonomyClassifier:
    """Tests for first-match classification."""

    def setup_method(self):
        self.classifier = TaxonomyClassifier()

    def test_dentist(self):
        result = self.classifier.classify(record_with_codes("1223G0001X"))
        assert result.category == ProviderCategory.DENTIST
        assert result.matched_code == "1223G0001X"

    def test_dermatologist(self):
        assert self.classifier.classify(record_with_codes("207N00000X")).category == ProviderCategory.DERMATOLOGIST

    def test_plastic_surgeon(self):
        assert self.classifier.classify(record_with_codes("208200000X")).category == ProviderCategory.PLASTIC_SURGEON

    def test_first_matching_code_wins(self):
        result = self.classifier.classify(record_with_codes("999999999X", "208200000X", "122300000X"))
        assert result.category == ProviderCategory.PLASTIC_SURGEON
        assert result.matched_code == "208200000X"

    def test_unmatched_codes_are_unclassified(self):
        result = self.classifier.classify(record_with_codes("390200000X"))
        assert result.category == ProviderCategory.UNCLASSIFIED
        assert result.matched_code is None
        assert not result.is_classified

    def test_empty_taxonomies_are_unclassified(self):
        assert self.classifier.classify(record_with_codes()).category == ProviderCategory.UNCLASSIFIED

    def test_odd_codes_never_raise(self):
        for codes in [[""], ["   "], ["207n00000x"]]:
            result = self.classifier.classify_codes(codes)
            assert result.category in set(ProviderCategory)

    def test_custom_tables_in_order(self):
        classifier = TaxonomyClassifier({
            "dermatologist": ["111111111X"],
            "dentist": ["111111111X", "222222222X"],
        })
        assert classifier.classify(record_with_codes("111111111X")).category == ProviderCategory.DERMATOLOGIST
        assert classifier.classify(record_with_codes("222222222X")).category == ProviderCategory.DENTIST

    def test_unknown_category_table_ignored(self):
        classifier = TaxonomyClassifier({"veterinarian": ["174M00000X"]})
        assert classifier.classify(record_with_codes("174M00000X")).category == ProviderCategory.UNCLASSIFIED

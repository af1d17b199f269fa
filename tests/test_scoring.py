"""Tests for confidence scoring and result assembly."""

import pytest

from provider_discovery.enrich import ProviderCollection
from provider_discovery.models import (
    Address,
    CanonicalRecord,
    ConfidenceTier,
    ProviderCategory,
    TaxonomyEntry,
)
from provider_discovery.score import (
    KEYWORD_PROFILE,
    REGISTRY_PROFILE,
    ConfidenceScorer,
    ResultAssembler,
    to_export_rows,
    tier_for,
)
from provider_discovery.enrich import TaxonomyClassifier


def make_record(name="", description=None, codes=(), identifier="1234567890", **kwargs) -> CanonicalRecord:
    return CanonicalRecord(
        identifier=identifier,
        name=name,
        description=description,
        taxonomies=[TaxonomyEntry(code=code) for code in codes],
        **kwargs,
    )


class TestTiers:
    """Tests for tier thresholds."""

    @pytest.mark.parametrize("score,tier", [
        (100, ConfidenceTier.HIGH),
        (70, ConfidenceTier.HIGH),
        (69.9, ConfidenceTier.MEDIUM),
        (40, ConfidenceTier.MEDIUM),
        (39.9, ConfidenceTier.LOW),
        (0, ConfidenceTier.LOW),
    ])
    def test_thresholds(self, score, tier):
        assert tier_for(score, 70, 40) == tier


class TestConfidenceScorer:
    """Tests for the rule fold."""

    def setup_method(self):
        self.scorer = ConfidenceScorer()

    def test_medical_spa_example(self):
        record = make_record(
            name="Manhattan Medical Spa",
            description="licensed, offers botox and laser treatments",
        )
        assert TaxonomyClassifier().classify(record).category == ProviderCategory.UNCLASSIFIED

        result = self.scorer.score(record, KEYWORD_PROFILE)

        assert result.score >= 70
        assert result.tier == ConfidenceTier.HIGH
        assert result.keyword_categories == ["medical_spa"]

    def test_record_without_taxonomy_uses_keyword_profile(self):
        result = self.scorer.score(make_record(name="Manhattan Medical Spa"))
        assert result.profile == "keyword"
        assert result.score == 70

    def test_record_with_taxonomy_uses_registry_profile(self):
        result = self.scorer.score(make_record(name="Jane Doe, MD", codes=["207N00000X"]))
        assert result.profile == "registry"
        assert result.score == 15

    def test_empty_text_scores_base_only(self):
        assert self.scorer.score(make_record(), KEYWORD_PROFILE).score == 40
        assert self.scorer.score(make_record(), REGISTRY_PROFILE).score == 0

    def test_primary_keywords_count_once_per_category(self):
        one = self.scorer.score(make_record(name="Glow Med Spa"), REGISTRY_PROFILE)
        synonyms = self.scorer.score(make_record(name="Glow Med Spa Medspa Medical Spa"), REGISTRY_PROFILE)
        assert one.score == synonyms.score == 30

    def test_service_keywords_accumulate(self):
        result = self.scorer.score(
            make_record(name="Glow", description="botox, filler and microneedling"),
            REGISTRY_PROFILE,
        )
        assert result.score == 30

    def test_professional_bonus_once(self):
        result = self.scorer.score(
            make_record(name="Glow", description="licensed, board certified, medical director on site"),
            REGISTRY_PROFILE,
        )
        assert result.score == 10

    def test_aesthetic_taxonomy_codes_each_count(self):
        result = self.scorer.score(make_record(codes=["207N00000X", "363L00000X", "390200000X"]))
        assert result.score == 30

    def test_exclusion_dominates(self):
        result = self.scorer.score(make_record(name="Mercy Hospital Medical Spa"), KEYWORD_PROFILE)
        assert result.score == 20
        assert result.tier == ConfidenceTier.LOW
        assert any("hospital" in reason for reason in result.reasons)

    def test_dental_exclusion_skipped_for_dentists(self):
        by_code = self.scorer.score(make_record(name="Bright Dental Care", codes=["122300000X"]))
        assert by_code.score == 0
        assert not any("exclusion" in reason for reason in by_code.reasons)

        by_keyword = self.scorer.score(make_record(name="Bright Dental Dentistry"), KEYWORD_PROFILE)
        assert by_keyword.score == 70
        assert not any("exclusion" in reason for reason in by_keyword.reasons)

    def test_dental_exclusion_applies_to_other_categories(self):
        result = self.scorer.score(make_record(name="Bright Dental Care", codes=["207N00000X"]))
        assert result.score == 0
        assert any("-50 exclusion: 'dental'" in reason for reason in result.reasons)

        pediatric = self.scorer.score(make_record(name="Pediatric Laser Clinic"), KEYWORD_PROFILE)
        assert pediatric.score == 0
        assert any("-50 exclusion: 'pediatric'" in reason for reason in pediatric.reasons)

    def test_pediatric_dentistry_not_penalized(self):
        result = self.scorer.score(make_record(name="YORKVILLE PEDIATRIC DENTISTRY", codes=["1223P0221X"]))
        assert result.score == 30
        assert not any("exclusion" in reason for reason in result.reasons)

    def test_pediatric_specialty_confirmed_by_taxonomy(self):
        result = self.scorer.score(make_record(
            name="Pediatric Dermatology Associates", codes=["207NP0225X", "207N00000X"],
        ))
        assert result.score == 45
        assert not any("pediatric" in reason for reason in result.reasons)

    def test_hospital_dental_center(self):
        dentist = self.scorer.score(make_record(name="Mercy Hospital Dental Center", codes=["1223G0001X"]))
        assert dentist.score == 0
        assert not any("exclusion" in reason for reason in dentist.reasons)

        by_keyword = self.scorer.score(make_record(name="Mercy Hospital Dentistry"), KEYWORD_PROFILE)
        assert by_keyword.score == 70

        unconfirmed = self.scorer.score(make_record(name="Mercy Hospital Dental Center"), KEYWORD_PROFILE)
        assert unconfirmed.score == 0
        assert any("'hospital'" in reason for reason in unconfirmed.reasons)
        assert any("'dental'" in reason for reason in unconfirmed.reasons)

    def test_contained_terms_score_once(self):
        aesthetics = self.scorer.score(make_record(name="Glow Aesthetics"), REGISTRY_PROFILE)
        assert aesthetics.score == 20

        laser = self.scorer.score(make_record(name="Glow", description="laser hair removal"), REGISTRY_PROFILE)
        assert laser.score == 10

        barber = self.scorer.score(make_record(name="Glow Barbershop"), KEYWORD_PROFILE)
        assert barber.score == 10

    def test_clamped_to_bounds(self):
        high = self.scorer.score(make_record(
            name="Medical Spa Dermatology Plastic Surgery Aesthetic",
            description="licensed botox filler laser ipl prp kybella sculptra",
        ), KEYWORD_PROFILE)
        low = self.scorer.score(make_record(name="Hospital Emergency Urgent Care Salon"), REGISTRY_PROFILE)

        assert high.score == 100
        assert any("clamped" in reason for reason in high.reasons)
        assert low.score == 0

    @pytest.mark.parametrize("name", [
        "", "Glow", "Glow Salon", "Glow Hospital", "Glow Dental", "Glow Med Spa",
        "Glow Medical Spa Dermatology", "Nail Barbershop Emergency",
    ])
    @pytest.mark.parametrize("keyword", ["medspa", "dermatology", "plastic surgery", "dentist"])
    def test_adding_primary_keyword_never_lowers_score(self, name, keyword):
        for profile in (REGISTRY_PROFILE, KEYWORD_PROFILE):
            before = self.scorer.score(make_record(name=name), profile).score
            after = self.scorer.score(make_record(name=f"{name} {keyword}".strip()), profile).score
            assert 0 <= before <= 100
            assert after >= before

    def test_order_independent(self):
        record = make_record(name="Glow Med Spa Salon", description="botox laser licensed")
        forward = self.scorer.score(record, KEYWORD_PROFILE)
        reversed_profile = type(KEYWORD_PROFILE)(
            name="keyword", base=40, rules=tuple(reversed(KEYWORD_PROFILE.rules)),
        )
        backward = self.scorer.score(record, reversed_profile)
        assert forward.score == backward.score
        assert sorted(forward.reasons) == sorted(backward.reasons)

    def test_reasons_explain_score(self):
        result = self.scorer.score(make_record(name="Glow Med Spa", description="botox"), KEYWORD_PROFILE)
        assert result.reasons[0].startswith("base 40")
        assert any("primary keyword (medical_spa)" in r for r in result.reasons)
        assert any("'botox'" in r for r in result.reasons)


class TestResultAssembler:
    """Tests for classification, promotion, filtering and ranking."""

    def make_collection(self) -> ProviderCollection:
        collection = ProviderCollection()
        collection.upsert(make_record(identifier="1", name="Park Dermatology", codes=["207N00000X"]))
        collection.upsert(make_record(identifier="2", name="Glow Medical Spa", description="botox"))
        collection.upsert(make_record(identifier="3", name="Acme Plumbing"))
        collection.upsert(make_record(identifier="4", name="Smile Dental", codes=["122300000X"]))
        return collection

    def test_keyword_promotion(self):
        assembler = ResultAssembler(include_unclassified=True)
        results = {r.record.identifier: r for r in assembler.assemble(self.make_collection())}

        assert results["2"].category == ProviderCategory.MEDICAL_SPA
        assert results["2"].category_source == "keyword"
        assert results["1"].category == ProviderCategory.DERMATOLOGIST
        assert results["1"].category_source == "taxonomy"
        assert results["3"].category == ProviderCategory.UNCLASSIFIED
        assert results["3"].category_source == "none"

    def test_unclassified_dropped_by_default(self):
        results = ResultAssembler().assemble(self.make_collection())
        assert "3" not in [r.record.identifier for r in results]

    def test_min_score_is_a_view(self):
        collection = self.make_collection()
        results = ResultAssembler(min_score=50).assemble(collection)

        assert [r.record.identifier for r in results] == ["2"]
        assert len(collection) == 4

    def test_sorted_and_ranked(self):
        results = ResultAssembler(include_unclassified=True).assemble(self.make_collection())
        scores = [r.score.score for r in results]

        assert scores == sorted(scores, reverse=True)
        assert [r.rank for r in results] == list(range(1, len(results) + 1))

    def test_ties_broken_by_name_then_identifier(self):
        collection = ProviderCollection()
        collection.upsert(make_record(identifier="9", name="Beta Med Spa"))
        collection.upsert(make_record(identifier="8", name="Alpha Med Spa"))
        collection.upsert(make_record(identifier="7", name="Alpha Med Spa"))

        results = ResultAssembler().assemble(collection)
        assert [r.record.identifier for r in results] == ["7", "8", "9"]

    def test_export_rows(self):
        collection = ProviderCollection()
        collection.upsert(make_record(
            name="Glow Medical Spa",
            phone="212-555-0100",
            practice_address=Address(address_1="1 Main St", city="New York", state="NY", postal_code="10001"),
            source_tags=["registry:keyword", "web_search:keyword"],
        ))
        rows = to_export_rows(ResultAssembler().assemble(collection))

        assert len(rows) == 1
        row = rows[0]
        assert row.identifier == "1234567890"
        assert row.city == "New York"
        assert row.phone == "212-555-0100"
        assert row.category == "medical_spa"
        assert row.tier == "High"
        assert row.source_tag == "registry:keyword;web_search:keyword"
        assert list(row.model_dump().keys()) == [
            "identifier", "name", "address_1", "address_2", "city", "state",
            "postal_code", "phone", "category", "score", "tier", "source_tag",
        ]

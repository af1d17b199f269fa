"""Tests for query plan generation."""

import pytest

from provider_discovery.enrich import generate_plans
from provider_discovery.models import (
    ConfigurationError,
    DiscoveryProfile,
    SourceKind,
    StrategyKind,
    TargetArea,
)


def make_profile(**kwargs) -> DiscoveryProfile:
    defaults = {
        "areas": [TargetArea(state="NY", cities=["New York"])],
        "taxonomy_codes": ["207N00000X", "122300000X"],
        "keywords": ["med spa"],
        "official_surnames": ["MD"],
    }
    defaults.update(kwargs)
    return DiscoveryProfile(**defaults)


class TestPlanGeneration:
    """Tests for the strategy cross product."""

    def test_cross_product_per_jurisdiction(self):
        profile = make_profile(areas=[TargetArea(state="NY", cities=["New York", "Brooklyn"])])
        plans = generate_plans(profile)

        # 2 taxonomy + 1 keyword + 1 official name, per city
        assert len(plans) == 8
        assert {p.jurisdiction.city for p in plans} == {"New York", "Brooklyn"}

    def test_deterministic_order(self):
        profile = make_profile()
        first = [p.describe() for p in generate_plans(profile)]
        second = [p.describe() for p in generate_plans(profile)]
        assert first == second
        assert [p.strategy for p in generate_plans(profile)] == [
            StrategyKind.TAXONOMY,
            StrategyKind.TAXONOMY,
            StrategyKind.KEYWORD,
            StrategyKind.OFFICIAL_NAME,
        ]

    def test_area_without_cities_is_statewide(self):
        plans = generate_plans(make_profile(areas=[TargetArea(state="fl")]))
        assert all(p.jurisdiction.state == "FL" for p in plans)
        assert all(p.jurisdiction.city is None for p in plans)

    def test_postal_plans_per_enumeration_type(self):
        profile = make_profile(
            areas=[TargetArea(state="NY", postal_codes=["10017"])],
            taxonomy_codes=[], keywords=[], official_surnames=[],
        )
        plans = generate_plans(profile)

        assert [(p.strategy, p.value, p.enumeration_type) for p in plans] == [
            (StrategyKind.POSTAL, "10017", "NPI-1"),
            (StrategyKind.POSTAL, "10017", "NPI-2"),
        ]
        assert plans[0].jurisdiction.postal_code == "10017"

    def test_values_per_strategy_capped(self):
        profile = make_profile(keywords=[f"term {i}" for i in range(30)], max_values_per_strategy=5)
        plans = generate_plans(profile)
        assert len([p for p in plans if p.strategy == StrategyKind.KEYWORD]) == 5

    def test_total_plans_capped(self):
        profile = make_profile(keywords=[f"term {i}" for i in range(10)], max_plans=3)
        assert len(generate_plans(profile)) == 3

    def test_safety_cap_per_strategy(self):
        plans = generate_plans(make_profile())
        caps = {p.strategy: p.safety_cap for p in plans}
        assert caps[StrategyKind.TAXONOMY] == 10_000
        assert caps[StrategyKind.KEYWORD] == 1_000

    def test_blank_values_skipped(self):
        plans = generate_plans(make_profile(keywords=["", "  "]))
        assert not any(p.strategy == StrategyKind.KEYWORD for p in plans)

    def test_web_plans_only_when_enabled(self):
        assert not any(p.source == SourceKind.WEB_SEARCH for p in generate_plans(make_profile()))

        plans = generate_plans(make_profile(include_web_search=True, web_search_terms=["botox clinic"]))
        web = [p for p in plans if p.source == SourceKind.WEB_SEARCH]
        assert len(web) == 1
        assert web[0].value == "botox clinic"


class TestProfileValidation:
    """Tests for fatal configuration errors."""

    def test_empty_jurisdictions(self):
        with pytest.raises(ConfigurationError):
            make_profile(areas=[]).validate_for_run()

    def test_blank_state(self):
        with pytest.raises(ConfigurationError):
            make_profile(areas=[TargetArea(state=" ")]).validate_for_run()

    def test_no_strategy_values(self):
        profile = make_profile(taxonomy_codes=[], keywords=[], official_surnames=[])
        with pytest.raises(ConfigurationError):
            profile.validate_for_run()

    def test_default_profile_is_valid(self):
        DiscoveryProfile().validate_for_run()

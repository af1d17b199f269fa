"""End-to-end tests for the discovery pipeline with mock connectors."""

import asyncio

import pytest

from provider_discovery.connectors import MockRegistryConnector
from provider_discovery.models import (
    ConfigurationError,
    DiscoveryProfile,
    ProviderCategory,
    StrategyKind,
    TargetArea,
)
from provider_discovery.pipeline import DiscoveryPipeline


def make_profile(**kwargs) -> DiscoveryProfile:
    defaults = {
        "areas": [TargetArea(state="NY", cities=["New York"])],
        "taxonomy_codes": ["207N00000X"],
        "keywords": ["med spa"],
        "official_surnames": [],
    }
    defaults.update(kwargs)
    return DiscoveryProfile(**defaults)


def run(pipeline: DiscoveryPipeline):
    return asyncio.run(pipeline.run())


class TestDiscoveryPipeline:
    """Tests for plan execution, merging and reporting."""

    def test_default_mock_run(self):
        connector = MockRegistryConnector()
        results, report, collection = run(DiscoveryPipeline(make_profile(), connector))

        assert report.plans_total == 2
        assert report.pages_fetched == 2
        assert report.records_seen == 6
        assert report.unique_records == 3
        assert report.failures == []
        assert len(collection) == 3

        by_id = {r.record.identifier: r for r in results}
        assert by_id["1000000001"].category == ProviderCategory.AESTHETIC_PROVIDER
        assert by_id["1000000002"].category == ProviderCategory.DERMATOLOGIST
        assert by_id["1000000003"].category == ProviderCategory.DENTIST
        assert set(by_id["1000000001"].record.source_tags) == {"registry:taxonomy", "registry:keyword"}
        assert [r.rank for r in results] == [1, 2, 3]

    def test_sightings_across_strategies_merge(self):
        def factory(plan, cursor, page_size):
            if cursor > 0:
                return []
            if plan.strategy == StrategyKind.TAXONOMY:
                return [{
                    "number": "1234567890",
                    "basic": {"organization_name": "GLOW MED SPA"},
                    "addresses": [{"address_purpose": "LOCATION", "address_1": "1 MAIN ST",
                                   "state": "NY", "telephone_number": "212-555-0100"}],
                    "taxonomies": [{"code": "363L00000X", "primary": True}],
                }]
            return [{
                "number": "1234567890",
                "basic": {"organization_name": "GLOW MED SPA"},
                "addresses": [
                    {"address_purpose": "LOCATION", "address_1": "1 MAIN ST", "state": "NY"},
                    {"address_purpose": "MAILING", "address_1": "PO BOX 5", "state": "NY"},
                ],
                "other_names": [{"organization_name": "GLOW AESTHETICS"}],
            }]

        results, report, collection = run(
            DiscoveryPipeline(make_profile(), MockRegistryConnector(page_factory=factory))
        )

        assert len(collection) == 1
        record = collection.get("1234567890")
        assert record.phone == "212-555-0100"
        assert record.practice_address.address_1 == "1 MAIN ST"
        assert record.mailing_address.address_1 == "PO BOX 5"
        assert record.alternate_names == ["GLOW AESTHETICS"]
        assert record.taxonomy_codes == ["363L00000X"]

        # Scored once, from the merged record
        assert results[0].score.score == 15 + 30

    def test_failed_pages_do_not_abort_run(self):
        connector = MockRegistryConnector(fail_on={0})
        results, report, _ = run(DiscoveryPipeline(make_profile(), connector))

        assert results == []
        assert report.plans_failed == 2
        assert len(report.failures) == 2
        assert report.completed_at is not None

    def test_unexpected_error_in_one_plan_keeps_other_records(self):
        def factory(plan, cursor, page_size):
            if plan.strategy == StrategyKind.KEYWORD:
                raise KeyError("boom")
            if cursor > 0:
                return []
            return [{"number": "1234567890", "basic": {"organization_name": "PARK DERMATOLOGY"},
                     "taxonomies": [{"code": "207N00000X"}]}]

        results, report, collection = run(
            DiscoveryPipeline(make_profile(), MockRegistryConnector(page_factory=factory))
        )

        assert [r.record.identifier for r in results] == ["1234567890"]
        assert report.plans_failed == 1
        assert "KeyError" in report.failures[0]
        assert report.completed_at is not None

    def test_malformed_records_counted(self):
        def factory(plan, cursor, page_size):
            if cursor > 0 or plan.strategy != StrategyKind.TAXONOMY:
                return []
            return ["junk", {}, {"number": "1999999999", "basic": {"organization_name": "SKIN CLINIC"}}]

        results, report, collection = run(
            DiscoveryPipeline(make_profile(), MockRegistryConnector(page_factory=factory))
        )

        assert report.records_seen == 3
        assert report.records_skipped == 2
        assert len(collection) == 1

    def test_deadline_counts_as_timeout(self):
        class SlowConnector(MockRegistryConnector):
            async def _request_page(self, plan, cursor):
                await asyncio.sleep(1.0)
                return []

        connector = SlowConnector(plan_deadline=0.05)
        results, report, _ = run(DiscoveryPipeline(make_profile(), connector))

        assert report.plans_timed_out == 2
        assert report.plans_failed == 0
        assert results == []

    def test_configuration_error_before_network(self):
        connector = MockRegistryConnector()
        with pytest.raises(ConfigurationError):
            run(DiscoveryPipeline(make_profile(areas=[]), connector))
        assert connector.calls == []

    def test_zero_page_size_is_fatal(self):
        connector = MockRegistryConnector(page_size=0)
        with pytest.raises(ConfigurationError):
            run(DiscoveryPipeline(make_profile(), connector))
        assert connector.calls == []

    def test_web_search_results_promoted(self):
        def search_results(plan, cursor, page_size):
            return [{
                "title": "Glow Medical Spa - Botox in NYC",
                "href": "https://glowmedspa.example.com",
                "body": "Call (212) 555-0100 for botox.",
            }]

        profile = make_profile(
            taxonomy_codes=[], keywords=[], official_surnames=["MD"],
            include_web_search=True, web_search_terms=["medical spa"],
        )
        registry = MockRegistryConnector(page_factory=lambda plan, cursor, size: [])
        web = MockRegistryConnector(page_factory=search_results)

        results, report, _ = run(DiscoveryPipeline(profile, registry, web_search=web))

        assert len(results) == 1
        result = results[0]
        assert result.record.identity_kind == "derived"
        assert result.record.phone == "(212) 555-0100"
        assert result.category == ProviderCategory.MEDICAL_SPA
        assert result.category_source == "keyword"
        assert result.score.score == 40 + 30 + 10

    def test_web_plans_skipped_without_connector(self):
        profile = make_profile(include_web_search=True, web_search_terms=["medical spa"])
        results, report, _ = run(DiscoveryPipeline(profile, MockRegistryConnector()))

        assert report.plans_total == 2

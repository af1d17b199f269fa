"""Discovery pipeline: plans -> pages -> records -> merged collection -> results."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from provider_discovery.config import settings
from provider_discovery.connectors import (
    DuckDuckGoConnector,
    MockRegistryConnector,
    NPIRegistryConnector,
    RegistryConnector,
)
from provider_discovery.connectors.base import DEADLINE_EXCEEDED
from provider_discovery.enrich import (
    ProviderCollection,
    RecordNormalizer,
    TaxonomyClassifier,
    generate_plans,
)
from provider_discovery.models import (
    ConfigurationError,
    DiscoveryProfile,
    QueryPlan,
    ScoredProvider,
    SourceKind,
)
from provider_discovery.score import ConfidenceScorer, ResultAssembler

logger = logging.getLogger(__name__)


@dataclass
class PlanOutcome:
    """What happened to one plan."""

    plan: QueryPlan
    pages: int = 0
    records: int = 0
    skipped: int = 0
    error: Optional[str] = None
    timed_out: bool = False

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class RunReport:
    """Summary of a discovery run, produced whether or not plans failed."""

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    outcomes: list[PlanOutcome] = field(default_factory=list)
    unique_records: int = 0
    total_kept: int = 0

    @property
    def plans_total(self) -> int:
        return len(self.outcomes)

    @property
    def plans_failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed and not o.timed_out)

    @property
    def plans_timed_out(self) -> int:
        return sum(1 for o in self.outcomes if o.timed_out)

    @property
    def pages_fetched(self) -> int:
        return sum(o.pages for o in self.outcomes)

    @property
    def records_seen(self) -> int:
        return sum(o.records for o in self.outcomes)

    @property
    def records_skipped(self) -> int:
        return sum(o.skipped for o in self.outcomes)

    @property
    def failures(self) -> list[str]:
        return [f"{o.plan.describe()}: {o.error}" for o in self.outcomes if o.failed]

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "plans_total": self.plans_total,
            "plans_failed": self.plans_failed,
            "plans_timed_out": self.plans_timed_out,
            "pages_fetched": self.pages_fetched,
            "records_seen": self.records_seen,
            "records_skipped": self.records_skipped,
            "unique_records": self.unique_records,
            "total_kept": self.total_kept,
            "failures": self.failures,
        }


class DiscoveryPipeline:
    """Run every plan of a profile and assemble ranked providers.

    Plans run concurrently up to `max_concurrent_plans`; pages within a plan
    are sequential. Connectors space requests globally, so concurrency never
    raises the upstream request rate.
    """

    def __init__(
        self,
        profile: DiscoveryProfile,
        registry: RegistryConnector,
        web_search: Optional[RegistryConnector] = None,
        normalizer: Optional[RecordNormalizer] = None,
        max_concurrent_plans: Optional[int] = None,
    ):
        self.profile = profile
        self.connectors: dict[SourceKind, RegistryConnector] = {SourceKind.REGISTRY: registry}
        if web_search is not None:
            self.connectors[SourceKind.WEB_SEARCH] = web_search
        self.normalizer = normalizer or RecordNormalizer()
        self.max_concurrent_plans = max_concurrent_plans or settings.max_concurrent_plans

        classifier = TaxonomyClassifier(profile.taxonomy_tables)
        self.assembler = ResultAssembler(
            classifier=classifier,
            scorer=ConfidenceScorer(classifier=classifier),
            min_score=profile.min_score,
            include_unclassified=profile.include_unclassified,
        )

    def validate(self):
        """Raise ConfigurationError before any network access."""
        self.profile.validate_for_run()
        for source, connector in self.connectors.items():
            if connector.page_size <= 0:
                raise ConfigurationError(f"Page size for {source.value} must be positive")
        if self.max_concurrent_plans <= 0:
            raise ConfigurationError("max_concurrent_plans must be positive")

    async def run(self) -> tuple[list[ScoredProvider], RunReport, ProviderCollection]:
        self.validate()

        report = RunReport()
        collection = ProviderCollection()

        plans = generate_plans(self.profile)
        runnable = []
        for plan in plans:
            if plan.source in self.connectors:
                runnable.append(plan)
            else:
                logger.warning(f"No connector for {plan.source.value}; skipping {plan.describe()}")

        logger.info(f"Run {report.run_id}: executing {len(runnable)} plans")
        semaphore = asyncio.Semaphore(self.max_concurrent_plans)

        async def bounded(plan: QueryPlan) -> PlanOutcome:
            async with semaphore:
                return await self.execute_plan(plan, collection)

        report.outcomes = list(await asyncio.gather(*(bounded(p) for p in runnable)))

        # Scoring happens once, on fully merged records
        results = self.assembler.assemble(collection)
        report.unique_records = len(collection)
        report.total_kept = len(results)
        report.completed_at = datetime.utcnow()

        logger.info(
            f"Run {report.run_id} complete: {report.pages_fetched} pages, "
            f"{report.records_seen} records, {report.unique_records} unique, "
            f"{report.total_kept} kept, {len(report.failures)} plan failures"
        )
        return results, report, collection

    async def execute_plan(self, plan: QueryPlan, collection: ProviderCollection) -> PlanOutcome:
        """Page through one plan, folding each record into the collection."""
        connector = self.connectors[plan.source]
        outcome = PlanOutcome(plan=plan)

        try:
            async for page in connector.iter_pages(plan):
                if page.failed:
                    outcome.error = page.error
                    outcome.timed_out = page.error == DEADLINE_EXCEEDED
                    break

                outcome.pages += 1
                for raw in page.records:
                    outcome.records += 1
                    try:
                        record = self.normalizer.normalize(raw, plan.source, plan)
                    except ValidationError as e:
                        logger.debug(f"Skipping malformed record from {plan.describe()}: {e}")
                        record = None
                    if record is None:
                        outcome.skipped += 1
                        continue
                    collection.upsert(record)
        except Exception as e:
            # Records already upserted by this plan are kept
            logger.warning(f"Plan {plan.describe()} aborted: {type(e).__name__}: {e}")
            outcome.error = f"{type(e).__name__}: {e}"

        logger.info(
            f"Finished {plan.describe()}: {outcome.pages} pages, {outcome.records} records"
            + (f" (stopped: {outcome.error})" if outcome.error else "")
        )
        return outcome


async def run_discovery(
    profile: DiscoveryProfile,
    use_mock: bool = False,
) -> tuple[list[ScoredProvider], RunReport]:
    """Run a profile against the NPI Registry (or the mock) plus web search when enabled."""
    if use_mock:
        registry = MockRegistryConnector()
        logger.info("Using mock registry connector")
    else:
        registry = NPIRegistryConnector()
        logger.info(f"Using NPI Registry at {settings.npi_api_url}")

    web_search = DuckDuckGoConnector() if profile.include_web_search and not use_mock else None

    async with registry:
        pipeline = DiscoveryPipeline(profile, registry, web_search=web_search)
        results, report, _ = await pipeline.run()
    return results, report

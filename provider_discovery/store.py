"""Idempotent persistence of assembled providers and run reports."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from provider_discovery.models import ScoredProvider
from provider_discovery.models.database import DBDiscoveryRun, DBProvider, init_db

logger = logging.getLogger(__name__)


@dataclass
class SaveSummary:
    inserted: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class ProviderStore:
    """Write providers so that repeated runs never accumulate duplicate rows.

    Rows are matched by identifier, then by (name, address_1, postal_code).
    Each provider is written in its own transaction; a failing row is rolled
    back and counted without aborting the batch.
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self.session_factory = session_factory or init_db()

    def save(self, results: list[ScoredProvider]) -> SaveSummary:
        summary = SaveSummary()
        session = self.session_factory()
        try:
            for result in results:
                try:
                    created = self._upsert(session, result)
                    session.commit()
                except SQLAlchemyError as e:
                    session.rollback()
                    summary.failed += 1
                    summary.errors.append(f"{result.record.identifier}: {e}")
                    logger.warning(f"Failed to persist {result.record.identifier}: {e}")
                    continue
                if created:
                    summary.inserted += 1
                else:
                    summary.updated += 1
        finally:
            session.close()

        logger.info(
            f"Persisted providers: {summary.inserted} inserted, "
            f"{summary.updated} updated, {summary.failed} failed"
        )
        return summary

    def _upsert(self, session: Session, result: ScoredProvider) -> bool:
        """Apply one result; return True when a new row was inserted."""
        record = result.record
        address = record.practice_address
        address_1 = address.address_1 if address else ""
        postal_code = address.postal_code if address else ""

        row = session.query(DBProvider).filter_by(identifier=record.identifier).first()
        if row is None:
            row = session.query(DBProvider).filter_by(
                name=record.name, address_1=address_1, postal_code=postal_code,
            ).first()

        created = row is None
        if created:
            row = DBProvider(
                identifier=record.identifier,
                identity_kind=record.identity_kind,
                name=record.name,
                address_1=address_1,
                postal_code=postal_code,
                first_seen_at=datetime.utcnow(),
            )
            session.add(row)

        # Contact fields fill gaps only
        row.enumeration_type = row.enumeration_type or record.enumeration_type
        row.address_2 = row.address_2 or (address.address_2 if address else "")
        row.city = row.city or (address.city if address else "")
        row.state = row.state or (address.state if address else "")
        row.phone = row.phone or record.phone
        row.fax = row.fax or record.fax
        row.website = row.website or record.website

        # Classification and score reflect the latest run
        row.category = result.category.value
        row.category_source = result.category_source
        row.score = result.score.score
        row.tier = result.score.tier.value
        row.reasons = json.dumps(result.score.reasons)

        row.set_taxonomy_codes(_union(row.get_taxonomy_codes(), record.taxonomy_codes))
        row.set_source_tags(_union(row.get_source_tags(), record.source_tags))
        row.set_alternate_identifiers(_union(
            row.get_alternate_identifiers(), [a.model_dump() for a in record.alternate_identifiers],
        ))
        row.updated_at = datetime.utcnow()

        session.flush()
        return created

    def record_run(self, report, profile_json: Optional[str] = None, status: str = "completed") -> None:
        """Store a run report row, replacing any earlier row for the same run."""
        session = self.session_factory()
        try:
            run = session.query(DBDiscoveryRun).filter_by(run_id=report.run_id).first()
            if run is None:
                run = DBDiscoveryRun(run_id=report.run_id, started_at=report.started_at)
                session.add(run)
            run.profile = profile_json
            run.status = status
            run.completed_at = report.completed_at
            run.plans_total = report.plans_total
            run.plans_failed = report.plans_failed + report.plans_timed_out
            run.pages_fetched = report.pages_fetched
            run.unique_records = report.unique_records
            run.total_kept = report.total_kept
            run.failures = json.dumps(report.failures)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning(f"Failed to record run {report.run_id}: {e}")
        finally:
            session.close()

    def count(self) -> int:
        session = self.session_factory()
        try:
            return session.query(DBProvider).count()
        finally:
            session.close()


def _union(existing: list, incoming: list) -> list:
    merged = list(existing)
    for item in incoming:
        if item not in merged:
            merged.append(item)
    return merged

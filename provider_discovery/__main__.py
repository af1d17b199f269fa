"""CLI entry point for provider discovery."""

import argparse
import asyncio
import csv
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from provider_discovery.config import settings
from provider_discovery.models import ConfigurationError, DiscoveryProfile, ExportRow, ScoredProvider
from provider_discovery.pipeline import RunReport, run_discovery
from provider_discovery.score import to_export_rows
from provider_discovery.store import ProviderStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def export_to_csv(rows: list[ExportRow], output_path: Path):
    """Export rows to a CSV file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=ExportRow.columns())
        writer.writeheader()
        for row in rows:
            writer.writerow(row.model_dump())


def export_to_json(results: list[ScoredProvider], report: RunReport, output_path: Path):
    """Export results with scoring reasons and the run report."""
    output_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "report": report.to_dict(),
        "results": [
            {
                **row.model_dump(),
                "rank": result.rank,
                "category_source": result.category_source,
                "reasons": result.score.reasons,
            }
            for row, result in zip(to_export_rows(results), results)
        ],
    }
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def print_summary(results: list[ScoredProvider], report: RunReport):
    """Print a summary of results to console."""
    print("\n" + "=" * 60)
    print("PROVIDER DISCOVERY - RESULTS SUMMARY")
    print("=" * 60)

    print(f"\nPlans executed: {report.plans_total}")
    print(f"Plans failed: {report.plans_failed} | Timed out: {report.plans_timed_out}")
    print(f"Pages fetched: {report.pages_fetched}")
    print(f"Records seen: {report.records_seen} (skipped {report.records_skipped})")
    print(f"Unique providers: {report.unique_records}")
    print(f"Kept after filtering: {report.total_kept}")

    by_tier: dict[str, int] = {}
    for r in results:
        by_tier[r.score.tier.value] = by_tier.get(r.score.tier.value, 0) + 1
    if by_tier:
        print("Tiers: " + ", ".join(f"{tier} {count}" for tier, count in sorted(by_tier.items())))

    if results:
        print("\n" + "-" * 60)
        print("TOP 10 PROVIDERS")
        print("-" * 60)

        for r in results[:10]:
            address = r.record.practice_address
            print(f"\n#{r.rank} {r.record.name} ({r.record.identifier})")
            print(f"   Score: {r.score.score:.0f} ({r.score.tier.value}) | Category: {r.category.value}")
            if address:
                print(f"   Location: {address.city}, {address.state} {address.postal_code}")
            if r.record.phone:
                print(f"   Phone: {r.record.phone}")

    if report.failures:
        print("\n" + "-" * 60)
        print("FAILURES")
        print("-" * 60)
        for failure in report.failures[:20]:
            print(f"   {failure}")

    print("\n" + "=" * 60)


def load_profile(profile_path: Optional[Path]) -> DiscoveryProfile:
    if profile_path is None:
        return DiscoveryProfile()
    return DiscoveryProfile.from_file(profile_path)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Provider Discovery - find and score aesthetic and dental providers"
    )
    parser.add_argument(
        "--profile", "-p",
        type=Path,
        default=None,
        help="Path to discovery profile JSON (default: built-in NY/FL profile)",
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=settings.data_dir / "providers.csv",
        help="Output CSV path (default: data/providers.csv)",
    )
    parser.add_argument(
        "--json",
        type=Path,
        default=None,
        help="Also write results and run report as JSON",
    )
    parser.add_argument("--mock", action="store_true", help="Use mock registry connector")
    parser.add_argument("--web", action="store_true", help="Include web search plans")
    parser.add_argument("--min-score", type=float, default=None, help="Drop results below this score")
    parser.add_argument(
        "--include-unclassified",
        action="store_true",
        help="Keep records no taxonomy or keyword could categorize",
    )
    parser.add_argument("--persist", action="store_true", help="Save results to the database")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.profile is not None and not args.profile.exists():
        logger.error(f"Profile file not found: {args.profile}")
        sys.exit(1)

    try:
        profile = load_profile(args.profile)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load profile: {e}")
        sys.exit(1)

    if args.web:
        profile.include_web_search = True
    if args.min_score is not None:
        profile.min_score = args.min_score
    if args.include_unclassified:
        profile.include_unclassified = True

    try:
        results, report = asyncio.run(run_discovery(profile, use_mock=args.mock))
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)

    rows = to_export_rows(results)
    export_to_csv(rows, args.output)
    logger.info(f"Results exported to {args.output}")
    if args.json:
        export_to_json(results, report, args.json)
        logger.info(f"JSON exported to {args.json}")

    if args.persist:
        store = ProviderStore()
        store.save(results)
        store.record_run(report, profile_json=profile.model_dump_json())

    print_summary(results, report)


if __name__ == "__main__":
    main()

"""Query plan generation from a discovery profile."""

import logging

from provider_discovery.models import (
    DiscoveryProfile,
    Jurisdiction,
    QueryPlan,
    SourceKind,
    StrategyKind,
    TargetArea,
)

logger = logging.getLogger(__name__)


def _jurisdictions(area: TargetArea) -> list[Jurisdiction]:
    """Cities narrow an area; an area without cities is searched statewide."""
    state = area.state.strip().upper()
    if not area.cities:
        return [Jurisdiction(state=state)]
    return [Jurisdiction(state=state, city=city) for city in area.cities]


def generate_plans(profile: DiscoveryProfile) -> list[QueryPlan]:
    """Build every query plan for a profile.

    Deterministic: areas in profile order, then per jurisdiction the taxonomy,
    keyword and official-name strategies, then postal plans for the area,
    then web search plans. Each strategy's value list is sliced to
    `max_values_per_strategy`, and the whole list to `max_plans`.
    """
    limit = profile.max_values_per_strategy
    plans: list[QueryPlan] = []

    def add(jurisdiction: Jurisdiction, strategy: StrategyKind, value: str, **extra):
        value = value.strip()
        if not value:
            return
        plans.append(QueryPlan(
            jurisdiction=jurisdiction,
            strategy=strategy,
            value=value,
            safety_cap=profile.safety_cap(strategy),
            **extra,
        ))

    for area in profile.areas:
        for jurisdiction in _jurisdictions(area):
            for code in profile.taxonomy_codes[:limit]:
                add(jurisdiction, StrategyKind.TAXONOMY, code)
            for keyword in profile.keywords[:limit]:
                add(jurisdiction, StrategyKind.KEYWORD, keyword)
            for surname in profile.official_surnames[:limit]:
                add(jurisdiction, StrategyKind.OFFICIAL_NAME, surname)

        # Postal codes already pin the location, so no city filter
        state = area.state.strip().upper()
        for postal_code in area.postal_codes[:limit]:
            for enumeration_type in profile.postal_enumeration_types:
                add(
                    Jurisdiction(state=state, postal_code=postal_code.strip()),
                    StrategyKind.POSTAL,
                    postal_code,
                    enumeration_type=enumeration_type,
                )

        if profile.include_web_search:
            for jurisdiction in _jurisdictions(area):
                for term in profile.web_search_terms[:limit]:
                    add(jurisdiction, StrategyKind.KEYWORD, term, source=SourceKind.WEB_SEARCH)

    if len(plans) > profile.max_plans:
        logger.warning(
            f"Generated {len(plans)} plans, truncating to max_plans={profile.max_plans}"
        )
        plans = plans[:profile.max_plans]

    logger.info(f"Generated {len(plans)} query plans across {len(profile.areas)} areas")
    return plans

"""
Persona Service - User segmentation and population summary statistics

Classifies every main_analysis user into one of four mutually exclusive
personas and aggregates the population into conversion percentages,
demographic breakdowns and persona shares.

Persona Rules (first match wins):
1. premium           - subscriptions >= 1
2. core              - no subscription AND copies >= 1
3. activationTargets - no subscription, copy or deposit AND
                       (creator views >= 3 OR PDP views >= 3)
4. nonActivated      - no bank link AND no deposit AND
                       PDP views < 3 AND creator views < 3
Otherwise unclassified (counted, never reported).

View counts combine the regular and premium variants of each view type.

Data Source: main_analysis
Result Sink: summary_stats (JSONB snapshot per run)
"""

from __future__ import annotations

import json
import logging
import math
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Mapping, Sequence, Tuple

from engagement_analytics.core.config import get_settings
from engagement_analytics.core.database import get_db_pool
from engagement_analytics.models.enums import REPORTED_PERSONAS, Persona
from engagement_analytics.models.schemas import CategoricalBreakdown, PersonaCount, SummaryStats
from engagement_analytics.services.driver_analysis import fetch_feature_rows
from engagement_analytics.services.errors import InsufficientDataError
from engagement_analytics.services.ingestion import FeatureRow
from engagement_analytics.sql.analysis_queries import INSERT_SUMMARY_STATS

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

# Combined views needed before a user counts as engaged
ENGAGEMENT_VIEW_THRESHOLD: float = 3

BREAKDOWN_FIELDS: Tuple[str, ...] = (
    "income",
    "net_worth",
    "investing_experience_years",
    "investing_activity",
    "investment_type",
    "investing_objective",
    "acquisition_survey",
)

# Survey answers appear in both long and short spellings
INCOME_ORDINALS: Mapping[str, int] = {
    "Less than $25,000": 1, "<25k": 1,
    "$25,000-$49,999": 2, "25k-50k": 2,
    "$50,000-$74,999": 3, "50k-100k": 3,
    "$75,000-$99,999": 4, "75k-100k": 4,
    "$100,000-$149,999": 5, "100k-150k": 5,
    "$150,000-$199,999": 6, "150k-200k": 6,
    "$200,000+": 7, "200k+": 7,
}

NET_WORTH_ORDINALS: Mapping[str, int] = {
    "Less than $10,000": 1, "<10k": 1,
    "$10,000-$49,999": 2, "10k-50k": 2,
    "$50,000-$99,999": 3, "50k-100k": 3,
    "$100,000-$249,999": 4, "100k-250k": 4,
    "$250,000-$499,999": 5, "250k-500k": 5,
    "$500,000-$999,999": 6, "500k-1m": 6,
    "$1,000,000+": 7, "1m+": 7,
}


def _normalize_bracket(value: str) -> str:
    # En dashes in short spellings ("25k–50k") map to the hyphenated key
    return value.strip().replace("–", "-")


def income_to_ordinal(income: str) -> int:
    """Income bracket as 1 (lowest) to 7 (highest); 0 when unknown."""
    return INCOME_ORDINALS.get(_normalize_bracket(income or ""), 0)


def net_worth_to_ordinal(net_worth: str) -> int:
    """Net worth bracket as 1 (lowest) to 7 (highest); 0 when unknown."""
    return NET_WORTH_ORDINALS.get(_normalize_bracket(net_worth or ""), 0)


# =============================================================================
# CLASSIFICATION
# =============================================================================

def classify_persona(row: FeatureRow) -> Persona:
    """
    Assign a user to exactly one persona.

    Examples:
        >>> classify_persona(FeatureRow("u1", {"total_subscriptions": 2, "total_copies": 5}))
        <Persona.PREMIUM: 'premium'>
    """
    subscriptions = row.number("total_subscriptions")
    copies = row.number("total_copies")
    deposits = row.number("total_deposits")
    has_linked_bank = row.number("total_bank_links") > 0

    pdp_views = row.number("regular_pdp_views") + row.number("premium_pdp_views")
    creator_views = row.number("regular_creator_views") + row.number("premium_creator_views")

    if subscriptions >= 1:
        return Persona.PREMIUM

    if subscriptions == 0 and copies >= 1:
        return Persona.CORE

    if (
        subscriptions == 0
        and copies == 0
        and deposits == 0
        and (creator_views >= ENGAGEMENT_VIEW_THRESHOLD or pdp_views >= ENGAGEMENT_VIEW_THRESHOLD)
    ):
        return Persona.ACTIVATION_TARGETS

    if (
        not has_linked_bank
        and deposits == 0
        and pdp_views < ENGAGEMENT_VIEW_THRESHOLD
        and creator_views < ENGAGEMENT_VIEW_THRESHOLD
    ):
        return Persona.NON_ACTIVATED

    return Persona.UNCLASSIFIED


def _percentage(count: int, total: int) -> float:
    return count / total * 100 if total > 0 else 0.0


def calculate_persona_stats(rows: Sequence[FeatureRow]) -> Dict[str, PersonaCount]:
    """Count and percentage of total users for each reported persona."""
    counts = Counter(classify_persona(row) for row in rows)
    total = len(rows)

    if counts[Persona.UNCLASSIFIED]:
        logger.info(f"{counts[Persona.UNCLASSIFIED]} of {total} users unclassified")

    return {
        persona.value: PersonaCount(
            count=counts[persona],
            percentage=_percentage(counts[persona], total),
        )
        for persona in REPORTED_PERSONAS
    }


# =============================================================================
# AGGREGATES
# =============================================================================

def calculate_categorical_breakdown(rows: Sequence[FeatureRow], field: str) -> CategoricalBreakdown:
    """Frequency of each non-blank string value of a field."""
    counts: Dict[str, int] = {}
    total = 0

    for row in rows:
        value = row.text(field)
        if value.strip():
            counts[value] = counts.get(value, 0) + 1
            total += 1

    return CategoricalBreakdown(counts=counts, total_responses=total)


def calculate_summary_stats(
    rows: Sequence[FeatureRow],
    low_deposit_threshold: float = 1000.0,
) -> SummaryStats:
    """
    Population summary of the feature table.

    Conversion figures are percentages of all users: bank linked
    (total_bank_links > 0), copied, deposited via ACH, subscribed.
    Deposit data counts only rows where total_deposits was not null.
    Average age is rounded over users with a positive age.
    """
    total = len(rows)

    linked = sum(1 for r in rows if r.number("total_bank_links") > 0)
    copied = sum(1 for r in rows if r.number("total_copies") > 0)
    deposited = sum(1 for r in rows if r.number("total_ach_deposits") > 0)
    subscribed = sum(1 for r in rows if r.number("total_subscriptions") > 0)

    # Null deposits are dropped at load time, so they count as neither data nor low
    with_deposit_data = [r for r in rows if "total_deposits" in r.fields]
    low_deposits = sum(
        1 for r in with_deposit_data if r.number("total_deposits") < low_deposit_threshold
    )

    ages = [r.number("age_years") for r in rows if r.number("age_years") > 0]
    # Halves round up
    average_age = int(math.floor(sum(ages) / len(ages) + 0.5)) if ages else 0

    return SummaryStats(
        total_users=total,
        link_bank_conversion=_percentage(linked, total),
        first_copy_conversion=_percentage(copied, total),
        deposit_conversion=_percentage(deposited, total),
        subscription_conversion=_percentage(subscribed, total),
        users_with_deposit_data=len(with_deposit_data),
        users_with_low_deposits=low_deposits,
        average_age=average_age,
        breakdowns={
            field: calculate_categorical_breakdown(rows, field) for field in BREAKDOWN_FIELDS
        },
        persona_stats=calculate_persona_stats(rows),
    )


# =============================================================================
# PERSISTENCE AND ORCHESTRATION
# =============================================================================

async def persist_summary_stats(stats: SummaryStats, calculated_at: datetime) -> None:
    """Insert one JSONB snapshot into summary_stats."""
    pool = await get_db_pool()
    payload = json.dumps(stats.model_dump(mode="json"))

    try:
        async with pool.acquire() as conn:
            await conn.execute(INSERT_SUMMARY_STATS, payload, calculated_at)
    except Exception:
        logger.exception("Failed to persist summary stats")
        raise

    logger.info(f"Stored summary stats for {stats.total_users} users")


async def run_summary_analysis() -> SummaryStats:
    """
    Load main_analysis, compute the summary and store a snapshot.

    Raises:
        InsufficientDataError: If main_analysis has no rows.
    """
    settings = get_settings()

    rows = await fetch_feature_rows()
    if not rows:
        raise InsufficientDataError("No data found in main_analysis")

    stats = calculate_summary_stats(rows, low_deposit_threshold=settings.low_deposit_threshold)
    await persist_summary_stats(stats, datetime.now(timezone.utc))

    return stats


__all__ = [
    "classify_persona",
    "calculate_persona_stats",
    "calculate_categorical_breakdown",
    "calculate_summary_stats",
    "income_to_ordinal",
    "net_worth_to_ordinal",
    "persist_summary_stats",
    "run_summary_analysis",
    "BREAKDOWN_FIELDS",
    "INCOME_ORDINALS",
    "NET_WORTH_ORDINALS",
]

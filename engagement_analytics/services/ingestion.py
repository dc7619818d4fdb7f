"""
Ingestion Service - Feature row and exposure record adapters

Turns raw database records into the flat, typed inputs the analysis engines
consume. Nothing downstream probes untyped records: every engine reads
FeatureRow or UserExposureRecord built here.

Input shapes:
- main_analysis rows: one record per user with numeric engagement/outcome
  columns and categorical profile columns -> FeatureRow
- engagement pair rows: one record per (user, entity) with a view count, a
  conversion flag and a conversion count -> UserExposureRecord (one per user)

Coercion rules:
- None, '', NaN and unparseable values coerce to 0.0 in arithmetic
- Decimal (asyncpg NUMERIC) is treated as numeric and converted to float
- Booleans coerce to 1.0 / 0.0 but are not considered numeric predictors
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

FeatureValue = Union[float, str]


# =============================================================================
# DATA CLASSES - Engine inputs
# =============================================================================

@dataclass(frozen=True)
class FeatureRow:
    """
    One user's feature snapshot.

    Materialized once per run and never mutated by the engines.
    """
    id: str
    fields: Mapping[str, FeatureValue] = field(default_factory=dict)

    def number(self, name: str) -> float:
        """Numeric value of a field; missing or non-numeric fields are 0.0."""
        return clean_numeric(self.fields.get(name))

    def text(self, name: str) -> str:
        """String value of a field; missing or non-string fields are ''."""
        value = self.fields.get(name)
        return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class UserExposureRecord:
    """
    One user's exposures and conversion outcome for pattern mining.

    Attributes:
        id: User identifier
        exposures: Exposure values (portfolio tickers, creator ids) the user viewed
        converted: Whether the binary outcome occurred
        outcome_magnitude: Conversion count (copies, subscriptions)
    """
    id: str
    exposures: frozenset = field(default_factory=frozenset)
    converted: bool = False
    outcome_magnitude: float = 0.0


# =============================================================================
# VALUE COERCION
# =============================================================================

def is_numeric_value(value: Any) -> bool:
    """True for finite-or-infinite real numbers that are not booleans or NaN."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal, np.integer, np.floating)):
        return not math.isnan(float(value))
    return False


def clean_numeric(value: Any) -> float:
    """
    Coerce a raw value to float, defaulting to 0.0.

    Examples:
        >>> clean_numeric("12.5")
        12.5
        >>> clean_numeric(None)
        0.0
        >>> clean_numeric("n/a")
        0.0
    """
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def _normalize_value(value: Any) -> Optional[FeatureValue]:
    if value is None:
        return None
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if is_numeric_value(value):
        return float(value)
    if isinstance(value, str):
        return value
    return None


# =============================================================================
# FEATURE ROWS
# =============================================================================

def feature_row_from_record(
    record: Mapping[str, Any],
    id_field: str = "distinct_id",
) -> FeatureRow:
    """
    Build a FeatureRow from one database record.

    Null columns are dropped from the field map; engines treat them as 0.0 or
    '' on read. Boolean columns become 0.0/1.0 numbers.
    """
    fields: Dict[str, FeatureValue] = {}
    for name, raw in record.items():
        if name == id_field:
            continue
        value = _normalize_value(raw)
        if value is not None:
            fields[name] = value

    return FeatureRow(id=str(record.get(id_field) or ""), fields=fields)


def feature_rows_from_records(
    records: Iterable[Mapping[str, Any]],
    id_field: str = "distinct_id",
) -> List[FeatureRow]:
    """Build FeatureRows for every record, preserving input order."""
    rows = [feature_row_from_record(record, id_field) for record in records]
    logger.info(f"Adapted {len(rows)} feature rows")
    return rows


# =============================================================================
# EXPOSURE RECORDS
# =============================================================================

def pairs_to_user_records(
    pairs: Iterable[Mapping[str, Any]],
    exposure_column: str,
    outcome_column: str,
    magnitude_column: str,
    user_column: str = "distinct_id",
) -> List[UserExposureRecord]:
    """
    Collapse (user, entity) pair rows into one exposure record per user.

    The first pair seen for a user fixes its conversion flag and magnitude
    (both are user-level columns repeated on every pair); exposures are the
    union of the user's entity values. Users keep first-seen order.

    Args:
        pairs: Pair rows, ordered deterministically by the caller
        exposure_column: Column holding the exposure value (e.g. portfolio_ticker)
        outcome_column: Boolean conversion column (e.g. did_copy)
        magnitude_column: Conversion count column (e.g. copy_count)
        user_column: User identifier column

    Returns:
        List of UserExposureRecord in first-seen user order.
    """
    users: Dict[str, Dict[str, Any]] = {}

    for pair in pairs:
        user_id = pair.get(user_column)
        if user_id is None:
            continue

        user = users.get(user_id)
        if user is None:
            user = {
                "exposures": set(),
                "converted": bool(pair.get(outcome_column)),
                "magnitude": clean_numeric(pair.get(magnitude_column)),
            }
            users[user_id] = user

        exposure = pair.get(exposure_column)
        if exposure is not None and exposure != "":
            user["exposures"].add(str(exposure))

    records = [
        UserExposureRecord(
            id=str(user_id),
            exposures=frozenset(data["exposures"]),
            converted=data["converted"],
            outcome_magnitude=data["magnitude"],
        )
        for user_id, data in users.items()
    ]

    logger.info(f"Converted pair rows to {len(records)} unique users")
    return records


__all__ = [
    "FeatureRow",
    "UserExposureRecord",
    "FeatureValue",
    "is_numeric_value",
    "clean_numeric",
    "feature_row_from_record",
    "feature_rows_from_records",
    "pairs_to_user_records",
]

"""
Parameterized SQL for the analysis services.

Feature sources:
- main_analysis: one row per user (engagement, outcome and profile columns)
- user_creator_engagement, user_portfolio_creator_engagement,
  user_creator_profile_copies: one row per (user, entity) engagement pair

Result sinks:
- deposit_drivers, copy_drivers, subscription_drivers
- conversion_pattern_combinations (keyed by analysis_type)
- summary_stats (JSONB snapshots)

Table and column names are interpolated only from the fixed configuration
in the services, never from request input; values always go through $n
placeholders.
"""

from typing import Sequence

# =============================================================================
# FEATURE SOURCES
# =============================================================================

SELECT_MAIN_ANALYSIS: str = """
SELECT *
FROM main_analysis
ORDER BY distinct_id
"""


def get_exposure_pairs_query(table: str, columns: Sequence[str], filter_column: str) -> str:
    """
    Build the pair-loading query for one pattern analysis configuration.

    Only pairs with a positive view count are loaded. Rows are ordered so that
    user discovery order, and therefore candidate tie-breaking, is stable.
    """
    column_list = ", ".join(columns)
    return f"""
SELECT {column_list}
FROM {table}
WHERE {filter_column} > 0
ORDER BY distinct_id, {filter_column} DESC
"""


# =============================================================================
# DRIVER RESULTS
# =============================================================================

def get_delete_drivers_query(table: str) -> str:
    """Remove every row of a driver table ahead of a full replacement."""
    return f"DELETE FROM {table}"


def get_insert_drivers_query(table: str) -> str:
    """Insert one DriverResult row."""
    return f"""
INSERT INTO {table} (
    variable_name,
    correlation_coefficient,
    t_stat,
    tipping_point,
    predictive_strength,
    synced_at
) VALUES ($1, $2, $3, $4, $5, $6)
"""


def get_select_drivers_query(table: str) -> str:
    """Read a driver table back in descending |correlation| order."""
    return f"""
SELECT variable_name, correlation_coefficient, t_stat, tipping_point, predictive_strength
FROM {table}
ORDER BY ABS(correlation_coefficient) DESC
"""


# =============================================================================
# PATTERN RESULTS
# =============================================================================

DELETE_PATTERN_COMBINATIONS: str = """
DELETE FROM conversion_pattern_combinations
WHERE analysis_type = $1
"""

INSERT_PATTERN_COMBINATION: str = """
INSERT INTO conversion_pattern_combinations (
    analysis_type,
    combination_rank,
    value_1, value_2, value_3,
    username_1, username_2, username_3,
    total_views_1, total_views_2, total_views_3,
    log_likelihood,
    aic,
    odds_ratio,
    precision,
    recall,
    lift,
    users_with_exposure,
    conversion_rate_in_group,
    overall_conversion_rate,
    total_conversions,
    analyzed_at
) VALUES (
    $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11,
    $12, $13, $14, $15, $16, $17, $18, $19, $20, $21, $22
)
"""

SELECT_PATTERN_COMBINATIONS: str = """
SELECT *
FROM conversion_pattern_combinations
WHERE analysis_type = $1
  AND users_with_exposure >= $2
ORDER BY combination_rank
LIMIT $3
"""


# =============================================================================
# SUMMARY STATS
# =============================================================================

INSERT_SUMMARY_STATS: str = """
INSERT INTO summary_stats (stats_data, calculated_at)
VALUES ($1::jsonb, $2)
"""

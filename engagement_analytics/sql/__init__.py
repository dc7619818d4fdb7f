"""
SQL Query Module for the Engagement Analytics backend.

Provides parameterized SQL for loading feature tables and replacing analysis
results, keeping query text out of the service logic.

Example usage:
    from engagement_analytics.sql import SELECT_MAIN_ANALYSIS, get_insert_drivers_query

    rows = await conn.fetch(SELECT_MAIN_ANALYSIS)
"""

from engagement_analytics.sql.analysis_queries import (
    SELECT_MAIN_ANALYSIS,
    get_exposure_pairs_query,
    get_delete_drivers_query,
    get_insert_drivers_query,
    get_select_drivers_query,
    DELETE_PATTERN_COMBINATIONS,
    INSERT_PATTERN_COMBINATION,
    SELECT_PATTERN_COMBINATIONS,
    INSERT_SUMMARY_STATS,
)

__all__ = [
    # Feature sources
    'SELECT_MAIN_ANALYSIS',
    'get_exposure_pairs_query',
    # Driver results
    'get_delete_drivers_query',
    'get_insert_drivers_query',
    'get_select_drivers_query',
    # Pattern results
    'DELETE_PATTERN_COMBINATIONS',
    'INSERT_PATTERN_COMBINATION',
    'SELECT_PATTERN_COMBINATIONS',
    # Summary stats
    'INSERT_SUMMARY_STATS',
]

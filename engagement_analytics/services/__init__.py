"""
Backend Services Module

Business logic for the Engagement Analytics backend. The numerical engines are
pure functions over rows already loaded in memory; each module also carries
the load / persist helpers and the run entry point the API layer calls.

Services:
- statistics: Pearson correlation, t-statistic, predictive strength, tipping point
- ingestion: Feature row and exposure record adapters
- driver_analysis: Behavioral drivers of deposits, copies and subscriptions
- pattern_mining: Exposure-combination logistic regression search
- persona: Persona classification and population summary statistics
- errors: Run-level exceptions

All services are consumed by the API layer (engagement_analytics/api/).
"""

# =============================================================================
# Statistics Exports
# Correlation, t-statistic, predictive strength labelling and tipping point
# detection shared by the driver analyzer
# =============================================================================

from engagement_analytics.services.statistics import (
    calculate_correlation,
    calculate_t_stat,
    calculate_combined_score,
    calculate_predictive_strength,
    find_tipping_bucket,
    calculate_tipping_point,
)

# =============================================================================
# Ingestion Exports
# Flat typed inputs built from raw database records
# =============================================================================

from engagement_analytics.services.ingestion import (
    FeatureRow,
    UserExposureRecord,
    clean_numeric,
    feature_rows_from_records,
    pairs_to_user_records,
)

# =============================================================================
# Driver Analysis Exports
# Ranked correlation driver tables per outcome, persisted per outcome table
# =============================================================================

from engagement_analytics.services.driver_analysis import (
    analyze_behavioral_drivers,
    select_driver_variables,
    get_allowlist,
    fetch_feature_rows,
    persist_driver_results,
    get_driver_results,
    run_driver_analysis,
    DEFAULT_DRIVER_ALLOWLISTS,
)

# =============================================================================
# Pattern Mining Exports
# Exhaustive 3-combination search with per-combination logistic regression
# ranked by AIC
# =============================================================================

from engagement_analytics.services.pattern_mining import (
    fit_logistic_regression,
    generate_combinations,
    evaluate_combination,
    select_candidate_exposures,
    mine_patterns,
    summarize_top_combinations,
    fetch_exposure_pairs,
    build_exposure_metadata,
    persist_combination_results,
    get_stored_combinations,
    run_pattern_analysis,
    PATTERN_ANALYSIS_CONFIGS,
)

# =============================================================================
# Persona Exports
# First-match persona segmentation and population summary statistics
# =============================================================================

from engagement_analytics.services.persona import (
    classify_persona,
    calculate_persona_stats,
    calculate_categorical_breakdown,
    calculate_summary_stats,
    income_to_ordinal,
    net_worth_to_ordinal,
    persist_summary_stats,
    run_summary_analysis,
)

from engagement_analytics.services.errors import (
    AnalysisError,
    InsufficientDataError,
)

# =============================================================================
# __all__ - Public API Definition
# =============================================================================

__all__ = [
    # ----- Statistics -----
    'calculate_correlation',
    'calculate_t_stat',
    'calculate_combined_score',
    'calculate_predictive_strength',
    'find_tipping_bucket',
    'calculate_tipping_point',
    # ----- Ingestion -----
    'FeatureRow',
    'UserExposureRecord',
    'clean_numeric',
    'feature_rows_from_records',
    'pairs_to_user_records',
    # ----- Driver Analysis -----
    'analyze_behavioral_drivers',
    'select_driver_variables',
    'get_allowlist',
    'fetch_feature_rows',
    'persist_driver_results',
    'get_driver_results',
    'run_driver_analysis',
    'DEFAULT_DRIVER_ALLOWLISTS',
    # ----- Pattern Mining -----
    'fit_logistic_regression',
    'generate_combinations',
    'evaluate_combination',
    'select_candidate_exposures',
    'mine_patterns',
    'summarize_top_combinations',
    'fetch_exposure_pairs',
    'build_exposure_metadata',
    'persist_combination_results',
    'get_stored_combinations',
    'run_pattern_analysis',
    'PATTERN_ANALYSIS_CONFIGS',
    # ----- Persona -----
    'classify_persona',
    'calculate_persona_stats',
    'calculate_categorical_breakdown',
    'calculate_summary_stats',
    'income_to_ordinal',
    'net_worth_to_ordinal',
    'persist_summary_stats',
    'run_summary_analysis',
    # ----- Errors -----
    'AnalysisError',
    'InsufficientDataError',
]

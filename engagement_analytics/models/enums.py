"""
Enumeration definitions for the Engagement Analytics backend.

All enums inherit from both `str` and `Enum` so they serialize as plain strings
in Pydantic models and API responses, and compare equal to the raw values
stored in the database.
"""

from enum import Enum


class PredictiveStrength(str, Enum):
    """
    Ordered predictive-strength vocabulary for driver analysis.

    Labels are assigned from a weighted score of correlation magnitude (90%)
    and t-statistic magnitude (10%), gated by |t| >= 1.96. Declaration order
    runs from weakest to strongest; use `rank` for comparisons.
    """
    VERY_WEAK = "Very Weak"
    WEAK = "Weak"
    WEAK_MODERATE = "Weak - Moderate"
    MODERATE = "Moderate"
    MODERATE_STRONG = "Moderate - Strong"
    STRONG = "Strong"
    VERY_STRONG = "Very Strong"

    @property
    def rank(self) -> int:
        """Zero-based position in the weakest-to-strongest ordering."""
        return list(PredictiveStrength).index(self)


class DriverOutcome(str, Enum):
    """
    Outcome fields of the main_analysis view that driver analysis targets.

    Each outcome has its own allow-list of predictors and its own result table.
    """
    TOTAL_DEPOSITS = "total_deposits"
    TOTAL_COPIES = "total_copies"
    TOTAL_SUBSCRIPTIONS = "total_subscriptions"


class PatternAnalysisType(str, Enum):
    """
    Exposure pattern analyses supported by the combinatorial miner.

    - subscription: creator profiles viewed -> subscribed
    - copy: portfolio detail pages viewed -> copied
    - creator_copy: creator profiles viewed -> copied
    """
    SUBSCRIPTION = "subscription"
    COPY = "copy"
    CREATOR_COPY = "creator_copy"


class Persona(str, Enum):
    """
    Mutually exclusive user segments assigned by first-match priority.

    UNCLASSIFIED users are counted internally but never reported as a
    persona percentage.
    """
    PREMIUM = "premium"
    CORE = "core"
    ACTIVATION_TARGETS = "activationTargets"
    NON_ACTIVATED = "nonActivated"
    UNCLASSIFIED = "unclassified"


# Segments reported in persona statistics, in priority order
REPORTED_PERSONAS = (
    Persona.PREMIUM,
    Persona.CORE,
    Persona.ACTIVATION_TARGETS,
    Persona.NON_ACTIVATED,
)

"""
Exceptions raised by the analysis orchestration entry points.

The numerical routines never raise for degenerate data; these exceptions are
reserved for runs that cannot start at all (nothing to analyze).
"""


class AnalysisError(Exception):
    """Base class for analysis run failures."""


class InsufficientDataError(AnalysisError):
    """Raised when a run has too few rows, users or candidates to proceed."""

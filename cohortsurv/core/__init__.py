"""
Core infrastructure for cohortsurv.

This module provides shared abstractions and utilities used by the
domain-specific survival submodule.

Key components:
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing
"""

from cohortsurv.core.result import Result
from cohortsurv.core.exceptions import (
    CohortSurvError,
    ValidationError,
    DimensionError,
    InvalidStatusError,
    NumericalError,
    DegenerateVarianceError,
    ZeroTotalVarianceError,
    EmptyCohortError,
    PValueLookupError,
)

__all__ = [
    # Result
    "Result",
    # Exceptions
    "CohortSurvError",
    "ValidationError",
    "DimensionError",
    "InvalidStatusError",
    "NumericalError",
    "DegenerateVarianceError",
    "ZeroTotalVarianceError",
    "EmptyCohortError",
    "PValueLookupError",
]

"""
Exception hierarchy for cohortsurv.

All exceptions inherit from CohortSurvError to allow catching any
library-specific error. Domain-specific exceptions should inherit from
the appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""

from typing import Any


class CohortSurvError(Exception):
    """Base exception for all cohortsurv errors."""
    pass


class ValidationError(CohortSurvError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array lengths are inconsistent.

    Raised when parallel arrays (time, status, at-risk counts) passed to an
    array-level routine do not have the same length.
    """
    pass


class InvalidStatusError(ValidationError):
    """
    A case status is neither the event nor the censored sentinel.

    Attributes:
        value: The offending status value as supplied
        case_id: Identifier of the case carrying it, if known
    """

    def __init__(
        self,
        message: str,
        value: Any = None,
        case_id: Any = None,
    ):
        super().__init__(message)
        self.value = value
        self.case_id = case_id


class NumericalError(CohortSurvError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class DegenerateVarianceError(NumericalError):
    """
    A merged time point has a total at-risk count of at most one.

    The hypergeometric variance divides by (n - 1), so it is undefined at
    such a point.

    Attributes:
        time: Event time of the degenerate point
        n_at_risk: Total number at risk (both cohorts) at that time
    """

    def __init__(
        self,
        message: str,
        time: float | None = None,
        n_at_risk: int | None = None,
    ):
        super().__init__(message)
        self.time = time
        self.n_at_risk = n_at_risk


class ZeroTotalVarianceError(NumericalError):
    """
    Summed log-rank variance is zero, so the chi-square statistic is undefined.

    Attributes:
        n_points: Number of merged time points that were summed
    """

    def __init__(self, message: str, n_points: int | None = None):
        super().__init__(message)
        self.n_points = n_points


class EmptyCohortError(ZeroTotalVarianceError):
    """
    A cohort passed to the log-rank test has no records.

    Attributes:
        group: Label of the empty cohort, if known
    """

    def __init__(self, message: str, group: Any = None):
        super().__init__(message, n_points=0)
        self.group = group


class PValueLookupError(CohortSurvError):
    """
    The chi-square to p-value conversion failed.

    Kept outside the statistical taxonomy: the statistic itself was computed
    and is attached so callers can retry the lookup or report it.

    Attributes:
        statistic: The chi-square statistic that was being converted
    """

    def __init__(self, message: str, statistic: float | None = None):
        super().__init__(message)
        self.statistic = statistic

"""
cohortsurv: comparative survival statistics for two cohorts.

Builds altered / unaltered cohorts from per-case time-to-event records,
estimates a Kaplan-Meier curve for each and compares them with a log-rank
test.

Submodules:
    survival: Cohort construction, Kaplan-Meier, log-rank
    core: Result envelope, exceptions, validation, timing
"""

__version__ = "0.1.0"

from cohortsurv import survival
from cohortsurv.survival import (
    build_and_estimate,
    build_cohorts,
    compare_all,
    compare_cohorts,
    kaplan_meier,
    log_rank_statistic,
    survdiff,
)

__all__ = [
    "__version__",
    "survival",
    "build_cohorts",
    "build_and_estimate",
    "kaplan_meier",
    "survdiff",
    "log_rank_statistic",
    "compare_cohorts",
    "compare_all",
]

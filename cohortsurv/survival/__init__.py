"""
Survival analysis.

Public API:
    build_cohorts(...) -> (Cohort, Cohort)
    build_and_estimate(...) -> (Cohort, Cohort)
    kaplan_meier(...) -> KMSolution
    survdiff(...) -> LogRankSolution
    log_rank_statistic(...) -> float
    compare_cohorts(...) -> ComparisonSolution
    compare_all(...) -> dict[str, ComparisonSolution]
"""

from cohortsurv.survival._common import (
    CaseRecord,
    Cohort,
    DISEASE_FREE_SURVIVAL,
    EVENT_DEFINITIONS,
    EventDefinition,
    EventStatus,
    GroupLabel,
    MergedTimePoint,
    OVERALL_SURVIVAL,
)
from cohortsurv.survival._cohort import build_cohort
from cohortsurv.survival._pvalue import chi_square_p_value
from cohortsurv.survival.solvers import (
    build_and_estimate,
    build_cohorts,
    compare_all,
    compare_cohorts,
    kaplan_meier,
    log_rank_statistic,
    survdiff,
)
from cohortsurv.survival.solution import ComparisonSolution, KMSolution, LogRankSolution

__all__ = [
    # Types
    "CaseRecord",
    "Cohort",
    "EventDefinition",
    "EventStatus",
    "GroupLabel",
    "MergedTimePoint",
    "OVERALL_SURVIVAL",
    "DISEASE_FREE_SURVIVAL",
    "EVENT_DEFINITIONS",
    # Functions
    "build_cohort",
    "build_cohorts",
    "build_and_estimate",
    "kaplan_meier",
    "survdiff",
    "log_rank_statistic",
    "compare_cohorts",
    "compare_all",
    "chi_square_p_value",
    # Solutions
    "KMSolution",
    "LogRankSolution",
    "ComparisonSolution",
]

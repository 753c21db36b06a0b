"""
Public API for survival analysis.

    build_cohorts(raw_records, group_assignment, event_definition) → (altered, unaltered)
    build_and_estimate(raw_records, group_assignment, event_definition) → (altered, unaltered)
    kaplan_meier(cohort) → KMSolution
    survdiff(cohort_a, cohort_b) → LogRankSolution
    log_rank_statistic(cohort_a, cohort_b) → float
    compare_cohorts(raw_records, group_assignment, event_definition) → ComparisonSolution
    compare_all(raw_records, group_assignment) → {name: ComparisonSolution}

Each function validates inputs, builds the cohorts it needs, runs the
estimator or test, and wraps the Result in a Solution.
"""

from __future__ import annotations

import math
import warnings
from typing import Any, Callable, Iterable, Literal

from cohortsurv.core.exceptions import PValueLookupError
from cohortsurv.core.result import Result
from cohortsurv.core.compute.timing import Timer
from cohortsurv.core.validation import check_choice, check_conf_level
from cohortsurv.survival.design import CohortDesign
from cohortsurv.survival._common import Cohort, EventDefinition, GroupLabel, LogRankParams
from cohortsurv.survival._cohort import build_cohort
from cohortsurv.survival._km import estimate_cohort, kaplan_meier_fit
from cohortsurv.survival._logrank import logrank_test
from cohortsurv.survival._pvalue import chi_square_p_value
from cohortsurv.survival.solution import ComparisonSolution, KMSolution, LogRankSolution


TailPolicy = Literal["extend", "truncate"]
DegeneratePolicy = Literal["exclude", "raise"]


def _cohorts_from_design(design: CohortDesign) -> tuple[Cohort, Cohort]:
    return tuple(
        build_cohort(
            design.records_for(group),
            event_definition=design.event_definition,
            group=group,
        )
        for group in (GroupLabel.ALTERED, GroupLabel.UNALTERED)
    )


def build_cohorts(
    raw_records,
    group_assignment,
    event_definition: EventDefinition | str,
) -> tuple[Cohort, Cohort]:
    """Build the altered and unaltered cohorts of one event definition.

    Cases with an unknown time or without a recognized group label are left
    out; records are sorted by time and numbered n, n-1, ..., 1 at risk.
    Survival rates are not yet filled in.

    Parameters
    ----------
    raw_records : Mapping
        Case id -> record exposing the event definition's time and status fields.
    group_assignment : Mapping
        Case id -> "altered" / "unaltered" (other labels are ignored).
    event_definition : EventDefinition or str
        Endpoint, or a registered name ("os", "dfs").

    Returns
    -------
    (Cohort, Cohort)
        Altered cohort first. Either may be empty.
    """
    design = CohortDesign.for_cohorts(raw_records, group_assignment, event_definition)
    return _cohorts_from_design(design)


def build_and_estimate(
    raw_records,
    group_assignment,
    event_definition: EventDefinition | str,
) -> tuple[Cohort, Cohort]:
    """Build both cohorts and annotate every record with its KM survival rate.

    Same inputs as build_cohorts().

    Returns
    -------
    (Cohort, Cohort)
        Altered cohort first, each record carrying survival_rate.
    """
    altered, unaltered = build_cohorts(raw_records, group_assignment, event_definition)
    return estimate_cohort(altered), estimate_cohort(unaltered)


def _kaplan_meier(
    cohort: Cohort,
    conf_level: float,
    conf_type: str,
    info: dict[str, Any] | None = None,
) -> KMSolution:
    check_conf_level(conf_level)
    check_choice(conf_type, ("log", "plain", "log-log"), "conf_type")

    timer = Timer()
    timer.start()

    with timer.section('estimate'):
        params = kaplan_meier_fit(cohort, conf_level=conf_level, conf_type=conf_type)

    timer.stop()

    result = Result(
        params=params,
        info={
            "method": "Kaplan-Meier",
            "group": cohort.group.value if cohort.group is not None else None,
            **(info or {}),
        },
        timing=timer.result(),
        backend_name="cpu_km",
        warnings=(),
    )

    return KMSolution(_result=result)


def kaplan_meier(
    cohort: Cohort,
    *,
    conf_level: float = 0.95,
    conf_type: Literal["log", "plain", "log-log"] = "log",
) -> KMSolution:
    """Kaplan-Meier survival curve of one cohort.

    Parameters
    ----------
    cohort : Cohort
        Time-ordered cohort from build_cohorts() or build_and_estimate().
    conf_level : float
        Confidence level for CI (default 0.95).
    conf_type : str
        CI transformation: "log" (default), "plain", "log-log".

    Returns
    -------
    KMSolution
    """
    return _kaplan_meier(cohort, conf_level, conf_type)


def _logrank_result(
    cohort_a: Cohort,
    cohort_b: Cohort,
    tail: str,
    on_degenerate: str,
) -> Result[LogRankParams]:
    check_choice(tail, ("extend", "truncate"), "tail")
    check_choice(on_degenerate, ("exclude", "raise"), "on_degenerate")

    timer = Timer()
    timer.start()

    with timer.section('statistic'):
        params = logrank_test(cohort_a, cohort_b, tail=tail, on_degenerate=on_degenerate)

    timer.stop()

    warnings_list = []
    if params.n_degenerate:
        warnings_list.append(
            f"{params.n_degenerate} merged time point(s) with at most one "
            f"subject at risk contributed zero variance"
        )

    return Result(
        params=params,
        info={
            "method": "Log-rank test",
            "tail": tail,
            "on_degenerate": on_degenerate,
            "n_points": len(params.merged),
        },
        timing=timer.result(),
        backend_name="cpu_logrank",
        warnings=tuple(warnings_list),
    )


def survdiff(
    cohort_a: Cohort,
    cohort_b: Cohort,
    *,
    tail: TailPolicy = "extend",
    on_degenerate: DegeneratePolicy = "exclude",
) -> LogRankSolution:
    """Log-rank test between two cohorts of the same event definition.

    Parameters
    ----------
    cohort_a, cohort_b : Cohort
        Time-ordered, risk-annotated cohorts.
    tail : str
        "extend" (default): events after one cohort is exhausted are still
        compared, with that cohort at risk count 0. "truncate": the merge
        stops when either cohort is exhausted.
    on_degenerate : str
        What to do with a merged point where at most one subject is at risk:
        "exclude" (default) gives it zero variance and records a warning,
        "raise" raises DegenerateVarianceError.

    Notes
    -----
    Both cohorts have subjects at risk at every point of the paired scan, so
    n <= 1 only happens in the extended tail, where the exhausted cohort is
    at risk 0 and the point adds no variance anyway. With the default
    ``tail="extend"`` a warning is therefore expected whenever the longer
    cohort's last record is an event, and ``on_degenerate="raise"`` raises
    on such data. Use ``tail="truncate"`` for a scan that never reaches a
    degenerate point.

    Returns
    -------
    LogRankSolution

    Raises
    ------
    EmptyCohortError
        If either cohort is empty.
    ZeroTotalVarianceError
        If the summed variance is zero.
    """
    result = _logrank_result(cohort_a, cohort_b, tail, on_degenerate)
    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)
    return LogRankSolution(_result=result)


def log_rank_statistic(
    cohort_a: Cohort,
    cohort_b: Cohort,
    *,
    tail: TailPolicy = "extend",
    on_degenerate: DegeneratePolicy = "exclude",
) -> float:
    """Chi-square statistic (1 df) of the log-rank test between two cohorts.

    See survdiff() for the parameters, the raised errors and when a
    degenerate-point warning is expected.
    """
    result = _logrank_result(cohort_a, cohort_b, tail, on_degenerate)
    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)
    return result.params.statistic


def _lookup_p_value(
    p_value: Callable[[float, int], float],
    statistic: float,
    df: int,
) -> float:
    try:
        value = float(p_value(statistic, df))
    except Exception as e:
        raise PValueLookupError(
            f"p-value lookup failed for chi-square statistic {statistic:.6g}: {e}",
            statistic=statistic,
        ) from e

    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise PValueLookupError(
            f"p-value lookup returned {value} for chi-square statistic "
            f"{statistic:.6g}, expected a probability in [0, 1]",
            statistic=statistic,
        )
    return value


def compare_cohorts(
    raw_records,
    group_assignment,
    event_definition: EventDefinition | str,
    *,
    p_value: Callable[[float, int], float] = chi_square_p_value,
    conf_level: float = 0.95,
    conf_type: Literal["log", "plain", "log-log"] = "log",
    tail: TailPolicy = "extend",
    on_degenerate: DegeneratePolicy = "exclude",
) -> ComparisonSolution:
    """Altered vs unaltered survival for one event definition.

    Builds both cohorts, estimates their Kaplan-Meier curves, runs the
    log-rank test and converts the statistic with ``p_value``.

    Parameters
    ----------
    raw_records, group_assignment, event_definition
        As for build_cohorts().
    p_value : callable
        ``p_value(statistic, df) -> float``. Defaults to the scipy
        chi-square survival function.
    conf_level, conf_type
        As for kaplan_meier().
    tail, on_degenerate
        As for survdiff().

    Returns
    -------
    ComparisonSolution

    Raises
    ------
    PValueLookupError
        If ``p_value`` raises or returns something outside [0, 1]. The
        statistic is attached to the error.
    """
    design = CohortDesign.for_cohorts(raw_records, group_assignment, event_definition)
    altered, unaltered = _cohorts_from_design(design)
    design_info = design.summary_info()

    km_altered = _kaplan_meier(altered, conf_level, conf_type, info=design_info)
    km_unaltered = _kaplan_meier(unaltered, conf_level, conf_type, info=design_info)

    result = _logrank_result(altered, unaltered, tail, on_degenerate)
    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)
    logrank = LogRankSolution(_result=result)

    return ComparisonSolution(
        event_definition=design.event_definition,
        altered=km_altered,
        unaltered=km_unaltered,
        logrank=logrank,
        p_value=_lookup_p_value(p_value, logrank.statistic, logrank.df),
    )


def compare_all(
    raw_records,
    group_assignment,
    event_definitions: Iterable[EventDefinition | str] = ("os", "dfs"),
    **kwargs,
) -> dict[str, ComparisonSolution]:
    """Run compare_cohorts() for each event definition.

    Keyword arguments are passed through to compare_cohorts(). The first
    failing definition raises; no partial results are returned.

    Returns
    -------
    dict
        Event definition name -> ComparisonSolution, in the order given.
    """
    results = {}
    for event_definition in event_definitions:
        solution = compare_cohorts(raw_records, group_assignment, event_definition, **kwargs)
        results[solution.event_definition.name] = solution
    return results

"""
Two-cohort log-rank test over time-ordered, risk-annotated cohorts.

Algorithm:
    1. Merge the two cohorts with one pointer each (O(n1 + n2)):
       - the earlier record advances alone; if it is an event it yields a
         merged point (1 failure on its side, both sides' at-risk counts)
       - records at equal times advance together and yield one point if
         either is an event
       - censored records advance without yielding anything
    2. At each merged point, with n = n1 + n2 at risk and m = m1 + m2 failures:
       - expected failures in cohort 1:  E_j = n1 * m / n
       - hypergeometric variance:        V_j = m (n - m) n1 n2 / (n^2 (n - 1))
    3. chi_square = (Σ m1 - Σ E_j)^2 / Σ V_j, on 1 degree of freedom

Tail policy once one cohort is exhausted:
    "extend"   keep scanning the other cohort; its events yield points with
               the exhausted side at risk count 0
    "truncate" stop; later events of the longer cohort are not compared

A merged point with n <= 1 has no defined variance. It is either kept with
zero variance and flagged (on_degenerate="exclude") or rejected with
DegenerateVarianceError (on_degenerate="raise").

References:
    Mantel, N. (1966). Evaluation of survival data and two new rank order
        statistics arising in its consideration. Cancer Chemotherapy
        Reports, 50(3), 163-170.
"""

from __future__ import annotations

from dataclasses import replace

import numpy as np

from cohortsurv.core.exceptions import (
    DegenerateVarianceError,
    EmptyCohortError,
    ValidationError,
    ZeroTotalVarianceError,
)
from cohortsurv.survival._common import (
    CaseRecord,
    Cohort,
    LogRankParams,
    MergedTimePoint,
)


def _label(cohort: Cohort, default: str) -> str:
    return cohort.group.value if cohort.group is not None else default


def merge_cohorts(
    cohort_1: Cohort,
    cohort_2: Cohort,
    tail: str = "extend",
) -> list[MergedTimePoint]:
    """Merge two cohorts' event times into failure/at-risk points.

    Parameters
    ----------
    cohort_1, cohort_2 : Cohort
        Time-ordered cohorts with at-risk counts assigned.
    tail : str
        "extend" or "truncate", see module docstring.

    Returns
    -------
    list of MergedTimePoint
        In ascending time order, expectation and variance not yet filled in.
    """
    if tail not in ("extend", "truncate"):
        raise ValidationError(f"tail must be 'extend' or 'truncate', got {tail!r}")

    records_1 = cohort_1.records
    records_2 = cohort_2.records
    merged: list[MergedTimePoint] = []

    i = 0
    j = 0
    while i < len(records_1) and j < len(records_2):
        r1 = records_1[i]
        r2 = records_2[j]

        if r1.time < r2.time:
            if r1.is_event:
                merged.append(MergedTimePoint(
                    time=r1.time,
                    num_of_failure_1=1,
                    num_of_failure_2=0,
                    num_at_risk_1=r1.num_at_risk,
                    num_at_risk_2=r2.num_at_risk,
                ))
            i += 1
        elif r1.time > r2.time:
            if r2.is_event:
                merged.append(MergedTimePoint(
                    time=r2.time,
                    num_of_failure_1=0,
                    num_of_failure_2=1,
                    num_at_risk_1=r1.num_at_risk,
                    num_at_risk_2=r2.num_at_risk,
                ))
            j += 1
        else:
            if r1.is_event or r2.is_event:
                merged.append(MergedTimePoint(
                    time=r1.time,
                    num_of_failure_1=int(r1.is_event),
                    num_of_failure_2=int(r2.is_event),
                    num_at_risk_1=r1.num_at_risk,
                    num_at_risk_2=r2.num_at_risk,
                ))
            i += 1
            j += 1

    if tail == "extend":
        merged.extend(_tail_points(records_1[i:], first=True))
        merged.extend(_tail_points(records_2[j:], first=False))

    return merged


def _tail_points(records: tuple[CaseRecord, ...], first: bool) -> list[MergedTimePoint]:
    """Points for the events left in one cohort after the other ran out."""
    points = []
    for record in records:
        if not record.is_event:
            continue
        if first:
            points.append(MergedTimePoint(
                time=record.time,
                num_of_failure_1=1,
                num_of_failure_2=0,
                num_at_risk_1=record.num_at_risk,
                num_at_risk_2=0,
            ))
        else:
            points.append(MergedTimePoint(
                time=record.time,
                num_of_failure_1=0,
                num_of_failure_2=1,
                num_at_risk_1=0,
                num_at_risk_2=record.num_at_risk,
            ))
    return points


def logrank_test(
    cohort_1: Cohort,
    cohort_2: Cohort,
    tail: str = "extend",
    on_degenerate: str = "exclude",
) -> LogRankParams:
    """Compute the two-cohort log-rank chi-square statistic.

    Parameters
    ----------
    cohort_1, cohort_2 : Cohort
        Cohorts of the same event definition. Only time, status and
        num_at_risk are used.
    tail : str
        "extend" (default) or "truncate".
    on_degenerate : str
        "exclude" (default) or "raise".

    Returns
    -------
    LogRankParams

    Raises
    ------
    ValidationError
        If the cohorts belong to different event definitions.
    EmptyCohortError
        If either cohort has no records.
    DegenerateVarianceError
        If on_degenerate="raise" and a merged point has n <= 1.
    ZeroTotalVarianceError
        If the summed variance is zero.
    """
    if on_degenerate not in ("exclude", "raise"):
        raise ValidationError(
            f"on_degenerate must be 'exclude' or 'raise', got {on_degenerate!r}"
        )

    def_1 = cohort_1.event_definition
    def_2 = cohort_2.event_definition
    if def_1 is not None and def_2 is not None and def_1 != def_2:
        raise ValidationError(
            f"Cohorts belong to different event definitions: "
            f"{def_1.name!r} and {def_2.name!r}"
        )

    labels = (_label(cohort_1, "cohort 1"), _label(cohort_2, "cohort 2"))
    for cohort, label in zip((cohort_1, cohort_2), labels):
        if cohort.n == 0:
            raise EmptyCohortError(
                f"Log-rank statistic is undefined: {label} has no records",
                group=cohort.group,
            )

    merged = merge_cohorts(cohort_1, cohort_2, tail=tail)

    m1 = np.array([p.num_of_failure_1 for p in merged], dtype=np.float64)
    m2 = np.array([p.num_of_failure_2 for p in merged], dtype=np.float64)
    n1 = np.array([p.num_at_risk_1 for p in merged], dtype=np.float64)
    n2 = np.array([p.num_at_risk_2 for p in merged], dtype=np.float64)

    n = n1 + n2
    m = m1 + m2

    expectation = n1 / n * m

    degenerate = n <= 1
    if on_degenerate == "raise" and np.any(degenerate):
        k = int(np.flatnonzero(degenerate)[0])
        raise DegenerateVarianceError(
            f"Variance undefined at time {merged[k].time}: "
            f"total at risk is {int(n[k])}",
            time=merged[k].time,
            n_at_risk=int(n[k]),
        )

    variance = np.zeros(len(merged), dtype=np.float64)
    ok = ~degenerate
    variance[ok] = (
        m[ok] * (n[ok] - m[ok]) * n1[ok] * n2[ok]
        / (n[ok] ** 2 * (n[ok] - 1.0))
    )

    observed_1 = float(np.sum(m1))
    expected_1 = float(np.sum(expectation))
    total_variance = float(np.sum(variance))

    if not total_variance > 0:
        raise ZeroTotalVarianceError(
            f"Log-rank statistic is undefined: total variance is zero "
            f"over {len(merged)} merged time points",
            n_points=len(merged),
        )

    statistic = (observed_1 - expected_1) ** 2 / total_variance

    points = tuple(
        replace(p, expectation=float(e), variance=float(v), degenerate=bool(d))
        for p, e, v, d in zip(merged, expectation, variance, degenerate)
    )

    total_failures = float(np.sum(m))

    return LogRankParams(
        statistic=float(statistic),
        df=1,
        observed=np.array([observed_1, float(np.sum(m2))]),
        expected=np.array([expected_1, total_failures - expected_1]),
        variance=total_variance,
        n_per_group=np.array([cohort_1.n, cohort_2.n], dtype=np.float64),
        merged=points,
        n_degenerate=int(np.sum(degenerate)),
        tail=tail,
        group_labels=labels,
    )

"""
Kaplan-Meier product-limit estimator over a time-ordered cohort.

One curve point per record rather than per distinct event time:
- event record:    S = S_prev * (n - 1) / n
- censored record: S = S_prev (the record still sits on the curve)
Tied times are processed record by record in cohort order.

Greenwood variance with one event per record:
    Var(S(t)) = S(t)^2 * Σ 1 / (n_j * (n_j - 1))   over event records j
Records with n_j = 1 add no term (the curve drops to zero there).

References:
    Kaplan, E. L., & Meier, P. (1958). Nonparametric estimation from
        incomplete observations. JASA, 53(282), 457-481.
    Greenwood, M. (1926). The natural duration of cancer. Reports on
        Public Health and Medical Subjects, 33, 1-26.
"""

from __future__ import annotations

from dataclasses import replace

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from cohortsurv.core.exceptions import InvalidStatusError, ValidationError
from cohortsurv.core.validation import check_consistent_length
from cohortsurv.survival._common import Cohort, KMParams


def product_limit(status: NDArray, n_risk: NDArray) -> NDArray:
    """Running product-limit survival, one value per record.

    Parameters
    ----------
    status : NDArray
        (n,) 1 = event observed, 0 = censored, in ascending time order.
    n_risk : NDArray
        (n,) number at risk at each record.

    Returns
    -------
    NDArray
        (n,) non-increasing survival values in [0, 1].

    Raises
    ------
    InvalidStatusError
        If status holds anything other than 0 and 1.
    ValidationError
        If an event record has fewer than one subject at risk.
    """
    status = np.asarray(status)
    n_risk = np.asarray(n_risk, dtype=np.float64)
    check_consistent_length(status, n_risk, names=("status", "n_risk"))

    invalid = ~np.isin(status, (0, 1))
    if np.any(invalid):
        first = status[np.flatnonzero(invalid)[0]]
        raise InvalidStatusError(
            f"status must contain only 0 and 1, got {first!r}",
            value=first,
        )

    is_event = status == 1
    if np.any(n_risk[is_event] < 1):
        raise ValidationError("n_risk must be at least 1 at every event record")

    # Censored records multiply by exactly 1.0
    with np.errstate(divide='ignore', invalid='ignore'):
        factor = np.where(is_event, (n_risk - 1.0) / n_risk, 1.0)
    return np.cumprod(factor)


def greenwood_se(survival: NDArray, status: NDArray, n_risk: NDArray) -> NDArray:
    """Greenwood standard error at each record."""
    n_risk = np.asarray(n_risk, dtype=np.float64)
    denom = n_risk * (n_risk - 1.0)
    # Avoid division by zero when n_j == 1 (the last subject fails)
    denom = np.where((status == 1) & (denom > 0), denom, np.inf)
    greenwood_sum = np.cumsum(1.0 / denom)
    return np.sqrt(survival ** 2 * greenwood_sum)


def estimate_cohort(cohort: Cohort) -> Cohort:
    """Return a copy of the cohort with every record's survival_rate set."""
    if cohort.n == 0:
        return cohort

    survival = product_limit(cohort.status, cohort.num_at_risk)
    records = tuple(
        replace(record, survival_rate=float(s))
        for record, s in zip(cohort.records, survival)
    )
    return replace(cohort, records=records)


def kaplan_meier_fit(
    cohort: Cohort,
    conf_level: float,
    conf_type: str,
) -> KMParams:
    """Compute the Kaplan-Meier curve of a cohort.

    Parameters
    ----------
    cohort : Cohort
        Time-ordered cohort with at-risk counts assigned.
    conf_level : float
        Confidence level for CI (e.g. 0.95).
    conf_type : str
        CI type: "log" (default), "plain", "log-log".

    Returns
    -------
    KMParams
    """
    estimated = estimate_cohort(cohort)

    time = estimated.time
    status = estimated.status
    n_risk = estimated.num_at_risk.astype(np.float64)

    if estimated.n == 0:
        empty = np.array([], dtype=np.float64)
        return KMParams(
            cohort=estimated,
            time=empty,
            survival=empty,
            n_risk=empty,
            status=np.array([], dtype=np.int64),
            se=empty,
            ci_lower=empty,
            ci_upper=empty,
            conf_level=conf_level,
            conf_type=conf_type,
            n_observations=0,
            n_events_total=0,
        )

    survival = estimated.survival_rate
    se = greenwood_se(survival, status, n_risk)

    z = stats.norm.ppf((1.0 + conf_level) / 2.0)
    ci_lower, ci_upper = _compute_ci(survival, se, z, conf_type)

    return KMParams(
        cohort=estimated,
        time=time,
        survival=survival,
        n_risk=n_risk,
        status=status,
        se=se,
        ci_lower=ci_lower,
        ci_upper=ci_upper,
        conf_level=conf_level,
        conf_type=conf_type,
        n_observations=estimated.n,
        n_events_total=estimated.n_events,
    )


def _compute_ci(
    survival: NDArray,
    se: NDArray,
    z: float,
    conf_type: str,
) -> tuple[NDArray, NDArray]:
    """Compute CI for survival function.

    Parameters
    ----------
    survival : S(t) values
    se : Greenwood standard errors
    z : normal quantile (e.g. 1.96 for 95%)
    conf_type : "log", "plain", or "log-log"

    Returns
    -------
    (ci_lower, ci_upper) clipped to [0, 1]
    """
    if conf_type == "plain":
        ci_lower = survival - z * se
        ci_upper = survival + z * se

    elif conf_type == "log":
        # exp(log(S) ± z * se / S)
        with np.errstate(divide='ignore', invalid='ignore'):
            log_s = np.log(survival)
            se_log = se / survival
            ci_lower = np.exp(log_s - z * se_log)
            ci_upper = np.exp(log_s + z * se_log)

    elif conf_type == "log-log":
        # exp(-exp(log(-log(S)) ± z * se / (S * |log(S)|)))
        with np.errstate(divide='ignore', invalid='ignore'):
            log_s = np.log(survival)
            log_neg_log_s = np.log(-log_s)
            se_loglog = se / (survival * np.abs(log_s))
            ci_lower = np.exp(-np.exp(log_neg_log_s + z * se_loglog))
            ci_upper = np.exp(-np.exp(log_neg_log_s - z * se_loglog))
    else:
        raise ValidationError(
            f"Unknown conf_type '{conf_type}'. "
            f"Choose from 'log', 'plain', 'log-log'."
        )

    ci_lower = np.clip(ci_lower, 0.0, 1.0)
    ci_upper = np.clip(ci_upper, 0.0, 1.0)

    # Handle NaN (from S=0 or S=1 edge cases)
    ci_lower = np.where(np.isnan(ci_lower), 0.0, ci_lower)
    ci_upper = np.where(np.isnan(ci_upper), 1.0, ci_upper)

    # No variance yet (before the first event): the band collapses onto S
    flat = se == 0
    ci_lower = np.where(flat, survival, ci_lower)
    ci_upper = np.where(flat, survival, ci_upper)

    return ci_lower, ci_upper

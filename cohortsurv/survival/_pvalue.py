"""
Default chi-square to p-value adapter.

The statistical core stops at the chi-square statistic; callers may plug in
any function with the same signature (a remote service, a lookup table).
"""

from __future__ import annotations

from scipy import stats


def chi_square_p_value(statistic: float, df: int = 1) -> float:
    """Upper-tail probability of a chi-square statistic.

    Parameters
    ----------
    statistic : float
        Non-negative chi-square statistic.
    df : int
        Degrees of freedom (1 for a two-cohort log-rank test).

    Returns
    -------
    float
        p-value in [0, 1].
    """
    return float(stats.chi2.sf(statistic, df))

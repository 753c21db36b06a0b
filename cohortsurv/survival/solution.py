"""
Solution wrappers for survival analysis results.

Each Solution wraps a Result[Params] and exposes user-friendly properties
with R-style summary() methods.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from cohortsurv.core.result import Result
from cohortsurv.survival._common import (
    Cohort,
    EventDefinition,
    GroupLabel,
    KMParams,
    LogRankParams,
    MergedTimePoint,
)


def _first_time_at_or_below(time: NDArray, values: NDArray, level: float) -> float | None:
    idx = values <= level
    if not idx.any():
        return None
    return float(time[idx][0])


class KMSolution:
    """Kaplan-Meier curve of one cohort, one point per record."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result[KMParams]) -> None:
        self._result = _result

    # -- Properties delegating to KMParams --

    @property
    def cohort(self) -> Cohort:
        """The estimated cohort (records carry survival_rate)."""
        return self._result.params.cohort

    @property
    def group(self) -> GroupLabel | None:
        return self.cohort.group

    @property
    def event_definition(self) -> EventDefinition | None:
        return self.cohort.event_definition

    @property
    def time(self):
        """Record times, ascending."""
        return self._result.params.time

    @property
    def survival(self):
        """S(t) at each record."""
        return self._result.params.survival

    @property
    def n_risk(self):
        """Number at risk at each record."""
        return self._result.params.n_risk

    @property
    def status(self):
        """1 = event, 0 = censored, per record."""
        return self._result.params.status

    @property
    def se(self):
        """Greenwood standard error of S(t)."""
        return self._result.params.se

    @property
    def ci_lower(self):
        """Lower confidence bound for S(t)."""
        return self._result.params.ci_lower

    @property
    def ci_upper(self):
        """Upper confidence bound for S(t)."""
        return self._result.params.ci_upper

    @property
    def conf_level(self) -> float:
        return self._result.params.conf_level

    @property
    def conf_type(self) -> str:
        return self._result.params.conf_type

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_events_total(self) -> int:
        return self._result.params.n_events_total

    @property
    def n_censored(self) -> int:
        return self.n_observations - self.n_events_total

    @property
    def median_survival(self) -> float | None:
        """Median survival time (smallest t where S(t) <= 0.5)."""
        return _first_time_at_or_below(self.time, self.survival, 0.5)

    @property
    def median_ci(self) -> tuple[float | None, float | None]:
        """Confidence limits of the median, from the pointwise band.

        The lower limit is where the lower band first reaches 0.5, the upper
        limit where the upper band does. None where the band never gets there.
        """
        return (
            _first_time_at_or_below(self.time, self.ci_lower, 0.5),
            _first_time_at_or_below(self.time, self.ci_upper, 0.5),
        )

    def survival_at(self, t: float) -> float:
        """Step-function value of the curve at time t (1.0 before the first record)."""
        if self.n_observations == 0:
            return 1.0
        idx = int(np.searchsorted(self.time, t, side="right")) - 1
        if idx < 0:
            return 1.0
        return float(self.survival[idx])

    def risk_table(self, times) -> NDArray:
        """Number of records still under observation at each of ``times``."""
        times = np.asarray(times, dtype=np.float64)
        return self.n_observations - np.searchsorted(self.time, times, side="left")

    @property
    def info(self) -> dict:
        return self._result.info

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """R-style summary of the Kaplan-Meier curve."""
        lines = []
        label = self.group.value if self.group is not None else "cohort"
        lines.append(f"Call: kaplan_meier({label})")
        lines.append("")
        lines.append(
            f"  n={self.n_observations}, "
            f"events={self.n_events_total}, "
            f"censored={self.n_censored}"
        )
        lines.append("")

        median = self.median_survival
        lower, upper = self.median_ci
        ci_pct = int(round(self.conf_level * 100))

        def fmt(value):
            return f"{value:.4g}" if value is not None else "NA"

        lines.append(
            f"  median survival = {fmt(median)}  "
            f"({ci_pct}% CI {fmt(lower)}, {fmt(upper)})"
        )
        lines.append("")

        lines.append(
            f"  {'time':>8s}  {'n.risk':>8s}  {'status':>8s}  "
            f"{'survival':>10s}  {'se':>10s}  "
            f"{'lower ' + str(ci_pct) + '%':>10s}  {'upper ' + str(ci_pct) + '%':>10s}"
        )

        # Show up to 20 rows
        m = len(self.time)
        show = min(m, 20)
        for i in range(show):
            lines.append(
                f"  {self.time[i]:8.4g}  {self.n_risk[i]:8.0f}  "
                f"{self.status[i]:8d}  "
                f"{self.survival[i]:10.6f}  {self.se[i]:10.6f}  "
                f"{self.ci_lower[i]:10.6f}  {self.ci_upper[i]:10.6f}"
            )
        if m > 20:
            lines.append(f"  ... ({m - 20} more rows)")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"KMSolution(n={self.n_observations}, "
            f"events={self.n_events_total}, "
            f"median={self.median_survival})"
        )


class LogRankSolution:
    """Two-cohort log-rank test solution.

    Properties mirror R's survdiff() output, plus the merged time points.
    """

    __slots__ = ('_result',)

    def __init__(self, _result: Result[LogRankParams]) -> None:
        self._result = _result

    @property
    def statistic(self) -> float:
        return self._result.params.statistic

    @property
    def df(self) -> int:
        return self._result.params.df

    @property
    def observed(self):
        return self._result.params.observed

    @property
    def expected(self):
        return self._result.params.expected

    @property
    def variance(self) -> float:
        return self._result.params.variance

    @property
    def n_per_group(self):
        return self._result.params.n_per_group

    @property
    def merged(self) -> tuple[MergedTimePoint, ...]:
        return self._result.params.merged

    @property
    def n_degenerate(self) -> int:
        return self._result.params.n_degenerate

    @property
    def tail(self) -> str:
        return self._result.params.tail

    @property
    def group_labels(self) -> tuple[str, str]:
        return self._result.params.group_labels

    @property
    def info(self) -> dict:
        return self._result.info

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """R-style summary of the log-rank test."""
        lines = []
        lines.append("Call: survdiff()")
        lines.append("")

        lines.append(f"  {'':>12s}  {'N':>6s}  {'Observed':>10s}  {'Expected':>10s}  {'(O-E)^2/E':>10s}")
        for i in range(2):
            oe = ((self.observed[i] - self.expected[i]) ** 2
                  / self.expected[i]) if self.expected[i] > 0 else 0
            label = str(self.group_labels[i])
            lines.append(
                f"  {label:>12s}  {self.n_per_group[i]:6.0f}  "
                f"{self.observed[i]:10.1f}  {self.expected[i]:10.1f}  "
                f"{oe:10.3f}"
            )

        lines.append("")
        lines.append(
            f"  Chisq= {self.statistic:.4f} on {self.df} degrees of freedom, "
            f"{len(self.merged)} merged time points ({self.tail} tail)"
        )

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LogRankSolution(chisq={self.statistic:.4f}, "
            f"df={self.df}, points={len(self.merged)})"
        )


class ComparisonSolution:
    """Altered vs unaltered comparison for one event definition."""

    __slots__ = ('_event_definition', '_altered', '_unaltered', '_logrank', '_p_value')

    def __init__(
        self,
        event_definition: EventDefinition,
        altered: KMSolution,
        unaltered: KMSolution,
        logrank: LogRankSolution,
        p_value: float,
    ) -> None:
        self._event_definition = event_definition
        self._altered = altered
        self._unaltered = unaltered
        self._logrank = logrank
        self._p_value = p_value

    @property
    def event_definition(self) -> EventDefinition:
        return self._event_definition

    @property
    def altered(self) -> KMSolution:
        return self._altered

    @property
    def unaltered(self) -> KMSolution:
        return self._unaltered

    @property
    def logrank(self) -> LogRankSolution:
        return self._logrank

    @property
    def statistic(self) -> float:
        return self._logrank.statistic

    @property
    def p_value(self) -> float:
        return self._p_value

    def summary(self) -> str:
        """Per-cohort medians followed by the log-rank result."""
        lines = []
        title = self.event_definition.description or self.event_definition.name
        lines.append(f"{title}: altered vs unaltered")
        lines.append("")

        for km in (self.altered, self.unaltered):
            median = km.median_survival
            median_str = f"{median:.4g}" if median is not None else "NA"
            lines.append(
                f"  {km.group.value:>10s}  n={km.n_observations:<5d} "
                f"events={km.n_events_total:<5d} median={median_str}"
            )

        info = self.altered.info
        if "n_missing_time" in info:
            missing = info["n_missing_time"]
            lines.append(
                f"  excluded: {missing['altered']} altered / "
                f"{missing['unaltered']} unaltered without a known time, "
                f"{info['n_unassigned']} without a group label"
            )

        lines.append("")
        lines.append(
            f"  Logrank Test P-Value: {self.p_value:.4g} "
            f"(Chisq= {self.statistic:.4f} on {self._logrank.df} df)"
        )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"ComparisonSolution({self.event_definition.name!r}, "
            f"chisq={self.statistic:.4f}, p={self.p_value:.4g})"
        )

"""
Tests for the two-cohort log-rank test.

Hand-computed reference (altered vs unaltered, overall survival):

    time  m1  m2  n1  n2  E1    V
       1   1   1   3   2  6/5   9/25
       2   0   1   2   1  2/3   2/9
       3   1   0   1   0  1     (n = 1, excluded)

    O1 = 2, E1 = 43/15, V = 131/225
    chi_square = (13/15)^2 / (131/225) = 169/131
"""

import warnings

import numpy as np
import pytest
from numpy.testing import assert_allclose

from cohortsurv.core.exceptions import (
    DegenerateVarianceError,
    EmptyCohortError,
    ValidationError,
    ZeroTotalVarianceError,
)
from cohortsurv.survival import (
    CaseRecord,
    LogRankSolution,
    build_and_estimate,
    build_cohort,
    build_cohorts,
    log_rank_statistic,
    survdiff,
)
from cohortsurv.survival._logrank import merge_cohorts


REFERENCE_CHI_SQUARE = 169 / 131


def make_cohort(times, statuses, **kwargs):
    return build_cohort(
        (CaseRecord(case_id=f"c{i}", time=float(t), status=s)
         for i, (t, s) in enumerate(zip(times, statuses))),
        **kwargs,
    )


def textbook_logrank(t1, e1, t2, e2):
    """Grouped log-rank statistic over distinct event times."""
    t1, e1, t2, e2 = map(np.asarray, (t1, e1, t2, e2))
    event_times = np.unique(np.concatenate([t1[e1 == 1], t2[e2 == 1]]))
    o1 = e_1 = v = 0.0
    for t in event_times:
        n1 = np.sum(t1 >= t)
        n2 = np.sum(t2 >= t)
        d1 = np.sum((t1 == t) & (e1 == 1))
        d = d1 + np.sum((t2 == t) & (e2 == 1))
        n = n1 + n2
        o1 += d1
        e_1 += n1 * d / n
        if n > 1:
            v += d * (n - d) * n1 * n2 / (n ** 2 * (n - 1))
    return (o1 - e_1) ** 2 / v


@pytest.fixture
def reference_cohorts(reference_records, reference_groups):
    return build_and_estimate(reference_records, reference_groups, "os")


class TestMerge:
    """Two-pointer merge of the reference cohorts."""

    def test_extend_three_points(self, reference_cohorts):
        points = merge_cohorts(*reference_cohorts, tail="extend")

        assert [p.time for p in points] == [1.0, 2.0, 3.0]
        assert [(p.num_of_failure_1, p.num_of_failure_2) for p in points] == [
            (1, 1), (0, 1), (1, 0),
        ]
        assert [(p.num_at_risk_1, p.num_at_risk_2) for p in points] == [
            (3, 2), (2, 1), (1, 0),
        ]

    def test_truncate_drops_tail(self, reference_cohorts):
        points = merge_cohorts(*reference_cohorts, tail="truncate")
        assert [p.time for p in points] == [1.0, 2.0]

    def test_censored_records_emit_nothing(self):
        a = make_cohort([1, 3, 5], [0, 0, 1])
        b = make_cohort([2, 4, 6], [0, 1, 0])
        points = merge_cohorts(a, b)

        assert [p.time for p in points] == [4.0, 5.0]
        assert (points[0].num_at_risk_1, points[0].num_at_risk_2) == (1, 2)
        assert (points[1].num_at_risk_1, points[1].num_at_risk_2) == (1, 1)

    def test_equal_times_both_censored(self):
        a = make_cohort([1, 2], [0, 1])
        b = make_cohort([1, 2], [0, 0])
        points = merge_cohorts(a, b)
        assert len(points) == 1
        assert points[0].time == 2.0
        assert points[0].num_of_failures == 1
        assert points[0].num_at_risk == 2

    def test_second_cohort_tail(self):
        a = make_cohort([1], [1])
        b = make_cohort([2, 3, 4], [1, 0, 1])
        points = merge_cohorts(a, b, tail="extend")
        assert [p.time for p in points] == [1.0, 2.0, 4.0]
        assert (points[-1].num_at_risk_1, points[-1].num_at_risk_2) == (0, 1)

    def test_invalid_tail(self, reference_cohorts):
        with pytest.raises(ValidationError, match="tail"):
            merge_cohorts(*reference_cohorts, tail="both")


class TestReferenceStatistic:
    """Regression value for the hand-computed fixture."""

    def test_statistic(self, reference_cohorts):
        with pytest.warns(RuntimeWarning, match="zero variance"):
            statistic = log_rank_statistic(*reference_cohorts)
        assert statistic == pytest.approx(REFERENCE_CHI_SQUARE, rel=1e-12)
        assert statistic == pytest.approx(1.2900763, rel=1e-6)

    def test_survdiff_details(self, reference_cohorts):
        with pytest.warns(RuntimeWarning):
            result = survdiff(*reference_cohorts)

        assert isinstance(result, LogRankSolution)
        assert result.df == 1
        assert result.tail == "extend"
        assert result.group_labels == ("altered", "unaltered")
        assert_allclose(result.n_per_group, [3, 2])
        assert_allclose(result.observed, [2, 2])
        assert_allclose(result.expected, [43 / 15, 4 - 43 / 15])
        assert result.variance == pytest.approx(131 / 225)

        assert len(result.merged) == 3
        assert_allclose([p.expectation for p in result.merged], [6 / 5, 2 / 3, 1.0])
        assert_allclose([p.variance for p in result.merged], [9 / 25, 2 / 9, 0.0])
        assert [p.degenerate for p in result.merged] == [False, False, True]
        assert result.n_degenerate == 1
        assert result.backend_name == "cpu_logrank"
        assert result.info["n_points"] == 3

    def test_degenerate_recorded_in_result(self, reference_cohorts):
        with pytest.warns(RuntimeWarning):
            result = survdiff(*reference_cohorts)
        assert len(result.warnings) == 1
        assert "zero variance" in result.warnings[0]

    def test_truncate_same_statistic(self, reference_cohorts):
        result = survdiff(*reference_cohorts, tail="truncate")
        assert len(result.merged) == 2
        assert result.n_degenerate == 0
        assert result.warnings == ()
        assert result.statistic == pytest.approx(REFERENCE_CHI_SQUARE, rel=1e-12)

    def test_raise_on_degenerate(self, reference_cohorts):
        with pytest.raises(DegenerateVarianceError) as exc_info:
            log_rank_statistic(*reference_cohorts, on_degenerate="raise")
        assert exc_info.value.time == 3.0
        assert exc_info.value.n_at_risk == 1

    def test_truncate_never_degenerate(self, reference_cohorts):
        statistic = log_rank_statistic(
            *reference_cohorts, tail="truncate", on_degenerate="raise"
        )
        assert statistic == pytest.approx(REFERENCE_CHI_SQUARE, rel=1e-12)

    def test_summary_output(self, reference_cohorts):
        result = survdiff(*reference_cohorts, tail="truncate")
        text = result.summary()
        assert "survdiff" in text
        assert "Chisq= 1.2901" in text
        assert "altered" in text
        assert "LogRankSolution" in repr(result)


class TestProperties:

    @pytest.mark.filterwarnings("ignore:.*zero variance:RuntimeWarning")
    @pytest.mark.parametrize("tail", ["extend", "truncate"])
    def test_symmetry(self, random_study, tail):
        records, groups = random_study
        a, b = build_and_estimate(records, groups, "os")
        forward = log_rank_statistic(a, b, tail=tail)
        backward = log_rank_statistic(b, a, tail=tail)
        assert forward == pytest.approx(backward, rel=1e-10)

    @pytest.mark.filterwarnings("ignore:.*zero variance:RuntimeWarning")
    def test_non_negative(self, random_study):
        records, groups = random_study
        a, b = build_cohorts(records, groups, "os")
        assert log_rank_statistic(a, b) >= 0.0

    def test_identical_cohorts_zero(self):
        a = make_cohort([1, 2, 3, 4], [1, 1, 0, 1])
        b = make_cohort([1, 2, 3, 4], [1, 1, 0, 1])
        assert log_rank_statistic(a, b) == pytest.approx(0.0, abs=1e-12)

    def test_very_different_cohorts(self):
        a = make_cohort([1, 2, 3, 4, 5], [1, 1, 1, 1, 1])
        b = make_cohort([50, 60, 70, 80, 90], [1, 1, 1, 1, 1])
        with pytest.warns(RuntimeWarning):
            statistic = log_rank_statistic(a, b)
        assert statistic > 5

    @pytest.mark.parametrize("tail", ["extend", "truncate"])
    def test_degenerate_only_in_tail(self, random_study, tail):
        records, groups = random_study
        a, b = build_and_estimate(records, groups, "os")
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            result = survdiff(a, b, tail=tail)

        for point in result.merged:
            if point.degenerate:
                assert point.num_at_risk_1 * point.num_at_risk_2 == 0
                assert point.variance == 0.0
        if tail == "truncate":
            assert result.n_degenerate == 0

    @pytest.mark.filterwarnings("ignore:.*zero variance:RuntimeWarning")
    def test_matches_textbook_without_ties(self, rng):
        times = rng.permutation(np.arange(1, 41)).astype(np.float64)
        events = (rng.random(40) < 0.7).astype(int)
        t1, e1 = times[:18], events[:18]
        t2, e2 = times[18:], events[18:]

        order1 = np.argsort(t1, kind="stable")
        order2 = np.argsort(t2, kind="stable")
        a = make_cohort(t1[order1], e1[order1])
        b = make_cohort(t2[order2], e2[order2])

        statistic = survdiff(a, b, tail="extend").statistic
        assert statistic == pytest.approx(textbook_logrank(t1, e1, t2, e2), rel=1e-10)

    def test_works_without_survival_rates(self, reference_records, reference_groups):
        a, b = build_cohorts(reference_records, reference_groups, "os")
        statistic = log_rank_statistic(a, b, tail="truncate")
        assert statistic == pytest.approx(REFERENCE_CHI_SQUARE, rel=1e-12)


class TestUndefined:
    """Inputs for which the statistic does not exist."""

    def test_empty_cohort(self, reference_records):
        groups = {case_id: "altered" for case_id in reference_records}
        altered, unaltered = build_and_estimate(reference_records, groups, "os")

        with pytest.raises(ZeroTotalVarianceError):
            log_rank_statistic(altered, unaltered)
        with pytest.raises(EmptyCohortError) as exc_info:
            log_rank_statistic(altered, unaltered)
        assert exc_info.value.group.value == "unaltered"

    def test_all_censored(self):
        a = make_cohort([1, 2, 3], [0, 0, 0])
        b = make_cohort([1, 2], [0, 0])
        with pytest.raises(ZeroTotalVarianceError) as exc_info:
            log_rank_statistic(a, b)
        assert exc_info.value.n_points == 0

    def test_no_shared_risk(self):
        # every event happens after the other cohort has left observation
        a = make_cohort([1], [0])
        b = make_cohort([5, 6], [1, 1])
        with pytest.raises(ZeroTotalVarianceError):
            log_rank_statistic(a, b)

    def test_different_event_definitions(self, reference_records, reference_groups):
        os_altered, _ = build_cohorts(reference_records, reference_groups, "os")
        _, dfs_unaltered = build_cohorts(reference_records, reference_groups, "dfs")
        with pytest.raises(ValidationError, match="different event definitions"):
            log_rank_statistic(os_altered, dfs_unaltered)

    def test_invalid_on_degenerate(self, reference_cohorts):
        with pytest.raises(ValidationError, match="on_degenerate"):
            survdiff(*reference_cohorts, on_degenerate="ignore")

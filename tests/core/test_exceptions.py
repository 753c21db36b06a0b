"""
Tests for the cohortsurv exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via CohortSurvError)
    - Diagnostic attributes on InvalidStatusError, DegenerateVarianceError,
      ZeroTotalVarianceError, EmptyCohortError, PValueLookupError
    - Default attribute values (None for optional attributes)
"""

import pytest

from cohortsurv.core.exceptions import (
    CohortSurvError,
    DegenerateVarianceError,
    DimensionError,
    EmptyCohortError,
    InvalidStatusError,
    NumericalError,
    PValueLookupError,
    ValidationError,
    ZeroTotalVarianceError,
)
from cohortsurv.survival import GroupLabel


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via CohortSurvError."""

    @pytest.mark.parametrize("exc_type", [
        ValidationError,
        DimensionError,
        InvalidStatusError,
        NumericalError,
        DegenerateVarianceError,
        ZeroTotalVarianceError,
        EmptyCohortError,
        PValueLookupError,
    ])
    def test_catchable_as_base(self, exc_type):
        with pytest.raises(CohortSurvError):
            raise exc_type("failed")

    def test_input_errors_are_validation_errors(self):
        assert issubclass(DimensionError, ValidationError)
        assert issubclass(InvalidStatusError, ValidationError)

    def test_variance_errors_are_numerical(self):
        assert issubclass(DegenerateVarianceError, NumericalError)
        assert issubclass(ZeroTotalVarianceError, NumericalError)

    def test_empty_cohort_is_zero_variance(self):
        """An empty cohort is one way for the summed variance to be zero."""
        with pytest.raises(ZeroTotalVarianceError):
            raise EmptyCohortError("no records")

    def test_p_value_lookup_is_separate(self):
        err = PValueLookupError("lookup failed", statistic=1.0)
        assert not isinstance(err, NumericalError)
        assert not isinstance(err, ValidationError)


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestInvalidStatusError:

    def test_attributes(self):
        err = InvalidStatusError("bad status", value="7", case_id="TCGA-01")
        assert err.value == "7"
        assert err.case_id == "TCGA-01"
        assert str(err) == "bad status"

    def test_defaults(self):
        err = InvalidStatusError("bad status")
        assert err.value is None
        assert err.case_id is None


class TestDegenerateVarianceError:

    def test_attributes(self):
        err = DegenerateVarianceError("n <= 1", time=12.5, n_at_risk=1)
        assert err.time == 12.5
        assert err.n_at_risk == 1

    def test_defaults(self):
        err = DegenerateVarianceError("n <= 1")
        assert err.time is None
        assert err.n_at_risk is None


class TestZeroTotalVarianceError:

    def test_attributes(self):
        err = ZeroTotalVarianceError("zero variance", n_points=4)
        assert err.n_points == 4

    def test_empty_cohort_sets_zero_points(self):
        err = EmptyCohortError("no records", group=GroupLabel.UNALTERED)
        assert err.n_points == 0
        assert err.group is GroupLabel.UNALTERED

    def test_empty_cohort_default_group(self):
        assert EmptyCohortError("no records").group is None


class TestPValueLookupError:

    def test_statistic_attached(self):
        err = PValueLookupError("lookup failed", statistic=3.84)
        assert err.statistic == 3.84
        assert "lookup failed" in str(err)

    def test_chained_cause(self):
        try:
            try:
                raise TimeoutError("remote service")
            except TimeoutError as e:
                raise PValueLookupError("lookup failed", statistic=2.0) from e
        except PValueLookupError as err:
            assert isinstance(err.__cause__, TimeoutError)

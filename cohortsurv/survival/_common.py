"""
Shared types for survival analysis.

Enumerations for case status and group membership, the event definitions
that select which raw fields hold time and status, the immutable record and
cohort containers, and the frozen parameter payloads carried inside a
Result[P] envelope.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Iterator

import numpy as np
from numpy.typing import NDArray

from cohortsurv.core.exceptions import InvalidStatusError, ValidationError
from cohortsurv.core.validation import check_time


# Textual statuses used by clinical data sources, lower-cased.
# os: DECEASED -> 1, LIVING -> 0; dfs: Recurred/Progressed -> 1, DiseaseFree -> 0
_STATUS_LABELS = {
    "1": 1,
    "0": 0,
    "deceased": 1,
    "dead": 1,
    "living": 0,
    "alive": 0,
    "recurred/progressed": 1,
    "recurred": 1,
    "progressed": 1,
    "diseasefree": 0,
    "disease free": 0,
    "disease-free": 0,
}


class EventStatus(IntEnum):
    """Observation status of one case: event observed or censored."""

    CENSORED = 0
    EVENT = 1

    @classmethod
    def parse(cls, value: Any, case_id: Any = None) -> EventStatus:
        """Convert a raw status value to an EventStatus.

        Parameters
        ----------
        value : Any
            0/1 as int, float, bool or string, an EventStatus, or one of the
            textual clinical labels ("DECEASED", "LIVING",
            "Recurred/Progressed", "DiseaseFree", ...).
        case_id : Any
            Used in the error message only.

        Raises
        ------
        InvalidStatusError
            If the value is neither the event nor the censored sentinel.
        """
        if isinstance(value, cls):
            return value

        code = None
        if isinstance(value, (bool, np.bool_)):
            code = int(value)
        elif isinstance(value, (int, float, np.integer, np.floating)):
            if not math.isnan(value) and value in (0, 1):
                code = int(value)
        elif isinstance(value, str):
            token = value.strip().lower()
            if token in ("1.0", "0.0"):
                token = token[0]
            code = _STATUS_LABELS.get(token)

        if code is None:
            where = f" for case {case_id!r}" if case_id is not None else ""
            raise InvalidStatusError(
                f"Invalid status {value!r}{where}: expected 1/0 "
                f"(event observed / censored)",
                value=value,
                case_id=case_id,
            )
        return cls(code)


class GroupLabel(Enum):
    """The two comparison groups a case can be assigned to."""

    ALTERED = "altered"
    UNALTERED = "unaltered"

    @classmethod
    def parse(cls, value: Any) -> GroupLabel | None:
        """Return the matching label, or None for anything unrecognized.

        Case is ignored; surrounding whitespace is not stripped.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                return None
        return None


@dataclass(frozen=True)
class EventDefinition:
    """Which raw record fields hold the time and status of an endpoint."""

    name: str
    time_field: str
    status_field: str
    description: str = ""


OVERALL_SURVIVAL = EventDefinition(
    name="os",
    time_field="os_months",
    status_field="os_status",
    description="Overall survival",
)

DISEASE_FREE_SURVIVAL = EventDefinition(
    name="dfs",
    time_field="dfs_months",
    status_field="dfs_status",
    description="Disease-free survival",
)

EVENT_DEFINITIONS: dict[str, EventDefinition] = {
    OVERALL_SURVIVAL.name: OVERALL_SURVIVAL,
    DISEASE_FREE_SURVIVAL.name: DISEASE_FREE_SURVIVAL,
}


def get_event_definition(event_definition: EventDefinition | str) -> EventDefinition:
    """Resolve an EventDefinition instance or a registered name."""
    if isinstance(event_definition, EventDefinition):
        return event_definition
    try:
        return EVENT_DEFINITIONS[event_definition]
    except (KeyError, TypeError):
        known = ", ".join(repr(k) for k in EVENT_DEFINITIONS)
        raise ValidationError(
            f"Unknown event definition {event_definition!r}; "
            f"pass an EventDefinition or one of {known}"
        ) from None


@dataclass(frozen=True)
class CaseRecord:
    """One subject's observation for one event definition.

    ``time`` must be a finite, non-negative number and ``status`` is coerced
    to EventStatus on construction, so neither a missing time nor an invalid
    status can enter a cohort. ``survival_rate`` stays None until the
    cohort has been through the Kaplan-Meier estimator.
    """

    case_id: Any
    time: float
    status: EventStatus
    num_at_risk: int = 0
    survival_rate: float | None = None

    def __post_init__(self) -> None:
        time = check_time(self.time, f"time of case {self.case_id!r}")
        if time is None:
            raise ValidationError(
                f"time of case {self.case_id!r}: a case record needs a known time, "
                f"got {self.time!r}"
            )
        object.__setattr__(self, "time", time)
        object.__setattr__(
            self, "status", EventStatus.parse(self.status, case_id=self.case_id)
        )

    @property
    def is_event(self) -> bool:
        return self.status is EventStatus.EVENT


@dataclass(frozen=True)
class Cohort:
    """Time-ordered, risk-annotated records of one comparison group.

    Invariants checked on construction:
        - times are non-decreasing
        - num_at_risk runs n, n-1, ..., 1 in record order
    """

    records: tuple[CaseRecord, ...] = ()
    event_definition: EventDefinition | None = None
    group: GroupLabel | None = None

    def __post_init__(self) -> None:
        records = tuple(self.records)
        object.__setattr__(self, "records", records)

        n = len(records)
        if n == 0:
            return

        times = np.array([r.time for r in records], dtype=np.float64)
        if np.any(np.diff(times) < 0):
            raise ValidationError(
                f"{self._name}: records must be sorted by ascending time"
            )

        at_risk = np.array([r.num_at_risk for r in records], dtype=np.int64)
        expected = np.arange(n, 0, -1)
        if not np.array_equal(at_risk, expected):
            bad = int(np.flatnonzero(at_risk != expected)[0])
            raise ValidationError(
                f"{self._name}: num_at_risk must run {n}, {n - 1}, ..., 1; "
                f"record {bad} ({records[bad].case_id!r}) has "
                f"{records[bad].num_at_risk}, expected {expected[bad]}"
            )

    @property
    def _name(self) -> str:
        parts = [p for p in (
            self.event_definition.name if self.event_definition else None,
            self.group.value if self.group else None,
        ) if p]
        return f"cohort ({', '.join(parts)})" if parts else "cohort"

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[CaseRecord]:
        return iter(self.records)

    def __getitem__(self, index: int) -> CaseRecord:
        return self.records[index]

    @property
    def n(self) -> int:
        """Number of records."""
        return len(self.records)

    @property
    def n_events(self) -> int:
        return sum(1 for r in self.records if r.is_event)

    @property
    def n_censored(self) -> int:
        return self.n - self.n_events

    @property
    def is_estimated(self) -> bool:
        """Whether every record carries a survival rate."""
        return all(r.survival_rate is not None for r in self.records)

    @property
    def time(self) -> NDArray:
        return np.array([r.time for r in self.records], dtype=np.float64)

    @property
    def status(self) -> NDArray:
        return np.array([int(r.status) for r in self.records], dtype=np.int64)

    @property
    def num_at_risk(self) -> NDArray:
        return np.array([r.num_at_risk for r in self.records], dtype=np.int64)

    @property
    def survival_rate(self) -> NDArray:
        if not self.is_estimated:
            raise ValidationError(
                f"{self._name} has not been estimated; run kaplan_meier() first"
            )
        return np.array([r.survival_rate for r in self.records], dtype=np.float64)


@dataclass(frozen=True)
class MergedTimePoint:
    """One event time from the union of two cohorts' event times."""

    time: float
    num_of_failure_1: int
    num_of_failure_2: int
    num_at_risk_1: int
    num_at_risk_2: int
    expectation: float = 0.0
    variance: float = 0.0
    degenerate: bool = False     # total at risk <= 1, variance undefined

    @property
    def num_at_risk(self) -> int:
        return self.num_at_risk_1 + self.num_at_risk_2

    @property
    def num_of_failures(self) -> int:
        return self.num_of_failure_1 + self.num_of_failure_2


@dataclass(frozen=True)
class KMParams:
    """Kaplan-Meier curve parameters, one point per record of the cohort."""

    cohort: Cohort               # estimated cohort (survival_rate filled in)
    time: NDArray                # (n,) record times
    survival: NDArray            # (n,) S(t) at each record
    n_risk: NDArray              # (n,) number at risk at each record
    status: NDArray              # (n,) 1 = event, 0 = censored
    se: NDArray                  # (n,) Greenwood standard error
    ci_lower: NDArray            # (n,) lower CI for S(t)
    ci_upper: NDArray            # (n,) upper CI for S(t)
    conf_level: float            # confidence level (e.g. 0.95)
    conf_type: str               # CI type: "log" (default), "plain", "log-log"
    n_observations: int          # records in the cohort
    n_events_total: int          # observed events


@dataclass(frozen=True)
class LogRankParams:
    """Two-cohort log-rank test parameters."""

    statistic: float             # chi-squared statistic
    df: int                      # degrees of freedom (always 1)
    observed: NDArray            # (2,) observed events per cohort (O1, O2)
    expected: NDArray            # (2,) expected events per cohort (E1, E2)
    variance: float              # summed hypergeometric variance V
    n_per_group: NDArray         # (2,) records per cohort
    merged: tuple[MergedTimePoint, ...]
    n_degenerate: int            # merged points with total at risk <= 1
    tail: str                    # "extend" or "truncate"
    group_labels: tuple[str, str]

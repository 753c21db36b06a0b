"""
Cohort construction: time ordering and at-risk bookkeeping.

Each case is one record, so once a group's records are sorted by time the
number still under observation at a record is simply the number of records
from that position to the end: n for the earliest, 1 for the latest.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from cohortsurv.survival._common import (
    CaseRecord,
    Cohort,
    EventDefinition,
    GroupLabel,
)


def assign_at_risk(records: Iterable[CaseRecord]) -> tuple[CaseRecord, ...]:
    """Stable-sort records by time and number them n, n-1, ..., 1.

    Ties keep their input order. Returns new records; the inputs are
    not modified.
    """
    ordered = sorted(records, key=lambda r: r.time)
    n = len(ordered)
    return tuple(
        replace(record, num_at_risk=n - i, survival_rate=None)
        for i, record in enumerate(ordered)
    )


def build_cohort(
    records: Iterable[CaseRecord],
    event_definition: EventDefinition | None = None,
    group: GroupLabel | None = None,
) -> Cohort:
    """Build a time-ordered, risk-annotated cohort from unsorted records.

    Parameters
    ----------
    records : iterable of CaseRecord
        Records of one group with known times, in input order.
    event_definition : EventDefinition or None
    group : GroupLabel or None

    Returns
    -------
    Cohort
        Possibly empty.
    """
    return Cohort(
        records=assign_at_risk(records),
        event_definition=event_definition,
        group=group,
    )

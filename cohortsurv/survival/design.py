"""
CohortDesign: validated, group-routed case records for one event definition.

Reads the time and status fields named by an EventDefinition out of raw
per-case records, drops cases whose time is unknown or whose group label is
not recognized, and keeps the survivors in input order. Validates inputs at
construction time; downstream code trusts clean data.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from cohortsurv.core.exceptions import ValidationError
from cohortsurv.core.validation import check_time
from cohortsurv.survival._common import (
    CaseRecord,
    EventDefinition,
    GroupLabel,
    get_event_definition,
)


def _field(record: Any, name: str) -> Any:
    """Read a field from a mapping or attribute-style record."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


@dataclass(frozen=True)
class CohortDesign:
    """Immutable container of parsed records routed to their groups.

    Parameters
    ----------
    event_definition : EventDefinition
        Endpoint the records were read for.
    altered : tuple of CaseRecord
        Kept records of the altered group, in input order, unsorted.
    unaltered : tuple of CaseRecord
        Kept records of the unaltered group, in input order, unsorted.
    n_assigned : dict
        Cases per group label in the assignment, before any filtering.
    n_missing_time : dict
        Cases per group label dropped because their time is unknown.
    n_unassigned : int
        Records skipped because their case has no recognized group label.
    """

    event_definition: EventDefinition
    altered: tuple[CaseRecord, ...]
    unaltered: tuple[CaseRecord, ...]
    n_assigned: dict[GroupLabel, int]
    n_missing_time: dict[GroupLabel, int]
    n_unassigned: int

    @classmethod
    def for_cohorts(
        cls,
        raw_records,
        group_assignment,
        event_definition: EventDefinition | str,
    ) -> CohortDesign:
        """Parse raw records and route them to their groups.

        Parameters
        ----------
        raw_records : Mapping
            Case id -> record. A record is a mapping (or object) exposing the
            event definition's time and status fields. Records that are
            ``None`` or ``""`` are skipped.
        group_assignment : Mapping
            Case id -> group label. Labels other than "altered" and
            "unaltered" are ignored.
        event_definition : EventDefinition or str
            Endpoint to read, or a registered name ("os", "dfs").

        Returns
        -------
        CohortDesign

        Raises
        ------
        ValidationError
            If inputs are not mappings or a kept record has a malformed time.
        InvalidStatusError
            If a kept record's status is neither event nor censored.
        """
        definition = get_event_definition(event_definition)

        if not isinstance(raw_records, Mapping):
            raise ValidationError(
                f"raw_records must be a mapping of case id to record, "
                f"got {type(raw_records).__name__}"
            )
        if not isinstance(group_assignment, Mapping):
            raise ValidationError(
                f"group_assignment must be a mapping of case id to label, "
                f"got {type(group_assignment).__name__}"
            )

        n_assigned = {label: 0 for label in GroupLabel}
        for label in group_assignment.values():
            parsed = GroupLabel.parse(label)
            if parsed is not None:
                n_assigned[parsed] += 1

        routed: dict[GroupLabel, list[CaseRecord]] = {label: [] for label in GroupLabel}
        n_missing_time = {label: 0 for label in GroupLabel}
        n_unassigned = 0

        for case_id, record in raw_records.items():
            if record is None or (isinstance(record, str) and record == ""):
                continue

            group = GroupLabel.parse(group_assignment.get(case_id))
            if group is None:
                n_unassigned += 1
                continue

            time = check_time(
                _field(record, definition.time_field),
                f"{definition.time_field} of case {case_id!r}",
            )
            if time is None:
                n_missing_time[group] += 1
                continue

            routed[group].append(CaseRecord(
                case_id=case_id,
                time=time,
                status=_field(record, definition.status_field),
            ))

        return cls(
            event_definition=definition,
            altered=tuple(routed[GroupLabel.ALTERED]),
            unaltered=tuple(routed[GroupLabel.UNALTERED]),
            n_assigned=n_assigned,
            n_missing_time=n_missing_time,
            n_unassigned=n_unassigned,
        )

    def records_for(self, group: GroupLabel) -> tuple[CaseRecord, ...]:
        """Kept records of one group, in input order."""
        return self.altered if group is GroupLabel.ALTERED else self.unaltered

    def summary_info(self) -> dict[str, Any]:
        """Bookkeeping counts for Result.info."""
        return {
            "event_definition": self.event_definition.name,
            "n_assigned": {g.value: n for g, n in self.n_assigned.items()},
            "n_missing_time": {g.value: n for g, n in self.n_missing_time.items()},
            "n_unassigned": self.n_unassigned,
        }

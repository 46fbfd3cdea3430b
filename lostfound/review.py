# review.py
"""
Human review of validated records.

A ``ReviewSession`` holds the state of one import under review: the
records, which rows are selected for a bulk action, which are accepted,
and how the list is sorted. Every change that matters is written back to
the draft so the review can be resumed later.

Record states::

    pending -> selected -> accepted <-> pending
                           accepted -> submitted (removed from the session)
"""

import logging
import math
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Set

from lostfound.dates import canonicalize_date, to_input_format
from lostfound.drafts import DraftRepository, remove_file_extension
from lostfound.schema import DATE_FIELDS, FIELD_NAMES, RecordEvaluation

logger = logging.getLogger(__name__)

SORT_COMPLIANCE = "compliance"
EMPTY_DISPLAY_VALUE = "-"


class RecordState(str, Enum):
    PENDING = "pending"
    SELECTED = "selected"
    ACCEPTED = "accepted"


# ============================================
# COMPLIANCE PRESENTATION
# ============================================

# (minimum percentage, label, status), highest first
COMPLIANCE_LEVELS = (
    (95, "Bardzo wysoka", "very-high"),
    (75, "Wysoka", "high"),
    (50, "Średnia", "medium"),
    (25, "Niska", "low"),
    (0, "Bardzo niska", "very-low"),
)


def compliance_percentage(score: float) -> int:
    """Score in [0, 1] as a whole percentage, halves rounded up"""
    return int(math.floor((score or 0.0) * 100 + 0.5))


def _compliance_level(score: float):
    percentage = compliance_percentage(score)
    for minimum, label, status in COMPLIANCE_LEVELS:
        if percentage >= minimum:
            return label, status
    return COMPLIANCE_LEVELS[-1][1:]


def compliance_label(score: float) -> str:
    return _compliance_level(score)[0]


def compliance_status(score: float) -> str:
    return _compliance_level(score)[1]


def display_value(record: RecordEvaluation, field_name: str) -> str:
    """Field value for the review table, '-' when empty"""
    value = record.field_value(field_name)
    return value if value and value != EMPTY_DISPLAY_VALUE else EMPTY_DISPLAY_VALUE


# ============================================
# REVIEW SESSION
# ============================================

class ReviewSession:
    """Review state of one import, persisted through a DraftRepository"""

    def __init__(
        self,
        repository: DraftRepository,
        file_name: str,
        records: List[RecordEvaluation],
        accepted: Optional[Iterable[int]] = None,
    ):
        self.repository = repository
        self.file_name = file_name
        self.records = list(records)
        known = {r.index for r in self.records}
        self.accepted: Set[int] = {i for i in (accepted or ()) if i in known}
        self.selected: Set[int] = set()
        self.sort_field: Optional[str] = None
        self.sort_direction = "asc"

    @classmethod
    def start(
        cls,
        repository: DraftRepository,
        file_name: str,
        records: List[RecordEvaluation],
        file_content: Optional[bytes] = None,
        file_type: Optional[str] = None,
    ) -> "ReviewSession":
        """New review right after validation; creates the draft"""
        repository.save_draft(file_name, records, [], file_content=file_content, file_type=file_type)
        return cls(repository, file_name, records)

    @classmethod
    def open(cls, repository: DraftRepository, name: str) -> Optional["ReviewSession"]:
        """
        Resume the draft stored for ``name`` (with or without extension).

        Records mirrored as accepted are merged back when a record with the
        same index and source row is still in the draft.
        """
        draft = repository.find_draft(name)
        if draft is None:
            return None
        rows = {r.index: r.source_row for r in draft.records}
        mirrored = {
            r.index for r in repository.load_accepted_records()
            if rows.get(r.index) == r.source_row
        }
        return cls(repository, draft.file_name, draft.records, draft.accepted_indexes | mirrored)

    @property
    def display_name(self) -> str:
        return remove_file_extension(self.file_name)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def record(self, index: int) -> RecordEvaluation:
        for record in self.records:
            if record.index == index:
                return record
        raise KeyError(f"No record with index {index}")

    def record_state(self, index: int) -> RecordState:
        self.record(index)
        if index in self.accepted:
            return RecordState.ACCEPTED
        if index in self.selected:
            return RecordState.SELECTED
        return RecordState.PENDING

    def accepted_records(self) -> List[RecordEvaluation]:
        """Accepted records in original order"""
        return [r for r in self.records if r.index in self.accepted]

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    def _selectable(self) -> List[RecordEvaluation]:
        return [r for r in self.visible_records() if r.index not in self.accepted]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _save_draft(self) -> None:
        if self.records:
            self.repository.update_draft(self.file_name, self.records, self.accepted)

    def _save_accepted(self) -> None:
        self.repository.save_accepted_records(self.accepted_records())
        self._save_draft()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def toggle_row_selection(self, index: int) -> None:
        """Select or unselect one row; accepted rows cannot be selected"""
        self.record(index)
        if index in self.accepted:
            return
        if index in self.selected:
            self.selected.discard(index)
        else:
            self.selected.add(index)

    def is_all_selected(self) -> bool:
        selectable = self._selectable()
        if not selectable:
            return False
        return all(r.index in self.selected for r in selectable)

    def toggle_all_rows(self) -> None:
        if self.is_all_selected():
            self.selected.clear()
        else:
            self.selected.update(r.index for r in self._selectable())

    # ------------------------------------------------------------------
    # Acceptance
    # ------------------------------------------------------------------

    def accept_record(self, index: int) -> None:
        self.record(index)
        self.accepted.add(index)
        self.selected.discard(index)
        self._save_accepted()

    def unaccept_record(self, index: int) -> None:
        self.record(index)
        self.accepted.discard(index)
        self._save_accepted()

    def accept_selected(self) -> int:
        """Accept every selected row, returns how many were accepted"""
        count = len(self.selected)
        self.accepted.update(self.selected)
        self.selected.clear()
        self._save_accepted()
        return count

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def edit_form(self, index: int) -> Dict[str, str]:
        """Current values of a record, dates in input (YYYY-MM-DD) format"""
        record = self.record(index)
        form = {}
        for name in FIELD_NAMES:
            value = record.field_value(name)
            form[name] = to_input_format(value) if name in DATE_FIELDS else value
        return form

    def edit_record(self, index: int, values: Mapping[str, str]) -> RecordEvaluation:
        """
        Overwrite normalized values of a record.

        Only fields the record was evaluated on are changed; dates are stored
        as YYYY-MM-DD (or "" when not a date). Acceptance is unchanged.
        """
        record = self.record(index)
        for name, value in values.items():
            evaluation = record.fields.get(name)
            if evaluation is None:
                logger.debug("Record %d has no field '%s', value ignored", index, name)
                continue
            value = (value or "").strip()
            evaluation.json_value = canonicalize_date(value) if name in DATE_FIELDS else value

        if index in self.accepted:
            self.repository.save_accepted_records(self.accepted_records())
        self._save_draft()
        return record

    def delete_record(self, index: int) -> None:
        """Remove a record; the draft goes away with the last record"""
        self.record(index)
        self.records = [r for r in self.records if r.index != index]
        self.selected.discard(index)
        was_accepted = index in self.accepted
        self.accepted.discard(index)

        if was_accepted:
            self.repository.save_accepted_records(self.accepted_records())
        if self.records:
            self._save_draft()
        else:
            self.repository.remove_draft(self.file_name)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_accepted(self) -> List[RecordEvaluation]:
        """
        Hand over the accepted records and drop them from the review.

        Returns:
            Accepted records in original order (empty when none)
        """
        submitted = self.accepted_records()
        if not submitted:
            logger.warning("No accepted records to submit for '%s'", self.file_name)
            return []

        self.records = [r for r in self.records if r.index not in self.accepted]
        self.accepted.clear()
        self.selected.clear()

        self.repository.clear_accepted_records()
        if self.records:
            self.repository.update_draft(self.file_name, self.records, [])
        else:
            self.repository.remove_draft(self.file_name)

        logger.info("Submitted %d record(s) from '%s'", len(submitted), self.file_name)
        return submitted

    def discard(self) -> None:
        """Drop the review and its draft"""
        self.repository.remove_draft(self.file_name)
        self.repository.clear_accepted_records()
        self.records = []
        self.accepted.clear()
        self.selected.clear()

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------

    def on_sort_change(self, field: str = SORT_COMPLIANCE) -> None:
        if self.sort_field == field:
            self.sort_direction = "desc" if self.sort_direction == "asc" else "asc"
        else:
            self.sort_field = field
            self.sort_direction = "asc"

    def visible_records(self) -> List[RecordEvaluation]:
        """
        Records in display order.

        Sorted by overall score when compliance sorting is on: ascending
        puts accepted records last, descending puts them first.
        """
        if self.sort_field != SORT_COMPLIANCE:
            return list(self.records)
        return sorted(
            self.records,
            key=lambda r: (r.index in self.accepted, r.overall_score or 0.0),
            reverse=self.sort_direction == "desc",
        )

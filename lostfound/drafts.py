# drafts.py
"""
Import drafts: review progress saved between sessions.

A draft is stored per uploaded file under the ``import_drafts`` key as a
JSON array (camelCase keys, original file bytes as base64). The records a
reviewer accepted but has not submitted yet are mirrored under
``accepted_import_records``.

Storage problems never interrupt a review: they are logged and the
repository answers with empty results. A write that follows a failed read
is skipped, so drafts that could not be read are never overwritten.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from lostfound.errors import StorageError
from lostfound.schema import RecordEvaluation
from lostfound.storage import KeyValueStore

logger = logging.getLogger(__name__)

DRAFTS_STORAGE_KEY = "import_drafts"
ACCEPTED_STORAGE_KEY = "accepted_import_records"

DEFAULT_FILE_TYPE = "application/octet-stream"


def utc_timestamp() -> str:
    """ISO-8601 timestamp with millisecond precision, e.g. 2024-07-13T10:15:00.000Z"""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def remove_file_extension(file_name: str) -> str:
    """'zguby.csv' -> 'zguby'; names without a dot are unchanged"""
    position = file_name.rfind(".")
    if position == -1:
        return file_name
    return file_name[:position]


def encode_file(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


# ============================================
# DATA STRUCTURES
# ============================================

@dataclass
class ImportDraft:
    """Saved review progress for one uploaded file"""
    file_name: str
    last_modified: str
    records: List[RecordEvaluation] = field(default_factory=list)
    accepted_indexes: Set[int] = field(default_factory=set)
    file_content: Optional[str] = None      # base64 of the original bytes
    file_type: Optional[str] = None         # MIME type

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase JSON document kept in storage"""
        data = {
            "fileName": self.file_name,
            "lastModified": self.last_modified,
            "records": [r.to_dict() for r in self.records],
            "acceptedIndexes": sorted(self.accepted_indexes),
        }
        if self.file_content is not None:
            data["fileContent"] = self.file_content
        if self.file_type is not None:
            data["fileType"] = self.file_type
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImportDraft":
        return cls(
            file_name=str(data["fileName"]),
            last_modified=str(data.get("lastModified") or ""),
            records=[RecordEvaluation.from_dict(r) for r in data.get("records") or []],
            accepted_indexes={int(i) for i in data.get("acceptedIndexes") or []},
            file_content=data.get("fileContent"),
            file_type=data.get("fileType"),
        )

    def matches(self, name: str) -> bool:
        """True for the stored file name or the same name without extension"""
        return self.file_name == name or remove_file_extension(self.file_name) == name

    @property
    def display_name(self) -> str:
        return remove_file_extension(self.file_name)


# ============================================
# REPOSITORY
# ============================================

class DraftRepository:
    """Draft and accepted-record persistence on top of a KeyValueStore"""

    def __init__(self, store: KeyValueStore):
        self.store = store

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    def _load_json(self, key: str) -> Tuple[bool, Any]:
        """(ok, value); ok is False when the key exists but cannot be read"""
        try:
            stored = self.store.get_item(key)
            if not stored:
                return True, None
            return True, json.loads(stored)
        except (StorageError, ValueError) as exc:
            logger.error("Cannot read '%s' from storage: %s", key, exc)
            return False, None

    def _read_json(self, key: str) -> Optional[Any]:
        return self._load_json(key)[1]

    def _write_json(self, key: str, value: Any) -> bool:
        try:
            self.store.set_item(key, json.dumps(value, ensure_ascii=False))
            return True
        except StorageError as exc:
            logger.error("Cannot write '%s' to storage: %s", key, exc)
            return False

    def _write_drafts(self, drafts: Iterable[ImportDraft]) -> bool:
        return self._write_json(DRAFTS_STORAGE_KEY, [d.to_dict() for d in drafts])

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def _load_drafts(self) -> Optional[List[ImportDraft]]:
        """Stored drafts, or None when they could not be read"""
        ok, stored = self._load_json(DRAFTS_STORAGE_KEY)
        if not ok:
            return None
        if stored is None:
            return []
        if not isinstance(stored, list):
            logger.error("Unexpected '%s' document: %s", DRAFTS_STORAGE_KEY, type(stored).__name__)
            return None
        drafts = []
        for item in stored:
            try:
                drafts.append(ImportDraft.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.error("Skipping unreadable draft: %s", exc)
        return drafts

    def get_drafts(self) -> List[ImportDraft]:
        """Every stored draft, in storage order"""
        return self._load_drafts() or []

    def find_draft(self, name: str) -> Optional[ImportDraft]:
        """Draft for ``name``, given with or without its file extension"""
        for draft in self.get_drafts():
            if draft.matches(name):
                return draft
        return None

    def save_draft(
        self,
        file_name: str,
        records: List[RecordEvaluation],
        accepted_indexes: Iterable[int] = (),
        file_content: Optional[bytes] = None,
        file_type: Optional[str] = None,
    ) -> Optional[ImportDraft]:
        """
        Create or replace the draft stored under ``file_name``.

        Without ``file_content`` the previously stored file (if any) is kept.
        Returns the saved draft, or None when storage failed.
        """
        drafts = self._load_drafts()
        if drafts is None:
            logger.warning("Draft '%s' not saved: stored drafts are unreadable", file_name)
            return None
        position = next((i for i, d in enumerate(drafts) if d.file_name == file_name), -1)

        if file_content is not None:
            encoded, mime = encode_file(file_content), file_type or DEFAULT_FILE_TYPE
        elif position >= 0:
            encoded, mime = drafts[position].file_content, drafts[position].file_type
        else:
            encoded, mime = None, None

        draft = ImportDraft(
            file_name=file_name,
            last_modified=utc_timestamp(),
            records=list(records),
            accepted_indexes=set(accepted_indexes),
            file_content=encoded,
            file_type=mime,
        )
        if position >= 0:
            drafts[position] = draft
        else:
            drafts.append(draft)

        if not self._write_drafts(drafts):
            return None
        logger.debug("Draft '%s' saved (%d records)", file_name, len(draft.records))
        return draft

    def update_draft(
        self,
        file_name: str,
        records: List[RecordEvaluation],
        accepted_indexes: Iterable[int],
    ) -> Optional[ImportDraft]:
        """Save new review progress, keeping the stored file"""
        return self.save_draft(file_name, records, accepted_indexes)

    def remove_draft(self, file_name: str) -> None:
        drafts = self._load_drafts()
        if drafts is None:
            logger.warning("Draft '%s' not removed: stored drafts are unreadable", file_name)
            return
        remaining = [d for d in drafts if d.file_name != file_name]
        if len(remaining) == len(drafts):
            return
        if self._write_drafts(remaining):
            logger.info("Draft '%s' removed", file_name)

    def get_draft_file(self, file_name: str) -> Optional[Tuple[bytes, str]]:
        """Original file bytes and MIME type saved with the draft"""
        draft = next((d for d in self.get_drafts() if d.file_name == file_name), None)
        if draft is None or not draft.file_content:
            return None
        try:
            content = base64.b64decode(draft.file_content, validate=True)
        except (binascii.Error, ValueError) as exc:
            logger.error("Cannot decode file stored with draft '%s': %s", file_name, exc)
            return None
        return content, draft.file_type or DEFAULT_FILE_TYPE

    # ------------------------------------------------------------------
    # Accepted records
    # ------------------------------------------------------------------

    def save_accepted_records(self, records: List[RecordEvaluation]) -> None:
        self._write_json(ACCEPTED_STORAGE_KEY, [r.to_dict() for r in records])

    def load_accepted_records(self) -> List[RecordEvaluation]:
        """Accepted records mirrored by the last review, unreadable entries skipped"""
        stored = self._read_json(ACCEPTED_STORAGE_KEY)
        if not isinstance(stored, list):
            return []
        records = []
        for item in stored:
            try:
                records.append(RecordEvaluation.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.error("Ignoring unreadable accepted record: %s", exc)
        return records

    def load_accepted_indexes(self) -> Set[int]:
        return {r.index for r in self.load_accepted_records()}

    def clear_accepted_records(self) -> None:
        try:
            self.store.remove_item(ACCEPTED_STORAGE_KEY)
        except StorageError as exc:
            logger.error("Cannot clear accepted records: %s", exc)

# storage.py
"""
Key/value stores holding review drafts.

The web client keeps drafts in browser local storage; the backend offers the
same contract (string keys, string values) on top of SQLAlchemy so drafts can
be created and reviewed from the command line too.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from lostfound.database import init_db, make_session_factory
from lostfound.errors import StorageError
from lostfound.models import StorageEntry

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String key/value store with local-storage semantics"""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Value for ``key``, or None when absent"""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value"""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete ``key``; a missing key is not an error"""


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, used by tests and one-shot commands"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """Store backed by the ``local_storage`` table"""

    def __init__(self, engine: Engine):
        init_db(engine)
        self.SessionLocal = make_session_factory(engine)

    def get_item(self, key: str) -> Optional[str]:
        db = self.SessionLocal()
        try:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Cannot read '{key}': {exc}") from exc
        finally:
            db.close()

    def set_item(self, key: str, value: str) -> None:
        db = self.SessionLocal()
        try:
            entry = db.get(StorageEntry, key)
            if entry is None:
                db.add(StorageEntry(key=key, value=value))
            else:
                entry.value = value
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise StorageError(f"Cannot write '{key}': {exc}") from exc
        finally:
            db.close()

    def remove_item(self, key: str) -> None:
        db = self.SessionLocal()
        try:
            db.query(StorageEntry).filter(StorageEntry.key == key).delete()
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise StorageError(f"Cannot remove '{key}': {exc}") from exc
        finally:
            db.close()

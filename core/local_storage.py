import json
import logging

from core.database import SessionLocal, get_db_context
from models.storage_entry import StorageEntry

logger = logging.getLogger(__name__)


class LocalStorage:
    """Key/value slots holding JSON text, backed by the ``storage_entries`` table.

    Mirrors the browser ``localStorage`` API: string keys, string values,
    whole-value reads and writes. Database failures propagate as
    ``sqlalchemy.exc.SQLAlchemyError``; callers decide whether to log them.
    """

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    def _session(self):
        return get_db_context(self._session_factory)

    def get_item(self, key: str):
        with self._session() as db:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None

    def set_item(self, key: str, value: str) -> None:
        with self._session() as db:
            entry = db.get(StorageEntry, key)
            if entry is None:
                db.add(StorageEntry(key=key, value=value))
            else:
                entry.value = value
            db.commit()

    def remove_item(self, key: str) -> bool:
        with self._session() as db:
            entry = db.get(StorageEntry, key)
            if entry is None:
                return False
            db.delete(entry)
            db.commit()
            return True

    def keys(self) -> list:
        with self._session() as db:
            return [k for (k,) in db.query(StorageEntry.key).order_by(StorageEntry.key).all()]

    # -----------------------------
    # JSON helpers
    # -----------------------------
    def read_json(self, key: str):
        """Parsed value, or None when the key is absent. Corrupt text raises ValueError."""
        raw = self.get_item(key)
        if raw is None:
            return None
        return json.loads(raw)

    def write_json(self, key: str, obj) -> None:
        self.set_item(key, json.dumps(obj, ensure_ascii=False))
        logger.debug("Saved storage key %s", key)

import copy
import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from core.config import ABSENCES_KEY
from core.helpers import matches_search, new_record_id
from core.local_storage import LocalStorage
from core.time_utils import parse_display_date
from models.absence import Absence, STATUS_PENDING

logger = logging.getLogger(__name__)


class AbsenceRegister:
    """Staff absence requests (leave, sickness...) and their approval status."""

    def __init__(self, storage: LocalStorage | None = None):
        self._storage = storage or LocalStorage()
        self._absences: list[Absence] = []
        self._load()

    @property
    def absences(self) -> list[Absence]:
        return copy.deepcopy(self._absences)

    def add_absence(self, **fields) -> str:
        values = {k: v for k, v in fields.items() if k not in {"id", "status"}}
        absence = Absence.from_dict({**values, "id": new_record_id(), "status": STATUS_PENDING})
        self._absences.append(absence)
        self._save()
        return absence.id

    def set_status(self, absence_id: str, status: str) -> Optional[Absence]:
        absence = next((a for a in self._absences if a.id == absence_id), None)
        if not absence:
            return None
        absence.status = status
        self._save()
        return copy.deepcopy(absence)

    def filter_absences(self, search: str = "", start: date | None = None, end: date | None = None) -> list[Absence]:
        """Absences matching ``search`` (employee or reason) that lie entirely within [start, end]."""
        out = []
        for absence in self._absences:
            if not matches_search(search, absence.employee, absence.reason):
                continue
            try:
                first = parse_display_date(absence.start_date)
                last = parse_display_date(absence.end_date)
            except ValueError:
                continue
            if start and first < start:
                continue
            if end and last > end:
                continue
            out.append(copy.deepcopy(absence))
        return out

    def _load(self):
        try:
            self._absences = [Absence.from_dict(a) for a in self._storage.read_json(ABSENCES_KEY) or []]
        except (SQLAlchemyError, TypeError, ValueError, AttributeError) as e:
            logger.error("Could not load absences, starting empty: %s", e)
            self._absences = []

    def _save(self):
        try:
            self._storage.write_json(ABSENCES_KEY, [a.to_dict() for a in self._absences])
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error("Could not save absences: %s", e)

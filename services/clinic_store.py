"""
Clinic data store
---------------------------------
Owns patients and the clinic-wide appointment list. Every mutation is
written through to local storage:

    clinic_data   -> {"patients": [...], "appointments": [...]}
    appointments  -> [...]   (bare appointment array, kept for older readers)

Patient schedule fields are recomputed from all of the patient's
appointments after each appointment change:
    next_appointment  = earliest appointment at or after now, else "-"
    last_consultation = latest appointment before now, else left as is
"""

import copy
import json
import logging
from dataclasses import dataclass, fields as dataclass_fields
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from core.config import APPOINTMENTS_KEY, CLINIC_DATA_KEY
from core.helpers import generate_patient_number, matches_search, new_record_id
from core.local_storage import LocalStorage
from core.time_utils import format_date, format_datetime, format_instant, now_utc, to_instant
from models.appointment import Appointment
from models.patient import NO_VALUE, Insurance, Patient

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"


class InvalidSnapshotError(ValueError):
    """Import payload is not a usable export snapshot."""


@dataclass(frozen=True)
class LoadResult:
    loaded: bool
    reason: Optional[str] = None


def _field_names(cls):
    return {f.name for f in dataclass_fields(cls)}


class ClinicDataStore:
    def __init__(self, storage: LocalStorage | None = None, clock=now_utc, autoload: bool = True):
        self._storage = storage or LocalStorage()
        self._clock = clock
        self._patients: list[Patient] = []
        self._appointments: list[Appointment] = []
        self.last_load = self.load() if autoload else LoadResult(False, "not loaded")

    # ------------------------------------------
    # Read access (copies, never live records)
    # ------------------------------------------
    @property
    def patients(self) -> list[Patient]:
        return copy.deepcopy(self._patients)

    @property
    def appointments(self) -> list[Appointment]:
        return copy.deepcopy(self._appointments)

    def get_patient_by_id(self, patient_id: str) -> Optional[Patient]:
        patient = self._find_patient(patient_id)
        return copy.deepcopy(patient) if patient else None

    def get_appointment_by_id(self, appointment_id: str) -> Optional[Appointment]:
        appointment = self._find_appointment(appointment_id)
        return copy.deepcopy(appointment) if appointment else None

    def appointments_for_patient(self, patient_id: str) -> list[Appointment]:
        mine = [a for a in self._appointments if a.patient_id == patient_id]
        return copy.deepcopy(sorted(mine, key=lambda a: a.time))

    def search_patients(self, term: str) -> list[Patient]:
        return [
            copy.deepcopy(p) for p in self._patients
            if matches_search(term, p.name, p.first_name, p.patient_number, p.phone, p.national_id)
        ]

    # ------------------------------------------
    # Patients
    # ------------------------------------------
    def add_patient(self, **fields) -> str:
        # Numbering follows the live count, so deletions can lead to reused numbers
        patient = Patient(
            id=new_record_id(),
            patient_number=generate_patient_number(len(self._patients)),
        )
        self._apply(patient, fields, protected={"id", "patient_number"})
        patient.last_consultation = format_date(self._clock())
        patient.next_appointment = NO_VALUE
        patient.consultation_count = 0

        self._patients.append(patient)
        self._save()
        logger.info("Added patient %s", patient.patient_number)
        return patient.id

    def update_patient(self, patient_id: str, **fields) -> Optional[Patient]:
        patient = self._find_patient(patient_id)
        if not patient:
            return None

        self._apply(patient, fields, protected={"id"})

        renamed = "name" in fields or "first_name" in fields
        new_phone = "phone" in fields
        if renamed or new_phone:
            for appointment in self._appointments:
                if appointment.patient_id != patient_id:
                    continue
                if renamed:
                    appointment.patient = patient.display_name
                if new_phone:
                    appointment.contact = patient.phone

        self._save()
        return copy.deepcopy(patient)

    def delete_patient(self, patient_id: str) -> bool:
        patient = self._find_patient(patient_id)
        before = len(self._appointments)
        self._patients = [p for p in self._patients if p.id != patient_id]
        self._appointments = [a for a in self._appointments if a.patient_id != patient_id]

        if patient is None and before == len(self._appointments):
            return False
        self._save()
        logger.info("Deleted patient %s and %d appointment(s)", patient_id, before - len(self._appointments))
        return patient is not None

    # ------------------------------------------
    # Appointments
    # ------------------------------------------
    def add_appointment(self, **fields) -> str:
        fields = {k: v for k, v in fields.items() if k != "id"}
        appointment = Appointment.from_dict({"id": new_record_id(), **fields})
        return self.insert_appointment(appointment)

    def insert_appointment(self, appointment: Appointment) -> str:
        """Store a copy of ``appointment``, keeping its id (one is assigned when empty).

        Raises ValueError if the time cannot be parsed; nothing is stored then.
        """
        appointment = copy.deepcopy(appointment)
        appointment.id = appointment.id or new_record_id()
        appointment.time = format_instant(appointment.time)

        patient = self._find_patient(appointment.patient_id) if appointment.patient_id else None
        if patient:
            if not appointment.patient:
                appointment.patient = patient.display_name
            if appointment.contact is None and patient.phone:
                appointment.contact = patient.phone

        self._appointments.append(appointment)
        if patient:
            patient.consultation_count += 1
            self._refresh_schedule(patient)

        self._save()
        return appointment.id

    def update_appointment(self, appointment_id: str, **fields) -> Optional[Appointment]:
        appointment = self._find_appointment(appointment_id)
        if not appointment:
            return None

        if "time" in fields:
            fields = {**fields, "time": format_instant(fields["time"])}

        old_patient_id = appointment.patient_id
        self._apply(appointment, fields, protected={"id"})

        if appointment.patient_id != old_patient_id:
            # Visit moves from one patient to another
            old_patient = self._find_patient(old_patient_id) if old_patient_id else None
            if old_patient:
                old_patient.consultation_count = max(0, old_patient.consultation_count - 1)
                self._refresh_schedule(old_patient)
            new_patient = self._find_patient(appointment.patient_id) if appointment.patient_id else None
            if new_patient:
                new_patient.consultation_count += 1
                if "patient" not in fields:
                    appointment.patient = new_patient.display_name
                if "contact" not in fields:
                    appointment.contact = new_patient.phone or None

        patient = self._find_patient(appointment.patient_id) if appointment.patient_id else None
        if patient:
            self._refresh_schedule(patient)

        self._save()
        return copy.deepcopy(appointment)

    def delete_appointment(self, appointment_id: str) -> bool:
        appointment = self._find_appointment(appointment_id)
        if not appointment:
            return False

        self._appointments = [a for a in self._appointments if a.id != appointment_id]

        patient = self._find_patient(appointment.patient_id) if appointment.patient_id else None
        if patient:
            patient.consultation_count = max(0, patient.consultation_count - 1)
            self._refresh_schedule(patient)

        self._save()
        return True

    # ------------------------------------------
    # Snapshot export / import / reset
    # ------------------------------------------
    def export_snapshot(self) -> dict:
        return {
            "patients": [p.to_dict() for p in self._patients],
            "appointments": [a.to_dict() for a in self._appointments],
            "exportDate": format_instant(self._clock()),
            "version": SNAPSHOT_VERSION,
        }

    def import_snapshot(self, raw) -> tuple[int, int]:
        """Replace all patients and appointments with the snapshot in ``raw``.

        Returns (patients, appointments) counts. On any failure the current
        data is left untouched and InvalidSnapshotError is raised.
        """
        try:
            if isinstance(raw, (bytes, bytearray)):
                raw = raw.decode("utf-8")
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Import rejected, unreadable file: %s", e)
            raise InvalidSnapshotError("The file is not a valid JSON export.") from e

        if not isinstance(data, dict) or not data.get("version") or not data.get("exportDate"):
            logger.warning("Import rejected, version or exportDate missing")
            raise InvalidSnapshotError("Invalid file format: version and exportDate are required.")

        try:
            patients = [Patient.from_dict(p) for p in data.get("patients") or []]
            appointments = [self._normalized(Appointment.from_dict(a)) for a in data.get("appointments") or []]
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("Import rejected, bad records: %s", e)
            raise InvalidSnapshotError(f"The file contains invalid records: {e}") from e

        self._patients = patients
        self._appointments = appointments
        self._save()
        logger.info("Imported %d patient(s) and %d appointment(s)", len(patients), len(appointments))
        return len(patients), len(appointments)

    def reset_all(self) -> None:
        """Drop every patient and appointment, in memory and in storage."""
        self._patients = []
        self._appointments = []
        try:
            self._storage.remove_item(CLINIC_DATA_KEY)
            self._storage.remove_item(APPOINTMENTS_KEY)
        except SQLAlchemyError as e:
            logger.error("Could not clear stored clinic data: %s", e)
        logger.info("Clinic data reset")

    # ------------------------------------------
    # Persistence
    # ------------------------------------------
    def load(self) -> LoadResult:
        """Read both collections from storage; any failure leaves them empty."""
        self._patients, self._appointments = [], []
        try:
            data = self._storage.read_json(CLINIC_DATA_KEY)
            if data is None:
                return self._load_legacy_appointments()
            patients = [Patient.from_dict(p) for p in data.get("patients") or []]
            appointments = [self._normalized(Appointment.from_dict(a)) for a in data.get("appointments") or []]
        except (SQLAlchemyError, TypeError, ValueError, AttributeError) as e:
            logger.error("Could not load clinic data, starting empty: %s", e)
            return LoadResult(False, f"saved data unreadable: {e}")

        self._patients, self._appointments = patients, appointments
        logger.info("Loaded %d patient(s) and %d appointment(s)", len(patients), len(appointments))
        return LoadResult(True)

    def _load_legacy_appointments(self) -> LoadResult:
        legacy = self._storage.read_json(APPOINTMENTS_KEY)
        if legacy is None:
            return LoadResult(False, "no saved data")
        self._appointments = [self._normalized(Appointment.from_dict(a)) for a in legacy]
        logger.info("Loaded %d appointment(s) from the %s key", len(self._appointments), APPOINTMENTS_KEY)
        return LoadResult(True, "appointments only")

    def _save(self) -> None:
        appointments = [a.to_dict() for a in self._appointments]
        try:
            self._storage.write_json(
                CLINIC_DATA_KEY,
                {"patients": [p.to_dict() for p in self._patients], "appointments": appointments},
            )
            self._storage.write_json(APPOINTMENTS_KEY, appointments)
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error("Could not save clinic data: %s", e)

    # ------------------------------------------
    # Internals
    # ------------------------------------------
    def _find_patient(self, patient_id) -> Optional[Patient]:
        return next((p for p in self._patients if p.id == patient_id), None)

    def _find_appointment(self, appointment_id) -> Optional[Appointment]:
        return next((a for a in self._appointments if a.id == appointment_id), None)

    @staticmethod
    def _normalized(appointment: Appointment) -> Appointment:
        if appointment.time:
            appointment.time = format_instant(appointment.time)
        return appointment

    @staticmethod
    def _apply(record, fields: dict, protected: set) -> None:
        # Convert everything first so a bad value leaves the record untouched
        known = _field_names(type(record))
        changes = {}
        for key, value in fields.items():
            if key in protected or key not in known:
                continue
            if key == "insurance":
                value = Insurance.coerce(value)
            elif key == "history":
                value = list(value or [])
            elif key == "consultation_count":
                value = max(0, int(value or 0))
            changes[key] = value
        for key, value in changes.items():
            setattr(record, key, value)

    def _refresh_schedule(self, patient: Patient) -> None:
        now = self._clock()
        times = sorted(
            to_instant(a.time) for a in self._appointments
            if a.patient_id == patient.id and a.time
        )
        upcoming = [t for t in times if t >= now]
        past = [t for t in times if t < now]

        patient.next_appointment = format_datetime(upcoming[0]) if upcoming else NO_VALUE
        if past:
            patient.last_consultation = format_date(past[-1])

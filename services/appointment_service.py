import copy
from typing import Optional

from core.time_utils import appointment_slot_key, day_key, slot_key
from models.appointment import Appointment
from services.clinic_store import ClinicDataStore


class AppointmentStore:
    """Appointment-only view over a ClinicDataStore.

    The clinic store stays the single owner of the appointment list; this
    view adds the calendar helpers used by the scheduling pages. Slot checks
    are advisory: ``add`` never refuses a taken slot.
    """

    def __init__(self, clinic: ClinicDataStore):
        self._clinic = clinic

    @property
    def appointments(self) -> list[Appointment]:
        return self._clinic.appointments

    # -----------------------------
    # Mutations
    # -----------------------------
    def add(self, appointment) -> str:
        """Add an Appointment (or a dict of its fields); returns its id."""
        if isinstance(appointment, dict):
            appointment = Appointment.from_dict({"id": "", **appointment})
        return self._clinic.insert_appointment(copy.deepcopy(appointment))

    def update(self, appointment_id: str, **fields) -> Optional[Appointment]:
        return self._clinic.update_appointment(appointment_id, **fields)

    def delete(self, appointment_id: str) -> bool:
        return self._clinic.delete_appointment(appointment_id)

    # -----------------------------
    # Queries
    # -----------------------------
    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        return self._clinic.get_appointment_by_id(appointment_id)

    def list_by_date(self, day) -> list[Appointment]:
        wanted = day_key(day)
        return sorted(
            (a for a in self.appointments if a.time and day_key(a.time) == wanted),
            key=lambda a: a.time,
        )

    def is_slot_available(self, day, time: str, exclude_id: Optional[str] = None) -> bool:
        """False if another appointment starts at exactly this minute.

        Only start times are compared; overlapping durations are not detected.
        """
        wanted = slot_key(day, time)
        return not any(
            a.id != exclude_id and a.time and appointment_slot_key(a.time) == wanted
            for a in self.appointments
        )

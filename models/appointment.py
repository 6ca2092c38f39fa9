# models/appointment.py

from dataclasses import asdict, dataclass, fields
from typing import Optional


@dataclass
class Appointment:
    id: str

    # Link to patient; None for entries not tied to a patient record
    patient_id: Optional[str] = None

    # Copy of the patient's display name, kept in sync by the clinic store
    patient: str = ""

    # Canonical UTC instant, e.g. 2024-03-20T10:00:00.000Z
    time: str = ""
    duration: str = ""
    type: str = ""
    source: str = ""
    status: str = ""

    contact: Optional[str] = None
    location: Optional[str] = None
    video_link: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Appointment":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def __repr__(self):
        return f"<Appointment {self.id} at {self.time} for {self.patient or '-'}>"

# models/patient.py

from dataclasses import asdict, dataclass, field, fields

# Shown in place of a date that does not exist yet
NO_VALUE = "-"


@dataclass
class Insurance:
    active: bool = False
    name: str = ""

    @classmethod
    def coerce(cls, value):
        if isinstance(value, Insurance):
            return cls(value.active, value.name)
        if isinstance(value, dict):
            return cls(bool(value.get("active", False)), str(value.get("name") or ""))
        return cls()


@dataclass
class Patient:
    id: str
    # Short human-friendly patient identifier (P001, P002...)
    patient_number: str = ""

    # Demographics, free-form
    name: str = ""
    first_name: str = ""
    phone: str = ""
    email: str = ""
    city: str = ""
    national_id: str = ""
    birth_date: str = ""
    age: str = ""

    insurance: Insurance = field(default_factory=Insurance)
    history: list = field(default_factory=list)

    # Maintained from the patient's appointments
    last_consultation: str = ""
    next_appointment: str = NO_VALUE
    consultation_count: int = 0

    @property
    def display_name(self) -> str:
        return f"{self.name} {self.first_name}".strip()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Patient":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["insurance"] = Insurance.coerce(values.get("insurance"))
        values["history"] = list(values.get("history") or [])
        values["consultation_count"] = max(0, int(values.get("consultation_count") or 0))
        return cls(**values)

    def __repr__(self):
        return f"<Patient {self.patient_number} - {self.display_name}>"

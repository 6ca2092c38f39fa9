# models/absence.py

from dataclasses import asdict, dataclass, fields

STATUS_PENDING = "Pending"
STATUS_APPROVED = "Approved"
STATUS_REJECTED = "Rejected"


@dataclass
class Absence:
    id: str
    employee: str = ""
    start_date: str = ""  # dd/mm/YYYY
    end_date: str = ""
    reason: str = ""
    status: str = STATUS_PENDING

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Absence":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

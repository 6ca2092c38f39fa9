# models/user.py

from dataclasses import asdict, dataclass, fields
from typing import Optional


@dataclass
class StaffUser:
    id: str
    username: str
    role: str
    name: str = ""
    specialty: Optional[str] = None
    created_on: str = ""  # dd/mm/YYYY
    failed_attempts: int = 0
    is_blocked: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "StaffUser":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def __repr__(self):
        return f"<StaffUser {self.username} ({self.role})>"

# models/invoice.py

from dataclasses import asdict, dataclass, field, fields

from models.patient import Insurance, NO_VALUE

STATUS_PAID = "Paid"
STATUS_FREE = "Free"
STATUS_CANCELLED = "Cancelled"


@dataclass
class Invoice:
    id: str
    patient_number: str = ""
    patient: str = ""
    date: str = ""  # dd/mm/YYYY
    amount: str = "0"
    status: str = STATUS_PAID
    payment_type: str = NO_VALUE
    insurance: Insurance = field(default_factory=Insurance)
    last_consultation: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Invoice":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["insurance"] = Insurance.coerce(values.get("insurance"))
        return cls(**values)

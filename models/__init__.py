from .storage_entry import StorageEntry
from .patient import Patient, Insurance, NO_VALUE
from .appointment import Appointment
from .invoice import Invoice
from .absence import Absence
from .user import StaffUser

__all__ = [
    "StorageEntry",
    "Patient",
    "Insurance",
    "NO_VALUE",
    "Appointment",
    "Invoice",
    "Absence",
    "StaffUser",
]

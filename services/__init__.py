from .clinic_store import ClinicDataStore, InvalidSnapshotError, LoadResult
from .appointment_service import AppointmentStore

# Avoid importing pandas-backed export helpers at package import time.
# Import services.export_service / billing_service directly where needed.

__all__ = ["ClinicDataStore", "InvalidSnapshotError", "LoadResult", "AppointmentStore"]

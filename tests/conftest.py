"""
Shared pytest fixtures.

Every test gets its own in-memory SQLite database behind a LocalStorage,
and a clock frozen at 2024-03-01 09:00 UTC.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401  (registers tables on Base.metadata)
from core.database import Base, build_engine
from core.local_storage import LocalStorage
from services.appointment_service import AppointmentStore
from services.clinic_store import ClinicDataStore

FIXED_NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def storage(session_factory) -> LocalStorage:
    return LocalStorage(session_factory)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def store(storage, clock) -> ClinicDataStore:
    return ClinicDataStore(storage, clock=clock)


@pytest.fixture
def appointment_store(store) -> AppointmentStore:
    return AppointmentStore(store)


@pytest.fixture
def durant(store) -> str:
    """Id of a registered patient, Marie Durant."""
    return store.add_patient(name="Durant", first_name="Marie", phone="0600000001", city="Rabat")

import streamlit as st

from core.database import init_db
from core.local_storage import LocalStorage
from services.absence_service import AbsenceRegister
from services.appointment_service import AppointmentStore
from services.billing_service import InvoiceLedger
from services.clinic_store import ClinicDataStore
from services.user_service import StaffDirectory, has_permission, permissions_for


def init_session_state():
    """Ensure required session keys exist and build the stores once per session."""
    if "user" not in st.session_state:
        st.session_state.user = None
    if "clinic_store" not in st.session_state:
        init_db()
        storage = LocalStorage()
        clinic = ClinicDataStore(storage)
        st.session_state.clinic_store = clinic
        st.session_state.appointment_store = AppointmentStore(clinic)
        st.session_state.invoice_ledger = InvoiceLedger(storage)
        st.session_state.absence_register = AbsenceRegister(storage)
        directory = StaffDirectory(storage)
        directory.ensure_default_users()
        st.session_state.staff_directory = directory


def get_clinic_store() -> ClinicDataStore:
    init_session_state()
    return st.session_state.clinic_store


def get_appointment_store() -> AppointmentStore:
    init_session_state()
    return st.session_state.appointment_store


def get_invoice_ledger() -> InvoiceLedger:
    init_session_state()
    return st.session_state.invoice_ledger


def get_absence_register() -> AbsenceRegister:
    init_session_state()
    return st.session_state.absence_register


def get_staff_directory() -> StaffDirectory:
    init_session_state()
    return st.session_state.staff_directory


def login(user):
    """Persist the signed-in staff member."""
    st.session_state.user = user


def logout():
    """Clear the signed-in user and go back to the start page."""
    st.session_state.pop("user", None)
    st.switch_page("app.py")


def current_permissions() -> set:
    user = st.session_state.get("user")
    return permissions_for(user.role) if user else set()


def require_login():
    """Send visitors without a signed-in staff member back to app.py."""
    init_session_state()
    if st.session_state.user is None:
        st.warning("Please log in to access this page.")
        st.switch_page("app.py")


def require_permission(action: str):
    """Restrict a page to staff whose role grants ``action``."""
    require_login()
    if not has_permission(st.session_state.user.role, action):
        st.error(f" Access denied. This page requires the '{action}' permission.")
        st.stop()

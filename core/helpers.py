import uuid

import streamlit as st


def new_record_id() -> str:
    """Opaque unique id for stored records."""
    return uuid.uuid4().hex


def generate_patient_number(existing_count: int) -> str:
    """Returns a patient number like P001, P002, P045 from the current patient count."""
    return f"P{existing_count + 1:03d}"


def matches_search(term: str, *values) -> bool:
    """Case-insensitive substring match of ``term`` against any of ``values``."""
    q = (term or "").strip().lower()
    if not q:
        return True
    return any(q in str(v or "").lower() for v in values)


# -----------------------------
# Sidebar helpers
# -----------------------------
def hide_default_sidebar_nav():
    """Hide Streamlit's default multi-page navigation for a cleaner custom menu."""
    st.markdown(
        """
        <style>
        /* Hide the auto-generated Pages section */
        [data-testid="stSidebarNav"] { display: none; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_front_office_sidebar():
    """Render the front office menu.

    Admin and data pages only show for staff allowed to use them.
    """
    from core.session_manager import logout, current_permissions

    hide_default_sidebar_nav()
    allowed = current_permissions()
    with st.sidebar:
        st.markdown("### Front Office")
        if st.button("Patients", use_container_width=True):
            st.switch_page("pages/1_Patients.py")
        if st.button("Appointments", use_container_width=True):
            st.switch_page("pages/2_Appointments.py")
        if st.button("Billing", use_container_width=True):
            st.switch_page("pages/3_Billing.py")
        if st.button("Absences", use_container_width=True):
            st.switch_page("pages/4_Absences.py")
        if "manage_users" in allowed and st.button("Staff Admin", use_container_width=True):
            st.switch_page("pages/5_Admin.py")
        if "export_data" in allowed and st.button("Data", use_container_width=True):
            st.switch_page("pages/6_Data.py")
        st.divider()
        if st.button("Logout", use_container_width=True):
            logout()

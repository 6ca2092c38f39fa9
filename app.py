import streamlit as st

from core.config import configure_logging
from core.session_manager import init_session_state, logout, login, get_staff_directory, get_clinic_store


def go_to(page_path: str):
    st.switch_page(page_path)


def main():
    st.set_page_config(
        page_title="Clinic Front Office",
        page_icon="🩺",
        layout="wide",
        initial_sidebar_state="collapsed",
    )

    configure_logging()
    init_session_state()

    user = st.session_state.get("user")

    cols = st.columns([4, 2])
    with cols[0]:
        st.title("Clinic Front Office")
    with cols[1]:
        if user:
            st.info(f"Logged in as: **{user.username}** ({user.role})")
            if st.button("Log out"):
                logout()
                st.rerun()

    st.write("---")

    if user is None:
        # Hide sidebar & its toggle on the login page
        st.markdown(
            """
            <style>
            [data-testid="stSidebar"] { display: none !important; }
            [data-testid="collapsedControl"] { display: none !important; }
            </style>
            """,
            unsafe_allow_html=True,
        )

        last_load = get_clinic_store().last_load
        if not last_load.loaded and last_load.reason != "no saved data":
            st.warning(f"Saved clinic data could not be read and was ignored ({last_load.reason}).")

        st.subheader("Who is working today?")
        directory = get_staff_directory()
        staff = directory.users
        labels = {u.id: f"{u.name or u.username} ({u.role})" for u in staff}
        choice = st.selectbox("Staff member", list(labels), format_func=labels.get)
        if st.button("Log in"):
            selected = directory.get_user(choice)
            if selected is None:
                st.error("Unknown staff member.")
            elif selected.is_blocked:
                st.error("This account is blocked. Ask an administrator to unblock it.")
            else:
                login(selected)
                st.rerun()
        return

    st.subheader("Quick navigation")

    c1, c2, c3, c4 = st.columns(4)
    with c1:
        if st.button("Patients"):
            go_to("pages/1_Patients.py")
    with c2:
        if st.button("Appointments"):
            go_to("pages/2_Appointments.py")
    with c3:
        if st.button("Billing"):
            go_to("pages/3_Billing.py")
    with c4:
        if st.button("Absences"):
            go_to("pages/4_Absences.py")


if __name__ == "__main__":
    main()

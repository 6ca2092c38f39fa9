from datetime import date

import streamlit as st
from core.session_manager import require_login, get_absence_register, get_staff_directory
from core.helpers import render_front_office_sidebar
from models.absence import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED

# Page config is set globally in app.py

require_login()
render_front_office_sidebar()

register = get_absence_register()

st.title("Absences")

c1, c2, c3 = st.columns([3, 1, 1])
search_term = c1.text_input("Search an absence")
start = c2.date_input("From", value=date.today())
end = c3.date_input("To", value=date.today())

absences = register.filter_absences(search_term, start, end)

if not absences:
    st.info("No absences in this period.")

statuses = [STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED]
for absence in absences:
    cols = st.columns([2, 2, 2, 2])
    cols[0].write(f"**{absence.employee}**")
    cols[1].write(f"{absence.start_date} → {absence.end_date}")
    cols[2].write(absence.reason)
    status = cols[3].selectbox(
        "Status", statuses, index=statuses.index(absence.status) if absence.status in statuses else 0,
        key=f"abs_{absence.id}", label_visibility="collapsed",
    )
    if status != absence.status:
        register.set_status(absence.id, status)
        st.rerun()

st.write("---")
with st.form("absence_form", clear_on_submit=True):
    st.subheader("New absence")
    names = [u.name or u.username for u in get_staff_directory().users]
    employee = st.selectbox("Employee", names)
    first_day = st.date_input("First day", value=date.today())
    last_day = st.date_input("Last day", value=date.today())
    reason = st.selectbox("Reason", ["Leave", "Sick leave", "Training", "Other"])
    submitted = st.form_submit_button("Save")

if submitted:
    if last_day < first_day:
        st.error("The last day cannot be before the first day.")
    else:
        register.add_absence(
            employee=employee,
            start_date=f"{first_day:%d/%m/%Y}",
            end_date=f"{last_day:%d/%m/%Y}",
            reason=reason,
        )
        st.rerun()

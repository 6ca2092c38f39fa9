from datetime import date, datetime

import streamlit as st
from core.session_manager import require_login, get_appointment_store, get_clinic_store
from core.helpers import render_front_office_sidebar
from core.time_utils import format_datetime

# Page config is set globally in app.py

require_login()
render_front_office_sidebar()

clinic = get_clinic_store()
appointments = get_appointment_store()

st.title("Appointments")

day = st.date_input("Day", value=date.today())
todays = appointments.list_by_date(day)

if todays:
    st.dataframe(
        [
            {
                "Time": format_datetime(a.time),
                "Patient": a.patient,
                "Duration": a.duration,
                "Type": a.type,
                "Source": a.source,
                "Status": a.status,
                "Where": a.video_link or a.location or "",
            }
            for a in todays
        ],
        use_container_width=True,
        hide_index=True,
    )
else:
    st.info("No appointments on this day.")

st.write("---")
st.subheader("Book an appointment")

patients = clinic.patients
labels = {"": "No patient record"} | {p.id: f"{p.patient_number} - {p.display_name}" for p in patients}

with st.form("appointment_form"):
    patient_id = st.selectbox("Patient", list(labels), format_func=labels.get)
    walk_in_name = st.text_input("Name (when no patient record)")
    slot_time = st.time_input("Time", step=900)
    c1, c2 = st.columns(2)
    duration = c1.selectbox("Duration", ["15 min", "30 min", "45 min", "60 min"], index=1)
    kind = c2.selectbox("Type", ["In person", "Video"])
    source = c1.selectbox("Source", ["Phone", "Walk-in", "Online"])
    status = c2.selectbox("Status", ["Confirmed", "Pending", "Cancelled"])
    location = st.text_input("Location" if kind == "In person" else "Video link")
    submitted = st.form_submit_button("Book")

if submitted:
    hhmm = slot_time.strftime("%H:%M")
    if not appointments.is_slot_available(day, hhmm):
        st.warning(f"Another appointment already starts at {hhmm}; booking anyway.")
    appointments.add({
        "patient_id": patient_id or None,
        "patient": "" if patient_id else walk_in_name,
        "time": datetime.combine(day, slot_time),
        "duration": duration,
        "type": kind,
        "source": source,
        "status": status,
        "location": location if kind == "In person" else None,
        "video_link": location if kind == "Video" else None,
    })
    st.success("Appointment booked.")
    st.rerun()

if todays:
    st.write("---")
    st.subheader("Change or cancel")
    choices = {a.id: f"{format_datetime(a.time)} - {a.patient}" for a in todays}
    selected = st.selectbox("Appointment", list(choices), format_func=choices.get)
    new_time = st.time_input("New time", key="move_time", step=900)
    c1, c2, c3 = st.columns(3)
    if c1.button("Move"):
        hhmm = new_time.strftime("%H:%M")
        if not appointments.is_slot_available(day, hhmm, exclude_id=selected):
            st.warning(f"Another appointment already starts at {hhmm}.")
        appointments.update(selected, time=datetime.combine(day, new_time))
        st.rerun()
    if c2.button("Mark cancelled"):
        appointments.update(selected, status="Cancelled")
        st.rerun()
    if c3.button("Delete"):
        appointments.delete(selected)
        st.rerun()

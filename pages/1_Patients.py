import streamlit as st
from core.session_manager import require_login, get_clinic_store
from core.helpers import render_front_office_sidebar
from core.time_utils import format_datetime

# Page config is set globally in app.py

require_login()
render_front_office_sidebar()

store = get_clinic_store()

st.title("Patients")

# Search bar
search_query = st.text_input("Search by name, number or phone", placeholder="e.g., Durant or P003")
patients = store.search_patients(search_query)

with st.expander("Register New Patient"):
    with st.form("patient_form", clear_on_submit=True):
        c1, c2 = st.columns(2)
        name = c1.text_input("Family name")
        first_name = c2.text_input("First name")
        phone = c1.text_input("Phone")
        email = c2.text_input("Email")
        city = c1.text_input("City")
        national_id = c2.text_input("National ID")
        birth_date = c1.text_input("Birth date", placeholder="dd/mm/yyyy")
        age = c2.text_input("Age")
        insured = st.checkbox("Covered by an insurer")
        insurer = st.text_input("Insurer")
        history = st.text_area("Medical history (one per line)")
        submitted = st.form_submit_button("Create Patient")

    if submitted:
        if not (name or "").strip():
            st.error("Family name cannot be empty.")
        else:
            patient_id = store.add_patient(
                name=name.strip(), first_name=first_name.strip(), phone=phone, email=email,
                city=city, national_id=national_id, birth_date=birth_date, age=age,
                insurance={"active": insured, "name": insurer if insured else ""},
                history=[line.strip() for line in history.splitlines() if line.strip()],
            )
            st.success(f"Patient created! No. {store.get_patient_by_id(patient_id).patient_number}")
            st.rerun()

# If no patients
if not patients:
    st.info("No patients found.")
    st.stop()

st.dataframe(
    [
        {
            "No.": p.patient_number,
            "Name": p.display_name,
            "Phone": p.phone,
            "City": p.city,
            "Insurance": p.insurance.name if p.insurance.active else "-",
            "Last consultation": p.last_consultation,
            "Next appointment": p.next_appointment,
            "Visits": p.consultation_count,
        }
        for p in patients
    ],
    use_container_width=True,
    hide_index=True,
)

labels = {p.id: f"{p.patient_number} - {p.display_name}" for p in patients}
selected_id = st.selectbox("Select a patient", list(labels), format_func=labels.get)
patient = store.get_patient_by_id(selected_id)

if patient:
    with st.form("edit_patient"):
        c1, c2 = st.columns(2)
        name = c1.text_input("Family name", value=patient.name)
        first_name = c2.text_input("First name", value=patient.first_name)
        phone = c1.text_input("Phone", value=patient.phone)
        city = c2.text_input("City", value=patient.city)
        saved = st.form_submit_button("Save changes")
    if saved:
        changes = {}
        for key, value in (("name", name), ("first_name", first_name), ("phone", phone), ("city", city)):
            if value != getattr(patient, key):
                changes[key] = value
        if changes:
            store.update_patient(patient.id, **changes)
            st.success("Patient updated.")
            st.rerun()

    st.markdown("#### Appointments")
    for apt in store.appointments_for_patient(patient.id):
        st.write(f"{format_datetime(apt.time)} - {apt.type} ({apt.status})")

    confirm = st.checkbox("I understand this also deletes the patient's appointments")
    if st.button("Delete patient", disabled=not confirm):
        store.delete_patient(patient.id)
        st.success("Patient deleted.")
        st.rerun()

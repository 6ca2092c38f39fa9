import streamlit as st
from core.session_manager import require_permission, get_clinic_store, current_permissions
from core.helpers import render_front_office_sidebar
from services.clinic_store import InvalidSnapshotError
from services.export_service import snapshot_filename, snapshot_to_json

# Page config is set globally in app.py

require_permission("export_data")
render_front_office_sidebar()

store = get_clinic_store()
allowed = current_permissions()

st.title("Clinic Data")
st.write(f"{len(store.patients)} patient(s), {len(store.appointments)} appointment(s).")

snapshot = store.export_snapshot()
st.download_button(
    "Export data",
    data=snapshot_to_json(snapshot),
    file_name=snapshot_filename(snapshot),
    mime="application/json",
)

if "import_data" in allowed:
    st.write("---")
    st.subheader("Import")
    st.caption("Importing replaces every patient and appointment currently stored.")
    uploaded = st.file_uploader("Export file", type=["json"])
    if uploaded is not None and st.button("Import"):
        try:
            patients, appointments = store.import_snapshot(uploaded.getvalue())
            st.success(f"Data imported: {patients} patient(s), {appointments} appointment(s).")
        except InvalidSnapshotError as e:
            st.error(f"Import failed: {e}")

if "reset_data" in allowed:
    st.write("---")
    st.subheader("Reset")
    confirm = st.checkbox("I understand that every patient and appointment will be deleted")
    if st.button("Reset all data", disabled=not confirm):
        store.reset_all()
        st.success("Data has been reset.")

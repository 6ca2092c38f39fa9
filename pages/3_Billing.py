from datetime import date

import streamlit as st
from core.session_manager import require_permission, get_invoice_ledger, get_clinic_store, current_permissions
from core.helpers import render_front_office_sidebar
from services.billing_service import EXPORT_COLUMNS, InvoiceLedger

# Page config is set globally in app.py

require_permission("manage_billing")
render_front_office_sidebar()

ledger = get_invoice_ledger()
clinic = get_clinic_store()

c1, c2, c3 = st.columns([3, 1, 1])
search_patient = c1.text_input("Search a patient")
start = c2.date_input("From", value=date.today())
end = c3.date_input("To", value=date.today())

st.title(f"Payments from {start:%d/%m/%Y} to {end:%d/%m/%Y}")

invoices = ledger.filter_invoices(search_patient, start, end)
summary = InvoiceLedger.daily_summary(invoices)

m1, m2, m3, m4 = st.columns(4)
m1.metric("Revenue", summary["revenue"])
m2.metric("Paid visits", summary["paid"])
m3.metric("Free visits", summary["free"])
m4.metric("Cancelled", summary["cancelled"])

for invoice in invoices:
    with st.container():
        cols = st.columns([1, 2, 1, 1, 2, 2])
        cols[0].write(invoice.patient_number)
        cols[1].write(invoice.patient)
        amount = cols[2].text_input("Amount", value=invoice.amount, key=f"amt_{invoice.id}", label_visibility="collapsed")
        if amount != invoice.amount:
            ledger.set_amount(invoice.id, amount)
            st.rerun()
        cols[3].write(invoice.status)
        insured = cols[4].checkbox("Insured", value=invoice.insurance.active, key=f"ins_{invoice.id}")
        insurers = [""] + ledger.saved_insurers
        current = invoice.insurance.name if invoice.insurance.name in insurers else ""
        insurer = cols[5].selectbox(
            "Insurer", insurers, index=insurers.index(current), key=f"insn_{invoice.id}",
            label_visibility="collapsed", disabled=not insured,
        )
        if insured != invoice.insurance.active or (insured and insurer != invoice.insurance.name):
            ledger.set_insurance(invoice.id, insured, insurer)
            st.rerun()

with st.expander("New invoice"):
    patients = clinic.patients
    labels = {p.id: f"{p.patient_number} - {p.display_name}" for p in patients}
    with st.form("invoice_form", clear_on_submit=True):
        patient_id = st.selectbox("Patient", list(labels), format_func=labels.get)
        amount = st.text_input("Amount", value="0")
        payment_type = st.selectbox("Payment type", ["Cash", "Card", "Cheque", "-"])
        new_insurer = st.text_input("Other insurer (optional)")
        submitted = st.form_submit_button("Add")
    if submitted and patient_id:
        patient = clinic.get_patient_by_id(patient_id)
        invoice_id = ledger.add_invoice(
            patient_number=patient.patient_number,
            patient=patient.display_name,
            amount=amount,
            payment_type=payment_type,
            insurance=patient.insurance,
            last_consultation=patient.last_consultation,
        )
        if new_insurer.strip():
            ledger.set_insurance(invoice_id, True, new_insurer)
        st.rerun()

if "export_data" in current_permissions():
    st.write("---")
    labels = dict(EXPORT_COLUMNS)
    selected = st.multiselect("Columns", list(labels), default=list(labels), format_func=labels.get)
    st.download_button(
        "Export",
        data=ledger.export_csv(invoices, set(selected)),
        file_name=f"payments_{start:%Y-%m-%d}_{end:%Y-%m-%d}.csv",
        mime="text/csv",
    )

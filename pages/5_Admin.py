import streamlit as st
from core.session_manager import require_permission, get_staff_directory, current_permissions
from core.helpers import render_front_office_sidebar
from services.user_service import MAX_FAILED_ATTEMPTS

# Page config is set globally in app.py

require_permission("manage_users")
render_front_office_sidebar()

directory = get_staff_directory()
allowed = current_permissions()

st.title("Staff")

search_term = st.text_input("Search a user")

for user in directory.search_users(search_term):
    cols = st.columns([2, 2, 1, 2, 2, 2])
    cols[0].write(f"**{user.name}**")
    cols[1].write(user.username)
    cols[2].write(user.role)
    cols[3].write(user.specialty or "-")
    if user.is_blocked:
        cols[4].write("Blocked")
    elif user.failed_attempts:
        cols[4].write(f"{user.failed_attempts}/{MAX_FAILED_ATTEMPTS} attempts")
    else:
        cols[4].write("Active")

    if "block_users" in allowed:
        if user.failed_attempts and not user.is_blocked:
            if cols[5].button("Reset attempts", key=f"reset_{user.id}"):
                directory.reset_failed_attempts(user.id)
                st.rerun()
        label = "Unblock" if user.is_blocked else "Block"
        if cols[5].button(label, key=f"block_{user.id}"):
            if user.is_blocked:
                directory.unblock_user(user.id)
            else:
                directory.block_user(user.id)
            st.rerun()

st.write("---")
with st.form("user_form", clear_on_submit=True):
    st.subheader("New user")
    username = st.text_input("Username")
    name = st.text_input("Full name")
    role = st.selectbox("Role", ["secretary", "doctor", "admin"])
    specialty = st.text_input("Specialty (doctors)")
    submitted = st.form_submit_button("Create")

if submitted:
    try:
        directory.add_user(username=username, role=role, name=name, specialty=specialty)
        st.success("User created.")
    except ValueError as e:
        st.error(str(e))

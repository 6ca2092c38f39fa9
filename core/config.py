import logging
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("CLINIC_DATABASE_URL", "")
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "UTC")
LOG_LEVEL = os.getenv("CLINIC_LOG_LEVEL", "INFO")

# Storage keys. Changing them orphans data already saved by older versions.
CLINIC_DATA_KEY = "clinic_data"
APPOINTMENTS_KEY = "appointments"
INVOICES_KEY = "invoices"
SAVED_INSURERS_KEY = "saved_insurers"
ABSENCES_KEY = "absences"
STAFF_USERS_KEY = "staff_users"


def configure_logging(level: str | None = None):
    """Set up root logging once for the Streamlit process."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

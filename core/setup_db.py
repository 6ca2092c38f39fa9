# core/setup_db.py

import logging

from core.config import configure_logging
from core.database import init_db
from core.local_storage import LocalStorage
from services.user_service import StaffDirectory

logger = logging.getLogger(__name__)


def main():
    configure_logging()
    logger.info("Creating storage tables...")

    init_db()

    # Insert demo staff accounts
    StaffDirectory(LocalStorage()).ensure_default_users()

    logger.info("Storage initialized successfully.")


if __name__ == "__main__":
    main()

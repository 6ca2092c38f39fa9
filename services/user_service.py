import copy
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from core.config import STAFF_USERS_KEY
from core.helpers import matches_search
from core.local_storage import LocalStorage
from core.time_utils import now_utc, format_date
from models.user import StaffUser

logger = logging.getLogger(__name__)

MAX_FAILED_ATTEMPTS = 5

ROLES = {"admin", "doctor", "secretary"}

# Static permission table; there is no real authentication behind it.
ROLE_PERMISSIONS = {
    "admin": {
        "manage_users", "reset_passwords", "block_users",
        "export_data", "import_data", "reset_data", "manage_billing",
    },
    "doctor": {"export_data", "manage_billing"},
    "secretary": {"manage_billing"},
}


def has_permission(role: str, action: str) -> bool:
    return action in ROLE_PERMISSIONS.get((role or "").strip().lower(), set())


def permissions_for(role: str) -> set:
    return set(ROLE_PERMISSIONS.get((role or "").strip().lower(), set()))


class StaffDirectory:
    """Staff accounts shown in the admin panel, with lockout bookkeeping."""

    def __init__(self, storage: LocalStorage | None = None, clock=now_utc):
        self._storage = storage or LocalStorage()
        self._clock = clock
        self._users: list[StaffUser] = []
        self._load()

    @property
    def users(self) -> list[StaffUser]:
        return copy.deepcopy(self._users)

    def get_user(self, user_id: str) -> Optional[StaffUser]:
        user = self._find(user_id)
        return copy.deepcopy(user) if user else None

    def ensure_default_users(self):
        """
        Creates default demo staff on a fresh install.
        """
        if self._users:
            return

        self.add_user(username="admin", role="admin", name="Administrator")
        self.add_user(username="doctor", role="doctor", name="Dr. Martin", specialty="Psychiatrist")
        self.add_user(username="secretary", role="secretary", name="Marie Secretary")
        logger.info("Default staff users created.")

    def add_user(self, username: str, role: str, name: str = "", specialty: str | None = None) -> StaffUser:
        """Create a staff account.

        - role: one of 'admin', 'doctor', 'secretary'
        - username: unique, non-empty
        """
        role = (role or "").strip().lower()
        if role not in ROLES:
            raise ValueError("Invalid role. Expected admin, doctor, or secretary.")

        username = (username or "").strip()
        if not username:
            raise ValueError("Username cannot be empty.")
        if any(u.username == username for u in self._users):
            raise ValueError("Username already exists.")

        user = StaffUser(
            id=str(len(self._users) + 1),
            username=username,
            role=role,
            name=(name or "").strip(),
            specialty=specialty or None,
            created_on=format_date(self._clock()),
        )
        self._users.append(user)
        self._save()
        return copy.deepcopy(user)

    def search_users(self, term: str) -> list[StaffUser]:
        return [copy.deepcopy(u) for u in self._users if matches_search(term, u.name, u.username, u.role)]

    def block_user(self, user_id: str) -> Optional[StaffUser]:
        return self._update(user_id, is_blocked=True)

    def unblock_user(self, user_id: str) -> Optional[StaffUser]:
        return self._update(user_id, is_blocked=False)

    def reset_failed_attempts(self, user_id: str) -> Optional[StaffUser]:
        return self._update(user_id, failed_attempts=0, is_blocked=False)

    def record_failed_attempt(self, user_id: str) -> Optional[StaffUser]:
        user = self._find(user_id)
        if not user:
            return None
        attempts = user.failed_attempts + 1
        return self._update(user_id, failed_attempts=attempts, is_blocked=user.is_blocked or attempts >= MAX_FAILED_ATTEMPTS)

    def _find(self, user_id) -> Optional[StaffUser]:
        return next((u for u in self._users if u.id == user_id), None)

    def _update(self, user_id, **changes) -> Optional[StaffUser]:
        user = self._find(user_id)
        if not user:
            return None
        for key, value in changes.items():
            setattr(user, key, value)
        self._save()
        return copy.deepcopy(user)

    def _load(self):
        try:
            self._users = [StaffUser.from_dict(u) for u in self._storage.read_json(STAFF_USERS_KEY) or []]
        except (SQLAlchemyError, TypeError, ValueError, AttributeError) as e:
            logger.error("Could not load staff users, starting empty: %s", e)
            self._users = []

    def _save(self):
        try:
            self._storage.write_json(STAFF_USERS_KEY, [u.to_dict() for u in self._users])
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error("Could not save staff users: %s", e)

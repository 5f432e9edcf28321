"""Admin session flag and admin route guard."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .models import AdminSession
from .storage import LocalStorage

logger = logging.getLogger(__name__)

ADMIN_AUTHENTICATED_KEY = "adminAuthenticated"
ADMIN_USER_KEY = "adminUser"
ADMIN_LOGIN_TIME_KEY = "adminLoginTime"

ADMIN_PREFIX = "/admin"
ADMIN_LOGIN_PATH = "/admin/login"


class AuthManager:
    """
    Manages the client-side admin session flag.

    The flag is trusted as stored: it gates which admin views are shown and
    nothing more. It carries no proof that a login ever happened.
    """

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage

    @property
    def session(self) -> AdminSession:
        """Current session data read from storage."""
        user: Optional[dict[str, Any]] = None
        raw_user = self.storage.get_item(ADMIN_USER_KEY)
        if raw_user:
            try:
                user = json.loads(raw_user)
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable admin user record")
        return AdminSession(
            authenticated=self.is_authenticated(),
            user=user,
            login_time=self.storage.get_item(ADMIN_LOGIN_TIME_KEY),
        )

    def is_authenticated(self) -> bool:
        """Check whether the admin flag is set."""
        return self.storage.get_item(ADMIN_AUTHENTICATED_KEY) == "true"

    def save_session(self, user: dict[str, Any], login_time: Optional[datetime] = None) -> None:
        """
        Mark the admin as logged in.

        Args:
            user: Admin identity payload returned by the backend
            login_time: Login time, defaults to now
        """
        login_time = login_time or datetime.now(timezone.utc)
        self.storage.set_item(ADMIN_AUTHENTICATED_KEY, "true")
        self.storage.set_item(ADMIN_USER_KEY, json.dumps(user))
        self.storage.set_item(ADMIN_LOGIN_TIME_KEY, login_time.isoformat())
        logger.info(f"Admin session saved for {user.get('username', 'admin')}")

    def clear_session(self) -> None:
        """Clear the flag and its display data."""
        for key in (ADMIN_AUTHENTICATED_KEY, ADMIN_USER_KEY, ADMIN_LOGIN_TIME_KEY):
            self.storage.remove_item(key)
        logger.info("Admin session cleared")

    def login_redirect(self, path: str) -> Optional[str]:
        """
        Decide whether a request for ``path`` must be sent to the login view.

        Returns:
            The login path when the path is an admin view other than login and
            the flag is not set, otherwise None
        """
        normalized = path.rstrip("/") or "/"
        if normalized != ADMIN_PREFIX and not normalized.startswith(ADMIN_PREFIX + "/"):
            return None
        if normalized == ADMIN_LOGIN_PATH:
            return None
        if self.is_authenticated():
            return None
        return ADMIN_LOGIN_PATH

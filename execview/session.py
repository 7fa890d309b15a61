"""
session.py — Mock login session, theme and user settings.

There is no real authentication: any password is accepted as long as the
email belongs to a seeded user. The session token and user are kept in the
scalar PreferenceStore under fixed keys.
"""

import logging
import time
from typing import Any

from execview.exceptions import NotFound
from execview.service import SimulatedService
from execview.storage import PreferenceStore

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "execview_auth_token"
AUTH_USER_KEY = "execview_auth_user"
THEME_KEY = "execview_theme"

THEMES = ("light", "dark")

_SETTINGS_FIELDS = ("theme", "dashboard_layout", "default_time_period", "notifications_enabled")


class SessionManager:
    def __init__(self, service: SimulatedService, preferences: PreferenceStore) -> None:
        self.service = service
        self.preferences = preferences

    async def login(self, email: str, password: str = "") -> dict[str, Any] | None:
        """Start a session for the user with `email` (case-insensitive).

        Returns:
            The user record, or None when no user has that email.
        """
        users = await self.service.fetch("users")
        user = next((u for u in users if u["email"].lower() == email.strip().lower()), None)
        if user is None:
            logger.info("Login rejected for %s", email)
            return None

        token = f"mock-token-{user['id']}-{int(time.time() * 1000)}"
        await self.preferences.set(AUTH_TOKEN_KEY, token)
        await self.preferences.set(AUTH_USER_KEY, user)
        logger.info("User %s logged in", user["id"])
        return user

    async def logout(self) -> None:
        await self.preferences.remove(AUTH_TOKEN_KEY)
        await self.preferences.remove(AUTH_USER_KEY)

    async def current_user(self) -> dict[str, Any] | None:
        token = await self.preferences.get(AUTH_TOKEN_KEY)
        if not token:
            return None
        return await self.preferences.get(AUTH_USER_KEY)

    async def get_theme(self) -> str:
        return await self.preferences.get(THEME_KEY, "light")

    async def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme {theme!r}")
        await self.preferences.set(THEME_KEY, theme)

    async def update_settings(self, user_id: str, **changes: Any) -> dict[str, Any]:
        """Merge `changes` into a user's settings record and persist it.

        Raises:
            NotFound: The user has no settings record.
            SimulatedTransientFailure: Injected service failure.
        """
        unknown = set(changes) - set(_SETTINGS_FIELDS)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

        current = await self.service.fetch_one("settings", user_id)
        if current is None:
            raise NotFound("settings", user_id)

        updated = {**current, **changes}
        await self.service.update("settings", updated)
        return updated

"""
Session-based identity provider.
"""

from fastapi import Request

from shared.logging import get_logger

from .base import IdentityResult

SESSION_USER_KEYS = ("externalUserId", "userId")


class SessionIdentityProvider:
    """Reads the logged-in user from the signed session cookie.

    Requires Starlette's ``SessionMiddleware``; the service installs it when
    this provider is configured.
    """

    def __init__(self):
        self.logger = get_logger("proxy.identity.session")

    async def get_user_id(self, request: Request) -> IdentityResult:
        if "session" not in request.scope:
            self.logger.warning("No session found in request")
            return IdentityResult.failure("Session not initialized")

        session = request.session
        for key in SESSION_USER_KEYS:
            user_id = session.get(key)
            if user_id:
                self.logger.debug("Authenticated user from session", user_id=user_id)
                return IdentityResult.success(str(user_id))

        self.logger.warning("No user ID found in session")
        return IdentityResult.failure("User not authenticated. Please log in.")

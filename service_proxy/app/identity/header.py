"""
Header-based identity provider.
"""

from fastapi import Request

from shared.logging import get_logger

from .base import IdentityResult

DEFAULT_IDENTITY_HEADER = "X-Partner-User-Id"


class HeaderIdentityProvider:
    """Trusts a user id header set by the partner's own frontend/session layer.

    A missing header is not an error: the request is forwarded anonymously.
    """

    def __init__(self, header_name: str = DEFAULT_IDENTITY_HEADER):
        self.header_name = header_name
        self.logger = get_logger("proxy.identity.header")

    async def get_user_id(self, request: Request) -> IdentityResult:
        user_id = request.headers.get(self.header_name) or ""
        if not user_id:
            self.logger.warning("No user ID found in request headers", header=self.header_name)
            return IdentityResult.success("")

        self.logger.debug("Extracted user ID", user_id=user_id)
        return IdentityResult.success(user_id)

"""
API key identity provider.
"""

from __future__ import annotations

import hmac
from typing import Mapping, Optional

from fastapi import Request

from shared.logging import get_logger

from .base import IdentityResult


class ApiKeyIdentityProvider:
    """Maps a partner-issued API key to the user it was issued for."""

    def __init__(self, api_keys: Mapping[str, str]):
        self._api_keys = dict(api_keys)
        self.logger = get_logger("proxy.identity.api_key")

    async def get_user_id(self, request: Request) -> IdentityResult:
        api_key = self._extract_api_key(request)
        if not api_key:
            self.logger.warning("API key authentication failed", reason="API key required")
            return IdentityResult.failure("API key required")

        user_id = self._lookup(api_key)
        if not user_id:
            self.logger.warning(
                "API key authentication failed",
                reason="Invalid API key",
                api_key=api_key[:4] + "...",
            )
            return IdentityResult.failure("Invalid API key")

        self.logger.debug("Authenticated user via API key", user_id=user_id)
        return IdentityResult.success(user_id)

    def _extract_api_key(self, request: Request) -> Optional[str]:
        api_key = request.headers.get("X-API-Key")
        if api_key:
            return api_key

        authorization = request.headers.get("Authorization", "")
        if authorization.startswith("ApiKey "):
            return authorization[7:].strip()

        api_key = request.query_params.get("apiKey")
        if api_key:
            self.logger.warning("API key provided in query parameter")
            return api_key

        return None

    def _lookup(self, api_key: str) -> Optional[str]:
        for known_key, user_id in self._api_keys.items():
            if hmac.compare_digest(known_key.encode(), api_key.encode()):
                return user_id
        return None

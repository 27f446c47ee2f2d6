"""
JWT bearer token identity provider.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt

from shared.logging import get_logger

from .base import IdentityResult, extract_bearer_token

USER_ID_CLAIMS = ("externalUserId", "userId", "sub")


class JwtIdentityProvider:
    """Verifies a bearer JWT and reads the user id from its claims."""

    def __init__(
        self,
        secret: str,
        algorithms: Sequence[str] = ("HS256",),
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ) -> None:
        self._secret = secret
        self.algorithms = list(algorithms)
        self.audience = audience
        self.issuer = issuer
        self.logger = get_logger("proxy.identity.jwt")

    async def get_user_id(self, request: Request) -> IdentityResult:
        authorization = request.headers.get("Authorization")
        if not authorization:
            return self._fail("Missing authorization token")

        token = extract_bearer_token(authorization)
        if not token:
            return self._fail("Missing authorization token")

        try:
            claims = self._decode(token)
        except ExpiredSignatureError:
            return self._fail("Token has expired")
        except JWTError as exc:
            return self._fail("Invalid token", error=str(exc))

        user_id = self._user_id_from_claims(claims)
        if not user_id:
            return self._fail("User ID not found in token")

        self.logger.debug("Authenticated user", user_id=user_id)
        return IdentityResult.success(user_id)

    def _decode(self, token: str) -> Dict[str, Any]:
        options: Dict[str, Any] = {"verify_aud": self.audience is not None}
        return jwt.decode(
            token,
            self._secret,
            algorithms=self.algorithms,
            audience=self.audience,
            issuer=self.issuer,
            options=options,
        )

    @staticmethod
    def _user_id_from_claims(claims: Dict[str, Any]) -> str:
        for claim in USER_ID_CLAIMS:
            value = claims.get(claim)
            if value is not None and str(value).strip():
                return str(value).strip()
        return ""

    def _fail(self, reason: str, **context: Any) -> IdentityResult:
        self.logger.warning("JWT authentication failed", reason=reason, **context)
        return IdentityResult.failure(reason)

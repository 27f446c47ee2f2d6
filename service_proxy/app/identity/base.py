"""
Identity resolution contract.

An identity provider answers one question for the proxy: which partner user
is making this request? It never authorizes anything. The proxy forwards the
answer to the upstream gateway in a base64 header.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from fastapi import Request


@dataclass(frozen=True)
class IdentityResult:
    """Tagged outcome of identity resolution.

    A successful result may carry an empty ``user_id``: the request proceeds
    anonymously.
    """

    ok: bool
    user_id: str = ""
    reason: str = ""

    @classmethod
    def success(cls, user_id: str = "") -> "IdentityResult":
        return cls(ok=True, user_id=user_id or "")

    @classmethod
    def failure(cls, reason: str) -> "IdentityResult":
        return cls(ok=False, reason=reason)


@runtime_checkable
class IdentityProvider(Protocol):
    """Extracts the external user id from an inbound request.

    Implementations must not keep per-request state; one instance serves
    every concurrent request.
    """

    async def get_user_id(self, request: Request) -> IdentityResult:
        ...


def extract_bearer_token(authorization: str) -> str:
    """Accept both ``Bearer <token>`` and a bare token."""
    if authorization.startswith("Bearer "):
        return authorization[7:].strip()
    return authorization.strip()

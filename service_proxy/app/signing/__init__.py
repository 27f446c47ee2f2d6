"""
Request signing for the upstream gateway.

- querystring: bracket-notation query codec used for the canonical URL.
- signature: canonical message construction and HMAC-SHA256 signing.
"""

from .signature import (
    RECV_WINDOW_DEFAULT,
    RECV_WINDOW_MAX_SIZE,
    Credentials,
    SignatureEngine,
    SignedRequest,
    SigningContext,
)

__all__ = [
    "RECV_WINDOW_DEFAULT",
    "RECV_WINDOW_MAX_SIZE",
    "Credentials",
    "SignatureEngine",
    "SignedRequest",
    "SigningContext",
]

"""
HMAC request signing for the upstream gateway.

The upstream recomputes the canonical message from the request it receives
and compares HMACs, so every step here (query serialization, URL encoding,
body serialization, field order) has to match it byte for byte::

    {METHOD}|{percent-encoded path?query}|{json body}|{timestamp ms}|{recv window ms}
"""

from __future__ import annotations

import hashlib
import hmac
import json
import math
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
from urllib.parse import quote

from shared.logging import get_logger

from .querystring import parse_nested, stringify

RECV_WINDOW_DEFAULT = 5000
# Documented upper bound; not enforced on inbound values.
RECV_WINDOW_MAX_SIZE = 3600000

# Left unescaped by the upstream's URL encoder, on top of quote()'s "_.-~".
_URI_COMPONENT_SAFE = "!*'()"


@dataclass(frozen=True)
class Credentials:
    """Upstream API credentials."""

    api_key: str
    api_secret: str = field(repr=False)


@dataclass(frozen=True)
class SigningContext:
    """Everything that goes into one request signature."""

    method: str
    path: str
    query: Dict[str, Any]
    body: Any
    timestamp: int
    recv_window: int

    @property
    def query_string(self) -> str:
        return stringify(self.query) if self.query else ""

    @property
    def original_url(self) -> str:
        query_string = self.query_string
        return f"{self.path}?{query_string}" if query_string else self.path

    @property
    def encoded_url(self) -> str:
        return quote(self.original_url, safe=_URI_COMPONENT_SAFE)

    @property
    def body_string(self) -> str:
        return serialize_body(self.body)

    @property
    def canonical_message(self) -> str:
        return "|".join(
            [
                self.method.upper(),
                self.encoded_url,
                self.body_string,
                str(self.timestamp),
                str(self.recv_window),
            ]
        )


@dataclass(frozen=True)
class SignedRequest:
    context: SigningContext
    signature: str


def format_number(value: float) -> str:
    """Render a float the way the upstream's JSON serializer does.

    Shortest round-trip digits, plain notation for 1e-7 <= |x| < 1e21 and
    ``d.ddde[+-]n`` otherwise, with no zero-padded exponent.
    """
    if math.isnan(value) or math.isinf(value):
        return "null"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))

    sign = "-" if value < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    # value == 0.<digits> * 10 ** point
    point = exponent + len(digits)

    if 0 < point <= 21:
        return sign + digits[:point] + "." + digits[point:]
    if -6 < point <= 0:
        return sign + "0." + "0" * -point + digits

    power = point - 1
    mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
    return f"{sign}{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"


def _to_json(value: Any) -> str:
    # Compact output, insertion order, non-ASCII left unescaped.
    if isinstance(value, dict):
        items = (f"{_to_json(str(key))}:{_to_json(item)}" for key, item in value.items())
        return "{" + ",".join(items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_to_json(item) for item in value) + "]"
    if isinstance(value, float):
        return format_number(value)
    return json.dumps(value, ensure_ascii=False)


def is_empty_body(body: Any) -> bool:
    """True when the body contributes nothing to the signature."""
    if body is None:
        return True
    if isinstance(body, (dict, list, tuple, str)):
        return len(body) == 0
    # Numbers and booleans carry no own keys.
    return True


def serialize_body(body: Any) -> str:
    if is_empty_body(body):
        return ""
    return _to_json(body)


def parse_recv_window(value: Optional[str]) -> int:
    """Receive window from a header value; anything but a non-negative integer yields the default."""
    if value is None:
        return RECV_WINDOW_DEFAULT
    candidate = value.strip()
    if not (candidate.isascii() and candidate.isdigit()):
        return RECV_WINDOW_DEFAULT
    return int(candidate)


def compute_signature(secret: str, message: str) -> str:
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


class SignatureEngine:
    """Signs requests with the upstream API secret."""

    def __init__(self, credentials: Credentials, clock: Callable[[], float] = time.time):
        self._credentials = credentials
        self._clock = clock
        self.logger = get_logger("proxy.signing")

    @property
    def api_key(self) -> str:
        return self._credentials.api_key

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def build_context(
        self,
        method: str,
        path: str,
        query_pairs: Iterable[Tuple[str, str]] = (),
        body: Any = None,
        recv_window_header: Optional[str] = None,
    ) -> SigningContext:
        """Create a fresh context; the timestamp always comes from the proxy clock."""
        return SigningContext(
            method=method.upper(),
            path=path,
            query=parse_nested(query_pairs),
            body=body,
            timestamp=self.now_ms(),
            recv_window=parse_recv_window(recv_window_header),
        )

    def sign(self, context: SigningContext) -> SignedRequest:
        message = context.canonical_message
        self.logger.debug("Signing message", message=message)
        return SignedRequest(
            context=context,
            signature=compute_signature(self._credentials.api_secret, message),
        )

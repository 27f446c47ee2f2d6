"""
Upstream gateway client.
"""

import base64
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import httpx

from shared.errors import UpstreamResponseError, UpstreamUnreachableError
from shared.logging import get_logger
from shared.metrics import NO_RESPONSE_STATUS, MetricsCollector

from ..constants import (
    RECV_WINDOW_HEADER,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    TOKEN_HEADER,
    TOKEN_USER_HEADER,
)
from ..signing import SignedRequest

DEFAULT_CONTENT_TYPE = "application/json"
DEFAULT_TIMEOUT_SECONDS = 30.0

HOP_BY_HOP_HEADERS = frozenset({"connection", "keep-alive", "transfer-encoding", "upgrade"})
# The relayed body is already decoded by httpx, so its framing is recomputed.
BODY_FRAMING_HEADERS = frozenset({"content-length", "content-encoding"})


@dataclass
class UpstreamResponse:
    """Response received from the upstream gateway."""

    status_code: int
    content: bytes
    headers: List[Tuple[str, str]] = field(default_factory=list)


def encode_identity(user_id: str) -> str:
    """Base64 of the identity; an empty identity stays an empty string."""
    if not user_id:
        return ""
    return base64.b64encode(user_id.encode("utf-8")).decode("ascii")


def relay_headers(headers: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Drop hop-by-hop and body framing headers, case-insensitively."""
    return [
        (name, value)
        for name, value in headers
        if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() not in BODY_FRAMING_HEADERS
    ]


class GatewayClient:
    """Dispatches signed requests to the upstream gateway.

    Every upstream status is returned to the caller as-is; only a missing
    response is an error. Requests are attempted exactly once.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("proxy.gateway_client")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def build_headers(
        self,
        signed: SignedRequest,
        user_id: str,
        content_type: Optional[str] = None,
    ) -> Dict[str, str]:
        return {
            TOKEN_HEADER: self._api_key,
            SIGNATURE_HEADER: signed.signature,
            TIMESTAMP_HEADER: str(signed.context.timestamp),
            RECV_WINDOW_HEADER: str(signed.context.recv_window),
            TOKEN_USER_HEADER: encode_identity(user_id),
            "Content-Type": content_type or DEFAULT_CONTENT_TYPE,
        }

    def target_url(self, signed: SignedRequest) -> str:
        return f"{self.base_url}{signed.context.original_url}"

    async def forward(
        self,
        signed: SignedRequest,
        user_id: str,
        content_type: Optional[str] = None,
        content: Optional[bytes] = None,
    ) -> UpstreamResponse:
        """Send ``signed`` upstream.

        Raises:
            UpstreamUnreachableError: no response (timeout, refused connection).
            UpstreamResponseError: the transport raised on a failing status.
        """
        method = signed.context.method
        url = self.target_url(signed)
        headers = self.build_headers(signed, user_id, content_type)

        self.logger.debug("Proxying request to upstream gateway", method=method, url=url)
        start_time = time.time()
        try:
            response = await self._client.request(
                method,
                url,
                content=content or None,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.HTTPStatusError as exc:
            self._record(method, exc.response.status_code, start_time)
            raise UpstreamResponseError(
                exc.response.status_code,
                exc.response.content,
                relay_headers(exc.response.headers.multi_items()),
            ) from exc
        except httpx.RequestError as exc:
            self._record(method, NO_RESPONSE_STATUS, start_time)
            self.logger.error(
                "Error proxying request to upstream gateway",
                method=method,
                url=url,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise UpstreamUnreachableError(details={"error_type": type(exc).__name__}) from exc

        self._record(method, response.status_code, start_time)
        return UpstreamResponse(
            status_code=response.status_code,
            content=response.content,
            headers=relay_headers(response.headers.multi_items()),
        )

    def _record(self, method: str, status_code: int, start_time: float) -> None:
        if self.metrics is not None:
            self.metrics.record_upstream_request(method, status_code, time.time() - start_time)

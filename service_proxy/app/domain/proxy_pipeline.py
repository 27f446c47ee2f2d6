"""
Request signing/forwarding pipeline.

Each inbound request moves through::

    RECEIVED -> VERSION_RESOLVED -> IDENTITY_RESOLVED -> SIGNED -> DISPATCHED -> RESPONDED

and ends in ERRORED if any stage fails. Nothing reaches the upstream gateway
before the SIGNED stage completes.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional, Tuple
from urllib.parse import parse_qsl

from fastapi import Request, Response

from shared.errors import IdentityError, MalformedBodyError, PayloadTooLargeError, ProxyError, UpstreamResponseError
from shared.logging import get_logger, set_user_context

from ..adapters.gateway_client import GatewayClient, UpstreamResponse
from ..constants import RECV_WINDOW_HEADER
from ..identity import IdentityProvider, IdentityResult
from ..signing import SignatureEngine
from ..signing.querystring import parse_nested
from ..signing.signature import serialize_body
from ..versioning import VersionResolver

DEFAULT_MAX_BODY_BYTES = 100 * 1024


class ProxyStage(str, Enum):
    RECEIVED = "received"
    VERSION_RESOLVED = "version_resolved"
    IDENTITY_RESOLVED = "identity_resolved"
    SIGNED = "signed"
    DISPATCHED = "dispatched"
    RESPONDED = "responded"
    ERRORED = "errored"


def raw_request_path(request: Request) -> str:
    """Request path exactly as the client sent it, escapes included."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.split(b"?", 1)[0].decode("latin-1")
    return request.scope["path"]


def _media_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def _is_json(media_type: str) -> bool:
    return media_type == "application/json" or media_type.endswith("+json")


def build_relay_response(upstream: UpstreamResponse) -> Response:
    """Turn an upstream response into the response sent to the partner."""
    response = Response(content=upstream.content, status_code=upstream.status_code)
    for name, value in upstream.headers:
        response.headers.append(name, value)
    return response


class ProxyPipeline:
    """Resolves, identifies, signs and forwards one request at a time.

    Holds only read-only collaborators, so a single instance is shared by
    all concurrent requests.
    """

    def __init__(
        self,
        resolver: VersionResolver,
        identity_provider: IdentityProvider,
        signer: SignatureEngine,
        gateway_client: GatewayClient,
        identity_failure_status: int = 500,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ):
        self.resolver = resolver
        self.identity_provider = identity_provider
        self.signer = signer
        self.gateway_client = gateway_client
        self.identity_failure_status = identity_failure_status
        self.max_body_bytes = max_body_bytes
        self.logger = get_logger("proxy.pipeline")

    async def handle(self, request: Request) -> Response:
        stage = ProxyStage.RECEIVED
        try:
            resolved = self.resolver.resolve(raw_request_path(request))
            stage = self._advance(ProxyStage.VERSION_RESOLVED, requested=resolved.requested, path=resolved.path)

            user_id = await self._resolve_identity(request)
            stage = self._advance(ProxyStage.IDENTITY_RESOLVED)

            body, content = await self._read_body(request)
            context = self.signer.build_context(
                request.method,
                resolved.path,
                request.query_params.multi_items(),
                body,
                request.headers.get(RECV_WINDOW_HEADER),
            )
            signed = self.signer.sign(context)
            stage = self._advance(ProxyStage.SIGNED, recv_window=context.recv_window)

            upstream = await self.gateway_client.forward(
                signed,
                user_id,
                content_type=request.headers.get("content-type"),
                content=content,
            )
            stage = self._advance(ProxyStage.DISPATCHED, status_code=upstream.status_code)

            response = build_relay_response(upstream)
            self._advance(ProxyStage.RESPONDED)
            return response

        except UpstreamResponseError as exc:
            self.logger.warning("Upstream gateway returned an error", status_code=exc.status_code)
            self._advance(ProxyStage.ERRORED, failed_at=stage.value)
            return build_relay_response(UpstreamResponse(exc.status_code, exc.content, exc.headers))
        except ProxyError:
            self._advance(ProxyStage.ERRORED, failed_at=stage.value)
            raise

    def _advance(self, stage: ProxyStage, **context: Any) -> ProxyStage:
        self.logger.debug("Proxy stage", stage=stage.value, **context)
        return stage

    async def _resolve_identity(self, request: Request) -> str:
        try:
            result = await self.identity_provider.get_user_id(request)
        except Exception as exc:
            self.logger.error("Identity provider raised", error=str(exc), exc_info=True)
            result = IdentityResult.failure(str(exc) or type(exc).__name__)

        if not result.ok:
            raise IdentityError(result.reason or "Authentication failed", status_code=self.identity_failure_status)

        set_user_context(result.user_id)
        return result.user_id

    async def _read_body(self, request: Request) -> Tuple[Any, Optional[bytes]]:
        """Return the body as signed and the bytes sent upstream."""
        raw = await request.body()
        if not raw:
            return {}, None
        if len(raw) > self.max_body_bytes:
            raise PayloadTooLargeError(self.max_body_bytes)

        media_type = _media_type(request.headers.get("content-type"))
        if _is_json(media_type):
            try:
                body = json.loads(raw)
            except ValueError as exc:
                raise MalformedBodyError("Request body is not valid JSON") from exc
            body_string = serialize_body(body)
            return body, body_string.encode("utf-8") if body_string else None

        if media_type == "application/x-www-form-urlencoded":
            try:
                pairs = parse_qsl(raw.decode("utf-8"), keep_blank_values=True)
            except UnicodeDecodeError as exc:
                raise MalformedBodyError("Request body is not valid UTF-8") from exc
            return parse_nested(pairs), raw

        # Opaque payloads are forwarded untouched and signed as an empty body.
        return {}, raw

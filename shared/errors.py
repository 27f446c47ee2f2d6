"""
Shared error handling for the Partner Signing Proxy.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

GENERIC_PROXY_ERROR_MESSAGE = "Internal server error while proxying request"


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class ProxyError(Exception):
    """Base exception for proxy services."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(code=self.code, message=self.message, details=self.details)

    def to_content(self) -> Any:
        """Body sent to the caller when this error ends a request."""
        return self.to_response().model_dump()


class VersionError(ProxyError):
    """Path carried no usable API version."""

    status_code = 400

    def __init__(self, code: str, message: str, supported_versions: List[str]):
        self.supported_versions = list(supported_versions)
        super().__init__(code, message, details={"supportedVersions": self.supported_versions})

    def to_content(self) -> Any:
        return {"message": self.message, "supportedVersions": self.supported_versions}


class VersionRequiredError(VersionError):
    """No version prefix on the request path."""

    def __init__(self, supported_versions: List[str], default_version: str = "v1"):
        super().__init__(
            "VERSION_REQUIRED",
            f"API version required. Prefix requests with /{default_version}.",
            supported_versions,
        )


class UnsupportedVersionError(VersionError):
    """Version prefix present but not enabled."""

    def __init__(self, version: str, supported_versions: List[str]):
        self.version = version
        super().__init__(
            "UNSUPPORTED_VERSION",
            f"Unsupported API version '{version}'.",
            supported_versions,
        )


class IdentityError(ProxyError):
    """The identity provider could not establish a caller."""

    def __init__(self, reason: str = "Authentication failed", status_code: int = 500):
        self.reason = reason
        super().__init__("IDENTITY_ERROR", reason, status_code=status_code)

    def to_content(self) -> Any:
        if self.status_code >= 500:
            return {"message": GENERIC_PROXY_ERROR_MESSAGE}
        return {"message": self.reason}


class UpstreamResponseError(ProxyError):
    """Upstream answered with a failing status that surfaced as an exception."""

    def __init__(self, status_code: int, content: bytes, headers: Optional[List[tuple]] = None):
        self.content = content
        self.headers = headers or []
        super().__init__(
            "UPSTREAM_RESPONSE_ERROR",
            f"Upstream responded with status {status_code}",
            status_code=status_code,
        )


class UpstreamUnreachableError(ProxyError):
    """No response was received from the upstream gateway."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "UPSTREAM_UNREACHABLE",
            GENERIC_PROXY_ERROR_MESSAGE,
            details=details,
            status_code=500,
        )

    def to_content(self) -> Any:
        return {"message": self.message}


class ConfigurationError(ProxyError):
    """Configuration could not be turned into a runnable service."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class MalformedBodyError(ProxyError):
    """Request body could not be parsed for its declared content type."""

    status_code = 400

    def __init__(self, message: str = "Malformed request body"):
        super().__init__("MALFORMED_BODY", message)

    def to_content(self) -> Any:
        return {"message": self.message}


class PayloadTooLargeError(ProxyError):
    """Request body exceeds the configured limit."""

    status_code = 413

    def __init__(self, limit: int):
        super().__init__("PAYLOAD_TOO_LARGE", "Request entity too large", details={"limit": limit})

    def to_content(self) -> Any:
        return {"message": self.message}

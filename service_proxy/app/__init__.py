"""
Partner Signing Proxy service package.

The proxy fronts partner frontends and forwards their requests to the
upstream gateway, adding:
- API version resolution and path rewriting
- Caller identity via a pluggable provider
- Per-request HMAC-SHA256 signature and credential headers

Structure:
- app.main: FastAPI app, health routes and the catch-all proxy route.
- app.versioning: Version parsing, validation and gateway mapping.
- app.identity: Identity provider contract and implementations.
- app.signing: Canonical query string and request signature.
- app.adapters: HTTP client for the upstream gateway.
- app.domain: The request pipeline tying the stages together.
"""

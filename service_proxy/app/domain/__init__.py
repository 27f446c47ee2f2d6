"""
Domain utilities for the proxy service.

Holds the request pipeline that ties version resolution, identity,
signing and forwarding together, independent of route wiring.
"""

from .proxy_pipeline import ProxyPipeline, ProxyStage, build_relay_response

__all__ = [
    "ProxyPipeline",
    "ProxyStage",
    "build_relay_response",
]

# fidforge/transport/__init__.py
"""
fidforge Transport Layer

Off-chain HTTP communication with the naming authority and the hub.
"""

from .http import (
    HTTPTransport,
    HttpxTransport,
    MockHTTPTransport,
    HTTPResponse,
    TransportError,
)

__all__ = [
    "HTTPTransport",
    "HttpxTransport",
    "MockHTTPTransport",
    "HTTPResponse",
    "TransportError",
]

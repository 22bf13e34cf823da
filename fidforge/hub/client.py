# fidforge/hub/client.py
"""
fidforge Hub: Node Client

HTTP client for the message-store node ("hub").

Endpoints:
    POST /v1/submitMessage              - submit a signed message
    GET  /v1/onChainSignersByFid?fid=N  - on-chain signers the node has seen
    POST /v1/admin/retryOnchainEvents   - ask the node to re-ingest a fid's
                                          on-chain events (auth required)

Restricted nodes take basic auth from an "rpc auth" string of
"user:pass" pairs separated by commas.

Usage:
    hub = HubClient("https://hub.example.com:3381", transport, rpc_auth="u:p")
    await hub.submit_message(message)
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, List, Optional

from ..errors import MessageRejected
from ..transport.http import HTTPResponse, HTTPTransport
from .message import Message

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class HubError(Exception):
    """Node answered a query or admin request with an error."""
    pass


# =============================================================================
# Auth
# =============================================================================

def parse_rpc_auth(rpc_auth: Optional[str]) -> Dict[str, str]:
    """
    Parse "user:pass,user2:pass2" into {user: pass}.

    Entries without exactly one ':' are skipped.
    """
    users: Dict[str, str] = {}
    if not rpc_auth:
        return users
    for entry in rpc_auth.split(","):
        parts = entry.split(":")
        if len(parts) == 2:
            users[parts[0]] = parts[1]
    return users


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return f"Basic {token}"


def _rejection_reason(response: HTTPResponse) -> str:
    """Best-effort structured reason from an error body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text() or f"HTTP {response.status}"
    if isinstance(payload, dict):
        parts = [
            str(payload[k]) for k in ("errCode", "details", "message", "error")
            if payload.get(k)
        ]
        if parts:
            return ": ".join(parts)
    return response.text() or f"HTTP {response.status}"


# =============================================================================
# HubClient
# =============================================================================

class HubClient:
    """Message-store node client."""

    def __init__(
        self,
        base_url: str,
        transport: HTTPTransport,
        rpc_auth: Optional[str] = None,
    ):
        """
        Initialize hub client.

        Args:
            base_url: Node HTTP base URL
            transport: HTTP transport
            rpc_auth: "user:pass[,user:pass]" for restricted nodes
        """
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        users = parse_rpc_auth(rpc_auth)
        self._auth: Optional[str] = None
        if users:
            username, password = next(iter(users.items()))
            self._auth = basic_auth_header(username, password)

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self, content_type: Optional[str] = None) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if content_type:
            headers["Content-Type"] = content_type
        if self._auth:
            headers["Authorization"] = self._auth
        return headers

    # =========================================================================
    # Messages
    # =========================================================================

    async def submit_message(self, message: Message) -> Dict[str, Any]:
        """
        Submit a signed message.

        Returns:
            Node's response body (the accepted message)

        Raises:
            MessageRejected: Node returned a validation error
            TransportError: No response
        """
        response = await self._transport.post(
            f"{self._base_url}/v1/submitMessage",
            message.to_json(),
            self._headers("application/json"),
        )
        if not response.ok:
            raise MessageRejected(_rejection_reason(response), response.status, message.hash)
        try:
            accepted = response.json()
        except ValueError:
            accepted = None
        return accepted if isinstance(accepted, dict) else {}

    # =========================================================================
    # Signers
    # =========================================================================

    async def get_onchain_signers(self, fid: int) -> List[bytes]:
        """
        Ed25519 keys the node has ingested for fid.

        Returns an empty list when the node answers 404.
        """
        response = await self._transport.get(
            f"{self._base_url}/v1/onChainSignersByFid",
            params={"fid": str(fid)},
            headers=self._headers(),
        )
        if response.status == 404:
            return []
        if not response.ok:
            raise HubError(
                f"onChainSignersByFid({fid}) failed: HTTP {response.status}: {response.text()}"
            )

        payload = response.json()
        events = payload.get("events") if isinstance(payload, dict) else None
        if not isinstance(events, list):
            return []

        keys: List[bytes] = []
        for event in events:
            if not isinstance(event, dict):
                continue
            body = event.get("signerEventBody") or {}
            key = body.get("key")
            if key:
                keys.append(bytes.fromhex(key[2:] if key.startswith("0x") else key))
        return keys

    async def retry_onchain_events(self, fid: int) -> None:
        """
        Ask the node to re-ingest on-chain events for fid.

        Raises:
            ValueError: fid is 0
            HubError: Node refused the request
        """
        if fid == 0:
            raise ValueError("no fid or invalid fid")
        response = await self._transport.post(
            f"{self._base_url}/v1/admin/retryOnchainEvents",
            json.dumps({"fid": fid}).encode(),
            self._headers("application/json"),
        )
        if not response.ok:
            raise HubError(
                f"retryOnchainEvents({fid}) failed: HTTP {response.status}: {response.text()}"
            )
        logger.info(f"Requested on-chain event retry for fid {fid}")

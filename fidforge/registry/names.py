# fidforge/registry/names.py
"""
fidforge Registry: Name Registrar

Claims a username for a fid from the off-chain naming authority.

    GET  /transfers/current?fid=N  → {"transfer": {"username": ...}}  (404 = none)
    POST /transfers                  {name, from, to, fid, owner, timestamp, signature}

The authority records claims as transfers; from=0 is a first registration.
No HTTP retry here: the caller decides whether to re-run provisioning.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

from ..errors import NameRegistrationFailed
from ..signers.custody import CustodySigner
from ..transport.http import HTTPResponse, HTTPTransport

logger = logging.getLogger(__name__)


def fallback_name(fid: int) -> str:
    """Deterministic name used when the fid has none."""
    return f"fid-{fid}"


def _username_from(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    transfer = payload.get("transfer", payload)
    if not isinstance(transfer, dict):
        return None
    return transfer.get("username") or None


class NameRegistrar:
    """Username claims against the naming authority."""

    def __init__(
        self,
        transport: HTTPTransport,
        custody: CustodySigner,
        fname_url: str,
    ):
        self._transport = transport
        self._custody = custody
        self._base_url = fname_url.rstrip("/")

    async def lookup(self, fid: int) -> Optional[str]:
        """
        Name currently bound to fid, or None.

        Raises:
            NameRegistrationFailed: Authority answered with an error
        """
        response = await self._transport.get(
            f"{self._base_url}/transfers/current",
            params={"fid": str(fid)},
        )
        if response.status == 404:
            return None
        if not response.ok:
            raise NameRegistrationFailed(fid, None, response.status, response.text())
        try:
            return _username_from(response.json())
        except ValueError as e:
            raise NameRegistrationFailed(fid, None, response.status, response.text()) from e

    async def ensure_name(self, fid: int, owner: str) -> str:
        """
        Return fid's name, claiming fid-<fid> if it has none.

        Raises:
            NameRegistrationFailed: Lookup or claim rejected
        """
        current = await self.lookup(fid)
        if current:
            logger.debug(f"fid {fid} already owns name {current!r}")
            return current

        if owner.lower() != self._custody.address.lower():
            raise ValueError(
                f"Owner {owner} is not the custody account {self._custody.address}"
            )

        name = fallback_name(fid)
        timestamp = int(time.time())
        signature = self._custody.sign_username_proof(name, timestamp, owner)

        transfer = {
            "name": name,
            "from": 0,
            "to": fid,
            "fid": fid,
            "owner": owner,
            "timestamp": timestamp,
            "signature": "0x" + signature.hex(),
        }
        logger.info(f"Claiming name {name!r} for fid {fid}")
        response: HTTPResponse = await self._transport.post(
            f"{self._base_url}/transfers",
            json.dumps(transfer).encode(),
            {"Content-Type": "application/json"},
        )
        if not response.ok:
            raise NameRegistrationFailed(fid, name, response.status, response.text())

        logger.info(f"Name {name!r} registered for fid {fid}")
        return name

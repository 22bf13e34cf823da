# fidforge/hub/publisher.py
"""
fidforge Hub: Message Publisher

Builds, signs and submits one message per call. Each call is an
independent at-most-once unit: local failures never reach the network,
remote rejections are terminal for that message. Ordering between calls
is up to the caller.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..config import Network
from ..errors import MessageConstructionFailed
from ..signers.delegated import DelegatedSigner
from .client import HubClient
from .message import Message, MessageBody, MessageType, build_message_data, sign_message

logger = logging.getLogger(__name__)


@dataclass
class Receipt:
    """Accepted message."""
    hash: bytes
    fid: int
    message_type: MessageType
    accepted_at: float = field(default_factory=time.time)
    node_response: Dict[str, Any] = field(default_factory=dict)

    @property
    def hash_hex(self) -> str:
        return "0x" + self.hash.hex()


class MessagePublisher:
    """Signs messages with the delegated key and submits them to a hub."""

    def __init__(self, hub: HubClient):
        self._hub = hub

    def compose(
        self,
        body: MessageBody,
        fid: int,
        network: Network,
        signer: DelegatedSigner,
        timestamp: Optional[int] = None,
    ) -> Message:
        """
        Build and sign a message without submitting it.

        Raises:
            MessageConstructionFailed: Inactive signer, bad fid, or
                encoding/signing error
        """
        if not signer.is_active:
            raise MessageConstructionFailed(
                f"signer 0x{signer.public_key.hex()} is {signer.state.name}, not ACTIVE",
                fid,
            )
        try:
            data = build_message_data(body, fid, network, timestamp)
            return sign_message(data, signer)
        except (ValueError, TypeError) as e:
            raise MessageConstructionFailed(str(e), fid) from e

    async def publish(
        self,
        body: MessageBody,
        fid: int,
        network: Network,
        signer: DelegatedSigner,
        timestamp: Optional[int] = None,
    ) -> Receipt:
        """
        Compose, sign and submit one message.

        Raises:
            MessageConstructionFailed: Local failure (nothing sent)
            MessageRejected: Node validation error (no retry)
        """
        message = self.compose(body, fid, network, signer, timestamp)
        logger.info(
            f"Submitting {message.data.type.name} 0x{message.hash.hex()} for fid {fid}"
        )
        node_response = await self._hub.submit_message(message)
        return Receipt(
            hash=message.hash,
            fid=fid,
            message_type=message.data.type,
            node_response=node_response,
        )

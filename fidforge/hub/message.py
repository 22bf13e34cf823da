# fidforge/hub/message.py
"""
fidforge Hub: Domain Messages

Signable application messages for the message-store node.

Wire Format (JSON):
    {
        "data":            { type, fid, timestamp, network, <body> },
        "dataBytes":       base64(canonical JSON of data),
        "hash":            0x + 20 bytes,
        "hashScheme":      1,
        "signature":       base64(64-byte Ed25519 signature over hash),
        "signatureScheme": 1,
        "signer":          0x + 32-byte Ed25519 public key
    }

Canonical encoding of data: sorted keys, compact separators, UTF-8.
hash = BLAKE3(dataBytes) truncated to 20 bytes; signature = Ed25519(hash).

Usage:
    body = make_cast_add("Hello World!")
    data = build_message_data(body, fid=1000, network=Network.MAINNET)
    message = sign_message(data, signer)
    assert message.verify()
"""

from __future__ import annotations

import base64
import json
import re
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import blake3

from ..config import Network
from ..signers.delegated import DelegatedSigner, verify_ed25519


# =============================================================================
# Constants
# =============================================================================

# 2021-01-01T00:00:00Z
NETWORK_EPOCH = 1609459200

HASH_SIZE = 20
MAX_CAST_BYTES = 320
MAX_EMBEDS = 2
MAX_MENTIONS = 10

USERNAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{0,15}$")

USER_DATA_LIMITS = {
    1: 256,   # PFP
    2: 32,    # DISPLAY
    3: 256,   # BIO
    5: 256,   # URL
    6: 16,    # USERNAME
}


class MessageType(IntEnum):
    """Message types."""
    CAST_ADD = 1
    USER_DATA_ADD = 11


class UserDataType(IntEnum):
    """Profile fields."""
    PFP = 1
    DISPLAY = 2
    BIO = 3
    URL = 5
    USERNAME = 6


class HashScheme(IntEnum):
    BLAKE3 = 1


class SignatureScheme(IntEnum):
    ED25519 = 1
    EIP712 = 2


def to_network_time(unix_seconds: float) -> int:
    """Unix seconds → seconds since the network epoch."""
    t = int(unix_seconds) - NETWORK_EPOCH
    if t < 0:
        raise ValueError("Timestamp predates network epoch")
    return t


def from_network_time(network_seconds: int) -> int:
    """Seconds since the network epoch → unix seconds."""
    return network_seconds + NETWORK_EPOCH


def canonical_json(document: Dict[str, Any]) -> bytes:
    return json.dumps(
        document, separators=(",", ":"), sort_keys=True, ensure_ascii=False
    ).encode("utf-8")


def compute_hash(data_bytes: bytes) -> bytes:
    """20-byte content address of encoded message data."""
    return blake3.blake3(data_bytes).digest(length=HASH_SIZE)


# =============================================================================
# Bodies
# =============================================================================

@dataclass(frozen=True)
class UserDataBody:
    """Profile field update."""
    type: UserDataType
    value: str

    message_type = MessageType.USER_DATA_ADD
    body_key = "userDataBody"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": int(self.type), "value": self.value}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> UserDataBody:
        return cls(type=UserDataType(d["type"]), value=d["value"])


@dataclass(frozen=True)
class CastAddBody:
    """Content post."""
    text: str
    embeds: Tuple[str, ...] = ()
    mentions: Tuple[int, ...] = ()
    mentions_positions: Tuple[int, ...] = ()
    parent_url: Optional[str] = None

    message_type = MessageType.CAST_ADD
    body_key = "castAddBody"

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "text": self.text,
            "embeds": [{"url": url} for url in self.embeds],
            "mentions": list(self.mentions),
            "mentionsPositions": list(self.mentions_positions),
        }
        if self.parent_url:
            d["parentUrl"] = self.parent_url
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> CastAddBody:
        return cls(
            text=d["text"],
            embeds=tuple(e["url"] for e in d.get("embeds", [])),
            mentions=tuple(d.get("mentions", [])),
            mentions_positions=tuple(d.get("mentionsPositions", [])),
            parent_url=d.get("parentUrl"),
        )


MessageBody = Union[UserDataBody, CastAddBody]

_BODY_TYPES = {
    UserDataBody.body_key: UserDataBody,
    CastAddBody.body_key: CastAddBody,
}


def make_user_data_add(data_type: UserDataType, value: str) -> UserDataBody:
    """
    Build a profile field update.

    Raises:
        ValueError: Value too long, or not a valid username for USERNAME
    """
    data_type = UserDataType(data_type)
    limit = USER_DATA_LIMITS[int(data_type)]
    if len(value.encode("utf-8")) > limit:
        raise ValueError(f"{data_type.name} value exceeds {limit} bytes")
    if data_type is UserDataType.USERNAME and value and not USERNAME_PATTERN.match(value):
        raise ValueError(f"Invalid username: {value!r}")
    return UserDataBody(type=data_type, value=value)


def make_cast_add(
    text: str,
    embeds: Sequence[str] = (),
    mentions: Sequence[int] = (),
    mentions_positions: Sequence[int] = (),
    parent_url: Optional[str] = None,
) -> CastAddBody:
    """
    Build a content post.

    Raises:
        ValueError: Text over 320 bytes, too many embeds/mentions,
            or mentions/positions mismatch
    """
    if len(text.encode("utf-8")) > MAX_CAST_BYTES:
        raise ValueError(f"Cast text exceeds {MAX_CAST_BYTES} bytes")
    if not text and not embeds:
        raise ValueError("Cast needs text or an embed")
    if len(embeds) > MAX_EMBEDS:
        raise ValueError(f"At most {MAX_EMBEDS} embeds")
    if len(mentions) > MAX_MENTIONS:
        raise ValueError(f"At most {MAX_MENTIONS} mentions")
    if len(mentions) != len(mentions_positions):
        raise ValueError("mentions and mentions_positions differ in length")
    return CastAddBody(
        text=text,
        embeds=tuple(embeds),
        mentions=tuple(mentions),
        mentions_positions=tuple(mentions_positions),
        parent_url=parent_url,
    )


# =============================================================================
# MessageData / Message
# =============================================================================

@dataclass(frozen=True)
class MessageData:
    """Signable payload tagged with fid, network, type and timestamp."""
    type: MessageType
    fid: int
    timestamp: int
    network: Network
    body: MessageBody

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": int(self.type),
            "fid": self.fid,
            "timestamp": self.timestamp,
            "network": int(self.network),
            self.body.body_key: self.body.to_dict(),
        }

    def encode(self) -> bytes:
        """Canonical bytes that the hash commits to."""
        return canonical_json(self.to_dict())

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> MessageData:
        body_key = next((k for k in _BODY_TYPES if k in d), None)
        if body_key is None:
            raise ValueError("Message data has no known body")
        return cls(
            type=MessageType(d["type"]),
            fid=int(d["fid"]),
            timestamp=int(d["timestamp"]),
            network=Network(d["network"]),
            body=_BODY_TYPES[body_key].from_dict(d[body_key]),
        )


def build_message_data(
    body: MessageBody,
    fid: int,
    network: Network,
    timestamp: Optional[int] = None,
) -> MessageData:
    """
    Attach {fid, network, type, timestamp} to a body.

    Args:
        timestamp: Network-epoch seconds (now if None)
    """
    if fid <= 0:
        raise ValueError(f"Invalid fid: {fid}")
    return MessageData(
        type=body.message_type,
        fid=fid,
        timestamp=to_network_time(time.time()) if timestamp is None else timestamp,
        network=Network(network),
        body=body,
    )


@dataclass(frozen=True)
class Message:
    """
    Signed, content-addressed message.

    Attributes:
        data: Signed payload
        hash: BLAKE3-160 of data.encode()
        signature: Ed25519 signature over hash
        signer: Ed25519 public key
    """
    data: MessageData
    hash: bytes
    signature: bytes
    signer: bytes
    hash_scheme: HashScheme = HashScheme.BLAKE3
    signature_scheme: SignatureScheme = SignatureScheme.ED25519
    data_bytes: Optional[bytes] = field(default=None, compare=False)

    def encoded_data(self) -> bytes:
        return self.data_bytes if self.data_bytes is not None else self.data.encode()

    def verify(self) -> bool:
        """Recompute the hash from data and check the signature."""
        if self.data_bytes is not None and self.data_bytes != self.data.encode():
            return False
        if compute_hash(self.data.encode()) != self.hash:
            return False
        return verify_ed25519(self.signer, self.hash, self.signature)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data.to_dict(),
            "dataBytes": base64.b64encode(self.encoded_data()).decode(),
            "hash": "0x" + self.hash.hex(),
            "hashScheme": int(self.hash_scheme),
            "signature": base64.b64encode(self.signature).decode(),
            "signatureScheme": int(self.signature_scheme),
            "signer": "0x" + self.signer.hex(),
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict()).encode()

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Message:
        data_bytes = base64.b64decode(d["dataBytes"])
        return cls(
            data=MessageData.from_dict(json.loads(data_bytes)),
            hash=bytes.fromhex(d["hash"][2:]),
            signature=base64.b64decode(d["signature"]),
            signer=bytes.fromhex(d["signer"][2:]),
            hash_scheme=HashScheme(d.get("hashScheme", 1)),
            signature_scheme=SignatureScheme(d.get("signatureScheme", 1)),
            data_bytes=data_bytes,
        )


def sign_message(data: MessageData, signer: DelegatedSigner) -> Message:
    """Hash and sign message data with the delegated key."""
    data_bytes = data.encode()
    digest = compute_hash(data_bytes)
    return Message(
        data=data,
        hash=digest,
        signature=signer.sign(digest),
        signer=signer.public_key,
        data_bytes=data_bytes,
    )

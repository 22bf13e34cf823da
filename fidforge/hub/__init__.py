# fidforge/hub/__init__.py
"""
fidforge Hub Layer

Domain messages and the message-store node.

Components:
    message: MessageData/Message, bodies, canonical hashing and signing
    client: HubClient (submit, on-chain signer listing, admin retry)
    publisher: MessagePublisher (compose + sign + submit)
"""

from .message import (
    Message,
    MessageData,
    MessageType,
    UserDataType,
    HashScheme,
    SignatureScheme,
    UserDataBody,
    CastAddBody,
    MessageBody,
    NETWORK_EPOCH,
    build_message_data,
    make_cast_add,
    make_user_data_add,
    sign_message,
    compute_hash,
    to_network_time,
    from_network_time,
)

from .client import (
    HubClient,
    HubError,
    parse_rpc_auth,
    basic_auth_header,
)

from .publisher import (
    MessagePublisher,
    Receipt,
)

__all__ = [
    # Messages
    "Message",
    "MessageData",
    "MessageType",
    "UserDataType",
    "HashScheme",
    "SignatureScheme",
    "UserDataBody",
    "CastAddBody",
    "MessageBody",
    "NETWORK_EPOCH",
    "build_message_data",
    "make_cast_add",
    "make_user_data_add",
    "sign_message",
    "compute_hash",
    "to_network_time",
    "from_network_time",
    # Client
    "HubClient",
    "HubError",
    "parse_rpc_auth",
    "basic_auth_header",
    # Publisher
    "MessagePublisher",
    "Receipt",
]

# fidforge/errors.py
"""
fidforge: Error Taxonomy

Every stage either completes (or confirms idempotently) or raises one of
these. Each error carries the identifiers needed to diagnose it without
re-deriving state: addresses, amounts, fid, tx hash, remote status/body.

Hierarchy:
    ProvisioningError
    ├── InsufficientFunds
    │   └── NoAccountNoFunds
    ├── ChainTransactionFailed
    ├── MissingRegistrationEvent
    ├── SignerAuthorizationFailed
    ├── NameRegistrationFailed
    ├── MessageConstructionFailed
    └── MessageRejected
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ProvisioningError(Exception):
    """Base provisioning error."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context: Dict[str, Any] = context


# =============================================================================
# Identity
# =============================================================================

class InsufficientFunds(ProvisioningError):
    """Owner balance is below the registration price."""

    def __init__(self, owner: str, balance: int, price: int):
        self.owner = owner
        self.balance = balance
        self.price = price
        super().__init__(
            f"Insufficient funds for {owner}: balance {balance} wei < price {price} wei",
            owner=owner, balance=balance, price=price,
        )


class NoAccountNoFunds(InsufficientFunds):
    """No fid and a zero balance. Needs external funding."""

    def __init__(self, owner: str, price: int):
        super().__init__(owner, 0, price)
        self.args = (
            f"No account and no funds for {owner}: fund it with at least {price} wei",
        )


class MissingRegistrationEvent(ProvisioningError):
    """Registration confirmed but no Register event was emitted."""

    def __init__(self, tx_hash: str, owner: str):
        self.tx_hash = tx_hash
        self.owner = owner
        super().__init__(
            f"Register event missing from tx {tx_hash} (owner {owner})",
            tx_hash=tx_hash, owner=owner,
        )


# =============================================================================
# Chain
# =============================================================================

class ChainTransactionFailed(ProvisioningError):
    """Chain read, or simulation, submission or confirmation of a transaction, failed."""

    def __init__(
        self,
        contract: str,
        function: str,
        reason: str,
        tx_hash: Optional[str] = None,
    ):
        self.contract = contract
        self.function = function
        self.reason = reason
        self.tx_hash = tx_hash
        where = f" (tx {tx_hash})" if tx_hash else ""
        super().__init__(
            f"{contract}.{function} failed{where}: {reason}",
            contract=contract, function=function, reason=reason, tx_hash=tx_hash,
        )


# =============================================================================
# Signer
# =============================================================================

class SignerAuthorizationFailed(ProvisioningError):
    """Delegated key could not be authorized (or verified) for the fid."""

    def __init__(self, fid: int, public_key: bytes, reason: str):
        self.fid = fid
        self.public_key = public_key
        self.reason = reason
        super().__init__(
            f"Signer 0x{public_key.hex()} not authorized for fid {fid}: {reason}",
            fid=fid, public_key="0x" + public_key.hex(), reason=reason,
        )


# =============================================================================
# Name
# =============================================================================

class NameRegistrationFailed(ProvisioningError):
    """Naming authority returned a non-success response."""

    def __init__(self, fid: int, name: Optional[str], status: int, body: str):
        self.fid = fid
        self.name = name
        self.status = status
        self.body = body
        super().__init__(
            f"Name registration failed for fid {fid} (name={name!r}): HTTP {status}: {body}",
            fid=fid, name=name, status=status, body=body,
        )


# =============================================================================
# Messages
# =============================================================================

class MessageConstructionFailed(ProvisioningError):
    """Message could not be built, encoded or signed locally."""

    def __init__(self, reason: str, fid: Optional[int] = None):
        self.reason = reason
        self.fid = fid
        super().__init__(
            f"Message construction failed (fid {fid}): {reason}",
            fid=fid, reason=reason,
        )


class MessageRejected(ProvisioningError):
    """Hub rejected the message. Terminal for that message."""

    def __init__(self, reason: str, status: int, message_hash: Optional[bytes] = None):
        self.reason = reason
        self.status = status
        self.message_hash = message_hash
        hash_hex = "0x" + message_hash.hex() if message_hash else None
        super().__init__(
            f"Message {hash_hex} rejected: HTTP {status}: {reason}",
            reason=reason, status=status, message_hash=hash_hex,
        )

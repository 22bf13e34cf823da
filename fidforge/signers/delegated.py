# fidforge/signers/delegated.py
"""
fidforge Signers: Delegated Ed25519 Key

The delegated key signs application messages on behalf of a fid once the
key registry has authorized it. Signatures are raw Ed25519 over the
message hash, distinct from the custody key's EIP-712 scheme.

Lifecycle:
    UNREGISTERED → PENDING (add tx in flight) → ACTIVE
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Optional, Union

from nacl.encoding import RawEncoder
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey


class SignerState(Enum):
    """Delegated key registration state."""
    UNREGISTERED = auto()
    PENDING = auto()
    ACTIVE = auto()


def _seed_bytes(key: Union[bytes, str]) -> bytes:
    if isinstance(key, str):
        key = bytes.fromhex(key[2:] if key.startswith("0x") else key)
    # Accept a 64-byte secret (seed || public key) as well as a bare seed
    if len(key) == 64:
        key = key[:32]
    if len(key) != 32:
        raise ValueError("Ed25519 private key must be 32 bytes (or 64 with public key)")
    return key


class DelegatedSigner:
    """
    Ed25519 delegated signing key.

    Attributes:
        public_key: 32-byte Ed25519 public key
        state: Registration state (only ACTIVE signers may publish)
    """

    def __init__(
        self,
        signing_key: SigningKey,
        state: SignerState = SignerState.UNREGISTERED,
    ):
        self._signing_key = signing_key
        self.public_key: bytes = bytes(signing_key.verify_key)
        self.state = state

    @classmethod
    def generate(cls) -> DelegatedSigner:
        """Create a fresh keypair."""
        return cls(SigningKey.generate())

    @classmethod
    def from_private_key(
        cls,
        key: Union[bytes, str],
        state: SignerState = SignerState.UNREGISTERED,
    ) -> DelegatedSigner:
        """Load from a 32-byte seed (bytes or hex)."""
        return cls(SigningKey(_seed_bytes(key)), state)

    @property
    def private_key(self) -> bytes:
        """32-byte seed."""
        return bytes(self._signing_key)

    @property
    def is_active(self) -> bool:
        return self.state is SignerState.ACTIVE

    def mark_pending(self) -> None:
        self.state = SignerState.PENDING

    def mark_active(self) -> None:
        self.state = SignerState.ACTIVE

    def sign(self, data: bytes) -> bytes:
        """Sign with Ed25519, returning the 64-byte detached signature."""
        return bytes(self._signing_key.sign(data, encoder=RawEncoder).signature)

    def __repr__(self) -> str:
        return f"DelegatedSigner(0x{self.public_key.hex()}, {self.state.name})"


def verify_ed25519(public_key: bytes, data: bytes, signature: bytes) -> bool:
    """Verify a detached Ed25519 signature."""
    try:
        VerifyKey(public_key).verify(data, signature)
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False


def coerce_signer(
    key: Optional[Union[DelegatedSigner, bytes, str]],
) -> Optional[DelegatedSigner]:
    """Accept a DelegatedSigner or raw private key material."""
    if key is None or isinstance(key, DelegatedSigner):
        return key
    return DelegatedSigner.from_private_key(key)

# fidforge/signers/custody.py
"""
fidforge Signers: Custody (EIP-712)

The custody key owns the account. It signs structured, domain-separated
claims (EIP-712 typed data) for the key registry and the naming authority.
It never signs application messages.

Claims:
    SignedKeyRequest(uint256 requestFid, bytes key, uint256 deadline)
        domain: SignedKeyRequestValidator on Optimism (chainId 10)
    UserNameProof(string name, uint256 timestamp, address owner)
        domain: name verification on mainnet (chainId 1)

Usage:
    custody = CustodySigner(private_key)
    sig = custody.sign_key_request(fid, public_key, deadline)
    sig = custody.sign_username_proof("fid-1000", timestamp, custody.address)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data


# =============================================================================
# Domains & Types
# =============================================================================

@dataclass(frozen=True)
class EIP712Domain:
    """EIP-712 domain separator."""
    name: str
    version: str
    chain_id: int
    verifying_contract: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to EIP-712 format."""
        domain = {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
        }
        if self.verifying_contract:
            domain["verifyingContract"] = self.verifying_contract
        return domain


SIGNED_KEY_REQUEST_DOMAIN = EIP712Domain(
    name="Farcaster SignedKeyRequestValidator",
    version="1",
    chain_id=10,
    verifying_contract="0x00000000fc700472606ed4fa22623acf62c60553",
)

SIGNED_KEY_REQUEST_TYPES: Dict[str, List[Dict[str, str]]] = {
    "SignedKeyRequest": [
        {"name": "requestFid", "type": "uint256"},
        {"name": "key", "type": "bytes"},
        {"name": "deadline", "type": "uint256"},
    ],
}

USERNAME_PROOF_DOMAIN = EIP712Domain(
    name="Farcaster name verification",
    version="1",
    chain_id=1,
    verifying_contract="0xe3be01d99baa8db9905b33a3ca391238234b79d1",
)

USERNAME_PROOF_TYPES: Dict[str, List[Dict[str, str]]] = {
    "UserNameProof": [
        {"name": "name", "type": "string"},
        {"name": "timestamp", "type": "uint256"},
        {"name": "owner", "type": "address"},
    ],
}


def signed_key_request_claim(fid: int, key: bytes, deadline: int) -> Dict[str, Any]:
    """Authorization claim binding {fid, public key, deadline}."""
    return {"requestFid": fid, "key": bytes(key), "deadline": deadline}


def username_proof_claim(name: str, timestamp: int, owner: str) -> Dict[str, Any]:
    """Name ownership claim binding {name, timestamp, owner}."""
    return {"name": name, "timestamp": timestamp, "owner": owner}


def recover_typed_data_signer(
    domain: EIP712Domain,
    types: Dict[str, List[Dict[str, str]]],
    value: Dict[str, Any],
    signature: bytes,
) -> str:
    """Recover the address that produced an EIP-712 signature."""
    encoded = encode_typed_data(domain.to_dict(), types, value)
    return Account.recover_message(encoded, signature=signature)


# =============================================================================
# CustodySigner
# =============================================================================

class CustodySigner:
    """
    Owner (custody) key signer.

    Produces 65-byte r||s||v EIP-712 signatures.
    """

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        """Checksummed owner address."""
        return self._account.address

    def sign_typed_data(
        self,
        domain: EIP712Domain,
        types: Dict[str, List[Dict[str, str]]],
        value: Dict[str, Any],
    ) -> bytes:
        """Sign typed data using EIP-712."""
        signed = self._account.sign_typed_data(domain.to_dict(), types, value)
        return bytes(signed.signature)

    def sign_key_request(self, fid: int, key: bytes, deadline: int) -> bytes:
        """Sign a SignedKeyRequest for the key registry."""
        return self.sign_typed_data(
            SIGNED_KEY_REQUEST_DOMAIN,
            SIGNED_KEY_REQUEST_TYPES,
            signed_key_request_claim(fid, key, deadline),
        )

    def sign_username_proof(self, name: str, timestamp: int, owner: str) -> bytes:
        """Sign a UserNameProof for the naming authority."""
        return self.sign_typed_data(
            USERNAME_PROOF_DOMAIN,
            USERNAME_PROOF_TYPES,
            username_proof_claim(name, timestamp, owner),
        )

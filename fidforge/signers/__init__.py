# fidforge/signers/__init__.py
"""
fidforge Signers

Two signing roles, never interchangeable:
    CustodySigner: EIP-712 typed-data claims (key registry, naming authority)
    DelegatedSigner: Ed25519 signatures over application messages
"""

from .custody import (
    CustodySigner,
    EIP712Domain,
    SIGNED_KEY_REQUEST_DOMAIN,
    SIGNED_KEY_REQUEST_TYPES,
    USERNAME_PROOF_DOMAIN,
    USERNAME_PROOF_TYPES,
    signed_key_request_claim,
    username_proof_claim,
    recover_typed_data_signer,
)

from .delegated import (
    DelegatedSigner,
    SignerState,
    verify_ed25519,
    coerce_signer,
)

__all__ = [
    # Custody
    "CustodySigner",
    "EIP712Domain",
    "SIGNED_KEY_REQUEST_DOMAIN",
    "SIGNED_KEY_REQUEST_TYPES",
    "USERNAME_PROOF_DOMAIN",
    "USERNAME_PROOF_TYPES",
    "signed_key_request_claim",
    "username_proof_claim",
    "recover_typed_data_signer",
    # Delegated
    "DelegatedSigner",
    "SignerState",
    "verify_ed25519",
    "coerce_signer",
]

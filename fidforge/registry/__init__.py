# fidforge/registry/__init__.py
"""
fidforge Registry Layer

Provisioning stages, run in order:
    IdentityRegistrar: owner → fid (IdGateway/IdRegistry)
    SignerProvisioner: fid → ACTIVE delegated key (KeyGateway/KeyRegistry)
    NameRegistrar: fid → username (naming authority)
"""

from .identity import IdentityRegistrar

from .keys import (
    SignerProvisioner,
    encode_signed_key_request_metadata,
)

from .names import (
    NameRegistrar,
    fallback_name,
)

__all__ = [
    "IdentityRegistrar",
    "SignerProvisioner",
    "encode_signed_key_request_metadata",
    "NameRegistrar",
    "fallback_name",
]

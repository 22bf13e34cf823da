# fidforge/chain/__init__.py
"""
fidforge Chain Layer

On-chain identity and key registries (EVM).

Components:
    ChainClient: web3-backed contract reads and transactions
    MockChainClient: In-memory registries for tests and dry runs

Usage:
    from fidforge.chain import ChainClient

    chain = ChainClient(config)
    fid = chain.read("IdRegistry", "idOf", chain.address)
"""

from .client import (
    ChainClient,
    MockChainClient,
    TxReceipt,
    KeyType,
    KeyState,
    MetadataType,
    SIGNED_KEY_REQUEST_METADATA_ABI,
    CONTRACT_NAMES,
    load_abi,
)

__all__ = [
    "ChainClient",
    "MockChainClient",
    "TxReceipt",
    "KeyType",
    "KeyState",
    "MetadataType",
    "SIGNED_KEY_REQUEST_METADATA_ABI",
    "CONTRACT_NAMES",
    "load_abi",
]

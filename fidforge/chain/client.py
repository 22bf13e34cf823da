# fidforge/chain/client.py
"""
fidforge Chain: Contract Client

Python interface to the identity and key registry contracts.
Reads contract state, and simulates, signs, submits and awaits
transactions from the custody account.

Requirements:
    pip install web3

Usage:
    chain = ChainClient(config)

    fid = chain.read("IdRegistry", "idOf", chain.address)
    receipt = chain.transact("IdGateway", "register", recovery, value=price)
    events = chain.decode_events("IdRegistry", "Register", receipt)

Contracts:
    IdGateway   - price(), register(recovery)
    IdRegistry  - idOf(owner), event Register(to, id, recovery)
    KeyGateway  - add(keyType, key, metadataType, metadata)
    KeyRegistry - keyDataOf(fid, key)
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from eth_abi import decode as abi_decode
from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.logs import DISCARD

from ..config import ProvisioningConfig
from ..errors import ChainTransactionFailed

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

ABI_DIR = Path(__file__).parent / "contracts" / "abi"

CONTRACT_NAMES = ("IdGateway", "IdRegistry", "KeyGateway", "KeyRegistry")

# Node-side and connection failures (requests exceptions are OSErrors)
RPC_ERRORS = (Web3Exception, OSError, ValueError)


def load_abi(name: str) -> List[Dict]:
    """Load contract ABI from JSON file."""
    with open(ABI_DIR / f"{name}.json") as f:
        data = json.load(f)
    return data.get("abi", data) if isinstance(data, dict) else data


class KeyType(IntEnum):
    """KeyRegistry key types."""
    ED25519 = 1


class MetadataType(IntEnum):
    """KeyRegistry metadata types."""
    SIGNED_KEY_REQUEST = 1


class KeyState(IntEnum):
    """KeyRegistry key states."""
    NULL = 0
    ADDED = 1
    REMOVED = 2


# Tuple layout of SignedKeyRequestMetadata
SIGNED_KEY_REQUEST_METADATA_ABI = "(uint256,address,bytes,uint256)"


# =============================================================================
# Types
# =============================================================================

@dataclass
class TxReceipt:
    """
    Confirmed (or reverted) transaction.

    Attributes:
        tx_hash: 0x-prefixed transaction hash
        status: 1 = success, 0 = reverted
        block_number: Inclusion block
        logs: Raw logs (decoded dicts for the mock client)
        raw: Underlying web3 receipt, used for event decoding
    """
    tx_hash: str
    status: int
    block_number: int
    logs: List[Any] = field(default_factory=list)
    raw: Any = None

    @property
    def confirmed(self) -> bool:
        return self.status == 1


# =============================================================================
# ChainClient
# =============================================================================

class ChainClient:
    """
    Registry contracts interface over a web3 HTTP provider.

    All write operations are sent from the custody account.
    """

    def __init__(self, config: ProvisioningConfig, w3: Optional[Web3] = None):
        """
        Initialize ChainClient.

        Args:
            config: Provisioning config (rpc_url, custody key, addresses)
            w3: Pre-built Web3 instance (HTTPProvider on rpc_url if None)
        """
        self._w3 = w3 or Web3(
            Web3.HTTPProvider(
                config.rpc_url,
                request_kwargs={"timeout": config.http_timeout},
            )
        )
        self._account = Account.from_key(config.custody_private_key.get_secret_value())
        self._chain_id = config.chain_id
        self._tx_timeout = config.tx_timeout

        addresses = {
            "IdGateway": config.id_gateway_address,
            "IdRegistry": config.id_registry_address,
            "KeyGateway": config.key_gateway_address,
            "KeyRegistry": config.key_registry_address,
        }
        self._contracts = {
            name: self._w3.eth.contract(
                address=Web3.to_checksum_address(addresses[name].lower()),
                abi=load_abi(name),
            )
            for name in CONTRACT_NAMES
        }

    @property
    def address(self) -> str:
        """Custody account address."""
        return self._account.address

    def _contract(self, name: str):
        try:
            return self._contracts[name]
        except KeyError:
            raise ValueError(f"Unknown contract: {name}") from None

    # =========================================================================
    # Read Operations
    # =========================================================================

    def balance_of(self, address: str) -> int:
        """Native balance in wei."""
        try:
            return self._w3.eth.get_balance(Web3.to_checksum_address(address))
        except RPC_ERRORS as e:
            raise ChainTransactionFailed("eth", "getBalance", str(e) or type(e).__name__) from e

    def read(self, contract: str, function: str, *args: Any) -> Any:
        """
        Call a view function.

        Raises:
            ChainTransactionFailed: Revert, RPC error or unreachable node
        """
        fn = getattr(self._contract(contract).functions, function)(*args)
        try:
            return fn.call()
        except RPC_ERRORS as e:
            raise ChainTransactionFailed(contract, function, str(e) or type(e).__name__) from e

    # =========================================================================
    # Write Operations
    # =========================================================================

    def transact(
        self,
        contract: str,
        function: str,
        *args: Any,
        value: int = 0,
        gas_limit: Optional[int] = None,
    ) -> TxReceipt:
        """
        Simulate, sign, submit and await a contract call.

        Returns:
            Confirmed TxReceipt

        Raises:
            ChainTransactionFailed: On revert, RPC error or receipt timeout
        """
        fn = getattr(self._contract(contract).functions, function)(*args)
        params: Dict[str, Any] = {"from": self.address, "value": value}

        # Simulate before signing
        try:
            fn.call(params)
        except ContractLogicError as e:
            raise ChainTransactionFailed(
                contract, function, f"simulation reverted: {e}"
            ) from e
        except RPC_ERRORS as e:
            raise ChainTransactionFailed(
                contract, function, f"simulation failed: {str(e) or type(e).__name__}"
            ) from e

        tx_hash_hex: Optional[str] = None
        try:
            params["nonce"] = self._w3.eth.get_transaction_count(self.address)
            params["chainId"] = self._chain_id
            if gas_limit:
                params["gas"] = gas_limit
            tx = fn.build_transaction(params)

            signed = self._account.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            tx_hash_hex = Web3.to_hex(tx_hash)
            logger.info(f"Submitted {contract}.{function}: {tx_hash_hex}")

            raw = self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._tx_timeout
            )
        except TimeExhausted as e:
            raise ChainTransactionFailed(
                contract, function, "receipt wait timed out", tx_hash_hex
            ) from e
        except RPC_ERRORS as e:
            raise ChainTransactionFailed(
                contract, function, str(e) or type(e).__name__, tx_hash_hex
            ) from e

        receipt = TxReceipt(
            tx_hash=tx_hash_hex,
            status=raw["status"],
            block_number=raw["blockNumber"],
            logs=list(raw["logs"]),
            raw=raw,
        )
        if not receipt.confirmed:
            raise ChainTransactionFailed(contract, function, "reverted", tx_hash_hex)

        logger.info(f"Confirmed {contract}.{function} in block {receipt.block_number}")
        return receipt

    # =========================================================================
    # Events
    # =========================================================================

    def decode_events(
        self,
        contract: str,
        event: str,
        receipt: TxReceipt,
    ) -> List[Dict[str, Any]]:
        """Decode the named event's args from a receipt."""
        event_type = getattr(self._contract(contract).events, event)()
        logs = event_type.process_receipt(receipt.raw, errors=DISCARD)
        return [dict(log["args"]) for log in logs]


# =============================================================================
# Mock ChainClient (for testing without blockchain)
# =============================================================================

class MockChainClient:
    """
    In-memory registry contracts for testing.

    No blockchain required. Simulates IdGateway/IdRegistry/KeyGateway/
    KeyRegistry closely enough to exercise the provisioning stages,
    including reverts and missing events.
    """

    def __init__(
        self,
        address: str = "0x" + "1" * 40,
        balance: int = 10**18,
        price: int = 10**15,
        next_fid: int = 1000,
    ):
        self.address = address
        self.price = price
        self.next_fid = next_fid
        self.balances: Dict[str, int] = {address.lower(): balance}
        self.id_of: Dict[str, int] = {}
        self.keys: Dict[Tuple[int, bytes], KeyState] = {}
        self.transactions: List[Dict[str, Any]] = []
        self.emit_events = True
        self._failures: Dict[Tuple[str, str], str] = {}
        self._block = 1

    # =========================================================================
    # Test hooks
    # =========================================================================

    def fail_next(self, contract: str, function: str, reason: str = "reverted") -> None:
        """Make the next transact() of contract.function revert."""
        self._failures[(contract, function)] = reason

    def set_fid(self, owner: str, fid: int) -> None:
        """Pre-register a fid for an owner."""
        self.id_of[owner.lower()] = fid

    def add_key(self, fid: int, key: bytes) -> None:
        """Pre-authorize a key for a fid."""
        self.keys[(fid, bytes(key))] = KeyState.ADDED

    # =========================================================================
    # Read Operations
    # =========================================================================

    def balance_of(self, address: str) -> int:
        return self.balances.get(address.lower(), 0)

    def read(self, contract: str, function: str, *args: Any) -> Any:
        handler = self._views().get((contract, function))
        if handler is None:
            raise ValueError(f"Unknown view: {contract}.{function}")
        return handler(*args)

    def _views(self) -> Dict[Tuple[str, str], Callable[..., Any]]:
        return {
            ("IdRegistry", "idOf"): lambda owner: self.id_of.get(owner.lower(), 0),
            ("IdGateway", "price"): lambda: self.price,
            ("KeyRegistry", "keyDataOf"): lambda fid, key: (
                int(self.keys.get((fid, bytes(key)), KeyState.NULL)),
                int(KeyType.ED25519),
            ),
        }

    # =========================================================================
    # Write Operations
    # =========================================================================

    def transact(
        self,
        contract: str,
        function: str,
        *args: Any,
        value: int = 0,
        **kwargs: Any,
    ) -> TxReceipt:
        tx_hash = "0x" + f"{len(self.transactions) + 1:064x}"
        self.transactions.append({
            "contract": contract,
            "function": function,
            "args": args,
            "value": value,
            "tx_hash": tx_hash,
        })

        reason = self._failures.pop((contract, function), None)
        if reason is not None:
            raise ChainTransactionFailed(contract, function, reason, tx_hash)

        if (contract, function) == ("IdGateway", "register"):
            logs = self._register(args[0], value, tx_hash)
        elif (contract, function) == ("KeyGateway", "add"):
            logs = self._add(*args, tx_hash=tx_hash)
        else:
            raise ValueError(f"Unknown function: {contract}.{function}")

        self._block += 1
        return TxReceipt(
            tx_hash=tx_hash,
            status=1,
            block_number=self._block,
            logs=logs if self.emit_events else [],
        )

    def _register(self, recovery: str, value: int, tx_hash: str) -> List[Dict[str, Any]]:
        owner = self.address.lower()
        if self.id_of.get(owner):
            raise ChainTransactionFailed("IdGateway", "register", "HasId", tx_hash)
        if value < self.price:
            raise ChainTransactionFailed("IdGateway", "register", "InsufficientPayment", tx_hash)
        if self.balance_of(owner) < value:
            raise ChainTransactionFailed("IdGateway", "register", "insufficient funds", tx_hash)

        self.balances[owner] -= self.price
        fid = self.next_fid
        self.next_fid += 1
        self.id_of[owner] = fid

        return [{
            "contract": "IdRegistry",
            "event": "Register",
            "args": {"to": self.address, "id": fid, "recovery": recovery},
        }]

    def _add(
        self,
        key_type: int,
        key: bytes,
        metadata_type: int,
        metadata: bytes,
        tx_hash: str,
    ) -> List[Dict[str, Any]]:
        fid = self.id_of.get(self.address.lower(), 0)
        if not fid:
            raise ChainTransactionFailed("KeyGateway", "add", "HasNoId", tx_hash)
        if key_type != KeyType.ED25519 or metadata_type != MetadataType.SIGNED_KEY_REQUEST:
            raise ChainTransactionFailed("KeyGateway", "add", "InvalidKeyType", tx_hash)

        (request_fid, _signer, signature, deadline), = abi_decode(
            [SIGNED_KEY_REQUEST_METADATA_ABI], metadata
        )
        if request_fid != fid or not signature:
            raise ChainTransactionFailed("KeyGateway", "add", "InvalidMetadata", tx_hash)
        if deadline < int(time.time()):
            raise ChainTransactionFailed("KeyGateway", "add", "SignatureExpired", tx_hash)
        if self.keys.get((fid, bytes(key))) == KeyState.ADDED:
            raise ChainTransactionFailed("KeyGateway", "add", "InvalidState", tx_hash)

        self.keys[(fid, bytes(key))] = KeyState.ADDED
        return [{
            "contract": "KeyRegistry",
            "event": "Add",
            "args": {"fid": fid, "keyType": key_type, "keyBytes": bytes(key)},
        }]

    # =========================================================================
    # Events
    # =========================================================================

    def decode_events(
        self,
        contract: str,
        event: str,
        receipt: TxReceipt,
    ) -> List[Dict[str, Any]]:
        return [
            dict(log["args"]) for log in receipt.logs
            if log["contract"] == contract and log["event"] == event
        ]

# fidforge/registry/identity.py
"""
fidforge Registry: Identity Registrar

Makes sure the owner address has a fid, registering one if needed.

Flow:
    1. IdRegistry.idOf(owner) != 0       → return it (no transaction)
    2. IdGateway.price(), owner balance
    3. balance == 0                      → NoAccountNoFunds
       balance < price                   → InsufficientFunds
    4. IdGateway.register(recovery) paying price, await receipt
    5. fid from IdRegistry.Register event → MissingRegistrationEvent if absent
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Union

from ..errors import InsufficientFunds, MissingRegistrationEvent, NoAccountNoFunds

if TYPE_CHECKING:
    from ..chain.client import ChainClient, MockChainClient

logger = logging.getLogger(__name__)


class IdentityRegistrar:
    """fid registration against IdGateway/IdRegistry."""

    def __init__(
        self,
        chain: Union["ChainClient", "MockChainClient"],
        recovery_address: Optional[str] = None,
    ):
        """
        Args:
            chain: Chain client sending from the custody account
            recovery_address: Recovery address (owner if None)
        """
        self._chain = chain
        self._recovery_address = recovery_address

    def lookup(self, owner: str) -> int:
        """Current fid of owner (0 = none)."""
        return int(self._chain.read("IdRegistry", "idOf", owner))

    def ensure_account(self, owner: str) -> int:
        """
        Return owner's fid, registering one if none exists.

        Raises:
            NoAccountNoFunds: No fid and zero balance
            InsufficientFunds: Balance below registration price
            ChainTransactionFailed: Registration tx failed
            MissingRegistrationEvent: Confirmed without a Register event
        """
        fid = self.lookup(owner)
        if fid:
            logger.debug(f"Owner {owner} already has fid {fid}")
            return fid

        if owner.lower() != self._chain.address.lower():
            raise ValueError(
                f"Owner {owner} is not the custody account {self._chain.address}"
            )

        price = int(self._chain.read("IdGateway", "price"))
        balance = self._chain.balance_of(owner)
        if balance == 0:
            raise NoAccountNoFunds(owner, price)
        if balance < price:
            raise InsufficientFunds(owner, balance, price)

        recovery = self._recovery_address or owner
        logger.info(f"Registering fid for {owner} (price {price} wei, recovery {recovery})")
        receipt = self._chain.transact("IdGateway", "register", recovery, value=price)

        events = self._chain.decode_events("IdRegistry", "Register", receipt)
        if not events:
            raise MissingRegistrationEvent(receipt.tx_hash, owner)

        event = next(
            (e for e in events if str(e.get("to", "")).lower() == owner.lower()),
            events[0],
        )
        fid = int(event["id"])
        logger.info(f"Registered fid {fid} for {owner} in tx {receipt.tx_hash}")
        return fid

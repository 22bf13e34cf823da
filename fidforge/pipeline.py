# fidforge/pipeline.py
"""
fidforge: Provisioning Pipeline

Runs the four stages in order for the custody account:

    ensure_account → ensure_signer → ensure_name → publish (username, cast)

Each stage is gated on the previous one. Re-running after an abort resumes
through the idempotent checks of the first three stages.

Usage:
    async with Provisioner(config) as provisioner:
        result = await provisioner.run(post_text="Hello World!")
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .chain.client import ChainClient, MockChainClient
from .config import ProvisioningConfig
from .errors import MessageConstructionFailed
from .hub.client import HubClient
from .hub.message import UserDataType, make_cast_add, make_user_data_add
from .hub.publisher import MessagePublisher, Receipt
from .registry.identity import IdentityRegistrar
from .registry.keys import SignerProvisioner, Sleep
from .registry.names import NameRegistrar
from .signers.custody import CustodySigner
from .signers.delegated import DelegatedSigner
from .transport.http import HTTPTransport, HttpxTransport

logger = logging.getLogger(__name__)


@dataclass
class ProvisioningResult:
    """Outcome of a full run."""
    fid: int
    owner: str
    signer: DelegatedSigner
    name: str
    receipts: List[Receipt] = field(default_factory=list)

    @property
    def signer_public_key(self) -> str:
        return "0x" + self.signer.public_key.hex()


class Provisioner:
    """Single-account provisioning and publishing."""

    def __init__(
        self,
        config: ProvisioningConfig,
        chain: Optional[Union[ChainClient, MockChainClient]] = None,
        transport: Optional[HTTPTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Args:
            config: Provisioning config
            chain: Chain client (ChainClient(config) if None)
            transport: HTTP transport (HttpxTransport if None)
            sleep: Awaitable sleep for the settling delay
        """
        self.config = config
        self.custody = CustodySigner(config.custody_private_key.get_secret_value())
        self.chain = chain if chain is not None else ChainClient(config)
        self._owns_transport = transport is None
        self.transport = transport or HttpxTransport(timeout=config.http_timeout)

        rpc_auth = config.hub_rpc_auth.get_secret_value() if config.hub_rpc_auth else None
        self.hub = HubClient(config.hub_url, self.transport, rpc_auth)
        self.identity = IdentityRegistrar(self.chain, config.recovery_address)
        self.signers = SignerProvisioner(
            self.chain, self.custody, config, hub=self.hub, sleep=sleep
        )
        self.names = NameRegistrar(self.transport, self.custody, config.fname_url)
        self.publisher = MessagePublisher(self.hub)
        # Authorized delegated key, kept when a later stage fails
        self.signer: Optional[DelegatedSigner] = None

    @property
    def owner(self) -> str:
        return self.custody.address

    async def run(
        self,
        signing_key: Optional[Union[DelegatedSigner, bytes, str]] = None,
        post_text: str = "Hello World!",
    ) -> ProvisioningResult:
        """
        Provision the account and publish the username update and a cast.

        Args:
            signing_key: Previously authorized delegated key, if any
            post_text: Text of the cast

        Raises:
            ProvisioningError: Whichever stage failed
        """
        owner = self.owner
        logger.info(f"Provisioning owner {owner} on {self.config.network.name}")

        fid = self.identity.ensure_account(owner)
        signer = await self.signers.ensure_signer(fid, owner, signing_key)
        self.signer = signer
        name = await self.names.ensure_name(fid, owner)

        result = ProvisioningResult(fid=fid, owner=owner, signer=signer, name=name)
        network = self.config.network

        try:
            bodies = [
                make_user_data_add(UserDataType.USERNAME, name),
                make_cast_add(post_text),
            ]
        except ValueError as e:
            raise MessageConstructionFailed(str(e), fid) from e

        for body in bodies:
            result.receipts.append(
                await self.publisher.publish(body, fid, network, signer)
            )

        logger.info(f"Provisioned fid {fid} ({name}), published {len(result.receipts)} messages")
        return result

    async def aclose(self) -> None:
        if self._owns_transport:
            await self.transport.aclose()

    async def __aenter__(self) -> Provisioner:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

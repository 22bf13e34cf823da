# fidforge/registry/keys.py
"""
fidforge Registry: Signer Provisioner

Authorizes a delegated Ed25519 key for a fid via KeyGateway.add, with a
custody-signed SignedKeyRequest as metadata.

Flow:
    1. Caller-supplied key → returned as ACTIVE, no transaction
       (checked against KeyRegistry first if verify_supplied_signer)
    2. Generate keypair
    3. SignedKeyRequest{fid, key, deadline = now + 1h}, EIP-712 by custody
    4. KeyGateway.add(ED25519, key, SIGNED_KEY_REQUEST, metadata), await receipt
    5. Settle (fixed delay, or poll the hub until it has seen the key;
       a failed poll or event retry falls back to the delay)
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Union

from eth_abi import encode as abi_encode
from tenacity import (
    AsyncRetrying,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from ..chain.client import (
    KeyState,
    KeyType,
    MetadataType,
    SIGNED_KEY_REQUEST_METADATA_ABI,
)
from ..config import SIGNER_REQUEST_TTL, ProvisioningConfig
from ..errors import ChainTransactionFailed, SignerAuthorizationFailed
from ..hub.client import HubClient, HubError
from ..signers.custody import CustodySigner
from ..signers.delegated import DelegatedSigner, coerce_signer
from ..transport.http import TransportError

if TYPE_CHECKING:
    from ..chain.client import ChainClient, MockChainClient

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def encode_signed_key_request_metadata(
    fid: int,
    request_signer: str,
    signature: bytes,
    deadline: int,
) -> bytes:
    """ABI-encode SignedKeyRequestMetadata(requestFid, requestSigner, signature, deadline)."""
    return abi_encode(
        [SIGNED_KEY_REQUEST_METADATA_ABI],
        [(fid, request_signer, signature, deadline)],
    )


class SignerProvisioner:
    """Delegated key authorization against KeyGateway/KeyRegistry."""

    def __init__(
        self,
        chain: Union["ChainClient", "MockChainClient"],
        custody: CustodySigner,
        config: ProvisioningConfig,
        hub: Optional[HubClient] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Args:
            chain: Chain client sending from the custody account
            custody: Custody signer for the SignedKeyRequest
            config: Settling and verification settings
            hub: Hub client, needed only for visibility polling
            sleep: Awaitable sleep (injectable for tests)
        """
        self._chain = chain
        self._custody = custody
        self._config = config
        self._hub = hub
        self._sleep = sleep

    def is_authorized(self, fid: int, public_key: bytes) -> bool:
        """KeyRegistry says the key is ADDED for fid."""
        state, _key_type = self._chain.read("KeyRegistry", "keyDataOf", fid, public_key)
        return int(state) == KeyState.ADDED

    async def ensure_signer(
        self,
        fid: int,
        owner: str,
        signing_key: Optional[Union[DelegatedSigner, bytes, str]] = None,
    ) -> DelegatedSigner:
        """
        Return an ACTIVE delegated signer for fid.

        Args:
            fid: Account to authorize the key for
            owner: Current owner address of fid
            signing_key: Previously authorized key (skips authorization)

        Raises:
            SignerAuthorizationFailed: Authorization tx failed, custody key
                does not control owner, or supplied key failed verification
        """
        supplied = coerce_signer(signing_key)
        if supplied is not None:
            if self._config.verify_supplied_signer and not self.is_authorized(fid, supplied.public_key):
                raise SignerAuthorizationFailed(
                    fid, supplied.public_key, "supplied key is not ADDED in KeyRegistry"
                )
            logger.debug(f"Using caller-supplied signer 0x{supplied.public_key.hex()}")
            supplied.mark_active()
            return supplied

        signer = DelegatedSigner.generate()

        if owner.lower() != self._custody.address.lower():
            raise SignerAuthorizationFailed(
                fid, signer.public_key,
                f"custody key {self._custody.address} is not owner {owner}",
            )

        deadline = int(time.time()) + SIGNER_REQUEST_TTL
        signature = self._custody.sign_key_request(fid, signer.public_key, deadline)
        metadata = encode_signed_key_request_metadata(
            fid, self._custody.address, signature, deadline
        )

        signer.mark_pending()
        logger.info(f"Authorizing signer 0x{signer.public_key.hex()} for fid {fid}")
        try:
            receipt = self._chain.transact(
                "KeyGateway", "add",
                int(KeyType.ED25519),
                signer.public_key,
                int(MetadataType.SIGNED_KEY_REQUEST),
                metadata,
            )
        except ChainTransactionFailed as e:
            raise SignerAuthorizationFailed(fid, signer.public_key, str(e)) from e

        logger.info(f"Signer add confirmed in tx {receipt.tx_hash}")
        await self._settle(fid, signer)
        signer.mark_active()
        return signer

    async def _settle(self, fid: int, signer: DelegatedSigner) -> None:
        """
        Wait until the hub can be expected to accept the new key.

        Hub query and admin failures are logged and fall back to the
        settling delay.
        """
        if self._config.poll_signer_visibility and self._hub is not None:
            try:
                if await self._poll_visibility(fid, signer.public_key):
                    return
                logger.warning(
                    f"Hub has not seen signer for fid {fid} after "
                    f"{self._config.signer_visibility_timeout}s; requesting event retry"
                )
                await self._hub.retry_onchain_events(fid)
            except (HubError, TransportError) as e:
                logger.warning(f"Signer visibility check for fid {fid} failed: {e}")

        delay = self._config.signer_settle_seconds
        if delay > 0:
            logger.info(f"Waiting {delay}s for the hub to observe the signer")
            await self._sleep(delay)

    async def _key_visible(self, fid: int, public_key: bytes) -> bool:
        return public_key in await self._hub.get_onchain_signers(fid)

    async def _poll_visibility(self, fid: int, public_key: bytes) -> bool:
        """Poll the hub signer listing; False once the timeout is spent."""
        timeout = self._config.signer_visibility_timeout
        interval = self._config.signer_poll_interval
        retrying = AsyncRetrying(
            stop=stop_after_attempt(int(timeout // interval) + 1) | stop_after_delay(timeout),
            wait=wait_fixed(interval),
            retry=retry_if_result(lambda seen: not seen),
            retry_error_callback=lambda state: False,
            sleep=self._sleep,
        )
        seen = await retrying(self._key_visible, fid, public_key)
        if seen:
            logger.info(f"Hub has observed signer for fid {fid}")
        return seen

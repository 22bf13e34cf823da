# tests/test_signers.py
"""
Signer Tests

Categories:
  S1. Custody EIP-712 claims
  S2. Delegated Ed25519 key
  S3. Signer Provisioner (authorization, settling, supplied keys)
"""

import asyncio
import time

import pytest
from eth_abi import decode as abi_decode

from fidforge.chain import KeyState, MetadataType, KeyType, SIGNED_KEY_REQUEST_METADATA_ABI
from fidforge.errors import SignerAuthorizationFailed
from fidforge.registry import SignerProvisioner, encode_signed_key_request_metadata
from fidforge.signers import (
    DelegatedSigner,
    SignerState,
    SIGNED_KEY_REQUEST_DOMAIN,
    SIGNED_KEY_REQUEST_TYPES,
    USERNAME_PROOF_DOMAIN,
    USERNAME_PROOF_TYPES,
    recover_typed_data_signer,
    signed_key_request_claim,
    username_proof_claim,
    verify_ed25519,
)
from fidforge.hub import HubClient
from fidforge.transport import HTTPResponse

from conftest import CUSTODY_ADDRESS, HUB_URL


# =============================================================================
# S1. Custody claims
# =============================================================================

def test_custody_address_matches_key(custody):
    assert custody.address == CUSTODY_ADDRESS


def test_key_request_signature_recovers_to_custody(custody):
    key = bytes(range(32))
    deadline = int(time.time()) + 3600

    signature = custody.sign_key_request(1000, key, deadline)

    assert len(signature) == 65
    recovered = recover_typed_data_signer(
        SIGNED_KEY_REQUEST_DOMAIN,
        SIGNED_KEY_REQUEST_TYPES,
        signed_key_request_claim(1000, key, deadline),
        signature,
    )
    assert recovered == CUSTODY_ADDRESS


def test_username_proof_signature_recovers_to_custody(custody):
    signature = custody.sign_username_proof("fid-1000", 1700000000, CUSTODY_ADDRESS)

    recovered = recover_typed_data_signer(
        USERNAME_PROOF_DOMAIN,
        USERNAME_PROOF_TYPES,
        username_proof_claim("fid-1000", 1700000000, CUSTODY_ADDRESS),
        signature,
    )
    assert recovered == CUSTODY_ADDRESS


def test_claim_types_are_domain_separated(custody):
    # Same signer, different claim types and domains: different signatures
    key_sig = custody.sign_key_request(1, b"\x01" * 32, 1)
    name_sig = custody.sign_username_proof("fid-1", 1, CUSTODY_ADDRESS)
    assert key_sig != name_sig


def test_metadata_encodes_signed_key_request(custody):
    signature = custody.sign_key_request(1000, b"\x02" * 32, 123)
    metadata = encode_signed_key_request_metadata(1000, CUSTODY_ADDRESS, signature, 123)

    (fid, signer, sig, deadline), = abi_decode([SIGNED_KEY_REQUEST_METADATA_ABI], metadata)
    assert fid == 1000
    assert signer.lower() == CUSTODY_ADDRESS.lower()
    assert sig == signature
    assert deadline == 123


# =============================================================================
# S2. Delegated key
# =============================================================================

def test_delegated_signature_verifies():
    signer = DelegatedSigner.generate()
    sig = signer.sign(b"digest")

    assert len(signer.public_key) == 32
    assert len(sig) == 64
    assert verify_ed25519(signer.public_key, b"digest", sig)
    assert not verify_ed25519(signer.public_key, b"other", sig)


def test_delegated_signer_loads_from_hex():
    original = DelegatedSigner.generate()
    loaded = DelegatedSigner.from_private_key("0x" + original.private_key.hex())

    assert loaded.public_key == original.public_key
    assert loaded.state is SignerState.UNREGISTERED


def test_delegated_signer_rejects_bad_key_length():
    with pytest.raises(ValueError):
        DelegatedSigner.from_private_key(b"\x00" * 31)


# =============================================================================
# S3. Signer Provisioner
# =============================================================================

def _provisioner(chain, custody, config, sleep, hub=None):
    return SignerProvisioner(chain, custody, config, hub=hub, sleep=sleep)


def test_supplied_key_returned_unchanged_without_transaction(chain, custody, config, sleep):
    chain.set_fid(CUSTODY_ADDRESS, 1000)
    supplied = DelegatedSigner.generate()

    result = asyncio.run(
        _provisioner(chain, custody, config, sleep).ensure_signer(1000, CUSTODY_ADDRESS, supplied)
    )

    assert result is supplied
    assert result.is_active
    assert chain.transactions == []
    assert sleep.calls == []


def test_supplied_raw_key_is_wrapped(chain, custody, config, sleep):
    original = DelegatedSigner.generate()

    result = asyncio.run(
        _provisioner(chain, custody, config, sleep).ensure_signer(
            1000, CUSTODY_ADDRESS, original.private_key
        )
    )

    assert result.public_key == original.public_key
    assert result.is_active
    assert chain.transactions == []


def test_generates_and_authorizes_new_key(chain, custody, config, sleep):
    chain.set_fid(CUSTODY_ADDRESS, 1000)

    signer = asyncio.run(
        _provisioner(chain, custody, config, sleep).ensure_signer(1000, CUSTODY_ADDRESS)
    )

    assert signer.is_active
    assert chain.keys[(1000, signer.public_key)] == KeyState.ADDED
    assert len(chain.transactions) == 1

    tx = chain.transactions[0]
    assert (tx["contract"], tx["function"]) == ("KeyGateway", "add")
    key_type, key, metadata_type, metadata = tx["args"]
    assert key_type == KeyType.ED25519
    assert key == signer.public_key
    assert metadata_type == MetadataType.SIGNED_KEY_REQUEST

    (fid, request_signer, signature, deadline), = abi_decode(
        [SIGNED_KEY_REQUEST_METADATA_ABI], metadata
    )
    assert fid == 1000
    assert 3500 < deadline - time.time() <= 3600
    recovered = recover_typed_data_signer(
        SIGNED_KEY_REQUEST_DOMAIN,
        SIGNED_KEY_REQUEST_TYPES,
        signed_key_request_claim(1000, signer.public_key, deadline),
        signature,
    )
    assert recovered == CUSTODY_ADDRESS


def test_settling_delay_applied_after_confirmation(chain, custody, config, sleep):
    chain.set_fid(CUSTODY_ADDRESS, 1000)

    asyncio.run(_provisioner(chain, custody, config, sleep).ensure_signer(1000, CUSTODY_ADDRESS))

    assert sleep.calls == [30]


def test_transaction_failure_is_signer_authorization_failed(chain, custody, config, sleep):
    chain.set_fid(CUSTODY_ADDRESS, 1000)
    chain.fail_next("KeyGateway", "add", "InvalidSignature")

    with pytest.raises(SignerAuthorizationFailed) as exc_info:
        asyncio.run(
            _provisioner(chain, custody, config, sleep).ensure_signer(1000, CUSTODY_ADDRESS)
        )

    assert exc_info.value.fid == 1000
    assert "InvalidSignature" in exc_info.value.reason
    assert exc_info.value.__cause__ is not None
    assert sleep.calls == []


def test_owner_mismatch_is_rejected_before_transaction(chain, custody, config, sleep):
    with pytest.raises(SignerAuthorizationFailed):
        asyncio.run(
            _provisioner(chain, custody, config, sleep).ensure_signer(1000, "0x" + "9" * 40)
        )
    assert chain.transactions == []


def test_verified_supplied_key_must_be_added(chain, custody, config, sleep):
    config.verify_supplied_signer = True
    unknown = DelegatedSigner.generate()

    with pytest.raises(SignerAuthorizationFailed):
        asyncio.run(
            _provisioner(chain, custody, config, sleep).ensure_signer(1000, CUSTODY_ADDRESS, unknown)
        )

    chain.add_key(1000, unknown.public_key)
    result = asyncio.run(
        _provisioner(chain, custody, config, sleep).ensure_signer(1000, CUSTODY_ADDRESS, unknown)
    )
    assert result.is_active
    assert chain.transactions == []


def test_visibility_poll_returns_once_hub_sees_key(chain, custody, config, sleep, services):
    chain.set_fid(CUSTODY_ADDRESS, 1000)
    config.poll_signer_visibility = True
    hub = HubClient(HUB_URL, services.transport)
    polls = []

    def signers(request):
        polls.append(request)
        if len(polls) < 3:
            return HTTPResponse.from_json(200, {"events": []})
        keys = [k for (fid, k) in chain.keys if fid == 1000]
        return HTTPResponse.from_json(
            200, {"events": [{"signerEventBody": {"key": "0x" + k.hex()}} for k in keys]}
        )

    services.transport.route("GET", "/v1/onChainSignersByFid", signers)

    signer = asyncio.run(
        _provisioner(chain, custody, config, sleep, hub=hub).ensure_signer(1000, CUSTODY_ADDRESS)
    )

    assert signer.is_active
    assert len(polls) == 3
    assert sleep.calls == [config.signer_poll_interval] * 2


def test_visibility_poll_timeout_requests_retry_then_settles(chain, custody, config, sleep, services):
    chain.set_fid(CUSTODY_ADDRESS, 1000)
    config.poll_signer_visibility = True
    config.signer_visibility_timeout = 4
    config.signer_poll_interval = 2
    services.transport.route(
        "GET", "/v1/onChainSignersByFid", HTTPResponse.from_json(200, {"events": []})
    )
    services.transport.route("POST", "/v1/admin/retryOnchainEvents", HTTPResponse(200, b"{}"))
    hub = HubClient(HUB_URL, services.transport, rpc_auth="admin:secret")

    signer = asyncio.run(
        _provisioner(chain, custody, config, sleep, hub=hub).ensure_signer(1000, CUSTODY_ADDRESS)
    )

    assert signer.is_active
    retries = services.transport.requests_for("POST", "/v1/admin/retryOnchainEvents")
    assert len(retries) == 1
    assert sleep.calls == [2, 2, 30]


def test_refused_event_retry_falls_back_to_settle_delay(chain, custody, config, sleep, services):
    chain.set_fid(CUSTODY_ADDRESS, 1000)
    config.poll_signer_visibility = True
    config.signer_visibility_timeout = 4
    config.signer_poll_interval = 2
    services.transport.route(
        "GET", "/v1/onChainSignersByFid", HTTPResponse.from_json(200, {"events": []})
    )
    services.transport.route(
        "POST", "/v1/admin/retryOnchainEvents", HTTPResponse(401, b"unauthorized")
    )
    hub = HubClient(HUB_URL, services.transport)

    signer = asyncio.run(
        _provisioner(chain, custody, config, sleep, hub=hub).ensure_signer(1000, CUSTODY_ADDRESS)
    )

    assert signer.is_active
    assert chain.keys[(1000, signer.public_key)] == KeyState.ADDED
    assert len(services.transport.requests_for("POST", "/v1/admin/retryOnchainEvents")) == 1
    assert sleep.calls == [2, 2, 30]


def test_signer_listing_error_falls_back_to_settle_delay(chain, custody, config, sleep, services):
    chain.set_fid(CUSTODY_ADDRESS, 1000)
    config.poll_signer_visibility = True
    services.transport.route("GET", "/v1/onChainSignersByFid", HTTPResponse(503, b"down"))
    hub = HubClient(HUB_URL, services.transport)

    signer = asyncio.run(
        _provisioner(chain, custody, config, sleep, hub=hub).ensure_signer(1000, CUSTODY_ADDRESS)
    )

    assert signer.is_active
    assert len(services.transport.requests_for("GET", "/v1/onChainSignersByFid")) == 1
    assert services.transport.requests_for("POST", "/v1/admin/retryOnchainEvents") == []
    assert sleep.calls == [30]


def test_zero_visibility_timeout_polls_once(chain, custody, config, sleep, services):
    chain.set_fid(CUSTODY_ADDRESS, 1000)
    config.poll_signer_visibility = True
    config.signer_visibility_timeout = 0
    services.transport.route(
        "GET", "/v1/onChainSignersByFid", HTTPResponse.from_json(200, {"events": []})
    )
    services.transport.route("POST", "/v1/admin/retryOnchainEvents", HTTPResponse(200, b"{}"))
    hub = HubClient(HUB_URL, services.transport, rpc_auth="admin:secret")

    asyncio.run(
        _provisioner(chain, custody, config, sleep, hub=hub).ensure_signer(1000, CUSTODY_ADDRESS)
    )

    assert len(services.transport.requests_for("GET", "/v1/onChainSignersByFid")) == 1
    assert sleep.calls == [30]

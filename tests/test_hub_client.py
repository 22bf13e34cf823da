# tests/test_hub_client.py
"""
Hub Client Tests

Categories:
  H1. RPC auth
  H2. Submit
  H3. Signer listing and admin retry
"""

import asyncio
import base64
import json

import pytest

from fidforge.config import Network
from fidforge.errors import MessageRejected
from fidforge.hub import HubClient, HubError, parse_rpc_auth
from fidforge.hub.client import basic_auth_header
from fidforge.hub.message import build_message_data, make_cast_add, sign_message
from fidforge.signers import DelegatedSigner
from fidforge.transport import HTTPResponse, MockHTTPTransport

from conftest import HUB_URL


@pytest.fixture
def transport():
    return MockHTTPTransport()


@pytest.fixture
def message():
    signer = DelegatedSigner.generate()
    signer.mark_active()
    data = build_message_data(make_cast_add("Hello World!"), 1000, Network.MAINNET, timestamp=1)
    return sign_message(data, signer)


# =============================================================================
# H1. RPC auth
# =============================================================================

def test_parse_rpc_auth_pairs():
    assert parse_rpc_auth("alice:pw1,bob:pw2") == {"alice": "pw1", "bob": "pw2"}


def test_parse_rpc_auth_skips_malformed_entries():
    assert parse_rpc_auth("alice:pw1,broken,a:b:c") == {"alice": "pw1"}


@pytest.mark.parametrize("value", [None, ""])
def test_parse_rpc_auth_empty(value):
    assert parse_rpc_auth(value) == {}


def test_basic_auth_header():
    header = basic_auth_header("alice", "pw")
    assert header.startswith("Basic ")
    assert base64.b64decode(header[6:]) == b"alice:pw"


def test_auth_header_sent_when_configured(transport, message):
    transport.route("POST", "/v1/submitMessage", HTTPResponse.from_json(200, {}))
    hub = HubClient(HUB_URL, transport, rpc_auth="alice:pw")

    asyncio.run(hub.submit_message(message))

    (request,) = transport.requests
    assert request["headers"]["Authorization"] == basic_auth_header("alice", "pw")


def test_no_auth_header_without_rpc_auth(transport, message):
    transport.route("POST", "/v1/submitMessage", HTTPResponse.from_json(200, {}))

    asyncio.run(HubClient(HUB_URL, transport).submit_message(message))

    assert "Authorization" not in transport.requests[0]["headers"]


# =============================================================================
# H2. Submit
# =============================================================================

def test_submit_posts_wire_json(transport, message):
    transport.route("POST", "/v1/submitMessage", HTTPResponse.from_json(200, {"ok": True}))

    response = asyncio.run(HubClient(HUB_URL + "/", transport).submit_message(message))

    assert response == {"ok": True}
    (request,) = transport.requests
    assert request["url"] == HUB_URL + "/v1/submitMessage"
    assert request["headers"]["Content-Type"] == "application/json"
    assert json.loads(request["data"]) == message.to_dict()


def test_submit_rejection_carries_reason(transport, message):
    transport.route(
        "POST",
        "/v1/submitMessage",
        HTTPResponse.from_json(
            400, {"errCode": "bad_request.validation_failure", "details": "invalid signer"}
        ),
    )

    with pytest.raises(MessageRejected) as exc_info:
        asyncio.run(HubClient(HUB_URL, transport).submit_message(message))

    err = exc_info.value
    assert err.status == 400
    assert err.message_hash == message.hash
    assert "bad_request.validation_failure" in err.reason
    assert "invalid signer" in err.reason


def test_submit_rejection_with_plain_body(transport, message):
    transport.route("POST", "/v1/submitMessage", HTTPResponse(500, b"internal error"))

    with pytest.raises(MessageRejected) as exc_info:
        asyncio.run(HubClient(HUB_URL, transport).submit_message(message))

    assert exc_info.value.reason == "internal error"


# =============================================================================
# H3. Signers and admin
# =============================================================================

def test_onchain_signers_parsed(transport):
    key = bytes(range(32))
    transport.route(
        "GET",
        "/v1/onChainSignersByFid",
        HTTPResponse.from_json(200, {"events": [{"signerEventBody": {"key": "0x" + key.hex()}}]}),
    )

    keys = asyncio.run(HubClient(HUB_URL, transport).get_onchain_signers(1000))

    assert keys == [key]
    assert transport.requests[0]["params"] == {"fid": "1000"}


def test_onchain_signers_not_found_is_empty(transport):
    assert asyncio.run(HubClient(HUB_URL, transport).get_onchain_signers(1000)) == []


@pytest.mark.parametrize("body", [
    b'[{"signerEventBody": {"key": "0x00"}}]',
    b'{"events": {"signerEventBody": {}}}',
    b'{"events": ["0x00", null]}',
    b"",
])
def test_onchain_signers_unexpected_payload_is_empty(transport, body):
    transport.route("GET", "/v1/onChainSignersByFid", HTTPResponse(200, body))
    assert asyncio.run(HubClient(HUB_URL, transport).get_onchain_signers(1000)) == []


def test_onchain_signers_server_error(transport):
    transport.route("GET", "/v1/onChainSignersByFid", HTTPResponse(503, b"down"))

    with pytest.raises(HubError):
        asyncio.run(HubClient(HUB_URL, transport).get_onchain_signers(1000))


def test_retry_onchain_events(transport):
    transport.route("POST", "/v1/admin/retryOnchainEvents", HTTPResponse(200, b"{}"))

    asyncio.run(HubClient(HUB_URL, transport, rpc_auth="admin:pw").retry_onchain_events(1000))

    (request,) = transport.requests
    assert json.loads(request["data"]) == {"fid": 1000}
    assert "Authorization" in request["headers"]


def test_retry_rejects_fid_zero(transport):
    with pytest.raises(ValueError):
        asyncio.run(HubClient(HUB_URL, transport).retry_onchain_events(0))
    assert transport.requests == []


def test_retry_refused(transport):
    transport.route("POST", "/v1/admin/retryOnchainEvents", HTTPResponse(401, b"unauthorized"))

    with pytest.raises(HubError):
        asyncio.run(HubClient(HUB_URL, transport).retry_onchain_events(1000))

# tests/conftest.py
"""
Shared fixtures: custody key, config, in-memory chain, and an HTTP
transport that behaves like the naming authority and a hub.
"""

import json
from typing import Dict, List

import pytest

from fidforge.chain import MockChainClient
from fidforge.config import Network, ProvisioningConfig
from fidforge.hub.message import Message
from fidforge.signers import CustodySigner
from fidforge.transport import HTTPResponse, MockHTTPTransport

# anvil/hardhat development account #0
CUSTODY_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
CUSTODY_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

HUB_URL = "http://hub.test:3381"
FNAME_URL = "http://fnames.test"


class FakeServices:
    """
    Naming authority + hub behind a MockHTTPTransport.

    The hub accepts a message only if its signature verifies and the
    signer is ADDED for the fid on the mock chain.
    """

    def __init__(self, chain: MockChainClient):
        self.chain = chain
        self.transport = MockHTTPTransport()
        self.names: Dict[int, str] = {}
        self.transfers: List[Dict] = []
        self.accepted: List[Message] = []
        self.seen_hashes = set()

        self.transport.route("GET", "/transfers/current", self._current)
        self.transport.route("POST", "/transfers", self._claim)
        self.transport.route("POST", "/v1/submitMessage", self._submit)

    def _current(self, request):
        fid = int(request["params"]["fid"])
        if fid not in self.names:
            return HTTPResponse(status=404, body=b'{"code":"NOT_FOUND"}')
        return HTTPResponse.from_json(200, {"transfer": {"username": self.names[fid], "to": fid}})

    def _claim(self, request):
        transfer = json.loads(request["data"])
        if transfer["name"] in self.names.values():
            return HTTPResponse.from_json(400, {"code": "USERNAME_TAKEN"})
        self.transfers.append(transfer)
        self.names[transfer["to"]] = transfer["name"]
        return HTTPResponse.from_json(200, {"transfer": transfer})

    def _submit(self, request):
        message = Message.from_dict(json.loads(request["data"]))
        if not message.verify():
            return HTTPResponse.from_json(
                400, {"errCode": "bad_request.validation_failure", "message": "invalid signature"}
            )
        fid = message.data.fid
        if self.chain.keys.get((fid, message.signer)) is None:
            return HTTPResponse.from_json(
                400, {"errCode": "bad_request.validation_failure", "message": "unknown signer"}
            )
        if message.hash in self.seen_hashes:
            return HTTPResponse.from_json(
                400, {"errCode": "bad_request.duplicate", "message": "message has already been merged"}
            )
        self.seen_hashes.add(message.hash)
        self.accepted.append(message)
        return HTTPResponse.from_json(200, message.to_dict())


class SleepRecorder:
    """Awaitable sleep that records delays instead of waiting."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def config():
    return ProvisioningConfig(
        rpc_url="http://chain.test:8545",
        custody_private_key=CUSTODY_KEY,
        hub_url=HUB_URL,
        fname_url=FNAME_URL,
        network=Network.MAINNET,
        signer_settle_seconds=30,
    )


@pytest.fixture
def custody():
    return CustodySigner(CUSTODY_KEY)


@pytest.fixture
def chain():
    return MockChainClient(address=CUSTODY_ADDRESS, balance=10**18, price=10**15, next_fid=1000)


@pytest.fixture
def services(chain):
    return FakeServices(chain)


@pytest.fixture
def sleep():
    return SleepRecorder()

# fidforge/__main__.py
"""
Run the full provisioning flow for the custody account in FIDFORGE_* env.

    python -m fidforge --text "Hello World!"
    python -m fidforge --dry-run -v
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from .chain.client import MockChainClient
from .config import ProvisioningConfig
from .errors import ProvisioningError
from .hub.client import HubError
from .pipeline import Provisioner
from .signers.custody import CustodySigner
from .transport.http import HTTPResponse, MockHTTPTransport, TransportError

logger = logging.getLogger("fidforge")

# Well-known development key (anvil/hardhat account #0)
DRY_RUN_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


def _dry_run_transport() -> MockHTTPTransport:
    """Naming authority and hub that accept everything."""
    transport = MockHTTPTransport()
    names = {}

    def current(request):
        fid = request["params"].get("fid")
        if fid in names:
            return HTTPResponse.from_json(200, {"transfer": {"username": names[fid]}})
        return HTTPResponse(status=404)

    def claim(request):
        transfer = json.loads(request["data"])
        names[str(transfer["fid"])] = transfer["name"]
        return HTTPResponse.from_json(200, {"transfer": transfer})

    transport.route("GET", "/transfers/current", current)
    transport.route("POST", "/transfers", claim)
    transport.route("POST", "/v1/submitMessage", lambda r: HTTPResponse(200, r["data"]))
    return transport


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fidforge",
        description="Provision an account and publish a message",
    )
    parser.add_argument("--text", default="Hello World!", help="cast text")
    parser.add_argument("--signer-key", help="hex Ed25519 key already authorized for the fid")
    parser.add_argument("--dry-run", action="store_true", help="use in-memory chain and services")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


async def _run(args: argparse.Namespace) -> int:
    if args.dry_run:
        config = ProvisioningConfig(
            rpc_url="http://localhost:8545",
            custody_private_key=DRY_RUN_KEY,
            hub_url="http://localhost:3381",
            signer_settle_seconds=0,
        )
        owner = CustodySigner(DRY_RUN_KEY).address
        provisioner = Provisioner(
            config,
            chain=MockChainClient(address=owner),
            transport=_dry_run_transport(),
        )
    else:
        config = ProvisioningConfig.from_env()
        provisioner = Provisioner(config)

    async with provisioner:
        try:
            result = await provisioner.run(signing_key=args.signer_key, post_text=args.text)
        except Exception:
            if args.signer_key is None and provisioner.signer is not None:
                print(f"signer private key (store it): 0x{provisioner.signer.private_key.hex()}")
            raise

    print(f"fid:    {result.fid}")
    print(f"owner:  {result.owner}")
    print(f"name:   {result.name}")
    print(f"signer: {result.signer_public_key}")
    for receipt in result.receipts:
        print(f"  {receipt.message_type.name:<14} {receipt.hash_hex}")
    if args.signer_key is None:
        print(f"signer private key (store it): 0x{result.signer.private_key.hex()}")
    return 0


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except (ProvisioningError, HubError, TransportError, ValueError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())

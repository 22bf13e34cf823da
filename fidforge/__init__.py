# fidforge/__init__.py
"""
fidforge: Account Provisioning & Message Publishing

Takes a custody key from "no account" to "publishing signed messages":

    1. Identity   - register a fid for the owner (IdGateway/IdRegistry)
    2. Signer     - authorize a delegated Ed25519 key (KeyGateway)
    3. Name       - claim a username from the naming authority
    4. Publish    - sign messages with the delegated key, submit to a hub

Architecture:
    fidforge
    ├── config.py      # ProvisioningConfig, Network
    ├── errors.py      # Error taxonomy
    ├── chain/         # ChainClient (web3), MockChainClient, contract ABIs
    ├── signers/       # CustodySigner (EIP-712), DelegatedSigner (Ed25519)
    ├── transport/     # HTTPTransport, HttpxTransport, MockHTTPTransport
    ├── registry/      # IdentityRegistrar, SignerProvisioner, NameRegistrar
    ├── hub/           # Messages, HubClient, MessagePublisher
    └── pipeline.py    # Provisioner (runs all stages)

Quick Start:
    from fidforge import Provisioner, ProvisioningConfig

    config = ProvisioningConfig.from_env()
    async with Provisioner(config) as provisioner:
        result = await provisioner.run(post_text="Hello World!")
    print(result.fid, result.name, result.signer_public_key)
"""

__version__ = "0.1.0"

from .config import (
    ProvisioningConfig,
    Network,
)

from .errors import (
    ProvisioningError,
    InsufficientFunds,
    NoAccountNoFunds,
    ChainTransactionFailed,
    MissingRegistrationEvent,
    SignerAuthorizationFailed,
    NameRegistrationFailed,
    MessageConstructionFailed,
    MessageRejected,
)

from .chain import (
    ChainClient,
    MockChainClient,
    TxReceipt,
)

from .signers import (
    CustodySigner,
    DelegatedSigner,
    SignerState,
)

from .transport import (
    HTTPTransport,
    HttpxTransport,
    MockHTTPTransport,
    HTTPResponse,
    TransportError,
)

from .registry import (
    IdentityRegistrar,
    SignerProvisioner,
    NameRegistrar,
)

from .hub import (
    Message,
    MessageData,
    MessageType,
    UserDataType,
    HubClient,
    MessagePublisher,
    Receipt,
    make_cast_add,
    make_user_data_add,
)

from .pipeline import (
    Provisioner,
    ProvisioningResult,
)

__all__ = [
    "__version__",
    # Config
    "ProvisioningConfig",
    "Network",
    # Errors
    "ProvisioningError",
    "InsufficientFunds",
    "NoAccountNoFunds",
    "ChainTransactionFailed",
    "MissingRegistrationEvent",
    "SignerAuthorizationFailed",
    "NameRegistrationFailed",
    "MessageConstructionFailed",
    "MessageRejected",
    # Chain
    "ChainClient",
    "MockChainClient",
    "TxReceipt",
    # Signers
    "CustodySigner",
    "DelegatedSigner",
    "SignerState",
    # Transport
    "HTTPTransport",
    "HttpxTransport",
    "MockHTTPTransport",
    "HTTPResponse",
    "TransportError",
    # Registry
    "IdentityRegistrar",
    "SignerProvisioner",
    "NameRegistrar",
    # Hub
    "Message",
    "MessageData",
    "MessageType",
    "UserDataType",
    "HubClient",
    "MessagePublisher",
    "Receipt",
    "make_cast_add",
    "make_user_data_add",
    # Pipeline
    "Provisioner",
    "ProvisioningResult",
]

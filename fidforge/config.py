# fidforge/config.py
"""
fidforge: Configuration

Explicit configuration passed to every component at construction.
Nothing here is process-wide state.

Values come from keyword arguments first, then FIDFORGE_* environment
variables (or a .env file), then the defaults below.

Usage:
    config = ProvisioningConfig(
        rpc_url="https://mainnet.optimism.io",
        custody_private_key="0x...",
        hub_url="https://hub.example.com:3381",
    )

    # Or from FIDFORGE_* environment variables
    config = ProvisioningConfig.from_env()
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Constants
# =============================================================================

class Network(IntEnum):
    """Message-store network selector."""
    MAINNET = 1
    TESTNET = 2
    DEVNET = 3


# Optimism mainnet
DEFAULT_CHAIN_ID = 10

# Contract deployments
ID_GATEWAY_ADDRESS = "0x00000000fc25870c6ed6b6c7e41fb078b7656f69"
ID_REGISTRY_ADDRESS = "0x00000000fc6c5f01fc30151999387bb99a9f489b"
KEY_GATEWAY_ADDRESS = "0x00000000fc56947c7e7183f8ca4b62398caadf0b"
KEY_REGISTRY_ADDRESS = "0x00000000fc1237824fb747abde0ff18990e59b7e"

DEFAULT_FNAME_URL = "https://fnames.farcaster.xyz"

# Authorization claim lifetime
SIGNER_REQUEST_TTL = 3600

DEFAULT_SETTLE_SECONDS = 30.0

ENV_PREFIX = "FIDFORGE_"


# =============================================================================
# Config
# =============================================================================

class ProvisioningConfig(BaseSettings):
    """
    Settings for one provisioning run.

    Every field can be set through FIDFORGE_<FIELD_NAME>, e.g.
    FIDFORGE_RPC_URL or FIDFORGE_SIGNER_SETTLE_SECONDS.

    Attributes:
        rpc_url: EVM JSON-RPC endpoint
        custody_private_key: Hex private key of the owner (custody) account
        hub_url: Message-store node HTTP base URL
        hub_rpc_auth: "user:pass[,user:pass]" for restricted nodes
        recovery_address: Recovery address for registration (owner if None)
        network: Network the messages are tagged with (name or number)
        chain_id: EVM chain ID
        fname_url: Naming authority base URL
        signer_settle_seconds: Delay after key authorization before use
        poll_signer_visibility: Poll the hub for the key instead of sleeping
        signer_visibility_timeout: Upper bound on that poll, seconds
        signer_poll_interval: Poll interval, seconds
        verify_supplied_signer: Check caller-supplied keys against KeyRegistry
        http_timeout: HTTP request timeout, seconds
        tx_timeout: Receipt wait timeout, seconds
    """

    # Endpoints and credentials
    rpc_url: str = Field(min_length=1, description="EVM JSON-RPC endpoint")
    custody_private_key: SecretStr = Field(description="Custody account private key")
    hub_url: str = Field(min_length=1, description="Message-store node base URL")
    hub_rpc_auth: Optional[SecretStr] = Field(
        default=None,
        description="Basic auth pairs for restricted hub RPCs",
    )
    recovery_address: Optional[str] = None

    # Network selection
    network: Network = Network.MAINNET
    chain_id: int = Field(default=DEFAULT_CHAIN_ID, gt=0)
    fname_url: str = DEFAULT_FNAME_URL

    # Contract deployments
    id_gateway_address: str = ID_GATEWAY_ADDRESS
    id_registry_address: str = ID_REGISTRY_ADDRESS
    key_gateway_address: str = KEY_GATEWAY_ADDRESS
    key_registry_address: str = KEY_REGISTRY_ADDRESS

    # Signer settling
    signer_settle_seconds: float = Field(default=DEFAULT_SETTLE_SECONDS, ge=0)
    poll_signer_visibility: bool = False
    signer_visibility_timeout: float = Field(default=60.0, ge=0)
    signer_poll_interval: float = Field(default=2.0, gt=0)
    verify_supplied_signer: bool = False

    # Timeouts
    http_timeout: float = Field(default=30.0, gt=0)
    tx_timeout: float = Field(default=120.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    @field_validator("network", mode="before")
    @classmethod
    def validate_network(cls, value: Any) -> Any:
        """Accept a network name ("testnet") as well as its number."""
        if isinstance(value, str):
            value = value.strip()
            if value.isdigit():
                return int(value)
            try:
                return Network[value.upper()]
            except KeyError:
                raise ValueError(f"Unknown network: {value}") from None
        return value

    @field_validator("hub_url", "fname_url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """Strip the trailing slash so paths can be appended."""
        return value.rstrip("/")

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> ProvisioningConfig:
        """
        Build config from environment variables only.

        Raises:
            ValueError: Missing or invalid variables (pydantic ValidationError)
        """
        return cls(_env_prefix=prefix)

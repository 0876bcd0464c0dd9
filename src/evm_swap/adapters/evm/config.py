"""
Swap Pipeline Configuration

Pydantic configuration models injected into :class:`SwapHub` at
construction. There is no module-level mutable configuration: one
``SwapConfig`` instance describes the credential, the chains and their RPC
endpoints, and the relayer.

Usage:
    # Explicit
    config = SwapConfig(
        private_key="0x...",
        chains={8453: ChainEndpointConfig(chain_id=8453, fallback_rpc_url="https://mainnet.base.org")},
    )

    # From environment / .env
    config = SwapConfig.from_env()
"""

import os
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .constants import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RPC_TIMEOUT_SECONDS,
    MAX_UINT256,
    alchemy_rpc_url,
    default_public_rpc_urls,
    get_private_key_from_env,
    get_relay_url_from_env,
    get_rpc_key_from_env,
    get_rpc_timeout_from_env,
)
from ...engine.exceptions import ConfigurationError

_PRIVATE_KEY_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


class ChainEndpointConfig(BaseModel):
    """
    RPC endpoints for one chain.

    The endpoint is chosen once, when the registry is built: the preferred
    URL if set, otherwise the fallback. There is no per-call failover.

    Attributes:
        chain_id: EIP-155 chain id.
        preferred_rpc_url: Keyed provider URL (e.g. Alchemy).
        fallback_rpc_url: Public RPC URL.
        legacy_transactions: Whether the chain accepts type-0 transactions.
        name: Optional human-readable label for logs.
    """

    chain_id: int = Field(..., ge=1)
    preferred_rpc_url: Optional[str] = None
    fallback_rpc_url: Optional[str] = None
    legacy_transactions: bool = True
    name: Optional[str] = None

    @model_validator(mode="after")
    def _require_url(self) -> "ChainEndpointConfig":
        if not self.preferred_rpc_url and not self.fallback_rpc_url:
            raise ValueError(f"chain {self.chain_id} has neither a preferred nor a fallback RPC URL")
        return self

    @property
    def rpc_url(self) -> str:
        return self.preferred_rpc_url or self.fallback_rpc_url  # type: ignore[return-value]

    @property
    def uses_preferred(self) -> bool:
        return bool(self.preferred_rpc_url)


class SwapConfig(BaseModel):
    """
    Complete pipeline configuration.

    Attributes:
        private_key: 0x-prefixed 32-byte hex key; ``None`` runs the pipeline
            read-only (every signing call fails with ``NoCredential``).
        chains: Chain id -> endpoint configuration.
        relay_url: Gasless relayer base URL.
        rpc_timeout: HTTP timeout in seconds for RPC and relayer requests.
        approval_amount: Amount passed to ``approve`` when an allowance is
            raised. Defaults to ``MAX_UINT256``.
        poll_interval: Seconds between receipt polls while awaiting
            confirmation.
        log_level: Optional logging level name applied by the hub.
    """

    model_config = ConfigDict(frozen=True, hide_input_in_errors=True)

    private_key: Optional[str] = Field(None, repr=False)
    chains: Dict[int, ChainEndpointConfig] = Field(default_factory=dict)
    relay_url: Optional[str] = None
    rpc_timeout: float = Field(DEFAULT_RPC_TIMEOUT_SECONDS, gt=0)
    approval_amount: int = Field(MAX_UINT256, ge=1, le=MAX_UINT256)
    poll_interval: float = Field(DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    log_level: Optional[str] = None

    @field_validator("private_key")
    @classmethod
    def _normalise_key(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        key = value.strip()
        if not key:
            return None
        if not key.lower().startswith("0x"):
            key = "0x" + key
        if not _PRIVATE_KEY_RE.match(key):
            # Never echo the key itself.
            raise ValueError("private_key must be 32 bytes of hex")
        return key

    @model_validator(mode="after")
    def _check_chain_keys(self) -> "SwapConfig":
        for chain_id, chain in self.chains.items():
            if chain.chain_id != chain_id:
                raise ValueError(
                    f"chains[{chain_id}] is configured with chain_id={chain.chain_id}"
                )
        return self

    @property
    def has_credential(self) -> bool:
        return self.private_key is not None

    @staticmethod
    def default_chains(alchemy_api_key: Optional[str] = None) -> Dict[int, ChainEndpointConfig]:
        """
        Build the built-in chain table.

        Every chain gets its public RPC as fallback; chains served by Alchemy
        additionally get the keyed Alchemy URL as preferred when
        ``alchemy_api_key`` is set.
        """
        return {
            chain_id: ChainEndpointConfig(
                chain_id=chain_id,
                preferred_rpc_url=alchemy_rpc_url(chain_id, alchemy_api_key),
                fallback_rpc_url=public_url,
            )
            for chain_id, public_url in default_public_rpc_urls().items()
        }

    @classmethod
    def from_env(cls, **overrides) -> "SwapConfig":
        """
        Build a configuration from environment variables (``.env`` is loaded
        on import of the constants module).

        Environment Variables:
            - EVM_PRIVATE_KEY / USER_PRIVATE_KEY
            - ALCHEMY_API_KEY
            - GASLESS_RELAY_URL
            - RPC_REQUEST_TIMEOUT
            - LOG_LEVEL

        Args:
            **overrides: Field values taking precedence over the environment.

        Raises:
            ConfigurationError: If any value is invalid.
        """
        try:
            values = {
                "private_key": get_private_key_from_env(),
                "chains": cls.default_chains(get_rpc_key_from_env()),
                "relay_url": get_relay_url_from_env(),
                "rpc_timeout": get_rpc_timeout_from_env(),
                "log_level": os.getenv("LOG_LEVEL") or None,
            }
            values.update(overrides)
            return cls(**values)
        except (ValidationError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}", operation="load configuration") from e

    def supported_chain_ids(self) -> List[int]:
        return sorted(self.chains)

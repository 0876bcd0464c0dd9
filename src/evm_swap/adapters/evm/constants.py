"""
EVM Chain Configuration Constants

Provides the built-in chain table, environment-aware RPC URL construction,
and token unit conversion helpers used across the swap pipeline.
"""

import os
from decimal import Decimal, InvalidOperation, localcontext
from typing import Dict, Optional

import dotenv

dotenv.load_dotenv()


# ---------------------------------------------------------------------------
# Contract constants
# ---------------------------------------------------------------------------

#: Canonical Uniswap Permit2 singleton, same address on every chain.
PERMIT2_ADDRESS: str = "0x000000000022D473030F116dDEE9F6B43aC78BA3"

#: ``type(uint256).max``; the default ERC-20 approval amount.
MAX_UINT256: int = 2**256 - 1

#: Gas limit used for ``approve`` when estimation fails.
APPROVAL_GAS_FALLBACK: int = 100_000

#: Multiplier applied to an estimated approval gas limit.
APPROVAL_GAS_BUFFER: float = 1.1

#: Defaults for ``await_confirmation``.
DEFAULT_CONFIRMATIONS: int = 1
DEFAULT_CONFIRMATION_TIMEOUT_MS: int = 300_000
DEFAULT_POLL_INTERVAL_SECONDS: float = 1.0

DEFAULT_RPC_TIMEOUT_SECONDS: float = 30.0


# ---------------------------------------------------------------------------
# Chain table
# ---------------------------------------------------------------------------

# Public (keyless) RPC endpoint per chain; used when no Alchemy key is set or
# Alchemy does not serve the chain.
_DEFAULT_RPC_URLS: Dict[int, str] = {
    1: "https://rpc.flashbots.net",                          # Ethereum
    10: "https://mainnet.optimism.io",                       # Optimism
    56: "https://bsc-dataseed.binance.org",                  # BSC
    137: "https://polygon.llamarpc.com",                     # Polygon
    8453: "https://mainnet.base.org",                        # Base
    42161: "https://arb1.arbitrum.io/rpc",                   # Arbitrum
    43114: "https://api.avax.network/ext/bc/C/rpc",          # Avalanche
    59144: "https://rpc.linea.build",                        # Linea
    534352: "https://rpc.scroll.io",                         # Scroll
    5000: "https://rpc.mantle.xyz",                          # Mantle
    81457: "https://rpc.blast.io",                           # Blast
    34443: "https://mainnet.mode.network",                   # Mode
    480: "https://worldchain-mainnet.g.alchemy.com/public",  # Worldchain
    10143: "https://testnet1.monad.xyz",                     # Monad testnet
    130: "https://rpc.unichain.org",                         # Unichain
    80094: "https://rpc.berachain.com",                      # Berachain
    57073: "https://rpc-gel.inkonchain.com",                 # Ink
}

# Alchemy network slug per chain. Not every chain above is served by Alchemy.
_ALCHEMY_NETWORKS: Dict[int, str] = {
    10: "opt-mainnet",
    56: "bnb-mainnet",
    137: "polygon-mainnet",
    8453: "base-mainnet",
    42161: "arb-mainnet",
    43114: "avax-mainnet",
    480: "worldchain-mainnet",
    81457: "blast-mainnet",
    59144: "linea-mainnet",
    534352: "scroll-mainnet",
    5000: "mantle-mainnet",
    10143: "monad-testnet",
    80094: "berachain-mainnet",
    57073: "ink-mainnet",
}

_ALCHEMY_URL_TEMPLATE = "https://{network}.g.alchemy.com/v2/{api_key}"


def default_public_rpc_urls() -> Dict[int, str]:
    """Return a copy of the built-in public RPC table keyed by chain id."""
    return dict(_DEFAULT_RPC_URLS)


def alchemy_rpc_url(chain_id: int, api_key: Optional[str]) -> Optional[str]:
    """
    Build the Alchemy RPC URL for ``chain_id``.

    Args:
        chain_id: EIP-155 chain id.
        api_key: Alchemy API key; ``None`` or empty disables Alchemy.

    Returns:
        The keyed URL, or ``None`` if no key is set or Alchemy does not serve
        the chain.
    """
    if not api_key:
        return None
    network = _ALCHEMY_NETWORKS.get(chain_id)
    if network is None:
        return None
    return _ALCHEMY_URL_TEMPLATE.format(network=network, api_key=api_key)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

def get_private_key_from_env() -> Optional[str]:
    """
    Load the signing private key from environment variables.

    Environment Variables:
        - EVM_PRIVATE_KEY: 0x-prefixed hex private key (preferred)
        - USER_PRIVATE_KEY: Accepted as a fallback name

    Returns:
        str: Private key from environment, or None if not configured

    Note:
        The private key should be stored securely in environment variables
        and never committed to version control.
    """
    return os.getenv("EVM_PRIVATE_KEY") or os.getenv("USER_PRIVATE_KEY") or None


def get_rpc_key_from_env() -> Optional[str]:
    """
    Load the Alchemy API key used to construct preferred RPC endpoints.

    Environment Variable:
        - ALCHEMY_API_KEY

    If not set, every chain uses its public RPC endpoint.
    """
    return os.getenv("ALCHEMY_API_KEY") or None


def get_relay_url_from_env() -> Optional[str]:
    """Base URL of the gasless relayer API (``GASLESS_RELAY_URL``)."""
    return os.getenv("GASLESS_RELAY_URL") or None


def get_rpc_timeout_from_env() -> float:
    """HTTP timeout in seconds for RPC requests (``RPC_REQUEST_TIMEOUT``)."""
    raw = os.getenv("RPC_REQUEST_TIMEOUT")
    if not raw:
        return DEFAULT_RPC_TIMEOUT_SECONDS
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"RPC_REQUEST_TIMEOUT must be a number, got {raw!r}") from e


# ---------------------------------------------------------------------------
# Unit conversion
# ---------------------------------------------------------------------------

def amount_to_value(*, amount: float | int | str | Decimal, decimals: int) -> int:
    """Convert a human-readable token `amount` into smallest-unit integer `value`.

    Args:
        amount: Human-readable amount (e.g. "1.5" for 1.5 ETH). Accepts float/int/str/Decimal.
        decimals: Token decimals (e.g. 6 for USDC, 18 for ETH).

    Returns:
        int: Smallest-unit integer value.

    Raises:
        ValueError: If inputs are invalid or the amount cannot be represented in smallest units.
    """
    if not isinstance(decimals, int) or isinstance(decimals, bool) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        # str() avoids binary-float artefacts (0.1 -> 0.1000000000000000055...)
        dec_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e

    if not dec_amount.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    if dec_amount < 0:
        raise ValueError("amount must be non-negative")

    # Default context precision (28 digits) would round large values.
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(dec_amount.as_tuple().digits) + decimals + 1)
        scaled = dec_amount.scaleb(decimals)

    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"amount {amount!r} is not representable with decimals={decimals} "
            f"(would create fractional smallest units)"
        )

    return int(scaled)


def value_to_amount(*, value: int | str | Decimal, decimals: int) -> str:
    """Convert a smallest-unit integer `value` into a human-readable amount string.

    The result is exact (no float rounding) and always carries at least one
    fractional digit, e.g. ``1000000`` with 6 decimals -> ``"1.0"`` and
    ``1230000`` -> ``"1.23"``.

    Args:
        value: Smallest-unit integer value. Accepts int/str/Decimal.
        decimals: Token decimals.

    Returns:
        str: Human-readable amount.

    Raises:
        ValueError: If inputs are invalid.
    """
    if not isinstance(decimals, int) or isinstance(decimals, bool) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        dec_value = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid value: {value!r}") from e

    if not dec_value.is_finite():
        raise ValueError(f"Invalid value: {value!r}")
    if dec_value < 0:
        raise ValueError("value must be non-negative")
    if dec_value != dec_value.to_integral_value():
        raise ValueError("value must be an integer in smallest units")

    integer = int(dec_value)
    whole, frac = divmod(integer, 10**decimals)
    if decimals == 0 or frac == 0:
        return f"{whole}.0"
    frac_text = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{frac_text}"

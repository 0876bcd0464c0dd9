from .adapters.adapters_hub import SwapHub
from .adapters import (
    SwapConfig,
    ChainEndpointConfig,
    parse_quote,
    DirectSwapQuote,
    GaslessSwapQuote,
)
from .clients import GaslessRelayClient
from .engine.exceptions import (
    SwapError,
    ConfigurationError,
    UnsupportedChain,
    UnsupportedTransactionType,
    NoCredential,
    MalformedPayload,
    MalformedQuote,
    InvalidSignatureLength,
    AllowanceCheckFailed,
    ConfirmationTimeout,
    NetworkError,
)

__all__ = [
    "SwapHub",
    "SwapConfig",
    "ChainEndpointConfig",
    "parse_quote",
    "DirectSwapQuote",
    "GaslessSwapQuote",
    "GaslessRelayClient",
    "SwapError",
    "ConfigurationError",
    "UnsupportedChain",
    "UnsupportedTransactionType",
    "NoCredential",
    "MalformedPayload",
    "MalformedQuote",
    "InvalidSignatureLength",
    "AllowanceCheckFailed",
    "ConfirmationTimeout",
    "NetworkError",
]

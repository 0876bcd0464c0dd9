from .unions import SwapQuoteTypes, parse_quote
from .evm import (
    SwapConfig,
    ChainEndpointConfig,
    ChainRegistry,
    TypedDataSigner,
    AllowanceManager,
    SubmissionTracker,
    TransactionAssembler,
    DirectSwapQuote,
    GaslessSwapQuote,
)

__all__ = [
    "SwapQuoteTypes",
    "parse_quote",
    "SwapConfig",
    "ChainEndpointConfig",
    "ChainRegistry",
    "TypedDataSigner",
    "AllowanceManager",
    "SubmissionTracker",
    "TransactionAssembler",
    "DirectSwapQuote",
    "GaslessSwapQuote",
]

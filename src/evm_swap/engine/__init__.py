from .exceptions import (
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
    wrap_errors,
)

__all__ = [
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
    "wrap_errors",
]

"""
Exception and Error Definitions Module

Defines the error taxonomy for swap assembly, typed-data signing and chain
interaction. All exceptions inherit from SwapError so the calling layer can
catch a single root and still dispatch on the concrete class.

Exception Hierarchy:
    SwapError (root)
    ├── ConfigurationError
    ├── UnsupportedChain
    │   └── UnsupportedTransactionType
    ├── NoCredential
    ├── MalformedPayload
    ├── MalformedQuote
    ├── InvalidSignatureLength
    ├── AllowanceCheckFailed
    ├── ConfirmationTimeout
    └── NetworkError

Every error carries an optional ``operation`` (what was being attempted) and
``details`` (structured diagnostic data). ``within()`` re-labels an error
with an outer operation name while keeping its class, which is how errors
are propagated upwards::

    with wrap_errors("sign gasless trade"):
        signer.sign(...)
    # -> MalformedPayload("Failed to sign gasless trade: ...")
"""

import copy
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional


class SwapError(Exception):
    """
    Root exception class for all project-specific exceptions.

    Attributes:
        message: Human-readable description of the failure.
        operation: Name of the operation that failed, when known.
        details: Optional structured diagnostic data.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.details = details or {}

    def within(self, operation: str) -> "SwapError":
        """
        Return a copy of this error re-labelled with an outer operation.

        The copy keeps the concrete class and all extra attributes, only the
        message gains a ``"Failed to <operation>: "`` prefix.

        Args:
            operation: Outer operation name, e.g. ``"sign gasless trade"``.

        Returns:
            SwapError: New instance of the same class.
        """
        wrapped = copy.copy(self)
        wrapped.message = f"Failed to {operation}: {self.message}"
        wrapped.operation = operation
        wrapped.args = (wrapped.message,)
        return wrapped

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for the calling layer."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "operation": self.operation,
            "details": self.details,
        }


class ConfigurationError(SwapError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Malformed private key
    - Chain entry without any RPC URL
    - Relay client used without a relay URL
    """
    pass


class UnsupportedChain(SwapError):
    """
    Raised when no RPC endpoint is configured for a chain id.

    Attributes:
        chain_id: The chain id that was requested.
    """

    def __init__(self, message: str, *, chain_id: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.chain_id = chain_id


class UnsupportedTransactionType(UnsupportedChain):
    """
    Raised when a chain is configured as not accepting legacy (type-0)
    transactions. Swaps are only ever submitted as legacy transactions.
    """
    pass


class NoCredential(SwapError):
    """
    Raised when signing or sending is attempted without a configured
    private key. Always raised before any network call is made.
    """
    pass


class MalformedPayload(SwapError):
    """
    Raised when a typed-data payload is structurally invalid.

    This includes scenarios such as:
    - Missing ``eip712`` substructure
    - Primary type absent from ``types``
    - Field referencing a type that is neither primitive nor declared
    - Message values the signing primitive cannot encode
    """
    pass


class MalformedQuote(SwapError):
    """
    Raised when a quote lacks required substructure.

    This includes scenarios such as:
    - Neither ``transaction`` nor ``trade`` present
    - Missing ``gas`` or ``gasPrice`` on the transaction
    - Chain id cannot be determined
    """
    pass


class InvalidSignatureLength(SwapError):
    """
    Raised when a signature is not exactly 65 bytes (r:32, s:32, v:1).
    Signatures are never padded or truncated.

    Attributes:
        length: The observed byte length.
    """

    def __init__(self, message: str, *, length: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.length = length


class AllowanceCheckFailed(SwapError):
    """
    Describes a failed allowance read or approval submission.

    Never raised by the allowance manager itself: it is carried inside an
    ``AllowanceResult`` and logged by the caller, and the swap proceeds.
    """
    pass


class ConfirmationTimeout(SwapError):
    """
    Raised when a confirmation wait exceeds its timeout without the
    transaction reaching a terminal status. The broadcast transaction is
    not cancelled and may still confirm later.

    Attributes:
        tx_hash: Hash of the transaction that was awaited.
        timeout_ms: The timeout that elapsed.
    """

    def __init__(
        self,
        message: str,
        *,
        tx_hash: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.tx_hash = tx_hash
        self.timeout_ms = timeout_ms


class NetworkError(SwapError):
    """
    Raised when an RPC or relayer call fails.

    The underlying error text is surfaced verbatim, prefixed with the
    failing operation (e.g. ``"get_nonce"``, ``"send_raw_transaction"``).
    """
    pass


@contextmanager
def wrap_errors(operation: str) -> Iterator[None]:
    """
    Re-label any ``SwapError`` escaping the block with ``operation``.

    Non-project exceptions pass through untouched; component boundaries are
    responsible for translating library errors into ``SwapError`` subclasses.
    """
    try:
        yield
    except SwapError as exc:
        raise exc.within(operation) from exc

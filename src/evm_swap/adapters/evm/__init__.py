from .config import ChainEndpointConfig, SwapConfig
from .constants import (
    PERMIT2_ADDRESS,
    MAX_UINT256,
    amount_to_value,
    value_to_amount,
)
from .schemas import (
    EIP712DomainData,
    TypedDataPayload,
    Eip712Envelope,
    SignedPayload,
    QuoteTransaction,
    DirectSwapQuote,
    GaslessSwapQuote,
    AssembledTransaction,
    TransactionRecord,
    TransactionStatusReport,
    AllowanceState,
    AllowanceResult,
    SwapExecutionResult,
    GaslessSubmission,
    GaslessSubmissionResult,
)
from .registry import ChainRegistry
from .signatures import (
    TypedDataSigner,
    compute_type_closure,
    resolve_primary_type,
    coerce_message,
)
from .allowances import AllowanceManager
from .tracker import SubmissionTracker
from .transactions import TransactionAssembler, embed_signature

__all__ = [
    "ChainEndpointConfig",
    "SwapConfig",
    "PERMIT2_ADDRESS",
    "MAX_UINT256",
    "amount_to_value",
    "value_to_amount",
    "EIP712DomainData",
    "TypedDataPayload",
    "Eip712Envelope",
    "SignedPayload",
    "QuoteTransaction",
    "DirectSwapQuote",
    "GaslessSwapQuote",
    "AssembledTransaction",
    "TransactionRecord",
    "TransactionStatusReport",
    "AllowanceState",
    "AllowanceResult",
    "SwapExecutionResult",
    "GaslessSubmission",
    "GaslessSubmissionResult",
    "ChainRegistry",
    "TypedDataSigner",
    "compute_type_closure",
    "resolve_primary_type",
    "coerce_message",
    "AllowanceManager",
    "SubmissionTracker",
    "TransactionAssembler",
    "embed_signature",
]

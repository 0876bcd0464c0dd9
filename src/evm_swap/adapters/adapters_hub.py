"""
Swap Hub - Composition Root

This module is the main entry point for all swap operations. It builds every
pipeline component from one :class:`SwapConfig` and exposes the operations a
calling layer (tool dispatcher, HTTP handler, script) needs:

1. Direct swaps: sign, assemble and broadcast a quote's transaction
2. Gasless swaps: sign approval/trade typed data and hand them to the relayer
3. Transaction tracking, allowance management and unit conversion

Architecture:
    SwapHub (you are here)
        ├── TypedDataSigner      (credential, EIP-712, transaction envelopes)
        ├── ChainRegistry        (chain id -> AsyncWeb3, RPC reads/writes)
        ├── AllowanceManager     (ERC-20 allowance check and approve)
        ├── SubmissionTracker    (broadcast, confirmation, status)
        ├── TransactionAssembler (Permit2 embedding, legacy transaction)
        └── GaslessRelayClient   (relayer HTTP API, created on first use)

Every component is owned by the hub instance; nothing is shared through
module-level state.
"""

from typing import Any, Dict, List, Optional, Union

from ..clients.relay_client import GaslessRelayClient
from ..engine.exceptions import MalformedQuote
from ..logging_utils import configure_logging, get_logger
from .evm.allowances import AllowanceManager
from .evm.config import SwapConfig
from .evm.constants import (
    DEFAULT_CONFIRMATION_TIMEOUT_MS,
    DEFAULT_CONFIRMATIONS,
    PERMIT2_ADDRESS,
    amount_to_value,
    value_to_amount,
)
from .evm.registry import ChainRegistry
from .evm.schemas import (
    AllowanceResult,
    DirectSwapQuote,
    GaslessSubmission,
    GaslessSubmissionResult,
    GaslessSwapQuote,
    SwapExecutionResult,
    TransactionRecord,
    TransactionStatusReport,
)
from .evm.signatures import TypedDataSigner
from .evm.tracker import SubmissionTracker
from .evm.transactions import TransactionAssembler
from .unions import parse_quote

logger = get_logger(__name__)

QuoteInput = Union[Dict[str, Any], DirectSwapQuote, GaslessSwapQuote]


class SwapHub:
    """
    Unified swap gateway.

    Usage:
        ```python
        async with SwapHub.from_env() as hub:
            result = await hub.execute_swap(quote)
            record = await hub.wait_for_transaction(8453, result.hash)
        ```
    """

    def __init__(
        self,
        config: SwapConfig,
        *,
        registry: Optional[ChainRegistry] = None,
        relay_client: Optional[GaslessRelayClient] = None,
    ):
        """
        Initialize the hub and all pipeline components.

        Args:
            config: Complete pipeline configuration.
            registry: Pre-built chain registry (defaults to one built from
                ``config``).
            relay_client: Pre-built relayer client (defaults to one created
                from ``config.relay_url`` on first gasless submission).
        """
        configure_logging(config.log_level)

        self.config = config
        self.signer = TypedDataSigner.from_config(config)
        self.registry = registry or ChainRegistry.from_config(config)
        self.allowances = AllowanceManager(self.registry, self.signer, config.approval_amount)
        self.tracker = SubmissionTracker(self.registry, self.signer)
        self.assembler = TransactionAssembler(self.registry, self.signer, self.allowances, self.tracker)

        self._relay_client = relay_client
        self._owns_relay_client = relay_client is None

        logger.info(
            "Swap hub ready: %s chain(s), wallet=%s",
            len(self.registry.supported_chains()),
            self.signer.address or "none",
        )

    @classmethod
    def from_env(cls, **overrides) -> "SwapHub":
        """Build a hub from environment variables (see :meth:`SwapConfig.from_env`)."""
        return cls(SwapConfig.from_env(**overrides))

    async def __aenter__(self) -> "SwapHub":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._relay_client is not None and self._owns_relay_client:
            await self._relay_client.aclose()
            self._relay_client = None

    @property
    def relay_client(self) -> GaslessRelayClient:
        if self._relay_client is None:
            self._relay_client = GaslessRelayClient(self.config.relay_url, timeout=self.config.rpc_timeout)
        return self._relay_client

    # =========================================================================
    # Direct swaps
    # =========================================================================

    async def execute_swap(self, quote: QuoteInput, chain_id: Optional[int] = None) -> SwapExecutionResult:
        """
        Sign and broadcast the transaction of a direct-swap quote.

        The chain id is taken from the quote's ``chainId``, then from
        ``transaction.chainId``, then from ``chain_id``.

        Args:
            quote: Raw quote dict or parsed :class:`DirectSwapQuote`.
            chain_id: Fallback chain id when the quote carries none.

        Returns:
            SwapExecutionResult: ``hash``, the broadcast record, Permit2 and
            allowance outcome. The transaction is not awaited.

        Raises:
            NoCredential: No key configured (checked first).
            MalformedQuote: Invalid quote or chain id unknown.
            UnsupportedChain: Chain not configured.
        """
        self.signer.require_account("execute swap")
        parsed = parse_quote(quote, "direct")

        resolved_chain = parsed.resolve_chain_id() or chain_id
        if not resolved_chain:
            raise MalformedQuote("Chain ID not found in quote data")

        logger.info("Executing swap transaction on chain %s", resolved_chain)
        return await self.assembler.execute(int(resolved_chain), parsed)

    # =========================================================================
    # Gasless swaps
    # =========================================================================

    async def sign_gasless_swap(self, quote: QuoteInput, chain_id: Optional[int] = None) -> GaslessSubmission:
        """
        Sign a gasless quote without submitting it.

        The chain id is taken from ``trade.eip712.domain.chainId``, then from
        the quote's ``chainId``, then from ``chain_id``.
        """
        self.signer.require_account("sign gasless swap")
        parsed = parse_quote(quote, "gasless")

        resolved_chain = parsed.resolve_chain_id() or chain_id
        if not resolved_chain:
            raise MalformedQuote("Chain ID not found in quote data or parameters")

        return await self.assembler.sign_gasless(int(resolved_chain), parsed)

    async def submit_gasless_swap(self, quote: QuoteInput, chain_id: Optional[int] = None) -> GaslessSubmissionResult:
        """
        Sign a gasless quote and submit it to the relayer.

        Returns:
            GaslessSubmissionResult: ``tradeHash`` plus which payloads were
            signed and the raw relayer response.
        """
        submission = await self.sign_gasless_swap(quote, chain_id)

        logger.info("Submitting gasless swap on chain %s", submission.chain_id)
        response = await self.relay_client.submit(submission)

        result = GaslessSubmissionResult(
            trade_hash=response.get("tradeHash"),
            approval_signed=submission.approval is not None,
            trade_signed=True,
            relay_response=response,
        )
        logger.info("Gasless swap submitted: tradeHash=%s", result.trade_hash)
        return result

    async def get_gasless_status(self, trade_hash: str, chain_id: int) -> Dict[str, Any]:
        if not trade_hash or not chain_id:
            raise MalformedQuote("Missing required parameters: tradeHash, chainId")
        return await self.relay_client.get_status(trade_hash, int(chain_id))

    # =========================================================================
    # Tracking
    # =========================================================================

    async def get_transaction_status(self, chain_id: int, tx_hash: str) -> TransactionStatusReport:
        return await self.tracker.get_status(chain_id, tx_hash)

    async def wait_for_transaction(
        self,
        chain_id: int,
        tx_hash: str,
        confirmations: int = DEFAULT_CONFIRMATIONS,
        timeout_ms: int = DEFAULT_CONFIRMATION_TIMEOUT_MS,
    ) -> TransactionRecord:
        """
        Block the calling task until ``tx_hash`` is confirmed.

        Raises:
            ConfirmationTimeout: Not confirmed within ``timeout_ms``.
        """
        return await self.tracker.await_confirmation(chain_id, tx_hash, confirmations, timeout_ms)

    # =========================================================================
    # Allowance
    # =========================================================================

    async def ensure_allowance(
        self,
        chain_id: int,
        token: str,
        required: int,
        spender: str = PERMIT2_ADDRESS,
        owner: Optional[str] = None,
    ) -> AllowanceResult:
        """
        Check (and raise if needed) the allowance of ``spender`` over the
        wallet's ``token``. Never raises for RPC failures; see
        :class:`AllowanceResult`.
        """
        owner = owner or self.signer.require_account("ensure allowance").address
        return await self.allowances.ensure_allowance(chain_id, token, owner, spender, required)

    # =========================================================================
    # Introspection & conversion
    # =========================================================================

    def get_supported_chains(self) -> List[int]:
        return self.registry.supported_chains()

    def get_wallet_address(self) -> Optional[str]:
        return self.signer.address

    @staticmethod
    def convert_wei_to_formatted(amount: Union[int, str], decimals: int) -> str:
        """``1500000000000000000``, 18 -> ``"1.5"`` (exact)."""
        return value_to_amount(value=amount, decimals=decimals)

    @staticmethod
    def convert_formatted_to_wei(amount: Union[str, int, float], decimals: int) -> int:
        """``"1.5"``, 18 -> ``1500000000000000000`` (exact)."""
        return amount_to_value(amount=amount, decimals=decimals)

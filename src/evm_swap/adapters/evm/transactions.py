"""
Swap Transaction Assembly

Turns a parsed quote into something the chain or the relayer accepts.

Direct swaps:
    1. Best-effort allowance raise for the Permit2 spender.
    2. Sign the Permit2 payload and append it to the calldata as
       ``calldata || uint256_be(65) || signature``.
    3. Build a legacy transaction from the quote's exact ``gas`` and
       ``gasPrice`` with the signer's *pending* nonce.
    4. Sign and broadcast via :class:`SubmissionTracker`.

Gasless swaps:
    Sign the optional ``approval`` and the mandatory ``trade`` payloads
    independently and return a :class:`GaslessSubmission` for the relayer.
"""

from typing import Optional, Tuple, Union

from ...engine.exceptions import MalformedQuote, wrap_errors
from ...logging_utils import get_logger
from .allowances import AllowanceManager
from .registry import ChainRegistry, to_checksum
from .schemas import (
    AllowanceResult,
    AssembledTransaction,
    DirectSwapQuote,
    GaslessSubmission,
    GaslessSwapQuote,
    QuoteTransaction,
    SignedPayload,
    SwapExecutionResult,
)
from .signatures import TypedDataSigner
from .standards import LENGTH_PREFIX_BYTES, ensure_signature_length, hex_to_bytes
from .tracker import SubmissionTracker

logger = get_logger(__name__)


def embed_signature(calldata: Union[str, bytes], signature: Union[str, bytes]) -> str:
    """
    Append a signature to calldata behind a 32-byte big-endian length word.

    Both inputs may be given with or without ``0x``.

    Args:
        calldata: Original transaction calldata.
        signature: Exactly 65 bytes (r || s || v).

    Returns:
        str: 0x-prefixed ``calldata || uint256_be(65) || signature``.

    Raises:
        InvalidSignatureLength: Signature is not 65 bytes.
        MalformedPayload: Either input is not valid hex.

    Example::

        embed_signature("0xabcd", sig)
        # "0xabcd" + "00" * 31 + "41" + sig.hex()
    """
    data = hex_to_bytes(calldata, field="calldata")
    sig = ensure_signature_length(signature)
    return "0x" + (data + len(sig).to_bytes(LENGTH_PREFIX_BYTES, "big") + sig).hex()


class TransactionAssembler:
    """
    Build, sign and submit swap transactions.

    Args:
        registry: Chain access (nonce, legacy support).
        signer: Typed-data and transaction credential.
        allowances: Best-effort allowance step.
        tracker: Signs and broadcasts the final transaction.
    """

    def __init__(
        self,
        registry: ChainRegistry,
        signer: TypedDataSigner,
        allowances: AllowanceManager,
        tracker: SubmissionTracker,
    ) -> None:
        self.registry = registry
        self.signer = signer
        self.allowances = allowances
        self.tracker = tracker

    # -----------------------------
    # Direct swaps
    # -----------------------------

    @staticmethod
    def _require_gas(transaction: QuoteTransaction) -> Tuple[int, int]:
        if transaction.gas is None or transaction.gas <= 0:
            raise MalformedQuote(
                "No gas estimate found in quote data" if not transaction.gas
                else f"Invalid gas estimate in quote data: {transaction.gas}"
            )
        if transaction.gas_price is None or transaction.gas_price <= 0:
            raise MalformedQuote(
                "No gasPrice found in quote data" if not transaction.gas_price
                else f"Invalid gasPrice in quote data: {transaction.gas_price}"
            )
        return transaction.gas, transaction.gas_price

    async def ensure_permit2_allowance(self, chain_id: int, quote: DirectSwapQuote) -> Optional[AllowanceResult]:
        """
        Run the allowance step when the quote carries a Permit2 payload and
        names its sell token and amount. Failures are logged and returned,
        never raised.
        """
        if quote.permit2 is None or not quote.sell_token or not quote.sell_amount:
            return None

        result = await self.allowances.ensure_allowance(
            chain_id,
            quote.sell_token,
            self.signer.address,
            quote.allowance_spender,
            quote.sell_amount,
        )
        if not result.ok:
            logger.warning("Allowance step failed, continuing with swap: %s", result.error)
        return result

    async def build_calldata(self, quote: DirectSwapQuote) -> Tuple[str, Optional[SignedPayload]]:
        """
        Return the calldata to submit, with the Permit2 signature embedded
        when the quote has a Permit2 payload.
        """
        if quote.permit2 is None:
            return quote.transaction.data, None

        with wrap_errors("sign Permit2 message"):
            signed = await self.signer.sign_envelope(quote.permit2)
        return embed_signature(quote.transaction.data, signed.signature_bytes), signed

    async def assemble(self, chain_id: int, transaction: QuoteTransaction, data: str) -> AssembledTransaction:
        """
        Build a fresh legacy transaction for one submission attempt.

        Uses the quote's exact ``gas`` / ``gasPrice`` and the signer's
        pending nonce. Nothing is cached between calls.

        Raises:
            MalformedQuote: ``gas`` or ``gasPrice`` missing.
            UnsupportedTransactionType: Chain does not accept legacy transactions.
            NetworkError: Nonce read failed.
        """
        gas_limit, gas_price = self._require_gas(transaction)
        self.registry.require_legacy_transactions(chain_id)

        owner = self.signer.address
        nonce = await self.registry.get_nonce(chain_id, owner)

        return AssembledTransaction(
            to=to_checksum(transaction.to, "transaction.to"),
            data=data,
            value=transaction.value,
            gas_limit=gas_limit,
            gas_price=gas_price,
            nonce=nonce,
            chain_id=chain_id,
        )

    async def execute(self, chain_id: int, quote: DirectSwapQuote) -> SwapExecutionResult:
        """
        Run the full direct-swap pipeline and broadcast the transaction.

        Returns immediately after broadcast; use the tracker to follow the
        transaction.

        Raises:
            NoCredential: No key configured (before any network call).
            MalformedQuote / MalformedPayload / InvalidSignatureLength /
            UnsupportedChain / NetworkError: Labelled with
                ``"Failed to sign and broadcast transaction"``.
        """
        with wrap_errors("sign and broadcast transaction"):
            self.signer.require_account("sign and broadcast transaction")
            self._require_gas(quote.transaction)
            self.registry.require_legacy_transactions(chain_id)

            logger.info(
                "Processing transaction for chain %s: to=%s value=%s permit2=%s",
                chain_id, quote.transaction.to, quote.transaction.value, quote.permit2 is not None,
            )

            allowance = await self.ensure_permit2_allowance(chain_id, quote)
            data, permit2_signed = await self.build_calldata(quote)
            tx = await self.assemble(chain_id, quote.transaction, data)
            record = await self.tracker.broadcast(chain_id, tx)

        return SwapExecutionResult(
            hash=record.hash,
            record=record,
            permit2_signed=permit2_signed is not None,
            permit2_hash=permit2_signed.hash if permit2_signed is not None else None,
            allowance=allowance,
        )

    # -----------------------------
    # Gasless swaps
    # -----------------------------

    async def sign_gasless(self, chain_id: int, quote: GaslessSwapQuote) -> GaslessSubmission:
        """
        Sign the gasless approval (if any) and the trade.

        The trade must declare its own ``primaryType``; the approval may
        rely on inference.

        Raises:
            NoCredential: No key configured.
            MalformedPayload: Labelled ``"Failed to sign gasless approval"``
                or ``"Failed to sign gasless trade"``.
        """
        self.signer.require_account("sign gasless swap")

        approval: Optional[SignedPayload] = None
        if quote.approval is not None:
            with wrap_errors("sign gasless approval"):
                approval = await self.signer.sign_envelope(quote.approval)
            logger.info("Gasless approval signed")

        with wrap_errors("sign gasless trade"):
            trade = await self.signer.sign_envelope(quote.trade, require_primary_type=True)
        logger.info("Gasless trade signed")

        return GaslessSubmission(chain_id=chain_id, trade=trade, approval=approval)

"""
Transaction Submission and Status Tracking

Signs and broadcasts assembled transactions and exposes the two ways of
following them afterwards: a blocking confirmation wait and a cheap
non-blocking status poll.
"""

from ...logging_utils import get_logger
from .constants import DEFAULT_CONFIRMATION_TIMEOUT_MS, DEFAULT_CONFIRMATIONS
from .registry import ChainRegistry
from .schemas import AssembledTransaction, TransactionRecord, TransactionStatusReport
from .signatures import TypedDataSigner

logger = get_logger(__name__)


class SubmissionTracker:
    """
    Broadcast and follow transactions.

    ``broadcast`` returns as soon as the node accepts the envelope.
    ``await_confirmation`` only blocks the calling task; a timed-out wait
    leaves the transaction in flight and ``get_status`` keeps reporting it.
    """

    def __init__(self, registry: ChainRegistry, signer: TypedDataSigner) -> None:
        self.registry = registry
        self.signer = signer

    async def broadcast(self, chain_id: int, tx: AssembledTransaction) -> TransactionRecord:
        """
        Sign ``tx`` and send it.

        Returns:
            TransactionRecord: Hash plus the echoed transaction fields.

        Raises:
            NoCredential: No key configured (nothing is sent).
            NetworkError: The node rejected the envelope.
        """
        raw = self.signer.sign_transaction(tx)

        logger.info(
            "Sending legacy transaction on chain %s: to=%s gasLimit=%s gasPrice=%s nonce=%s",
            chain_id, tx.to, tx.gas_limit, tx.gas_price, tx.nonce,
        )
        tx_hash = await self.registry.send_raw_transaction(chain_id, raw)

        return TransactionRecord(
            hash=tx_hash,
            from_address=self.signer.address,
            to=tx.to,
            value=tx.value,
            gas_limit=tx.gas_limit,
            gas_price=tx.gas_price,
            nonce=tx.nonce,
            chain_id=tx.chain_id,
        )

    async def await_confirmation(
        self,
        chain_id: int,
        tx_hash: str,
        confirmations: int = DEFAULT_CONFIRMATIONS,
        timeout_ms: int = DEFAULT_CONFIRMATION_TIMEOUT_MS,
    ) -> TransactionRecord:
        """
        Raises:
            ConfirmationTimeout: Not confirmed within ``timeout_ms``.
        """
        return await self.registry.wait_for_confirmation(chain_id, tx_hash, confirmations, timeout_ms)

    async def get_status(self, chain_id: int, tx_hash: str) -> TransactionStatusReport:
        return await self.registry.get_transaction_status(chain_id, tx_hash)

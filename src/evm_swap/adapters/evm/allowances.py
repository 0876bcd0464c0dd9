"""
ERC-20 Allowance Management

Checks that a spender (normally the Permit2 contract) may move the sell
token on the owner's behalf and, when it may not, submits an ``approve``
transaction before the trade.

The step is best effort. :meth:`AllowanceManager.ensure_allowance` never
raises for allowance or approval failures; it returns an
:class:`AllowanceResult` with ``ok=False`` and the caller decides what to
do (the assembler logs a warning and continues with the trade).

The approval is broadcast without waiting for it to be mined. Because the
nonce is read from the *pending* pool, the approval takes nonce ``N`` and
the swap submitted right after it takes ``N + 1``, so the node orders them.
"""

from typing import Optional

from ...engine.exceptions import AllowanceCheckFailed, NoCredential, SwapError
from ...logging_utils import get_logger
from .constants import APPROVAL_GAS_BUFFER, APPROVAL_GAS_FALLBACK, MAX_UINT256
from .ERC20_ABI import build_approve_calldata
from .registry import ChainRegistry, to_checksum
from .schemas import AllowanceResult, AllowanceState, AssembledTransaction, TransactionRecord
from .signatures import TypedDataSigner

logger = get_logger(__name__)


class AllowanceManager:
    """
    Query and raise ERC-20 allowances.

    Args:
        registry: Chain access.
        signer: Credential used to sign the approval transaction.
        approval_amount: Amount to approve when raising. Defaults to
            ``MAX_UINT256`` so later swaps of the same token skip approval.
    """

    def __init__(
        self,
        registry: ChainRegistry,
        signer: TypedDataSigner,
        approval_amount: int = MAX_UINT256,
    ) -> None:
        self.registry = registry
        self.signer = signer
        self.approval_amount = approval_amount

    async def ensure_allowance(
        self,
        chain_id: int,
        token: str,
        owner: str,
        spender: str,
        required: int,
    ) -> AllowanceResult:
        """
        Make sure ``allowance(owner, spender) >= required`` on ``token``.

        If the current allowance already covers ``required`` nothing is
        sent and ``raised`` is false, so calling this twice in a row
        broadcasts at most one approval.

        Args:
            chain_id: Chain to operate on.
            token: ERC-20 contract address.
            owner: Token holder (the signer's address).
            spender: Contract that will pull the tokens.
            required: Amount in smallest units.

        Returns:
            AllowanceResult: Never raises for read or approval failures.
        """
        try:
            current = await self.registry.get_allowance(chain_id, token, owner, spender)
        except SwapError as e:
            return self._failure(required, None, "check allowance", e)

        state = AllowanceState(
            owner=owner, spender=spender, token=token,
            current=current, required=required,
        )
        if state.sufficient:
            logger.debug(
                "Allowance sufficient on chain %s: %s >= %s (token %s)",
                chain_id, current, required, token,
            )
            return AllowanceResult(ok=True, raised=False, previous=current, required=required, state=state)

        logger.info(
            "Allowance insufficient on chain %s (%s < %s); approving %s for token %s",
            chain_id, current, required, spender, token,
        )
        try:
            approval = await self._submit_approval(chain_id, token, spender)
        except SwapError as e:
            return self._failure(required, state, "submit approval", e)

        return AllowanceResult(
            ok=True, raised=True, previous=current, required=required,
            state=state, approval=approval,
        )

    async def _submit_approval(self, chain_id: int, token: str, spender: str) -> TransactionRecord:
        owner = self.signer.address
        if owner is None:
            raise NoCredential("No private key configured for approval", operation="submit approval")
        self.registry.require_legacy_transactions(chain_id)

        token_checksum = to_checksum(token, "token")
        data = build_approve_calldata(to_checksum(spender, "spender"), self.approval_amount)

        # Gas estimation with 10% buffer; standard limit if estimation fails
        # (common when the node simulates against a zero balance).
        try:
            estimate = await self.registry.estimate_gas(
                chain_id, {"from": owner, "to": token_checksum, "data": data}
            )
            gas_limit = int(estimate * APPROVAL_GAS_BUFFER)
        except SwapError as e:
            logger.debug("Approval gas estimation failed, using %s: %s", APPROVAL_GAS_FALLBACK, e)
            gas_limit = APPROVAL_GAS_FALLBACK

        gas_price = await self.registry.get_gas_price(chain_id)
        nonce = await self.registry.get_nonce(chain_id, owner)

        tx = AssembledTransaction(
            to=token_checksum,
            data=data,
            value=0,
            gas_limit=gas_limit,
            gas_price=gas_price,
            nonce=nonce,
            chain_id=chain_id,
        )
        tx_hash = await self.registry.send_raw_transaction(chain_id, self.signer.sign_transaction(tx))
        logger.info("Approval transaction sent on chain %s: %s (nonce %s)", chain_id, tx_hash, nonce)

        return TransactionRecord(
            hash=tx_hash,
            from_address=owner,
            to=tx.to,
            value=tx.value,
            gas_limit=tx.gas_limit,
            gas_price=tx.gas_price,
            nonce=tx.nonce,
            chain_id=tx.chain_id,
        )

    @staticmethod
    def _failure(
        required: int,
        state: Optional[AllowanceState],
        operation: str,
        cause: SwapError,
    ) -> AllowanceResult:
        error = AllowanceCheckFailed(
            f"Failed to {operation}: {cause.message}",
            operation=operation,
            details={"cause": type(cause).__name__},
        )
        return AllowanceResult(
            ok=False,
            raised=False,
            previous=state.current if state is not None else None,
            required=required,
            state=state,
            error=error.message,
        )

"""
EVM Swap Schema Models

Pydantic models for the swap pipeline. All classes inherit from
:class:`CanonicalModel` and accept the camelCase wire spelling of the quote
provider as well as snake_case.

Typed-data classes:
    - EIP712DomainData: EIP-712 domain (all members optional individually).
    - TypedDataPayload: ``{domain, types, primaryType, message}``.
    - Eip712Envelope: Quote-side wrapper ``{type, hash, eip712}`` used by
      ``permit2``, ``approval`` and ``trade``.
    - SignedPayload: 65-byte signature plus the payload that was signed.

Quote classes:
    - QuoteTransaction: ``{to, data, value, gas, gasPrice}``.
    - DirectSwapQuote: Transaction + optional Permit2 payload.
    - GaslessSwapQuote: Mandatory trade + optional approval payload.

Transaction / result classes:
    - AssembledTransaction: Complete legacy transaction ready for signing.
    - TransactionRecord: Broadcast result, enriched after confirmation.
    - TransactionStatusReport: ``not_found | pending | success | failed``.
    - AllowanceState / AllowanceResult: Allowance check outcome.
    - SwapExecutionResult: Direct-swap outcome.
    - GaslessSubmission / GaslessSubmissionResult: Gasless-swap outcome.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from ...schemas.bases import CanonicalModel, IntLike, StrLike, TransactionStatus
from .constants import PERMIT2_ADDRESS
from .standards import ensure_signature_length


# ---------------------------------------------------------------------------
# Typed data
# ---------------------------------------------------------------------------

class EIP712DomainData(CanonicalModel):
    """
    EIP-712 domain.

    Every member is optional: Permit2, for instance, has no ``version``.
    Only the members that are present participate in the domain separator,
    so ``to_domain_data()`` drops the absent ones.
    """

    name: Optional[StrLike] = None
    version: Optional[StrLike] = None
    chain_id: Optional[IntLike] = Field(None, alias="chainId")
    verifying_contract: Optional[str] = Field(None, alias="verifyingContract")
    salt: Optional[str] = None

    def to_domain_data(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TypedDataPayload(CanonicalModel):
    """
    EIP-712 typed-data payload exactly as supplied upstream.

    ``types`` may contain entries unrelated to ``primary_type`` and may
    contain ``EIP712Domain``; the signer reduces it to the minimal closure.

    Attributes:
        domain: Signing domain.
        types: Type name -> ordered list of ``{"name", "type"}`` members.
        primary_type: Root type of ``message``; optional on input because
            some providers omit it for single-root payloads.
        message: The values to sign.
    """

    domain: EIP712DomainData = Field(default_factory=EIP712DomainData)
    types: Dict[str, List[Dict[str, str]]] = Field(default_factory=dict)
    primary_type: Optional[str] = Field(None, alias="primaryType")
    message: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("types")
    @classmethod
    def _check_members(cls, types: Dict[str, List[Dict[str, str]]]) -> Dict[str, List[Dict[str, str]]]:
        for type_name, members in types.items():
            for member in members:
                if "name" not in member or "type" not in member:
                    raise ValueError(
                        f"Type '{type_name}' has a member without 'name'/'type': {member!r}"
                    )
        return types


class Eip712Envelope(CanonicalModel):
    """
    Quote-side wrapper around a typed-data payload.

    ``eip712`` is optional at parse time so a missing payload is reported
    as ``MalformedPayload`` by the signer, where the operation is known.
    """

    type: Optional[str] = None
    hash: Optional[str] = None
    eip712: Optional[TypedDataPayload] = None


class SignedPayload(CanonicalModel):
    """
    A typed-data payload together with its signature.

    Attributes:
        signature: 0x-prefixed hex, always exactly 65 bytes (r || s || v).
        type: Envelope tag carried over from the quote (e.g. ``"permit"``).
        hash: Envelope hash carried over from the quote.
        eip712: The raw payload that was signed.
    """

    signature: str
    type: Optional[str] = None
    hash: Optional[str] = None
    eip712: TypedDataPayload

    @field_validator("signature")
    @classmethod
    def _check_length(cls, signature: str) -> str:
        return "0x" + ensure_signature_length(signature).hex()

    @property
    def signature_bytes(self) -> bytes:
        return bytes.fromhex(self.signature[2:])


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------

class QuoteTransaction(CanonicalModel):
    """
    Transaction block of a direct-swap quote.

    ``gas`` and ``gas_price`` are optional at parse time; the assembler
    rejects a quote without them before any nonce is fetched.
    """

    to: str
    data: str = "0x"
    value: IntLike = 0
    gas: Optional[IntLike] = None
    gas_price: Optional[IntLike] = Field(None, alias="gasPrice")
    chain_id: Optional[IntLike] = Field(None, alias="chainId")

    @field_validator("value", mode="before")
    @classmethod
    def _default_value(cls, value: Any) -> Any:
        return 0 if value is None else value


class DirectSwapQuote(CanonicalModel):
    """
    Quote for a self-submitted swap.

    Attributes:
        kind: Discriminator, always ``"direct"``.
        transaction: Target call with gas parameters.
        permit2: Optional Permit2 typed data to sign and append to calldata.
        chain_id: Chain the quote was issued for.
        sell_token: Token being sold, used for the allowance check.
        sell_amount: Amount being sold in smallest units.
        allowance_spender: Contract that must be approved to move
            ``sell_token``. Defaults to the canonical Permit2 singleton.
    """

    kind: Literal["direct"] = "direct"
    transaction: QuoteTransaction
    permit2: Optional[Eip712Envelope] = None
    chain_id: Optional[IntLike] = Field(None, alias="chainId")
    sell_token: Optional[str] = Field(None, alias="sellToken")
    sell_amount: Optional[IntLike] = Field(None, alias="sellAmount")
    allowance_spender: str = Field(PERMIT2_ADDRESS, alias="allowanceSpender")

    @model_validator(mode="before")
    @classmethod
    def _lift_issues_spender(cls, data: Any) -> Any:
        # Quote providers report the spender under issues.allowance.spender.
        if isinstance(data, dict) and "allowanceSpender" not in data and "allowance_spender" not in data:
            allowance_issue = (data.get("issues") or {}).get("allowance") or {}
            spender = allowance_issue.get("spender")
            if spender:
                data = {**data, "allowanceSpender": spender}
        return data

    @field_validator("allowance_spender", mode="before")
    @classmethod
    def _default_spender(cls, value: Any) -> Any:
        return PERMIT2_ADDRESS if value is None else value

    def resolve_chain_id(self) -> Optional[int]:
        return self.chain_id or self.transaction.chain_id


class GaslessSwapQuote(CanonicalModel):
    """
    Quote for a relayer-submitted swap.

    Attributes:
        kind: Discriminator, always ``"gasless"``.
        trade: Mandatory trade typed data.
        approval: Optional gasless approval typed data (``null`` when the
            allowance is already sufficient).
        chain_id: Chain the quote was issued for.
    """

    kind: Literal["gasless"] = "gasless"
    trade: Eip712Envelope
    approval: Optional[Eip712Envelope] = None
    chain_id: Optional[IntLike] = Field(None, alias="chainId")

    def resolve_chain_id(self) -> Optional[int]:
        if self.trade.eip712 is not None and self.trade.eip712.domain.chain_id:
            return self.trade.eip712.domain.chain_id
        return self.chain_id


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

class AssembledTransaction(CanonicalModel):
    """
    Complete legacy (type-0) transaction, constructed fresh per attempt.

    Example::

        tx = AssembledTransaction(
            to="0xDef1C0ded9bec7F1a1670819833240f027b25EfF",
            data="0x...", value=0, gasLimit=300_000,
            gasPrice=30_000_000_000, nonce=7, chainId=8453,
        )
        account.sign_transaction(tx.to_tx_params())
    """

    to: str
    data: str = "0x"
    value: IntLike = 0
    gas_limit: IntLike = Field(..., ge=0, alias="gasLimit")
    gas_price: IntLike = Field(..., ge=0, alias="gasPrice")
    nonce: IntLike = Field(..., ge=0)
    chain_id: IntLike = Field(..., ge=1, alias="chainId")
    type: Literal[0] = 0

    def to_tx_params(self) -> Dict[str, Any]:
        """Transaction dict in the shape ``eth_account`` signs as legacy."""
        return {
            "to": self.to,
            "data": self.data,
            "value": self.value,
            "gas": self.gas_limit,
            "gasPrice": self.gas_price,
            "nonce": self.nonce,
            "chainId": self.chain_id,
        }


class TransactionRecord(CanonicalModel):
    """
    Broadcast transaction, optionally enriched with receipt data.

    The first group of fields is known at broadcast time; the second group
    is filled once a receipt exists.
    """

    hash: str
    from_address: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    value: Optional[IntLike] = None
    gas_limit: Optional[IntLike] = Field(None, alias="gasLimit")
    gas_price: Optional[IntLike] = Field(None, alias="gasPrice")
    nonce: Optional[IntLike] = None
    chain_id: Optional[IntLike] = Field(None, alias="chainId")

    block_number: Optional[int] = Field(None, alias="blockNumber")
    block_hash: Optional[str] = Field(None, alias="blockHash")
    status: Optional[TransactionStatus] = None
    gas_used: Optional[int] = Field(None, alias="gasUsed")
    effective_gas_price: Optional[int] = Field(None, alias="effectiveGasPrice")
    confirmations: Optional[int] = None
    logs: List[Dict[str, Any]] = Field(default_factory=list)

    def is_success(self) -> bool:
        return self.status == TransactionStatus.SUCCESS


class TransactionStatusReport(CanonicalModel):
    """Cheap status poll result; ``transaction`` is absent for ``not_found``."""

    status: TransactionStatus
    transaction: Optional[TransactionRecord] = None


# ---------------------------------------------------------------------------
# Allowance
# ---------------------------------------------------------------------------

class AllowanceState(CanonicalModel):
    owner: str
    spender: str
    token: str
    current: int = Field(..., ge=0)
    required: int = Field(..., ge=0)

    @property
    def sufficient(self) -> bool:
        return self.current >= self.required


class AllowanceResult(CanonicalModel):
    """
    Outcome of ``AllowanceManager.ensure_allowance``.

    A result value rather than an exception: ``ok=False`` carries the
    failure in ``error`` and the caller decides to log and continue.

    Attributes:
        ok: Whether the check (and approval, if needed) went through.
        raised: Whether an approval transaction was broadcast.
        previous: Allowance read before any approval (``None`` if the read
            itself failed).
        required: Amount the swap needs.
        state: Full allowance snapshot when the read succeeded.
        approval: Record of the approval transaction when ``raised``.
        error: Failure description when ``ok`` is false.
    """

    ok: bool
    raised: bool = False
    previous: Optional[int] = None
    required: int
    state: Optional[AllowanceState] = None
    approval: Optional[TransactionRecord] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Flow results
# ---------------------------------------------------------------------------

class SwapExecutionResult(CanonicalModel):
    """Direct-swap outcome returned to the calling layer."""

    hash: str
    record: TransactionRecord
    permit2_signed: bool = Field(False, alias="permit2Signed")
    permit2_hash: Optional[str] = Field(None, alias="permit2Hash")
    allowance: Optional[AllowanceResult] = None


class GaslessSubmission(CanonicalModel):
    """
    Signed gasless swap, ready for the relayer.

    ``to_dict()`` omits ``approval`` entirely when no approval was signed.
    """

    chain_id: int = Field(..., alias="chainId")
    trade: SignedPayload
    approval: Optional[SignedPayload] = None


class GaslessSubmissionResult(CanonicalModel):
    trade_hash: Optional[str] = Field(None, alias="tradeHash")
    approval_signed: bool = Field(False, alias="approvalSigned")
    trade_signed: bool = Field(True, alias="tradeSigned")
    relay_response: Dict[str, Any] = Field(default_factory=dict, alias="relayResponse")

"""
EVM Off-Chain Signing Utilities

Local EIP-712 and transaction signing for the swap pipeline. All
cryptographic operations are performed in-process using ``eth_account``; no
RPC calls are made.

Exported helpers
----------------
compute_type_closure
    Reduce an upstream ``types`` map to exactly the types reachable from a
    primary type. ``EIP712Domain`` is never part of the result.

resolve_primary_type
    Infer the single root type of a ``types`` map when the payload does not
    declare ``primaryType``.

coerce_message
    Convert numeric strings in a message to ``int`` according to their
    declared ``(u)intN`` types, recursively through structs and arrays.

TypedDataSigner
    Holds the process credential; signs typed data (off the event loop) and
    legacy transaction envelopes.
"""

import asyncio
from collections import deque
from typing import Any, Dict, List, Mapping, Optional, Union

from eth_account import Account
from eth_account._utils.encode_typed_data.encoding_and_hashing import hash_domain, hash_struct
from eth_account.messages import SignableMessage
from eth_account.signers.local import LocalAccount

from ...engine.exceptions import ConfigurationError, MalformedPayload, MalformedQuote, NoCredential, SwapError
from ...logging_utils import get_logger, short_hex
from ...schemas.bases import to_int
from .config import SwapConfig
from .schemas import AssembledTransaction, Eip712Envelope, SignedPayload, TypedDataPayload
from .standards import EIP712_DOMAIN_TYPE, is_integer_type, is_primitive_type, strip_array_suffix

logger = get_logger(__name__)

TypeMap = Mapping[str, List[Dict[str, str]]]


# ---------------------------------------------------------------------------
# Type graph
# ---------------------------------------------------------------------------

def compute_type_closure(types: TypeMap, primary_type: str) -> Dict[str, List[Dict[str, str]]]:
    """
    Compute the minimal set of struct types reachable from ``primary_type``.

    Walks the type graph with an explicit worklist and a visited set. Array
    suffixes (``[]``, ``[n]``, nested) are stripped before lookup, primitive
    types and ``EIP712Domain`` terminate the walk, and a type that was
    already visited (including through a cycle) is not expanded again.

    Args:
        types: Upstream type map, possibly with unrelated entries.
        primary_type: Root of the message being signed.

    Returns:
        Dict[str, List[Dict[str, str]]]: ``primary_type`` first, then the
        referenced types in discovery order. Deterministic for a given input.

    Raises:
        MalformedPayload: If ``primary_type`` is not declared, is the domain
            type, or any reachable field references a type that is neither
            primitive nor declared.

    Example::

        types = {
            "EIP712Domain": [...],
            "PermitTransferFrom": [{"name": "permitted", "type": "TokenPermissions"}, ...],
            "TokenPermissions": [{"name": "token", "type": "address"}, ...],
            "Unrelated": [...],
        }
        compute_type_closure(types, "PermitTransferFrom")
        # {"PermitTransferFrom": [...], "TokenPermissions": [...]}
    """
    if primary_type == EIP712_DOMAIN_TYPE:
        raise MalformedPayload(f"Primary type cannot be {EIP712_DOMAIN_TYPE}")
    if primary_type not in types:
        raise MalformedPayload(
            f"Primary type '{primary_type}' is not declared in types",
            details={"declared_types": sorted(types)},
        )

    closure: Dict[str, List[Dict[str, str]]] = {primary_type: list(types[primary_type])}
    worklist = deque([primary_type])

    while worklist:
        type_name = worklist.popleft()
        for member in types[type_name]:
            referenced = strip_array_suffix(member["type"])
            if referenced == EIP712_DOMAIN_TYPE or is_primitive_type(referenced):
                continue
            if referenced not in types:
                raise MalformedPayload(
                    f"Field '{type_name}.{member['name']}' references unknown type '{referenced}'"
                )
            if referenced not in closure:
                closure[referenced] = list(types[referenced])
                worklist.append(referenced)

    return closure


def resolve_primary_type(types: TypeMap) -> str:
    """
    Infer the primary type as the unique struct type no other type refers to.

    Raises:
        MalformedPayload: If there is no such type or more than one.
    """
    candidates = [name for name in types if name != EIP712_DOMAIN_TYPE]
    referenced = set()
    for name in candidates:
        for member in types[name]:
            target = strip_array_suffix(member["type"])
            if target != name:
                referenced.add(target)

    roots = [name for name in candidates if name not in referenced]
    if len(roots) != 1:
        raise MalformedPayload(
            "Cannot infer primary type; declare primaryType explicitly",
            details={"root_types": roots},
        )
    return roots[0]


def _coerce_value(types: TypeMap, type_name: str, value: Any) -> Any:
    if value is None:
        return value

    if type_name.endswith("]"):
        inner = type_name[: type_name.rindex("[")]
        if isinstance(value, (list, tuple)):
            return [_coerce_value(types, inner, item) for item in value]
        return value

    if type_name in types and isinstance(value, Mapping):
        return coerce_message(types, type_name, value)

    if is_integer_type(type_name) and isinstance(value, str):
        coerced = to_int(value)
        if not isinstance(coerced, int):
            raise MalformedPayload(f"Value {value!r} is not a valid {type_name}")
        return coerced

    return value


def coerce_message(types: TypeMap, type_name: str, message: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of ``message`` with integer-typed string fields as ``int``.

    Quote providers serialise ``uint256`` values as decimal strings, which
    the EIP-712 encoder would otherwise reject or misinterpret.
    """
    member_types = {member["name"]: member["type"] for member in types.get(type_name, [])}
    return {
        key: _coerce_value(types, member_types[key], value) if key in member_types else value
        for key, value in message.items()
    }


# ---------------------------------------------------------------------------
# Signer
# ---------------------------------------------------------------------------

class TypedDataSigner:
    """
    The single signing credential of the process.

    Stateless and reentrant: concurrent tasks may sign through the same
    instance. Every signing entry point raises :class:`NoCredential` before
    doing any other work when no key is configured.

    Example:
        signer = TypedDataSigner(private_key="0x...")
        signed = await signer.sign(payload)            # SignedPayload
        raw = signer.sign_transaction(assembled_tx)    # bytes
    """

    def __init__(self, private_key: Optional[str] = None) -> None:
        self._account: Optional[LocalAccount] = None
        if private_key:
            try:
                self._account = Account.from_key(private_key)
            except Exception as e:
                # Never include the key material in the error.
                raise ConfigurationError("Invalid private key provided", operation="initialize signer") from e
            logger.info("Wallet initialized: %s", self._account.address)

    @classmethod
    def from_config(cls, config: SwapConfig) -> "TypedDataSigner":
        return cls(private_key=config.private_key)

    @property
    def has_credential(self) -> bool:
        return self._account is not None

    @property
    def address(self) -> Optional[str]:
        """Checksummed address of the signing account, or ``None``."""
        return self._account.address if self._account is not None else None

    def require_account(self, operation: str) -> LocalAccount:
        if self._account is None:
            raise NoCredential(
                "No private key configured for signing",
                operation=operation,
            )
        return self._account

    # -----------------------------
    # Typed data
    # -----------------------------

    def sign_typed_data(
        self,
        payload: Union[TypedDataPayload, Mapping[str, Any]],
        primary_type: Optional[str] = None,
        *,
        envelope_type: Optional[str] = None,
        envelope_hash: Optional[str] = None,
    ) -> SignedPayload:
        """
        Sign an EIP-712 payload synchronously.

        The primary type is taken from ``primary_type`` if given, otherwise
        from the payload's ``primaryType``, otherwise inferred. The domain
        separator and the struct hash of that type over its closure are
        computed here and signed as an EIP-191 version ``0x01`` message.

        Args:
            payload: Typed data as model or raw dict.
            primary_type: Explicit override of the payload's primary type.
            envelope_type: Quote envelope ``type`` to carry into the result.
            envelope_hash: Quote envelope ``hash`` to carry into the result.

        Returns:
            SignedPayload: 65-byte signature plus the raw payload.

        Raises:
            NoCredential: No key configured.
            MalformedPayload: Structurally invalid payload.
            InvalidSignatureLength: Primitive produced a non-65-byte signature.
        """
        account = self.require_account("sign typed data")

        if not isinstance(payload, TypedDataPayload):
            try:
                payload = TypedDataPayload.model_validate(payload)
            except ValueError as e:
                raise MalformedPayload(f"Invalid EIP-712 structure: {e}") from e

        primary = primary_type or payload.primary_type or resolve_primary_type(payload.types)
        closure = compute_type_closure(payload.types, primary)
        message = coerce_message(closure, primary, payload.message)
        domain = payload.domain.to_domain_data()

        logger.debug(
            "Signing EIP-712 message: domain=%s primaryType=%s types=%s",
            domain.get("name"), primary, list(closure),
        )

        # The primary type is passed explicitly so graphs that cycle back to
        # it still hash; eth_account would otherwise re-infer it.
        try:
            signable = SignableMessage(
                b"\x01",
                hash_domain(domain),
                hash_struct(primary, closure, message),
            )
            signed = account.sign_message(signable)
        except SwapError:
            raise
        except Exception as e:
            raise MalformedPayload(
                f"Cannot encode typed data for '{primary}': {e}",
                details={"primary_type": primary},
            ) from e

        result = SignedPayload(
            signature="0x" + bytes(signed.signature).hex(),
            type=envelope_type,
            hash=envelope_hash,
            eip712=payload,
        )
        logger.debug("EIP-712 signature created: %s", short_hex(result.signature, keep=18))
        return result

    async def sign(
        self,
        payload: Union[TypedDataPayload, Mapping[str, Any]],
        primary_type: Optional[str] = None,
        **kwargs,
    ) -> SignedPayload:
        """Async wrapper of :meth:`sign_typed_data`; hashing runs in a worker thread."""
        self.require_account("sign typed data")
        return await asyncio.to_thread(self.sign_typed_data, payload, primary_type, **kwargs)

    async def sign_envelope(
        self,
        envelope: Union[Eip712Envelope, Mapping[str, Any], None],
        *,
        require_primary_type: bool = False,
    ) -> SignedPayload:
        """
        Sign the ``eip712`` payload of a quote envelope (``permit2``,
        ``approval`` or ``trade``), carrying ``type`` and ``hash`` over.

        Args:
            envelope: The envelope as model or raw dict.
            require_primary_type: Fail unless the payload declares
                ``primaryType`` itself (used for gasless trades).

        Raises:
            NoCredential: No key configured.
            MalformedPayload: Envelope or its ``eip712`` is missing, or a
                required ``primaryType`` is absent.
        """
        self.require_account("sign typed data")

        if envelope is not None and not isinstance(envelope, Eip712Envelope):
            try:
                envelope = Eip712Envelope.model_validate(envelope)
            except ValueError as e:
                raise MalformedPayload(f"Invalid EIP-712 envelope: {e}") from e
        if envelope is None or envelope.eip712 is None:
            raise MalformedPayload("Invalid data - missing EIP-712 structure")

        primary_type = envelope.eip712.primary_type
        if require_primary_type and not primary_type:
            raise MalformedPayload("EIP-712 payload does not declare primaryType")

        return await self.sign(
            envelope.eip712,
            primary_type,
            envelope_type=envelope.type,
            envelope_hash=envelope.hash,
        )

    # -----------------------------
    # Transactions
    # -----------------------------

    def sign_transaction(self, tx: AssembledTransaction) -> bytes:
        """
        Sign a legacy transaction.

        Returns:
            bytes: Raw RLP envelope for ``eth_sendRawTransaction``.

        Raises:
            NoCredential: No key configured.
            MalformedQuote: ``eth_account`` rejected a transaction field.
        """
        account = self.require_account("sign transaction")
        try:
            signed = account.sign_transaction(tx.to_tx_params())
        except Exception as e:
            raise MalformedQuote(f"Cannot sign transaction: {e}", operation="sign transaction") from e
        return bytes(signed.raw_transaction)

"""
EIP-712 and signature standards shared by the signer and the assembler.

Holds the small, pure pieces of the EIP-712 type system and the ECDSA
signature layout that several modules need to agree on: which type names
are primitive, how array suffixes are stripped, the reserved domain type,
and the 65-byte signature rule.
"""

import re
from typing import Union

from ...engine.exceptions import InvalidSignatureLength, MalformedPayload


# -----------------------------
# EIP-712 type system
# -----------------------------

#: Reserved domain type name. Derived by the signing primitive from ``domain``
#: and never part of the signed message types.
EIP712_DOMAIN_TYPE: str = "EIP712Domain"

_ARRAY_SUFFIX = re.compile(r"(\[\d*\])+$")

_SIZED_INT = re.compile(r"^u?int(\d+)?$")
_SIZED_BYTES = re.compile(r"^bytes(\d+)?$")

_ATOMIC_TYPES = {"address", "bool", "string"}


def strip_array_suffix(type_name: str) -> str:
    """
    Remove any array notation from an EIP-712 field type.

    ``"Permit[]"`` -> ``"Permit"``, ``"uint256[2][]"`` -> ``"uint256"``.
    """
    return _ARRAY_SUFFIX.sub("", type_name.strip())


def is_primitive_type(type_name: str) -> bool:
    """
    Whether ``type_name`` (without array suffix) is an EIP-712 atomic or
    dynamic primitive: ``address``, ``bool``, ``string``, ``bytes``,
    ``bytes1``..``bytes32``, ``int8``..``int256`` and ``uint8``..``uint256``
    in steps of 8 (bare ``int``/``uint`` as 256).
    """
    if type_name in _ATOMIC_TYPES:
        return True

    match = _SIZED_INT.match(type_name)
    if match:
        bits = match.group(1)
        return bits is None or (8 <= int(bits) <= 256 and int(bits) % 8 == 0)

    match = _SIZED_BYTES.match(type_name)
    if match:
        size = match.group(1)
        return size is None or 1 <= int(size) <= 32

    return False


def is_integer_type(type_name: str) -> bool:
    return bool(_SIZED_INT.match(type_name)) and is_primitive_type(type_name)


# -----------------------------
# ECDSA signature layout
# -----------------------------

#: r (32) || s (32) || v (1)
SIGNATURE_LENGTH: int = 65

#: Width of the big-endian length word placed before an embedded signature.
LENGTH_PREFIX_BYTES: int = 32


def hex_to_bytes(value: Union[str, bytes, bytearray], *, field: str = "value") -> bytes:
    """
    Normalise a 0x-prefixed (or bare) hex string or raw bytes to ``bytes``.

    Raises:
        MalformedPayload: If the string is not valid hex of even length.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)

    text = value.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    if len(text) % 2:
        raise MalformedPayload(f"{field} has odd hex length ({len(text)} chars)")
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise MalformedPayload(f"{field} is not valid hex: {e}") from e


def ensure_signature_length(signature: Union[str, bytes, bytearray]) -> bytes:
    """
    Return the signature as bytes, enforcing the 65-byte invariant.

    Raises:
        InvalidSignatureLength: For any length other than 65 bytes.
    """
    sig_bytes = hex_to_bytes(signature, field="signature")
    if len(sig_bytes) != SIGNATURE_LENGTH:
        raise InvalidSignatureLength(
            f"Signature must be exactly {SIGNATURE_LENGTH} bytes, got {len(sig_bytes)}",
            length=len(sig_bytes),
        )
    return sig_bytes

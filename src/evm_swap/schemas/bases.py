"""
Base Schema Models for the Swap Pipeline

This module defines the fundamental base class and shared field types that
all other schema models build on.

Core Classes:
    - CanonicalModel: Pydantic base model with alias-based JSON serialization
    - TransactionStatus: Lifecycle status of a broadcast transaction
    - IntLike / StrLike: Lenient field types for upstream quote payloads

Dependencies:
    - pydantic: For data validation and serialization
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict
from typing_extensions import Annotated


def to_int(value: Any) -> Any:
    """
    Coerce an upstream numeric value to ``int``.

    Quote providers serialize integers as JSON numbers, decimal strings
    (``"1000000"``) or 0x-prefixed hex strings (``"0x0f4240"``); all three
    are accepted. ``None`` passes through so optional fields stay optional.
    Anything else is returned unchanged for pydantic to reject.
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            if text.lower().startswith("0x"):
                return int(text, 16)
            return int(text, 10)
        except ValueError:
            return value
    return value


def to_str(value: Any) -> Any:
    """Coerce plain numbers to ``str`` (e.g. a domain ``version`` of ``1``)."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


IntLike = Annotated[int, BeforeValidator(to_int)]
StrLike = Annotated[str, BeforeValidator(to_str)]


class CanonicalModel(BaseModel):
    """
    Pydantic base model with wire-format serialization.

    Fields are declared in snake_case with camelCase aliases matching the
    upstream wire format; both spellings are accepted on input
    (``populate_by_name``), and ``to_dict()`` emits the aliases.

    Example:
        class MyModel(CanonicalModel):
            gas_price: int = Field(..., alias="gasPrice")

        MyModel(gasPrice="100").to_dict()   # {"gasPrice": 100}
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to a JSON-compatible dictionary using wire aliases.

        ``None`` values are dropped so optional keys are absent rather than
        ``null``.

        Returns:
            Dict[str, Any]: Dictionary with all populated model fields.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TransactionStatus(str, Enum):
    """
    Enumeration of on-chain transaction statuses.

    Attributes:
        NOT_FOUND: The node does not know the transaction
        PENDING: Known to the node but not yet mined
        SUCCESS: Mined with receipt status 1
        FAILED: Mined but reverted (receipt status 0)
    """
    NOT_FOUND = "not_found"
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"

    @classmethod
    def from_receipt_status(cls, status: Optional[int]) -> "TransactionStatus":
        return cls.SUCCESS if status == 1 else cls.FAILED

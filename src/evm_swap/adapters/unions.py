"""
Swap Quote Polymorphic Types (Discriminated Union)

Defines the quote union and resolves it once, at the boundary. Every
downstream component receives either a :class:`DirectSwapQuote` or a
:class:`GaslessSwapQuote` and never re-inspects raw dicts.

Quote providers do not send an explicit tag, so the discriminator is a
callable: an explicit ``kind`` wins, otherwise a ``transaction`` block
means ``"direct"`` and a ``trade`` block means ``"gasless"``.

Example usage:
    quote = parse_quote({"transaction": {...}, "permit2": {...}})
    isinstance(quote, DirectSwapQuote)   # True

    quote = parse_quote({"trade": {...}, "approval": None})
    isinstance(quote, GaslessSwapQuote)  # True
"""

from typing import Any, Dict, Literal, Optional, Union

from pydantic import Discriminator, Tag, TypeAdapter, ValidationError
from typing_extensions import Annotated

from ..engine.exceptions import MalformedQuote
from .evm.schemas import DirectSwapQuote, GaslessSwapQuote


def _quote_kind(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        kind = value.get("kind")
        if kind:
            return kind
        if value.get("transaction") is not None:
            return "direct"
        if value.get("trade") is not None:
            return "gasless"
        return None
    return getattr(value, "kind", None)


# Discriminated Union for swap quote types
# Direct: user signs and broadcasts the transaction (pays gas)
# Gasless: user signs typed data only, a relayer broadcasts
SwapQuoteTypes = Annotated[
    Union[
        Annotated[DirectSwapQuote, Tag("direct")],
        Annotated[GaslessSwapQuote, Tag("gasless")],
    ],
    Discriminator(
        _quote_kind,
        custom_error_type="quote_variant_missing",
        custom_error_message="Quote contains neither 'transaction' nor 'trade'",
    ),
]

_QUOTE_ADAPTER: TypeAdapter = TypeAdapter(SwapQuoteTypes)

_MODELS_BY_KIND = {
    "direct": DirectSwapQuote,
    "gasless": GaslessSwapQuote,
}


def parse_quote(
    payload: Union[Dict[str, Any], DirectSwapQuote, GaslessSwapQuote],
    kind: Optional[Literal["direct", "gasless"]] = None,
) -> Union[DirectSwapQuote, GaslessSwapQuote]:
    """
    Validate a raw quote into its concrete model.

    Args:
        payload: Raw quote dict (or an already parsed model).
        kind: Require a specific variant instead of discriminating.

    Returns:
        The parsed quote model.

    Raises:
        MalformedQuote: The payload is not a dict, matches no variant, or
            fails validation of the selected variant.
    """
    if isinstance(payload, (DirectSwapQuote, GaslessSwapQuote)):
        if kind is not None and payload.kind != kind:
            raise MalformedQuote(f"Expected a {kind} quote, got a {payload.kind} quote")
        return payload

    if not isinstance(payload, dict):
        raise MalformedQuote(f"Quote must be an object, got {type(payload).__name__}")

    try:
        if kind is not None:
            if kind == "direct" and payload.get("transaction") is None:
                raise MalformedQuote("No transaction data found in quote")
            if kind == "gasless" and payload.get("trade") is None:
                raise MalformedQuote("Trade data is required in gasless quote")
            return _MODELS_BY_KIND[kind].model_validate({**payload, "kind": kind})
        return _QUOTE_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise MalformedQuote(
            f"Invalid quote: {e.error_count()} validation error(s)",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e

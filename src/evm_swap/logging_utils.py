"""
Logging Helpers

Process-wide logging setup for the swap pipeline plus helpers that keep key
material and signatures out of log lines.

Level resolution (first match wins):
    1. The ``level`` argument of :func:`configure_logging` (``SwapConfig.log_level``).
    2. The ``LOG_LEVEL`` environment variable.
    3. ``DEBUG=1`` in the environment selects ``DEBUG``.
    4. ``INFO``.

Usage:
    from evm_swap.logging_utils import get_logger, log_json

    logger = get_logger(__name__)
    log_json(logger, logging.DEBUG, "Submitting gasless swap", body)
"""

import logging
import os
from typing import Any, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_CONFIGURED = False


def _resolve_level(level: Optional[str] = None) -> int:
    level = level or os.getenv("LOG_LEVEL")
    if level:
        return getattr(logging, level.upper(), logging.INFO)
    if os.getenv("DEBUG") == "1":
        return logging.DEBUG
    return logging.INFO


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install the root handler once per process.

    Later calls are no-ops, so a host application that configured logging
    first keeps its own handlers and the hub can call this unconditionally.

    Args:
        level: Level name such as ``"DEBUG"``; unknown names fall back to INFO.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logging.basicConfig(level=_resolve_level(level), format=LOG_FORMAT)
    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Module logger under the ``evm_swap`` namespace when no name is given."""
    return logging.getLogger(name or "evm_swap")


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------

_SENSITIVE_EXACT_KEYS = frozenset({
    "private_key",
    "privatekey",
    "mnemonic",
    "secret",
    "signature",
    "raw_transaction",
    "rawtransaction",
})
_SENSITIVE_SUFFIXES = ("_private_key", "_secret", "_signature", "_api_key")
_SENSITIVE_SUBSTRINGS = ("privatekey", "private_key")


def _should_redact(key: str) -> bool:
    key_lower = key.lower()
    if key_lower in _SENSITIVE_EXACT_KEYS:
        return True
    if key_lower.endswith(_SENSITIVE_SUFFIXES):
        return True
    return any(token in key_lower for token in _SENSITIVE_SUBSTRINGS)


def redact(value: Any, *, sensitive: bool = False) -> Any:
    """
    Return a copy of ``value`` that is safe to log.

    Dicts are walked recursively; once a key is judged sensitive (for example
    ``signature`` or ``*_private_key``) everything below it is replaced by a
    length marker. Bytes are never logged verbatim, only their length.

    Args:
        value: Any JSON-like structure (dicts, lists, tuples, scalars).
        sensitive: Treat ``value`` itself as sensitive.

    Returns:
        Any: Structure of the same shape with sensitive leaves replaced.

    Example:
        redact({"chainId": 8453, "trade": {"signature": "0x11..."}})
        # {"chainId": 8453, "trade": {"signature": "<redacted:132 chars>"}}
    """
    if isinstance(value, dict):
        return {
            key: redact(item, sensitive=(sensitive or _should_redact(str(key))))
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        items = [redact(item, sensitive=sensitive) for item in value]
        return items if isinstance(value, list) else tuple(items)
    if isinstance(value, str):
        return f"<redacted:{len(value)} chars>" if sensitive else value
    if isinstance(value, (bytes, bytearray)):
        return f"<redacted:bytes:{len(value)}>" if sensitive else f"<bytes:{len(value)}>"
    return value


def short_hex(value: str, keep: int = 10) -> str:
    """Abbreviate a hex string for log lines (``0xabcdef12…``)."""
    if len(value) <= keep + 2:
        return value
    return value[: keep + 2] + "..."


def log_json(logger: logging.Logger, level: int, message: str, data: Any) -> None:
    """
    Log ``data`` after :func:`redact`, skipping the walk when ``level`` is
    disabled for ``logger``.
    """
    if logger.isEnabledFor(level):
        logger.log(level, "%s: %s", message, redact(data))

"""
Error Taxonomy and Logging Helpers Test Suite

Usage:
    pytest tests/test_engine/test_exceptions.py -v
"""

import logging

import pytest

from evm_swap.engine.exceptions import (
    ConfirmationTimeout,
    MalformedPayload,
    SwapError,
    UnsupportedChain,
    UnsupportedTransactionType,
    wrap_errors,
)
from evm_swap.logging_utils import log_json, redact, short_hex


class TestSwapError:

    def test_within_keeps_class_and_attributes(self):
        error = UnsupportedTransactionType("no legacy", chain_id=10, details={"x": 1})

        wrapped = error.within("sign and broadcast transaction")

        assert isinstance(wrapped, UnsupportedTransactionType)
        assert isinstance(wrapped, UnsupportedChain)
        assert wrapped.chain_id == 10
        assert wrapped.details == {"x": 1}
        assert str(wrapped) == "Failed to sign and broadcast transaction: no legacy"
        assert error.message == "no legacy"

    def test_to_dict(self):
        error = ConfirmationTimeout("late", tx_hash="0xabc", timeout_ms=1000, operation="wait")

        assert error.to_dict() == {
            "error": "ConfirmationTimeout",
            "message": "late",
            "operation": "wait",
            "details": {},
        }
        assert error.tx_hash == "0xabc"

    def test_wrap_errors_relabels(self):
        with pytest.raises(MalformedPayload) as exc_info:
            with wrap_errors("sign gasless trade"):
                raise MalformedPayload("bad types")

        assert str(exc_info.value) == "Failed to sign gasless trade: bad types"
        assert exc_info.value.operation == "sign gasless trade"
        assert isinstance(exc_info.value.__cause__, MalformedPayload)

    def test_wrap_errors_ignores_foreign_exceptions(self):
        with pytest.raises(KeyError):
            with wrap_errors("anything"):
                raise KeyError("x")

    def test_common_root(self):
        assert issubclass(UnsupportedTransactionType, SwapError)


class TestLoggingHelpers:

    def test_redact_sensitive_keys(self):
        data = {"private_key": "0x" + "ab" * 32, "signature": "0x11", "chainId": 8453, "nested": {"api_secret": "s"}}

        redacted = redact(data)

        assert redacted["private_key"].startswith("<redacted:")
        assert redacted["signature"].startswith("<redacted:")
        assert redacted["nested"]["api_secret"].startswith("<redacted:")
        assert redacted["chainId"] == 8453

    def test_redact_keeps_shape(self):
        data = {"raw_transaction": b"\x01\x02", "legs": ({"mnemonic": "a b c"}, "0xabc"), "blob": b"\x00"}

        redacted = redact(data)

        assert redacted["raw_transaction"] == "<redacted:bytes:2>"
        assert isinstance(redacted["legs"], tuple)
        assert redacted["legs"][0]["mnemonic"] == "<redacted:5 chars>"
        assert redacted["legs"][1] == "0xabc"
        assert redacted["blob"] == "<bytes:1>"

    def test_short_hex(self):
        assert short_hex("0x" + "ab" * 32) == "0xababababab..."
        assert short_hex("0xabc") == "0xabc"

    def test_log_json_redacts(self, caplog):
        logger = logging.getLogger("evm_swap.test")
        with caplog.at_level(logging.DEBUG, logger="evm_swap.test"):
            log_json(logger, logging.DEBUG, "Submitting", {"signature": "0x" + "11" * 65})

        assert "11" * 65 not in caplog.text
        assert "<redacted:" in caplog.text

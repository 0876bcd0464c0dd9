"""
Chain Registry and Submission Tracker Test Suite

Tests for chain lookup, RPC error translation and transaction tracking:
- Supported / unsupported chains and endpoint selection
- NetworkError naming the failing operation
- Status polling: not_found, pending, success, failed
- Confirmation waits, including timeouts that leave the transaction pending

Usage:
    pytest tests/test_adapter/test_registry.py -v
"""

import pytest

from test_mocks import (
    MOCK_BLOCK_NUMBER,
    MOCK_CHAIN_ID,
    MOCK_GAS_LIMIT,
    MOCK_NONCE,
    MOCK_PRIVATE_KEY,
    MOCK_SETTLER,
    MOCK_TX_HASH,
    MOCK_UNSUPPORTED_CHAIN_ID,
    MOCK_USDC_BASE,
    MOCK_WALLET_ADDRESS,
    MockWeb3Provider,
    create_mock_registry,
)

from evm_swap.adapters.evm.config import ChainEndpointConfig
from evm_swap.adapters.evm.constants import PERMIT2_ADDRESS
from evm_swap.adapters.evm.registry import ChainRegistry
from evm_swap.adapters.evm.schemas import AssembledTransaction
from evm_swap.adapters.evm.signatures import TypedDataSigner
from evm_swap.adapters.evm.tracker import SubmissionTracker
from evm_swap.engine.exceptions import (
    ConfirmationTimeout,
    MalformedQuote,
    NetworkError,
    NoCredential,
    UnsupportedChain,
    UnsupportedTransactionType,
)
from evm_swap.schemas.bases import TransactionStatus


# ========================================================================
# Test Fixtures
# ========================================================================

@pytest.fixture
def mock_web3():
    return MockWeb3Provider()


@pytest.fixture
def registry(mock_web3):
    return create_mock_registry(mock_web3)


@pytest.fixture
def tracker(registry):
    return SubmissionTracker(registry, TypedDataSigner(private_key=MOCK_PRIVATE_KEY))


def build_tx(nonce=MOCK_NONCE):
    return AssembledTransaction(
        to=MOCK_SETTLER,
        data="0xabcdef",
        value=0,
        gas_limit=MOCK_GAS_LIMIT,
        gas_price=1_000_000_000,
        nonce=nonce,
        chain_id=MOCK_CHAIN_ID,
    )


# ========================================================================
# Test Classes
# ========================================================================

class TestChainLookup:
    """Test chain id to provider resolution."""

    def test_supported_chains(self, registry):
        assert registry.supported_chains() == [MOCK_CHAIN_ID]
        assert registry.is_chain_supported(MOCK_CHAIN_ID)
        assert registry.is_chain_supported(str(MOCK_CHAIN_ID))
        assert not registry.is_chain_supported(MOCK_UNSUPPORTED_CHAIN_ID)
        assert not registry.is_chain_supported("base")

    def test_unsupported_chain(self, registry):
        with pytest.raises(UnsupportedChain) as exc_info:
            registry.get_web3(MOCK_UNSUPPORTED_CHAIN_ID)
        assert exc_info.value.chain_id == MOCK_UNSUPPORTED_CHAIN_ID
        assert exc_info.value.details["supported_chains"] == [MOCK_CHAIN_ID]

    def test_legacy_not_accepted(self, mock_web3):
        registry = create_mock_registry(mock_web3, legacy=False)

        with pytest.raises(UnsupportedTransactionType):
            registry.require_legacy_transactions(MOCK_CHAIN_ID)

    def test_preferred_endpoint_selected_once(self):
        seen = []
        chains = {
            MOCK_CHAIN_ID: ChainEndpointConfig(
                chain_id=MOCK_CHAIN_ID,
                preferred_rpc_url="https://base-mainnet.g.alchemy.com/v2/key",
                fallback_rpc_url="https://mainnet.base.org",
            ),
            1: ChainEndpointConfig(chain_id=1, fallback_rpc_url="https://rpc.flashbots.net"),
        }

        ChainRegistry(chains, web3_factory=lambda endpoint, timeout: seen.append(endpoint.rpc_url) or MockWeb3Provider())

        assert sorted(seen) == ["https://base-mainnet.g.alchemy.com/v2/key", "https://rpc.flashbots.net"]

    def test_endpoint_requires_url(self):
        with pytest.raises(ValueError):
            ChainEndpointConfig(chain_id=MOCK_CHAIN_ID)


class TestRpcCalls:
    """Test RPC reads and the translation of failures."""

    @pytest.mark.asyncio
    async def test_nonce_reads_pending(self, registry, mock_web3):
        nonce = await registry.get_nonce(MOCK_CHAIN_ID, MOCK_WALLET_ADDRESS.lower())

        assert nonce == MOCK_NONCE
        mock_web3.eth.get_transaction_count.assert_awaited_once_with(MOCK_WALLET_ADDRESS, "pending")

    @pytest.mark.asyncio
    async def test_allowance(self, registry, mock_web3):
        mock_web3.allowance = 42

        assert await registry.get_allowance(MOCK_CHAIN_ID, MOCK_USDC_BASE, MOCK_WALLET_ADDRESS, PERMIT2_ADDRESS) == 42

    @pytest.mark.asyncio
    async def test_nonce_failure_is_network_error(self, registry, mock_web3):
        mock_web3.eth.get_transaction_count.side_effect = ConnectionError("connection reset")

        with pytest.raises(NetworkError) as exc_info:
            await registry.get_nonce(MOCK_CHAIN_ID, MOCK_WALLET_ADDRESS)

        assert exc_info.value.operation == "get_nonce"
        assert "connection reset" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_send_failure_is_network_error(self, registry, mock_web3):
        mock_web3.send_error = ValueError("nonce too low")

        with pytest.raises(NetworkError, match="nonce too low") as exc_info:
            await registry.send_raw_transaction(MOCK_CHAIN_ID, b"\x01")
        assert exc_info.value.operation == "send_raw_transaction"

    @pytest.mark.asyncio
    async def test_invalid_owner_address(self, registry):
        with pytest.raises(MalformedQuote):
            await registry.get_nonce(MOCK_CHAIN_ID, "0xnot-an-address")


class TestTransactionStatus:
    """Test the non-blocking status poll."""

    @pytest.mark.asyncio
    async def test_not_found(self, registry):
        report = await registry.get_transaction_status(MOCK_CHAIN_ID, MOCK_TX_HASH)

        assert report.status == TransactionStatus.NOT_FOUND
        assert report.transaction is None

    @pytest.mark.asyncio
    async def test_pending(self, registry, mock_web3):
        mock_web3.add_pending_transaction()

        report = await registry.get_transaction_status(MOCK_CHAIN_ID, MOCK_TX_HASH)

        assert report.status == TransactionStatus.PENDING
        assert report.transaction.nonce == MOCK_NONCE
        assert report.transaction.block_number is None

    @pytest.mark.asyncio
    async def test_success(self, registry, mock_web3):
        mock_web3.add_pending_transaction()
        mock_web3.mine(status=1, block_number=MOCK_BLOCK_NUMBER - 2)

        report = await registry.get_transaction_status(MOCK_CHAIN_ID, MOCK_TX_HASH)

        assert report.status == TransactionStatus.SUCCESS
        assert report.transaction.is_success()
        assert report.transaction.confirmations == 3
        assert report.transaction.gas_used == 150_000
        assert report.transaction.logs[0]["address"] == MOCK_USDC_BASE

    @pytest.mark.asyncio
    async def test_reverted(self, registry, mock_web3):
        mock_web3.add_pending_transaction()
        mock_web3.mine(status=0)

        report = await registry.get_transaction_status(MOCK_CHAIN_ID, MOCK_TX_HASH)

        assert report.status == TransactionStatus.FAILED
        assert report.to_dict()["status"] == "failed"


class TestConfirmationWait:
    """Test the blocking confirmation wait."""

    @pytest.mark.asyncio
    async def test_mined_transaction(self, tracker, mock_web3):
        mock_web3.add_pending_transaction()
        mock_web3.mine()

        record = await tracker.await_confirmation(MOCK_CHAIN_ID, MOCK_TX_HASH, confirmations=1, timeout_ms=1000)

        assert record.status == TransactionStatus.SUCCESS
        assert record.block_number == MOCK_BLOCK_NUMBER
        assert record.confirmations == 1

    @pytest.mark.asyncio
    async def test_reverted_transaction_is_returned(self, tracker, mock_web3):
        mock_web3.add_pending_transaction()
        mock_web3.mine(status=0)

        record = await tracker.await_confirmation(MOCK_CHAIN_ID, MOCK_TX_HASH, timeout_ms=1000)

        assert record.status == TransactionStatus.FAILED

    @pytest.mark.asyncio
    async def test_waits_for_confirmations(self, tracker, mock_web3):
        mock_web3.add_pending_transaction()
        mock_web3.mine(block_number=MOCK_BLOCK_NUMBER)

        with pytest.raises(ConfirmationTimeout):
            await tracker.await_confirmation(MOCK_CHAIN_ID, MOCK_TX_HASH, confirmations=3, timeout_ms=200)

    @pytest.mark.asyncio
    async def test_timeout_leaves_transaction_pending(self, tracker, mock_web3):
        mock_web3.add_pending_transaction()

        with pytest.raises(ConfirmationTimeout) as exc_info:
            await tracker.await_confirmation(MOCK_CHAIN_ID, MOCK_TX_HASH, confirmations=1, timeout_ms=1000)

        assert exc_info.value.tx_hash == MOCK_TX_HASH
        assert exc_info.value.timeout_ms == 1000
        assert mock_web3.sent_transactions == []

        report = await tracker.get_status(MOCK_CHAIN_ID, MOCK_TX_HASH)
        assert report.status == TransactionStatus.PENDING


class TestBroadcast:
    """Test signing and sending through the tracker."""

    @pytest.mark.asyncio
    async def test_broadcast_returns_record(self, tracker, mock_web3):
        record = await tracker.broadcast(MOCK_CHAIN_ID, build_tx())

        assert record.hash.startswith("0x")
        assert record.from_address == MOCK_WALLET_ADDRESS
        assert record.nonce == MOCK_NONCE
        assert record.status is None
        assert len(mock_web3.sent_transactions) == 1

    @pytest.mark.asyncio
    async def test_broadcast_without_credential(self, registry, mock_web3):
        tracker = SubmissionTracker(registry, TypedDataSigner())

        with pytest.raises(NoCredential):
            await tracker.broadcast(MOCK_CHAIN_ID, build_tx())
        mock_web3.eth.send_raw_transaction.assert_not_awaited()

"""
Swap Pipeline Test Mocks Module

Provides mock data and utilities for testing the swap pipeline without
blockchain connectivity.

Key Components:
    - Mock addresses, private keys and chain ids
    - Realistic Permit2, gasless approval and gasless trade typed data
    - Quote factories for direct and gasless swaps
    - Mock Web3 instance with simulated RPC responses and a pending pool
    - Helper to build a ChainRegistry around a mock Web3

Usage:
    from test_mocks import (
        create_direct_quote,
        MockWeb3Provider,
        create_mock_registry,
    )

    web3_mock = MockWeb3Provider(allowance=500_000)
    registry = create_mock_registry(web3_mock)
"""

import copy
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, Mock

from eth_account import Account
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from evm_swap.adapters.evm.config import ChainEndpointConfig, SwapConfig
from evm_swap.adapters.evm.constants import PERMIT2_ADDRESS
from evm_swap.adapters.evm.registry import ChainRegistry


# ========================================================================
# Mock Blockchain Constants
# ========================================================================

# Test private keys (do not use in production!)
MOCK_PRIVATE_KEY = "0x1234567890123456789012345678901234567890123456789012345678901234"
MOCK_OTHER_PRIVATE_KEY = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcd"

MOCK_WALLET_ADDRESS = AsyncWeb3.to_checksum_address(Account.from_key(MOCK_PRIVATE_KEY).address)

# Chain ids
MOCK_CHAIN_ID = 8453
MOCK_UNSUPPORTED_CHAIN_ID = 999999

# Contracts
MOCK_USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
MOCK_SETTLER = AsyncWeb3.to_checksum_address("0x0d0e364aa7852291883c162b22d6d81f6355428f")
MOCK_RELAYER = AsyncWeb3.to_checksum_address("0x1234567890123456789012345678901234567890")

# Amounts
MOCK_SELL_AMOUNT = 1_000_000
MOCK_ALLOWANCE_LOW = 500_000

# Gas and block data
MOCK_GAS_LIMIT = 300_000
MOCK_GAS_PRICE = 1_000_000_000
MOCK_GAS_ESTIMATE = 50_000
MOCK_BLOCK_NUMBER = 12_345_678
MOCK_NONCE = 7

MOCK_TX_HASH = "0xabcdef1234567890abcdef1234567890abcdef1234567890abcdef1234567890"
MOCK_BLOCK_HASH = "0x" + "11" * 32

MOCK_CALLDATA = "0xabcdef"
MOCK_RPC_URL = "https://rpc.test.invalid"
MOCK_RELAY_URL = "https://relay.test.invalid"


# ========================================================================
# Mock Typed Data
# ========================================================================

_EIP712_DOMAIN_PERMIT2 = [
    {"name": "name", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]


def create_permit2_eip712(
    amount: int = MOCK_SELL_AMOUNT,
    chain_id: int = MOCK_CHAIN_ID,
    include_primary_type: bool = True,
) -> Dict[str, Any]:
    """
    Create a Permit2 ``PermitTransferFrom`` payload as a quote provider
    serialises it: uint256 values as decimal strings and the domain type
    listed in ``types``.
    """
    payload = {
        "types": {
            "EIP712Domain": copy.deepcopy(_EIP712_DOMAIN_PERMIT2),
            "PermitTransferFrom": [
                {"name": "permitted", "type": "TokenPermissions"},
                {"name": "spender", "type": "address"},
                {"name": "nonce", "type": "uint256"},
                {"name": "deadline", "type": "uint256"},
            ],
            "TokenPermissions": [
                {"name": "token", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
        },
        "domain": {
            "name": "Permit2",
            "chainId": chain_id,
            "verifyingContract": PERMIT2_ADDRESS,
        },
        "message": {
            "permitted": {"token": MOCK_USDC_BASE, "amount": str(amount)},
            "spender": MOCK_SETTLER,
            "nonce": "2241959297937691820908574931991575",
            "deadline": "1718669420",
        },
    }
    if include_primary_type:
        payload["primaryType"] = "PermitTransferFrom"
    return payload


def create_gasless_approval_eip712(chain_id: int = MOCK_CHAIN_ID) -> Dict[str, Any]:
    """EIP-2612 ``Permit`` payload without ``primaryType`` (single root)."""
    return {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "Permit": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "nonce", "type": "uint256"},
                {"name": "deadline", "type": "uint256"},
            ],
        },
        "domain": {
            "name": "USD Coin",
            "version": "2",
            "chainId": chain_id,
            "verifyingContract": MOCK_USDC_BASE,
        },
        "message": {
            "owner": MOCK_WALLET_ADDRESS,
            "spender": PERMIT2_ADDRESS,
            "value": str(2**256 - 1),
            "nonce": "0",
            "deadline": "1718669420",
        },
    }


def create_gasless_trade_eip712(
    chain_id: int = MOCK_CHAIN_ID,
    include_primary_type: bool = True,
) -> Dict[str, Any]:
    """
    Gasless ``Trade`` payload whose ``types`` also declares an unrelated
    root type, so the primary type cannot be inferred.
    """
    payload = {
        "types": {
            "EIP712Domain": copy.deepcopy(_EIP712_DOMAIN_PERMIT2),
            "Trade": [
                {"name": "maker", "type": "address"},
                {"name": "order", "type": "Order"},
                {"name": "fees", "type": "Fee[]"},
            ],
            "Order": [
                {"name": "sellToken", "type": "address"},
                {"name": "sellAmount", "type": "uint256"},
                {"name": "minBuyAmount", "type": "uint256"},
            ],
            "Fee": [
                {"name": "recipient", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "Unrelated": [
                {"name": "memo", "type": "string"},
            ],
        },
        "domain": {
            "name": "Settler",
            "chainId": chain_id,
            "verifyingContract": MOCK_SETTLER,
        },
        "message": {
            "maker": MOCK_WALLET_ADDRESS,
            "order": {
                "sellToken": MOCK_USDC_BASE,
                "sellAmount": str(MOCK_SELL_AMOUNT),
                "minBuyAmount": "400000000000000",
            },
            "fees": [
                {"recipient": MOCK_RELAYER, "amount": "1500"},
            ],
        },
    }
    if include_primary_type:
        payload["primaryType"] = "Trade"
    return payload


# ========================================================================
# Mock Quotes
# ========================================================================

def create_direct_quote(
    *,
    with_permit2: bool = True,
    gas: Optional[str] = str(MOCK_GAS_LIMIT),
    gas_price: Optional[str] = str(MOCK_GAS_PRICE),
    chain_id: Optional[int] = MOCK_CHAIN_ID,
    sell_amount: int = MOCK_SELL_AMOUNT,
) -> Dict[str, Any]:
    """Create a direct-swap quote dict as returned by the quote provider."""
    transaction: Dict[str, Any] = {
        "to": MOCK_SETTLER,
        "data": MOCK_CALLDATA,
        "value": "0",
    }
    if gas is not None:
        transaction["gas"] = gas
    if gas_price is not None:
        transaction["gasPrice"] = gas_price

    quote: Dict[str, Any] = {
        "sellToken": MOCK_USDC_BASE,
        "sellAmount": str(sell_amount),
        "transaction": transaction,
        "issues": {"allowance": {"actual": "0", "spender": PERMIT2_ADDRESS}},
    }
    if chain_id is not None:
        quote["chainId"] = chain_id
    if with_permit2:
        quote["permit2"] = {
            "type": "Permit2",
            "hash": "0x" + "ab" * 32,
            "eip712": create_permit2_eip712(amount=sell_amount),
        }
    return quote


def create_gasless_quote(*, with_approval: bool = False) -> Dict[str, Any]:
    """Create a gasless quote dict; ``approval`` is null unless requested."""
    return {
        "trade": {
            "type": "settler_metatransaction",
            "hash": "0x" + "cd" * 32,
            "eip712": create_gasless_trade_eip712(),
        },
        "approval": {
            "type": "permit",
            "hash": "0x" + "ef" * 32,
            "eip712": create_gasless_approval_eip712(),
        } if with_approval else None,
    }


# ========================================================================
# Mock Web3
# ========================================================================

async def _resolved(value: Any) -> Any:
    return value


class MockContract:
    """
    Mock ERC-20 contract exposing ``functions.allowance(...).call()``.
    """

    def __init__(self, provider: "MockWeb3Provider"):
        self.functions = Mock()

        def allowance(owner, spender):
            call = Mock()
            if provider.allowance_error is not None:
                call.call = AsyncMock(side_effect=provider.allowance_error)
            else:
                call.call = AsyncMock(return_value=provider.allowance)
            return call

        self.functions.allowance = Mock(side_effect=allowance)


class MockEth:
    """
    Mock ``web3.eth`` namespace.

    ``gas_price`` and ``block_number`` are awaitable properties as in
    ``AsyncWeb3``. Broadcast transactions enter a pending pool, so the
    pending nonce increases with every successful ``send_raw_transaction``.
    """

    def __init__(self, provider: "MockWeb3Provider"):
        self._provider = provider

        self.get_transaction_count = AsyncMock(side_effect=self._get_transaction_count)
        self.send_raw_transaction = AsyncMock(side_effect=self._send_raw_transaction)
        self.get_transaction = AsyncMock(side_effect=self._get_transaction)
        self.get_transaction_receipt = AsyncMock(side_effect=self._get_transaction_receipt)
        self.estimate_gas = AsyncMock(side_effect=self._estimate_gas)
        self.contract = Mock(side_effect=lambda address, abi: MockContract(provider))

    @property
    def gas_price(self):
        return _resolved(self._provider.gas_price)

    @property
    def block_number(self):
        return _resolved(self._provider.block_number)

    async def _get_transaction_count(self, address, block_identifier="latest"):
        return self._provider.tx_count

    async def _send_raw_transaction(self, raw_transaction):
        if self._provider.send_error is not None:
            raise self._provider.send_error
        self._provider.sent_transactions.append(bytes(raw_transaction))
        self._provider.tx_count += 1
        return Web3.keccak(raw_transaction)

    async def _get_transaction(self, tx_hash):
        if tx_hash not in self._provider.transactions:
            raise TransactionNotFound(f"Transaction with hash: '{tx_hash}' not found.")
        return self._provider.transactions[tx_hash]

    async def _get_transaction_receipt(self, tx_hash):
        if tx_hash not in self._provider.receipts:
            raise TransactionNotFound(f"Transaction with hash: '{tx_hash}' not found.")
        return self._provider.receipts[tx_hash]

    async def _estimate_gas(self, tx):
        if self._provider.estimate_error is not None:
            raise self._provider.estimate_error
        return self._provider.gas_estimate


class MockWeb3Provider:
    """
    Mock AsyncWeb3 instance for testing.

    Attributes mirror chain state and can be changed between calls:
    ``allowance``, ``tx_count``, ``transactions``, ``receipts``. Setting
    one of the ``*_error`` attributes makes the matching RPC call raise.
    """

    def __init__(
        self,
        *,
        allowance: int = 0,
        tx_count: int = MOCK_NONCE,
        gas_price: int = MOCK_GAS_PRICE,
        gas_estimate: int = MOCK_GAS_ESTIMATE,
        block_number: int = MOCK_BLOCK_NUMBER,
    ):
        self.allowance = allowance
        self.tx_count = tx_count
        self.gas_price = gas_price
        self.gas_estimate = gas_estimate
        self.block_number = block_number

        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.sent_transactions = []

        self.allowance_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.estimate_error: Optional[Exception] = None

        self.eth = MockEth(self)

    def add_pending_transaction(self, tx_hash: str = MOCK_TX_HASH, nonce: int = MOCK_NONCE) -> None:
        self.transactions[tx_hash] = create_mock_transaction(tx_hash, nonce=nonce)

    def mine(self, tx_hash: str = MOCK_TX_HASH, status: int = 1, block_number: Optional[int] = None) -> None:
        self.receipts[tx_hash] = create_mock_receipt(tx_hash, status=status, block_number=block_number or self.block_number)


def create_mock_transaction(tx_hash: str = MOCK_TX_HASH, nonce: int = MOCK_NONCE) -> Dict[str, Any]:
    return {
        "hash": tx_hash,
        "from": MOCK_WALLET_ADDRESS,
        "to": MOCK_SETTLER,
        "value": 0,
        "gas": MOCK_GAS_LIMIT,
        "gasPrice": MOCK_GAS_PRICE,
        "nonce": nonce,
        "chainId": MOCK_CHAIN_ID,
        "blockNumber": None,
    }


def create_mock_receipt(
    tx_hash: str = MOCK_TX_HASH,
    status: int = 1,
    block_number: int = MOCK_BLOCK_NUMBER,
) -> Dict[str, Any]:
    return {
        "transactionHash": tx_hash,
        "blockNumber": block_number,
        "blockHash": MOCK_BLOCK_HASH,
        "status": status,
        "gasUsed": 150_000,
        "effectiveGasPrice": MOCK_GAS_PRICE,
        "from": MOCK_WALLET_ADDRESS,
        "to": MOCK_SETTLER,
        "logs": [
            {
                "address": MOCK_USDC_BASE,
                "topics": ["0x" + "00" * 32],
                "data": "0x",
                "logIndex": 0,
            }
        ],
    }


# ========================================================================
# Component helpers
# ========================================================================

def create_chain_config(chain_id: int = MOCK_CHAIN_ID, legacy: bool = True) -> ChainEndpointConfig:
    return ChainEndpointConfig(chain_id=chain_id, fallback_rpc_url=MOCK_RPC_URL, legacy_transactions=legacy)


def create_mock_registry(
    web3_mock: MockWeb3Provider,
    chain_id: int = MOCK_CHAIN_ID,
    legacy: bool = True,
    poll_interval: float = 0.01,
) -> ChainRegistry:
    """Build a ChainRegistry whose only chain is served by ``web3_mock``."""
    return ChainRegistry(
        {chain_id: create_chain_config(chain_id, legacy)},
        poll_interval=poll_interval,
        web3_factory=lambda endpoint, timeout: web3_mock,
    )


def create_swap_config(private_key: Optional[str] = MOCK_PRIVATE_KEY, **kwargs) -> SwapConfig:
    kwargs.setdefault("chains", {MOCK_CHAIN_ID: create_chain_config()})
    kwargs.setdefault("relay_url", MOCK_RELAY_URL)
    return SwapConfig(private_key=private_key, **kwargs)

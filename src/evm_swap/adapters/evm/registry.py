"""
EVM Chain Registry

Maps chain ids to connected ``AsyncWeb3`` handles and wraps the handful of
JSON-RPC reads and writes the swap pipeline performs:

    - pending-inclusive nonce
    - ERC-20 ``allowance``
    - gas price and gas estimation
    - raw transaction broadcast
    - transaction / receipt lookup and confirmation polling

Endpoint selection happens once per chain, at construction: the preferred
(keyed) URL when configured, otherwise the public fallback. Every RPC
failure is translated into :class:`NetworkError` naming the failing
operation; ``TransactionNotFound`` is treated as a state, not an error.
"""

import asyncio
import json
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional
from urllib.parse import urlsplit

from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

from ...engine.exceptions import (
    ConfirmationTimeout,
    MalformedQuote,
    NetworkError,
    SwapError,
    UnsupportedChain,
    UnsupportedTransactionType,
)
from ...logging_utils import get_logger, short_hex
from ...schemas.bases import TransactionStatus
from .config import ChainEndpointConfig, SwapConfig
from .constants import (
    DEFAULT_CONFIRMATION_TIMEOUT_MS,
    DEFAULT_CONFIRMATIONS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RPC_TIMEOUT_SECONDS,
)
from .ERC20_ABI import get_allowance_abi
from .schemas import TransactionRecord, TransactionStatusReport

logger = get_logger(__name__)

Web3Factory = Callable[[ChainEndpointConfig, float], AsyncWeb3]


def _default_web3_factory(endpoint: ChainEndpointConfig, timeout: float) -> AsyncWeb3:
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
        endpoint.rpc_url,
        request_kwargs={"timeout": timeout}
    ))


@contextmanager
def _rpc_errors(operation: str, chain_id: int) -> Iterator[None]:
    """Translate library exceptions raised inside the block into ``NetworkError``."""
    try:
        yield
    except SwapError:
        raise
    except Exception as e:
        raise NetworkError(
            f"{operation} failed on chain {chain_id}: {e}",
            operation=operation,
            details={"chain_id": chain_id, "exception": type(e).__name__},
        ) from e


def to_checksum(address: str, field: str) -> str:
    """
    Checksum an address supplied by a quote or a caller.

    Raises:
        MalformedQuote: If ``address`` is not a valid 20-byte hex address.
    """
    try:
        return AsyncWeb3.to_checksum_address(address)
    except (ValueError, TypeError) as e:
        raise MalformedQuote(f"Invalid {field} address: {address!r}") from e


def _hex(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return AsyncWeb3.to_hex(value)


def _to_plain(value: Any) -> Any:
    """Convert AttributeDict / HexBytes structures into JSON-compatible data."""
    return json.loads(AsyncWeb3.to_json(value))


def _mask_url(url: str) -> str:
    # Keyed provider URLs carry the API key in the path.
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


class ChainRegistry:
    """
    Chain id -> RPC handle registry.

    Attributes:
        poll_interval: Seconds between receipt polls in
            :meth:`wait_for_confirmation`.

    Example:
        registry = ChainRegistry.from_config(SwapConfig.from_env())
        nonce = await registry.get_nonce(8453, "0xabc...")
        report = await registry.get_transaction_status(8453, tx_hash)
    """

    def __init__(
        self,
        chains: Mapping[int, ChainEndpointConfig],
        *,
        request_timeout: float = DEFAULT_RPC_TIMEOUT_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        web3_factory: Optional[Web3Factory] = None,
    ) -> None:
        self.poll_interval = poll_interval
        self._endpoints: Dict[int, ChainEndpointConfig] = dict(chains)
        factory = web3_factory or _default_web3_factory

        self._web3: Dict[int, AsyncWeb3] = {}
        for chain_id, endpoint in sorted(self._endpoints.items()):
            self._web3[chain_id] = factory(endpoint, request_timeout)
            logger.debug(
                "Chain %s provider initialized (%s): %s",
                chain_id,
                "preferred" if endpoint.uses_preferred else "fallback",
                _mask_url(endpoint.rpc_url),
            )

    @classmethod
    def from_config(cls, config: SwapConfig, **kwargs) -> "ChainRegistry":
        return cls(
            config.chains,
            request_timeout=config.rpc_timeout,
            poll_interval=config.poll_interval,
            **kwargs,
        )

    # -----------------------------
    # Lookup
    # -----------------------------

    def supported_chains(self) -> List[int]:
        return sorted(self._web3)

    def is_chain_supported(self, chain_id: Any) -> bool:
        try:
            return int(chain_id) in self._web3
        except (TypeError, ValueError):
            return False

    def get_web3(self, chain_id: int) -> AsyncWeb3:
        """
        Return the ``AsyncWeb3`` handle for ``chain_id``.

        Raises:
            UnsupportedChain: If no endpoint is configured for the chain.
        """
        web3 = self._web3.get(int(chain_id))
        if web3 is None:
            raise UnsupportedChain(
                f"No provider configured for chain ID {chain_id}",
                chain_id=chain_id,
                details={"supported_chains": self.supported_chains()},
            )
        return web3

    def require_legacy_transactions(self, chain_id: int) -> None:
        """
        Raises:
            UnsupportedChain: Chain not configured.
            UnsupportedTransactionType: Chain does not accept type-0 transactions.
        """
        self.get_web3(chain_id)
        if not self._endpoints[int(chain_id)].legacy_transactions:
            raise UnsupportedTransactionType(
                f"Chain {chain_id} does not accept legacy (type-0) transactions",
                chain_id=chain_id,
            )

    # -----------------------------
    # Reads
    # -----------------------------

    async def get_nonce(self, chain_id: int, address: str) -> int:
        """Transaction count for ``address`` including pending transactions."""
        web3 = self.get_web3(chain_id)
        checksum = to_checksum(address, "owner")
        with _rpc_errors("get_nonce", chain_id):
            return int(await web3.eth.get_transaction_count(checksum, "pending"))

    async def get_allowance(self, chain_id: int, token: str, owner: str, spender: str) -> int:
        """
        Read ERC-20 ``allowance(owner, spender)`` on ``token``.

        Returns:
            int: Allowance in the token's smallest units.
        """
        web3 = self.get_web3(chain_id)
        checksum_token = to_checksum(token, "token")
        checksum_owner = to_checksum(owner, "owner")
        checksum_spender = to_checksum(spender, "spender")

        with _rpc_errors("get_allowance", chain_id):
            contract = web3.eth.contract(address=checksum_token, abi=get_allowance_abi())
            allowance = await contract.functions.allowance(checksum_owner, checksum_spender).call()
            return int(allowance)

    async def get_gas_price(self, chain_id: int) -> int:
        web3 = self.get_web3(chain_id)
        with _rpc_errors("get_gas_price", chain_id):
            return int(await web3.eth.gas_price)

    async def estimate_gas(self, chain_id: int, tx: Dict[str, Any]) -> int:
        web3 = self.get_web3(chain_id)
        with _rpc_errors("estimate_gas", chain_id):
            return int(await web3.eth.estimate_gas(tx))

    # -----------------------------
    # Writes
    # -----------------------------

    async def send_raw_transaction(self, chain_id: int, raw_transaction: bytes) -> str:
        """
        Broadcast a signed transaction envelope.

        Returns:
            str: 0x-prefixed transaction hash.
        """
        web3 = self.get_web3(chain_id)
        with _rpc_errors("send_raw_transaction", chain_id):
            tx_hash = await web3.eth.send_raw_transaction(raw_transaction)
        tx_hash_hex = _hex(tx_hash)
        logger.info("Transaction broadcast on chain %s: %s", chain_id, tx_hash_hex)
        return tx_hash_hex

    # -----------------------------
    # Status
    # -----------------------------

    async def get_transaction_status(self, chain_id: int, tx_hash: str) -> TransactionStatusReport:
        """
        Non-blocking status poll.

        ``not_found`` if the node does not know the hash, ``pending`` if it
        is known but has no receipt, otherwise ``success``/``failed`` from
        the receipt status.
        """
        web3 = self.get_web3(chain_id)

        with _rpc_errors("get_transaction", chain_id):
            try:
                tx = await web3.eth.get_transaction(tx_hash)
            except TransactionNotFound:
                tx = None
        if not tx:
            return TransactionStatusReport(status=TransactionStatus.NOT_FOUND)

        record = self._record_from_transaction(tx, tx_hash)

        with _rpc_errors("get_transaction_receipt", chain_id):
            try:
                receipt = await web3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                receipt = None
        if not receipt:
            return TransactionStatusReport(status=TransactionStatus.PENDING, transaction=record)

        with _rpc_errors("get_block_number", chain_id):
            current_block = int(await web3.eth.block_number)
        record = self._enrich_with_receipt(record, receipt, current_block)
        return TransactionStatusReport(status=record.status, transaction=record)

    async def wait_for_confirmation(
        self,
        chain_id: int,
        tx_hash: str,
        confirmations: int = DEFAULT_CONFIRMATIONS,
        timeout_ms: int = DEFAULT_CONFIRMATION_TIMEOUT_MS,
    ) -> TransactionRecord:
        """
        Poll until ``tx_hash`` is mined with at least ``confirmations``
        blocks on top (the inclusion block counts as the first).

        A reverted transaction is returned with ``status=failed``; it is a
        terminal state, not an error.

        Raises:
            ConfirmationTimeout: ``timeout_ms`` elapsed first. The
                transaction is not cancelled or re-broadcast.
            NetworkError: An RPC call failed while polling.
        """
        web3 = self.get_web3(chain_id)
        required = max(1, int(confirmations))

        async def _poll() -> TransactionRecord:
            while True:
                with _rpc_errors("get_transaction_receipt", chain_id):
                    try:
                        receipt = await web3.eth.get_transaction_receipt(tx_hash)
                    except TransactionNotFound:
                        receipt = None

                if receipt and receipt.get("blockNumber") is not None:
                    with _rpc_errors("get_block_number", chain_id):
                        current_block = int(await web3.eth.block_number)
                    if current_block - int(receipt["blockNumber"]) + 1 >= required:
                        with _rpc_errors("get_transaction", chain_id):
                            tx = await web3.eth.get_transaction(tx_hash)
                        record = self._record_from_transaction(tx, tx_hash)
                        return self._enrich_with_receipt(record, receipt, current_block)

                await asyncio.sleep(self.poll_interval)

        logger.info(
            "Waiting for %s on chain %s (%s confirmation(s), timeout %sms)",
            short_hex(tx_hash), chain_id, required, timeout_ms,
        )
        started = time.monotonic()
        try:
            record = await asyncio.wait_for(_poll(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            raise ConfirmationTimeout(
                f"Transaction {tx_hash} not confirmed within {timeout_ms}ms",
                tx_hash=tx_hash,
                timeout_ms=timeout_ms,
                operation="wait_for_confirmation",
            ) from e

        logger.info(
            "Transaction %s %s in block %s after %.1fs",
            short_hex(tx_hash), record.status.value, record.block_number,
            time.monotonic() - started,
        )
        return record

    # -----------------------------
    # Record construction
    # -----------------------------

    @staticmethod
    def _record_from_transaction(tx: Optional[Mapping[str, Any]], tx_hash: str) -> TransactionRecord:
        if not tx:
            return TransactionRecord(hash=tx_hash)
        return TransactionRecord(
            hash=_hex(tx.get("hash")) or tx_hash,
            from_address=tx.get("from"),
            to=tx.get("to"),
            value=tx.get("value"),
            gas_limit=tx.get("gas"),
            gas_price=tx.get("gasPrice"),
            nonce=tx.get("nonce"),
            chain_id=tx.get("chainId"),
        )

    @staticmethod
    def _enrich_with_receipt(
        record: TransactionRecord,
        receipt: Mapping[str, Any],
        current_block: int,
    ) -> TransactionRecord:
        block_number = receipt.get("blockNumber")
        confirmations = None
        if block_number is not None:
            confirmations = max(0, current_block - int(block_number) + 1)

        return record.model_copy(update={
            "block_number": block_number,
            "block_hash": _hex(receipt.get("blockHash")),
            "status": TransactionStatus.from_receipt_status(receipt.get("status")),
            "gas_used": receipt.get("gasUsed"),
            "effective_gas_price": receipt.get("effectiveGasPrice"),
            "confirmations": confirmations,
            "logs": [_to_plain(log) for log in receipt.get("logs") or []],
        })

"""
Gasless Relayer HTTP Client

Forwards signed gasless swaps to the relayer API and polls relayer-side
trade status. The relayer answers with an envelope of the form
``{"success": bool, "data": {...}, "error": "..."}``.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..adapters.evm.constants import DEFAULT_RPC_TIMEOUT_SECONDS
from ..adapters.evm.schemas import GaslessSubmission
from ..engine.exceptions import ConfigurationError, NetworkError
from ..logging_utils import get_logger, log_json

logger = get_logger(__name__)

SUBMIT_PATH = "/api/swap/gasless/submit"
STATUS_PATH = "/api/swap/gasless/status/{trade_hash}"


class GaslessRelayClient(httpx.AsyncClient):
    """
    Extended httpx.AsyncClient bound to the relayer base URL.

    Fully compatible with httpx.AsyncClient and usable as an async context
    manager.

    Usage:
        ```python
        async with GaslessRelayClient("https://relay.example.com") as relay:
            result = await relay.submit(submission)
            status = await relay.get_status(result["tradeHash"], 8453)
        ```
    """

    def __init__(
        self,
        relay_url: Optional[str],
        *,
        timeout: float = DEFAULT_RPC_TIMEOUT_SECONDS,
        **kwargs,
    ):
        """
        Initialize the client.

        Args:
            relay_url: Relayer base URL.
            timeout: Request timeout in seconds.
            **kwargs: All standard httpx.AsyncClient arguments (headers, transport, etc.)

        Raises:
            ConfigurationError: If ``relay_url`` is empty.
        """
        if not relay_url:
            raise ConfigurationError("Gasless relay URL is not configured", operation="create relay client")
        kwargs.setdefault("headers", {"Content-Type": "application/json"})
        super().__init__(base_url=relay_url.rstrip("/"), timeout=timeout, **kwargs)

    async def submit(self, submission: GaslessSubmission) -> Dict[str, Any]:
        """
        Submit a signed gasless swap.

        Returns:
            Dict[str, Any]: Relayer ``data`` payload, including ``tradeHash``.

        Raises:
            NetworkError: Transport failure, non-2xx status, or
                ``success: false``.
        """
        body = submission.to_dict()
        log_json(logger, logging.DEBUG, "Submitting gasless swap", body)
        operation = "submit gasless swap"
        try:
            response = await self.post(SUBMIT_PATH, json=body)
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to {operation}: {e}", operation=operation) from e
        return self._unwrap(response, operation)

    async def get_status(self, trade_hash: str, chain_id: int) -> Dict[str, Any]:
        """
        Fetch relayer-side status of a gasless trade.

        Raises:
            NetworkError: Transport failure, non-2xx status, or
                ``success: false``.
        """
        operation = "get gasless status"
        try:
            response = await self.get(
                STATUS_PATH.format(trade_hash=trade_hash),
                params={"chainId": chain_id},
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to {operation}: {e}", operation=operation) from e
        return self._unwrap(response, operation)

    @staticmethod
    def _unwrap(response: httpx.Response, operation: str) -> Dict[str, Any]:
        if not response.is_success:
            raise NetworkError(
                f"Failed to {operation}: HTTP {response.status_code}: {response.reason_phrase}",
                operation=operation,
                details={"status_code": response.status_code, "body": response.text[:200]},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise NetworkError(
                f"Failed to {operation}: response is not valid JSON",
                operation=operation,
            ) from e

        if not isinstance(payload, dict):
            raise NetworkError(f"Failed to {operation}: unexpected response shape", operation=operation)

        if "success" in payload:
            if not payload.get("success"):
                raise NetworkError(
                    f"Failed to {operation}: {payload.get('error') or 'request failed'}",
                    operation=operation,
                )
            return payload.get("data") or {}
        return payload

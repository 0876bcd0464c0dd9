"""
ERC20 Allowance Smart Contract ABI Module

This module provides the simplified ``allowance`` and ``approve`` ABIs used
for reads and for encoding approval calldata.

Usage:
    from ERC20_ABI import get_allowance_abi, get_approve_abi, build_approve_calldata

    # Query allowance
    contract = web3.eth.contract(address=token, abi=get_allowance_abi())
    current = await contract.functions.allowance(owner, spender).call()

    # Approve
    data = build_approve_calldata(spender, amount)
"""

from typing import Any, Dict, List

from eth_utils import to_checksum_address
from web3 import Web3


def get_allowance_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC20 `allowance(owner, spender)`.

    Returns:
        List[Dict[str, Any]]: ABI for ERC20 `allowance` function.

    Example:
        abi = get_allowance_abi()
        contract = web3.eth.contract(address=token_address, abi=abi)
        allowance = await contract.functions.allowance(owner, spender).call()
    """
    return [
        {
            "name": "allowance",
            "type": "function",
            "stateMutability": "view",
            "inputs": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
            ],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def get_approve_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC20 `approve(spender, amount)`.

    Returns:
        List[Dict[str, Any]]: ABI for ERC20 `approve` function.
    """
    return [
        {
            "name": "approve",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "spender", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        }
    ]


# Unbound contract used only for ABI encoding; never sends requests.
_APPROVE_CONTRACT = Web3().eth.contract(abi=get_approve_abi())


def build_approve_calldata(spender: str, amount: int) -> str:
    """
    Encode ``approve(spender, amount)`` calldata without a node round-trip.

    Args:
        spender: Address being approved.
        amount: Allowance in token smallest units.

    Returns:
        str: 0x-prefixed calldata (4-byte selector ``0x095ea7b3`` followed by
        the two ABI-encoded words).
    """
    return _APPROVE_CONTRACT.encode_abi(
        "approve", args=[to_checksum_address(spender), int(amount)]
    )

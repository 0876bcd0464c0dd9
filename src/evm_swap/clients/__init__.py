from .relay_client import GaslessRelayClient

__all__ = ["GaslessRelayClient"]

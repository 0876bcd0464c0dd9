from .bases import CanonicalModel, TransactionStatus, IntLike, StrLike

__all__ = ["CanonicalModel", "TransactionStatus", "IntLike", "StrLike"]

"""Kernel infrastructure services (write side)."""

from stock_kernel.services.key_lock import KeyLockRegistry, get_key_locks, lock_aggregate, lock_row
from stock_kernel.services.sequence_service import SequenceService

__all__ = [
    "KeyLockRegistry",
    "SequenceService",
    "get_key_locks",
    "lock_aggregate",
    "lock_row",
]

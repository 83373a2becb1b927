"""
Store package - the shared in-memory state.

    rwlock.py    ReadWriteLock (shared reads, exclusive writes)
    keyvalue.py  KeyValueStore, ConfigStore and the Store that owns both
"""

from .rwlock import ReadWriteLock
from .keyvalue import LockedMap, KeyValueStore, ConfigStore, Store

__all__ = [
    "ReadWriteLock",
    "LockedMap",
    "KeyValueStore",
    "ConfigStore",
    "Store",
]

"""
=============================================================================
IN-MEMORY STORES
=============================================================================

FluxDB keeps two independent string → string maps:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                              Store                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ┌──────────────────────────┐      ┌──────────────────────────┐   │
    │   │      KeyValueStore       │      │       ConfigStore        │   │
    │   │  SET / GET / DEL         │      │  CONFIG SET / CONFIG GET │   │
    │   │  ReadWriteLock #1        │      │  ReadWriteLock #2        │   │
    │   └──────────────────────────┘      └──────────────────────────┘   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each map has its own lock, so a CONFIG SET never waits for a SET and vice
versa. Every public method takes the lock for exactly one map operation:
there is no cross-key atomicity (DEL k1 k2 is two exclusive sections).

The Store value is created by the server and handed to the dispatcher; there
is no module-level singleton.

=============================================================================
LOCKING DISCIPLINE
=============================================================================

    reads  (get, items, __contains__, __len__)  → shared lock
    writes (set, delete)                        → exclusive lock

Python strings are immutable, so a reader either sees the old object or the
new one, never a half-written value. The lock still matters for
check-then-act sequences such as SET ... NX.

=============================================================================
"""

from typing import Dict, List, Mapping, Optional, Tuple

from .rwlock import ReadWriteLock


class LockedMap:
    """A dict guarded by a ReadWriteLock."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = ReadWriteLock()

    def get(self, key: str) -> Optional[str]:
        """
        Look up a key.

        Returns:
            The stored value, or None if the key is absent. An empty string
            is a real value and is returned as "".
        """
        with self._lock.read_locked():
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        """Insert or overwrite a key."""
        with self._lock.write_locked():
            self._data[key] = value

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if something was removed."""
        with self._lock.write_locked():
            if key in self._data:
                del self._data[key]
                return True
            return False

    def items(self) -> List[Tuple[str, str]]:
        """Snapshot of all pairs, taken under one shared section."""
        with self._lock.read_locked():
            return list(self._data.items())

    def __contains__(self, key: object) -> bool:
        with self._lock.read_locked():
            return key in self._data

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._data)


class KeyValueStore(LockedMap):
    """
    The user keyspace.

    SET semantics:

        set(k, v)            always writes, returns True
        set(k, v, nx=True)   writes only if k is absent
        set(k, v, xx=True)   writes only if k is present

    The existence check and the write happen inside one exclusive section,
    so two concurrent SET ... NX calls can never both succeed.
    """

    def set(self, key: str, value: str, *, nx: bool = False, xx: bool = False) -> bool:
        if nx and xx:
            raise ValueError("nx and xx are mutually exclusive")

        with self._lock.write_locked():
            exists = key in self._data
            if (nx and exists) or (xx and not exists):
                return False
            self._data[key] = value
            return True


class ConfigStore(LockedMap):
    """
    Runtime configuration namespace.

    Seeded with DEFAULTS; the server overrides the seed with its own
    ServerConfig values (see ServerConfig.runtime_settings). `port` and
    `bind` are read once by the bootstrap code; changing them later with
    CONFIG SET does not move an already-listening socket. `max_clients`
    and `timeout` are advisory and not enforced.
    """

    DEFAULTS: Dict[str, str] = {
        "port": "6379",
        "bind": "0.0.0.0",
        "max_clients": "10000",
        "timeout": "0",
    }

    def __init__(self, overrides: Optional[Mapping[str, str]] = None):
        seed = dict(self.DEFAULTS)
        seed.update(overrides or {})
        super().__init__(seed)

    def match(self, pattern: str) -> List[Tuple[str, str]]:
        """
        Resolve a CONFIG GET pattern.

        "*" returns every pair; anything else is an exact name lookup that
        yields one pair or nothing.
        """
        if pattern == "*":
            return self.items()

        value = self.get(pattern)
        if value is None:
            return []
        return [(pattern, value)]


class Store:
    """
    Owner of both maps.

    This is the object the dispatcher and the server share by reference.
    """

    def __init__(
        self,
        data: Optional[KeyValueStore] = None,
        config: Optional[ConfigStore] = None,
    ):
        self.data = data if data is not None else KeyValueStore()
        self.config = config if config is not None else ConfigStore()

    @classmethod
    def with_settings(cls, settings: Mapping[str, str]) -> "Store":
        """Create an empty keyspace and a config namespace seeded from settings."""
        return cls(config=ConfigStore(settings))

    # ─────────────────────────────────────────────────────────────────────
    # KEYSPACE
    # ─────────────────────────────────────────────────────────────────────

    def set(self, key: str, value: str, *, nx: bool = False, xx: bool = False) -> bool:
        return self.data.set(key, value, nx=nx, xx=xx)

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def delete(self, key: str) -> bool:
        return self.data.delete(key)

    # ─────────────────────────────────────────────────────────────────────
    # CONFIGURATION
    # ─────────────────────────────────────────────────────────────────────

    def set_config(self, name: str, value: str) -> None:
        self.config.set(name, value)

    def get_config(self, name: str) -> Optional[str]:
        return self.config.get(name)

"""
Unit tests for the keyspace and configuration stores.
"""

import threading

import pytest

from fluxdb.store import ConfigStore, KeyValueStore, Store


class TestKeyValueStore:

    def test_set_then_get(self):
        kv = KeyValueStore()
        assert kv.set("foo", "bar") is True
        assert kv.get("foo") == "bar"

    def test_get_missing_is_none(self):
        assert KeyValueStore().get("missing") is None

    def test_empty_string_is_a_value(self):
        kv = KeyValueStore()
        kv.set("k", "")

        assert kv.get("k") == ""
        assert "k" in kv

    def test_set_overwrites(self):
        kv = KeyValueStore()
        kv.set("foo", "bar")
        kv.set("foo", "baz")

        assert kv.get("foo") == "baz"
        assert len(kv) == 1

    def test_nx_only_writes_absent_keys(self):
        kv = KeyValueStore()

        assert kv.set("foo", "1", nx=True) is True
        assert kv.set("foo", "2", nx=True) is False
        assert kv.get("foo") == "1"

    def test_xx_only_writes_present_keys(self):
        kv = KeyValueStore()

        assert kv.set("foo", "1", xx=True) is False
        assert kv.get("foo") is None

        kv.set("foo", "1")
        assert kv.set("foo", "2", xx=True) is True
        assert kv.get("foo") == "2"

    def test_nx_and_xx_together(self):
        with pytest.raises(ValueError):
            KeyValueStore().set("k", "v", nx=True, xx=True)

    def test_delete(self):
        kv = KeyValueStore()
        kv.set("foo", "bar")

        assert kv.delete("foo") is True
        assert kv.delete("foo") is False
        assert kv.get("foo") is None

    def test_items_is_a_snapshot(self):
        kv = KeyValueStore()
        kv.set("a", "1")
        snapshot = kv.items()
        kv.set("b", "2")

        assert snapshot == [("a", "1")]

    def test_concurrent_nx_has_one_winner(self):
        kv = KeyValueStore()
        results = []
        barrier = threading.Barrier(8)

        def worker(n):
            barrier.wait()
            results.append(kv.set("lock", str(n), nx=True))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1


class TestConfigStore:

    def test_defaults(self):
        config = ConfigStore()

        assert config.get("port") == "6379"
        assert config.get("bind") == "0.0.0.0"
        assert config.get("max_clients") == "10000"
        assert config.get("timeout") == "0"

    def test_overrides(self):
        config = ConfigStore({"port": "7000", "extra": "yes"})

        assert config.get("port") == "7000"
        assert config.get("extra") == "yes"
        assert config.get("bind") == "0.0.0.0"

    def test_match_star_returns_everything(self):
        pairs = dict(ConfigStore().match("*"))
        assert set(pairs) == {"port", "bind", "max_clients", "timeout"}

    def test_match_exact(self):
        assert ConfigStore().match("port") == [("port", "6379")]

    def test_match_is_not_a_glob(self):
        assert ConfigStore().match("p*") == []

    def test_match_missing(self):
        assert ConfigStore().match("nope") == []


class TestStore:

    def test_namespaces_are_independent(self):
        store = Store()
        store.set("port", "value")

        assert store.get("port") == "value"
        assert store.get_config("port") == "6379"

    def test_set_config(self):
        store = Store()
        store.set_config("timeout", "30")

        assert store.get_config("timeout") == "30"
        assert store.get("timeout") is None

    def test_with_settings(self):
        store = Store.with_settings({"port": "0", "bind": "127.0.0.1"})

        assert store.get_config("port") == "0"
        assert store.get_config("bind") == "127.0.0.1"
        assert len(store.data) == 0

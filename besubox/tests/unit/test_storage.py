import pytest

from besubox.commands.errors import ConfigurationError, NetworkBusyError, NetworkStateError
from besubox.commands.models import NetworkDescriptor, NetworkState
from besubox.commands.storage import NetworkStore, resolve_storage_root


def test_resolve_storage_root(monkeypatch, tmp_path):
    monkeypatch.delenv("BESUBOX_HOME", raising=False)
    assert str(resolve_storage_root()) == "networks"
    monkeypatch.setenv("BESUBOX_HOME", str(tmp_path))
    assert resolve_storage_root() == tmp_path
    assert resolve_storage_root("explicit") == resolve_storage_root("explicit")
    assert str(resolve_storage_root("explicit")) == "explicit"


def test_descriptor_round_trip(store, scenario_spec, scenario_nodes):
    descriptor = NetworkDescriptor(spec=scenario_spec, nodes=scenario_nodes, state=NetworkState.CREATED)
    store.save_descriptor(descriptor)

    assert store.exists("scenario")
    assert store.load_descriptor("scenario") == descriptor
    assert store.list_networks() == ["scenario"]


def test_missing_descriptor(store):
    with pytest.raises(NetworkStateError) as exc:
        store.load_descriptor("missing")
    assert exc.value.code == "NETWORK_NOT_FOUND"


def test_corrupt_json(store):
    store.write_text("broken", "network-config.json", "{not json")
    with pytest.raises(ConfigurationError):
        store.load_descriptor("broken")


def test_tracked_networks_skip_unreadable(store, scenario_spec):
    store.save_descriptor(NetworkDescriptor(spec=scenario_spec))
    store.write_text("broken", "network-config.json", "{not json")
    (store.root / ".locks").mkdir()

    assert [d.name for d in store.tracked_networks()] == ["scenario"]
    assert store.tracked_networks(exclude="scenario") == []


def test_remove_is_idempotent(store):
    store.write_text("dev", "miner1/key.priv", "00")
    store.remove("dev", "miner1/key.priv")
    assert store.read_text("dev", "miner1/key.priv") is None
    store.remove("dev", "miner1/key.priv")
    store.remove("dev")
    assert not store.network_path("dev").exists()
    store.remove("dev")


def test_lock_is_exclusive(tmp_path):
    first = NetworkStore(tmp_path)
    second = NetworkStore(tmp_path)
    with first.lock("dev"):
        with pytest.raises(NetworkBusyError):
            with second.lock("dev"):
                pass
        with second.lock("other"):
            pass
    with second.lock("dev"):
        pass

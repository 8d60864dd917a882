"""Tests for the record stores and JSON helpers."""

from pathlib import Path

import pytest
import yaml

from flowpilot.storage import (
    FileRecordStore,
    MemoryRecordStore,
    read_flag,
    read_json,
    write_flag,
    write_json,
)


def test_memory_store_basic_operations() -> None:
    store = MemoryRecordStore()
    store.set("a", "1")
    store.set("b", "2")

    assert store.get("a") == "1"
    assert sorted(store.keys()) == ["a", "b"]

    store.remove("a")
    store.remove("missing")
    assert store.get("a") is None

    store.clear()
    assert store.keys() == []


def test_json_helpers_round_trip() -> None:
    store = MemoryRecordStore()
    write_json(store, "ids", ["1", "3"])

    assert store.get("ids") == '["1", "3"]'
    assert read_json(store, "ids") == ["1", "3"]
    assert read_json(store, "absent", default=[]) == []


def test_read_json_tolerates_corrupt_records() -> None:
    store = MemoryRecordStore({"agents": "{not json"})
    assert read_json(store, "agents", default=[]) == []


def test_flags() -> None:
    store = MemoryRecordStore()
    assert read_flag(store, "walletConnected") is False

    write_flag(store, "walletConnected", True)
    assert store.get("walletConnected") == "true"
    assert read_flag(store, "walletConnected") is True

    write_flag(store, "walletConnected", False)
    assert store.get("walletConnected") is None


def test_file_store_persists_between_instances(tmp_path: Path) -> None:
    path = tmp_path / "records.yaml"
    first = FileRecordStore(path)
    write_json(first, "boughtFleets", [{"id": "fleet-nft-1"}])
    first.set("balance", "750.0")

    second = FileRecordStore(path)
    assert read_json(second, "boughtFleets") == [{"id": "fleet-nft-1"}]
    assert second.get("balance") == "750.0"

    second.remove("balance")
    assert first.get("balance") is None


def test_file_store_writes_plain_yaml_mapping(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "session.yaml"
    store = FileRecordStore(path)
    store.set("hasAgents", "true")

    with open(path, "r", encoding="utf-8") as f:
        assert yaml.safe_load(f) == {"hasAgents": "true"}
    assert list(path.parent.glob("*.yaml")) == [path]


def test_file_store_missing_file_is_empty(tmp_path: Path) -> None:
    store = FileRecordStore(tmp_path / "absent.yaml")
    assert store.get("anything") is None
    assert store.keys() == []


def test_file_store_clear(tmp_path: Path) -> None:
    store = FileRecordStore(tmp_path / "records.yaml")
    store.set("a", "1")
    store.clear()
    assert store.keys() == []


def test_file_store_rejects_corrupt_yaml(tmp_path: Path) -> None:
    path = tmp_path / "records.yaml"
    path.write_text("a: [unclosed\n")

    with pytest.raises(yaml.YAMLError):
        FileRecordStore(path).get("a")

"""
Tests for settings, serialization and the storage backends
"""
import json
import logging
import os
from datetime import datetime

from config import (
    JsonFileStorage,
    MemoryStorage,
    Settings,
    dict_to_group,
    group_to_dict,
    load_settings,
)
from models import PersonStatus
from store import LedgerStore


def populated(storage):
    store = LedgerStore(storage)
    store.create_group("Trip", "Weekend")
    alice = store.add_person("Alice")
    bob = store.add_person("Bob")
    store.add_expense("Hotel", 120.5, alice.id, [alice.id, bob.id], category="Lodging")
    store.remove_person(bob.id)
    return store


class TestSerialization:

    def test_dates_come_back_as_datetimes(self):
        group = populated(MemoryStorage()).active_group

        data = json.loads(json.dumps(group_to_dict(group)))
        restored = dict_to_group(data)

        assert isinstance(data["created_at"], str)
        assert isinstance(restored.created_at, datetime)
        assert isinstance(restored.members[0].created_at, datetime)
        assert isinstance(restored.expenses[0].created_at, datetime)
        assert restored == group

    def test_soft_delete_flag_maps_to_status(self):
        group = populated(MemoryStorage()).active_group
        data = group_to_dict(group)

        assert [m["is_deleted"] for m in data["members"]] == [False, True]
        assert dict_to_group(data).members[1].status is PersonStatus.DELETED

    def test_missing_optional_fields_get_defaults(self):
        g = dict_to_group({
            "id": "g1",
            "name": "Old",
            "members": [{"id": "p1", "name": "Ann"}],
            "expenses": [{"id": "e1", "title": "Tea", "amount": "3", "payer_id": "p1", "participants": ["p1"]}],
            "created_at": "2024-05-01T10:00:00",
        })

        assert g.updated_at == g.created_at
        assert g.created_at.tzinfo is not None
        assert g.members[0].is_active
        assert g.expenses[0].amount == 3.0
        assert g.expenses[0].participants == ("p1",)


class TestJsonFileStorage:

    def test_save_and_reload(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path))
        store = populated(storage)

        reopened = LedgerStore.open(JsonFileStorage(str(tmp_path)))

        assert reopened.groups == store.groups
        assert reopened.active_group_id == store.active_group_id
        with open(tmp_path / "groups.json", encoding="utf-8") as f:
            assert json.load(f)[0]["name"] == "Trip"

    def test_empty_directory(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path / "missing"))

        assert storage.load_groups() == []
        assert storage.load_active_group_id() is None

    def test_corrupt_file_is_logged_and_ignored(self, tmp_path, caplog):
        (tmp_path / "groups.json").write_text("{not json", encoding="utf-8")

        with caplog.at_level(logging.ERROR, logger="config"):
            assert JsonFileStorage(str(tmp_path)).load_groups() == []

        assert "Failed to load groups" in caplog.text

    def test_save_failure_does_not_raise(self, tmp_path, caplog):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        storage = JsonFileStorage(str(blocker))

        with caplog.at_level(logging.ERROR, logger="config"):
            LedgerStore(storage).create_group("Trip")

        assert "Failed to save groups" in caplog.text

    def test_no_temp_files_left_behind(self, tmp_path):
        populated(JsonFileStorage(str(tmp_path)))

        assert sorted(os.listdir(tmp_path)) == ["current_group.json", "groups.json"]

    def test_clear_all(self, tmp_path):
        store = populated(JsonFileStorage(str(tmp_path)))

        store.clear_all()

        assert os.listdir(tmp_path) == []
        assert LedgerStore.open(JsonFileStorage(str(tmp_path))).groups == ()


class TestSettings:

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SPLIT_LEDGER_HOME", str(tmp_path))
        monkeypatch.setenv("SPLIT_LEDGER_LOG_LEVEL", "debug")
        monkeypatch.setenv("SPLIT_LEDGER_CURRENCY", "$")

        s = load_settings()

        assert (s.data_dir, s.log_level, s.currency) == (str(tmp_path), "DEBUG", "$")

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.delenv("SPLIT_LEDGER_HOME", raising=False)
        monkeypatch.delenv("SPLIT_LEDGER_LOG_LEVEL", raising=False)
        monkeypatch.delenv("SPLIT_LEDGER_CURRENCY", raising=False)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

        s = load_settings()

        assert s.data_dir == str(tmp_path / "GroupSplitLedger")
        assert (s.log_level, s.currency) == ("WARNING", "¥")

    def test_explicit_values_win_over_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SPLIT_LEDGER_LOG_LEVEL", "error")

        s = Settings(home=str(tmp_path), log_level=" info ")

        assert (s.data_dir, s.log_level) == (str(tmp_path), "INFO")

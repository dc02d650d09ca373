import json
import os
import stat

import pytest

from llm_gateway.core.credentials import (
    EnvCredentialStore,
    InMemoryCredentialStore,
    JsonFileCredentialStore,
)
from llm_gateway.core.exceptions import StorageError


@pytest.mark.unit
class TestInMemoryCredentialStore:
    def test_unset_values_read_empty(self):
        store = InMemoryCredentialStore()
        assert store.get_string("OPENAI_API_KEY") == ""
        assert store.get_list("OPENAI_API_KEYS_FALLBACK") == []

    def test_list_is_copied_on_write(self):
        store = InMemoryCredentialStore()
        keys = ["a"]
        store.set_list("X", keys)
        keys.append("b")
        assert store.get_list("X") == ["a"]


@pytest.mark.unit
class TestEnvCredentialStore:
    def test_reads_json_array(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEYS_FALLBACK", '["k1", "k2"]')
        assert EnvCredentialStore().get_list("OPENAI_API_KEYS_FALLBACK") == ["k1", "k2"]

    def test_reads_whitespace_separated(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEYS_FALLBACK", "k1  k2\nk3")
        assert EnvCredentialStore().get_list("OPENAI_API_KEYS_FALLBACK") == ["k1", "k2", "k3"]

    def test_invalid_json_reads_empty(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEYS_FALLBACK", '["k1",')
        assert EnvCredentialStore().get_list("OPENAI_API_KEYS_FALLBACK") == []

    def test_set_list_writes_json(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEYS_FALLBACK", "")
        store = EnvCredentialStore()
        store.set_list("OPENAI_API_KEYS_FALLBACK", ["k1", "k2"])
        assert json.loads(os.environ["OPENAI_API_KEYS_FALLBACK"]) == ["k1", "k2"]


@pytest.mark.unit
class TestJsonFileCredentialStore:
    def test_missing_file_reads_empty(self, tmp_path):
        store = JsonFileCredentialStore(tmp_path / "missing.json")
        assert store.get_string("OPENAI_API_KEY") == ""
        assert store.get_list("OPENAI_API_KEYS_FALLBACK") == []

    def test_round_trip_preserves_other_values(self, tmp_path):
        path = tmp_path / "nested" / "credentials.json"
        store = JsonFileCredentialStore(path)
        store.set_string("OPENAI_API_KEY", "primary")
        store.set_list("OPENAI_API_KEYS_FALLBACK", ["k1", "k2"])

        reopened = JsonFileCredentialStore(path)
        assert reopened.get_string("OPENAI_API_KEY") == "primary"
        assert reopened.get_list("OPENAI_API_KEYS_FALLBACK") == ["k1", "k2"]

    @pytest.mark.skipif(not hasattr(os, "fchmod"), reason="POSIX permissions only")
    def test_file_is_private(self, tmp_path):
        path = tmp_path / "credentials.json"
        JsonFileCredentialStore(path).set_string("OPENAI_API_KEY", "secret")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileCredentialStore(path).get_string("OPENAI_API_KEY")

    def test_non_object_raises_storage_error(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileCredentialStore(path).get_list("OPENAI_API_KEYS_FALLBACK")

    def test_non_string_entries_are_ignored(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"OPENAI_API_KEYS_FALLBACK": ["k1", 2, None]}))
        assert JsonFileCredentialStore(path).get_list("OPENAI_API_KEYS_FALLBACK") == ["k1"]

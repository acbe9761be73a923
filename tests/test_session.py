"""Tests for the persisted session store."""

import json

import pytest

from yamlcmd.session import SessionStore, SessionStoreError


class TestSessionStore:
    def test_load_without_file_returns_empty(self, tmp_path):
        store = SessionStore(tmp_path / "missing.json")
        assert store.load() == {}

    def test_save_then_load(self, tmp_path):
        store = SessionStore(tmp_path / "session.json")
        store.save({"token": "abc123", "user": "alice"})
        assert store.load() == {"token": "abc123", "user": "alice"}

    def test_save_overwrites_whole_mapping(self, tmp_path):
        store = SessionStore(tmp_path / "session.json")
        store.save({"a": "1", "b": "2"})
        store.save({"c": "3"})
        assert store.load() == {"c": "3"}

    def test_values_are_stringified(self, tmp_path):
        store = SessionStore(tmp_path / "session.json")
        store.save({"n": 5, "empty": None})
        assert store.load() == {"n": "5", "empty": ""}

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "session.json"
        SessionStore(path).save({"k": "v"})
        assert json.loads(path.read_text()) == {"k": "v"}

    def test_default_location(self, session_file):
        store = SessionStore()
        assert store.path == session_file
        store.save({"k": "v"})
        assert session_file.exists()

    def test_clear(self, tmp_path):
        store = SessionStore(tmp_path / "session.json")
        assert store.clear() is False
        store.save({"k": "v"})
        assert store.clear() is True
        assert store.load() == {}

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("{not json")
        with pytest.raises(SessionStoreError, match="not valid JSON"):
            SessionStore(path).load()

    def test_non_object_raises(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("[1, 2]")
        with pytest.raises(SessionStoreError, match="JSON object"):
            SessionStore(path).load()

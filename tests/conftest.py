"""Shared fixtures for yamlcmd scenario tests."""

import json

import pytest
import yaml
from click.testing import CliRunner

from yamlcmd import core, session
from yamlcmd.executor import RequestResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_home(tmp_path, monkeypatch):
    """Keep tests away from ~/.yamlcmd and ~/.yamlcmd_session.json."""
    fake_global = tmp_path / "fake_home" / ".yamlcmd"
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    session_file = tmp_path / "fake_home" / ".yamlcmd_session.json"
    monkeypatch.setattr(session, "SESSION_FILE", session_file)
    monkeypatch.delenv("YAMLCMD_CONFIG", raising=False)
    monkeypatch.delenv("YAMLCMD_SESSION", raising=False)
    return session_file


@pytest.fixture
def session_file(isolate_home):
    return isolate_home


class MemorySessionStore:
    """In-memory stand-in for SessionStore."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.saves = 0

    def load(self):
        return dict(self.data)

    def save(self, mapping):
        self.data = {k: str(v) for k, v in mapping.items()}
        self.saves += 1

    def clear(self):
        had = bool(self.data)
        self.data = {}
        return had


def write_config(path, commands, variables=None, headers=None, **extra):
    doc = {"commands": commands}
    if variables is not None:
        doc["variables"] = variables
    if headers is not None:
        doc["headers"] = headers
    doc.update(extra)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(doc, sort_keys=False))
    return path


def make_request_result(
    status_code=200,
    body=None,
    headers=None,
    elapsed_ms=42.0,
    error=None,
    raw_text="",
):
    """Factory for mock RequestResult objects."""
    r = RequestResult()
    r.status_code = status_code
    r.headers = headers or {}
    r.body = body
    r.elapsed_ms = elapsed_ms
    r.error = error
    r.raw_text = raw_text or (
        json.dumps(body) if isinstance(body, dict | list) else str(body or "")
    )
    return r

"""
tests/test_cli.py -- Administration commands in main.py.

Each test points the CLI at a throwaway SQLite file under tmp_path.
"""

from __future__ import annotations

import sys

import pytest

import main as cli
from auth.store import UserStore
from core.config import Settings
from records.store import RecordStore


@pytest.fixture
def db_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'afms.db'}"
    monkeypatch.setattr(cli, "get_settings", lambda: Settings(debug=True, database_url=url))
    return url


def _run(monkeypatch, *argv: str) -> None:
    monkeypatch.setattr(sys, "argv", ["afms", *argv])
    cli.main()


def test_init_db_with_seed(db_url, monkeypatch, capsys):
    _run(monkeypatch, "init-db", "--seed")
    out = capsys.readouterr().out
    assert "Sample records loaded." in out
    assert "No admin account yet" in out

    store = RecordStore(db_url)
    try:
        assert store.get_stats()["total_serving"] == 10
    finally:
        store.close()

    _run(monkeypatch, "init-db", "--seed")
    assert "sample data skipped" in capsys.readouterr().out


def test_create_user_prompts_for_password(db_url, monkeypatch, capsys):
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": "s3cret-pass")
    _run(monkeypatch, "create-user", "alice", "--role", "admin")
    assert "Created admin 'alice'" in capsys.readouterr().out

    store = UserStore(db_url)
    try:
        assert store.get_by_username("alice").role == "admin"
    finally:
        store.close()


def test_create_user_rejects_short_password(db_url, monkeypatch, capsys):
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": "123")
    with pytest.raises(SystemExit):
        _run(monkeypatch, "create-user", "alice")
    assert "Password must be at least 6 characters" in capsys.readouterr().out


def test_create_user_duplicate_is_reported(db_url, monkeypatch, capsys):
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": "s3cret-pass")
    _run(monkeypatch, "create-user", "alice")
    with pytest.raises(SystemExit):
        _run(monkeypatch, "create-user", "alice")
    assert "Username already exists" in capsys.readouterr().out

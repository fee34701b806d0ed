"""Tests for src/store.py."""

import yaml

from src.store import StateStore


def test_missing_file_reads_empty(tmp_path):
    store = StateStore(tmp_path / "state.yaml")
    assert store.load_replies() == {}
    assert store.load_selection() == []


def test_reply_roundtrip_keeps_unicode(tmp_path):
    path = tmp_path / "nested" / "state.yaml"
    store = StateStore(path)

    store.save_reply("claude", "Hello")
    store.save_reply("gemini", "你好")

    assert StateStore(path).load_replies() == {"claude": "Hello", "gemini": "你好"}
    assert "你好" in path.read_text(encoding="utf-8")


def test_selection_and_replies_share_the_file(tmp_path):
    store = StateStore(tmp_path / "state.yaml")
    store.save_reply("claude", "Hello")
    store.save_selection(["claude", "gemini"])

    raw = yaml.safe_load((tmp_path / "state.yaml").read_text(encoding="utf-8"))
    assert raw == {"replies": {"claude": "Hello"}, "selected_agents": ["claude", "gemini"]}


def test_unreadable_file_reads_empty(tmp_path):
    path = tmp_path / "state.yaml"
    path.write_text("replies: [unclosed", encoding="utf-8")
    store = StateStore(path)

    assert store.load_replies() == {}

    store.save_selection(["chatgpt"])
    assert store.load_selection() == ["chatgpt"]


def test_path_is_the_configured_file(tmp_path):
    path = tmp_path / "state.yaml"
    store = StateStore(path)

    store.save_selection(["claude"])

    assert store.path == path
    assert store.path.exists()

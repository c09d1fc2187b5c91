import json
import os
import stat
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from knowledge_assistant.errors import PersistenceError
from knowledge_assistant.state.knowledge import KnowledgeBase
from knowledge_assistant.state.store import KnowledgeStore, LoadOutcome


def test_load_missing_file_returns_empty(tmp_path):
    store = KnowledgeStore(tmp_path / "data.json")
    kb, outcome = store.load()
    assert outcome is LoadOutcome.MISSING
    assert kb.identity is None
    assert kb.facts == {}


@pytest.mark.parametrize("content", ["", "{not json", "[1, 2]", '{"knowledge": {"a": 1}}'])
def test_load_corrupt_file_returns_empty(tmp_path, content):
    path = tmp_path / "data.json"
    path.write_text(content, encoding="utf-8")
    kb, outcome = KnowledgeStore(path).load()
    assert outcome is LoadOutcome.CORRUPT
    assert kb.facts == {}
    assert kb.identity is None


def test_load_ignores_unknown_and_missing_fields(tmp_path):
    path = tmp_path / "data.json"
    path.write_text(json.dumps({"knowledge": {"color": "blue"}, "theme": "dark"}))
    kb, outcome = KnowledgeStore(path).load()
    assert outcome is LoadOutcome.LOADED
    assert kb.identity is None
    assert kb.facts == {"color": "blue"}


def test_save_then_load_round_trip(tmp_path):
    store = KnowledgeStore(tmp_path / "nested" / "data.json")
    kb = KnowledgeBase(identity="Ada", facts={"color": "blue", "empty": "", "Key": "Value"})
    store.save(kb)

    loaded, outcome = store.load()
    assert outcome is LoadOutcome.LOADED
    assert loaded.identity == "Ada"
    assert loaded.facts == kb.facts


def test_save_uses_stored_field_names(tmp_path):
    path = tmp_path / "data.json"
    store = KnowledgeStore(path)
    store.save(KnowledgeBase(identity="Ada", facts={"a": "b"}))
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc == {"username": "Ada", "knowledge": {"a": "b"}}
    assert [p.name for p in tmp_path.iterdir()] == ["data.json"]


def test_insert_persists_immediately(tmp_path):
    store = KnowledgeStore(tmp_path / "data.json")
    kb, _ = store.load()
    store.insert(kb, "color", "blue")

    reloaded, _ = store.load()
    assert reloaded.facts == {"color": "blue"}


def test_insert_is_idempotent_and_overwrites(tmp_path):
    store = KnowledgeStore(tmp_path / "data.json")
    kb = KnowledgeBase()
    store.insert(kb, "color", "blue")
    store.insert(kb, "color", "blue")
    assert kb.facts == {"color": "blue"}

    store.insert(kb, "color", "green")
    assert len(kb.facts) == 1
    assert kb.facts["color"] == "green"


def test_insert_rejects_empty_key(tmp_path):
    store = KnowledgeStore(tmp_path / "data.json")
    with pytest.raises(ValueError):
        store.insert(KnowledgeBase(), "", "value")


def test_keys_are_case_sensitive(tmp_path):
    store = KnowledgeStore(tmp_path / "data.json")
    kb = KnowledgeBase()
    store.insert(kb, "Color", "blue")
    store.insert(kb, "color", "green")
    assert kb.facts == {"Color": "blue", "color": "green"}


def test_bulk_insert_skips_empty_keys_and_saves_once(tmp_path, monkeypatch):
    store = KnowledgeStore(tmp_path / "data.json")
    kb = KnowledgeBase(facts={"a": "old"})
    saves = []
    original_save = store.save

    def counting_save(target):
        saves.append(len(target.facts))
        original_save(target)

    monkeypatch.setattr(store, "save", counting_save)
    applied = store.bulk_insert(kb, [("a", "new"), ("", "ignored"), ("b", "2")])

    assert applied == 2
    assert kb.facts == {"a": "new", "b": "2"}
    assert saves == [2]


def test_reset_clears_and_persists(tmp_path):
    store = KnowledgeStore(tmp_path / "data.json")
    kb = KnowledgeBase(identity="Ada", facts={"a": "b"})
    store.save(kb)

    result = store.reset(kb)
    assert result is kb
    assert kb.identity is None
    assert kb.facts == {}

    reloaded, outcome = store.load()
    assert outcome is LoadOutcome.LOADED
    assert reloaded.identity is None
    assert reloaded.facts == {}


def test_set_identity_persists(tmp_path):
    store = KnowledgeStore(tmp_path / "data.json")
    kb = KnowledgeBase()
    store.set_identity(kb, "Ada")
    assert store.load()[0].identity == "Ada"


def test_save_failure_is_surfaced_and_memory_kept(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    store = KnowledgeStore(blocker / "data.json")
    kb = KnowledgeBase()

    with pytest.raises(PersistenceError):
        store.insert(kb, "color", "blue")
    assert kb.facts == {"color": "blue"}


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_save_keeps_existing_file_mode(tmp_path):
    path = tmp_path / "data.json"
    path.write_text("{}", encoding="utf-8")
    path.chmod(0o644)

    KnowledgeStore(path).save(KnowledgeBase(facts={"a": "b"}))
    assert stat.S_IMODE(path.stat().st_mode) == 0o644


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_new_file_follows_umask(tmp_path):
    previous = os.umask(0o022)
    try:
        path = tmp_path / "data.json"
        KnowledgeStore(path).save(KnowledgeBase())
    finally:
        os.umask(previous)
    assert stat.S_IMODE(path.stat().st_mode) == 0o644

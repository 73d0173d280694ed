"""Tests for the key-value tree backends."""
import asyncio

import pytest
from scoreboard.database import InMemoryTree, SQLiteTree, build_tree
from scoreboard.errors import ConfigurationError
from scoreboard.services.firebase import RealtimeDatabase
from scoreboard.settings import Settings


@pytest.fixture(params=["memory", "sqlite"])
def any_tree(request, tmp_path):
    if request.param == "memory":
        return InMemoryTree()
    return SQLiteTree(f"sqlite:///{tmp_path}/tree.db")


def run(coro):
    return asyncio.run(coro)


def test_get_missing_path(any_tree):
    assert run(any_tree.get("/scores")) is None
    assert run(any_tree.get("/scores/nobody")) is None


def test_set_and_get_nested_values(any_tree):
    record = {"key": "bob", "name": "Bob", "device": "mobile", "updatedAt": 1700000000000, "c1": 55.5}
    run(any_tree.set("/scores/bob", record))

    assert run(any_tree.get("/scores/bob")) == record
    assert run(any_tree.get("/scores")) == {"bob": record}
    assert run(any_tree.get("scores/bob/c1")) == 55.5
    assert run(any_tree.get("/scores/bob/c2")) is None


def test_set_replaces_whole_subtree(any_tree):
    """Test set() is a replace, not a field-level patch."""
    run(any_tree.set("/scores/bob", {"name": "Bob", "c1": 55, "c2": 60}))
    run(any_tree.set("/scores/bob", {"name": "Bob", "c2": 58}))

    assert run(any_tree.get("/scores/bob")) == {"name": "Bob", "c2": 58}


def test_set_none_deletes_and_prunes_parents(any_tree):
    run(any_tree.set("/scores/bob", {"name": "Bob"}))
    run(any_tree.set("/scores/bob", None))

    assert run(any_tree.get("/scores/bob")) is None
    assert run(any_tree.get("/scores")) is None


def test_siblings_are_untouched(any_tree):
    run(any_tree.set("/scores/alice", {"name": "Alice", "c1": 40}))
    run(any_tree.set("/scores/bob", {"name": "Bob"}))
    run(any_tree.set("/scores/bob", {"name": "Bobby"}))

    assert run(any_tree.get("/scores")) == {
        "alice": {"name": "Alice", "c1": 40},
        "bob": {"name": "Bobby"},
    }


def test_scalar_ancestor_is_replaced(any_tree):
    run(any_tree.set("/flag", True))
    assert run(any_tree.get("/flag/child")) is None

    run(any_tree.set("/flag/child", "x"))
    assert run(any_tree.get("/flag")) == {"child": "x"}


def test_empty_objects_are_not_stored(any_tree):
    run(any_tree.set("/scores/bob", {"name": None, "extra": {}}))
    assert run(any_tree.get("/scores/bob")) is None


def test_sqlite_tree_persists_across_instances(tmp_path):
    url = f"sqlite:///{tmp_path}/nested/dir/tree.db"
    run(SQLiteTree(url).set("/scores/bob", {"name": "Bob", "c3": 12}))

    assert run(SQLiteTree(url).get("/scores/bob")) == {"name": "Bob", "c3": 12}


def test_in_memory_tree_copies_values():
    tree = InMemoryTree()
    record = {"name": "Bob"}
    run(tree.set("/scores/bob", record))
    record["name"] = "Mallory"

    fetched = run(tree.get("/scores/bob"))
    fetched["name"] = "Eve"
    assert run(tree.get("/scores/bob")) == {"name": "Bob"}


def test_build_tree_selects_backend(tmp_path):
    assert isinstance(build_tree(Settings(STORE_BACKEND="memory")), InMemoryTree)
    assert isinstance(
        build_tree(Settings(STORE_BACKEND="sqlite", SQLITE_DATABASE_URL=f"sqlite:///{tmp_path}/s.db")),
        SQLiteTree,
    )
    firebase = build_tree(Settings(
        STORE_BACKEND="Firebase",
        FIREBASE_DATABASE_URL="https://demo-default-rtdb.firebaseio.com/",
    ))
    assert isinstance(firebase, RealtimeDatabase)
    assert firebase.database_url == "https://demo-default-rtdb.firebaseio.com"
    run(firebase.close())


def test_build_tree_rejects_bad_configuration():
    with pytest.raises(ConfigurationError):
        build_tree(Settings(STORE_BACKEND="firebase", FIREBASE_DATABASE_URL=None))
    with pytest.raises(ConfigurationError):
        build_tree(Settings(STORE_BACKEND="redis"))

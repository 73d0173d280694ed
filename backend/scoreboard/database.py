"""Backing stores for the score tree.

Every store exposes the same two async calls, mirroring the Firebase Realtime
Database: ``get(path)`` returns the JSON value at a slash-separated path (or
None), ``set(path, value)`` replaces the whole subtree there (None deletes).
"""
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple
import asyncio
import copy
import json
import logging
import os

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, col, create_engine, select

from scoreboard.errors import ConfigurationError, StoreError
from scoreboard.settings import Settings

logger = logging.getLogger(__name__)


class KeyValueTree(Protocol):
    async def get(self, path: str) -> Any: ...

    async def set(self, path: str, value: Any) -> None: ...

    async def close(self) -> None: ...


def split_path(path: str) -> List[str]:
    """Split "/scores/bob" into ["scores", "bob"]; the root is []."""
    return [part for part in path.split("/") if part]


def join_path(parts: List[str]) -> str:
    return "/" + "/".join(parts) if parts else ""


def prune(value: Any) -> Any:
    """Drop nulls and empty objects, which the tree never stores."""
    if isinstance(value, list):
        value = {str(i): item for i, item in enumerate(value)}
    if isinstance(value, dict):
        pruned = {}
        for key, child in value.items():
            child = prune(child)
            if child is not None:
                pruned[str(key)] = child
        return pruned or None
    return value


class InMemoryTree:
    """Process-local tree. Values are deep-copied in and out."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._root: Dict[str, Any] = prune(copy.deepcopy(data)) or {}
        # (path, value) of every set() call, oldest first
        self.writes: List[Tuple[str, Any]] = []

    async def get(self, path: str) -> Any:
        node: Any = self._root
        for part in split_path(path):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        if node == {}:
            return None
        return copy.deepcopy(node)

    async def set(self, path: str, value: Any) -> None:
        self.writes.append((path, copy.deepcopy(value)))
        parts = split_path(path)
        value = prune(copy.deepcopy(value))
        if not parts:
            if value is not None and not isinstance(value, dict):
                raise StoreError("The tree root must be an object")
            self._root = value or {}
            return

        node = self._root
        trail = []
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = node[part] = {}
            trail.append((node, part))
            node = child

        if value is None:
            node.pop(parts[-1], None)
            # Remove parents left empty by the delete
            for parent, part in reversed(trail):
                if parent[part]:
                    break
                del parent[part]
        else:
            node[parts[-1]] = value

    async def close(self) -> None:
        return None


class TreeLeaf(SQLModel, table=True):
    """One scalar value of the tree, addressed by its full path."""
    __tablename__ = "tree_leaves"

    path: str = Field(primary_key=True)
    value: str  # JSON-encoded scalar


def _flatten(parts: List[str], value: Any) -> Iterator[Tuple[str, str]]:
    if isinstance(value, dict):
        for key, child in value.items():
            yield from _flatten(parts + [key], child)
    elif value is not None:
        yield join_path(parts), json.dumps(value)


class SQLiteTree:
    """Tree persisted in a local SQLite file, one row per scalar leaf."""

    def __init__(self, database_url: str):
        if database_url.startswith("sqlite:///"):
            directory = os.path.dirname(database_url[len("sqlite:///"):])
            if directory:
                os.makedirs(directory, exist_ok=True)
        self.engine = create_engine(
            database_url, echo=False, connect_args={"check_same_thread": False}
        )
        SQLModel.metadata.create_all(self.engine)

    def _get(self, path: str) -> Any:
        key = join_path(split_path(path))
        with Session(self.engine) as session:
            exact = session.get(TreeLeaf, key) if key else None
            if exact is not None:
                return json.loads(exact.value)
            prefix = key + "/"
            rows = session.exec(
                select(TreeLeaf).where(col(TreeLeaf.path).startswith(prefix, autoescape=True))
            ).all()

        if not rows:
            return None
        result: Dict[str, Any] = {}
        for row in rows:
            node = result
            relative = split_path(row.path[len(prefix):])
            for part in relative[:-1]:
                node = node.setdefault(part, {})
            node[relative[-1]] = json.loads(row.value)
        return result

    def _set(self, path: str, value: Any) -> None:
        parts = split_path(path)
        key = join_path(parts)
        with Session(self.engine) as session:
            stale = session.exec(
                select(TreeLeaf).where(
                    (col(TreeLeaf.path) == key)
                    | col(TreeLeaf.path).startswith(key + "/", autoescape=True)
                )
            ).all()
            # A scalar stored at an ancestor is replaced by the new subtree
            for depth in range(1, len(parts)):
                ancestor = session.get(TreeLeaf, join_path(parts[:depth]))
                if ancestor is not None:
                    stale.append(ancestor)
            for row in stale:
                session.delete(row)
            for leaf_path, encoded in _flatten(parts, prune(value)):
                session.add(TreeLeaf(path=leaf_path, value=encoded))
            session.commit()

    async def get(self, path: str) -> Any:
        try:
            return await asyncio.to_thread(self._get, path)
        except (SQLAlchemyError, ValueError) as e:
            raise StoreError(f"SQLite read failed for {path}: {e}") from e

    async def set(self, path: str, value: Any) -> None:
        if not split_path(path) and value is not None and not isinstance(value, dict):
            raise StoreError("The tree root must be an object")
        try:
            await asyncio.to_thread(self._set, path, value)
        except SQLAlchemyError as e:
            raise StoreError(f"SQLite write failed for {path}: {e}") from e

    async def close(self) -> None:
        self.engine.dispose()


BACKENDS = ("firebase", "sqlite", "memory")


def check_store_settings(config: Settings) -> None:
    """Raise ConfigurationError when the selected backend cannot be built."""
    backend = config.STORE_BACKEND.lower()
    if backend not in BACKENDS:
        raise ConfigurationError(f"Unknown STORE_BACKEND: {config.STORE_BACKEND}")
    if backend == "firebase" and not config.FIREBASE_DATABASE_URL:
        raise ConfigurationError("FIREBASE_DATABASE_URL is required for the firebase backend")


def build_tree(config: Settings) -> KeyValueTree:
    """Create the backing store selected by STORE_BACKEND."""
    check_store_settings(config)
    backend = config.STORE_BACKEND.lower()
    if backend == "firebase":
        from scoreboard.services.firebase import RealtimeDatabase
        logger.info("[STORE] Using Firebase Realtime Database at %s", config.FIREBASE_DATABASE_URL)
        return RealtimeDatabase(
            config.FIREBASE_DATABASE_URL,
            auth_token=config.FIREBASE_AUTH_TOKEN,
            timeout=config.STORE_TIMEOUT_SECONDS,
        )
    if backend == "memory":
        logger.warning("[STORE] Using in-memory tree; scores are lost on restart")
        return InMemoryTree()
    logger.info("[STORE] Using SQLite tree at %s", config.SQLITE_DATABASE_URL)
    return SQLiteTree(config.SQLITE_DATABASE_URL)

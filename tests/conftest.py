"""
tests/conftest.py

An in-memory stand-in for the slice of pymongo the store uses, plus
fixtures that wire it into the app and write `.mdx` sources to tmp_path.
"""
from __future__ import annotations

import copy
import json
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Generator

import pytest
import yaml
from bson import ObjectId
from fastapi.testclient import TestClient

from database import ContentStore, MongoConnection
from ingest import ContentSources


# ────────────────────────── fake mongo ──────────────────────────
def _matches(doc: dict, flt: dict) -> bool:
    for key, wanted in flt.items():
        value = doc.get(key)
        if isinstance(value, list):
            if wanted not in value:
                return False
        elif value != wanted:
            return False
    return True


def _project(doc: dict, projection: dict | None) -> dict:
    out = copy.deepcopy(doc)
    for key, flag in (projection or {}).items():
        if not flag:
            out.pop(key, None)
    return out


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs

    def sort(self, key: str, direction: int) -> "FakeCursor":
        self._docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def limit(self, n: int) -> "FakeCursor":
        self._docs = self._docs[:n]
        return self

    def __iter__(self):
        return iter(self._docs)


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.docs: list[dict] = []
        self.pipelines: list[list[dict]] = []
        self.aggregate_results: list[dict] = []
        self.bulk_calls = 0

    def _replace(self, flt: dict, replacement: dict) -> str:
        """Apply one upserting replace; returns "matched"/"modified"/"upserted"."""
        existing = next((d for d in self.docs if _matches(d, flt)), None)
        if existing is None:
            doc = copy.deepcopy(replacement)
            doc["_id"] = ObjectId()
            self.docs.append(doc)
            return "upserted"
        before = {k: v for k, v in existing.items() if k != "_id"}
        _id = existing["_id"]
        existing.clear()
        existing.update(copy.deepcopy(replacement))
        existing["_id"] = _id
        return "matched" if before == replacement else "modified"

    def bulk_write(self, operations: list, ordered: bool = True):
        self.bulk_calls += 1
        outcome = {"matched": 0, "modified": 0, "upserted": 0}
        for op in operations:
            outcome[self._replace(op._filter, op._doc)] += 1
        return SimpleNamespace(
            matched_count=outcome["matched"] + outcome["modified"],
            modified_count=outcome["modified"],
            upserted_count=outcome["upserted"],
        )

    def find(self, flt: dict | None = None, projection: dict | None = None) -> FakeCursor:
        return FakeCursor([_project(d, projection) for d in self.docs if _matches(d, flt or {})])

    def find_one(self, flt: dict | None = None, projection: dict | None = None) -> dict | None:
        for doc in self.docs:
            if _matches(doc, flt or {}):
                return _project(doc, projection)
        return None

    def aggregate(self, pipeline: list[dict]):
        self.pipelines.append(pipeline)
        return iter(copy.deepcopy(self.aggregate_results))


class FakeDatabase:
    def __init__(self):
        self.collections: dict[str, FakeCollection] = {}
        self.commands: list[str] = []

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    def list_collection_names(self) -> list[str]:
        return list(self.collections)

    def command(self, name: str) -> dict:
        self.commands.append(name)
        return {"ok": 1}


class FakeClient:
    def __init__(self):
        self.databases: dict[str, FakeDatabase] = {}
        self.opened = 0
        self.closed = False

    def __getitem__(self, name: str) -> FakeDatabase:
        return self.databases.setdefault(name, FakeDatabase())

    def close(self) -> None:
        self.closed = True


# ────────────────────────── sources on disk ──────────────────────────
def write_mdx(directory: Path, filename: str, body: str = "Some body text.", **meta: Any) -> Path:
    """Write a `.mdx` file whose front matter is `meta` dumped as YAML."""
    directory.mkdir(parents=True, exist_ok=True)
    front = yaml.safe_dump(meta, sort_keys=False)
    path = directory / filename
    path.write_text(f"---\n{front}---\n{body}\n", encoding="utf-8")
    return path


def write_trivia(path: Path, entries: list[dict]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(entries), encoding="utf-8")
    return path


# ────────────────────────── fixtures ──────────────────────────
@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def connection(fake_client: FakeClient) -> MongoConnection:
    def factory(url: str, **kwargs: Any) -> FakeClient:
        fake_client.opened += 1
        return fake_client

    return MongoConnection(url="mongodb://fake", name="portfolio-test", client_factory=factory)


@pytest.fixture
def fake_db(connection: MongoConnection) -> FakeDatabase:
    return connection.connect()


@pytest.fixture
def store(connection: MongoConnection) -> ContentStore:
    return ContentStore(connection, search_backend="local")


@pytest.fixture
def sources(tmp_path: Path) -> ContentSources:
    blog_dir = tmp_path / "blogs"
    projects_dir = tmp_path / "projects"
    blog_dir.mkdir()
    projects_dir.mkdir()
    trivia = write_trivia(tmp_path / "trivia.json", [{"customID": "trivia-1", "question": "Q?", "answer": "A"}])
    return ContentSources(blog_dir=blog_dir, projects_dir=projects_dir, trivia_file=trivia)


@pytest.fixture
def client(store: ContentStore, sources: ContentSources) -> Generator[TestClient, None, None]:
    from main import app, get_sources, get_store

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_sources] = lambda: sources
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

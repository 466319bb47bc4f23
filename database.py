"""
MongoDB access: one lazily opened connection shared by the process, and the
content store that writes ingested records and answers read queries.
"""

import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from bson.errors import BSONError
from pymongo import DESCENDING, MongoClient, ReplaceOne
from pymongo.errors import BulkWriteError, PyMongoError

import config
from content import BLOG, PROJECT, TRIVIA
from errors import StoreError
from logging_config import get_logger
from schemas import Document, UpsertSummary
from search import LISTING_PROJECTION, SEARCH_LIMIT, autocomplete_pipeline, filter_titles

logger = get_logger(__name__)

COLLECTIONS: Dict[str, str] = {
    BLOG: config.BLOG_COLLECTION,
    PROJECT: config.PROJECT_COLLECTION,
    TRIVIA: config.TRIVIA_COLLECTION,
}


class MongoConnection:
    """Process-wide database handle, opened on first use."""

    def __init__(
        self,
        url: str = config.DATABASE_URL,
        name: str = config.DATABASE_NAME,
        timeout_ms: int = config.DATABASE_TIMEOUT_MS,
        client_factory: Optional[Callable[..., Any]] = None,
    ):
        self.url = url
        self.name = name
        self.timeout_ms = timeout_ms
        self._client_factory = client_factory or MongoClient
        self._client = None
        self._db = None
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._db is not None

    def connect(self):
        if self._db is None:
            with self._lock:
                if self._db is None:
                    try:
                        self._client = self._client_factory(self.url, serverSelectionTimeoutMS=self.timeout_ms)
                    except PyMongoError as exc:
                        raise StoreError(f"Could not connect to database: {exc}") from exc
                    self._db = self._client[self.name]
                    logger.info("database_connected", database=self.name)
        return self._db

    def ping(self) -> bool:
        try:
            self.connect().command("ping")
        except (PyMongoError, StoreError) as exc:
            logger.warning("database_ping_failed", error=str(exc))
            return False
        return True

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
            self._client = None
            self._db = None


def collect_tags(records: Iterable[Dict[str, Any]]) -> Set[str]:
    tags: Set[str] = set()
    for record in records:
        tags.update(record.get("tags") or [])
    return tags


def _public(doc: Dict[str, Any]) -> Dict[str, Any]:
    # normalize _id to string
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


class ContentStore:
    def __init__(self, connection: MongoConnection, search_backend: str = config.SEARCH_BACKEND):
        if search_backend not in ("atlas", "local"):
            raise ValueError(f"Unknown search backend: {search_backend!r}")
        self.connection = connection
        self.search_backend = search_backend

    def collection(self, kind: str):
        try:
            name = COLLECTIONS[kind]
        except KeyError:
            raise ValueError(f"Unknown content kind: {kind!r}") from None
        return self.connection.connect()[name]

    @contextmanager
    def _errors(self, action: str, **context: Any):
        try:
            yield
        except BulkWriteError as exc:
            details = exc.details or {}
            logger.error(
                "store_bulk_write_failed",
                action=action,
                written=details.get("nUpserted", 0) + details.get("nModified", 0),
                write_errors=len(details.get("writeErrors", [])),
                **context,
            )
            raise StoreError(f"{action} failed part way through the batch") from exc
        except PyMongoError as exc:
            logger.error("store_failed", action=action, error=str(exc), **context)
            raise StoreError(f"{action} failed: {exc}") from exc
        except BSONError as exc:
            logger.error("store_encode_failed", action=action, error=str(exc), **context)
            raise StoreError(f"{action} failed: {exc}") from exc

    # ======
    # Writes
    # ======
    def upsert(self, kind: str, records: Sequence[Document]) -> UpsertSummary:
        """Replace-or-insert every record by customID in one ordered bulk write.

        Documents missing from `records` are left alone. A failure part way
        through keeps whatever was already written and raises StoreError.
        """
        summary = UpsertSummary(kind=kind, received=len(records))
        if not records:
            return summary

        operations = [
            ReplaceOne({"customID": record.customID}, record.to_document(), upsert=True)
            for record in records
        ]
        with self._errors("upsert", kind=kind):
            result = self.collection(kind).bulk_write(operations, ordered=True)

        summary.matched = result.matched_count
        summary.modified = result.modified_count
        summary.upserted = result.upserted_count
        logger.info("records_upserted", **summary.model_dump())
        return summary

    # =====
    # Reads
    # =====
    def recent(self, kind: str, limit: int) -> List[Dict[str, Any]]:
        with self._errors("recent", kind=kind):
            cursor = (
                self.collection(kind)
                .find({}, LISTING_PROJECTION)
                .sort("createdAt", DESCENDING)
                .limit(limit)
            )
            return [_public(doc) for doc in cursor]

    def get_by_slug(self, kind: str, slug: str) -> Optional[Dict[str, Any]]:
        with self._errors("get_by_slug", kind=kind):
            doc = self.collection(kind).find_one({"slug": slug}, {"customID": 0})
        return _public(doc) if doc else None

    def by_tag(self, tag: str, limit: int = config.TAG_PAGE_LIMIT) -> List[Dict[str, Any]]:
        with self._errors("by_tag"):
            cursor = (
                self.collection(BLOG)
                .find({"tags": tag}, LISTING_PROJECTION)
                .sort("createdAt", DESCENDING)
                .limit(limit)
            )
            return [_public(doc) for doc in cursor]

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> List[Dict[str, Any]]:
        with self._errors("search", backend=self.search_backend):
            blogs = self.collection(BLOG)
            if self.search_backend == "atlas":
                docs = list(blogs.aggregate(autocomplete_pipeline(query, limit)))
            else:
                docs = filter_titles(query, blogs.find({}, LISTING_PROJECTION), limit)
        return [_public(doc) for doc in docs]

    def collection_names(self) -> List[str]:
        with self._errors("collection_names"):
            return self.connection.connect().list_collection_names()

"""
Database Schemas for the portfolio content

Each document model maps to one MongoDB collection (see config.*_COLLECTION).
Front-matter keys that are not declared fields are kept in `extra` and
written back as top-level document fields, so new keys survive ingestion.
"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Document(BaseModel):
    model_config = ConfigDict(extra="forbid")

    customID: str
    extra: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("customID", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # YAML and JSON both happily turn `customID: 12` into an int
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @classmethod
    def from_metadata(cls, metadata: Dict[str, Any], **derived: Any):
        """Split raw metadata into declared fields and the `extra` side map.

        Derived values (slug, content, readingTime) win over metadata keys
        of the same name.
        """
        declared = set(cls.model_fields) - {"extra"}
        fields = {k: v for k, v in metadata.items() if k in declared}
        extra = _storable({k: v for k, v in metadata.items() if k not in declared})
        fields.update(derived)
        return cls(**fields, extra=extra)

    def to_document(self) -> Dict[str, Any]:
        doc = _storable(self.extra)
        doc.update(self.model_dump(exclude={"extra"}))
        return doc


def _storable(value: Any) -> Any:
    """Make pass-through metadata encodable as BSON.

    BSON has no date-only type and only string keys, so YAML dates become
    midnight datetimes and mapping keys become strings, at any depth.
    """
    if isinstance(value, dict):
        return {str(k): _storable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_storable(v) for v in value]
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


class ReadingTime(BaseModel):
    text: str
    minutes: float
    time: int  # milliseconds
    words: int


class ContentRecord(Document):
    slug: str
    title: str
    createdAt: datetime
    tags: List[str] = []
    content: str = ""

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> Any:
        # `title: 1984` arrives as an int
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("createdAt", mode="before")
    @classmethod
    def _widen_date(cls, value: Any) -> Any:
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time.min)
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _unique_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple)):
            # dedup, first occurrence keeps its position
            return list(dict.fromkeys(str(tag) for tag in value))
        return value


class BlogPost(ContentRecord):
    readingTime: Optional[ReadingTime] = None


class PortfolioProject(ContentRecord):
    pass


class TriviaEntry(Document):
    pass


# =============
# API payloads
# =============
class UpsertSummary(BaseModel):
    kind: str
    received: int = 0
    matched: int = 0
    modified: int = 0
    upserted: int = 0


class HomePage(BaseModel):
    recentBlogs: List[Dict[str, Any]] = []
    recentProjects: List[Dict[str, Any]] = []
    tags: List[str] = []

"""
Reading `.mdx` content from disk and turning it into records.

Nothing here catches OSError: a missing directory or unreadable file aborts
the ingestion pass that asked for it.
"""

import json
import math
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import frontmatter
import yaml
from pydantic import ValidationError

import config
from errors import MalformedContentError
from logging_config import get_logger
from schemas import BlogPost, ContentRecord, PortfolioProject, ReadingTime, TriviaEntry

logger = get_logger(__name__)

WORDS_PER_MINUTE = 200

BLOG = "blog"
PROJECT = "project"
TRIVIA = "trivia"
RECORD_TYPES: Dict[str, Type[ContentRecord]] = {
    BLOG: BlogPost,
    PROJECT: PortfolioProject,
}

PathLike = Union[str, Path]

_WORD = re.compile(r"\S+")


# ==============
# File collector
# ==============
def list_content_files(directory: PathLike, extension: str = config.CONTENT_EXTENSION) -> List[str]:
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Content directory not found: {directory}")
    return sorted(p.name for p in directory.iterdir() if p.is_file() and p.suffix == extension)


def read_content_file(directory: PathLike, filename: str) -> str:
    return (Path(directory) / filename).read_text(encoding="utf-8")


# ==============
# Content parser
# ==============
def split_front_matter(raw: str, source: Optional[str] = None) -> Tuple[Dict[str, Any], str]:
    """Split `raw` into its YAML front matter and the body that follows it.

    Raises MalformedContentError when there is no front matter block or when
    it does not parse to a mapping.
    """
    if not frontmatter.checks(raw):
        raise MalformedContentError("missing front matter block", source=source)
    try:
        post = frontmatter.loads(raw)
    except (yaml.YAMLError, ValueError) as exc:
        raise MalformedContentError(f"unparseable front matter ({exc})", source=source) from exc

    if not isinstance(post.metadata, dict) or not post.metadata:
        raise MalformedContentError("front matter is not a key-value mapping", source=source)
    return dict(post.metadata), post.content


def slug_from_filename(filename: str, extension: str = config.CONTENT_EXTENSION) -> str:
    name = Path(filename).name
    if name.endswith(extension):
        return name[: -len(extension)]
    return Path(name).stem


def estimate_reading_time(text: str, words_per_minute: int = WORDS_PER_MINUTE) -> ReadingTime:
    words = len(_WORD.findall(text or ""))
    minutes = words / words_per_minute
    displayed = math.ceil(minutes)
    return ReadingTime(
        text=f"{displayed} min read",
        minutes=minutes,
        time=round(minutes * 60 * 1000),
        words=words,
    )


def parse_record(raw: str, filename: str, kind: str) -> ContentRecord:
    try:
        record_type = RECORD_TYPES[kind]
    except KeyError:
        raise ValueError(f"Unknown content kind: {kind!r}") from None

    metadata, body = split_front_matter(raw, source=filename)
    derived: Dict[str, Any] = {"slug": slug_from_filename(filename), "content": body}
    if record_type is BlogPost:
        derived["readingTime"] = estimate_reading_time(body)

    try:
        return record_type.from_metadata(metadata, **derived)
    except ValidationError as exc:
        raise MalformedContentError(_describe(exc), source=filename) from exc


def collect_records(directory: PathLike, kind: str) -> List[ContentRecord]:
    """Parse every content file of `kind` in `directory`, in filename order."""
    records = []
    for filename in list_content_files(directory):
        records.append(parse_record(read_content_file(directory, filename), filename, kind))
    logger.debug("content_collected", kind=kind, directory=str(directory), count=len(records))
    return records


def load_trivia(path: PathLike) -> List[TriviaEntry]:
    path = Path(path)
    try:
        items = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MalformedContentError(f"invalid JSON ({exc.msg})", source=path.name) from exc
    if not isinstance(items, list):
        raise MalformedContentError("expected a JSON array", source=path.name)

    entries = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise MalformedContentError(f"entry {index} is not an object", source=path.name)
        try:
            entries.append(TriviaEntry.from_metadata(item))
        except ValidationError as exc:
            raise MalformedContentError(f"entry {index}: {_describe(exc)}", source=path.name) from exc
    return entries


def _describe(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err["loc"]) or "record"
        problems.append(f"{where}: {err['msg']}")
    return "; ".join(problems)

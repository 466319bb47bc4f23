"""
Page generation: sync on-disk content into the store, then read back what
the home page shows.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import config
from content import BLOG, PROJECT, TRIVIA, collect_records, load_trivia
from database import ContentStore, collect_tags
from logging_config import get_logger
from schemas import HomePage, UpsertSummary

logger = get_logger(__name__)


@dataclass(frozen=True)
class ContentSources:
    blog_dir: Path = config.BLOG_DIR
    projects_dir: Path = config.PROJECTS_DIR
    trivia_file: Path = config.TRIVIA_FILE


def sync_content(store: ContentStore, sources: ContentSources) -> Dict[str, UpsertSummary]:
    """Parse and upsert every content kind, one bulk write per kind.

    A kind is parsed completely before it is written, so an unreadable or
    malformed file stops the pass before that kind touches the database.
    Kinds written earlier in the pass stay written.
    """
    summaries = {}
    summaries[BLOG] = store.upsert(BLOG, collect_records(sources.blog_dir, BLOG))
    summaries[PROJECT] = store.upsert(PROJECT, collect_records(sources.projects_dir, PROJECT))
    summaries[TRIVIA] = store.upsert(TRIVIA, load_trivia(sources.trivia_file))
    logger.info(
        "content_synced",
        **{kind: summary.received for kind, summary in summaries.items()},
    )
    return summaries


def display_date(value: Any) -> Any:
    # "Sat Jan 01 2022", the format the listing cards show
    if isinstance(value, datetime):
        return value.strftime("%a %b %d %Y")
    return value


def _for_display(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    for record in records:
        record["createdAt"] = display_date(record.get("createdAt"))
    return records


def build_home_page(
    store: ContentStore,
    sources: ContentSources,
    posts_limit: int = config.RECENT_POSTS_LIMIT,
    projects_limit: int = config.RECENT_PROJECTS_LIMIT,
) -> HomePage:
    sync_content(store, sources)
    recent_blogs = store.recent(BLOG, posts_limit)
    recent_projects = store.recent(PROJECT, projects_limit)
    # tags come from the page being shown, not from the whole collection
    tags = collect_tags(recent_blogs)
    return HomePage(
        recentBlogs=_for_display(recent_blogs),
        recentProjects=_for_display(recent_projects),
        tags=sorted(tags),
    )

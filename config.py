"""
Runtime configuration for the portfolio API.

Everything is read from the environment once, at import time.
"""

import os
from pathlib import Path

ROOT = Path(__file__).parent

# ========
# Database
# ========
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "portfolio")
DATABASE_TIMEOUT_MS = int(os.getenv("DATABASE_TIMEOUT_MS", "5000"))

# Collections, one per content kind
BLOG_COLLECTION = "blogs"
PROJECT_COLLECTION = "projects"
TRIVIA_COLLECTION = "trivia"

# =======
# Content
# =======
CONTENT_ROOT = Path(os.getenv("CONTENT_ROOT", str(ROOT / "site_content")))
BLOG_DIR = Path(os.getenv("BLOG_DIR", str(CONTENT_ROOT / "blogs")))
PROJECTS_DIR = Path(os.getenv("PROJECTS_DIR", str(CONTENT_ROOT / "projects")))
TRIVIA_FILE = Path(os.getenv("TRIVIA_FILE", str(CONTENT_ROOT / "trivia.json")))
CONTENT_EXTENSION = ".mdx"

# ================
# Listing / search
# ================
# "atlas" uses the Atlas Search autocomplete index on `title`,
# "local" matches titles in-process (no search index needed).
SEARCH_BACKEND = os.getenv("SEARCH_BACKEND", "atlas")
RECENT_POSTS_LIMIT = int(os.getenv("RECENT_POSTS_LIMIT", "10"))
RECENT_PROJECTS_LIMIT = int(os.getenv("RECENT_PROJECTS_LIMIT", "3"))
TAG_PAGE_LIMIT = int(os.getenv("TAG_PAGE_LIMIT", "50"))

# =======
# Logging
# =======
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
APP_ENV = os.getenv("APP_ENV", "development")

# ====
# Auth
# ====
SECRET_KEY = os.getenv("JWT_SECRET", "super-secret-key-change")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 12
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@portfolio.dev")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
ADMIN_PASSWORD_HASH = os.getenv("ADMIN_PASSWORD_HASH")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

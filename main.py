import threading
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

import config
from content import BLOG, PROJECT
from database import ContentStore, MongoConnection
from errors import BadRequestError, SiteError
from ingest import ContentSources, build_home_page, sync_content
from logging_config import configure_logging, get_logger
from schemas import HomePage, UpsertSummary

configure_logging()
logger = get_logger(__name__)

# =====================
# Auth / Security Setup
# =====================
# Use pbkdf2_sha256 to avoid external bcrypt dependency issues
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Support providing a precomputed hash; otherwise hash the provided password
ADMIN_PASSWORD_HASH = config.ADMIN_PASSWORD_HASH or pwd_context.hash(config.ADMIN_PASSWORD)

SEARCH_ERROR_MESSAGE = "Error has occured"

_store_lock = threading.Lock()


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: str
    password: str


# ============
# Dependencies
# ============
def get_store(request: Request) -> ContentStore:
    """The store shared by every request; its connection opens on first query."""
    state = request.app.state
    if getattr(state, "store", None) is None:
        with _store_lock:
            if getattr(state, "store", None) is None:
                state.store = ContentStore(MongoConnection())
    return state.store


def get_sources() -> ContentSources:
    return ContentSources()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    store = getattr(app.state, "store", None)
    if store is not None:
        store.connection.close()


# ==================
# FastAPI app config
# ==================
app = FastAPI(title="Portfolio API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SiteError)
async def site_error_handler(request: Request, exc: SiteError):
    logger.error("request_failed", path=request.url.path, error=exc.message, error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content={"detail": exc.message})


# =========
# Utilities
# =========
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def get_current_admin(authorization: Optional[str] = Header(None)):
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    email: str = payload.get("sub")
    role: str = payload.get("role")
    if email != config.ADMIN_EMAIL or role != "admin":
        raise HTTPException(status_code=403, detail="Forbidden")
    return {"email": email, "role": role}


def _found(item: Optional[dict]) -> dict:
    if not item:
        raise HTTPException(status_code=404, detail="Not found")
    return item


# ======
# Routes
# ======
@app.get("/")
def root():
    return {"status": "ok", "service": "portfolio-api"}


@app.get("/test")
def test_database(store: ContentStore = Depends(get_store)):
    ok = store.connection.ping()
    collections: List[str] = []
    if ok:
        collections = store.collection_names()
    return {"backend": "running", "database": "connected" if ok else "not-available", "collections": collections[:10]}


# Auth
@app.post("/api/auth/login", response_model=Token)
def login(data: LoginRequest):
    if data.email.lower() != config.ADMIN_EMAIL.lower() or not verify_password(data.password, ADMIN_PASSWORD_HASH):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_access_token({"sub": config.ADMIN_EMAIL, "role": "admin"})
    return Token(access_token=token)


# Page data
@app.get("/api/home", response_model=HomePage)
def home(store: ContentStore = Depends(get_store), sources: ContentSources = Depends(get_sources)):
    return build_home_page(store, sources)


@app.post("/api/sync", response_model=Dict[str, UpsertSummary])
def sync(
    store: ContentStore = Depends(get_store),
    sources: ContentSources = Depends(get_sources),
    _: dict = Depends(get_current_admin),
):
    return sync_content(store, sources)


# Blog
@app.get("/api/posts")
def list_posts(store: ContentStore = Depends(get_store)):
    return store.recent(BLOG, config.RECENT_POSTS_LIMIT)


@app.get("/api/posts/{slug}")
def get_post(slug: str, store: ContentStore = Depends(get_store)):
    return _found(store.get_by_slug(BLOG, slug))


@app.get("/api/tags/{tag}")
def posts_by_tag(tag: str, store: ContentStore = Depends(get_store)):
    return store.by_tag(tag)


# Projects
@app.get("/api/projects")
def list_projects(store: ContentStore = Depends(get_store)):
    return store.recent(PROJECT, config.RECENT_PROJECTS_LIMIT)


@app.get("/api/projects/{slug}")
def get_project(slug: str, store: ContentStore = Depends(get_store)):
    return _found(store.get_by_slug(PROJECT, slug))


# Search
@app.api_route("/api/search", methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"])
def search(request: Request, query: Optional[str] = None, store: ContentStore = Depends(get_store)):
    # Every failure gets the same body; callers never see what went wrong.
    try:
        if request.method != "GET":
            raise BadRequestError(f"{request.method} not allowed")
        if not query:
            raise BadRequestError("query is required")
        return store.search(query)
    except Exception as exc:
        logger.warning("search_failed", method=request.method, error_type=type(exc).__name__)
        return JSONResponse(status_code=400, content={"errorMessage": SEARCH_ERROR_MESSAGE})

"""FastAPI web server exposing CRUD over the user store."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from userapi import __version__
from userapi.config import get_server_config
from userapi.db.database import Database
from userapi.db.user_repo import UserRepository
from userapi.errors import StoreError, StoreUnavailable, UserAlreadyExists, UserNotFound
from userapi.models.user import NewUser, UserUpdate
from userapi.utils.aio import OperationTimeout, with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Global database instance, owned by the lifespan
_db: Optional[Database] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup and release it on shutdown."""
    global _db

    db = Database()
    try:
        db.init()
    except StoreUnavailable:
        logger.exception("Database unavailable at startup")
    _db = db
    logger.info(f"Server started - DB: {db.path}")
    try:
        yield
    finally:
        logger.info("Server shutting down")
        db.close()
        _db = None


app = FastAPI(
    title="User Store API",
    description="CRUD over users backed by a transactional SQLite store",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request Models
class UserCreate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password_hash: Optional[str] = None


class UserPatch(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password_hash: Optional[str] = None


# Dependencies
def get_user_repo() -> UserRepository:
    if _db is None:
        raise StoreUnavailable("Database not initialized")
    return UserRepository(_db)


async def _read_store(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking read off the event loop under the request timeout."""
    timeout = get_server_config().request_timeout
    return await with_timeout(asyncio.to_thread(func, *args), timeout)


async def _write_store(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking write off the event loop.

    No timeout: the worker thread cannot be cancelled once started.
    """
    return await asyncio.to_thread(func, *args)


# Error translation
def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


@app.exception_handler(UserNotFound)
async def handle_user_not_found(request: Request, exc: UserNotFound):
    return _message(status.HTTP_404_NOT_FOUND, exc.message)


@app.exception_handler(UserAlreadyExists)
async def handle_user_already_exists(request: Request, exc: UserAlreadyExists):
    return _message(status.HTTP_409_CONFLICT, "User already exists")


@app.exception_handler(StoreUnavailable)
async def handle_store_unavailable(request: Request, exc: StoreUnavailable):
    logger.error(f"{request.method} {request.url.path}: store unavailable: {exc.message}")
    return _message(status.HTTP_503_SERVICE_UNAVAILABLE, "Service unavailable")


@app.exception_handler(StoreError)
async def handle_store_error(request: Request, exc: StoreError):
    logger.error(f"{request.method} {request.url.path}: store error: {exc.message}", exc_info=exc)
    return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


@app.exception_handler(OperationTimeout)
async def handle_timeout(request: Request, exc: OperationTimeout):
    logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    return _message(status.HTTP_504_GATEWAY_TIMEOUT, exc.message)


# API Routes
@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/status")
async def get_status():
    """Get system status."""
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": datetime.now().isoformat(),
        "services": {
            "database": _db is not None and _db.initialized,
        },
    }


@app.get("/api/users")
async def list_users(repo: UserRepository = Depends(get_user_repo)):
    """List all users ordered by id."""
    users = await _read_store(repo.get_all_users)
    return {
        "success": True,
        "data": [u.to_dict() for u in users],
        "message": "Users retrieved successfully",
    }


@app.post("/api/users", status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, repo: UserRepository = Depends(get_user_repo)):
    """Create a user from a pre-hashed credential."""
    if not body.username or not body.email or not body.password_hash:
        return _message(status.HTTP_400_BAD_REQUEST, "username, email, password_hash are required")

    new_user = NewUser(username=body.username, email=body.email, password_hash=body.password_hash)
    user = await _write_store(repo.create_user, new_user)
    return user.to_dict()


@app.get("/api/users/{user_id}")
async def get_user(user_id: int, repo: UserRepository = Depends(get_user_repo)):
    user = await _read_store(repo.get_user_by_id, user_id)
    return user.to_dict()


@app.patch("/api/users/{user_id}")
async def update_user(user_id: int, body: UserPatch, repo: UserRepository = Depends(get_user_repo)):
    """Change any of username, email, password_hash; omitted fields are kept."""
    changes = UserUpdate(username=body.username, email=body.email, password_hash=body.password_hash)
    user = await _write_store(repo.update_user, user_id, changes)
    return user.to_dict()


@app.delete("/api/users/{user_id}")
async def delete_user(user_id: int, repo: UserRepository = Depends(get_user_repo)):
    """Delete a user and return the record as it was before deletion."""
    user = await _write_store(repo.delete_user, user_id)
    return user.to_dict()

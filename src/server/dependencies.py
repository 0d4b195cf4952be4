"""Dependency helpers shared across FastAPI routes."""

from __future__ import annotations

import asyncio
import threading
from functools import lru_cache
from typing import Any, Callable, Optional, TypeVar

from fastapi import HTTPException

from src.task_manager.config import Config, build_store
from src.task_manager.logger import setup_logger
from src.task_manager.session import Session, SessionError, login
from src.task_store import Task, TaskStore

from .schemas import TaskResponse

T = TypeVar("T")

config = Config.from_yaml()
setup_logger(log_level=config.log_level, log_file=config.log_file)

# Store calls are read-modify-write sequences; run them one at a time.
_store_lock = threading.Lock()


@lru_cache(maxsize=1)
def get_task_store() -> TaskStore:
    """Singleton TaskStore built from the application config."""
    return build_store(config)


async def run_store_call(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking store call in a worker thread, serialized by the store lock."""

    def _call() -> T:
        with _store_lock:
            return func(*args, **kwargs)

    return await asyncio.to_thread(_call)


def resolve_session(store: TaskStore, role: str, username: Optional[str]) -> Session:
    """Turn the self-declared X-Role / X-User headers into a Session."""
    try:
        return login(role, username, store.get_users())
    except SessionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def serialize_task(store: TaskStore, task: Task) -> TaskResponse:
    """Convert a domain Task to the API response, flagging overdue tasks."""
    return TaskResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        deadline=task.deadline,
        assigned_user=task.assigned_user,
        status=task.status,
        created_at=task.created_at,
        overdue=store.is_task_overdue(task),
    )

"""Project manager endpoints: overdue warning and data reset."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Header, HTTPException

from src.task_manager.session import PermissionDeniedError
from src.task_store import TaskStore

from ..dependencies import get_task_store, resolve_session, run_store_call, serialize_task
from ..schemas import OverdueResponse, ResetResponse

logger = logging.getLogger(__name__)


def _check_overdue(store: TaskStore, role: str, username: Optional[str]) -> OverdueResponse:
    resolve_session(store, role, username).require_pm("view the overdue warning")
    overdue = store.overdue_tasks()
    return OverdueResponse(
        has_overdue=bool(overdue),
        tasks=[serialize_task(store, task) for task in overdue],
    )


def _reset_data(store: TaskStore, role: str, username: Optional[str]) -> ResetResponse:
    resolve_session(store, role, username).require_pm("reset data")
    store.reset_data()
    return ResetResponse(reset=True, users=store.get_users())


def register_admin_routes(app: FastAPI) -> None:
    """Register overdue and reset endpoints."""

    @app.get("/api/overdue", response_model=OverdueResponse)
    async def get_overdue(
        x_role: str = Header(...),
        x_user: Optional[str] = Header(default=None),
    ) -> OverdueResponse:
        """Point-in-time overdue check behind the PM warning banner."""
        try:
            return await run_store_call(_check_overdue, get_task_store(), x_role, x_user)
        except HTTPException:
            raise
        except PermissionDeniedError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except Exception as exc:
            logger.exception("Failed to check overdue tasks: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to check overdue tasks") from exc

    @app.post("/api/reset", response_model=ResetResponse)
    async def reset_data(
        x_role: str = Header(...),
        x_user: Optional[str] = Header(default=None),
    ) -> ResetResponse:
        """Erase all tasks and users, then re-seed the default users."""
        try:
            return await run_store_call(_reset_data, get_task_store(), x_role, x_user)
        except HTTPException:
            raise
        except PermissionDeniedError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except Exception as exc:
            logger.exception("Failed to reset data: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to reset data") from exc

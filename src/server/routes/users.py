"""User and login endpoints."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import FastAPI, Header, HTTPException

from ..dependencies import get_task_store, resolve_session, run_store_call
from ..schemas import SessionResponse

logger = logging.getLogger(__name__)


def register_user_routes(app: FastAPI) -> None:
    """Register user listing and session endpoints."""

    @app.get("/api/users", response_model=List[str])
    async def list_users() -> List[str]:
        """Return the known user identifiers (the login picker)."""
        store = get_task_store()
        try:
            return await run_store_call(store.get_users)
        except Exception as exc:
            logger.exception("Failed to list users: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to list users") from exc

    @app.get("/api/session", response_model=SessionResponse)
    async def get_session(
        x_role: str = Header(...),
        x_user: Optional[str] = Header(default=None),
    ) -> SessionResponse:
        """Echo the resolved self-declared login, or 400 when it is not valid."""
        session = await run_store_call(resolve_session, get_task_store(), x_role, x_user)
        return SessionResponse(
            role=session.role,
            username=session.username,
            display_role=session.display_role,
        )

"""Task endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Header, HTTPException

from src.task_manager.session import PermissionDeniedError, Session, TaskInputError, validate_task_input
from src.task_store import InvalidStatusError, Task, TaskStatus, TaskStore

from ..dependencies import get_task_store, resolve_session, run_store_call, serialize_task
from ..schemas import TaskCreateRequest, TaskDeleteResponse, TaskResponse, TaskUpdateRequest

logger = logging.getLogger(__name__)


def _find_visible_task(store: TaskStore, session: Session, task_id: str) -> Task:
    task = store.get_task(task_id)
    if task is None or not session.can_access(task):
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _list_tasks(store: TaskStore, role: str, username: Optional[str], status: Optional[str]) -> List[TaskResponse]:
    session = resolve_session(store, role, username)
    tasks = store.list_tasks(assigned_user=session.visible_user(), status=status)
    return [serialize_task(store, task) for task in tasks]


def _create_task(
    store: TaskStore, role: str, username: Optional[str], request: TaskCreateRequest
) -> TaskResponse:
    session = resolve_session(store, role, username)
    session.require_pm("add tasks")
    fields = validate_task_input(
        store.get_users(),
        title=request.title,
        description=request.description,
        deadline=request.deadline,
        assigned_user=request.assigned_user,
    )
    tasks = store.add_task(**fields)
    return serialize_task(store, tasks[-1])


def _update_task(
    store: TaskStore, role: str, username: Optional[str], task_id: str, payload: Dict[str, Any]
) -> TaskResponse:
    session = resolve_session(store, role, username)
    task = _find_visible_task(store, session, task_id)

    changes: Dict[str, Any] = {}
    form_fields = {k: v for k, v in payload.items() if k != "status"}
    if form_fields:
        session.require_pm("edit tasks")
        merged = {
            "title": task.title,
            "description": task.description,
            "deadline": task.deadline,
            "assigned_user": task.assigned_user,
            **form_fields,
        }
        changes.update(validate_task_input(store.get_users(), **merged))
    if payload.get("status") is not None:
        changes["status"] = TaskStatus.parse(payload["status"])

    if changes:
        store.update_task(task_id, changes)
    return serialize_task(store, _find_visible_task(store, session, task_id))


def _delete_task(store: TaskStore, role: str, username: Optional[str], task_id: str) -> TaskDeleteResponse:
    session = resolve_session(store, role, username)
    session.require_pm("delete tasks")
    deleted = store.get_task(task_id) is not None
    store.delete_task(task_id)
    return TaskDeleteResponse(deleted=deleted, id=task_id)


def register_task_routes(app: FastAPI) -> None:
    """Register task CRUD endpoints.

    Each handler runs its lookup, validation and write as one store call so
    no other request can interleave between them.
    """

    @app.get("/api/tasks", response_model=List[TaskResponse])
    async def list_tasks(
        status: Optional[str] = None,
        x_role: str = Header(...),
        x_user: Optional[str] = Header(default=None),
    ) -> List[TaskResponse]:
        """List tasks in insertion order: all for the PM, own tasks for a user."""
        try:
            return await run_store_call(_list_tasks, get_task_store(), x_role, x_user, status)
        except HTTPException:
            raise
        except InvalidStatusError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except Exception as exc:
            logger.exception("Failed to list tasks: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to list tasks") from exc

    @app.post("/api/tasks", response_model=TaskResponse)
    async def create_task(
        request: TaskCreateRequest,
        x_role: str = Header(...),
        x_user: Optional[str] = Header(default=None),
    ) -> TaskResponse:
        """Create a new task (PM only). The store forces status to Pending."""
        try:
            return await run_store_call(_create_task, get_task_store(), x_role, x_user, request)
        except HTTPException:
            raise
        except PermissionDeniedError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except TaskInputError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except Exception as exc:
            logger.exception("Failed to create task: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to create task") from exc

    @app.patch("/api/tasks/{task_id}", response_model=TaskResponse)
    async def update_task(
        task_id: str,
        request: TaskUpdateRequest,
        x_role: str = Header(...),
        x_user: Optional[str] = Header(default=None),
    ) -> TaskResponse:
        """Update a task. The PM may edit any field; a user may only move the status of own tasks."""
        payload = request.model_dump(exclude_unset=True)
        try:
            return await run_store_call(_update_task, get_task_store(), x_role, x_user, task_id, payload)
        except HTTPException:
            raise
        except PermissionDeniedError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except (TaskInputError, InvalidStatusError) as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except Exception as exc:
            logger.exception("Failed to update task: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to update task") from exc

    @app.delete("/api/tasks/{task_id}", response_model=TaskDeleteResponse)
    async def delete_task(
        task_id: str,
        x_role: str = Header(...),
        x_user: Optional[str] = Header(default=None),
    ) -> TaskDeleteResponse:
        """Delete a task (PM only). Deleting an unknown id is not an error."""
        try:
            return await run_store_call(_delete_task, get_task_store(), x_role, x_user, task_id)
        except HTTPException:
            raise
        except PermissionDeniedError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except Exception as exc:
            logger.exception("Failed to delete task: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to delete task") from exc

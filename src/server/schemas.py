"""Pydantic schemas for the FastAPI server."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.task_store import TaskStatus


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str


class TaskResponse(BaseModel):
    """Serialized task, keyed the same way as the persisted record."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str
    title: str
    description: str
    deadline: Optional[str] = None
    assigned_user: str = Field(alias="assignedUser")
    status: TaskStatus
    created_at: str = Field(alias="createdAt")
    overdue: bool = False


class TaskCreateRequest(BaseModel):
    """Request body for creating a task (PM only)."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=2000)
    deadline: Optional[str] = Field(default=None, description="ISO local date-time, e.g. 2024-01-01T17:00")
    assigned_user: Optional[str] = Field(default=None, alias="assignedUser")


class TaskUpdateRequest(BaseModel):
    """Request body for updating a task. Users may only send `status`."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    deadline: Optional[str] = Field(default=None)
    assigned_user: Optional[str] = Field(default=None, alias="assignedUser")
    status: Optional[str] = Field(default=None, description="Pending / In Progress / Done")


class TaskDeleteResponse(BaseModel):
    """Response for task deletion."""

    deleted: bool
    id: str


class OverdueResponse(BaseModel):
    """Overdue warning for the project manager."""

    has_overdue: bool
    tasks: List[TaskResponse]


class ResetResponse(BaseModel):
    """Response for the data reset endpoint."""

    reset: bool
    users: List[str]


class SessionResponse(BaseModel):
    """Resolved self-declared login."""

    role: str
    username: str
    display_role: str

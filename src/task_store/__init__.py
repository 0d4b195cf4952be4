"""Task and user persistence shared by the CLI, the HTTP API and the overdue scheduler."""

from .exceptions import CorruptedSlotError, InvalidStatusError, TaskStoreError
from .models import DEFAULT_USERS, Task, TaskStatus
from .overdue import is_task_overdue, parse_deadline
from .storage import (
    TASKS_KEY,
    USERS_KEY,
    KeyValueStorage,
    MemoryKeyValueStorage,
    SqliteKeyValueStorage,
)
from .store import TaskStore

__all__ = [
    "CorruptedSlotError",
    "DEFAULT_USERS",
    "InvalidStatusError",
    "KeyValueStorage",
    "MemoryKeyValueStorage",
    "SqliteKeyValueStorage",
    "TASKS_KEY",
    "Task",
    "TaskStatus",
    "TaskStore",
    "TaskStoreError",
    "USERS_KEY",
    "is_task_overdue",
    "parse_deadline",
]

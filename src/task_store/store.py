"""Task Store

ユーザー一覧とタスク一覧の永続化・取得・派生クエリを提供する。
ストレージは呼び出し側（CLIのmain、FastAPIの依存関数）が生成して注入する。

Related Classes: Task / TaskStatus (models.py), KeyValueStorage (storage.py)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .exceptions import CorruptedSlotError
from .models import DEFAULT_USERS, FIELD_NAMES, IMMUTABLE_FIELDS, WIRE_KEYS, Task, TaskStatus
from .overdue import is_task_overdue
from .storage import TASKS_KEY, USERS_KEY, KeyValueStorage

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """UTCのミリ秒精度ISO8601（Z付き）に整形"""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
    """camelCaseキー/属性名が混在する部分タスクを属性名に揃える。未知のキーは捨てる。"""
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        name = FIELD_NAMES.get(key, key)
        if name not in WIRE_KEYS:
            logger.warning("Ignoring unknown task field: %s", key)
            continue
        normalized[name] = value
    return normalized


class TaskStore:
    """キーバリューストレージ上のユーザー・タスク管理"""

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        default_users: Optional[Iterable[str]] = None,
        clock: Optional[Clock] = None,
    ):
        self.storage = storage
        self.default_users: List[str] = list(default_users) if default_users is not None else list(DEFAULT_USERS)
        self._clock = clock or _utc_now

    def close(self) -> None:
        self.storage.close()

    def __enter__(self) -> "TaskStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def now(self) -> datetime:
        return self._clock()

    # ---- slot encode/decode ----

    def _load_slot(self, key: str) -> Optional[Any]:
        raw = self.storage.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CorruptedSlotError(key, f"invalid JSON ({exc.msg})") from exc

    def _dump_slot(self, key: str, value: Any) -> None:
        self.storage.set_item(key, json.dumps(value, ensure_ascii=False))

    def _decode_users(self) -> Optional[List[str]]:
        data = self._load_slot(USERS_KEY)
        if data is None:
            return None
        if not isinstance(data, list) or not all(isinstance(u, str) for u in data):
            raise CorruptedSlotError(USERS_KEY, "expected a list of strings")
        return data

    def _decode_tasks(self) -> List[Task]:
        data = self._load_slot(TASKS_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            raise CorruptedSlotError(TASKS_KEY, "expected a list of task objects")
        tasks: List[Task] = []
        for index, record in enumerate(data):
            try:
                tasks.append(Task.from_dict(record))
            except ValueError as exc:
                logger.warning("Skipping unreadable task record #%d: %s", index, exc)
        return tasks

    # ---- users ----

    def initialize_users(self) -> None:
        """usersスロットが無い場合のみデフォルトユーザーを書き込む"""
        if self.storage.get_item(USERS_KEY) is None:
            self._dump_slot(USERS_KEY, self.default_users)
            logger.info("Seeded default users: %s", ", ".join(self.default_users))

    def get_users(self) -> List[str]:
        try:
            users = self._decode_users()
        except CorruptedSlotError as exc:
            logger.warning("%s; falling back to default users", exc)
            return list(self.default_users)
        return users if users is not None else list(self.default_users)

    def save_users(self, users: Iterable[str]) -> None:
        self._dump_slot(USERS_KEY, list(users))

    # ---- tasks ----

    def get_tasks(self) -> List[Task]:
        try:
            return self._decode_tasks()
        except CorruptedSlotError as exc:
            logger.warning("%s; falling back to an empty task list", exc)
            return []

    def save_tasks(self, tasks: Iterable[Task]) -> None:
        self._dump_slot(TASKS_KEY, [task.to_dict() for task in tasks])

    def _next_id(self, tasks: List[Task], moment: datetime) -> str:
        candidate = int(moment.timestamp() * 1000)
        numeric = [int(t.id) for t in tasks if t.id.isascii() and t.id.isdigit()]
        if numeric and candidate <= max(numeric):
            candidate = max(numeric) + 1
        existing = {t.id for t in tasks}
        while str(candidate) in existing:
            candidate += 1
        return str(candidate)

    def add_task(self, data: Optional[Mapping[str, Any]] = None, **fields: Any) -> List[Task]:
        """新しいタスクを末尾に追加し、更新後の全タスクを返す

        id / status / created_at は呼び出し側が渡しても無視される。
        """
        values = normalize_fields({**(data or {}), **fields})
        for ignored in ("id", "status", "created_at"):
            if ignored in values:
                logger.debug("add_task ignores caller-supplied %s", ignored)
                values.pop(ignored)

        tasks = self.get_tasks()
        moment = self.now()
        task = Task(
            id=self._next_id(tasks, moment),
            title=values.get("title") or "",
            description=values.get("description") or "",
            deadline=values.get("deadline") or None,
            assigned_user=values.get("assigned_user") or "",
            status=TaskStatus.PENDING,
            created_at=format_timestamp(moment),
        )
        tasks.append(task)
        self.save_tasks(tasks)
        logger.info("Task added id=%s assigned_user=%s deadline=%s", task.id, task.assigned_user, task.deadline)
        return tasks

    def update_task(
        self, task_id: str, changes: Optional[Mapping[str, Any]] = None, **fields: Any
    ) -> List[Task]:
        """指定フィールドのみを上書きする。該当IDが無ければ何もしない。"""
        values = normalize_fields({**(changes or {}), **fields})
        for name in values.keys() & IMMUTABLE_FIELDS:
            logger.debug("update_task ignores caller-supplied %s", name)
            values.pop(name)

        tasks = self.get_tasks()
        for index, task in enumerate(tasks):
            if task.id == task_id:
                tasks[index] = task.merged(values)
                self.save_tasks(tasks)
                logger.info("Task updated id=%s fields=%s", task_id, sorted(values))
                return tasks

        logger.debug("update_task: no task with id=%s", task_id)
        return tasks

    def delete_task(self, task_id: str) -> List[Task]:
        tasks = self.get_tasks()
        remaining = [task for task in tasks if task.id != task_id]
        self.save_tasks(remaining)
        if len(remaining) != len(tasks):
            logger.info("Task deleted id=%s", task_id)
        return remaining

    def reset_data(self) -> None:
        """全タスク・全ユーザーを消去し、デフォルトユーザーを再投入する"""
        self.storage.remove_item(TASKS_KEY)
        self.storage.remove_item(USERS_KEY)
        self.initialize_users()
        logger.warning("All task data has been reset")

    # ---- queries ----

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.get_tasks():
            if task.id == task_id:
                return task
        return None

    def list_tasks(
        self,
        *,
        assigned_user: Optional[str] = None,
        status: Optional[Any] = None,
    ) -> List[Task]:
        """担当者・ステータスで絞り込んだタスク一覧（挿入順）"""
        tasks = self.get_tasks()
        if assigned_user is not None:
            tasks = [t for t in tasks if t.assigned_user == assigned_user]
        if status is not None:
            wanted = TaskStatus.parse(status)
            tasks = [t for t in tasks if t.status == wanted]
        return tasks

    def is_task_overdue(self, task: Task) -> bool:
        return is_task_overdue(task, self.now())

    def overdue_tasks(self, tasks: Optional[Iterable[Task]] = None) -> List[Task]:
        now = self.now()
        source = self.get_tasks() if tasks is None else tasks
        return [task for task in source if is_task_overdue(task, now)]

    def has_overdue_tasks(self) -> bool:
        return bool(self.overdue_tasks())

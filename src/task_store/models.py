"""Task Store Models

ユーザー識別子とタスクのデータモデル定義。
永続化キーは元アプリのJSON形式（camelCase）を維持する。

Related Classes: TaskStore (store.py)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import InvalidStatusError

DEFAULT_USERS: List[str] = ["alice", "bob", "charlie"]


class TaskStatus(str, Enum):
    """タスクのステータス。値は画面表示と永続化で共通。"""

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def parse(cls, raw: Any) -> "TaskStatus":
        """値・メンバー名・snake_case表記のいずれからもステータスを解決する

        Raises:
            InvalidStatusError: どのステータスにも一致しない場合
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            try:
                return cls(raw)
            except ValueError:
                pass
            key = raw.strip().lower().replace(" ", "").replace("_", "").replace("-", "")
            for member in cls:
                if key in (member.name.lower().replace("_", ""), member.value.lower().replace(" ", "")):
                    return member
        raise InvalidStatusError(
            f"invalid status: {raw!r} (expected one of: {', '.join(m.value for m in cls)})"
        )


# Python属性名 -> 永続化キー
WIRE_KEYS: Dict[str, str] = {
    "id": "id",
    "title": "title",
    "description": "description",
    "deadline": "deadline",
    "assigned_user": "assignedUser",
    "status": "status",
    "created_at": "createdAt",
}
FIELD_NAMES: Dict[str, str] = {wire: name for name, wire in WIRE_KEYS.items()}

# 作成後に変更できないフィールド
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


@dataclass(slots=True)
class Task:
    """永続化済みタスクの表現"""

    id: str
    title: str
    description: str = ""
    deadline: Optional[str] = None  # ISO8601ローカル日時（例: 2024-01-01T00:00）
    assigned_user: str = ""
    status: TaskStatus = TaskStatus.PENDING
    created_at: str = ""  # ISO8601 UTC（例: 2024-01-01T00:00:00.000Z）

    def __post_init__(self) -> None:
        self.status = TaskStatus.parse(self.status)

    def to_dict(self) -> Dict[str, Any]:
        """永続化用の辞書（camelCaseキー）に変換"""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "deadline": self.deadline,
            "assignedUser": self.assigned_user,
            "status": self.status.value,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """永続化された辞書からTaskを復元する

        Raises:
            ValueError: idが無い、またはステータスが不正な場合
        """
        if not isinstance(data, dict):
            raise ValueError(f"task record must be an object, got {type(data).__name__}")
        task_id = data.get("id")
        if task_id is None or str(task_id) == "":
            raise ValueError("task record has no id")
        deadline = data.get("deadline")
        return cls(
            id=str(task_id),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            deadline=str(deadline) if deadline is not None else None,
            assigned_user=str(data.get("assignedUser") or ""),
            status=TaskStatus.parse(data.get("status") or TaskStatus.PENDING),
            created_at=str(data.get("createdAt") or ""),
        )

    def merged(self, changes: Dict[str, Any]) -> "Task":
        """指定フィールドのみを上書きしたコピーを返す（id/created_atは不変）"""
        values = {k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS}
        # replace() runs __post_init__, which parses the status
        return replace(self, **values)

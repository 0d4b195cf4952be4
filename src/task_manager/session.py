"""ロール（PM / User）とタスク入力の検証

ログイン画面・タスクフォームが行っていた呼び出し側の検証をまとめたもの。
ロールは呼び出し側の自己申告であり、認証は行わない。

Related Classes: TaskStore (src/task_store/store.py)
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from src.task_store import Task, parse_deadline


ROLE_PM = "pm"
ROLE_USER = "user"
ROLES = (ROLE_PM, ROLE_USER)
PM_DISPLAY_NAME = "Project Manager"


class SessionError(Exception):
    """ログイン情報が不正"""

    pass


class PermissionDeniedError(SessionError):
    """このロールでは許可されていない操作"""

    pass


class TaskInputError(ValueError):
    """タスクフォームの入力が不正"""

    pass


@dataclass(frozen=True)
class Session:
    """ログイン中のロールとユーザー名"""

    role: str
    username: str

    @property
    def is_pm(self) -> bool:
        return self.role == ROLE_PM

    @property
    def display_role(self) -> str:
        return PM_DISPLAY_NAME if self.is_pm else "User"

    def visible_user(self) -> Optional[str]:
        """タスク一覧の担当者フィルタ（PMは全件）"""
        return None if self.is_pm else self.username

    def require_pm(self, action: str) -> None:
        if not self.is_pm:
            raise PermissionDeniedError(f"Only the project manager can {action}")

    def can_access(self, task: Task) -> bool:
        return self.is_pm or task.assigned_user == self.username


def login(role: str, username: Optional[str], users: Iterable[str]) -> Session:
    """
    ログイン処理

    Args:
        role: "pm" または "user"
        username: Userロールのときに選択したユーザー名
        users: 登録済みユーザー一覧

    Raises:
        SessionError: ロールが不明、またはユーザーが未選択/未登録の場合
    """
    if role == ROLE_PM:
        return Session(role=ROLE_PM, username=PM_DISPLAY_NAME)
    if role != ROLE_USER:
        raise SessionError(f"Unknown role: {role!r} (expected 'pm' or 'user')")
    if not username:
        raise SessionError("Please select a user")
    if username not in set(users):
        raise SessionError(f"Unknown user: {username}")
    return Session(role=ROLE_USER, username=username)


def validate_task_input(
    users: Iterable[str],
    *,
    title: Optional[str],
    description: Optional[str] = "",
    deadline: Optional[str],
    assigned_user: Optional[str],
) -> Dict[str, Any]:
    """
    タスクフォームの入力検証

    Returns:
        前後の空白を除去した保存用フィールド

    Raises:
        TaskInputError: タイトル空・期限未指定/不正・担当者未選択/未登録の場合
    """
    if not title or not title.strip():
        raise TaskInputError("Please enter a task title")
    if not deadline:
        raise TaskInputError("Please select a deadline")
    if parse_deadline(deadline) is None:
        raise TaskInputError(f"Invalid deadline: {deadline}")
    if not assigned_user:
        raise TaskInputError("Please assign a user")
    if assigned_user not in set(users):
        raise TaskInputError(f"Unknown user: {assigned_user}")

    return {
        "title": title.strip(),
        "description": (description or "").strip(),
        "deadline": deadline,
        "assigned_user": assigned_user,
    }

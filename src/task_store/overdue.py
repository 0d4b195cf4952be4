"""期限切れ判定

期限を過ぎていて、かつDoneでないタスクを「期限切れ」とみなす。
状態は保存せず、呼び出した時点の時刻で毎回計算する。
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from .models import Task, TaskStatus

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_deadline(value: Optional[str]) -> Optional[datetime]:
    """期限文字列をaware datetimeに変換する。解析できなければNone。

    - 日付のみ (YYYY-MM-DD) はUTCの0時
    - タイムゾーン無しの日時はローカル時刻
    - オフセット付き/Z付きはそのまま
    """
    if not value:
        return None
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if _DATE_ONLY.match(text):
        return parsed.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        return parsed.astimezone()
    return parsed


def is_task_overdue(task: Task, now: Optional[datetime] = None) -> bool:
    """タスクが期限切れかどうかを返す"""
    if not task.deadline or task.status == TaskStatus.DONE:
        return False
    deadline = parse_deadline(task.deadline)
    if deadline is None:
        return False
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.astimezone()
    return deadline < now

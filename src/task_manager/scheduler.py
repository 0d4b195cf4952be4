"""
期限切れタスクの定期チェック用スケジューラーモジュール

関連クラス:
  - task_store.TaskStore: 期限切れ判定を提供するストア
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from src.task_store import Task, TaskStore

OverdueCallback = Callable[[List[Task]], None]


class OverdueCheckScheduler:
    """期限切れタスクを一定間隔で再評価するスケジューラークラス"""

    def __init__(
        self,
        store: TaskStore,
        interval_seconds: int = 60,  # デフォルト1分
        on_change: Optional[OverdueCallback] = None,
    ):
        """
        初期化

        Args:
            store: TaskStoreインスタンス
            interval_seconds: チェック間隔（秒）
            on_change: 期限切れタスクの集合が変化したときに呼ばれるコールバック
        """
        if interval_seconds < 1:
            raise ValueError("Interval must be at least 1 second")
        self.store = store
        self.interval_seconds = interval_seconds
        self.on_change = on_change
        self.logger = logging.getLogger(__name__)

        # 状態管理
        self._running = False
        self._lock = threading.Lock()
        self._overdue_ids: List[str] = []
        self._last_checked_at: Optional[str] = None

        # スレッド
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """スケジューラーを開始（バックグラウンドスレッド起動）"""
        with self._lock:
            if self._running:
                self.logger.warning("Overdue scheduler is already running")
                return

            self._running = True
            self._thread = threading.Thread(target=self._run_loop, daemon=True)
            self._thread.start()
            self.logger.info("Overdue scheduler started (interval=%ss)", self.interval_seconds)

    def stop(self) -> None:
        """スケジューラーを停止"""
        with self._lock:
            if not self._running:
                self.logger.warning("Overdue scheduler is not running")
                return

            self._running = False
            self.logger.info("Stopping overdue scheduler...")

        # スレッドの終了を待機
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
            self.logger.info("Overdue scheduler stopped")

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def get_status(self) -> Dict[str, Any]:
        """現在の状態を取得"""
        with self._lock:
            return {
                "running": self._running,
                "interval_seconds": self.interval_seconds,
                "has_overdue": bool(self._overdue_ids),
                "overdue_ids": list(self._overdue_ids),
                "last_checked_at": self._last_checked_at,
            }

    def set_interval(self, interval_seconds: int) -> None:
        """チェック間隔を変更"""
        if interval_seconds < 1:
            raise ValueError("Interval must be at least 1 second")

        with self._lock:
            self.interval_seconds = interval_seconds
            self.logger.info("Overdue check interval changed to %s seconds", interval_seconds)

    def check_now(self) -> List[Task]:
        """期限切れチェックを同期的に1回実行し、期限切れタスクを返す"""
        overdue = self.store.overdue_tasks()
        ids = [task.id for task in overdue]

        with self._lock:
            changed = ids != self._overdue_ids
            self._overdue_ids = ids
            self._last_checked_at = datetime.now(timezone.utc).isoformat()

        if changed:
            if overdue:
                self.logger.warning("%d task(s) have missed their deadlines: %s", len(ids), ", ".join(ids))
            else:
                self.logger.info("No overdue tasks")
            if self.on_change is not None:
                self.on_change(overdue)
        return overdue

    def _run_loop(self) -> None:
        """
        メインループ（バックグラウンドスレッドで実行）

        開始直後に1回チェックし、その後interval_secondsごとに_run_taskを呼び出す
        """
        self.logger.debug("Overdue scheduler loop started")
        self._run_task()

        while True:
            # 次の実行までスリープ（1秒ごとに停止確認）
            for _ in range(self.interval_seconds):
                with self._lock:
                    if not self._running:
                        self.logger.debug("Overdue scheduler loop exited")
                        return
                time.sleep(1)

            self._run_task()

    def _run_task(self) -> None:
        """定期実行タスク本体。例外はログに残し、ループは継続する。"""
        try:
            self.check_now()
        except Exception as e:
            self.logger.error(f"Overdue check failed: {e}", exc_info=True)

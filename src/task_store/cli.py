#!/usr/bin/env python3
"""
タスク管理CLI - ログイン画面・タスクフォーム・タスク一覧・リセット操作のターミナル版

Usage:
    python -m src.task_store [--role pm|user] [--user NAME] users
    python -m src.task_store --role pm add --title "タイトル" --deadline 2024-01-01T00:00 --assign alice [--description "詳細"]
    python -m src.task_store --role pm edit --id ID [--title T] [--description D] [--deadline DL] [--assign USER]
    python -m src.task_store --role user --user alice status --id ID --to "In Progress"
    python -m src.task_store [--role user --user alice] list [--status Pending]
    python -m src.task_store --role pm delete --id ID [--yes]
    python -m src.task_store --role pm reset [--yes]
    python -m src.task_store --role pm overdue
    python -m src.task_store --role pm watch [--interval 60] [--once]
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.task_manager.config import Config, build_store
from src.task_manager.logger import setup_logger
from src.task_manager.scheduler import OverdueCheckScheduler
from src.task_manager.session import (
    ROLES,
    Session,
    SessionError,
    login,
    validate_task_input,
)

from .models import Task, TaskStatus
from .overdue import parse_deadline
from .store import TaskStore


STATUS_CHOICES = [status.value for status in TaskStatus]


def format_deadline(deadline: Optional[str]) -> str:
    """期限を表示用に整形"""
    if not deadline:
        return "No deadline"
    parsed = parse_deadline(deadline)
    if parsed is None:
        return deadline
    return parsed.astimezone().strftime("%b %d, %Y, %I:%M %p")


def format_task_text(task: Task, overdue: bool) -> str:
    """タスクをテキスト形式で整形"""
    flag = " [OVERDUE]" if overdue else ""
    description = task.description.strip() or "No description"
    return (
        f"[{task.id}] {task.status.value}{flag} | Deadline: {format_deadline(task.deadline)} | "
        f"Assigned: {task.assigned_user or '-'} | {task.title} | {description}"
    )


def format_task_json(task: Task, overdue: bool) -> Dict[str, Any]:
    """タスクを辞書形式に変換"""
    payload = task.to_dict()
    payload["overdue"] = overdue
    return payload


def emit_tasks(store: TaskStore, tasks: List[Task], output_format: str, empty_message: str) -> None:
    if output_format == "json":
        print(json.dumps([format_task_json(t, store.is_task_overdue(t)) for t in tasks], ensure_ascii=False))
    elif not tasks:
        print(empty_message)
    else:
        for task in tasks:
            print(format_task_text(task, store.is_task_overdue(task)))


def emit_task(store: TaskStore, task: Task, output_format: str, message: str) -> None:
    overdue = store.is_task_overdue(task)
    if output_format == "json":
        print(json.dumps(format_task_json(task, overdue), ensure_ascii=False))
    else:
        print(f"{message}: {format_task_text(task, overdue)}")


def confirm(prompt: str, assume_yes: bool) -> bool:
    """破壊的操作の確認プロンプト"""
    if assume_yes:
        return True
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def find_task(store: TaskStore, session: Session, task_id: str) -> Task:
    task = store.get_task(task_id)
    if task is None or not session.can_access(task):
        raise LookupError(f"Task {task_id} not found")
    return task


def cmd_users(store: TaskStore, output_format: str) -> int:
    """ユーザー一覧を表示"""
    users = store.get_users()
    if output_format == "json":
        print(json.dumps(users, ensure_ascii=False))
    else:
        for user in users:
            print(user)
    return 0


def cmd_list(store: TaskStore, session: Session, status: Optional[str], output_format: str) -> int:
    """ロールに応じたタスク一覧を表示"""
    tasks = store.list_tasks(assigned_user=session.visible_user(), status=status)
    empty = "No tasks found." if session.is_pm else "No tasks assigned to you."
    emit_tasks(store, tasks, output_format, empty)
    return 0


def cmd_add(store: TaskStore, session: Session, args: argparse.Namespace) -> int:
    """新しいタスクを追加（PMのみ）"""
    session.require_pm("add tasks")
    fields = validate_task_input(
        store.get_users(),
        title=args.title,
        description=args.description,
        deadline=args.deadline,
        assigned_user=args.assign,
    )
    tasks = store.add_task(**fields)
    emit_task(store, tasks[-1], args.format, "Added")
    return 0


def cmd_edit(store: TaskStore, session: Session, args: argparse.Namespace) -> int:
    """既存タスクを編集（PMのみ）"""
    session.require_pm("edit tasks")
    task = find_task(store, session, args.id)
    fields = validate_task_input(
        store.get_users(),
        title=args.title if args.title is not None else task.title,
        description=args.description if args.description is not None else task.description,
        deadline=args.deadline if args.deadline is not None else task.deadline,
        assigned_user=args.assign if args.assign is not None else task.assigned_user,
    )
    store.update_task(task.id, **fields)
    emit_task(store, find_task(store, session, task.id), args.format, "Updated")
    return 0


def cmd_status(store: TaskStore, session: Session, args: argparse.Namespace) -> int:
    """ステータスを更新（Userは自分のタスクのみ）"""
    task = find_task(store, session, args.id)
    new_status = TaskStatus.parse(args.to)
    store.update_task(task.id, status=new_status)
    emit_task(store, find_task(store, session, task.id), args.format, "Status updated")
    return 0


def cmd_delete(store: TaskStore, session: Session, args: argparse.Namespace) -> int:
    """タスクを削除（PMのみ）"""
    session.require_pm("delete tasks")
    task = find_task(store, session, args.id)
    if not confirm("Are you sure you want to delete this task?", args.yes):
        print("Cancelled.")
        return 1
    store.delete_task(task.id)
    if args.format == "json":
        print(json.dumps({"deleted": True, "id": task.id}, ensure_ascii=False))
    else:
        print(f"Deleted: ID {task.id}")
    return 0


def cmd_reset(store: TaskStore, session: Session, args: argparse.Namespace) -> int:
    """全データをリセット（PMのみ）"""
    session.require_pm("reset data")
    if not confirm("Are you sure you want to reset all data? This action cannot be undone.", args.yes):
        print("Cancelled.")
        return 1
    store.reset_data()
    if args.format == "json":
        print(json.dumps({"reset": True, "users": store.get_users()}, ensure_ascii=False))
    else:
        print("All data has been reset successfully!")
    return 0


def cmd_overdue(store: TaskStore, session: Session, output_format: str) -> int:
    """期限切れタスクの警告を表示（PMのみ）"""
    session.require_pm("view the overdue warning")
    overdue = store.overdue_tasks()
    if output_format == "json":
        print(
            json.dumps(
                {"has_overdue": bool(overdue), "tasks": [format_task_json(t, True) for t in overdue]},
                ensure_ascii=False,
            )
        )
    elif overdue:
        print("Warning: There are tasks that have missed their deadlines!")
        for task in overdue:
            print(format_task_text(task, True))
    else:
        print("No overdue tasks.")
    return 0


def cmd_watch(store: TaskStore, session: Session, args: argparse.Namespace, interval: int) -> int:
    """期限切れチェックを定期実行し、変化があれば警告を表示（PMのみ）"""
    session.require_pm("watch overdue tasks")

    def report(overdue: List[Task]) -> None:
        if overdue:
            print(f"Warning: {len(overdue)} task(s) have missed their deadlines!", flush=True)
            for task in overdue:
                print(format_task_text(task, True), flush=True)
        else:
            print("No overdue tasks.", flush=True)

    scheduler = OverdueCheckScheduler(store, interval_seconds=interval, on_change=report)
    if args.once:
        scheduler.check_now()
        return 0

    scheduler.start()
    try:
        while scheduler.is_running():
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="タスク管理CLI - PMがタスクを割り当て、ユーザーがステータスを更新する",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--db-path", type=str, help="SQLiteデータベースファイルのパス")
    parser.add_argument("--config", type=str, help="設定ファイルのパス（デフォルト: config/app_config.yaml）")
    parser.add_argument("--role", choices=ROLES, default="pm", help="ログインするロール（デフォルト: pm）")
    parser.add_argument("--user", help="Userロールでログインするユーザー名")

    format_parent = argparse.ArgumentParser(add_help=False)
    format_parent.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="出力フォーマット（デフォルト: text）",
    )

    subparsers = parser.add_subparsers(dest="command", help="実行するコマンド", required=True)

    subparsers.add_parser("users", parents=[format_parent], help="ユーザー一覧を表示")

    parser_list = subparsers.add_parser("list", parents=[format_parent], help="タスク一覧を表示")
    parser_list.add_argument("--status", help=f"ステータスで絞り込み（{' / '.join(STATUS_CHOICES)}）")

    parser_add = subparsers.add_parser("add", parents=[format_parent], help="タスクを追加")
    parser_add.add_argument("--title", required=True, help="タスクのタイトル")
    parser_add.add_argument("--description", default="", help="タスクの詳細")
    parser_add.add_argument("--deadline", required=True, help="期限（例: 2024-01-01T17:00）")
    parser_add.add_argument("--assign", required=True, help="担当ユーザー")

    parser_edit = subparsers.add_parser("edit", parents=[format_parent], help="タスクを編集")
    parser_edit.add_argument("--id", required=True, help="編集するタスクのID")
    parser_edit.add_argument("--title", help="新しいタイトル")
    parser_edit.add_argument("--description", help="新しい詳細")
    parser_edit.add_argument("--deadline", help="新しい期限")
    parser_edit.add_argument("--assign", help="新しい担当ユーザー")

    parser_status = subparsers.add_parser("status", parents=[format_parent], help="ステータスを更新")
    parser_status.add_argument("--id", required=True, help="更新するタスクのID")
    parser_status.add_argument("--to", required=True, help=f"新しいステータス（{' / '.join(STATUS_CHOICES)}）")

    parser_delete = subparsers.add_parser("delete", parents=[format_parent], help="タスクを削除")
    parser_delete.add_argument("--id", required=True, help="削除するタスクのID")
    parser_delete.add_argument("--yes", action="store_true", help="確認プロンプトを省略")

    parser_reset = subparsers.add_parser("reset", parents=[format_parent], help="全データをリセット")
    parser_reset.add_argument("--yes", action="store_true", help="確認プロンプトを省略")

    subparsers.add_parser("overdue", parents=[format_parent], help="期限切れタスクを確認")

    parser_watch = subparsers.add_parser("watch", parents=[format_parent], help="期限切れタスクを定期チェック")
    parser_watch.add_argument("--interval", type=int, help="チェック間隔（秒）")
    parser_watch.add_argument("--once", action="store_true", help="1回だけチェックして終了")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLIエントリポイント"""
    args = build_parser().parse_args(argv)

    config = Config.from_yaml(Path(args.config) if args.config else None)
    setup_logger(log_level=config.log_level, log_file=config.log_file)

    store = build_store(config, db_path=Path(args.db_path) if args.db_path else None)
    try:
        if args.command == "users":
            return cmd_users(store, args.format)

        session = login(args.role, args.user, store.get_users())
        if args.command == "list":
            return cmd_list(store, session, args.status, args.format)
        elif args.command == "add":
            return cmd_add(store, session, args)
        elif args.command == "edit":
            return cmd_edit(store, session, args)
        elif args.command == "status":
            return cmd_status(store, session, args)
        elif args.command == "delete":
            return cmd_delete(store, session, args)
        elif args.command == "reset":
            return cmd_reset(store, session, args)
        elif args.command == "overdue":
            return cmd_overdue(store, session, args.format)
        elif args.command == "watch":
            interval = args.interval or config.overdue.check_interval_seconds
            return cmd_watch(store, session, args, interval)
        else:
            print(f"Error: Unknown command: {args.command}", file=sys.stderr)
            return 1
    except (SessionError, LookupError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())

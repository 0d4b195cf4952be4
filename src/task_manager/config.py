"""
設定管理モジュール

関連クラス:
  - task_store.TaskStore: ストレージ設定とデフォルトユーザーを使用
  - scheduler.OverdueCheckScheduler: 期限切れチェック間隔を使用
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from src.task_store import (
    DEFAULT_USERS,
    MemoryKeyValueStorage,
    SqliteKeyValueStorage,
    TaskStore,
)

PROJECT_ROOT = Path(__file__).parent.parent.parent


@dataclass
class StorageConfig:
    """ストレージ設定"""

    backend: str = "sqlite"  # sqlite | memory
    db_path: Optional[str] = None  # 未指定時は TASK_MANAGER_DB_PATH → data/task_manager.db
    default_users: List[str] = field(default_factory=lambda: list(DEFAULT_USERS))


@dataclass
class OverdueConfig:
    """期限切れチェック設定"""

    check_interval_seconds: int = 60  # デフォルト1分


@dataclass
class ServerConfig:
    """APIサーバー設定"""

    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class Config:
    """アプリケーション設定クラス"""

    storage: StorageConfig = None  # type: ignore

    overdue: OverdueConfig = None  # type: ignore

    server: ServerConfig = None  # type: ignore

    # ログ設定
    log_level: str = "INFO"
    log_file: str = "logs/task_manager.log"

    def __post_init__(self):
        """デフォルト値の初期化"""
        if self.storage is None:
            self.storage = StorageConfig()
        if self.overdue is None:
            self.overdue = OverdueConfig()
        if self.server is None:
            self.server = ServerConfig()

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "Config":
        """YAMLファイルから設定を読み込む

        Args:
            config_path: 設定ファイルパス（省略時はconfig/app_config.yamlを使用）

        Returns:
            Config: 設定インスタンス（ファイルが無ければデフォルト値）
        """
        if config_path is None:
            config_path = PROJECT_ROOT / "config" / "app_config.yaml"
        config_path = Path(config_path)

        if not config_path.exists():
            return cls()

        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data: Dict[str, Any] = yaml.safe_load(f) or {}

        storage_data = yaml_data.get("storage", {})
        overdue_data = yaml_data.get("overdue", {})
        server_data = yaml_data.get("server", {})
        log_data = yaml_data.get("log", {})

        return cls(
            storage=StorageConfig(
                backend=storage_data.get("backend", "sqlite"),
                db_path=storage_data.get("db_path"),
                default_users=list(storage_data.get("default_users", DEFAULT_USERS)),
            ),
            overdue=OverdueConfig(
                check_interval_seconds=overdue_data.get("check_interval_seconds", 60),
            ),
            server=ServerConfig(
                host=server_data.get("host", "127.0.0.1"),
                port=server_data.get("port", 8000),
            ),
            log_level=log_data.get("level", "INFO"),
            log_file=log_data.get("file", "logs/task_manager.log"),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """環境変数から設定を読み込む"""
        users = os.getenv("TASK_MANAGER_DEFAULT_USERS")
        return cls(
            storage=StorageConfig(
                backend=os.getenv("TASK_MANAGER_STORAGE", "sqlite"),
                db_path=os.getenv("TASK_MANAGER_DB_PATH"),
                default_users=[u.strip() for u in users.split(",") if u.strip()]
                if users
                else list(DEFAULT_USERS),
            ),
            overdue=OverdueConfig(
                check_interval_seconds=int(os.getenv("TASK_MANAGER_OVERDUE_INTERVAL", "60")),
            ),
            server=ServerConfig(
                host=os.getenv("TASK_MANAGER_HOST", "127.0.0.1"),
                port=int(os.getenv("TASK_MANAGER_PORT", "8000")),
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/task_manager.log"),
        )


def build_store(config: Config, db_path: Optional[Path] = None) -> TaskStore:
    """設定からストレージとTaskStoreを組み立て、ユーザーを初期化して返す

    Args:
        config: 設定インスタンス
        db_path: 明示的なDBパス（設定値より優先）
    """
    if config.storage.backend == "memory":
        storage = MemoryKeyValueStorage()
    elif config.storage.backend == "sqlite":
        path = db_path or (Path(config.storage.db_path) if config.storage.db_path else None)
        storage = SqliteKeyValueStorage(db_path=path)
    else:
        raise ValueError(f"Unknown storage backend: {config.storage.backend}")

    store = TaskStore(storage, default_users=config.storage.default_users)
    store.initialize_users()
    return store

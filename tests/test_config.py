"""設定読み込みのテスト"""

from src.task_manager.config import Config, build_store
from src.task_store import MemoryKeyValueStorage, SqliteKeyValueStorage


def test_from_yaml_reads_sections(tmp_path):
    config_path = tmp_path / "app_config.yaml"
    config_path.write_text(
        """
storage:
  backend: memory
  default_users: [dana, eli]
overdue:
  check_interval_seconds: 15
server:
  port: 9000
log:
  level: DEBUG
  file: logs/test.log
""",
        encoding="utf-8",
    )

    config = Config.from_yaml(config_path)

    assert config.storage.backend == "memory"
    assert config.storage.default_users == ["dana", "eli"]
    assert config.overdue.check_interval_seconds == 15
    assert config.server.port == 9000
    assert config.server.host == "127.0.0.1"
    assert config.log_level == "DEBUG"


def test_from_yaml_missing_file_uses_defaults(tmp_path):
    config = Config.from_yaml(tmp_path / "missing.yaml")

    assert config.storage.backend == "sqlite"
    assert config.storage.default_users == ["alice", "bob", "charlie"]
    assert config.overdue.check_interval_seconds == 60


def test_from_env(monkeypatch):
    monkeypatch.setenv("TASK_MANAGER_STORAGE", "memory")
    monkeypatch.setenv("TASK_MANAGER_DEFAULT_USERS", "x, y")
    monkeypatch.setenv("TASK_MANAGER_OVERDUE_INTERVAL", "30")

    config = Config.from_env()

    assert config.storage.backend == "memory"
    assert config.storage.default_users == ["x", "y"]
    assert config.overdue.check_interval_seconds == 30


def test_build_store_seeds_configured_users(tmp_path):
    config = Config()
    config.storage.default_users = ["dana"]

    store = build_store(config, db_path=tmp_path / "store.db")

    assert isinstance(store.storage, SqliteKeyValueStorage)
    assert store.get_users() == ["dana"]
    store.reset_data()
    assert store.get_users() == ["dana"]


def test_build_store_memory_backend():
    config = Config()
    config.storage.backend = "memory"

    store = build_store(config)

    assert isinstance(store.storage, MemoryKeyValueStorage)
    assert store.get_tasks() == []

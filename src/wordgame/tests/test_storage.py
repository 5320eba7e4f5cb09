"""Tests for storage backends."""
import json
from typing import Generator
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from wordgame.config import Settings
from wordgame.models.base import init_db, make_engine, make_session_factory
from wordgame.services.storage import (
    JsonFileStorage,
    MemoryStorage,
    SqlStorage,
    Storage,
    StorageError,
    StorageQuotaExceeded,
    create_storage,
)


@pytest.fixture
def sql_storage() -> Generator[SqlStorage, None, None]:
    """SQL storage over a private in-memory database."""
    engine = make_engine("sqlite://")
    init_db(engine)
    yield SqlStorage(make_session_factory(engine))
    engine.dispose()


@pytest.fixture(params=["memory", "file", "sql"])
def backend(request, tmp_path, sql_storage) -> Storage:
    """Each storage backend in turn."""
    if request.param == "memory":
        return MemoryStorage()
    if request.param == "file":
        return JsonFileStorage(tmp_path / "storage.json")
    return sql_storage


def test_get_missing_key(backend: Storage) -> None:
    """Test that absent keys read as None."""
    assert backend.get("wordGameConfig") is None


def test_set_and_get(backend: Storage) -> None:
    """Test storing and replacing values."""
    backend.set("wordGameConfig", '{"autoDelay": 1.5}')
    assert backend.get("wordGameConfig") == '{"autoDelay": 1.5}'

    backend.set("wordGameConfig", '{"autoDelay": 3}')
    assert backend.get("wordGameConfig") == '{"autoDelay": 3}'


def test_remove(backend: Storage) -> None:
    """Test removing present and absent keys."""
    backend.set("wordGameStats", "{}")
    backend.set("wordGameRecords", "[]")

    backend.remove("wordGameStats")
    backend.remove("wordGameProgress")

    assert backend.get("wordGameStats") is None
    assert backend.get("wordGameRecords") == "[]"


def test_unicode_values(backend: Storage) -> None:
    """Test that non-ASCII payloads are kept intact."""
    backend.set("wordGameRecords", '[{"date": "2026/10/18", "note": "单词"}]')

    assert backend.get("wordGameRecords") == '[{"date": "2026/10/18", "note": "单词"}]'


def test_memory_quota() -> None:
    """Test that memory storage enforces its byte quota."""
    storage = MemoryStorage(quota=20)
    storage.set("a", "x" * 10)

    with pytest.raises(StorageQuotaExceeded):
        storage.set("b", "y" * 10)

    # Replacing a key only counts its new size
    storage.set("a", "z" * 19)
    assert storage.get("a") == "z" * 19
    assert "b" not in storage
    assert len(storage) == 1


def test_memory_rejects_non_string() -> None:
    """Test that only strings can be stored."""
    with pytest.raises(StorageError):
        MemoryStorage().set("a", 1)


def test_file_storage_persists_between_instances(tmp_path) -> None:
    """Test that a new instance sees previously written data."""
    path = tmp_path / "nested" / "storage.json"
    JsonFileStorage(path).set("wordGameConfig", "{}")

    assert JsonFileStorage(path).get("wordGameConfig") == "{}"
    assert json.loads(path.read_text(encoding="utf-8")) == {"wordGameConfig": "{}"}
    assert [p.name for p in path.parent.iterdir()] == ["storage.json"]


def test_file_storage_corrupt_file(tmp_path) -> None:
    """Test that unreadable files raise StorageError."""
    path = tmp_path / "storage.json"
    path.write_text("{broken", encoding="utf-8")

    with pytest.raises(StorageError):
        JsonFileStorage(path).get("wordGameConfig")


def test_file_storage_not_an_object(tmp_path) -> None:
    """Test that a JSON file holding something other than an object is rejected."""
    path = tmp_path / "storage.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(StorageError):
        JsonFileStorage(path).set("wordGameConfig", "{}")


def test_file_storage_write_error(tmp_path) -> None:
    """Test that OS errors while writing become StorageError."""
    storage = JsonFileStorage(tmp_path / "storage.json")

    with patch("wordgame.services.storage.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(StorageError):
            storage.set("wordGameConfig", "{}")

    assert storage.get("wordGameConfig") is None
    assert list(tmp_path.iterdir()) == []


def test_sql_storage_errors_are_wrapped(sql_storage: SqlStorage) -> None:
    """Test that database errors become StorageError."""
    error = OperationalError("SELECT", {}, Exception("database is locked"))
    with patch.object(sql_storage, "session_factory") as factory:
        factory.return_value.query.side_effect = error
        with pytest.raises(StorageError):
            sql_storage.get("wordGameConfig")
        with pytest.raises(StorageError):
            sql_storage.set("wordGameConfig", "{}")
        with pytest.raises(StorageError):
            sql_storage.remove("wordGameConfig")


@pytest.mark.parametrize(
    "name, expected",
    [("memory", MemoryStorage), ("file", JsonFileStorage), ("sql", SqlStorage)],
)
def test_create_storage(tmp_path, name: str, expected: type) -> None:
    """Test building the configured backend."""
    app_settings = Settings()
    app_settings.storage.backend = name
    app_settings.storage.file_path = tmp_path / "storage.json"
    app_settings.database.url = "sqlite://"

    storage = create_storage(app_settings)

    assert isinstance(storage, expected)
    storage.set("wordGameConfig", "{}")
    assert storage.get("wordGameConfig") == "{}"


def test_create_storage_unknown_backend() -> None:
    """Test that unknown backends are rejected."""
    app_settings = Settings()
    app_settings.storage.backend = "cloud"

    with pytest.raises(ValueError):
        create_storage(app_settings)

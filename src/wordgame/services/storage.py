"""Key-value storage backends for persisted game data."""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from wordgame.models.models import StorageEntry

logger = logging.getLogger(__name__)

CONFIG_KEY = "wordGameConfig"
STATS_KEY = "wordGameStats"
RECORDS_KEY = "wordGameRecords"
PROGRESS_KEY = "wordGameProgress"

ALL_KEYS = (CONFIG_KEY, STATS_KEY, RECORDS_KEY, PROGRESS_KEY)


class StorageError(Exception):
    """Raised when a storage backend cannot complete an operation."""


class StorageQuotaExceeded(StorageError):
    """Raised when a write would exceed the backend capacity."""


class Storage(ABC):
    """String-keyed, string-valued durable store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""


class MemoryStorage(Storage):
    """In-process storage, optionally limited to a number of bytes like browser storage."""

    def __init__(self, quota: Optional[int] = None):
        self.quota = quota
        self._data: Dict[str, str] = {}

    def _size_with(self, key: str, value: str) -> int:
        size = len(key.encode("utf-8")) + len(value.encode("utf-8"))
        for other_key, other_value in self._data.items():
            if other_key != key:
                size += len(other_key.encode("utf-8")) + len(other_value.encode("utf-8"))
        return size

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key} must be a string")
        if self.quota is not None and self._size_with(key, value) > self.quota:
            raise StorageQuotaExceeded(f"Storing {key} exceeds quota of {self.quota} bytes")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStorage(Storage):
    """Keeps the whole key space in one JSON object file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Could not read storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.path} does not contain a JSON object")
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Could not write storage file {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        if value is not None and not isinstance(value, str):
            raise StorageError(f"Value for {key} in {self.path} is not a string")
        return value

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class SqlStorage(Storage):
    """Stores each key as a row of the storage_entries table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        db = self.session_factory()
        try:
            entry = db.query(StorageEntry).filter(StorageEntry.key == key).first()
            return entry.value if entry else None
        except SQLAlchemyError as e:
            raise StorageError(f"Could not read {key}: {e}") from e
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        db = self.session_factory()
        try:
            entry = db.query(StorageEntry).filter(StorageEntry.key == key).first()
            if entry:
                entry.value = value
            else:
                db.add(StorageEntry(key=key, value=value))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Could not write {key}: {e}") from e
        finally:
            db.close()

    def remove(self, key: str) -> None:
        db = self.session_factory()
        try:
            db.query(StorageEntry).filter(StorageEntry.key == key).delete()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Could not remove {key}: {e}") from e
        finally:
            db.close()


def create_storage(app_settings) -> Storage:
    """Create the storage backend named by the settings."""
    backend = app_settings.storage.backend
    if backend == "memory":
        logger.info("Using in-memory storage")
        return MemoryStorage()
    if backend == "file":
        logger.info(f"Using file storage at {app_settings.storage.file_path}")
        return JsonFileStorage(app_settings.storage.file_path)
    if backend == "sql":
        from wordgame.models.base import init_db, make_engine, make_session_factory

        engine = make_engine(app_settings.database.url, app_settings.database.echo)
        init_db(engine)
        logger.info(f"Using SQL storage at {engine.url}")
        return SqlStorage(make_session_factory(engine))
    raise ValueError(f"Unknown storage backend: {backend}")

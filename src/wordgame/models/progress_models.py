"""Models for learning progress data structures."""
from __future__ import annotations

import io
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union


class AnswerOutcome(Enum):
    """Result of a single answer for a word."""
    CORRECT = "correct"
    WRONG = "wrong"


class LoadStatus(Enum):
    """How a record set was obtained when the store was loaded."""
    LOADED = "loaded"  # Read and parsed from storage
    EMPTY = "empty"  # Nothing stored yet, defaults used
    CORRUPT = "corrupt"  # Stored payload could not be parsed, defaults used
    UNAVAILABLE = "unavailable"  # Storage backend failed, defaults used


@dataclass(frozen=True)
class LoadResult:
    """Outcome of loading one storage key."""
    key: str
    status: LoadStatus
    error: Optional[str] = None

    @property
    def defaulted(self) -> bool:
        return self.status is not LoadStatus.LOADED


@dataclass(frozen=True)
class SaveResult:
    """Outcome of writing one storage key."""
    key: str
    ok: bool
    error: Optional[str] = None


def _non_negative_int(value: Any) -> int:
    number = int(value)
    if number < 0:
        raise ValueError(f"Expected a non-negative integer, got {value!r}")
    return number


def _int_in_range(value: Any, low: int, high: int) -> int:
    number = int(value)
    if not low <= number <= high:
        raise ValueError(f"Expected an integer from {low} to {high}, got {value!r}")
    return number


def _percentage(value: Any) -> float:
    number = float(value)
    if not 0 <= number <= 100:
        raise ValueError(f"Expected a percentage from 0 to 100, got {value!r}")
    return number


@dataclass
class WordStat:
    """Learning statistics of a single word."""
    studied: bool = False
    difficulty: int = 1
    wrong_times: int = 0
    correct_times: int = 0
    accuracy: float = 0.0
    last_studied: int = 0  # unix milliseconds
    master_level: int = 0

    @property
    def total_attempts(self) -> int:
        return self.correct_times + self.wrong_times

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase dictionary used in storage and backups."""
        return {
            "studied": self.studied,
            "difficulty": self.difficulty,
            "wrongTimes": self.wrong_times,
            "correctTimes": self.correct_times,
            "accuracy": self.accuracy,
            "lastStudied": self.last_studied,
            "masterLevel": self.master_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WordStat:
        """Create from a stored dictionary.

        Missing fields fall back to defaults; values of the wrong type raise
        TypeError or ValueError.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Word statistics must be an object, got {type(data).__name__}")
        return cls(
            studied=bool(data.get("studied", False)),
            difficulty=_int_in_range(data.get("difficulty", 1), 1, 3),
            wrong_times=_non_negative_int(data.get("wrongTimes", 0)),
            correct_times=_non_negative_int(data.get("correctTimes", 0)),
            accuracy=_percentage(data.get("accuracy", 0)),
            last_studied=int(data.get("lastStudied", 0)),
            master_level=_int_in_range(data.get("masterLevel", 0), 0, 5),
        )


@dataclass
class Progress:
    """Aggregate learning progress."""
    studied: int = 0
    total: int = 3500
    accuracy: float = 0.0
    streak: int = 0
    last_study_date: Optional[str] = None  # ISO date, YYYY-MM-DD

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase dictionary used in storage and backups."""
        return {
            "studied": self.studied,
            "total": self.total,
            "accuracy": self.accuracy,
            "streak": self.streak,
            "lastStudyDate": self.last_study_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Progress:
        """Create from a stored dictionary."""
        if not isinstance(data, dict):
            raise TypeError(f"Progress must be an object, got {type(data).__name__}")
        last_study_date = data.get("lastStudyDate")
        return cls(
            studied=_non_negative_int(data.get("studied", 0)),
            total=_non_negative_int(data.get("total", 3500)),
            accuracy=_percentage(data.get("accuracy", 0)),
            streak=_non_negative_int(data.get("streak", 0)),
            last_study_date=str(last_study_date) if last_study_date is not None else None,
        )


@dataclass(frozen=True)
class BankInfo:
    """Display metadata of a word bank."""
    bank_id: str
    name: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExportArtifact:
    """A serialized backup ready to be downloaded or written to disk."""
    blob: bytes
    filename: str
    media_type: str = "application/json"

    def open(self) -> io.BytesIO:
        """Return a fresh binary handle over the backup content."""
        return io.BytesIO(self.blob)

    def write_to(self, directory: Union[str, Path]) -> Path:
        """Write the backup into a directory and return the file path."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_bytes(self.blob)
        return path

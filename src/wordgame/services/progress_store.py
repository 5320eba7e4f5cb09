"""Progress store: word statistics, session records, progress and configuration."""
import copy
import json
import logging
from dataclasses import replace
from datetime import UTC, date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from wordgame.config import settings
from wordgame.models.progress_models import (
    AnswerOutcome,
    BankInfo,
    ExportArtifact,
    LoadResult,
    LoadStatus,
    Progress,
    SaveResult,
    WordStat,
)
from wordgame.monitoring import (
    answers_recorded,
    data_exports,
    data_imports,
    data_resets,
    game_records_saved,
    storage_errors,
    words_tracked,
)
from wordgame.services.storage import (
    ALL_KEYS,
    CONFIG_KEY,
    PROGRESS_KEY,
    RECORDS_KEY,
    STATS_KEY,
    Storage,
    StorageError,
)
from wordgame.services.word_banks import DEFAULT_BANK, is_known_bank, resolve_bank

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "currentBank": DEFAULT_BANK,
    "autoDelay": 1.5,
    "soundEffects": True,
    "showHints": True,
    "difficultyAdjust": True,
    "randomSelection": True,
}

DIFFICULTY_MIN_ATTEMPTS = 5
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 3
EASY_ACCURACY = 80  # above: the word gets easier
HARD_ACCURACY = 40  # below: the word gets harder

MASTERY_MIN_ATTEMPTS = 10
MASTERY_THRESHOLDS = [(90, 5), (80, 4), (70, 3), (60, 2)]

# Date format produced by the browser version of the game (Date.toDateString)
LEGACY_DATE_FORMAT = "%a %b %d %Y"


class DataImportError(ValueError):
    """Raised when a backup document cannot be imported."""


def calculate_accuracy(correct: int, total: int) -> float:
    """Percentage of correct answers with one decimal, 0 without attempts."""
    if total <= 0:
        return 0.0
    return round(correct / total * 100, 1)


def mastery_level(accuracy: float) -> int:
    """Map a word accuracy to a mastery level from 1 to 5."""
    for threshold, level in MASTERY_THRESHOLDS:
        if accuracy >= threshold:
            return level
    return 1


class ProgressStore:
    """Loads, updates and persists all game data through a key-value storage.

    Reads never raise: missing or unreadable data falls back to defaults and the
    outcome of each load is kept in ``load_results``. Writes report failures as
    a False return value while keeping the in-memory change.
    """

    def __init__(
        self,
        storage: Storage,
        clock: Optional[Callable[[], datetime]] = None,
        date_format: Optional[str] = None,
        history_limit: Optional[int] = None,
    ):
        """Initialize the store and load every record set from storage."""
        self.storage = storage
        self.clock = clock or datetime.now
        self.date_format = date_format if date_format is not None else settings.game.record_date_format
        self.history_limit = history_limit if history_limit is not None else settings.game.history_limit
        self.load_results: Dict[str, LoadResult] = {}
        self.last_save_result: Optional[SaveResult] = None

        self.config = self._load_config()
        self.word_stats = self._load_word_stats()
        self.game_records = self._load_game_records()
        self.current_bank = self.config.get("currentBank") or DEFAULT_BANK
        self.progress = self._load_progress()

        words_tracked.set(len(self.word_stats))
        logger.info(
            f"Progress store loaded: {len(self.word_stats)} words, "
            f"{len(self.game_records)} game records, bank {self.current_bank}"
        )

    # Storage helpers

    def _read(self, key: str) -> Tuple[Any, LoadResult]:
        """Read and decode one key; never raises."""
        try:
            raw = self.storage.get(key)
        except StorageError as e:
            logger.error(f"Failed to read {key}: {e}")
            storage_errors.labels(operation="load").inc()
            return None, LoadResult(key, LoadStatus.UNAVAILABLE, str(e))

        if raw is None:
            return None, LoadResult(key, LoadStatus.EMPTY)

        try:
            return json.loads(raw), LoadResult(key, LoadStatus.LOADED)
        except ValueError as e:
            logger.error(f"Stored {key} is not valid JSON: {e}")
            storage_errors.labels(operation="load").inc()
            return None, LoadResult(key, LoadStatus.CORRUPT, str(e))

    def _corrupt(self, key: str, error: Exception) -> LoadResult:
        logger.error(f"Stored {key} has an unexpected shape, using defaults: {error}")
        storage_errors.labels(operation="load").inc()
        return LoadResult(key, LoadStatus.CORRUPT, str(error))

    def _write(self, key: str, payload: Any) -> SaveResult:
        """Encode and store one key; never raises."""
        try:
            self.storage.set(key, json.dumps(payload, ensure_ascii=False))
            result = SaveResult(key, True)
        except (StorageError, TypeError, ValueError) as e:
            logger.error(f"Failed to save {key}: {e}")
            storage_errors.labels(operation="save").inc()
            result = SaveResult(key, False, str(e))
        self.last_save_result = result
        return result

    def _now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    # Configuration

    def _load_config(self) -> Dict[str, Any]:
        data, result = self._read(CONFIG_KEY)
        config = dict(DEFAULT_CONFIG)
        if result.status is LoadStatus.LOADED:
            if isinstance(data, dict):
                config.update(data)
            else:
                result = self._corrupt(CONFIG_KEY, TypeError("configuration must be an object"))
        self.load_results[CONFIG_KEY] = result
        return config

    def get_config(self) -> Dict[str, Any]:
        """Get a copy of the current configuration."""
        return copy.deepcopy(self.config)

    def save_config(self, partial: Optional[Mapping[str, Any]] = None) -> bool:
        """Merge options into the configuration and persist it."""
        if partial:
            partial = dict(partial)
            if "currentBank" in partial:
                partial["currentBank"] = partial["currentBank"] or DEFAULT_BANK
                self.current_bank = partial["currentBank"]
            self.config = {**self.config, **partial}
        return self._write(CONFIG_KEY, self.config).ok

    # Word statistics

    def _load_word_stats(self) -> Dict[str, WordStat]:
        data, result = self._read(STATS_KEY)
        stats: Dict[str, WordStat] = {}
        if result.status is LoadStatus.LOADED:
            try:
                if not isinstance(data, dict):
                    raise TypeError("word statistics must be an object")
                stats = {word: WordStat.from_dict(stat) for word, stat in data.items()}
            except (TypeError, ValueError) as e:
                result = self._corrupt(STATS_KEY, e)
        self.load_results[STATS_KEY] = result
        return stats

    def _stats_payload(self) -> Dict[str, Dict[str, Any]]:
        return {word: stat.to_dict() for word, stat in self.word_stats.items()}

    def save_word_stats(self) -> bool:
        """Persist the whole word statistics map."""
        return self._write(STATS_KEY, self._stats_payload()).ok

    def get_word_stat(self, word: str) -> WordStat:
        """Get statistics for a word, or zero values if it was never answered."""
        stat = self.word_stats.get(word)
        return replace(stat) if stat else WordStat()

    def update_word_stat(self, word: str, outcome: Union[AnswerOutcome, str]) -> WordStat:
        """Record an answer for a word and return its updated statistics."""
        outcome = AnswerOutcome(outcome)

        stat = self.word_stats.get(word)
        if stat is None:
            stat = WordStat()
            self.word_stats[word] = stat
            words_tracked.set(len(self.word_stats))

        stat.studied = True
        stat.last_studied = self._now_ms()
        if outcome is AnswerOutcome.CORRECT:
            stat.correct_times += 1
        else:
            stat.wrong_times += 1

        total = stat.total_attempts
        stat.accuracy = calculate_accuracy(stat.correct_times, total)

        if self.config.get("difficultyAdjust", True) and total >= DIFFICULTY_MIN_ATTEMPTS:
            if stat.accuracy > EASY_ACCURACY and stat.difficulty > MIN_DIFFICULTY:
                stat.difficulty -= 1
            elif stat.accuracy < HARD_ACCURACY and stat.difficulty < MAX_DIFFICULTY:
                stat.difficulty += 1

        if total >= MASTERY_MIN_ATTEMPTS:
            stat.master_level = mastery_level(stat.accuracy)

        answers_recorded.labels(outcome=outcome.value).inc()
        self.save_word_stats()
        return replace(stat)

    # Game records

    def _load_game_records(self) -> List[Dict[str, Any]]:
        data, result = self._read(RECORDS_KEY)
        records: List[Dict[str, Any]] = []
        if result.status is LoadStatus.LOADED:
            if isinstance(data, list) and all(isinstance(record, dict) for record in data):
                records = data
            else:
                result = self._corrupt(RECORDS_KEY, TypeError("game records must be a list of objects"))
        self.load_results[RECORDS_KEY] = result
        return records

    def save_game_record(self, record: Mapping[str, Any]) -> bool:
        """Stamp a finished session with its time and append it to the history."""
        now = self.clock()
        try:
            full_record = {
                **copy.deepcopy(dict(record)),
                "timestamp": int(now.timestamp() * 1000),
                "date": now.strftime(self.date_format),
            }
            json.dumps(full_record, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error(f"Refusing to save unserializable game record: {e}")
            storage_errors.labels(operation="save").inc()
            self.last_save_result = SaveResult(RECORDS_KEY, False, str(e))
            return False
        self.game_records.append(full_record)
        game_records_saved.inc()
        return self._write(RECORDS_KEY, self.game_records).ok

    def get_game_records(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get the most recent game records, newest first."""
        if limit is None:
            limit = self.history_limit
        if limit <= 0:
            return []
        return [copy.deepcopy(record) for record in reversed(self.game_records[-limit:])]

    # Word banks

    def set_current_bank(self, bank_id: str) -> bool:
        """Select the active word bank and persist the configuration."""
        if not is_known_bank(bank_id):
            logger.warning(f"Selecting unknown word bank {bank_id}")
        self.current_bank = bank_id
        return self.save_config({"currentBank": bank_id})

    def get_current_bank(self) -> BankInfo:
        """Get display metadata of the active word bank."""
        return resolve_bank(self.current_bank)

    # Progress

    def _load_progress(self) -> Progress:
        data, result = self._read(PROGRESS_KEY)
        progress = Progress()
        if result.status is LoadStatus.LOADED:
            try:
                progress = Progress.from_dict(data)
            except (TypeError, ValueError) as e:
                result = self._corrupt(PROGRESS_KEY, e)
        self.load_results[PROGRESS_KEY] = result
        return progress

    def _parse_study_date(self, value: Optional[str]) -> Optional[date]:
        if not value:
            return None
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
        try:
            return datetime.strptime(value, LEGACY_DATE_FORMAT).date()
        except ValueError:
            logger.warning(f"Ignoring unrecognized last study date {value!r}")
            return None

    def _next_streak(self, today: date) -> int:
        last_date = self._parse_study_date(self.progress.last_study_date)
        if last_date is None:
            return 1

        days = (today - last_date).days
        if days == 1:
            return self.progress.streak + 1
        if days > 1:
            return 1
        return self.progress.streak

    def update_progress(self) -> Progress:
        """Recompute aggregate progress from word statistics and persist it."""
        stats = list(self.word_stats.values())
        studied = sum(1 for stat in stats if stat.studied)
        total_attempts = sum(stat.total_attempts for stat in stats)
        total_correct = sum(stat.correct_times for stat in stats)

        today = self.clock().date()
        self.progress = Progress(
            studied=studied,
            total=self.get_current_bank().count,
            accuracy=calculate_accuracy(total_correct, total_attempts),
            streak=self._next_streak(today),
            last_study_date=today.isoformat(),
        )

        self.save_progress()
        return replace(self.progress)

    def get_progress(self) -> Progress:
        """Get up-to-date progress. Recomputes and persists as a side effect."""
        return self.update_progress()

    def save_progress(self) -> bool:
        """Persist the progress aggregate."""
        return self._write(PROGRESS_KEY, self.progress.to_dict()).ok

    # Backup

    def _export_document(self) -> Dict[str, Any]:
        return {
            "config": self.config,
            "wordStats": self._stats_payload(),
            "gameRecords": self.game_records,
            "progress": self.progress.to_dict(),
            "exportDate": self.clock().astimezone(UTC).isoformat(),
        }

    def export_data(self) -> ExportArtifact:
        """Serialize all game data into a JSON backup."""
        document = self._export_document()
        blob = json.dumps(document, ensure_ascii=False, indent=2, default=str).encode("utf-8")
        data_exports.inc()
        logger.info(
            f"Exported {len(self.word_stats)} words and {len(self.game_records)} game records"
        )
        return ExportArtifact(blob=blob, filename=f"word_game_backup_{self._now_ms()}.json")

    def _parse_backup(self, document: Union[str, bytes]) -> Dict[str, Any]:
        """Validate every section of a backup before anything is replaced."""
        try:
            data = json.loads(document)
        except (TypeError, ValueError) as e:
            raise DataImportError(f"Backup is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise DataImportError("Backup must be a JSON object")

        sections: Dict[str, Any] = {}

        config = data.get("config")
        if config is not None:
            if not isinstance(config, dict):
                raise DataImportError("config must be an object")
            sections["config"] = config

        word_stats = data.get("wordStats")
        if word_stats is not None:
            if not isinstance(word_stats, dict):
                raise DataImportError("wordStats must be an object")
            try:
                sections["wordStats"] = {
                    word: WordStat.from_dict(stat) for word, stat in word_stats.items()
                }
            except (TypeError, ValueError) as e:
                raise DataImportError(f"wordStats contains an invalid entry: {e}") from e

        game_records = data.get("gameRecords")
        if game_records is not None:
            if not isinstance(game_records, list) or not all(
                isinstance(record, dict) for record in game_records
            ):
                raise DataImportError("gameRecords must be a list of objects")
            sections["gameRecords"] = copy.deepcopy(game_records)

        progress = data.get("progress")
        if progress is not None:
            try:
                sections["progress"] = Progress.from_dict(progress)
            except (TypeError, ValueError) as e:
                raise DataImportError(f"progress is invalid: {e}") from e

        return sections

    def import_data(self, document: Union[str, bytes]) -> bool:
        """Replace the record sets present in a JSON backup."""
        try:
            sections = self._parse_backup(document)
        except DataImportError as e:
            logger.error(f"Failed to import data: {e}")
            data_imports.labels(result="invalid").inc()
            return False

        results = []
        if "config" in sections:
            self.config = sections["config"]
            self.current_bank = self.config.get("currentBank") or DEFAULT_BANK
            results.append(self._write(CONFIG_KEY, self.config))

        if "wordStats" in sections:
            self.word_stats = sections["wordStats"]
            words_tracked.set(len(self.word_stats))
            results.append(self._write(STATS_KEY, self._stats_payload()))

        if "gameRecords" in sections:
            self.game_records = sections["gameRecords"]
            results.append(self._write(RECORDS_KEY, self.game_records))

        if "progress" in sections:
            self.progress = sections["progress"]
            results.append(self._write(PROGRESS_KEY, self.progress.to_dict()))

        ok = all(result.ok for result in results)
        data_imports.labels(result="imported" if ok else "save_failed").inc()
        logger.info(f"Imported sections: {', '.join(sections) or 'none'}")
        return ok

    def reset_data(self, confirmed: bool = False) -> bool:
        """Erase all stored data and return to defaults once the user has confirmed."""
        if not confirmed:
            logger.info("Reset not confirmed, data left untouched")
            data_resets.labels(result="declined").inc()
            return False

        for key in ALL_KEYS:
            try:
                self.storage.remove(key)
            except StorageError as e:
                logger.error(f"Failed to remove {key}: {e}")
                storage_errors.labels(operation="remove").inc()

        self.config = dict(DEFAULT_CONFIG)
        self.word_stats = {}
        self.game_records = []
        self.current_bank = DEFAULT_BANK
        self.progress = Progress()

        words_tracked.set(0)
        data_resets.labels(result="reset").inc()
        logger.warning("All game data has been reset")
        return True

    def save_all(self) -> bool:
        """Persist configuration, word statistics and progress."""
        self.save_config()
        self.save_word_stats()
        self.save_progress()
        return True

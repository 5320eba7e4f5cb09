"""Tests for the command line entry point."""
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from wordgame.__main__ import main
from wordgame.app import WordGameApp
from wordgame.services.storage import ALL_KEYS, CONFIG_KEY, RECORDS_KEY, STATS_KEY, MemoryStorage


@pytest.fixture
def run(storage: MemoryStorage, clock):
    """Run the command line against shared in-memory storage."""
    def _run(*argv: str) -> int:
        return main(list(argv), app=WordGameApp(storage=storage, clock=clock))
    return _run


def test_answer(run, storage: MemoryStorage, capsys) -> None:
    """Test recording an answer."""
    assert run("answer", "apple", "correct") == 0

    output = json.loads(capsys.readouterr().out)
    assert output["apple"]["correctTimes"] == 1
    assert json.loads(storage.get(STATS_KEY))["apple"]["correctTimes"] == 1


def test_progress(run, capsys) -> None:
    """Test printing progress."""
    run("answer", "apple", "wrong")
    capsys.readouterr()

    assert run("progress") == 0

    output = json.loads(capsys.readouterr().out)
    assert output["studied"] == 1
    assert output["streak"] == 1
    assert output["bank"] == "My word bank (3500 words)"


def test_record_and_history(run, capsys) -> None:
    """Test saving sessions and listing them newest first."""
    assert run("record", '{"score": 1}') == 0
    assert run("record", '{"score": 2}') == 0
    capsys.readouterr()

    assert run("history", "--limit", "1") == 0

    output = json.loads(capsys.readouterr().out)
    assert [record["score"] for record in output] == [2]


def test_record_rejects_invalid_json(run, storage: MemoryStorage) -> None:
    """Test that malformed session data is refused."""
    assert run("record", "{score") == 1
    assert run("record", "[1]") == 1
    assert storage.get(RECORDS_KEY) is None


def test_bank(run, capsys) -> None:
    """Test selecting a word bank."""
    assert run("bank", "words_exam.txt") == 0

    output = json.loads(capsys.readouterr().out)
    assert output == {"bank_id": "words_exam.txt", "name": "Exam essentials", "count": 500}


def test_banks(run, capsys) -> None:
    """Test listing word banks."""
    assert run("banks") == 0

    assert len(json.loads(capsys.readouterr().out)) == 7


def test_config(run, storage: MemoryStorage, capsys) -> None:
    """Test updating options with typed values."""
    assert run("config", "autoDelay=2.5", "soundEffects=false", "theme=dark") == 0

    saved = json.loads(storage.get(CONFIG_KEY))
    assert saved["autoDelay"] == 2.5
    assert saved["soundEffects"] is False
    assert saved["theme"] == "dark"
    assert json.loads(capsys.readouterr().out) == saved


def test_config_rejects_bad_option(run) -> None:
    """Test that options must be KEY=VALUE."""
    with pytest.raises(SystemExit):
        run("config", "autoDelay")


def test_export_and_import(run, storage: MemoryStorage, tmp_path, capsys) -> None:
    """Test writing a backup and restoring it after a reset."""
    run("answer", "apple", "correct")
    run("record", '{"score": 7}')
    before = {key: storage.get(key) for key in (STATS_KEY, RECORDS_KEY)}
    capsys.readouterr()

    assert run("export", "--dir", str(tmp_path)) == 0
    backup = Path(capsys.readouterr().out.strip())
    assert backup.exists()

    assert run("reset", "--yes") == 0
    assert storage.get(STATS_KEY) is None

    assert run("import", str(backup)) == 0
    assert {key: storage.get(key) for key in (STATS_KEY, RECORDS_KEY)} == before


def test_import_missing_file(run, tmp_path) -> None:
    """Test importing a file that does not exist."""
    assert run("import", str(tmp_path / "missing.json")) == 1


def test_import_malformed_file(run, tmp_path) -> None:
    """Test importing a file that is not a backup."""
    path = tmp_path / "backup.json"
    path.write_text("not json", encoding="utf-8")

    assert run("import", str(path)) == 1


def test_reset_declined(run, storage: MemoryStorage, capsys) -> None:
    """Test that declining the prompt keeps all data."""
    run("answer", "apple", "correct")
    before = {key: storage.get(key) for key in ALL_KEYS}

    with patch("builtins.input", return_value="n"):
        assert run("reset") == 0

    assert "Reset cancelled" in capsys.readouterr().out
    assert {key: storage.get(key) for key in ALL_KEYS} == before


def test_reset_confirmed(run, storage: MemoryStorage) -> None:
    """Test that confirming the prompt erases all data."""
    run("answer", "apple", "correct")

    with patch("builtins.input", return_value="yes"):
        assert run("reset") == 0

    assert all(storage.get(key) is None for key in ALL_KEYS)


def test_reset_without_input(run, storage: MemoryStorage) -> None:
    """Test that a closed stdin counts as a refusal."""
    run("answer", "apple", "correct")

    with patch("builtins.input", side_effect=EOFError):
        assert run("reset") == 0

    assert storage.get(STATS_KEY) is not None

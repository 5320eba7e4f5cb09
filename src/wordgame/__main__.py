"""Command line entry point for inspecting and maintaining game data."""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from wordgame.app import WordGameApp
from wordgame.config import ensure_directories, settings
from wordgame.logging_config import setup_logging
from wordgame.services.progress_store import ProgressStore
from wordgame.services.word_banks import list_banks

logger = logging.getLogger(__name__)

RESET_PROMPT = "Reset all data? This cannot be undone! [y/N] "


def _print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _parse_option(item: str) -> tuple:
    """Parse KEY=VALUE, decoding the value as JSON when possible."""
    key, sep, raw = item.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {item!r}")
    try:
        value = json.loads(raw)
    except ValueError:
        value = raw
    return key, value


def confirm(prompt: str = RESET_PROMPT) -> bool:
    """Ask the user a yes/no question on stdin."""
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wordgame",
        description="Inspect and maintain word game progress data",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("progress", help="Show aggregate progress")

    answer = subparsers.add_parser("answer", help="Record an answer for a word")
    answer.add_argument("word")
    answer.add_argument("outcome", choices=["correct", "wrong"])

    record = subparsers.add_parser("record", help="Save a finished game session")
    record.add_argument("data", help="Session fields as a JSON object")

    history = subparsers.add_parser("history", help="Show recent game sessions")
    history.add_argument("--limit", type=int, default=settings.game.history_limit)

    bank = subparsers.add_parser("bank", help="Show or select the active word bank")
    bank.add_argument("bank_id", nargs="?")

    subparsers.add_parser("banks", help="List known word banks")

    config = subparsers.add_parser("config", help="Show or update options")
    config.add_argument("options", nargs="*", type=_parse_option, metavar="KEY=VALUE")

    export = subparsers.add_parser("export", help="Write a JSON backup")
    export.add_argument("--dir", type=Path, default=settings.paths.export_dir)

    import_ = subparsers.add_parser("import", help="Restore a JSON backup")
    import_.add_argument("file", type=Path)

    reset = subparsers.add_parser("reset", help="Erase all data")
    reset.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    return parser


def run_command(args: argparse.Namespace, store: ProgressStore) -> int:
    """Run a parsed command against the store and return an exit code."""
    if args.command == "progress":
        progress = store.get_progress()
        _print_json({**progress.to_dict(), "bank": store.get_current_bank().name})
        return 0

    if args.command == "answer":
        stat = store.update_word_stat(args.word, args.outcome)
        _print_json({args.word: stat.to_dict()})
        return 0 if store.last_save_result.ok else 1

    if args.command == "record":
        try:
            data = json.loads(args.data)
        except ValueError as e:
            logger.error(f"Session data is not valid JSON: {e}")
            return 1
        if not isinstance(data, dict):
            logger.error("Session data must be a JSON object")
            return 1
        return 0 if store.save_game_record(data) else 1

    if args.command == "history":
        _print_json(store.get_game_records(args.limit))
        return 0

    if args.command == "bank":
        if args.bank_id:
            if not store.set_current_bank(args.bank_id):
                return 1
        _print_json(store.get_current_bank().to_dict())
        return 0

    if args.command == "banks":
        _print_json([bank.to_dict() for bank in list_banks()])
        return 0

    if args.command == "config":
        if args.options and not store.save_config(dict(args.options)):
            return 1
        _print_json(store.get_config())
        return 0

    if args.command == "export":
        artifact = store.export_data()
        try:
            path = artifact.write_to(args.dir)
        except OSError as e:
            logger.error(f"Could not write backup to {args.dir}: {e}")
            return 1
        print(path)
        return 0

    if args.command == "import":
        try:
            document = args.file.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Could not read backup {args.file}: {e}")
            return 1
        return 0 if store.import_data(document) else 1

    if args.command == "reset":
        confirmed = args.yes or confirm()
        if not store.reset_data(confirmed):
            print("Reset cancelled")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None, app: Optional[WordGameApp] = None) -> int:
    """Parse arguments, run one command and flush the store."""
    args = build_parser().parse_args(argv)
    if args.log_level:
        setup_logging(level=args.log_level)

    app = app or WordGameApp()
    store = app.start()
    try:
        return run_command(args, store)
    finally:
        app.stop()


if __name__ == "__main__":
    ensure_directories()
    setup_logging()
    sys.exit(main())

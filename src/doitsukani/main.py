from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from doitsukani.app import (
    DEFAULT_SUBJECT_TYPES,
    fetch_deepl_usage,
    import_translations,
    sync_synonyms,
)
from doitsukani.config import configure_logging
from doitsukani.domain.types import RunState, SynonymMode

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synchronise WaniKani synonyms")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Translate meanings into study-material synonyms")
    sync.add_argument(
        "--mode",
        type=SynonymMode,
        choices=list(SynonymMode),
        default=None,
        help="Merge policy for existing synonyms (defaults to config)",
    )
    sync.add_argument(
        "--level",
        type=int,
        action="append",
        dest="levels",
        help="Restrict to a WaniKani level; repeat for several levels",
    )
    sync.add_argument(
        "--subject-type",
        type=str,
        action="append",
        dest="subject_types",
        help="Subject type to process (default: radical); repeatable",
    )
    _add_batching_arguments(sync)

    upload = subparsers.add_parser(
        "import-translations",
        help="Merge a JSON file of subject synonyms into the study materials",
    )
    upload.add_argument("path", type=str, help="JSON object mapping subject id to synonyms")
    _add_batching_arguments(upload)

    subparsers.add_parser("usage", help="Show the DeepL character usage")

    return parser.parse_args(list(argv))


def _add_batching_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Number of subjects per batch (defaults to config)",
    )
    parser.add_argument(
        "--inter-batch-delay",
        type=float,
        default=None,
        help="Seconds to pause between batches (defaults to config)",
    )


def _validate_args(args: argparse.Namespace) -> None:
    if args.command not in {"sync", "import-translations"}:
        return
    if args.batch_size is not None and args.batch_size < 1:
        raise ValueError("Batch size must be at least 1")
    if args.inter_batch_delay is not None and args.inter_batch_delay < 0:
        raise ValueError("Inter-batch delay must be non-negative")
    if args.command == "sync" and args.levels:
        invalid = [level for level in args.levels if not 1 <= level <= 60]
        if invalid:
            raise ValueError(f"Levels must be between 1 and 60: {invalid}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        _validate_args(parsed_args)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "sync":
            result = sync_synonyms(
                mode=parsed_args.mode,
                levels=parsed_args.levels,
                subject_types=tuple(parsed_args.subject_types or DEFAULT_SUBJECT_TYPES),
                batch_size=parsed_args.batch_size,
                inter_batch_delay=parsed_args.inter_batch_delay,
            )
        elif parsed_args.command == "import-translations":
            result = import_translations(
                parsed_args.path,
                batch_size=parsed_args.batch_size,
                inter_batch_delay=parsed_args.inter_batch_delay,
            )
        elif parsed_args.command == "usage":
            usage = fetch_deepl_usage()
            log.info(
                "DeepL usage: %s/%s characters (%s remaining)",
                usage.character_count,
                usage.character_limit,
                usage.remaining,
            )
            return
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)

    log.info(result.status_message)
    if result.state is RunState.FAILED:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

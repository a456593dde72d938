#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from lexicon_store import Lexicon, LexiconError, load_settings
from lexicon_store.seed import chunks, read_frequency_file
from log_helpers import configure_logging, log, log_verbose


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Load a word<TAB>frequency list into the configured lexicon store."
    )
    parser.add_argument("frequency_file", help="Tab-separated word/frequency file to load.")
    parser.add_argument(
        "--env",
        default=".env",
        help="Environment file with LEXICON_* settings (default: %(default)s).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=500,
        help="Rows committed per transaction (default: %(default)s).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    handler = configure_logging()
    try:
        return _seed(args)
    finally:
        logging.getLogger("lexicon_store").removeHandler(handler)


def _seed(args: argparse.Namespace) -> int:
    source = Path(args.frequency_file)
    if not source.exists():
        log(f"[seed] Frequency file {source} not found.")
        return 1
    settings = load_settings(args.env)
    log_verbose(2, f"[seed] Target store: {settings.describe()}")
    with Lexicon(settings) as lexicon:
        if not lexicon.available:
            log(f"[seed] Lexicon store unavailable: {lexicon.connection_error}")
            return 1
        total = 0
        try:
            for batch in chunks(read_frequency_file(source), max(1, args.batch_size)):
                total += lexicon.seed(batch)
                log_verbose(3, f"[seed] {total} entries applied so far")
        except LexiconError as exc:
            log(f"[seed] Aborted after {total} entries: {exc}")
            return 1
    log(f"[seed] Loaded {total} entries from {source} into {settings.describe()}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Tuple

logger = logging.getLogger(__name__)


def read_frequency_file(path: str | Path) -> Iterator[Tuple[str, int]]:
    """
    Yield ``(word, frequency)`` pairs from a tab-separated frequency list.

    Blank lines and ``#`` comments are ignored. Lines without a tab, with a
    non-integer or negative count are skipped.
    """
    source = Path(path)
    with source.open("r", encoding="utf-8") as handle:
        for line_no, raw_line in enumerate(handle, start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if "\t" not in line:
                logger.debug("%s:%d: no tab separator, skipped", source, line_no)
                continue
            word, raw_count = line.split("\t", 1)
            word = word.strip()
            try:
                count = int(raw_count.strip())
            except ValueError:
                logger.debug("%s:%d: non-integer frequency %r, skipped", source, line_no, raw_count)
                continue
            if not word or count < 0:
                logger.debug("%s:%d: empty word or negative frequency, skipped", source, line_no)
                continue
            yield word, count


def chunks(pairs: Iterator[Tuple[str, int]], size: int) -> Iterator[list[Tuple[str, int]]]:
    batch: list[Tuple[str, int]] = []
    for pair in pairs:
        batch.append(pair)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


__all__ = ["chunks", "read_frequency_file"]

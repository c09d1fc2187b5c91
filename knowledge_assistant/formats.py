"""Readers and writers for the files the assistant imports and exports."""

from __future__ import annotations

import codecs
import csv
import logging
import os
from collections.abc import Iterable, Iterator, Mapping

from .errors import SourceFileError

logger = logging.getLogger(__name__)

Pair = tuple[str, str]

MARKDOWN_HEADING = "# Knowledge Base"

# Upper bound on a single CSV field; stays within a C long on every platform.
MAX_FIELD_SIZE = 16 * 1024 * 1024


def parse_key_value_lines(lines: Iterable[str]) -> Iterator[Pair]:
    """Yield ``(key, value)`` from ``key=value`` lines.

    Each line is split on its first ``=`` and both sides are trimmed. Lines
    without ``=`` are ignored.
    """
    for line in lines:
        key, sep, value = line.partition("=")
        if not sep:
            continue
        yield key.strip(), value.strip()


def parse_csv_rows(rows: Iterable[list[str]]) -> Iterator[Pair]:
    """Yield the first two fields of every row that has at least two."""
    for row in rows:
        if len(row) < 2:
            continue
        yield row[0], row[1]


def read_key_value_file(path: str | os.PathLike[str]) -> list[Pair]:
    """Read ``key=value`` pairs from ``path``.

    Only failing to open or read the file raises :class:`SourceFileError`.
    Lines that are not valid UTF-8 are skipped like any other malformed line.
    """
    try:
        with open(path, "rb") as fh:
            raw_lines = fh.readlines()
    except OSError as exc:
        raise SourceFileError(path, str(exc)) from exc
    return list(parse_key_value_lines(_decode_lines(raw_lines, path)))


def read_csv_file(path: str | os.PathLike[str]) -> list[Pair]:
    """Read ``(key, value)`` pairs from a two-column CSV file.

    Rows the csv module rejects, and rows that are not valid UTF-8, are
    skipped.
    """
    previous_limit = csv.field_size_limit(MAX_FIELD_SIZE)
    try:
        with open(path, encoding="utf-8-sig", errors="surrogateescape", newline="") as fh:
            return list(parse_csv_rows(_readable_rows(csv.reader(fh), path)))
    except OSError as exc:
        raise SourceFileError(path, str(exc)) from exc
    finally:
        csv.field_size_limit(previous_limit)


def _decode_lines(raw_lines: Iterable[bytes], path: str | os.PathLike[str]) -> Iterator[str]:
    for number, raw in enumerate(raw_lines, start=1):
        if number == 1:
            raw = raw.removeprefix(codecs.BOM_UTF8)
        try:
            yield raw.decode("utf-8")
        except UnicodeDecodeError:
            _log_skipped("source_line_skipped", path)


def _readable_rows(
    reader: Iterator[list[str]], path: str | os.PathLike[str]
) -> Iterator[list[str]]:
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error:
            _log_skipped("source_row_skipped", path)
            continue
        # Undecodable bytes survive as lone surrogates under "surrogateescape".
        if any(_has_surrogates(field) for field in row):
            _log_skipped("source_row_skipped", path)
            continue
        yield row


def _log_skipped(event: str, path: str | os.PathLike[str]) -> None:
    logger.debug(event, extra={"event_type": event, "path": path})


def _has_surrogates(text: str) -> bool:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return True
    return False


def write_csv_file(facts: Mapping[str, str], path: str | os.PathLike[str]) -> None:
    try:
        with open(path, "w", encoding="utf-8", newline="") as fh:
            writer = csv.writer(fh)
            writer.writerows(facts.items())
    except OSError as exc:
        raise SourceFileError(path, str(exc)) from exc


def render_markdown(facts: Mapping[str, str]) -> str:
    lines = [MARKDOWN_HEADING, ""]
    lines.extend(f"- **{key}** → {value}" for key, value in facts.items())
    return "\n".join(lines) + "\n"


def write_markdown_file(facts: Mapping[str, str], path: str | os.PathLike[str]) -> None:
    try:
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(render_markdown(facts))
    except OSError as exc:
        raise SourceFileError(path, str(exc)) from exc

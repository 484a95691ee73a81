"""Newline-delimited JSON record store.

A store file holds one JSON object per line.  The object carrying a
``metadata`` key is the store metadata; every other object is a record.
Lines that cannot be decoded are not fatal: they are returned in
:attr:`LoadResult.skipped` so the caller can decide how loud to be.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Union

from ..constants import METADATA_KEY


@dataclass
class SkippedLine:
    """A line that was dropped while loading."""

    line_number: int  # 1-based
    text: str
    reason: str


@dataclass
class LoadResult:
    records: list[dict[str, Any]] = field(default_factory=list)
    metadata: Optional[dict[str, Any]] = None
    skipped: list[SkippedLine] = field(default_factory=list)


def iter_lines(content: Union[str, bytes]) -> Iterator[tuple[int, str, Optional[str]]]:
    """Yield ``(line_number, text, decode_error)`` for every non-blank line.

    Only ``\\n`` ends a line: ``\\u2028``, ``\\x85`` and friends may sit
    unescaped inside JSON strings.  Byte input is decoded line by line; a
    line that is not valid UTF-8 comes back with replacement characters and
    a *decode_error* describing the failure.
    """
    separator: Any = b"\n" if isinstance(content, bytes) else "\n"
    for index, raw in enumerate(content.split(separator), start=1):
        error: Optional[str] = None
        if isinstance(raw, bytes):
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                line = raw.decode("utf-8", errors="replace")
                error = f"UnicodeDecodeError: {exc.reason} at byte {exc.start}"
        else:
            line = raw
        if not line.strip():
            continue
        yield index, line, error


def parse_lines(content: Union[str, bytes]) -> LoadResult:
    """Parse NDJSON *content* into records, metadata and skipped lines."""
    result = LoadResult()
    for index, line, decode_error in iter_lines(content):
        if decode_error:
            result.skipped.append(SkippedLine(index, line, decode_error))
            continue
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError as exc:
            result.skipped.append(SkippedLine(index, line, f"JSONDecodeError: {exc.msg}"))
            continue
        if not isinstance(parsed, dict):
            result.skipped.append(
                SkippedLine(index, line, f"expected object, got {type(parsed).__name__}")
            )
            continue
        if METADATA_KEY in parsed:
            meta = parsed[METADATA_KEY]
            if isinstance(meta, dict):
                result.metadata = meta
            else:
                result.skipped.append(
                    SkippedLine(index, line, f"metadata must be an object, got {type(meta).__name__}")
                )
            continue
        result.records.append(parsed)
    return result


def load(path: Path) -> LoadResult:
    """Load *path*, returning an empty result if it does not exist."""
    if not path.exists():
        return LoadResult()
    return parse_lines(path.read_bytes())


def dumps(records: Iterable[dict[str, Any]], metadata: Optional[dict[str, Any]] = None) -> str:
    lines: list[str] = []
    if metadata:
        lines.append(json.dumps({METADATA_KEY: metadata}, ensure_ascii=False))
    for record in records:
        lines.append(json.dumps(record, ensure_ascii=False))
    return "\n".join(lines) + "\n"


def save(
    path: Path,
    records: Iterable[dict[str, Any]],
    metadata: Optional[dict[str, Any]] = None,
) -> None:
    """Overwrite *path* with *metadata* (if any) followed by *records*.

    The content is written to a temporary sibling and moved into place.
    There is no locking: concurrent writers get last-writer-wins.
    """
    payload = dumps(records, metadata)
    parent = path.parent
    parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise

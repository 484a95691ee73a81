"""Platform-prefixed sequential task ids (``fe-0001``, ``be-0042``)."""

from __future__ import annotations

import re
from typing import Iterable, Optional, Union

from ..constants import PLATFORM_PREFIXES, TASK_ID_WIDTH
from ..errors import ValidationError
from .model import Platform

_TASK_ID_RE = re.compile(r"^(fe|be)-(\d+)$")
_STRICT_TASK_ID_RE = re.compile(r"^(fe|be)-\d{%d}$" % TASK_ID_WIDTH)

_PLATFORM_BY_PREFIX = {prefix: platform for platform, prefix in PLATFORM_PREFIXES.items()}

PlatformLike = Union[Platform, str]


def _platform_value(platform: PlatformLike) -> str:
    return platform.value if isinstance(platform, Platform) else str(platform)


def prefix_for_platform(platform: PlatformLike) -> str:
    value = _platform_value(platform)
    try:
        return PLATFORM_PREFIXES[value]
    except KeyError:
        raise ValidationError(f"Unknown platform: {value}", "platform") from None


def parse_task_id(task_id: str) -> Optional[tuple[Platform, int]]:
    """Split a task id into ``(platform, number)``; None if it is not canonical."""
    match = _TASK_ID_RE.match(task_id)
    if not match:
        return None
    prefix, digits = match.groups()
    return Platform(_PLATFORM_BY_PREFIX[prefix]), int(digits)


def format_task_id(platform: PlatformLike, number: int) -> str:
    return f"{prefix_for_platform(platform)}-{number:0{TASK_ID_WIDTH}d}"


def next_task_id(platform: PlatformLike, existing_ids: Iterable[str]) -> str:
    """Return the id after the highest numbered id for *platform*.

    Ids that carry the prefix but do not parse count as 0, so gaps left by
    manually chosen ids are never filled in.
    """
    prefix = prefix_for_platform(platform)
    highest = 0
    for task_id in existing_ids:
        if not task_id.startswith(prefix):
            continue
        parsed = parse_task_id(task_id)
        number = parsed[1] if parsed else 0
        highest = max(highest, number)
    return format_task_id(platform, highest + 1)


def validate_task_id(task_id: str) -> None:
    if not _STRICT_TASK_ID_RE.match(task_id):
        raise ValidationError(
            f"Invalid task ID: {task_id} (expected fe-XXXX or be-XXXX)",
            "id",
        )

"""Decoding of scheduler status blobs and unit strings.

Every function here degrades to an empty or zero value instead of raising,
so that one missing field never blocks rendering of the whole cluster view.
"""

import re

import structlog

logger = structlog.get_logger(__name__)

KIB_PER_GIB = 1024 * 1024

_KB_MEMORY_REGEX = re.compile(r"(\d+)kb")
_LSF_MEMORY_REGEX = re.compile(r"(\d+(?:\.\d+)?)([KMGT]?)B?", re.IGNORECASE)

# Multipliers from an lsload memory suffix to GiB
_LSF_UNIT_TO_GIB = {
    "K": 1.0 / KIB_PER_GIB,
    "M": 1.0 / 1024,
    "G": 1.0,
    "T": 1024.0,
}


def decode_status(blob: str) -> dict[str, str]:
    """Decode a comma separated ``key=value`` status blob into a mapping.

    Each segment is split on its first ``=`` so values may themselves
    contain ``=``. Segments without ``=`` are skipped.

    Examples:
        "a=1,b=2" -> {"a": "1", "b": "2"}
        "" -> {}
        "a=1,garbage,b=x=y" -> {"a": "1", "b": "x=y"}

    Args:
        blob: Raw status string, e.g. the ``status`` element of pbsnodes.

    Returns:
        Mapping of status keys to raw string values.
    """
    status: dict[str, str] = {}
    if not blob:
        return status

    for segment in blob.split(","):
        key, sep, value = segment.partition("=")
        key = key.strip()
        if not sep or not key:
            logger.debug("Skipping malformed status segment", segment=segment)
            continue
        status[key] = value

    return status


def to_int(value: str | None) -> int:
    """Convert *value* to int, returning 0 when it is missing or not numeric."""
    if value is None:
        return 0
    try:
        return int(value.strip())
    except ValueError:
        return 0


def kb_to_gib(value: str | None) -> int:
    """Convert a ``<int>kb`` memory string to whole GiB.

    Examples:
        "1048576kb" -> 1
        "16331444kb" -> 15
        "1048576" -> 0 (no unit suffix)
        "lots" -> 0
    """
    if not value:
        return 0
    match = _KB_MEMORY_REGEX.fullmatch(value.strip())
    if not match:
        return 0
    return int(match.group(1)) // KIB_PER_GIB


def memory_to_gib(value: str | None) -> float:
    """Convert an lsload style memory figure to GiB.

    lsload prints memory with a single letter unit (``12G``, ``512M``,
    ``1.5T``); a bare number is taken as MiB, which is the LSF default.
    Placeholders such as ``-`` and anything unparsable give 0.0.
    """
    if not value:
        return 0.0
    match = _LSF_MEMORY_REGEX.fullmatch(value.strip())
    if not match:
        return 0.0
    unit = match.group(2).upper() or "M"
    return float(match.group(1)) * _LSF_UNIT_TO_GIB[unit]

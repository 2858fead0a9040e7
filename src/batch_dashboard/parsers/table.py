"""Whitespace-delimited table handling shared by the text parsers.

Scheduler table output is a header line followed by one record per line.
Rows with an unexpected field count are dropped and logged rather than
failing the whole table, but a table in which no row survives is reported
as malformed: that is a format change, not a bad row.
"""

from collections.abc import Collection, Iterator

import structlog

from ..errors import MalformedOutputError

logger = structlog.get_logger(__name__)


def body_lines(text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, line)`` for every line after the header.

    Line numbers are 1-based and count the header. Blank lines are skipped.
    """
    for number, line in enumerate(text.splitlines()[1:], start=2):
        if line.strip():
            yield number, line


def drop_row(source: str, number: int, line: str, reason: str) -> None:
    """Log a row that could not be parsed."""
    logger.warning(
        "Dropping unparsable row",
        source=source,
        line_number=number,
        reason=reason,
        line=line.strip(),
    )


def check_not_all_dropped(source: str, seen: int, kept: int) -> None:
    """Raise when a non-empty table body produced no records at all."""
    if seen and not kept:
        msg = f"{source}: none of {seen} rows matched the expected format"
        raise MalformedOutputError(msg)


def iter_rows(
    text: str,
    columns: int | Collection[int],
    source: str,
) -> Iterator[list[str]]:
    """Yield the whitespace-split fields of each well-formed table row.

    Args:
        text: Raw command output including its header line.
        columns: Accepted field count, or a collection of accepted counts.
        source: Command name used in log messages.

    Yields:
        Field lists whose length is an accepted column count.

    Raises:
        MalformedOutputError: If the body had rows but none were accepted.
    """
    accepted = {columns} if isinstance(columns, int) else set(columns)
    seen = kept = 0

    for number, line in body_lines(text):
        seen += 1
        fields = line.split()
        if len(fields) not in accepted:
            reason = f"expected {sorted(accepted)} fields, got {len(fields)}"
            drop_row(source, number, line, reason)
            continue
        kept += 1
        yield fields

    check_not_all_dropped(source, seen, kept)

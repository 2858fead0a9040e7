"""Parsers for LSF (and Lava) text table output.

Handles ``bhosts``, ``lsload`` and ``bjobs -u all -w``. All parsers are
pure: they take the command's stdout and return typed records.
"""

import re

from ..classification import UNCLASSIFIED, StatusTable
from ..model import Job
from ..records import Host, Load
from . import table

BHOSTS_COLUMNS = (
    "hostname",
    "status",
    "user_slot_limit",
    "max_slots",
    "num_jobs",
    "running",
    "system_suspended",
    "user_suspended",
    "reserved",
)

LSLOAD_COLUMNS = (
    "hostname",
    "status",
    "r15s",
    "r1m",
    "r15m",
    "utilization",
    "paging",
    "logins",
    "idle_time",
    "tmp",
    "swap",
    "memory",
)

# States in which bjobs always leaves EXEC_HOST blank
PENDING_STATES = frozenset({"PEND", "PSUSP"})

# JOBID USER STAT QUEUE FROM_HOST, then EXEC_HOST and JOB_NAME (either may
# hold spaces or be blank), then a three token SUBMIT_TIME anchored at the end
_BJOBS_ROW_REGEX = re.compile(
    r"(?P<job_id>\d+)\s+(?P<user>\S+)\s+(?P<state>\S+)\s+(?P<queue>\S+)\s+"
    r"(?P<from_host>\S+)\s+(?P<rest>.*?)\s+"
    r"(?P<submit_time>[A-Z][a-z]{2}\s+\d{1,2}\s+\d{1,2}:\d{2}(?::\d{2})?)"
    r"(?:\s+[A-Z])?\s*"
)

_ARRAY_INDEX_REGEX = re.compile(r"\[(\d+)\]$")

# Header columns that locate a blank EXEC_HOST
_BJOBS_LAYOUT_COLUMNS = ("FROM_HOST", "EXEC_HOST", "JOB_NAME")

# Dispatched rows have all ten fields, pending rows lack EXEC_HOST
_LAVA_DISPATCHED_FIELDS = 10
_LAVA_PENDING_FIELDS = 9


def parse_bhosts(text: str) -> list[Host]:
    """Parse ``bhosts`` output into Host records.

    Raises:
        MalformedOutputError: If no row has the expected nine columns.
    """
    return [
        Host(**dict(zip(BHOSTS_COLUMNS, fields)))
        for fields in table.iter_rows(text, len(BHOSTS_COLUMNS), "bhosts")
    ]


def parse_lsload(text: str) -> list[Load]:
    """Parse ``lsload`` output into Load records.

    Raises:
        MalformedOutputError: If no row has the expected twelve columns.
    """
    return [
        Load(**dict(zip(LSLOAD_COLUMNS, fields)))
        for fields in table.iter_rows(text, len(LSLOAD_COLUMNS), "lsload")
    ]


def _array_index(name: str) -> str:
    match = _ARRAY_INDEX_REGEX.search(name)
    return match.group(1) if match else ""


def _build_job(row: dict[str, str], states: StatusTable) -> Job:
    return Job(
        job_id=row["job_id"],
        name=row["name"],
        owner=row["user"],
        state=row["state"],
        queue=row["queue"],
        submit_host=row["from_host"],
        exec_host=row["exec_host"],
        submit_time=row["submit_time"],
        array_index=_array_index(row["name"]),
        states=states,
    )


def _header_offsets(text: str) -> tuple[int, int, int] | None:
    """Return the FROM_HOST, EXEC_HOST and JOB_NAME offsets of the header."""
    header = text.split("\n", 1)[0]
    offsets = tuple(header.find(column) for column in _BJOBS_LAYOUT_COLUMNS)
    if min(offsets) < 0:
        return None
    return offsets


def _exec_host_blank(
    match: re.Match[str],
    offsets: tuple[int, int, int] | None,
) -> bool:
    """Decide whether EXEC_HOST was left blank on a bjobs row.

    bjobs pads every column to its header width, and a wider value pushes
    the rest of the row right. EXEC_HOST is blank when the token after
    FROM_HOST starts a whole EXEC_HOST column past where EXEC_HOST would
    begin on this row.
    """
    if match["state"] in PENDING_STATES:
        return True
    if offsets is None:
        return False
    from_col, exec_col, name_col = offsets
    shift = match.start("from_host") - from_col
    exec_start = max(exec_col + shift, match.end("from_host") + 1)
    return match.start("rest") >= exec_start + (name_col - exec_col)


def parse_bjobs(text: str, states: StatusTable = UNCLASSIFIED) -> list[Job]:
    """Parse ``bjobs -u all -w`` output into Jobs.

    JOB_NAME may contain spaces and EXEC_HOST is blank for jobs that were
    never dispatched, so neither column has a fixed width. The submit time
    is located from the end of the line and the name is whatever lies
    between the execution host and the timestamp. Whether EXEC_HOST is
    blank is read from the column layout given by the header. An indented
    single-token line lists a further execution host of the preceding job.

    Args:
        text: Raw bjobs stdout including the header line.
        states: Job state table attached to every record.

    Raises:
        MalformedOutputError: If no row matches the expected layout.
    """
    offsets = _header_offsets(text)
    rows: list[dict[str, str]] = []
    seen = 0
    after_drop = False

    for number, line in table.body_lines(text):
        fields = line.split()
        if line[0].isspace() and len(fields) == 1:
            if rows and not after_drop:
                rows[-1]["exec_host"] = f"{rows[-1]['exec_host']} {fields[0]}".strip()
            else:
                table.drop_row("bjobs", number, line, "continuation of no parsed row")
            continue

        seen += 1
        match = _BJOBS_ROW_REGEX.fullmatch(line)
        if not match:
            table.drop_row("bjobs", number, line, "no JOBID ... SUBMIT_TIME layout")
            after_drop = True
            continue
        after_drop = False

        row = match.groupdict()
        rest = row.pop("rest").strip()
        if _exec_host_blank(match, offsets):
            row["exec_host"], row["name"] = "", rest
        else:
            exec_host, _, name = rest.partition(" ")
            row["exec_host"], row["name"] = exec_host, name.strip()
        row["submit_time"] = " ".join(row["submit_time"].split())
        rows.append(row)

    table.check_not_all_dropped("bjobs", seen, len(rows))
    return [_build_job(row, states) for row in rows]


def parse_bjobs_fixed(text: str, states: StatusTable = UNCLASSIFIED) -> list[Job]:
    """Parse Lava style ``bjobs`` output by a plain whitespace split.

    Lava fixtures never put spaces in job names, so each dispatched row has
    exactly ten fields and each pending row nine (no EXEC_HOST). Anything
    else is dropped.

    Raises:
        MalformedOutputError: If no row has an accepted field count.
    """
    jobs: list[Job] = []
    for fields in table.iter_rows(
        text, (_LAVA_PENDING_FIELDS, _LAVA_DISPATCHED_FIELDS), "bjobs"
    ):
        if len(fields) == _LAVA_DISPATCHED_FIELDS:
            job_id, user, state, queue, from_host, exec_host, name = fields[:7]
        else:
            job_id, user, state, queue, from_host, name = fields[:6]
            exec_host = ""
        row = {
            "job_id": job_id,
            "user": user,
            "state": state,
            "queue": queue,
            "from_host": from_host,
            "exec_host": exec_host,
            "name": name,
            "submit_time": " ".join(fields[-3:]),
        }
        jobs.append(_build_job(row, states))
    return jobs

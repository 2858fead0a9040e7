"""State classification for jobs and nodes.

Maps raw scheduler state codes to a human label and a display color. The
vocabularies differ per scheduler family, so each family ships its own pair
of immutable tables that the assembler receives at construction.
"""

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


class Color(str, enum.Enum):
    """Display color classes understood by the templates."""

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    GRAY = "gray"

    def __str__(self) -> str:
        return self.value


# Higher wins when a compound state mixes colors
_SEVERITY = {
    Color.SUCCESS: 0,
    Color.GRAY: 1,
    Color.WARNING: 2,
    Color.ERROR: 3,
}

UNKNOWN_LABEL = "unknown"


@dataclass(frozen=True)
class Classification:
    """Display label and color for one raw state code."""

    label: str
    color: Color


@dataclass(frozen=True, eq=False)
class StatusTable:
    """Immutable lookup table from raw state codes to classifications.

    Lookups are total: unknown codes classify as themselves with the
    table's default color. Codes may be compound (PBS reports node states
    such as ``down,job-exclusive``); each component is classified and the
    most severe color wins.
    """

    name: str
    entries: Mapping[str, Classification]
    down: frozenset[str] = field(default_factory=frozenset)
    default_color: Color = Color.ERROR

    def _lookup(self, code: str) -> Classification:
        return self.entries.get(code) or Classification(code, self.default_color)

    def classify(self, code: str | None) -> Classification:
        """Return the classification for *code*, never failing."""
        parts = _split_code(code)
        if not parts:
            return Classification(UNKNOWN_LABEL, self.default_color)

        found = [self._lookup(part) for part in parts]
        color = max((c.color for c in found), key=_SEVERITY.__getitem__)
        return Classification(", ".join(c.label for c in found), color)

    def is_down(self, code: str | None) -> bool:
        """Return True if any component of *code* marks the node unavailable."""
        return any(part in self.down for part in _split_code(code))


def _split_code(code: str | None) -> list[str]:
    if not code:
        return []
    return [part.strip() for part in code.split(",") if part.strip()]


def _table(
    name: str,
    entries: Iterable[tuple[str, str, Color]],
    down: Iterable[str] = (),
) -> StatusTable:
    return StatusTable(
        name=name,
        entries=MappingProxyType(
            {code: Classification(label, color) for code, label, color in entries}
        ),
        down=frozenset(down),
    )


PBS_JOB_STATES = _table(
    "pbs-job",
    [
        ("B", "begun", Color.SUCCESS),
        ("C", "completed", Color.GRAY),
        ("E", "exiting", Color.GRAY),
        ("F", "finished", Color.GRAY),
        ("H", "held", Color.ERROR),
        ("M", "moved", Color.GRAY),
        ("Q", "queued", Color.WARNING),
        ("R", "running", Color.SUCCESS),
        ("S", "suspended", Color.WARNING),
        ("T", "moving", Color.ERROR),
        ("U", "suspended (user)", Color.WARNING),
        ("W", "waiting", Color.ERROR),
        ("X", "expired", Color.GRAY),
    ],
)

PBS_NODE_STATES = _table(
    "pbs-node",
    [
        ("free", "free", Color.SUCCESS),
        ("busy", "busy", Color.WARNING),
        ("job-busy", "job-busy", Color.WARNING),
        ("job-exclusive", "job-exclusive", Color.WARNING),
        ("job-sharing", "job-sharing", Color.WARNING),
        ("reserve", "reserve", Color.WARNING),
        ("resv-exclusive", "resv-exclusive", Color.WARNING),
        ("time-shared", "time-shared", Color.WARNING),
        ("down", "down", Color.ERROR),
        ("offline", "offline", Color.ERROR),
        ("unknown", "unknown", Color.ERROR),
        ("state-unknown", "unknown", Color.ERROR),
    ],
    down=("down", "offline"),
)

LSF_JOB_STATES = _table(
    "lsf-job",
    [
        ("RUN", "running", Color.SUCCESS),
        ("PEND", "pending", Color.WARNING),
        ("PROV", "provisioning", Color.WARNING),
        ("WAIT", "waiting", Color.WARNING),
        ("PSUSP", "suspended (pending)", Color.WARNING),
        ("USUSP", "suspended (user)", Color.WARNING),
        ("SSUSP", "suspended (system)", Color.WARNING),
        ("DONE", "done", Color.GRAY),
        ("EXIT", "exited", Color.ERROR),
        ("UNKWN", "unknown", Color.ERROR),
        ("ZOMBI", "zombie", Color.ERROR),
    ],
)

LSF_NODE_STATES = _table(
    "lsf-node",
    [
        ("ok", "ok", Color.SUCCESS),
        ("closed_Full", "full", Color.WARNING),
        ("closed_Busy", "busy", Color.WARNING),
        ("closed_Excl", "exclusive", Color.WARNING),
        ("closed_cu_excl", "exclusive (compute unit)", Color.WARNING),
        ("closed_Adm", "closed by admin", Color.GRAY),
        ("closed_Lock", "locked", Color.GRAY),
        ("closed_Wind", "dispatch window closed", Color.GRAY),
        ("closed_LIM", "LIM unreachable", Color.ERROR),
        ("unavail", "unavailable", Color.ERROR),
        ("unreach", "unreachable", Color.ERROR),
        ("unlicensed", "unlicensed", Color.ERROR),
        # lsload status column
        ("busy", "busy", Color.WARNING),
        ("lockU", "locked (user)", Color.GRAY),
        ("lockW", "locked (window)", Color.GRAY),
    ],
    down=("unavail", "unreach", "closed_LIM"),
)

LAVA_JOB_STATES = _table(
    "lava-job",
    [
        ("RUN", "running", Color.SUCCESS),
        ("PEND", "pending", Color.WARNING),
        ("PSUSP", "suspended (pending)", Color.WARNING),
        ("USUSP", "suspended (user)", Color.WARNING),
        ("SSUSP", "suspended (system)", Color.WARNING),
        ("DONE", "done", Color.GRAY),
        ("EXIT", "exited", Color.ERROR),
        ("UNKWN", "unknown", Color.ERROR),
        ("ZOMBI", "zombie", Color.ERROR),
    ],
)

LAVA_NODE_STATES = _table(
    "lava-node",
    [
        ("ok", "ok", Color.SUCCESS),
        ("closed", "closed", Color.GRAY),
        ("closed_Full", "full", Color.WARNING),
        ("closed_Busy", "busy", Color.WARNING),
        ("closed_Excl", "exclusive", Color.WARNING),
        ("closed_Adm", "closed by admin", Color.GRAY),
        ("closed_Lock", "locked", Color.GRAY),
        ("closed_Wind", "dispatch window closed", Color.GRAY),
        ("unavail", "unavailable", Color.ERROR),
        ("unreach", "unreachable", Color.ERROR),
        ("busy", "busy", Color.WARNING),
        ("lockU", "locked (user)", Color.GRAY),
        ("lockW", "locked (window)", Color.GRAY),
    ],
    down=("unavail", "unreach"),
)

# Used for records built without a family, e.g. directly from a parser
UNCLASSIFIED = _table("unclassified", [])

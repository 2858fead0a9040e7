"""View model handed to the templates.

Every entity is an immutable snapshot built fresh for one request. Display
fields (labels, colors, URLs, unified ids) and cluster aggregates are
computed on access and never stored, so they always agree with the
underlying records.
"""

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType

from .classification import UNCLASSIFIED, Classification, Color, StatusTable
from .records import Load


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _freeze_mappings(record: object, *names: str) -> None:
    """Replace the named mapping fields of a frozen record with read-only copies."""
    for name in names:
        frozen = MappingProxyType(dict(getattr(record, name)))
        object.__setattr__(record, name, frozen)


@dataclass(frozen=True)
class Job:
    """A scheduler job, or one task of an array job.

    ``array_request`` is the PBS ``job_array_request`` of an array parent
    (``1-10``); ``array_index`` is the LSF element index taken from the
    job name (``name[3]``).
    """

    job_id: str
    name: str = ""
    owner: str = ""
    state: str = ""
    queue: str = ""
    submit_host: str = ""
    exec_host: str = ""
    submit_time: str = ""
    walltime: str = ""
    memory: str = ""
    array_request: str = ""
    array_index: str = ""
    resources_used: Mapping[str, str] = field(default_factory=dict)
    variables: Mapping[str, str] = field(default_factory=dict)
    attributes: Mapping[str, str] = field(default_factory=dict)
    states: StatusTable = field(default=UNCLASSIFIED, compare=False, repr=False)

    def __post_init__(self) -> None:
        _freeze_mappings(self, "resources_used", "variables", "attributes")

    @property
    def unified_id(self) -> str:
        """Job id with the array specification spliced in.

        ``123[].server`` with request ``1-10`` becomes ``123[1-10].server``;
        LSF job ``1234`` with index ``3`` becomes ``1234[3]``.
        """
        if self.array_request:
            return self.job_id.replace("[]", f"[{self.array_request}]", 1)
        if self.array_index:
            return f"{self.job_id}[{self.array_index}]"
        return self.job_id

    @property
    def url(self) -> str:
        if self.array_index:
            return f"/job/{self.unified_id}"
        return f"/job/{self.job_id}"

    @property
    def user(self) -> str:
        """Owner without the ``@host`` suffix PBS appends."""
        return self.owner.split("@", 1)[0]

    @property
    def classification(self) -> Classification:
        return self.states.classify(self.state)

    @property
    def state_label(self) -> str:
        return self.classification.label

    @property
    def state_color(self) -> Color:
        return self.classification.color


@dataclass(frozen=True)
class Node:
    """Merged per-node view.

    For LSF this is a ``bhosts`` row left-joined with its ``lsload`` row;
    ``load`` is None and the load-derived fields are empty when lsload had
    nothing for the host. For PBS the load-derived fields come from the
    decoded pbsnodes status blob, kept whole in ``attributes``.
    """

    hostname: str
    status: str = ""
    max_slots: int = 0
    num_jobs: int = 0
    memory: str = ""
    memory_gib: float = 0.0
    utilization: str = ""
    load_status: str = ""
    load: Load | None = None
    jobs: tuple[str, ...] = ()
    attributes: Mapping[str, str] = field(default_factory=dict)
    power_state: str = ""
    states: StatusTable = field(default=UNCLASSIFIED, compare=False, repr=False)

    def __post_init__(self) -> None:
        _freeze_mappings(self, "attributes")

    @property
    def url(self) -> str:
        return f"/node/{self.hostname}"

    @property
    def classification(self) -> Classification:
        return self.states.classify(self.status)

    @property
    def status_label(self) -> str:
        return self.classification.label

    @property
    def status_color(self) -> Color:
        return self.classification.color

    @property
    def is_down(self) -> bool:
        return self.states.is_down(self.status)


@dataclass(frozen=True)
class ClusterSnapshot:
    """Point-in-time read of the whole cluster.

    Aggregates are folds over ``nodes`` evaluated on every access; there is
    nothing to keep in sync and nothing carried over between snapshots.
    """

    nodes: tuple[Node, ...] = ()
    scheduler: str = ""
    timestamp: datetime = field(default_factory=_now)

    @property
    def total_cores(self) -> int:
        return sum(node.max_slots for node in self.nodes)

    @property
    def down_cores(self) -> int:
        return sum(node.max_slots for node in self.nodes if node.is_down)

    @property
    def available_cores(self) -> int:
        return self.total_cores - self.down_cores

    @property
    def total_jobs(self) -> int:
        return sum(node.num_jobs for node in self.nodes)

    @property
    def total_memory_gib(self) -> float:
        return sum(node.memory_gib for node in self.nodes)

    @property
    def status_counts(self) -> dict[str, int]:
        """Number of nodes per raw status code."""
        return dict(Counter(node.status for node in self.nodes))


@dataclass(frozen=True)
class JobList:
    """Point-in-time list of jobs."""

    jobs: tuple[Job, ...] = ()
    scheduler: str = ""
    timestamp: datetime = field(default_factory=_now)

    def __len__(self) -> int:
        return len(self.jobs)

    def __iter__(self):
        return iter(self.jobs)

    @property
    def state_counts(self) -> dict[str, int]:
        """Number of jobs per display label."""
        return dict(Counter(job.state_label for job in self.jobs))

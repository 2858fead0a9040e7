"""Snapshot assembly per scheduler family.

An assembler owns nothing but its configuration: it asks the injected
command runner for raw output, feeds it through the family's parsers,
merger and state tables, and returns a fresh view model. User-supplied
identifiers are checked against a strict allow-list before they can reach
a command line.
"""

import abc
import dataclasses
import re
from dataclasses import dataclass
from typing import Protocol

import structlog

from . import classification
from .classification import StatusTable
from .commands import CommandPaths, CommandResult
from .errors import (
    CommandExecutionError,
    EmptyOutputError,
    InvalidIdentifierError,
    MalformedOutputError,
    UnknownEntityError,
)
from .merge import build_snapshot, merge
from .model import ClusterSnapshot, Job, JobList, Node
from .parsers import lsf, pbs
from .records import Load

logger = structlog.get_logger(__name__)

HOSTNAME_PATTERN = re.compile(r"[a-zA-Z0-9][a-zA-Z0-9-]*(?:\.[a-zA-Z0-9-]+)*")
PBS_JOB_ID_PATTERN = re.compile(r"\d+(?:\[\d*\])?\.[a-zA-Z0-9-]+(?:\.[a-zA-Z0-9-]+)*")
LSF_JOB_ID_PATTERN = re.compile(r"\d+(?:\[\d+\])?")

# bjobs reports an empty selection on stderr, sometimes with a failing status
_NO_JOBS_MARKERS = ("No unfinished job found", "No job found", "is not found")

# pbsnodes and qstat name the missing node or job on stderr and exit non-zero
_PBS_UNKNOWN_MARKERS = ("Unknown node", "Unknown Job Id")


class Executor(Protocol):
    """Anything that can run a scheduler command, e.g. CommandRunner."""

    def execute(self, path: str, *args: str) -> CommandResult: ...


@dataclass(frozen=True)
class SchedulerFamily:
    """Per-family classification tables and identifier patterns."""

    name: str
    job_states: StatusTable
    node_states: StatusTable
    job_id_pattern: re.Pattern[str]
    hostname_pattern: re.Pattern[str] = HOSTNAME_PATTERN


PBS = SchedulerFamily(
    name="pbs",
    job_states=classification.PBS_JOB_STATES,
    node_states=classification.PBS_NODE_STATES,
    job_id_pattern=PBS_JOB_ID_PATTERN,
)

LSF = SchedulerFamily(
    name="lsf",
    job_states=classification.LSF_JOB_STATES,
    node_states=classification.LSF_NODE_STATES,
    job_id_pattern=LSF_JOB_ID_PATTERN,
)

LAVA = SchedulerFamily(
    name="lava",
    job_states=classification.LAVA_JOB_STATES,
    node_states=classification.LAVA_NODE_STATES,
    job_id_pattern=LSF_JOB_ID_PATTERN,
)


class SnapshotAssembler(abc.ABC):
    """Builds view models for one scheduler family."""

    family: SchedulerFamily

    def __init__(self, runner: Executor, commands: CommandPaths | None = None):
        self._runner = runner
        self._commands = commands or CommandPaths()

    @property
    def scheduler(self) -> str:
        return self.family.name

    def validate_hostname(self, hostname: str) -> str:
        """Return *hostname* if it is a plain DNS name, else raise.

        Raises:
            InvalidIdentifierError: On any character outside the allow-list.
        """
        if not self.family.hostname_pattern.fullmatch(hostname):
            raise InvalidIdentifierError("hostname", hostname)
        return hostname

    def validate_job_id(self, job_id: str) -> str:
        """Return *job_id* if it has this family's job id shape, else raise.

        Raises:
            InvalidIdentifierError: On any mismatch with the family pattern.
        """
        if not self.family.job_id_pattern.fullmatch(job_id):
            raise InvalidIdentifierError("job id", job_id)
        return job_id

    def _run(self, path: str, *args: str) -> str:
        """Run a command and return stdout, which must not be empty.

        Raises:
            EmptyOutputError: If the command printed nothing at all.
        """
        result = self._runner.execute(path, *args)
        if not result.stdout.strip():
            raise EmptyOutputError((path, *args))
        return result.stdout

    @abc.abstractmethod
    def cluster_snapshot(self) -> ClusterSnapshot:
        """Return a fresh snapshot of every node in the cluster."""

    @abc.abstractmethod
    def node(self, hostname: str) -> Node:
        """Return a fresh view of one node."""

    @abc.abstractmethod
    def job_list(self, array_id: str | None = None) -> JobList:
        """Return all jobs, or the tasks of the array job *array_id*."""

    @abc.abstractmethod
    def job(self, job_id: str) -> Job:
        """Return one job with all the detail the scheduler reports."""


class PbsAssembler(SnapshotAssembler):
    """PBS/Torque via ``pbsnodes -x`` and ``qstat -x``."""

    family = PBS

    def cluster_snapshot(self) -> ClusterSnapshot:
        xml_text = self._run(self._commands.pbsnodes, "-x")
        nodes = pbs.parse_pbsnodes(xml_text, self.family.node_states)
        return build_snapshot(nodes, self.scheduler)

    def _lookup(self, kind: str, identifier: str, path: str, *args: str) -> str:
        """Run a single-entity query, mapping an unknown-entity exit to a lookup.

        Raises:
            UnknownEntityError: If the command reports *identifier* unknown.
        """
        try:
            return self._run(path, *args)
        except CommandExecutionError as exc:
            if _mentions(exc.stderr, _PBS_UNKNOWN_MARKERS):
                raise UnknownEntityError(kind, identifier) from exc
            raise

    def node(self, hostname: str) -> Node:
        self.validate_hostname(hostname)
        xml_text = self._lookup(
            "node", hostname, self._commands.pbsnodes, "-ax", hostname
        )
        nodes = pbs.parse_pbsnodes(xml_text, self.family.node_states)
        if not nodes:
            raise UnknownEntityError("node", hostname)
        return nodes[0]

    def job_list(self, array_id: str | None = None) -> JobList:
        if array_id is None:
            xml_text = self._run(self._commands.qstat, "-x")
        else:
            self.validate_job_id(array_id)
            xml_text = self._lookup(
                "job", array_id, self._commands.qstat, "-xt", array_id
            )
        jobs = pbs.parse_qstat(xml_text, self.family.job_states)
        return JobList(jobs=tuple(jobs), scheduler=self.scheduler)

    def job(self, job_id: str) -> Job:
        self.validate_job_id(job_id)
        xml_text = self._lookup("job", job_id, self._commands.qstat, "-x", job_id)
        jobs = pbs.parse_qstat(xml_text, self.family.job_states)
        if not jobs:
            raise UnknownEntityError("job", job_id)
        return jobs[0]


class LsfAssembler(SnapshotAssembler):
    """IBM LSF via ``bhosts``, ``lsload`` and ``bjobs -u all -w``."""

    family = LSF
    parse_jobs = staticmethod(lsf.parse_bjobs)

    def _loads(self, *args: str) -> list[Load]:
        """Fetch lsload rows; missing telemetry leaves load fields empty."""
        try:
            return lsf.parse_lsload(self._run(self._commands.lsload, *args))
        except (CommandExecutionError, EmptyOutputError, MalformedOutputError):
            logger.exception("Load information unavailable, continuing without it")
            return []

    def _nodes(self, *args: str) -> list[Node]:
        hosts = lsf.parse_bhosts(self._run(self._commands.bhosts, *args))
        return merge(hosts, self._loads(*args), self.family.node_states)

    def _jobs(self, *args: str) -> list[Job]:
        command = (self._commands.bjobs, "-u", "all", "-w", *args)
        try:
            result = self._runner.execute(*command)
        except CommandExecutionError as exc:
            if _mentions(exc.stderr, _NO_JOBS_MARKERS):
                return []
            raise
        if not result.stdout.strip():
            if _mentions(result.stderr, _NO_JOBS_MARKERS):
                return []
            raise EmptyOutputError(command)
        return self.parse_jobs(result.stdout, self.family.job_states)

    def cluster_snapshot(self) -> ClusterSnapshot:
        return build_snapshot(self._nodes(), self.scheduler)

    def node(self, hostname: str) -> Node:
        self.validate_hostname(hostname)
        nodes = self._nodes(hostname)
        if not nodes:
            raise UnknownEntityError("node", hostname)
        jobs = self._jobs("-m", hostname)
        return dataclasses.replace(nodes[0], jobs=tuple(job.unified_id for job in jobs))

    def job_list(self, array_id: str | None = None) -> JobList:
        if array_id is None:
            jobs = self._jobs()
        else:
            jobs = self._jobs(self.validate_job_id(array_id))
        return JobList(jobs=tuple(jobs), scheduler=self.scheduler)

    def job(self, job_id: str) -> Job:
        jobs = self._jobs(self.validate_job_id(job_id))
        if not jobs:
            raise UnknownEntityError("job", job_id)
        return jobs[0]


class LavaAssembler(LsfAssembler):
    """Lava, LSF's open source ancestor, whose bjobs rows split cleanly."""

    family = LAVA
    parse_jobs = staticmethod(lsf.parse_bjobs_fixed)


def _mentions(stderr: str, markers: tuple[str, ...]) -> bool:
    return any(marker in stderr for marker in markers)


ASSEMBLERS: dict[str, type[SnapshotAssembler]] = {
    PBS.name: PbsAssembler,
    LSF.name: LsfAssembler,
    LAVA.name: LavaAssembler,
}


def create_assembler(
    scheduler: str,
    runner: Executor,
    commands: CommandPaths | None = None,
) -> SnapshotAssembler:
    """Select the assembler for *scheduler* ("pbs", "lsf" or "lava").

    Raises:
        ValueError: If the scheduler family is not supported.
    """
    try:
        assembler_cls = ASSEMBLERS[scheduler]
    except KeyError:
        msg = (
            f"unsupported scheduler {scheduler!r}, "
            f"expected one of {sorted(ASSEMBLERS)}"
        )
        raise ValueError(msg) from None
    return assembler_cls(runner, commands)

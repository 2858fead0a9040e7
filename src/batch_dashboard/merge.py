"""Joining of independently fetched host and load records into Nodes."""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from .classification import UNCLASSIFIED, StatusTable
from .decode import memory_to_gib
from .model import ClusterSnapshot, Node
from .records import Host, Load


def _merge_one(host: Host, load: Load | None, states: StatusTable) -> Node:
    if load is None:
        return Node(
            hostname=host.hostname,
            status=host.status,
            max_slots=host.max_slots,
            num_jobs=host.num_jobs,
            states=states,
        )
    return Node(
        hostname=host.hostname,
        status=host.status,
        max_slots=host.max_slots,
        num_jobs=host.num_jobs,
        memory=load.memory,
        memory_gib=memory_to_gib(load.memory),
        utilization=load.utilization,
        load_status=load.status,
        load=load,
        states=states,
    )


def merge(
    hosts: Sequence[Host],
    loads: Iterable[Load],
    states: StatusTable = UNCLASSIFIED,
) -> list[Node]:
    """Left-join hosts with load records on hostname.

    Hosts are authoritative for membership and order: every host yields
    exactly one Node, in input order, and a load record whose hostname has
    no host is ignored. A host without load telemetry still yields a Node,
    with the load-derived fields left empty.

    Args:
        hosts: Parsed ``bhosts`` rows.
        loads: Parsed ``lsload`` rows.
        states: Node state table attached to every Node.

    Returns:
        One Node per host, order preserved.
    """
    by_hostname = {load.hostname: load for load in loads}
    return [_merge_one(host, by_hostname.get(host.hostname), states) for host in hosts]


def build_snapshot(
    nodes: Iterable[Node],
    scheduler: str,
    timestamp: datetime | None = None,
) -> ClusterSnapshot:
    """Wrap *nodes* into a ClusterSnapshot taken now."""
    return ClusterSnapshot(
        nodes=tuple(nodes),
        scheduler=scheduler,
        timestamp=timestamp or datetime.now(timezone.utc),
    )

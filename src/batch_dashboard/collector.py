"""Prometheus collector exposing cluster snapshot aggregates.

Every scrape assembles a fresh snapshot through the same assembler the
HTML views use; nothing is cached or carried between scrapes.
"""

import time
from collections.abc import Iterator

import structlog
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from .assembler import SnapshotAssembler
from .errors import DashboardError
from .model import ClusterSnapshot

logger = structlog.get_logger(__name__)


def generate_metrics(snapshot: ClusterSnapshot) -> Iterator[Metric]:
    """Generate Prometheus metrics from a cluster snapshot.

    Args:
        snapshot: Freshly assembled cluster snapshot.

    Yields:
        Prometheus Metric objects.
    """
    total_cores = GaugeMetricFamily("batch_cluster_cores_total", "Total cores")
    total_cores.add_metric([], snapshot.total_cores)
    yield total_cores

    down_cores = GaugeMetricFamily(
        "batch_cluster_cores_down",
        "Cores on nodes marked unavailable",
    )
    down_cores.add_metric([], snapshot.down_cores)
    yield down_cores

    total_jobs = GaugeMetricFamily("batch_cluster_jobs_total", "Jobs running on nodes")
    total_jobs.add_metric([], snapshot.total_jobs)
    yield total_jobs

    total_memory = GaugeMetricFamily(
        "batch_cluster_memory_gib_total",
        "Total node memory in GiB",
    )
    total_memory.add_metric([], snapshot.total_memory_gib)
    yield total_memory

    node_count_per_status = GaugeMetricFamily(
        "batch_node_count_per_status",
        "nodes per status",
        labels=["status"],
    )
    for status, count in snapshot.status_counts.items():
        node_count_per_status.add_metric([status], count)
    yield node_count_per_status


class SnapshotCollector(Collector):
    """Prometheus collector backed by a snapshot assembler.

    Yields scrape metadata (duration and success) followed by the cluster
    aggregates. A failed snapshot yields only the metadata.
    """

    def __init__(self, assembler: SnapshotAssembler):
        """Initialize the collector.

        Args:
            assembler: Assembler for the configured scheduler family.
        """
        self._assembler = assembler

    def describe(self) -> list[Metric]:
        """Return nothing so registration does not run scheduler commands."""
        return []

    def collect(self) -> Iterator[Metric]:
        """Collect metrics for a Prometheus scrape."""
        snapshot: ClusterSnapshot | None = None
        start = time.monotonic()
        try:
            snapshot = self._assembler.cluster_snapshot()
        except DashboardError:
            logger.exception(
                "Failed to assemble snapshot for metrics",
                scheduler=self._assembler.scheduler,
            )
        duration = time.monotonic() - start

        scrape_duration = GaugeMetricFamily(
            "batch_scrape_duration",
            f"{self._assembler.scheduler} snapshot duration in seconds",
        )
        scrape_duration.add_metric([], duration)
        yield scrape_duration

        scrape_success = GaugeMetricFamily(
            "batch_scrape_success",
            "1 if the scheduler snapshot succeeded, 0 otherwise",
        )
        scrape_success.add_metric([], 1 if snapshot is not None else 0)
        yield scrape_success

        if snapshot is not None:
            yield from generate_metrics(snapshot)

"""Tests for SnapshotCollector wired with a real assembler pipeline.

The assembler runs against a mocked command runner, so these tests cover
raw command output -> parse -> merge -> snapshot -> Prometheus metric
families through the public collect() method.
"""

from unittest.mock import MagicMock

import prometheus_client
import pytest

from batch_dashboard import assembler, collector, commands, errors

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_runner() -> MagicMock:
    """Mock CommandRunner with no pre-configured return values."""
    return MagicMock(spec=commands.CommandRunner)


@pytest.fixture
def pbs_collector(mock_runner: MagicMock) -> collector.SnapshotCollector:
    """SnapshotCollector wired with the real PBS pipeline."""
    return collector.SnapshotCollector(assembler.PbsAssembler(mock_runner))


# ---------------------------------------------------------------------------
# Scrape metadata
# ---------------------------------------------------------------------------


def test_collect_always_yields_scrape_duration(
    mock_runner: MagicMock,
    pbs_collector: collector.SnapshotCollector,
    pbsnodes_output: str,
):
    """Scrape duration gauge is present and non-negative."""
    mock_runner.execute.return_value = commands.CommandResult(stdout=pbsnodes_output)
    metrics = {m.name: m for m in pbs_collector.collect()}
    assert metrics["batch_scrape_duration"].samples[0].value >= 0.0


def test_collect_success_is_one(
    mock_runner: MagicMock,
    pbs_collector: collector.SnapshotCollector,
    pbsnodes_output: str,
):
    """Scrape success is 1 on a healthy scrape."""
    mock_runner.execute.return_value = commands.CommandResult(stdout=pbsnodes_output)
    metrics = {m.name: m for m in pbs_collector.collect()}
    assert metrics["batch_scrape_success"].samples[0].value == 1


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


def test_collect_failure_reports_zero_success(
    mock_runner: MagicMock,
    pbs_collector: collector.SnapshotCollector,
):
    """A failing command gives success 0 and no cluster metrics."""
    mock_runner.execute.side_effect = errors.CommandTimeoutError(
        ("/usr/bin/pbsnodes", "-x"),
        "timed out",
    )
    metrics = {m.name: m for m in pbs_collector.collect()}

    assert metrics["batch_scrape_success"].samples[0].value == 0
    assert "batch_scrape_duration" in metrics
    assert "batch_cluster_cores_total" not in metrics


def test_collect_recovers_after_failure(
    mock_runner: MagicMock,
    pbs_collector: collector.SnapshotCollector,
    pbsnodes_output: str,
):
    """Nothing carries over from a failed scrape to the next one."""
    mock_runner.execute.side_effect = errors.EmptyOutputError(("pbsnodes", "-x"))
    list(pbs_collector.collect())

    mock_runner.execute.side_effect = None
    mock_runner.execute.return_value = commands.CommandResult(stdout=pbsnodes_output)
    metrics = {m.name: m for m in pbs_collector.collect()}

    assert metrics["batch_scrape_success"].samples[0].value == 1
    assert metrics["batch_cluster_cores_total"].samples[0].value == 24


def test_registration_runs_no_commands(
    mock_runner: MagicMock,
    pbs_collector: collector.SnapshotCollector,
):
    """Registering the collector does not touch the scheduler."""
    prometheus_client.CollectorRegistry().register(pbs_collector)
    mock_runner.execute.assert_not_called()


def test_collect_fetches_on_every_scrape(
    mock_runner: MagicMock,
    pbs_collector: collector.SnapshotCollector,
    pbsnodes_output: str,
):
    """Each scrape assembles a fresh snapshot."""
    mock_runner.execute.return_value = commands.CommandResult(stdout=pbsnodes_output)

    list(pbs_collector.collect())
    list(pbs_collector.collect())

    assert mock_runner.execute.call_count == 2


# ---------------------------------------------------------------------------
# Cluster aggregates
# ---------------------------------------------------------------------------


def test_collect_cluster_totals(
    mock_runner: MagicMock,
    pbs_collector: collector.SnapshotCollector,
    pbsnodes_output: str,
):
    """Aggregate gauges match the snapshot."""
    mock_runner.execute.return_value = commands.CommandResult(stdout=pbsnodes_output)
    metrics = {m.name: m for m in pbs_collector.collect()}

    assert metrics["batch_cluster_cores_total"].samples[0].value == 24
    assert metrics["batch_cluster_cores_down"].samples[0].value == 8
    assert metrics["batch_cluster_jobs_total"].samples[0].value == 2
    assert metrics["batch_cluster_memory_gib_total"].samples[0].value == 62


def test_collect_node_count_per_status(
    mock_runner: MagicMock,
    pbs_collector: collector.SnapshotCollector,
    pbsnodes_output: str,
):
    """Nodes are counted per raw status."""
    mock_runner.execute.return_value = commands.CommandResult(stdout=pbsnodes_output)
    metrics = {m.name: m for m in pbs_collector.collect()}

    actual = {
        s.labels["status"]: s.value
        for s in metrics["batch_node_count_per_status"].samples
    }
    assert actual == {"free": 1, "down,offline": 1}


def test_collect_lsf_pipeline(
    mock_runner: MagicMock,
    bhosts_output: str,
    lsload_output: str,
):
    """The LSF merge feeds the same gauges."""
    outputs = {"bhosts": bhosts_output, "lsload": lsload_output}
    mock_runner.execute.side_effect = lambda path, *args: commands.CommandResult(
        stdout=outputs[path]
    )
    lsf_collector = collector.SnapshotCollector(assembler.LsfAssembler(mock_runner))

    metrics = {m.name: m for m in lsf_collector.collect()}

    assert metrics["batch_cluster_cores_down"].samples[0].value == 8
    assert metrics["batch_cluster_memory_gib_total"].samples[0].value == 12.0


def test_registry_exposition(
    mock_runner: MagicMock,
    pbs_collector: collector.SnapshotCollector,
    pbsnodes_output: str,
):
    """The collector renders through a dedicated registry."""
    mock_runner.execute.return_value = commands.CommandResult(stdout=pbsnodes_output)
    registry = prometheus_client.CollectorRegistry()
    registry.register(pbs_collector)

    output = prometheus_client.generate_latest(registry).decode()

    assert "batch_cluster_cores_total 24.0" in output
    assert 'batch_node_count_per_status{status="free"} 1.0' in output

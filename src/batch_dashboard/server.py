"""HTTP server for the batch scheduler dashboard."""

import argparse
import json
import logging
import os
import pathlib
from collections.abc import Callable, Sequence
from typing import Literal

import prometheus_client
import prometheus_client.core
import pydantic
import starlette.applications
import starlette.requests
import starlette.responses
import starlette.routing
import starlette.templating
import structlog
import uvicorn

from .assembler import SnapshotAssembler, create_assembler
from .collector import SnapshotCollector
from .commands import DEFAULT_TIMEOUT, CommandPaths, CommandRunner
from .errors import (
    CommandExecutionError,
    DashboardError,
    EmptyOutputError,
    InvalidIdentifierError,
    MalformedOutputError,
    UnknownEntityError,
)

CONFIG_ENV_VAR = "BATCH_DASHBOARD_CONFIG_PATH"
TEMPLATES_DIR = pathlib.Path(__file__).parent / "templates"
logger = structlog.get_logger(__name__)


class DashboardConfig(pydantic.BaseModel):
    """Configuration for the batch scheduler dashboard."""

    scheduler: Literal["pbs", "lsf", "lava"] = pydantic.Field(
        "pbs",
        description="Scheduler family whose commands are available",
    )
    host: str = pydantic.Field(
        "0.0.0.0",  # noqa: S104
        description="HTTP listen address",
    )
    port: int = pydantic.Field(8111, description="HTTP server port", gt=0, lt=65536)
    commands: CommandPaths = pydantic.Field(
        default_factory=CommandPaths,
        description="Paths of the scheduler status commands",
    )
    command_timeout: float = pydantic.Field(
        DEFAULT_TIMEOUT,
        description="Seconds before a scheduler command is killed",
        gt=0,
    )
    metrics_path: str = pydantic.Field(
        "/metrics",
        description="URL path for metrics endpoint",
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str) -> DashboardConfig:
    """Load configuration from JSON file."""
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with path.open("r") as f:
        data = json.load(f)

    return DashboardConfig(**data)


def _error_response(
    status_code: int,
) -> Callable[[starlette.requests.Request, Exception], starlette.responses.Response]:
    def handler(
        request: starlette.requests.Request,
        exc: Exception,
    ) -> starlette.responses.Response:
        log = logger.warning if status_code < 500 else logger.error  # noqa: PLR2004
        log(
            "Request failed",
            path=request.url.path,
            status_code=status_code,
            error=str(exc),
        )
        return starlette.responses.PlainTextResponse(str(exc), status_code=status_code)

    return handler


EXCEPTION_STATUS_CODES: dict[type[DashboardError], int] = {
    InvalidIdentifierError: 400,
    UnknownEntityError: 404,
    CommandExecutionError: 500,
    MalformedOutputError: 500,
    EmptyOutputError: 503,
}


def create_starlette_app(
    assembler: SnapshotAssembler,
    metrics_path: str,
    registry: prometheus_client.core.CollectorRegistry,
) -> starlette.applications.Starlette:
    """Create the Starlette application serving the dashboard pages.

    Args:
        assembler: Assembler for the configured scheduler family.
        metrics_path: URL path for metrics endpoint (e.g., "/metrics").
        registry: Prometheus collector registry.

    Returns:
        Configured Starlette application.
    """
    templates = starlette.templating.Jinja2Templates(directory=str(TEMPLATES_DIR))

    def log_request(request: starlette.requests.Request) -> None:
        logger.info(
            "HTTP request",
            client_ip=request.client.host if request.client else "unknown",
            method=request.method,
            path=request.url.path,
        )

    def cluster_endpoint(
        request: starlette.requests.Request,
    ) -> starlette.responses.Response:
        log_request(request)
        snapshot = assembler.cluster_snapshot()
        return templates.TemplateResponse(
            request,
            "cluster.html",
            {"snapshot": snapshot},
        )

    def node_endpoint(
        request: starlette.requests.Request,
    ) -> starlette.responses.Response:
        log_request(request)
        node = assembler.node(request.path_params["hostname"])
        return templates.TemplateResponse(
            request,
            "node.html",
            {"node": node, "scheduler": assembler.scheduler},
        )

    def job_list_endpoint(
        request: starlette.requests.Request,
    ) -> starlette.responses.Response:
        log_request(request)
        job_list = assembler.job_list()
        return templates.TemplateResponse(request, "jobs.html", {"job_list": job_list})

    def job_endpoint(
        request: starlette.requests.Request,
    ) -> starlette.responses.Response:
        """Show one job, or the task list of an array job (``123[].host``)."""
        log_request(request)
        job_id = request.path_params["jobid"]
        if "[]" in job_id:
            job_list = assembler.job_list(array_id=job_id)
            return templates.TemplateResponse(
                request,
                "jobs.html",
                {"job_list": job_list, "array_id": job_id},
            )
        job = assembler.job(job_id)
        return templates.TemplateResponse(
            request,
            "job.html",
            {"job": job, "scheduler": assembler.scheduler},
        )

    def metrics_endpoint(
        request: starlette.requests.Request,
    ) -> starlette.responses.Response:
        """Serve Prometheus metrics built from a fresh snapshot."""
        log_request(request)
        metrics_output = prometheus_client.generate_latest(registry)
        return starlette.responses.PlainTextResponse(
            content=metrics_output,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    routes = [
        starlette.routing.Route("/", cluster_endpoint, methods=["GET"]),
        starlette.routing.Route("/node/{hostname}", node_endpoint, methods=["GET"]),
        starlette.routing.Route("/job", job_list_endpoint, methods=["GET"]),
        starlette.routing.Route("/job/{jobid}", job_endpoint, methods=["GET"]),
        starlette.routing.Route(metrics_path, metrics_endpoint, methods=["GET"]),
    ]
    exception_handlers = {
        exc_type: _error_response(status_code)
        for exc_type, status_code in EXCEPTION_STATUS_CODES.items()
    }

    return starlette.applications.Starlette(
        routes=routes,
        exception_handlers=exception_handlers,
    )


def create_dashboard(
    config: DashboardConfig,
    runner: CommandRunner | None = None,
) -> starlette.applications.Starlette:
    """Construct the dashboard ASGI app from validated config.

    Args:
        config: Validated dashboard configuration.
        runner: Command runner to use; defaults to one honouring
            ``config.command_timeout``.
    """
    runner = runner or CommandRunner(timeout=config.command_timeout)
    assembler = create_assembler(config.scheduler, runner, config.commands)
    logger.info("Created assembler", scheduler=assembler.scheduler)

    # Custom registry rather than the global REGISTRY
    registry = prometheus_client.core.CollectorRegistry()
    registry.register(SnapshotCollector(assembler))

    return create_starlette_app(
        assembler=assembler,
        metrics_path=config.metrics_path,
        registry=registry,
    )


def resolve_config(config_path: str | None = None) -> DashboardConfig:
    """Load config from a path or the environment, else use defaults."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR)
    if not resolved_path:
        return DashboardConfig()
    return load_config(resolved_path)


def create_app(config_path: str | None = None) -> starlette.applications.Starlette:
    """Create the dashboard ASGI app using a config path or environment default."""
    config = resolve_config(config_path)
    configure_logging(config.log_level)
    return create_dashboard(config)


def main(argv: Sequence[str] | None = None) -> None:
    """Serve the dashboard with uvicorn."""
    parser = argparse.ArgumentParser(description="Batch scheduler dashboard")
    parser.add_argument(
        "--config",
        help=f"path to a JSON config file (default: ${CONFIG_ENV_VAR})",
    )
    args = parser.parse_args(argv)

    config = resolve_config(args.config)
    configure_logging(config.log_level)
    app = create_dashboard(config)
    uvicorn.run(app, host=config.host, port=config.port)

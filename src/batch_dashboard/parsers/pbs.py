"""Parsers for PBS/Torque XML output (``pbsnodes -x`` and ``qstat -x``)."""

from datetime import datetime
from xml.etree import ElementTree as ET

import structlog

from ..classification import UNCLASSIFIED, StatusTable
from ..decode import decode_status, kb_to_gib, to_int
from ..errors import MalformedOutputError
from ..model import Job, Node

logger = structlog.get_logger(__name__)

ROOT_TAG = "Data"
RESOURCES_USED_TAG = "resources_used"
VARIABLE_LIST_TAG = "Variable_List"


def _parse_document(xml_text: str, source: str) -> ET.Element:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        msg = f"{source}: invalid XML: {exc}"
        raise MalformedOutputError(msg) from exc
    if root.tag != ROOT_TAG:
        msg = f"{source}: expected <{ROOT_TAG}> root element, got <{root.tag}>"
        raise MalformedOutputError(msg)
    return root


def _text(element: ET.Element, tag: str) -> str:
    return (element.findtext(tag) or "").strip()


def _format_epoch(value: str) -> str:
    """Format a PBS epoch timestamp (``ctime``) for display, or return ''."""
    if not value.isdigit():
        return ""
    try:
        return datetime.fromtimestamp(int(value)).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return ""


def parse_pbsnodes(xml_text: str, states: StatusTable = UNCLASSIFIED) -> list[Node]:
    """Parse ``pbsnodes -x`` output into Nodes.

    The flattened ``status`` string is decoded into ``attributes``; memory
    comes from its ``physmem`` entry and utilization from ``loadave``.
    The ``jobs`` element lists one entry per occupied slot.

    Args:
        xml_text: Raw pbsnodes stdout.
        states: Node state table attached to every record.

    Raises:
        MalformedOutputError: If the output is not a ``<Data>`` document.
    """
    root = _parse_document(xml_text, "pbsnodes")
    nodes: list[Node] = []

    for node_el in root.findall("Node"):
        name = _text(node_el, "name")
        if not name:
            logger.warning("Dropping pbsnodes entry without a name")
            continue

        status = decode_status(_text(node_el, "status"))
        jobs = tuple(
            entry.strip()
            for entry in _text(node_el, "jobs").split(",")
            if entry.strip()
        )
        nodes.append(
            Node(
                hostname=name,
                status=_text(node_el, "state"),
                max_slots=to_int(node_el.findtext("np")),
                num_jobs=len(jobs),
                memory=status.get("physmem", ""),
                memory_gib=kb_to_gib(status.get("physmem")),
                utilization=status.get("loadave", ""),
                load_status=status.get("state", ""),
                jobs=jobs,
                attributes=status,
                power_state=_text(node_el, "power_state"),
                states=states,
            )
        )

    return nodes


def _flatten_job(job_el: ET.Element) -> tuple[dict[str, str], dict[str, str]]:
    """Split a ``<Job>`` element into top-level attributes and resources used.

    Leaf children map by tag. Children of ``resources_used`` go to their own
    mapping; children of any other container (``Resource_List``) are kept
    as ``Container.key``.
    """
    attributes: dict[str, str] = {}
    resources_used: dict[str, str] = {}

    for child in job_el:
        if len(child) == 0:
            attributes[child.tag] = (child.text or "").strip()
            continue
        for leaf in child:
            value = (leaf.text or "").strip()
            if child.tag == RESOURCES_USED_TAG:
                resources_used[leaf.tag] = value
            else:
                attributes[f"{child.tag}.{leaf.tag}"] = value

    return attributes, resources_used


def parse_qstat(xml_text: str, states: StatusTable = UNCLASSIFIED) -> list[Job]:
    """Parse ``qstat -x`` output into Jobs.

    Used both for the job list and for a single job's detail page: every
    element of each job is kept in ``attributes``, ``resources_used`` and
    the decoded ``Variable_List``.

    Args:
        xml_text: Raw qstat stdout.
        states: Job state table attached to every record.

    Raises:
        MalformedOutputError: If the output is not a ``<Data>`` document.
    """
    root = _parse_document(xml_text, "qstat")
    jobs: list[Job] = []

    for job_el in root.findall("Job"):
        attributes, resources_used = _flatten_job(job_el)
        job_id = attributes.get("Job_Id", "")
        if not job_id:
            logger.warning("Dropping qstat entry without a Job_Id")
            continue

        variables = decode_status(attributes.pop(VARIABLE_LIST_TAG, ""))
        jobs.append(
            Job(
                job_id=job_id,
                name=attributes.get("Job_Name", ""),
                owner=attributes.get("Job_Owner", ""),
                state=attributes.get("job_state", ""),
                queue=attributes.get("queue", ""),
                submit_host=(
                    attributes.get("submit_host") or variables.get("PBS_O_HOST", "")
                ),
                exec_host=attributes.get("exec_host", ""),
                submit_time=_format_epoch(attributes.get("ctime", "")),
                walltime=resources_used.get("walltime", ""),
                memory=resources_used.get("mem", ""),
                array_request=attributes.get("job_array_request", ""),
                resources_used=resources_used,
                variables=variables,
                attributes=attributes,
                states=states,
            )
        )

    return jobs

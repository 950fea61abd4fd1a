"""Docker containers as reported by ``docker ps``."""

import json
import logging
from typing import Any

from sysgauge.classifiers import HEALTH_RULES, classify
from sysgauge.models import DockerContainer, PortMapping
from sysgauge.platforms import ProbeRegistry
from sysgauge.probe import Probe
from sysgauge.result import Outcome
from sysgauge.utils.parsing import (
    parse_byte_value,
    parse_date,
    parse_int,
    process_key_value_string,
)

logger = logging.getLogger(__name__)

DOCKER_PS_COMMAND = "docker ps --format json --no-trunc"

WILDCARD_HOSTS = ("0.0.0.0", "::")


def docker_ps_command(include_stopped: bool = False) -> str:
    return DOCKER_PS_COMMAND + (" -a" if include_stopped else "")


def parse_port(text: str) -> PortMapping | None:
    """Parse one ``docker ps`` port entry.

    Accepts ``0.0.0.0:8080->80/tcp``, ``[::]:8080->80/tcp``,
    ``127.0.0.1:5432->5432/tcp`` and exposed-only ``80/tcp``, which has no
    host port.
    """
    mapping, _, protocol = text.strip().partition("/")
    host, arrow, container = mapping.partition("->")
    if not arrow:
        container_port = parse_int(host)
        if container_port is None:
            return None
        return PortMapping(
            host_port=None, container_port=container_port, protocol=protocol or "tcp"
        )

    container_port = parse_int(container)
    if container_port is None:
        return None
    host_address = None
    index = host.rfind(":")
    if index > 0:
        host_port = parse_int(host[index + 1 :])
        host_address = host[:index].strip("[]")
        if host_address in WILDCARD_HOSTS:
            host_address = None
    else:
        host_port = parse_int(host.lstrip(":"))
    return PortMapping(
        host_port=host_port,
        container_port=container_port,
        protocol=protocol or "tcp",
        host_address=host_address or None,
    )


def parse_ports(text: str) -> list[PortMapping]:
    """Parse the comma separated ``Ports`` column, dropping duplicates.

    Docker lists a mapping once per address family, so ``0.0.0.0`` and
    ``::`` entries collapse into one.
    """
    ports: list[PortMapping] = []
    for entry in text.split(","):
        if not entry.strip():
            continue
        port = parse_port(entry)
        if port is not None and port not in ports:
            ports.append(port)
    return ports


def parse_size(text: str) -> tuple[int, int | None]:
    """Parse ``"1.2kB (virtual 150MB)"`` into (size, virtual size)."""
    size = parse_byte_value(text) or 0
    _, marker, rest = text.partition("virtual")
    virtual = parse_byte_value(rest) if marker else None
    return size, virtual


def _split_list(value: Any) -> list[str]:
    if not isinstance(value, str):
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_container(data: dict[str, Any]) -> DockerContainer:
    """Normalize one ``docker ps --format json`` object."""
    state = data.get("State") or ""
    status = data.get("Status") or ""
    health = classify(status, HEALTH_RULES) if status else None
    is_running = state == "running"

    size, virtual_size = parse_size(data.get("Size") or "")
    labels = data.get("Labels")
    if isinstance(labels, str):
        labels = process_key_value_string(labels, ",", "=")

    return DockerContainer(
        container_id=data.get("ID") or "",
        name=data.get("Names") or "",
        image=data.get("Image") or "",
        command=data.get("Command") or "",
        state=state,
        status_message=status,
        created_at=parse_date(data.get("CreatedAt")),
        labels=labels or {},
        local_volume_count=parse_int(str(data.get("LocalVolumes") or "0")) or 0,
        mounts=_split_list(data.get("Mounts")),
        networks=_split_list(data.get("Networks")),
        ports=parse_ports(data.get("Ports") or ""),
        running_for=data.get("RunningFor") or "",
        size=size,
        virtual_size=virtual_size,
        health_state=health,
        is_running=is_running,
        is_healthy=health == "healthy" or (is_running and health is None),
    )


def parse_docker_ps(output: str) -> list[DockerContainer]:
    """Parse JSON-lines output; unreadable lines are skipped."""
    containers = []
    for line in output.splitlines():
        if not line.strip():
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            logger.debug(f"Skipping unreadable docker ps line: {e}")
            continue
        if not isinstance(data, dict):
            logger.debug(f"Skipping docker ps line that is not an object: {line!r}")
            continue
        containers.append(parse_container(data))
    return containers


@ProbeRegistry.register("docker")
class DockerProbe(Probe):
    async def collect(self, include_stopped: bool = False) -> Outcome[list[DockerContainer]]:
        return (await self.run(docker_ps_command(include_stopped))).map(parse_docker_ps)

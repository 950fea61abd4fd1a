"""Typed records returned by the collectors.

Percentages are fractions in [0.0, 1.0] and sizes are bytes throughout.
Optional fields are None when the platform could not provide them.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value]
    return value


class Record:
    """Mixin for records that serialize without their empty fields."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary, omitting fields that are None."""
        return _drop_none(asdict(self))  # type: ignore[call-overload]


# CPU


@dataclass
class CpuUtilization(Record):
    overall: float = 0.0
    cores: list[float] = field(default_factory=list)


@dataclass
class CpuInfo(Record):
    name: str
    core_count: int
    architecture: str
    endian: str  # 'LE' or 'BE'
    speed_mhz: float | None
    utilization: CpuUtilization


# Memory


@dataclass
class MemoryUtilization(Record):
    used: int
    free: int
    percentage: float


@dataclass
class MemoryDevice(Record):
    manufacturer: str | None = None
    model: str | None = None
    size: int | None = None
    type: str | None = None
    locator: str | None = None
    bank_name: str | None = None
    clock_speed: int | None = None  # MHz
    max_clock_speed: int | None = None  # MHz
    bus_width: int | None = None  # bits
    transfers_per_clock_cycle: int | None = None
    voltage: float | None = None  # volts
    bandwidth: float | None = None  # bytes/s


@dataclass
class MemoryInfo(Record):
    size: int
    utilization: MemoryUtilization
    devices: list[MemoryDevice] | None = None
    bandwidth: float | None = None


# GPU


@dataclass
class GpuUtilization(Record):
    processing: float | None = None
    memory: float | None = None
    fan_speed: float | None = None
    temperature: float | None = None
    memory_temperature: float | None = None
    power_draw: float | None = None  # watts


@dataclass
class Gpu(Record):
    id: str
    name: str
    status: str = "unknown"
    vendor: str | None = None
    processor: str | None = None
    driver: str | None = None
    driver_date: str | None = None
    driver_version: str | None = None
    memory: int | None = None
    index: int | None = None
    display_attached: bool | None = None
    display_active: bool | None = None
    utilization: GpuUtilization | None = None


# Drives


@dataclass
class Drive(Record):
    filesystem: str
    mount: str
    type: str
    total: int
    used: int
    free: int
    utilization: float


# Network


@dataclass
class NetworkAddress(Record):
    type: str  # 'ipv4' or 'ipv6'
    ip: str
    netmask: str | None = None
    cidr: str | None = None
    mac: str | None = None
    internal: bool = False


@dataclass
class NetworkStatus(Record):
    operational: str = "unknown"
    admin: bool = True
    cable: bool = False


@dataclass
class LinkSpeed(Record):
    bits: int
    bytes: int

    @classmethod
    def from_bits(cls, bits: float) -> "LinkSpeed":
        bits = int(round(bits))
        return cls(bits=bits, bytes=bits // 8)


@dataclass
class NetworkUtilization(Record):
    receive: float
    transmit: float


@dataclass
class NetworkInterface(Record):
    name: str
    addresses: list[NetworkAddress] = field(default_factory=list)
    status: NetworkStatus = field(default_factory=NetworkStatus)
    physical: bool = False
    speed: LinkSpeed | None = None
    utilization: NetworkUtilization | None = None


# Temperatures


@dataclass
class Temperatures(Record):
    cpu: float | None = None
    cpu_cores: list[float] | None = None
    cpu_sockets: list[float] | None = None
    gpu: float | None = None
    gpus: list[float] | None = None
    gpu_memory: float | None = None
    gpu_memories: list[float] | None = None
    motherboard: float | None = None
    wifi: float | None = None
    battery: float | None = None


# Containers


@dataclass(frozen=True)
class PortMapping(Record):
    host_port: int | None
    container_port: int
    protocol: str = "tcp"
    host_address: str | None = None


@dataclass
class DockerContainer(Record):
    container_id: str
    name: str
    image: str
    command: str
    state: str
    status_message: str
    created_at: datetime | None = None
    labels: dict[str, str] = field(default_factory=dict)
    local_volume_count: int = 0
    mounts: list[str] = field(default_factory=list)
    networks: list[str] = field(default_factory=list)
    ports: list[PortMapping] = field(default_factory=list)
    running_for: str = ""
    size: int = 0
    virtual_size: int | None = None
    health_state: str | None = None  # 'starting', 'healthy' or 'unhealthy'
    is_running: bool = False
    is_healthy: bool = False


# Operating system


@dataclass
class OsInfo(Record):
    name: str
    version: str
    architecture: str
    machine: str
    platform: str
    bits: int
    hostname: str
    booted_at: datetime | None = None

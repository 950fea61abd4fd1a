"""Network interfaces: addresses, link status, speed and utilization."""

import asyncio
import errno
import ipaddress
import logging
import socket
from collections.abc import Mapping

import psutil

from sysgauge.aggregate import clamp_fraction
from sysgauge.classifiers import is_virtual_interface_name
from sysgauge.models import (
    LinkSpeed,
    NetworkAddress,
    NetworkInterface,
    NetworkStatus,
    NetworkUtilization,
)
from sysgauge.platforms import LINUX, WINDOWS, ProbeRegistry
from sysgauge.probe import Probe
from sysgauge.result import Outcome
from sysgauge.sampling.network import ByteRate
from sysgauge.utils.parsing import KeyValueBlock, parse_float, parse_int, parse_key_value_blocks

logger = logging.getLogger(__name__)

WINDOWS_ADAPTER_COMMAND = 'powershell -Command "Get-NetAdapter | Format-List"'

SYSFS_STATUS_FILES = ("carrier", "operstate", "proto_down", "speed")

_LINK_SPEED_UNITS = {
    "bps": 1,
    "kbps": 1000,
    "mbps": 1000**2,
    "gbps": 1000**3,
    "tbps": 1000**4,
}


def _prefix_length(netmask: str) -> int | None:
    try:
        return bin(int(ipaddress.ip_address(netmask))).count("1")
    except ValueError:
        return None


def _make_address(family: int, ip: str, netmask: str | None, mac: str | None) -> NetworkAddress:
    # IPv6 link-local addresses carry a "%scope" suffix
    ip = ip.split("%", 1)[0]
    prefix = _prefix_length(netmask) if netmask else None
    try:
        internal = ipaddress.ip_address(ip).is_loopback
    except ValueError:
        internal = False
    return NetworkAddress(
        type="ipv4" if family == socket.AF_INET else "ipv6",
        ip=ip,
        netmask=netmask,
        cidr=f"{ip}/{prefix}" if prefix is not None else None,
        mac=mac,
        internal=internal,
    )


def list_addresses() -> dict[str, list[NetworkAddress]]:
    """Addresses per interface from ``psutil.net_if_addrs()``.

    The link-layer address of an interface is copied onto each of its IP
    addresses.
    """
    interfaces: dict[str, list[NetworkAddress]] = {}
    for name, entries in psutil.net_if_addrs().items():
        mac = next((e.address for e in entries if e.family == psutil.AF_LINK), None)
        interfaces[name] = [
            _make_address(e.family, e.address, e.netmask, mac)
            for e in entries
            if e.family in (socket.AF_INET, socket.AF_INET6)
        ]
    return interfaces


def parse_link_speed(value: str | None) -> LinkSpeed | None:
    """Parse a link speed such as ``"1 Gbps"`` or ``"100 Mbps"``."""
    if not value:
        return None
    parts = value.split()
    number = parse_float(parts[0])
    if number is None or number <= 0:
        return None
    unit = parts[1].lower() if len(parts) > 1 else "bps"
    factor = _LINK_SPEED_UNITS.get(unit)
    if factor is None:
        return None
    return LinkSpeed.from_bits(number * factor)


def apply_sysfs_status(interface: NetworkInterface, files: Mapping[str, str | None]) -> None:
    """Update an interface from its /sys/class/net status files."""
    carrier = (files.get("carrier") or "").strip()
    if carrier == "1":
        interface.status.cable = True
        interface.physical = True

    operstate = (files.get("operstate") or "").strip()
    if operstate:
        interface.status.operational = operstate.lower()

    if (files.get("proto_down") or "").strip() == "1":
        interface.status.admin = False

    mbps = parse_int(files.get("speed"))
    if mbps is not None and mbps > 0:
        interface.speed = LinkSpeed.from_bits(mbps * 1_000_000)


def apply_windows_adapter(interface: NetworkInterface, block: KeyValueBlock) -> None:
    """Update an interface from one ``Get-NetAdapter | Format-List`` block."""
    for key, value in block.fields.items():
        if key.startswith("InterfaceOperationalStat"):
            interface.status.operational = value.lower()
        elif key.startswith("Admin"):
            interface.status.admin = value.lower() == "up"
        elif key == "LinkSpeed":
            interface.speed = parse_link_speed(value) or interface.speed
        elif key == "ConnectorPresent" and value.lower() == "true":
            interface.status.cable = True
            interface.physical = True


def apply_utilization(interface: NetworkInterface, rate: ByteRate | None) -> None:
    if rate is None or interface.speed is None or interface.speed.bytes <= 0:
        return
    interface.utilization = NetworkUtilization(
        receive=clamp_fraction(rate.receive / interface.speed.bytes),
        transmit=clamp_fraction(rate.transmit / interface.speed.bytes),
    )


class NetworkProbe(Probe):
    """Builds interfaces from psutil addresses and a platform status source."""

    async def collect(
        self, rates: Mapping[str, ByteRate] | None = None
    ) -> Outcome[list[NetworkInterface]]:
        interfaces = {
            name: NetworkInterface(
                name=name,
                addresses=addresses,
                physical=not is_virtual_interface_name(name),
            )
            for name, addresses in list_addresses().items()
        }
        await self.apply_status(interfaces)
        for interface in interfaces.values():
            apply_utilization(interface, (rates or {}).get(interface.name))
        return Outcome.of(list(interfaces.values()))

    async def apply_status(self, interfaces: dict[str, NetworkInterface]) -> None:
        stats = psutil.net_if_stats()
        for name, interface in interfaces.items():
            stat = stats.get(name)
            if stat is None:
                continue
            interface.status.operational = "up" if stat.isup else "down"
            if stat.speed > 0:
                interface.speed = LinkSpeed.from_bits(stat.speed * 1_000_000)


@ProbeRegistry.register("net", LINUX)
class SysfsNetworkProbe(NetworkProbe):
    async def apply_status(self, interfaces: dict[str, NetworkInterface]) -> None:
        net_dir = self.sysfs_root / "class" / "net"
        paths = {
            (name, filename): net_dir / name / filename
            for name in interfaces
            for filename in SYSFS_STATUS_FILES
        }
        contents = await self.read_many(paths.values())
        for name, interface in interfaces.items():
            files = {
                filename: contents.get(paths[(name, filename)])
                for filename in SYSFS_STATUS_FILES
            }
            apply_sysfs_status(interface, files)


@ProbeRegistry.register("net", WINDOWS)
class WindowsNetworkProbe(NetworkProbe):
    async def apply_status(self, interfaces: dict[str, NetworkInterface]) -> None:
        output = await self.run(WINDOWS_ADAPTER_COMMAND)
        if not output.ok:
            return
        for block in parse_key_value_blocks(output.value, " : "):
            name = block.get("Name")
            if not name:
                continue
            if name not in interfaces:
                interfaces[name] = NetworkInterface(
                    name=name, physical=not is_virtual_interface_name(name)
                )
            apply_windows_adapter(interfaces[name], block)


ProbeRegistry.register("net")(NetworkProbe)


def _try_bind(port: int, bind_address: str) -> bool:
    family = socket.AF_INET6 if ":" in bind_address else socket.AF_INET
    with socket.socket(family, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((bind_address, port))
            sock.listen(1)
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                return True
            logger.debug(f"Could not probe port {port} on {bind_address}: {e}")
        return False


async def is_port_in_use(port: int, bind_address: str = "0.0.0.0") -> bool:
    """Check whether a TCP port is taken by trying to listen on it."""
    return await asyncio.to_thread(_try_bind, port, bind_address)

"""Memory capacity, utilization and per-module inventory."""

import logging
from abc import abstractmethod
from dataclasses import dataclass, field

import psutil

from sysgauge.aggregate import minimum, ratio
from sysgauge.models import MemoryDevice, MemoryInfo, MemoryUtilization
from sysgauge.platforms import DARWIN, LINUX, WINDOWS, ProbeRegistry
from sysgauge.probe import Probe
from sysgauge.result import Outcome
from sysgauge.utils.parsing import (
    KeyValueBlock,
    parse_byte_value,
    parse_float,
    parse_int,
    parse_key_value_blocks,
)

logger = logging.getLogger(__name__)

DMIDECODE_COMMAND = "dmidecode --type memory"
WINDOWS_MEMORY_COMMAND = (
    'powershell -Command "Get-CimInstance -ClassName Win32_PhysicalMemory | Format-List"'
)

# SMBIOS memory type codes (Win32_PhysicalMemory.SMBIOSMemoryType)
SMBIOS_MEMORY_TYPES = {
    0: "Unknown",
    1: "Other",
    2: "DRAM",
    3: "Synchronous DRAM",
    4: "Cache DRAM",
    5: "EDO",
    6: "EDRAM",
    7: "VRAM",
    8: "SRAM",
    9: "RAM",
    10: "ROM",
    11: "Flash",
    12: "EEPROM",
    13: "FEPROM",
    14: "EPROM",
    15: "CDRAM",
    16: "3DRAM",
    17: "SDRAM",
    18: "SGRAM",
    19: "RDRAM",
    20: "DDR",
    21: "DDR2",
    22: "DDR2 FB-DIMM",
    24: "DDR3",
    25: "FBD2",
    26: "DDR4",
    27: "LPDDR",
    28: "LPDDR2",
    29: "LPDDR3",
    30: "LPDDR4",
    34: "HBM",
    35: "HBM2",
    36: "DDR5",
    37: "LPDDR5",
}

# Double data rate families move two transfers per clock
DOUBLE_DATA_RATE_MARKERS = ("DDR", "HBM", "FBD")

# dmidecode values meaning the slot is empty or the field is unknown
EMPTY_SLOT_MARKERS = ("no module installed", "not installed")


def transfers_per_clock(memory_type: str | None) -> int | None:
    if memory_type and any(m in memory_type.upper() for m in DOUBLE_DATA_RATE_MARKERS):
        return 2
    return None


@dataclass
class MemoryInventory:
    """Modules found by an inventory tool plus the interleave positions seen."""

    devices: list[MemoryDevice] = field(default_factory=list)
    interleave_positions: set[int] = field(default_factory=set)


def _set_clock(device: MemoryDevice, mhz: int | None, configured: bool) -> None:
    if mhz is None:
        return
    if configured:
        device.clock_speed = mhz
        if device.max_clock_speed is None:
            device.max_clock_speed = mhz
    else:
        device.max_clock_speed = mhz
        if device.clock_speed is None:
            device.clock_speed = mhz


def _parse_dmidecode_device(block: KeyValueBlock, positions: set[int]) -> MemoryDevice | None:
    size_text = (block.get("Size") or "").lower()
    if any(marker in size_text for marker in EMPTY_SLOT_MARKERS):
        return None

    device = MemoryDevice()
    for key, value in block.fields.items():
        if key in ("Total Width", "Data Width"):
            device.bus_width = parse_int(value) or device.bus_width
        elif key == "Size":
            device.size = parse_byte_value(value, binary=True)
        elif key in ("Locator", "Socket Designation"):
            device.locator = value
        elif key == "Bank Locator":
            device.bank_name = value
        elif key == "Type":
            device.type = value
            device.transfers_per_clock_cycle = transfers_per_clock(value)
        elif key == "Speed":
            _set_clock(device, parse_int(value), configured=False)
        elif key in ("Configured Memory Speed", "Configured Clock Speed"):
            _set_clock(device, parse_int(value), configured=True)
        elif key == "Manufacturer":
            device.manufacturer = value
        elif key == "Part Number":
            device.model = device.model or value
        elif key == "Rank":
            rank = parse_int(value)
            if rank is not None:
                positions.add(rank)
        elif key in ("Voltage", "Configured Voltage"):
            voltage = parse_float(value)
            if voltage is not None:
                device.voltage = voltage
    return device


def parse_dmidecode_memory(output: str) -> MemoryInventory:
    """Parse ``dmidecode --type memory`` output.

    Only ``Memory Device`` blocks describe modules; ``Physical Memory Array``
    blocks and empty slots are skipped.
    """
    inventory = MemoryInventory()
    for block in parse_key_value_blocks(output, ": "):
        if "Memory Device" not in block.headings:
            continue
        device = _parse_dmidecode_device(block, inventory.interleave_positions)
        if device is not None:
            inventory.devices.append(device)
    return inventory


def _parse_windows_device(block: KeyValueBlock, positions: set[int]) -> MemoryDevice:
    device = MemoryDevice()
    # ConfiguredClockSpeed outranks Speed regardless of listing order
    _set_clock(device, parse_int(block.get("Speed")), configured=False)
    for key in ("ConfiguredClockSpeed", "ConfiguredMemorySpeed"):
        _set_clock(device, parse_int(block.get(key)), configured=True)

    for key, value in block.fields.items():
        if key == "Manufacturer":
            device.manufacturer = value
        elif key in ("Model", "PartNumber"):
            device.model = device.model or value
        elif key == "BankLabel":
            device.bank_name = value
        elif key == "DeviceLocator":
            device.locator = value
        elif key == "Capacity":
            device.size = parse_int(value)
        elif key in ("DataWidth", "TotalWidth"):
            device.bus_width = parse_int(value) or device.bus_width
        elif key == "InterleavePosition":
            position = parse_int(value)
            if position is not None:
                positions.add(position)
        elif key in ("ConfiguredVoltage", "Voltage"):
            millivolts = parse_float(value)
            if millivolts:
                device.voltage = millivolts / 1000
        elif key == "SMBIOSMemoryType":
            code = parse_int(value)
            if code in SMBIOS_MEMORY_TYPES:
                device.type = SMBIOS_MEMORY_TYPES[code]
                device.transfers_per_clock_cycle = transfers_per_clock(device.type)
    return device


def parse_windows_memory(output: str) -> MemoryInventory:
    """Parse ``Win32_PhysicalMemory | Format-List`` output."""
    inventory = MemoryInventory()
    for block in parse_key_value_blocks(output, " : "):
        inventory.devices.append(
            _parse_windows_device(block, inventory.interleave_positions)
        )
    return inventory


def module_bandwidth(clock_mhz: float, bus_width_bits: int, transfers: int | None) -> float:
    """Bytes per second moved by one module."""
    return clock_mhz * 1_000_000 * bus_width_bits / 8 * (transfers or 1)


def apply_bandwidth(inventory: MemoryInventory) -> float | None:
    """Fill per-module bandwidth and return the estimated system bandwidth.

    The system figure uses the slowest clock and narrowest bus across
    populated modules, multiplied by the number of distinct interleave/rank
    positions. That multiplier is a rough channel-count estimate, not a
    measured value.
    """
    usable = [
        d for d in inventory.devices if d.size and d.bus_width and d.clock_speed
    ]
    for device in usable:
        device.bandwidth = module_bandwidth(
            device.clock_speed, device.bus_width, device.transfers_per_clock_cycle
        )

    clock = minimum(d.clock_speed for d in usable)
    width = minimum(d.bus_width for d in usable)
    if not clock or not width:
        return None
    transfers = minimum(d.transfers_per_clock_cycle or 1 for d in usable)
    parallelism = max(1, len(inventory.interleave_positions))
    return module_bandwidth(clock, width, transfers) * parallelism


def memory_utilization() -> MemoryUtilization:
    vm = psutil.virtual_memory()
    free = vm.available
    used = max(vm.total - free, 0)
    return MemoryUtilization(used=used, free=free, percentage=ratio(used, vm.total))


class MemoryProbe(Probe):
    """Combines psutil totals with a platform inventory tool."""

    async def collect(self) -> Outcome[MemoryInfo]:
        utilization = memory_utilization()
        info = MemoryInfo(size=psutil.virtual_memory().total, utilization=utilization)

        inventory = await self.inventory()
        if inventory.ok and inventory.value.devices:
            info.devices = inventory.value.devices
            info.bandwidth = apply_bandwidth(inventory.value)
        return Outcome.of(info)

    @abstractmethod
    async def inventory(self) -> Outcome[MemoryInventory]:
        """Read the installed modules."""


@ProbeRegistry.register("memory", LINUX, DARWIN)
class DmidecodeMemoryProbe(MemoryProbe):
    async def inventory(self) -> Outcome[MemoryInventory]:
        return (await self.run(DMIDECODE_COMMAND)).map(parse_dmidecode_memory)


@ProbeRegistry.register("memory", WINDOWS)
class WindowsMemoryProbe(MemoryProbe):
    async def inventory(self) -> Outcome[MemoryInventory]:
        return (await self.run(WINDOWS_MEMORY_COMMAND)).map(parse_windows_memory)


@ProbeRegistry.register("memory")
class BasicMemoryProbe(MemoryProbe):
    """Totals only, for platforms without an inventory tool."""

    async def inventory(self) -> Outcome[MemoryInventory]:
        return Outcome.empty("no memory inventory tool on this platform")

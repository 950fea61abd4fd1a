"""GPU inventory merged with nvidia-smi utilization."""

import logging

from sysgauge.models import Gpu, GpuUtilization
from sysgauge.platforms import LINUX, WINDOWS, ProbeRegistry
from sysgauge.probe import Probe
from sysgauge.result import Outcome
from sysgauge.utils.parsing import parse_float, parse_int, parse_key_value_blocks

logger = logging.getLogger(__name__)

LSPCI_COMMAND = "lspci -vmm -k"
WINDOWS_GPU_COMMAND = (
    'powershell -Command "Get-CimInstance -ClassName Win32_VideoController | Format-List"'
)
NVIDIA_SMI_FIELDS = (
    "index",
    "name",
    "display_attached",
    "display_active",
    "fan.speed",
    "memory.total",
    "utilization.gpu",
    "utilization.memory",
    "temperature.gpu",
    "temperature.memory",
    "power.draw",
)
NVIDIA_SMI_COMMAND = (
    f"nvidia-smi --query-gpu={','.join(NVIDIA_SMI_FIELDS)} "
    "--format=csv,nounits,noheader"
)

DISPLAY_CLASSES = ("vga", "3d", "display")
TRUTHY = ("yes", "enabled", "1")
FALSY = ("no", "disabled", "0")


def parse_lspci_gpus(output: str) -> list[Gpu]:
    """Parse ``lspci -vmm -k`` output, keeping display controllers."""
    gpus = []
    for block in parse_key_value_blocks(output, ":\t"):
        device_class = (block.get("Class") or "").lower()
        if not any(c in device_class for c in DISPLAY_CLASSES):
            continue
        name = block.get("Device") or block.get("SDevice") or ""
        gpus.append(
            Gpu(
                id=block.get("Slot") or name,
                name=name,
                status="ok",
                vendor=block.get("Vendor"),
                driver=block.get("Driver"),
            )
        )
    return gpus


def parse_windows_gpus(output: str) -> list[Gpu]:
    """Parse ``Win32_VideoController | Format-List`` output."""
    gpus = []
    for block in parse_key_value_blocks(output, " : "):
        name = block.get("Name")
        if not name:
            continue
        gpu = Gpu(
            id=block.get("PNPDeviceID") or name,
            name=name,
            status=(block.get("Status") or "unknown").lower(),
            processor=block.get("VideoProcessor"),
            driver_date=block.get("DriverDate"),
            driver_version=block.get("DriverVersion"),
        )
        # AdapterRAM is a 32-bit field and saturates at 4 GiB
        gpu.memory = parse_int(block.get("AdapterRAM"))
        gpus.append(gpu)
    return gpus


def _flag(value: str) -> bool | None:
    value = value.lower()
    if value in TRUTHY:
        return True
    if value in FALSY:
        return False
    return None


def _fraction(value: str) -> float | None:
    number = parse_float(value)
    return number / 100 if number is not None else None


def apply_nvidia_smi(gpus: list[Gpu], output: str) -> list[Gpu]:
    """Merge nvidia-smi rows into inventory records by exact name.

    Each row takes the first record with the same name that no earlier row
    has claimed; rows without a match become new records. Input order is
    preserved and new records are appended.
    """
    merged: set[int] = set()
    for line in output.splitlines():
        if not line.strip():
            continue
        columns = [c.strip() for c in line.split(",")]
        columns += [""] * (len(NVIDIA_SMI_FIELDS) - len(columns))
        row = dict(zip(NVIDIA_SMI_FIELDS, columns))
        name = row["name"]
        if not name:
            continue

        target = None
        for i, gpu in enumerate(gpus):
            if i not in merged and gpu.name == name:
                target = gpu
                merged.add(i)
                break
        if target is None:
            target = Gpu(id=name, name=name, status="ok")
            merged.add(len(gpus))
            gpus.append(target)

        _merge_row(target, row)
    return gpus


def _merge_row(gpu: Gpu, row: dict[str, str]) -> None:
    index = parse_int(row["index"])
    if index is not None:
        gpu.index = index
    attached = _flag(row["display_attached"])
    if attached is not None:
        gpu.display_attached = attached
    active = _flag(row["display_active"])
    if active is not None:
        gpu.display_active = active
    memory_mib = parse_int(row["memory.total"])
    if memory_mib is not None:
        gpu.memory = memory_mib * 1024 * 1024

    values = {
        "fan_speed": _fraction(row["fan.speed"]),
        "processing": _fraction(row["utilization.gpu"]),
        "memory": _fraction(row["utilization.memory"]),
        "temperature": parse_float(row["temperature.gpu"]),
        "memory_temperature": parse_float(row["temperature.memory"]),
        "power_draw": parse_float(row["power.draw"]),
    }
    for key, value in values.items():
        if value is None:
            continue
        if gpu.utilization is None:
            gpu.utilization = GpuUtilization()
        setattr(gpu.utilization, key, value)


class GpuProbe(Probe):
    """Inventory pass followed by the nvidia-smi pass."""

    async def inventory(self) -> list[Gpu]:
        return []

    async def collect(self) -> Outcome[list[Gpu]]:
        gpus = await self.inventory()
        smi = await self.run(NVIDIA_SMI_COMMAND)
        if smi.ok:
            apply_nvidia_smi(gpus, smi.value)
        return Outcome.of(gpus)


@ProbeRegistry.register("gpu", LINUX)
class LspciGpuProbe(GpuProbe):
    async def inventory(self) -> list[Gpu]:
        output = await self.run(LSPCI_COMMAND)
        return parse_lspci_gpus(output.value) if output.ok else []


@ProbeRegistry.register("gpu", WINDOWS)
class WindowsGpuProbe(GpuProbe):
    async def inventory(self) -> list[Gpu]:
        output = await self.run(WINDOWS_GPU_COMMAND)
        return parse_windows_gpus(output.value) if output.ok else []


ProbeRegistry.register("gpu")(GpuProbe)

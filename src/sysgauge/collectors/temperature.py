"""Sensor temperatures grouped by component."""

import asyncio
import logging
import re
from pathlib import Path

from sysgauge import classifiers
from sysgauge.aggregate import mean
from sysgauge.classifiers import classify
from sysgauge.models import Temperatures
from sysgauge.platforms import LINUX, WINDOWS, ProbeRegistry
from sysgauge.probe import Probe
from sysgauge.result import Outcome
from sysgauge.utils.parsing import parse_float, parse_int, parse_key_value_blocks

logger = logging.getLogger(__name__)

WINDOWS_THERMAL_COMMAND = (
    "powershell -Command \"Get-CimInstance MSAcpi_ThermalZoneTemperature "
    "-Namespace 'root/wmi' | Select CurrentTemperature | Format-List\""
)
NVIDIA_TEMPERATURE_COMMAND = (
    "nvidia-smi --query-gpu=temperature.gpu,temperature.memory "
    "--format=csv,nounits,noheader"
)

_HWMON_INPUT_RE = re.compile(r"^(temp\d+)_input$")

# Categories collecting one value per sensor; the rest keep the last reading
_LIST_FIELDS = {
    classifiers.CPU_CORE: "cpu_cores",
    classifiers.CPU_SOCKET: "cpu_sockets",
    classifiers.GPU: "gpus",
    classifiers.GPU_MEMORY: "gpu_memories",
}
_SCALAR_FIELDS = {
    classifiers.MOTHERBOARD: "motherboard",
    classifiers.WIFI: "wifi",
    classifiers.BATTERY: "battery",
}


def millidegrees(text: str | None) -> float | None:
    value = parse_int(text)
    return value / 1000 if value is not None else None


def record_reading(temperatures: Temperatures, category: str | None, celsius: float) -> None:
    """Store a reading under the field of its category; None drops it."""
    if category in _LIST_FIELDS:
        name = _LIST_FIELDS[category]
        readings = getattr(temperatures, name) or []
        readings.append(celsius)
        setattr(temperatures, name, readings)
    elif category in _SCALAR_FIELDS:
        setattr(temperatures, _SCALAR_FIELDS[category], celsius)


def parse_windows_thermal_zones(output: str) -> float | None:
    """CPU temperature from MSAcpi_ThermalZoneTemperature (tenths of Kelvin)."""
    celsius = None
    for block in parse_key_value_blocks(output, " : "):
        value = parse_int(block.get("CurrentTemperature"))
        if value is not None:
            celsius = (value - 2732) / 10
    return celsius


def apply_nvidia_temperatures(temperatures: Temperatures, output: str) -> None:
    """Replace GPU readings with nvidia-smi values.

    Each column replaces its list on the first valid value, so sysfs GPU
    readings survive when nvidia-smi reports only ``[N/A]``.
    """
    gpus: list[float] = []
    memories: list[float] = []
    for line in output.splitlines():
        columns = [c.strip() for c in line.split(",")]
        gpu = parse_float(columns[0]) if columns else None
        memory = parse_float(columns[1]) if len(columns) > 1 else None
        if gpu is not None:
            gpus.append(gpu)
        if memory is not None:
            memories.append(memory)
    if gpus:
        temperatures.gpus = gpus
    if memories:
        temperatures.gpu_memories = memories


def summarize(temperatures: Temperatures) -> Temperatures:
    """Fill the overall cpu/gpu/gpu_memory values from the per-device lists."""
    if temperatures.cpu is None:
        temperatures.cpu = mean(temperatures.cpu_sockets or [])
        if temperatures.cpu is None:
            temperatures.cpu = mean(temperatures.cpu_cores or [])
    if temperatures.gpu is None:
        temperatures.gpu = mean(temperatures.gpus or [])
    if temperatures.gpu_memory is None:
        temperatures.gpu_memory = mean(temperatures.gpu_memories or [])
    return temperatures


class TemperatureProbe(Probe):
    """Platform sensors first, then nvidia-smi, then the summary values."""

    async def collect(self) -> Outcome[Temperatures]:
        temperatures = Temperatures()
        await self.read_sensors(temperatures)
        smi = await self.run(NVIDIA_TEMPERATURE_COMMAND)
        if smi.ok:
            apply_nvidia_temperatures(temperatures, smi.value)
        return Outcome.of(summarize(temperatures))

    async def read_sensors(self, temperatures: Temperatures) -> None:
        """Platform sensor pass; none by default."""


@ProbeRegistry.register("temperature", LINUX)
class SysfsTemperatureProbe(TemperatureProbe):
    """Reads /sys/class/thermal zones and /sys/class/hwmon chips."""

    async def read_sensors(self, temperatures: Temperatures) -> None:
        for category, celsius in await self.thermal_zones():
            record_reading(temperatures, category, celsius)
        for category, celsius in await self.hwmon_sensors():
            record_reading(temperatures, category, celsius)

    async def thermal_zones(self) -> list[tuple[str | None, float]]:
        zones = await self.list_dir(self.sysfs_root / "class" / "thermal")
        contents = await self.read_many(
            path for zone in zones for path in (zone / "temp", zone / "type")
        )
        readings = []
        for zone in zones:
            celsius = millidegrees(contents.get(zone / "temp"))
            if celsius is None:
                continue
            zone_type = contents.get(zone / "type") or ""
            readings.append((classify(zone_type, classifiers.THERMAL_ZONE_RULES), celsius))
        return readings

    async def hwmon_sensors(self) -> list[tuple[str | None, float]]:
        chips = await self.list_dir(self.sysfs_root / "class" / "hwmon")
        inputs: dict[Path, list[str]] = {}
        paths: list[Path] = []
        listings = await asyncio.gather(*(self.list_dir(chip) for chip in chips))
        for chip, entries in zip(chips, listings):
            sensors = [
                match.group(1)
                for entry in entries
                if (match := _HWMON_INPUT_RE.match(entry.name))
            ]
            inputs[chip] = sensors
            paths.append(chip / "name")
            for sensor in sensors:
                paths.extend([chip / f"{sensor}_input", chip / f"{sensor}_label"])
        contents = await self.read_many(paths)

        readings = []
        for chip, sensors in inputs.items():
            chip_name = contents.get(chip / "name") or ""
            for sensor in sensors:
                celsius = millidegrees(contents.get(chip / f"{sensor}_input"))
                if celsius is None:
                    continue
                label = (contents.get(chip / f"{sensor}_label") or "").strip() or chip_name
                readings.append((classify(label, classifiers.HWMON_RULES), celsius))
        return readings


@ProbeRegistry.register("temperature", WINDOWS)
class WindowsTemperatureProbe(TemperatureProbe):
    """ACPI thermal zones; only readable with administrator rights."""

    async def read_sensors(self, temperatures: Temperatures) -> None:
        output = await self.run(WINDOWS_THERMAL_COMMAND)
        if output.ok:
            temperatures.cpu = parse_windows_thermal_zones(output.value)


ProbeRegistry.register("temperature")(TemperatureProbe)

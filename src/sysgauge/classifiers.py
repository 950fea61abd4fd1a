"""Table-driven string classifiers.

Each table is an ordered list of rules; the first matching rule decides the
category. Tables are plain data so they can be tested and extended one rule
at a time.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class Rule:
    """Maps strings accepted by ``predicate`` to ``category``."""

    category: str
    predicate: Callable[[str], bool]
    description: str = ""

    def matches(self, value: str) -> bool:
        return self.predicate(value)


def contains(*needles: str) -> Callable[[str], bool]:
    return lambda value: any(n in value for n in needles)


def starts_with(*prefixes: str) -> Callable[[str], bool]:
    return lambda value: value.startswith(prefixes)


def classify(value: str, rules: Sequence[Rule], lower: bool = True) -> str | None:
    """Return the category of the first rule matching ``value``, or None."""
    subject = value.strip().lower() if lower else value.strip()
    for rule in rules:
        if rule.matches(subject):
            return rule.category
    return None


# Sensor categories
CPU_CORE = "cpu_core"
CPU_SOCKET = "cpu_socket"
MOTHERBOARD = "motherboard"
GPU = "gpu"
GPU_MEMORY = "gpu_memory"
WIFI = "wifi"
BATTERY = "battery"

# /sys/class/thermal/*/type values
THERMAL_ZONE_RULES: list[Rule] = [
    Rule(CPU_CORE, contains("core")),
    Rule(CPU_SOCKET, contains("x86", "soc_thermal"), "x86_pkg_temp, soc_thermal"),
    Rule(MOTHERBOARD, starts_with("acp", "pch"), "acpitz, pch_*"),
    Rule(GPU, contains("gpu", "graphics")),
    Rule(WIFI, contains("wifi")),
    Rule(BATTERY, contains("battery")),
]

# hwmon temp*_label values, falling back to the chip name
HWMON_RULES: list[Rule] = [
    Rule(CPU_CORE, contains("core")),
    Rule(CPU_SOCKET, contains("socket", "package")),
    Rule(GPU, contains("gpu", "graphics")),
    Rule(MOTHERBOARD, contains("motherboard", "mainboard", "mb")),
    Rule(WIFI, contains("wifi")),
    Rule(BATTERY, contains("battery")),
]

# Interface names guessed to be virtual. The guess is a heuristic only;
# a detected link carrier overrides it.
VIRTUAL = "virtual"
VIRTUAL_INTERFACE_RULES: list[Rule] = [
    Rule(VIRTUAL, starts_with("lo"), "loopback"),
    Rule(VIRTUAL, starts_with("v"), "veth, virbr, vmnet, vboxnet, vEthernet"),
]

# Docker status messages, e.g. "Up 2 hours (healthy)"
HEALTH_RULES: list[Rule] = [
    Rule("unhealthy", contains("unhealthy")),
    Rule("healthy", contains("healthy")),
    Rule("starting", contains("starting")),
]


def is_virtual_interface_name(name: str) -> bool:
    return classify(name, VIRTUAL_INTERFACE_RULES, lower=False) == VIRTUAL

"""Mounted filesystems and their capacity."""

import json
import logging
import re
from collections.abc import Iterable

from sysgauge.aggregate import ratio
from sysgauge.models import Drive
from sysgauge.platforms import DARWIN, LINUX, WINDOWS, ProbeRegistry
from sysgauge.probe import Probe
from sysgauge.result import Outcome
from sysgauge.utils.parsing import parse_int

logger = logging.getLogger(__name__)

LINUX_DF_COMMAND = "df -PT --block-size=1"
DARWIN_DF_COMMAND = "df -kP"
DARWIN_MOUNT_COMMAND = "mount"
WINDOWS_DRIVE_COMMAND = (
    'powershell -Command "Get-CimInstance -ClassName Win32_LogicalDisk '
    '| Select-Object Caption, VolumeName, Size, FreeSpace, FileSystem '
    '| ConvertTo-Json"'
)

DEFAULT_VIRTUAL_TYPES = ("devtmpfs", "tmpfs", "overlay", "devfs", "autofs")

# "/dev/disk1s1 on / (apfs, local, journaled)"
_MOUNT_RE = re.compile(r"^(?P<filesystem>.+?) on (?P<mount>.+) \((?P<type>[^,)]+)")


def _make_drive(filesystem: str, mount: str, fs_type: str, total: int, used: int, free: int) -> Drive:
    return Drive(
        filesystem=filesystem,
        mount=mount,
        type=fs_type,
        total=total,
        used=used,
        free=free,
        utilization=ratio(used, total),
    )


def parse_linux_df(output: str) -> list[Drive]:
    """Parse ``df -PT --block-size=1`` output.

    Columns: filesystem, type, total, used, available, capacity, mount. The
    mount point may contain spaces, so it takes the remaining columns.
    """
    drives = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 7:
            continue
        total, used, free = (parse_int(p) for p in parts[2:5])
        if total is None or used is None or free is None:
            continue
        drives.append(_make_drive(parts[0], " ".join(parts[6:]), parts[1], total, used, free))
    return drives


def parse_mount_types(output: str) -> dict[str, str]:
    """Map filesystem to type from BSD-style ``mount`` output."""
    types = {}
    for line in output.splitlines():
        match = _MOUNT_RE.match(line.strip())
        if match:
            types[match.group("filesystem")] = match.group("type").strip()
    return types


def parse_darwin_df(output: str, mount_types: dict[str, str]) -> list[Drive]:
    """Parse ``df -kP`` output (1024-byte blocks) and attach mount types."""
    drives = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 6:
            continue
        blocks = [parse_int(p) for p in parts[1:4]]
        if any(b is None for b in blocks):
            continue
        total, used, free = (b * 1024 for b in blocks)
        drives.append(
            _make_drive(
                parts[0],
                " ".join(parts[5:]),
                mount_types.get(parts[0], "unknown"),
                total,
                used,
                free,
            )
        )
    return drives


def parse_windows_drives(output: str) -> list[Drive]:
    """Parse ``Win32_LogicalDisk | ConvertTo-Json`` output.

    PowerShell emits a bare object instead of a list when there is a single
    disk. The mount is the volume label, or the drive letter when the volume
    is unlabeled.
    """
    if not output.strip():
        return []
    data = json.loads(output)
    if isinstance(data, dict):
        data = [data]

    drives = []
    for disk in data:
        total = int(disk.get("Size") or 0)
        free = int(disk.get("FreeSpace") or 0)
        caption = disk.get("Caption") or ""
        drives.append(
            _make_drive(
                caption,
                disk.get("VolumeName") or caption,
                disk.get("FileSystem") or "unknown",
                total,
                max(total - free, 0),
                free,
            )
        )
    return drives


def filter_virtual(drives: Iterable[Drive], virtual_types: Iterable[str]) -> list[Drive]:
    virtual = {t.lower() for t in virtual_types}
    return [d for d in drives if d.type.lower() not in virtual]


class DriveProbe(Probe):
    """Lists drives; virtual filesystem types are hidden unless requested."""

    def __init__(self, virtual_types: Iterable[str] = DEFAULT_VIRTUAL_TYPES, **kwargs) -> None:
        super().__init__(**kwargs)
        self.virtual_types = tuple(virtual_types)

    async def collect(self, include_virtual: bool = False) -> Outcome[list[Drive]]:
        drives = await self.list_drives()
        if not drives.ok or include_virtual:
            return drives
        return Outcome.of(filter_virtual(drives.value, self.virtual_types))

    async def list_drives(self) -> Outcome[list[Drive]]:
        return Outcome.empty("no drive listing tool on this platform")


@ProbeRegistry.register("drive", LINUX)
class LinuxDriveProbe(DriveProbe):
    async def list_drives(self) -> Outcome[list[Drive]]:
        return (await self.run(LINUX_DF_COMMAND)).map(parse_linux_df)


@ProbeRegistry.register("drive", DARWIN)
class DarwinDriveProbe(DriveProbe):
    async def list_drives(self) -> Outcome[list[Drive]]:
        output = await self.run(DARWIN_DF_COMMAND)
        if not output.ok:
            return Outcome.empty(output.reason)
        mounts = await self.run(DARWIN_MOUNT_COMMAND)
        return Outcome.of(parse_darwin_df(output.value, parse_mount_types(mounts.unwrap_or(""))))


@ProbeRegistry.register("drive", WINDOWS)
class WindowsDriveProbe(DriveProbe):
    async def list_drives(self) -> Outcome[list[Drive]]:
        output = await self.run(WINDOWS_DRIVE_COMMAND)
        if not output.ok:
            return Outcome.empty(output.reason)
        try:
            return Outcome.of(parse_windows_drives(output.value))
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.debug(f"Unreadable Win32_LogicalDisk output: {e}")
            return Outcome.empty("unreadable Win32_LogicalDisk output")


ProbeRegistry.register("drive")(DriveProbe)

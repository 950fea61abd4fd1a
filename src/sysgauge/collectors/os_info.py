"""Operating system identification."""

import logging
import platform
import socket
import sys
from datetime import datetime, timezone

import psutil

from sysgauge.models import OsInfo
from sysgauge.platforms import ProbeRegistry
from sysgauge.probe import Probe
from sysgauge.result import Outcome

logger = logging.getLogger(__name__)


def boot_time() -> datetime | None:
    try:
        return datetime.fromtimestamp(psutil.boot_time(), tz=timezone.utc)
    except (OSError, RuntimeError) as e:
        logger.debug(f"Boot time unavailable: {e}")
        return None


def pointer_bits(machine: str) -> int:
    """64 for 64-bit machines such as ``x86_64``/``arm64``, else 32."""
    return 64 if "64" in machine else 32


@ProbeRegistry.register("os")
class OsProbe(Probe):
    async def collect(self) -> Outcome[OsInfo]:
        machine = platform.machine()
        architecture = platform.architecture()[0] or machine
        return Outcome.of(
            OsInfo(
                name=platform.system(),
                version=platform.release(),
                architecture=architecture,
                machine=machine,
                platform=sys.platform,
                bits=pointer_bits(machine),
                hostname=socket.gethostname(),
                booted_at=boot_time(),
            )
        )

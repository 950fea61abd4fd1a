"""Common plumbing for platform probes."""

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from sysgauge.result import Outcome
from sysgauge.utils.command import Runner, run_command, try_command

logger = logging.getLogger(__name__)

SYSFS_ROOT = Path("/sys")


class Probe:
    """Base class for probes that run tools and read pseudo-files.

    The runner and sysfs root are injectable so probes can be exercised
    against recorded tool output and synthetic sysfs trees.
    """

    def __init__(
        self,
        runner: Runner = run_command,
        timeout: float | None = None,
        sysfs_root: Path = SYSFS_ROOT,
    ) -> None:
        self.runner = runner
        self.timeout = timeout
        self.sysfs_root = Path(sysfs_root)

    async def run(self, command: str) -> Outcome[str]:
        """Run a tool; failures come back as an empty outcome."""
        return await try_command(command, runner=self.runner, timeout=self.timeout)

    async def read_text(self, path: Path) -> str | None:
        """Read a pseudo-file off the event loop, None if unreadable."""
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read {path}: {e}")
            return None

    async def read_many(self, paths: Iterable[Path]) -> dict[Path, str]:
        """Read files concurrently, keeping only the ones that succeeded."""
        paths = list(paths)
        results = await asyncio.gather(
            *(self.read_text(p) for p in paths), return_exceptions=True
        )
        return {
            path: text
            for path, text in zip(paths, results)
            if isinstance(text, str)
        }

    async def list_dir(self, path: Path) -> list[Path]:
        """List a directory, empty if it does not exist."""
        try:
            entries = await asyncio.to_thread(lambda: sorted(path.iterdir()))
        except OSError as e:
            logger.debug(f"Could not list {path}: {e}")
            return []
        return entries

"""Shell command execution for platform tools."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from sysgauge.result import Outcome

logger = logging.getLogger(__name__)

Runner = Callable[..., Awaitable[str]]


class CommandFailed(Exception):
    """Raised when a command exits with a nonzero code."""

    def __init__(
        self,
        command: str,
        exit_code: int,
        output: str,
        message: str | None = None,
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.output = output
        super().__init__(
            message
            or f"Command failed with exit code {exit_code}: {output.strip()[:200]}"
        )


class CommandTimeout(CommandFailed):
    """Raised when a command exceeds its timeout and is killed."""

    def __init__(self, command: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            command, -1, "", f"Command timed out after {timeout}s: {command}"
        )


async def run_command(command: str, timeout: float | None = None) -> str:
    """Run a shell command and return its combined stdout and stderr.

    Args:
        command: Command line passed to the shell.
        timeout: Seconds to wait before killing the process. None waits
            indefinitely.

    Returns:
        Decoded output of the command.

    Raises:
        CommandFailed: If the command exits with a nonzero code.
        CommandTimeout: If the timeout elapses first.
    """
    process = await asyncio.create_subprocess_shell(
        command,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise CommandTimeout(command, timeout) from None

    output = stdout.decode("utf-8", errors="replace") if stdout else ""
    if process.returncode != 0:
        raise CommandFailed(command, process.returncode, output)
    return output


async def try_command(
    command: str,
    runner: Runner = run_command,
    timeout: float | None = None,
) -> Outcome[str]:
    """Run a command, turning any failure into an empty outcome.

    Tool failures are expected on hosts where a tool is missing or needs
    privileges, so they are logged at debug level only.
    """
    try:
        output = await runner(command, timeout=timeout)
    except CommandFailed as e:
        logger.debug(f"'{command}' unavailable: {e}")
        return Outcome.empty(str(e))
    except OSError as e:
        logger.debug(f"'{command}' could not be started: {e}")
        return Outcome.empty(str(e))
    return Outcome.of(output)

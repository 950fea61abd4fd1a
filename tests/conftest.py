"""Shared fixtures: recorded tool output and a scripted command runner."""

from pathlib import Path

import pytest

from sysgauge.utils.command import CommandFailed

FIXTURES = Path(__file__).parent / "fixtures"


def read_fixture(name: str) -> str:
    # newline="" keeps the CRLF line endings of the Windows fixtures
    with open(FIXTURES / name, encoding="utf-8", newline="") as f:
        return f.read()


class FakeRunner:
    """Stands in for ``run_command``.

    Maps a command prefix to canned output; commands with no match fail like
    a missing tool would.
    """

    def __init__(self, outputs: dict[str, str] | None = None):
        self.outputs = dict(outputs or {})
        self.calls: list[str] = []

    async def __call__(self, command: str, timeout: float | None = None) -> str:
        self.calls.append(command)
        for prefix, output in self.outputs.items():
            if command.startswith(prefix):
                return output
        raise CommandFailed(command, 127, f"{command.split()[0]}: command not found")


@pytest.fixture
def fixture_text():
    return read_fixture


@pytest.fixture
def fake_runner():
    """Build a FakeRunner from ``{command_prefix: output}``."""

    def _create(outputs: dict[str, str] | None = None) -> FakeRunner:
        return FakeRunner(outputs)

    return _create


@pytest.fixture
def sysfs(tmp_path):
    """Write a synthetic sysfs tree from ``{relative_path: content}``."""

    def _create(files: dict[str, str]) -> Path:
        root = tmp_path / "sys"
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        root.mkdir(exist_ok=True)
        return root

    return _create

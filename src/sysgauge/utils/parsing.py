"""Parsers for loosely structured tool output."""

import re
from dataclasses import dataclass, field
from datetime import datetime

_INT_RE = re.compile(r"^\s*([-+]?\d+)")
_FLOAT_RE = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)")
_BYTE_RE = re.compile(r"([-+]?\d+(?:\.\d+)?)\s*([a-zA-Z]*)")

_DECIMAL_UNITS = {
    "": 1,
    "b": 1,
    "k": 1000,
    "kb": 1000,
    "m": 1000**2,
    "mb": 1000**2,
    "g": 1000**3,
    "gb": 1000**3,
    "t": 1000**4,
    "tb": 1000**4,
    "p": 1000**5,
    "pb": 1000**5,
    "kib": 1024,
    "mib": 1024**2,
    "gib": 1024**3,
    "tib": 1024**4,
    "pib": 1024**5,
}

_BINARY_UNITS = {
    **_DECIMAL_UNITS,
    "k": 1024,
    "kb": 1024,
    "m": 1024**2,
    "mb": 1024**2,
    "g": 1024**3,
    "gb": 1024**3,
    "t": 1024**4,
    "tb": 1024**4,
    "p": 1024**5,
    "pb": 1024**5,
}


@dataclass
class KeyValueBlock:
    """Fields of one entity parsed from a key-value listing.

    ``headings`` holds the keys that appeared without a value, such as
    ``Memory Device`` in dmidecode output.
    """

    fields: dict[str, str] = field(default_factory=dict)
    headings: list[str] = field(default_factory=list)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.fields.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self.fields

    def __getitem__(self, key: str) -> str:
        return self.fields[key]


def split_key_value(line: str, separator: str = ": ") -> tuple[str, str]:
    """Split a line at the first separator into a trimmed key and value."""
    key, _, value = line.partition(separator)
    key = key.strip()
    marker = separator.strip() or separator
    if not value and key.endswith(marker):
        # "Characteristics:" style headings carry the separator without a value
        key = key[: -len(marker)].rstrip()
    return key, value.strip()


def parse_key_value_blocks(text: str, separator: str = ": ") -> list[KeyValueBlock]:
    """Parse repeated ``key<separator>value`` blocks.

    A blank line (or a line without a key) ends the current block. A block is
    only emitted once it holds at least one field, so runs of blank lines and
    heading-only blocks produce nothing.

    Args:
        text: Raw tool output, LF or CRLF line endings.
        separator: Key/value separator, e.g. ``": "`` for dmidecode or
            ``" : "`` for PowerShell ``Format-List``.

    Returns:
        Parsed blocks in input order.

    Example:
        >>> blocks = parse_key_value_blocks("A: 1\\nB: 2\\n\\nA: 3\\n")
        >>> [b.fields for b in blocks]
        [{'A': '1', 'B': '2'}, {'A': '3'}]
    """
    blocks: list[KeyValueBlock] = []
    current = KeyValueBlock()

    for raw_line in text.splitlines():
        key, value = split_key_value(raw_line, separator)
        if not key:
            if current.fields:
                blocks.append(current)
            current = KeyValueBlock()
            continue
        if not value:
            current.headings.append(key)
            continue
        current.fields[key] = value

    if current.fields:
        blocks.append(current)
    return blocks


def process_key_value_string(
    text: str, item_separator: str = ",", kv_separator: str = "="
) -> dict[str, str]:
    """Parse ``a=1,b=2`` style strings into a dict.

    Items without a ``kv_separator`` map to an empty string.
    """
    result: dict[str, str] = {}
    for item in text.split(item_separator):
        item = item.strip()
        if not item:
            continue
        key, _, value = item.partition(kv_separator)
        result[key.strip()] = value.strip()
    return result


def parse_int(value: str | None) -> int | None:
    """Parse the leading integer of a string like ``"64 bits"``."""
    if value is None:
        return None
    match = _INT_RE.match(value)
    return int(match.group(1)) if match else None


def parse_float(value: str | None) -> float | None:
    """Parse the leading number of a string like ``"1.2 V"``."""
    if value is None:
        return None
    match = _FLOAT_RE.match(value)
    return float(match.group(1)) if match else None


def parse_byte_value(value: str | None, binary: bool = False) -> int | None:
    """Parse a human readable size like ``"1.5GB"`` or ``"16 GiB"`` into bytes.

    Args:
        value: Size string with an optional unit.
        binary: Treat ``KB``/``MB``/``GB`` as powers of 1024, as firmware
            tables do. ``KiB``-style units are always binary.

    Returns:
        Size in bytes, or None if the string holds no number or an
        unknown unit.
    """
    if value is None:
        return None
    match = _BYTE_RE.search(value)
    if not match:
        return None
    units = _BINARY_UNITS if binary else _DECIMAL_UNITS
    factor = units.get(match.group(2).lower())
    if factor is None:
        return None
    return int(float(match.group(1)) * factor)


def parse_date(value: str | None) -> datetime | None:
    """Parse docker-style timestamps such as ``2024-01-15 10:30:00 +0100 CET``."""
    if not value:
        return None
    parts = value.split()
    if len(parts) >= 3:
        try:
            return datetime.strptime(" ".join(parts[:3]), "%Y-%m-%d %H:%M:%S %z")
        except ValueError:
            pass
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None

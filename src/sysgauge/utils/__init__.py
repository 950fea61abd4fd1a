"""Shared helpers for running platform tools and parsing their output."""

from .command import CommandFailed, CommandTimeout, run_command, try_command
from .parsing import (
    KeyValueBlock,
    parse_byte_value,
    parse_date,
    parse_float,
    parse_int,
    parse_key_value_blocks,
    process_key_value_string,
)

__all__ = [
    "CommandFailed",
    "CommandTimeout",
    "KeyValueBlock",
    "parse_byte_value",
    "parse_date",
    "parse_float",
    "parse_int",
    "parse_key_value_blocks",
    "process_key_value_string",
    "run_command",
    "try_command",
]

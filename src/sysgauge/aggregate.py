"""Summary derivations over device-level values.

Every helper returns None for empty input so callers can leave the derived
field unset instead of storing NaN.
"""

from collections.abc import Iterable


def _present(values: Iterable[float | int | None]) -> list[float | int]:
    return [v for v in values if v is not None]


def mean(values: Iterable[float | int | None]) -> float | None:
    """Arithmetic mean of the non-None values."""
    present = _present(values)
    if not present:
        return None
    return sum(present) / len(present)


def minimum(values: Iterable[float | int | None]) -> float | int | None:
    """Smallest non-None value, e.g. the bottleneck clock across modules."""
    present = _present(values)
    return min(present) if present else None


def total(values: Iterable[float | int | None]) -> float | int | None:
    """Sum of the non-None values."""
    present = _present(values)
    return sum(present) if present else None


def ratio(numerator: float, denominator: float) -> float:
    """Divide, defining x/0 as 0."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def clamp_fraction(value: float) -> float:
    """Clamp a utilization figure into [0.0, 1.0]."""
    return max(0.0, min(1.0, value))

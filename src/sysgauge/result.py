"""Value-or-empty result returned at every collector boundary."""

from dataclasses import dataclass
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a best-effort collection.

    ``value`` is None when the source was unavailable; ``reason`` then says
    why. Collectors never raise, so callers decide the fallback through
    ``unwrap_or``.
    """

    value: T | None = None
    reason: str | None = None

    @classmethod
    def of(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def empty(cls, reason: str = "unavailable") -> "Outcome[T]":
        return cls(value=None, reason=reason)

    @property
    def ok(self) -> bool:
        return self.value is not None

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` if the collection came up empty."""
        return self.value if self.value is not None else default

    def map(self, fn: Callable[[T], U]) -> "Outcome[U]":
        """Apply ``fn`` to the value; an empty outcome passes through unchanged."""
        if self.value is None:
            return Outcome.empty(self.reason or "unavailable")
        return Outcome.of(fn(self.value))

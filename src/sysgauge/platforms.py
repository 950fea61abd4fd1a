"""Platform detection and per-domain probe registration."""

import logging
import sys
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

LINUX = "linux"
WINDOWS = "windows"
DARWIN = "darwin"
OTHER = "other"

# Registry key for the implementation used when nothing matches the platform
FALLBACK = "*"

T = TypeVar("T", bound=type)


def current_platform() -> str:
    """Normalize ``sys.platform`` to one of linux/windows/darwin/other."""
    if sys.platform.startswith("linux"):
        return LINUX
    if sys.platform in ("win32", "cygwin"):
        return WINDOWS
    if sys.platform == "darwin":
        return DARWIN
    return OTHER


class ProbeRegistry:
    """Registry of probe classes keyed by domain and platform."""

    _probes: dict[str, dict[str, type]] = {}

    @classmethod
    def register(cls, domain: str, *platforms: str) -> Callable[[T], T]:
        """Class decorator registering a probe for ``domain`` on ``platforms``.

        Registering with no platforms makes the class the domain fallback.
        """

        def decorator(probe_class: T) -> T:
            entries = cls._probes.setdefault(domain, {})
            for platform in platforms or (FALLBACK,):
                entries[platform] = probe_class
            return probe_class

        return decorator

    @classmethod
    def get_probe_class(cls, domain: str, platform: str | None = None) -> type:
        """Get the probe class for a domain on a platform.

        Raises:
            ValueError: If the domain has no probe for the platform and no
                fallback.
        """
        platform = platform or current_platform()
        entries = cls._probes.get(domain, {})
        probe_class = entries.get(platform) or entries.get(FALLBACK)
        if probe_class is None:
            available = ", ".join(sorted(cls._probes)) or "none"
            raise ValueError(
                f"No '{domain}' probe for platform '{platform}'. "
                f"Registered domains: {available}"
            )
        return probe_class

    @classmethod
    def create(cls, domain: str, platform: str | None = None, **kwargs: Any) -> Any:
        """Instantiate the probe selected for ``domain`` on ``platform``."""
        probe_class = cls.get_probe_class(domain, platform)
        logger.debug(f"Using {probe_class.__name__} for {domain}")
        return probe_class(**kwargs)

    @classmethod
    def list_domains(cls) -> list[str]:
        return sorted(cls._probes)

"""Exception hierarchy shared by the mdimg workflows."""

from __future__ import annotations


class MdimgError(Exception):
    """Base class for every error raised by mdimg."""


class DiscoveryError(MdimgError):
    """Document enumeration or read failure; aborts the run before any fetch."""


class FetchError(MdimgError):
    """A single URL could not be retrieved (transport, timeout or non-200 status)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class MaterializeError(MdimgError):
    """Fetched bytes could not be written to the output directory."""


class WriteBackError(MdimgError):
    """A rewritten document could not be persisted."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


__all__ = [
    "MdimgError",
    "DiscoveryError",
    "FetchError",
    "MaterializeError",
    "WriteBackError",
]

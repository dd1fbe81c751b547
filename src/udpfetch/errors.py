from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .stats import TransferStats


class FetchError(Exception):
    pass


class ConfigError(FetchError):
    """Bad local setup, reported before any socket I/O."""


class MissingDirectoryError(ConfigError):
    pass


class NotADirectoryConfigError(ConfigError):
    pass


class DirectoryPermissionError(ConfigError):
    pass


class PathRejectedError(FetchError):
    def __init__(self, requested: str, resolved: str, root: str):
        super().__init__(f"{resolved!r} is outside of {root!r} (requested {requested!r})")
        self.requested = requested
        self.resolved = resolved
        self.root = root


class TransferError(FetchError):
    def __init__(self, message: str, stats: Optional["TransferStats"] = None):
        super().__init__(message)
        self.stats = stats


class TransferTimeoutError(TransferError):
    """No block arrived from the server within the receive timeout."""


class AckTimeoutError(TransferError):
    """The peer did not acknowledge a block within the ack budget."""

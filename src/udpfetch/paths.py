from __future__ import annotations

import os

from .errors import (
    DirectoryPermissionError,
    MissingDirectoryError,
    NotADirectoryConfigError,
    PathRejectedError,
)


def canonical_root(path: str | os.PathLike[str]) -> str:
    root = os.path.realpath(os.fspath(path))
    if len(root) > 1:
        root = root.rstrip(os.sep)
    return root


def check_directory(path: str | os.PathLike[str], *, writable: bool = False) -> str:
    """Validate a local directory and return its canonical path.

    Readability is checked for a serving root, writability for a download
    target. Each failed condition raises its own ``ConfigError`` subclass.
    """
    path = os.fspath(path)
    if not os.path.exists(path):
        raise MissingDirectoryError(f"directory {path!r} does not exist")
    if not os.path.isdir(path):
        raise NotADirectoryConfigError(f"{path!r} is not a directory")
    mode = os.W_OK if writable else os.R_OK
    if not os.access(path, mode):
        kind = "write" if writable else "read"
        raise DirectoryPermissionError(f"no {kind} permission on directory {path!r}")
    return canonical_root(path)


def _contained(root: str, resolved: str) -> bool:
    prefix = root if root.endswith(os.sep) else root + os.sep
    return resolved != root and resolved.startswith(prefix)


def resolve_request(root: str, requested: str) -> str:
    """Map a client-supplied filename to a canonical path strictly inside ``root``.

    Relative names are taken relative to ``root``; absolute names are used
    as-is. Both sides are compared after symlink and ``..`` resolution, and the
    root itself is never accepted.
    """
    if "\x00" in requested:
        raise PathRejectedError(requested, requested, root)
    resolved = os.path.realpath(os.path.join(root, requested))
    if not _contained(root, resolved):
        raise PathRejectedError(requested, resolved, root)
    return resolved


def is_contained(root: str, requested: str) -> bool:
    try:
        resolve_request(root, requested)
    except PathRejectedError:
        return False
    return True

"""
File metadata lookup shared by the static and dynamic handlers.

The metadata is queried fresh for every request and never cached, so a
file edited between two requests is always seen in its current state.
It is a fast filter only: the handlers still treat their own open/exec
as the final word, because the file can change between the stat and the
use.
"""

import os
import stat
from dataclasses import dataclass

from ..http.errors import AccessDeniedError


@dataclass(frozen=True)
class FileMetadata:
    """Result of one stat() of a resolved filesystem path."""

    exists: bool
    is_regular_file: bool = False
    readable: bool = False
    executable: bool = False
    size_bytes: int = 0

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "FileMetadata":
        # Owner bits only, exactly as in the mode; not an access(2) check
        return cls(
            exists=True,
            is_regular_file=stat.S_ISREG(st.st_mode),
            readable=bool(st.st_mode & stat.S_IRUSR),
            executable=bool(st.st_mode & stat.S_IXUSR),
            size_bytes=st.st_size,
        )


MISSING = FileMetadata(exists=False)


def stat_resource(path: str) -> FileMetadata:
    """
    Query the filesystem for `path`.

    Any failure to stat (missing file, missing parent directory, a name
    the OS rejects) reports the resource as non-existent.
    """
    try:
        return FileMetadata.from_stat(os.stat(path))
    except (OSError, ValueError):
        # ValueError: embedded NUL byte in the requested name
        return MISSING


def local_path(document_root: str, filesystem_path: str) -> str:
    """
    Join a "./<path>" filesystem path onto the document root.

    With the default root "." the path is returned unchanged, so files
    resolve against the working directory like they always have.
    """
    if os.path.normpath(document_root) == os.curdir:
        return filesystem_path
    return os.path.join(document_root, filesystem_path)


def ensure_inside_root(document_root: str, path: str, cause: str) -> None:
    """
    Check that an existing `path` really lives under the document root.

    Both sides go through realpath(), so ".." segments and symlinks that
    point out of the tree are caught alike. Only called once the path is
    known to exist; a missing file is a 404 wherever it would have been.

    Raises:
        AccessDeniedError: The path resolves outside the document root
            ("/../../etc/passwd", a symlink to /etc).
    """
    root_real = os.path.realpath(document_root)
    real = os.path.realpath(path)

    if os.path.commonpath([root_real, real]) != root_real:
        raise AccessDeniedError(cause=cause)

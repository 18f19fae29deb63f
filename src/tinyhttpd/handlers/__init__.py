"""
Content handlers: one for static files, one for CGI programs.

Both follow the same two-step shape:

    handler.check(resource, metadata)    # 403 from the stat() snapshot
    handler.serve(conn, resource, path)  # open/exec is the final check
"""

from .dynamic import DynamicContentHandler, SpawnError, build_environment
from .metadata import FileMetadata, ensure_inside_root, local_path, stat_resource
from .static import StaticFileHandler

__all__ = [
    "StaticFileHandler",
    "DynamicContentHandler",
    "SpawnError",
    "build_environment",
    "FileMetadata",
    "stat_resource",
    "local_path",
    "ensure_inside_root",
]

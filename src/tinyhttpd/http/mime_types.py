"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

The Content-type of a static response comes from the file name.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      MIME TYPE LOOKUP                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ".html"  →  text/html         checked first                       │
    │   ".gif"   →  image/gif                                             │
    │   ".png"   →  image/png                                             │
    │   ".jpg"   →  image/jpeg        checked last                        │
    │   other    →  text/plain                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The table is ordered and the FIRST pattern found anywhere in the name
wins. That is not the same as looking at the final extension:
"photo.html.png" is served as text/html because ".html" is checked
before ".png". Clients written against Tiny rely on this, so the lookup
deliberately does not use os.path.splitext() or the mimetypes module.

=============================================================================
"""

from pathlib import PurePath
from typing import Tuple, Union


MIME_TYPES: Tuple[Tuple[str, str], ...] = (
    (".html", "text/html"),
    (".gif", "image/gif"),
    (".png", "image/png"),
    (".jpg", "image/jpeg"),
)

DEFAULT_MIME_TYPE = "text/plain"


def get_content_type(filename: Union[str, PurePath]) -> str:
    """
    Get the Content-type header value for a file.

    Examples:
        >>> get_content_type("./home.html")
        'text/html'

        >>> get_content_type("./godzilla.jpg")
        'image/jpeg'

        >>> get_content_type("./a.html.png")
        'text/html'

        >>> get_content_type("./README")
        'text/plain'
    """
    name = str(filename)
    for pattern, mime_type in MIME_TYPES:
        if pattern in name:
            return mime_type
    return DEFAULT_MIME_TYPE

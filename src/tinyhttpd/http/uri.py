"""
=============================================================================
URI CLASSIFICATION
=============================================================================

Turns a raw request target into "what to serve":

    ┌──────────────────────────────┬─────────┬─────────────────────┬──────────┐
    │  target                      │ dynamic │ filesystem_path     │ query    │
    ├──────────────────────────────┼─────────┼─────────────────────┼──────────┤
    │  /                           │  no     │ ./home.html         │ ""       │
    │  /docs/                      │  no     │ ./docs/home.html    │ ""       │
    │  /godzilla.gif?x=1           │  no     │ ./godzilla.gif?x=1  │ ""       │
    │  /cgi-bin/adder?15&20        │  yes    │ ./cgi-bin/adder     │ "15&20"  │
    │  /cgi-bin/adder              │  yes    │ ./cgi-bin/adder     │ ""       │
    │  /x/cgi-bin2/run?a?b         │  yes    │ ./x/cgi-bin2/run    │ "a?b"    │
    └──────────────────────────────┴─────────┴─────────────────────┴──────────┘

Dynamic content is recognised by the marker appearing ANYWHERE in the
target, not only as a leading directory. Static targets keep their query
string as part of the path, so "/a.html?x" looks for a file literally
named "a.html?x". Both quirks are long-standing Tiny behavior and are
kept as-is so existing clients see the same answers.

=============================================================================
"""

from dataclasses import dataclass

from .errors import ResourceError


DEFAULT_DOCUMENT = "home.html"
DYNAMIC_MARKER = "cgi-bin"


@dataclass(frozen=True)
class ResolvedResource:
    """
    Where a request target points on disk.

    Attributes:
        is_dynamic: True when the target names an executable to run.
        filesystem_path: "." + the path part of the target.
        query_args: Everything after the first "?" (dynamic targets only).
    """

    is_dynamic: bool
    filesystem_path: str
    query_args: str = ""


def resolve_target(
    target: str,
    default_document: str = DEFAULT_DOCUMENT,
    dynamic_marker: str = DYNAMIC_MARKER,
) -> ResolvedResource:
    """
    Classify a request target and map it to a filesystem path.

    Pure function of its arguments: the same target always resolves to
    an equal ResolvedResource.

    Raises:
        ResourceError: The target does not start with "/" and so cannot
            name anything under the document tree.

    Examples:
        >>> resolve_target("/")
        ResolvedResource(is_dynamic=False, filesystem_path='./home.html', query_args='')

        >>> resolve_target("/cgi-bin/adder?15&20")
        ResolvedResource(is_dynamic=True, filesystem_path='./cgi-bin/adder', query_args='15&20')
    """
    if not target.startswith("/"):
        raise ResourceError(cause=target)

    if dynamic_marker in target:
        path, _, query_args = target.partition("?")
        return ResolvedResource(
            is_dynamic=True,
            filesystem_path="." + path,
            query_args=query_args,
        )

    path = target
    if path.endswith("/"):
        path += default_document
    return ResolvedResource(is_dynamic=False, filesystem_path="." + path)

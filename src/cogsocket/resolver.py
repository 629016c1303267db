"""Path resolution against the local object graph."""

from __future__ import annotations

from typing import Any

from .errors import ResolutionError
from .graph import Addressable, as_addressable

# Paths with this prefix address the connection object
CONNECTION_PREFIX = "@/"
SEPARATOR = "/"


class PathResolver:
    """Resolves slash-delimited paths to (node, member) pairs.

    Example:
        resolver = PathResolver({"cam0": {"hmi": hmi}}, connection)
        node, member = resolver.resolve("cam0/hmi/state")
        node.get_member(member)  # hmi.state

    All segments but the last are followed; the last one is returned as
    the member name so the caller can read, write, invoke or subscribe.
    """

    def __init__(self, root: Any = None, connection: Addressable | None = None):
        self.root = root
        self.connection = connection

    def resolve(self, path: str | None) -> tuple[Addressable, str]:
        """Resolve `path` to the containing node and the leaf member name.

        Raises:
            ResolutionError: No root for the namespace, or an
                intermediate segment does not exist.
        """
        if path is None:
            raise ResolutionError("Missing path")

        if path.startswith(CONNECTION_PREFIX):
            root = self.connection
            path = path[len(CONNECTION_PREFIX) :]
        else:
            root = self.root

        if root is None:
            raise ResolutionError("No root object is provided")

        if path.endswith(SEPARATOR):
            path = path[:-1]

        parts = path.split(SEPARATOR)
        node = as_addressable(root)
        for depth, part in enumerate(parts[:-1]):
            try:
                node = as_addressable(node.get_member(part))
            except ResolutionError as e:
                walked = SEPARATOR.join(parts[: depth + 1])
                raise ResolutionError(f"Cannot resolve '{walked}': {e}", e.code) from e

        return node, parts[-1]

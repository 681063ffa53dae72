"""
Errors raised by the canvas stores.

None of these reach the end user: the editor absorbs them as no-ops.
"""


class CanvasError(Exception):
    """Base class for canvas errors."""


class InvalidEdge(CanvasError):
    """An edge violates a graph invariant and was not created."""

    def __init__(self, source_id: str, target_id: str, reason: str):
        super().__init__(f"Cannot connect {source_id} -> {target_id}: {reason}")
        self.source_id = source_id
        self.target_id = target_id
        self.reason = reason


class DuplicateEdge(InvalidEdge):
    """The (source, target) pair is already connected."""

    def __init__(self, source_id: str, target_id: str):
        super().__init__(source_id, target_id, "already connected")


class NotFound(CanvasError, KeyError):
    """An id is not present in the store."""

    kind = "item"

    def __init__(self, item_id: str):
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self):
        return f"{self.kind} not found: {self.item_id}"


class NodeNotFound(NotFound):
    kind = "node"


class UnknownBlockType(CanvasError, ValueError):
    """A block type outside the catalog's closed set."""

    def __init__(self, block_type: str):
        super().__init__(f"Unknown block type: {block_type!r}")
        self.block_type = block_type

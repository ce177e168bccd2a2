"""Exceptions raised by the daisy chain simulation.

Everything here is raised synchronously, before any state is mutated.
Transmission failures are not exceptions; they are reported as
``FailureReason`` values on the transmission record and through hooks.
"""


class DaisyChainError(Exception):
    """Base class for all simulator errors."""


class ValidationError(DaisyChainError, ValueError):
    """A command received an argument it cannot act on."""


class InvalidNodeError(ValidationError):
    """The node id is unknown or the node has been removed."""

    def __init__(self, node_id: int, message: str = "") -> None:
        self.node_id = node_id
        super().__init__(message or f"PC {node_id} is not an active node")


class InvalidLinkError(ValidationError):
    """The link index is outside the current chain."""

    def __init__(self, index: int, link_count: int) -> None:
        self.index = index
        super().__init__(f"Link {index} does not exist (chain has {link_count} links)")


class CapacityError(DaisyChainError):
    """The chain size would leave its allowed range."""


class MinimumNodesViolation(CapacityError):
    """Removing a node would leave fewer than two active nodes."""


class CapacityExceeded(CapacityError):
    """Adding a node would exceed the configured maximum."""


class InsufficientNodes(DaisyChainError):
    """Token passing needs at least two powered-on nodes."""


class ResourceBusy(DaisyChainError):
    """A transmission is already in flight."""

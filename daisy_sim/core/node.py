"""Node class for the daisy chain simulation.

This module defines the Node class, one addressable endpoint (a PC) on the
chain.
"""


class Node:
    """Represents one PC on the chain.

    Node objects live for the whole session. Removing a node only hides it,
    so its id and power state survive until it is recovered.

    Attributes:
        id: Unique identifier, never reused.
        powered_on: Whether the node can send, relay or receive.
        has_token: Mirror of the token scheduler's current holder.
        removed: Whether the node is hidden from the active chain.
    """

    def __init__(self, node_id: int, powered_on: bool = True) -> None:
        """Initialize a node.

        Args:
            node_id: Unique positive identifier.
            powered_on: Initial power state.
        """
        if node_id < 1:
            raise ValueError(f"Node ids are positive, got {node_id}")
        self.id = node_id
        self.powered_on = powered_on
        self.has_token = False
        self.removed = False

    @property
    def status(self) -> str:
        """Short status label as shown in the node control panel."""
        if self.removed:
            return "Removed"
        if not self.powered_on:
            return "Powered Off"
        return "Active"

    def __repr__(self) -> str:
        return f"Node({self.id}, {self.status.lower()})"

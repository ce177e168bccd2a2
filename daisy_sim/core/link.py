"""Link class for the daisy chain simulation.

This module defines the Link class, the wire between two chain-adjacent
active nodes.
"""

from typing import Tuple


class Link:
    """Represents the wire between two chain-adjacent nodes.

    Links are positional: link ``index`` joins the ``index``-th and
    ``index + 1``-th active node. They are recreated, intact, whenever the set
    of active nodes changes.

    Attributes:
        index: Position of the link in the chain.
        left: Lower node id.
        right: Higher node id.
        broken: Whether the wire is cut.
    """

    def __init__(self, index: int, left: int, right: int) -> None:
        """Initialize a link.

        Args:
            index: Position of the link in the chain.
            left: Lower node id.
            right: Higher node id.
        """
        if left >= right:
            raise ValueError(f"Link endpoints must be ascending, got {left} and {right}")
        self.index = index
        self.left = left
        self.right = right
        self.broken = False

    @property
    def endpoints(self) -> Tuple[int, int]:
        return self.left, self.right

    def __repr__(self) -> str:
        state = "broken" if self.broken else "intact"
        return f"Link({self.index}: {self.left}<->{self.right}, {state})"

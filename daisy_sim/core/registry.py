"""Chain registry for the daisy chain simulation.

This module defines the ChainRegistry class, which owns every node ever
created, the set of removed ids and the positional links between the active
nodes.
"""

import logging
from typing import Dict, List, Optional, Set

import networkx as nx

from daisy_sim.config import MIN_ACTIVE_NODES
from daisy_sim.core.enums import RecoveryStatus, RemovalStatus
from daisy_sim.core.errors import (
    CapacityExceeded,
    InvalidLinkError,
    InvalidNodeError,
    MinimumNodesViolation,
)
from daisy_sim.core.link import Link
from daisy_sim.core.node import Node

logger = logging.getLogger(__name__)


class ChainRegistry:
    """Ordered collection of nodes and links.

    Node ids are stable and permanently retired: a removed node keeps its id,
    a new node always gets ``max_node_id + 1``. The chain order is ascending
    id among active nodes, so removing or recovering a node shifts the
    positions of its neighbours without renumbering anyone.

    Attributes:
        nodes: Every node created this session, keyed by id.
        removed_ids: Ids hidden from the active chain.
        max_node_id: Highest id ever allocated.
        max_nodes: Ceiling on active nodes, or None for unbounded.
        graph: NetworkX path graph over the active nodes, each edge carrying
            its Link under the ``link`` attribute.
    """

    def __init__(self, max_nodes: Optional[int] = None) -> None:
        self.nodes: Dict[int, Node] = {}
        self.removed_ids: Set[int] = set()
        self.max_node_id = 0
        self.max_nodes = max_nodes
        self.graph = nx.Graph()
        self._active_ids: List[int] = []
        self._links: List[Link] = []

    @property
    def active_ids(self) -> List[int]:
        """Active node ids in chain order (ascending)."""
        return list(self._active_ids)

    @property
    def powered_on_ids(self) -> List[int]:
        """Active, powered-on node ids in chain order."""
        return [i for i in self._active_ids if self.nodes[i].powered_on]

    @property
    def links(self) -> List[Link]:
        return list(self._links)

    @property
    def broken_link_count(self) -> int:
        return sum(1 for link in self._links if link.broken)

    def is_active(self, node_id: int) -> bool:
        return node_id in self.nodes and node_id not in self.removed_ids

    def node(self, node_id: int) -> Node:
        """Look up an active node.

        Raises:
            InvalidNodeError: If the id is unknown or removed.
        """
        if not self.is_active(node_id):
            raise InvalidNodeError(node_id)
        return self.nodes[node_id]

    def link(self, index: int) -> Link:
        """Look up a link by chain position.

        Raises:
            InvalidLinkError: If the index is outside the chain.
        """
        if not 0 <= index < len(self._links):
            raise InvalidLinkError(index, len(self._links))
        return self._links[index]

    def link_between(self, a: int, b: int) -> Optional[Link]:
        """Return the link joining two nodes, or None if they are not adjacent."""
        if not self.graph.has_edge(a, b):
            return None
        return self.graph.edges[a, b]["link"]

    def position(self, node_id: int) -> int:
        """Chain position of an active node."""
        self.node(node_id)
        return self._active_ids.index(node_id)

    def path_between(self, source: int, destination: int) -> List[int]:
        """Compute the hop path between two active nodes.

        The chain has no alternate routes, so this is the inclusive run of
        active ids between the two positions, walking from source to
        destination.

        Args:
            source: Source node ID.
            destination: Destination node ID.

        Returns:
            Node ids from source to destination inclusive.
        """
        self.node(source)
        self.node(destination)
        return nx.shortest_path(self.graph, source, destination)

    def add_node(self) -> int:
        """Create a powered-on node at the end of the chain.

        Returns:
            The new node's id.

        Raises:
            CapacityExceeded: If the chain is already at ``max_nodes``.
        """
        if self.max_nodes is not None and len(self._active_ids) >= self.max_nodes:
            raise CapacityExceeded(
                f"Cannot add node. Maximum {self.max_nodes} nodes allowed!"
            )
        self.max_node_id += 1
        node_id = self.max_node_id
        self.nodes[node_id] = Node(node_id)
        self.rebuild()
        logger.info("PC %d added", node_id)
        return node_id

    def check_removable(self, node_id: int) -> bool:
        """Validate a removal without performing it.

        Returns:
            False if the node is already removed, True if it can be removed.

        Raises:
            InvalidNodeError: If the id was never created.
            MinimumNodesViolation: If the chain is at its floor.
        """
        if node_id not in self.nodes:
            raise InvalidNodeError(node_id, f"PC {node_id} does not exist")
        if node_id in self.removed_ids:
            return False
        if len(self._active_ids) <= MIN_ACTIVE_NODES:
            raise MinimumNodesViolation(
                f"Cannot remove node. Minimum {MIN_ACTIVE_NODES} nodes required!"
            )
        return True

    def remove_node(self, node_id: int) -> RemovalStatus:
        """Hide a node from the chain and rebuild the links.

        Raises:
            InvalidNodeError: If the id was never created.
            MinimumNodesViolation: If the chain is at its floor.
        """
        if not self.check_removable(node_id):
            return RemovalStatus.ALREADY_REMOVED
        node = self.nodes[node_id]
        node.removed = True
        node.has_token = False
        self.removed_ids.add(node_id)
        self.rebuild()
        logger.info("PC %d removed", node_id)
        return RemovalStatus.REMOVED

    def recover_node(self, node_id: int) -> RecoveryStatus:
        """Bring a removed node back into the chain at its id's position."""
        if node_id not in self.removed_ids:
            return RecoveryStatus.NOT_REMOVED
        self.removed_ids.discard(node_id)
        self.nodes[node_id].removed = False
        self.rebuild()
        logger.info("PC %d recovered", node_id)
        return RecoveryStatus.RECOVERED

    def recover_all(self) -> RecoveryStatus:
        """Bring every removed node back with a single rebuild."""
        if not self.removed_ids:
            return RecoveryStatus.NOT_REMOVED
        for node_id in self.removed_ids:
            self.nodes[node_id].removed = False
        recovered = sorted(self.removed_ids)
        self.removed_ids.clear()
        self.rebuild()
        logger.info("Recovered PCs %s", recovered)
        return RecoveryStatus.RECOVERED

    def rebuild(self) -> None:
        """Recompute the active chain and regenerate its links.

        Node identities and power states are untouched; every link is created
        afresh, so any broken wire is repaired.
        """
        self._active_ids = sorted(set(self.nodes) - self.removed_ids)
        self._links = [
            Link(i, left, right)
            for i, (left, right) in enumerate(zip(self._active_ids, self._active_ids[1:]))
        ]
        self.graph = nx.Graph()
        self.graph.add_nodes_from(self._active_ids)
        for link in self._links:
            self.graph.add_edge(link.left, link.right, link=link)
        logger.debug(
            "Chain rebuilt: %d nodes, %d links", len(self._active_ids), len(self._links)
        )

    def __len__(self) -> int:
        return len(self._active_ids)

    def __repr__(self) -> str:
        return f"ChainRegistry(active={self._active_ids}, removed={sorted(self.removed_ids)})"

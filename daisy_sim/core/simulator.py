"""Daisy chain simulator.

This module defines the DaisyChainSimulator class, the single aggregate that
owns the chain, the token, the queue and the transmission engine, and exposes
the command and hook surface used by a presentation layer.
"""

from collections import deque
from dataclasses import asdict, dataclass
import logging
import math
from typing import Any, Callable, Deque, Dict, List, Optional

import numpy as np
import simpy

from daisy_sim.config import SimulationConfig
from daisy_sim.core.enums import EnqueueStatus, RecoveryStatus, RemovalStatus
from daisy_sim.core.errors import CapacityExceeded, MinimumNodesViolation, ValidationError
from daisy_sim.core.link import Link
from daisy_sim.core.message_queue import MessageQueue
from daisy_sim.core.registry import ChainRegistry
from daisy_sim.core.token_ring import TokenRingScheduler
from daisy_sim.core.transmission import TransmissionEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Statistics:
    """Snapshot of the status panel counters.

    Attributes:
        messages_sent: Transmissions that began hop execution.
        messages_failed: Failed transmissions, validation failures included.
        active_nodes: Active nodes that are powered on.
        broken_links: Links currently broken.
        queued_messages: Requests waiting in the queue.
    """

    messages_sent: int
    messages_failed: int
    active_nodes: int
    broken_links: int
    queued_messages: int

    @property
    def success_rate(self) -> int:
        """Percentage of sent messages that were delivered.

        Validation failures are counted as failures but not as sends, so the
        raw ratio can dip below zero; it is clamped at 0.
        """
        if self.messages_sent == 0:
            return 100
        rate = (self.messages_sent - self.messages_failed) / self.messages_sent * 100
        # Rounded half up.
        return max(0, math.floor(rate + 0.5))

    def to_dict(self) -> Dict[str, Any]:
        values = asdict(self)
        values["success_rate"] = self.success_rate
        return values


@dataclass(frozen=True)
class HistoryEntry:
    """One line of the message history log."""

    time: float
    message: str
    success: bool


class DaisyChainSimulator:
    """Daisy chain network simulation environment.

    Attributes:
        env: SimPy environment.
        config: Simulation parameters.
        registry: Nodes and links.
        scheduler: Token ring scheduler.
        queue: Pending send requests.
        engine: Transmission engine.
        messages_sent: Transmissions that began hop execution.
        messages_failed: Failed transmissions.
        speed_multiplier: Divides the base hop time.
        history: Message history, oldest first.
        rng: Random generator for traffic, seeded from the config.
        hooks: Registered observer callbacks per event type.
    """

    HOOK_TYPES = (
        "node_state_changed",  # node powered on/off, added, removed, recovered
        "link_state_changed",  # link broken or repaired
        "chain_rebuilt",  # active node set changed, links recreated
        "token_moved",  # token handed to a node, or None
        "queue_changed",  # queue contents changed
        "hop_started",  # packet leaves a node
        "hop_completed",  # packet reaches the next node
        "transmission_result",  # transmission delivered or failed
        "stats_changed",  # statistics changed
        "markers_reset",  # cooldown after a transmission elapsed
        "history_added",  # history entry appended
    )

    def __init__(
        self,
        env: Optional[simpy.Environment] = None,
        config: Optional[SimulationConfig] = None,
    ) -> None:
        """Initialize the simulator with ``config.initial_nodes`` nodes.

        Args:
            env: SimPy environment; a new one is created if omitted.
            config: Simulation parameters; defaults if omitted.
        """
        self.env = env if env is not None else simpy.Environment()
        self.config = config if config is not None else SimulationConfig()

        self.hooks: Dict[str, List[Callable[..., Any]]] = {
            name: [] for name in self.HOOK_TYPES
        }
        self._build()

    def _build(self) -> None:
        self.registry = ChainRegistry(self.config.max_nodes)
        self.scheduler = TokenRingScheduler(self)
        self.queue = MessageQueue(self)
        self.engine = TransmissionEngine(self)
        self.messages_sent = 0
        self.messages_failed = 0
        self.speed_multiplier = self.config.speed_multiplier
        self.history: Deque[HistoryEntry] = deque(maxlen=self.config.history_limit)
        self.rng = np.random.default_rng(self.config.seed)
        for _ in range(self.config.initial_nodes):
            self.registry.add_node()

    # Node lifecycle

    def add_node(self) -> int:
        """Append a new node to the chain.

        Raises:
            CapacityExceeded: If ``max_nodes`` active nodes already exist.
        """
        try:
            node_id = self.registry.add_node()
        except CapacityExceeded:
            self.log_history("Failed to add node: Maximum limit reached", False)
            raise
        self.call_hooks("node_state_changed", self.registry.nodes[node_id])
        self._chain_changed()
        self.log_history(f"Node PC {node_id} added successfully", True)
        return node_id

    def remove_node(self, node_id: Optional[int] = None) -> RemovalStatus:
        """Hide a node from the chain.

        A token held by the node moves on first, queued messages naming it
        are dropped and the links are rebuilt.

        Args:
            node_id: Node to remove; the last node in the chain if omitted.

        Raises:
            InvalidNodeError: If the id was never created.
            MinimumNodesViolation: If only two nodes remain.
        """
        if node_id is None:
            node_id = self.registry.active_ids[-1]
        try:
            removable = self.registry.check_removable(node_id)
        except MinimumNodesViolation:
            self.log_history("Failed to remove node: Minimum limit reached", False)
            raise
        if not removable:
            return RemovalStatus.ALREADY_REMOVED

        self.scheduler.release(node_id)
        self.registry.remove_node(node_id)
        self.queue.purge(node_id)
        self.call_hooks("node_state_changed", self.registry.nodes[node_id])
        self._chain_changed()
        self.log_history(f"PC {node_id} removed successfully", True)
        self._drain_holder()
        return RemovalStatus.REMOVED

    def recover_node(self, node_id: int) -> RecoveryStatus:
        """Bring a removed node back, with the power state it had."""
        status = self.registry.recover_node(node_id)
        if status is RecoveryStatus.NOT_REMOVED:
            return status
        self.call_hooks("node_state_changed", self.registry.nodes[node_id])
        self._chain_changed()
        self.log_history(f"PC {node_id} recovered successfully", True)
        return status

    def recover_all_nodes(self) -> RecoveryStatus:
        recovered = sorted(self.registry.removed_ids)
        status = self.registry.recover_all()
        if status is RecoveryStatus.NOT_REMOVED:
            self.log_history("No nodes to recover", False)
            return status
        for node_id in recovered:
            self.call_hooks("node_state_changed", self.registry.nodes[node_id])
        self._chain_changed()
        self.log_history("All nodes recovered successfully", True)
        return status

    # Power and links

    def set_power(self, node_id: int, on: bool) -> None:
        """Power a node on or off.

        Powering off drops the node's queued messages; it leaves the token
        rotation at the next advance. Powering on makes it eligible from the
        next advance.

        Raises:
            InvalidNodeError: If the node is unknown or removed.
        """
        node = self.registry.node(node_id)
        if node.powered_on == on:
            return
        node.powered_on = on
        if not on:
            self.queue.purge(node_id)
        logger.info("PC %d powered %s", node_id, "on" if on else "off")
        self.call_hooks("node_state_changed", node)
        self.log_history(f"PC {node_id} powered {'on' if on else 'off'}", True)
        self.notify_stats()

    def toggle_power(self, node_id: int) -> bool:
        node = self.registry.node(node_id)
        self.set_power(node_id, not node.powered_on)
        return node.powered_on

    def toggle_all_power(self) -> bool:
        """Turn everything on if any node is off, otherwise turn everything off.

        Turning everything off suspends the token; turning everything back on
        resumes it.

        Returns:
            The power state applied to all nodes.
        """
        nodes = [self.registry.nodes[i] for i in self.registry.active_ids]
        turn_on = any(not node.powered_on for node in nodes)

        if not turn_on:
            self.scheduler.suspend()
        for node in nodes:
            if node.powered_on != turn_on:
                node.powered_on = turn_on
                if not turn_on:
                    self.queue.purge(node.id)
                self.call_hooks("node_state_changed", node)
        if turn_on:
            self.scheduler.resume()

        state = "on" if turn_on else "off"
        logger.info("All PCs powered %s", state)
        self.log_history(f"All PCs powered {state}", True)
        self.notify_stats()
        return turn_on

    def set_link_broken(self, index: int, broken: bool) -> Link:
        """Break or repair a link.

        A transmission already in flight only notices when its per-hop check
        reaches this link.

        Raises:
            InvalidLinkError: If the index is outside the chain.
        """
        link = self.registry.link(index)
        if link.broken == broken:
            return link
        link.broken = broken
        logger.info("%r", link)
        self.call_hooks("link_state_changed", link)
        self.log_history("Wire broken" if broken else "Wire repaired", True)
        self.notify_stats()
        return link

    def toggle_link(self, index: int) -> Link:
        link = self.registry.link(index)
        return self.set_link_broken(index, not link.broken)

    # Messages

    def enqueue_or_send(self, source: int, destination: int) -> EnqueueStatus:
        """Send now if ``source`` holds the token and nothing is in flight, else queue."""
        status = self.queue.enqueue_or_send(source, destination)
        if status is EnqueueStatus.ALREADY_QUEUED:
            self.log_history(
                f"Data packet from PC {source} to PC {destination} is already queued", False
            )
        self.notify_stats()
        return status

    # Token

    def start_token_passing(self) -> int:
        return self.scheduler.start()

    def stop_token_passing(self) -> None:
        self.scheduler.stop()

    def set_token_direction(self, direction: int) -> None:
        self.scheduler.set_direction(direction)

    def change_token_direction(self) -> int:
        return self.scheduler.change_direction()

    def set_token_interval(self, seconds: float) -> None:
        self.scheduler.set_interval(seconds)

    def set_speed_multiplier(self, multiplier: float) -> None:
        """Change the animation speed; hops already started keep their duration."""
        if multiplier <= 0:
            raise ValidationError(f"Speed multiplier must be positive, got {multiplier}")
        self.speed_multiplier = multiplier
        logger.info("Speed set to %gx", multiplier)

    # Session

    def reset(self) -> None:
        """Forget every node and counter and rebuild the initial chain."""
        self.scheduler.stop()
        self.engine.retire()
        self.queue.clear()
        self._build()
        logger.info("Simulation reset")
        self._chain_changed()
        self.log_history("Network reset", True)

    def statistics(self) -> Statistics:
        return Statistics(
            messages_sent=self.messages_sent,
            messages_failed=self.messages_failed,
            active_nodes=len(self.registry.powered_on_ids),
            broken_links=self.registry.broken_link_count,
            queued_messages=len(self.queue),
        )

    def notify_stats(self) -> None:
        self.call_hooks("stats_changed", self.statistics())

    def log_history(self, message: str, success: bool) -> HistoryEntry:
        """Append an entry to the message history.

        Args:
            message: Text of the entry.
            success: Whether the entry reports a success or a failure.
        """
        entry = HistoryEntry(self.env.now, message, success)
        self.history.append(entry)
        self.call_hooks("history_added", entry)
        return entry

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a callback function for a specific event type.

        Args:
            event_type: The type of event to register for.
            callback: The function to call when the event occurs.
        """
        if event_type not in self.hooks:
            raise ValueError(f"Unknown hook type: {event_type}")
        self.hooks[event_type].append(callback)

    def call_hooks(self, event_type: str, *args: Any, **kwargs: Any) -> None:
        """Call all registered callbacks for the given event type.

        Args:
            event_type: The type of event that occurred.
            *args, **kwargs: Arguments to pass to the callback functions.
        """
        if event_type in self.hooks:
            for callback in self.hooks[event_type]:
                callback(*args, **kwargs)

    def run(self, duration: float, updates: bool = False) -> Dict[str, Any]:
        """Run the simulation for a specified duration.

        Args:
            duration: Simulation time to advance, in seconds.
            updates: Print progress while running.

        Returns:
            Dictionary of statistics.
        """
        end = self.env.now + duration
        if updates and duration > 0:
            count = 10
            interval = duration / count

            def update():
                counter = 0
                while counter < count:
                    yield self.env.timeout(interval)
                    counter += 1
                    progress = counter / count * 100
                    print(f"Progress: {progress:.2f}%", end="\r")

            self.env.process(update())

        if duration > 0:
            self.env.run(until=end)
        return self.statistics().to_dict()

    def _chain_changed(self) -> None:
        self.call_hooks("chain_rebuilt", self.registry.active_ids, self.registry.links)
        self.notify_stats()

    def _drain_holder(self) -> None:
        holder = self.scheduler.current
        if holder is not None:
            self.queue.drain(holder)

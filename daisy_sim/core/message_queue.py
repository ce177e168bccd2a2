"""Message queue for the daisy chain simulation.

Requests that cannot start right away, because the source lacks the token or
another transmission is in flight, wait here until the token reaches their
source.
"""

from collections import deque
import logging
from typing import TYPE_CHECKING, Deque, Iterator, List, Optional

from daisy_sim.core.enums import EnqueueStatus, FailureReason
from daisy_sim.core.packet import Message

if TYPE_CHECKING:
    from daisy_sim.core.simulator import DaisyChainSimulator

logger = logging.getLogger(__name__)


class MessageQueue:
    """FIFO of pending send requests, deduplicated by (source, destination).

    Attributes:
        messages: Pending messages in arrival order.
    """

    def __init__(self, simulator: "DaisyChainSimulator") -> None:
        self.sim = simulator
        self.messages: Deque[Message] = deque()

    def enqueue_or_send(self, source: int, destination: int) -> EnqueueStatus:
        """Dispatch a request now if possible, otherwise queue it.

        Args:
            source: Source node ID.
            destination: Destination node ID.

        Returns:
            DISPATCHED if a transmission began hop execution, FAILED if it was
            rejected by validation, QUEUED if it now waits in the queue and
            ALREADY_QUEUED if the same pair was already waiting.
        """
        registry = self.sim.registry
        engine = self.sim.engine

        # A node that is not on the chain never receives the token, so such
        # a request would wait forever.
        for node_id in (source, destination):
            if not registry.is_active(node_id):
                engine.reject(source, destination, FailureReason.INVALID_NODE, node_id)
                return EnqueueStatus.FAILED

        if engine.in_flight or self.sim.scheduler.current != source:
            if self.contains(source, destination):
                logger.info("PC %d -> PC %d is already queued", source, destination)
                return EnqueueStatus.ALREADY_QUEUED
            self.messages.append(Message(source, destination, self.sim.env.now))
            reason = "transfer in progress" if engine.in_flight else "waiting for token"
            logger.info("Queued PC %d -> PC %d (%s)", source, destination, reason)
            self.sim.log_history(
                f"Data packet from PC {source} to PC {destination} queued ({reason})", True
            )
            self._changed()
            return EnqueueStatus.QUEUED

        transmission = engine.send(source, destination)
        if transmission.failure is not None and transmission.failure.preflight:
            return EnqueueStatus.FAILED
        return EnqueueStatus.DISPATCHED

    def drain(self, node_id: int) -> int:
        """Dispatch queued messages sourced at ``node_id``.

        Messages are taken oldest first among those from this source. Draining
        stops as soon as one begins hop execution, since only one transmission
        may be in flight; messages that fail validation are consumed and the
        next one is tried.

        Returns:
            Number of messages taken off the queue.
        """
        taken = 0
        while not self.sim.engine.in_flight:
            message = self._pop_from(node_id)
            if message is None:
                break
            taken += 1
            logger.debug("Draining PC %d -> PC %d", message.source, message.destination)
            self.sim.engine.send(message.source, message.destination)
        return taken

    def purge(self, node_id: int) -> int:
        """Drop every message naming ``node_id`` as source or destination.

        Returns:
            Number of messages dropped.
        """
        purged = 0
        for message in list(self.messages):
            if node_id in message.pair:
                self.messages.remove(message)
                purged += 1
                logger.info(
                    "Dropped queued PC %d -> PC %d", message.source, message.destination
                )
                self._changed()
        return purged

    def contains(self, source: int, destination: int) -> bool:
        return any(m.pair == (source, destination) for m in self.messages)

    def snapshot(self) -> List[Message]:
        return list(self.messages)

    def clear(self) -> None:
        if self.messages:
            self.messages.clear()
            self._changed()

    def _pop_from(self, node_id: int) -> Optional[Message]:
        for message in self.messages:
            if message.source == node_id:
                self.messages.remove(message)
                self._changed()
                return message
        return None

    def _changed(self) -> None:
        self.sim.call_hooks("queue_changed", self.snapshot())

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())

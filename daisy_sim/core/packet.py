"""Message and transmission records for the daisy chain simulation.

A Message is a pending request held by the queue; a Transmission is a request
the engine has committed to, with its path and hop progress.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from daisy_sim.core.enums import FailureReason, TransmissionState


@dataclass(frozen=True)
class Message:
    """A queued send request.

    Attributes:
        source: Source node ID.
        destination: Destination node ID.
        enqueued_at: Simulation time the request was queued.
    """

    source: int
    destination: int
    enqueued_at: float = 0.0

    @property
    def pair(self) -> Tuple[int, int]:
        return self.source, self.destination


@dataclass
class Transmission:
    """One message travelling the chain.

    Attributes:
        source: Source node ID.
        destination: Destination node ID.
        created_at: Time the engine accepted the request.
        id: Identifier assigned by the engine, unique per session.
        path: Node ids from source to destination, inclusive.
        hops: Nodes reached so far, with arrival times.
        state: Current lifecycle state.
        failure: Why the transmission failed, if it did.
        finished_at: Time the transmission became terminal.
    """

    source: int
    destination: int
    created_at: float = 0.0
    id: int = 0
    path: List[int] = field(default_factory=list)
    hops: List[Tuple[int, float]] = field(default_factory=list)
    state: TransmissionState = TransmissionState.VALIDATING
    failure: Optional[FailureReason] = None
    finished_at: Optional[float] = None

    def record_hop(self, node: int, time: float) -> None:
        """Record that the packet reached a node.

        Args:
            node: Node ID where the packet has arrived.
            time: Current simulation time.
        """
        self.hops.append((node, time))

    @property
    def reached(self) -> List[int]:
        """Node ids the packet has reached, in order."""
        return [node for node, _ in self.hops]

    @property
    def delivered(self) -> bool:
        return self.state is TransmissionState.DELIVERED

    @property
    def done(self) -> bool:
        return self.state in (TransmissionState.DELIVERED, TransmissionState.FAILED)

    def get_hop_count(self) -> int:
        """Number of links crossed."""
        return max(0, len(self.hops) - 1)

    def get_total_delay(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return self.finished_at - self.created_at

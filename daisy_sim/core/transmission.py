"""Transmission engine for the daisy chain simulation.

This module moves one packet at a time along the chain, hop by hop, checking
node power and link health before every hop.
"""

import itertools
import logging
from typing import TYPE_CHECKING, Generator, List, Optional, Tuple

import simpy

from daisy_sim.core.enums import FailureReason, TransmissionState
from daisy_sim.core.errors import ResourceBusy
from daisy_sim.core.packet import Transmission

if TYPE_CHECKING:
    from daisy_sim.core.registry import ChainRegistry
    from daisy_sim.core.simulator import DaisyChainSimulator

logger = logging.getLogger(__name__)

Failure = Tuple[FailureReason, str]


class TransmissionEngine:
    """Runs transmissions, at most one in flight at a time.

    Counting rules: ``messages_sent`` counts transmissions that passed
    validation and began hop execution; ``messages_failed`` counts every
    failure, validation failures included. A self-send therefore raises the
    failure count without raising the sent count.

    Attributes:
        state: Lifecycle state of the latest transmission.
        current: The transmission in flight, if any.
        transmissions: Every transmission accepted this session.
    """

    def __init__(self, simulator: "DaisyChainSimulator") -> None:
        self.sim = simulator
        self.env = simulator.env
        self.state = TransmissionState.IDLE
        self.current: Optional[Transmission] = None
        self.transmissions: List[Transmission] = []
        self._in_flight = False
        self._retired = False
        self._marker_owner: Optional[Transmission] = None
        self._ids = itertools.count(1)

    @property
    def in_flight(self) -> bool:
        """Whether a transmission is stepping through hops."""
        return self._in_flight

    @property
    def last_transmission(self) -> Optional[Transmission]:
        return self.transmissions[-1] if self.transmissions else None

    def hop_time(self) -> float:
        """Duration of one hop at the current speed."""
        return self.sim.config.base_hop_time / self.sim.speed_multiplier

    def send(self, source: int, destination: int) -> Transmission:
        """Validate a transmission and start its hop process.

        Token possession is not checked here; the message queue decides who
        may send.

        Args:
            source: Source node ID.
            destination: Destination node ID.

        Returns:
            The transmission record. It is already FAILED if validation
            rejected it; otherwise it is HOP_EXECUTING and finishes later on
            the simulation timeline.

        Raises:
            ResourceBusy: If another transmission is in flight.
        """
        if self._in_flight:
            raise ResourceBusy(
                f"Cannot send PC {source} -> PC {destination}: a transfer is in progress"
            )
        transmission = self._accept(source, destination)

        failure = self._preflight(source, destination)
        if failure is not None:
            self._finish(transmission, failure)
            return transmission

        registry = self.sim.registry
        transmission.path = registry.path_between(source, destination)
        transmission.state = TransmissionState.HOP_EXECUTING
        self.state = TransmissionState.HOP_EXECUTING
        self.current = transmission
        self._in_flight = True
        self.sim.messages_sent += 1

        logger.info(
            "Transmission %d: PC %d -> PC %d via %s",
            transmission.id,
            source,
            destination,
            transmission.path,
        )
        self.sim.log_history(
            f"Initiated data packet transmission from PC {source} to PC {destination}", True
        )
        self.sim.notify_stats()
        self.env.process(self._journey(transmission, registry))
        return transmission

    def reject(
        self, source: int, destination: int, reason: FailureReason, node_id: Optional[int] = None
    ) -> Transmission:
        """Record a request that fails validation without touching the flight slot."""
        transmission = self._accept(source, destination, owns_markers=not self._in_flight)
        self._finish(transmission, (reason, self._describe(reason, source, destination, node_id)))
        return transmission

    def retire(self) -> None:
        """Detach from the simulator; a transfer still in flight is abandoned."""
        self._retired = True
        self._in_flight = False
        self.current = None

    def _accept(self, source: int, destination: int, owns_markers: bool = True) -> Transmission:
        transmission = Transmission(source, destination, self.env.now, id=next(self._ids))
        self.transmissions.append(transmission)
        if owns_markers:
            self._marker_owner = transmission
            self.state = TransmissionState.VALIDATING
        return transmission

    def _preflight(self, source: int, destination: int) -> Optional[Failure]:
        registry = self.sim.registry
        for node_id in (source, destination):
            if not registry.is_active(node_id):
                reason = FailureReason.INVALID_NODE
                return reason, self._describe(reason, source, destination, node_id)
        if source == destination:
            reason = FailureReason.SELF_SEND
        elif not registry.nodes[source].powered_on:
            reason = FailureReason.SOURCE_OFFLINE
        elif not registry.nodes[destination].powered_on:
            reason = FailureReason.DESTINATION_OFFLINE
        else:
            return None
        return reason, self._describe(reason, source, destination)

    @staticmethod
    def _describe(
        reason: FailureReason, source: int, destination: int, node_id: Optional[int] = None
    ) -> str:
        if reason is FailureReason.SELF_SEND:
            return "Failed to send data packet: Cannot send to self"
        if reason is FailureReason.SOURCE_OFFLINE:
            return f"Failed to send data packet: PC {source} is powered off"
        if reason is FailureReason.DESTINATION_OFFLINE:
            return f"Failed to send data packet: PC {destination} is powered off"
        if reason is FailureReason.INVALID_NODE:
            return f"Failed to send data packet: PC {node_id} is not an active node"
        return f"Data packet failed: {reason.value}"

    def _check_hop(self, registry: "ChainRegistry", cur: int, nxt: int) -> Optional[Failure]:
        if not (registry.is_active(cur) and registry.is_active(nxt)):
            return (
                FailureReason.TOPOLOGY_CHANGED,
                f"Data packet failed: PC {cur} and PC {nxt} are no longer on the path",
            )
        if not registry.nodes[cur].powered_on:
            return (
                FailureReason.NODE_OFFLINE_DURING_TRANSFER,
                f"Data packet failed: PC {cur} is powered off",
            )
        link = registry.link_between(cur, nxt)
        if link is None:
            return (
                FailureReason.TOPOLOGY_CHANGED,
                f"Data packet failed: PC {cur} and PC {nxt} are no longer adjacent",
            )
        if link.broken:
            return (
                FailureReason.LINK_BROKEN_DURING_TRANSFER,
                f"Data packet failed: Wire between PC {cur} and PC {nxt} is broken",
            )
        if not registry.nodes[nxt].powered_on:
            return (
                FailureReason.NODE_OFFLINE_DURING_TRANSFER,
                f"Data packet failed: PC {nxt} is powered off",
            )
        return None

    @staticmethod
    def _check_arrival(registry: "ChainRegistry", node_id: int) -> Optional[Failure]:
        if not registry.is_active(node_id):
            return (
                FailureReason.TOPOLOGY_CHANGED,
                f"Data packet failed: PC {node_id} left the chain",
            )
        if not registry.nodes[node_id].powered_on:
            return (
                FailureReason.NODE_OFFLINE_DURING_TRANSFER,
                f"Data packet failed: PC {node_id} is powered off",
            )
        return None

    def _journey(
        self, transmission: Transmission, registry: "ChainRegistry"
    ) -> Generator[simpy.events.Event, None, None]:
        path = transmission.path
        transmission.record_hop(path[0], self.env.now)
        failure: Optional[Failure] = None

        for cur, nxt in zip(path, path[1:]):
            failure = self._check_hop(registry, cur, nxt)
            if failure is not None:
                break

            logger.debug("Transmission %d: PC %d -> PC %d", transmission.id, cur, nxt)
            self.sim.call_hooks("hop_started", cur, nxt)
            # Read per hop so a speed change applies to hops not yet started.
            yield self.env.timeout(self.hop_time())
            if self._retired:
                return

            failure = self._check_arrival(registry, nxt)
            if failure is not None:
                break
            transmission.record_hop(nxt, self.env.now)
            self.sim.call_hooks("hop_completed", cur, nxt)

        self._finish(transmission, failure)

    def _finish(self, transmission: Transmission, failure: Optional[Failure]) -> None:
        transmission.finished_at = self.env.now
        if failure is None:
            transmission.state = TransmissionState.DELIVERED
            logger.info("Transmission %d delivered", transmission.id)
            self.sim.log_history(
                f"Data packet successfully delivered from PC {transmission.source} "
                f"to PC {transmission.destination}",
                True,
            )
        else:
            reason, text = failure
            transmission.state = TransmissionState.FAILED
            transmission.failure = reason
            self.sim.messages_failed += 1
            logger.warning("Transmission %d failed: %s", transmission.id, text)
            self.sim.log_history(text, False)

        if transmission is self._marker_owner:
            self.state = transmission.state
        self.sim.call_hooks(
            "transmission_result", transmission.delivered, transmission.failure
        )
        self.sim.notify_stats()
        self.env.process(self._cooldown(transmission))

        if transmission is self.current:
            self._in_flight = False
            self.current = None
            holder = self.sim.scheduler.current
            if holder is not None:
                self.sim.queue.drain(holder)

    def _cooldown(self, transmission: Transmission) -> Generator[simpy.events.Event, None, None]:
        yield self.env.timeout(self.sim.config.marker_cooldown)
        # A newer transmission owns the markers now.
        if self._retired or self._marker_owner is not transmission:
            return
        self.state = TransmissionState.IDLE
        self.sim.call_hooks("markers_reset")

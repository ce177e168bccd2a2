"""Token ring scheduler for the daisy chain simulation.

A single token circulates among the active, powered-on nodes. Only the holder
may start a transmission. The token advances on a SimPy timer; exactly one
timer process is outstanding while the scheduler runs.
"""

import logging
from bisect import bisect_left
from typing import TYPE_CHECKING, Generator, List, Optional

import simpy

from daisy_sim.core.enums import TokenStatus
from daisy_sim.core.errors import InsufficientNodes, ValidationError

if TYPE_CHECKING:
    from daisy_sim.core.simulator import DaisyChainSimulator

logger = logging.getLogger(__name__)


class TokenRingScheduler:
    """Circulates the transmission token.

    Attributes:
        status: STOPPED, RUNNING or SUSPENDED.
        current: Id of the node holding the token, or None.
        direction: +1 to walk towards higher ids, -1 towards lower ids.
        interval: Seconds between advances.
    """

    def __init__(self, simulator: "DaisyChainSimulator") -> None:
        self.sim = simulator
        self.env = simulator.env
        self.status = TokenStatus.STOPPED
        self.current: Optional[int] = None
        self.direction = simulator.config.token_direction
        self.interval = simulator.config.token_interval
        # Last node that held the token; the search starts here when the
        # holder has dropped out of rotation.
        self._anchor: Optional[int] = None
        self._suspended_holder: Optional[int] = None
        self._timer: Optional[simpy.Process] = None

    @property
    def running(self) -> bool:
        return self.status is TokenStatus.RUNNING

    @property
    def pending(self) -> bool:
        """Whether an advance is scheduled."""
        return self._timer is not None and self._timer.is_alive

    def start(self) -> int:
        """Start token passing at the first powered-on node.

        Calling start while running restarts from the first node; the old
        timer is replaced, never stacked.

        Returns:
            The id of the first holder.

        Raises:
            InsufficientNodes: With fewer than two powered-on nodes.
        """
        eligible = self.sim.registry.powered_on_ids
        if len(eligible) < 2:
            self.sim.log_history("Failed to start token passing: Not enough active nodes", False)
            raise InsufficientNodes("Need at least 2 powered-on nodes for token passing!")

        self._cancel_timer()
        self._suspended_holder = None
        self.status = TokenStatus.RUNNING
        logger.info("Token passing started")
        self._hand_to(eligible[0])
        self._schedule()
        return eligible[0]

    def stop(self) -> None:
        """Stop token passing.

        Only the pending advance is cancelled; a transmission already in
        flight runs to completion.
        """
        was_stopped = self.status is TokenStatus.STOPPED
        self._cancel_timer()
        self._clear_marker()
        self.current = None
        self._suspended_holder = None
        self.status = TokenStatus.STOPPED
        if not was_stopped:
            logger.info("Token passing stopped")
            self.sim.call_hooks("token_moved", None)
            self.sim.log_history("Token passing stopped", True)

    def advance(self) -> Optional[int]:
        """Pass the token to the next powered-on node.

        Returns:
            The new holder, or None when no node is eligible.
        """
        if not self.running:
            return None
        eligible = self.sim.registry.powered_on_ids
        next_holder = self._step(eligible, self._anchor)
        self._hand_to(next_holder)
        return next_holder

    def set_direction(self, direction: int) -> None:
        """Set the walking direction; applies from the next advance."""
        if direction not in (1, -1):
            raise ValidationError(f"Token direction must be 1 or -1, got {direction}")
        self.direction = direction
        label = "forward" if direction == 1 else "backward"
        self.sim.log_history(f"Token direction changed to {label}", True)

    def change_direction(self) -> int:
        self.set_direction(-self.direction)
        return self.direction

    def set_interval(self, seconds: float) -> None:
        """Set the rest time per node.

        An advance that is already scheduled keeps its original delay.
        """
        if seconds <= 0:
            raise ValidationError(f"Token interval must be positive, got {seconds}")
        self.interval = seconds
        self.sim.log_history(f"Token interval updated to {seconds:g} seconds", True)

    def suspend(self) -> bool:
        """Pause token passing, remembering the holder.

        Returns:
            True if the scheduler was running.
        """
        if not self.running:
            return False
        self._cancel_timer()
        self._suspended_holder = self.current
        self._clear_marker()
        self.current = None
        self.status = TokenStatus.SUSPENDED
        logger.info("Token passing suspended at PC %s", self._suspended_holder)
        self.sim.call_hooks("token_moved", None)
        return True

    def resume(self) -> bool:
        """Resume after a suspend.

        The remembered holder gets the token back if it is still eligible,
        otherwise the first powered-on node does.

        Returns:
            True if the scheduler was suspended.
        """
        if self.status is not TokenStatus.SUSPENDED:
            return False
        eligible = self.sim.registry.powered_on_ids
        holder = self._suspended_holder
        if holder not in eligible:
            holder = eligible[0] if eligible else None
        self._suspended_holder = None
        self.status = TokenStatus.RUNNING
        logger.info("Token passing resumed")
        self._hand_to(holder)
        self._schedule()
        return True

    def release(self, node_id: int) -> Optional[int]:
        """Hand the token off before ``node_id`` leaves the chain.

        The next powered-on node in the token direction, from the leaving
        node's position, takes over. The queue is not drained here; the
        caller drains once the node is gone.

        Returns:
            The new holder, or None if nothing changed hands.
        """
        if self._suspended_holder == node_id:
            self._suspended_holder = None
        if self.current != node_id:
            return None
        remaining = [i for i in self.sim.registry.powered_on_ids if i != node_id]
        next_holder = self._step(remaining, node_id)
        self._hand_to(next_holder, drain=False)
        return next_holder

    def _step(self, eligible: List[int], anchor: Optional[int]) -> Optional[int]:
        if not eligible:
            return None
        if anchor is None:
            return eligible[0]
        if anchor in eligible:
            index = eligible.index(anchor) + self.direction
        else:
            # The anchor left rotation: the node now at its former position
            # is its successor.
            insertion = bisect_left(eligible, anchor)
            index = insertion if self.direction == 1 else insertion - 1
        return eligible[index % len(eligible)]

    def _hand_to(self, node_id: Optional[int], drain: bool = True) -> None:
        self._clear_marker()
        self.current = node_id
        if node_id is None:
            logger.info("No powered-on node can take the token")
            self.sim.call_hooks("token_moved", None)
            return
        self._anchor = node_id
        self.sim.registry.nodes[node_id].has_token = True
        logger.info("Token at PC %d", node_id)
        self.sim.call_hooks("token_moved", node_id)
        self.sim.log_history(f"Token passed to PC {node_id}", True)
        if drain:
            self.sim.queue.drain(node_id)

    def _clear_marker(self) -> None:
        if self.current is not None and self.current in self.sim.registry.nodes:
            self.sim.registry.nodes[self.current].has_token = False

    def _schedule(self) -> None:
        self._timer = self.env.process(self._tick(self.interval))

    def _cancel_timer(self) -> None:
        if self._timer is not None and self._timer.is_alive:
            self._timer.interrupt("cancelled")
        self._timer = None

    def _tick(self, delay: float) -> Generator[simpy.events.Event, None, None]:
        try:
            yield self.env.timeout(delay)
        except simpy.Interrupt:
            return
        # Cleared before advancing so that a stop/start issued from a hook
        # during the advance sees no pending timer.
        self._timer = None
        self.advance()
        if self.running and self._timer is None:
            self._schedule()

    def __repr__(self) -> str:
        return f"TokenRingScheduler({self.status.name}, current={self.current}, direction={self.direction:+d})"

"""Traffic generators for the daisy chain simulation.

This module provides interval functions and the demo traffic process, which
has whoever holds the token send to a random other node.
"""

from typing import TYPE_CHECKING, Callable, Optional

import numpy as np
import simpy

from daisy_sim.core.errors import InsufficientNodes

if TYPE_CHECKING:
    from daisy_sim.core.simulator import DaisyChainSimulator


def constant_interval(seconds: float) -> Callable[[], float]:
    """Wait the same time before every attempt.

    Args:
        seconds: Delay between attempts.

    Returns:
        Function that returns a constant interval.
    """
    return lambda: seconds


def poisson_interval(
    rate: float, rng: Optional[np.random.Generator] = None
) -> Callable[[], float]:
    """Wait an exponentially distributed time before every attempt.

    Args:
        rate: Average attempts per second.
        rng: Random generator, usually ``simulator.rng``; a fresh unseeded
            one if omitted.

    Returns:
        Function that returns exponentially distributed intervals.
    """
    generator = rng if rng is not None else np.random.default_rng()
    return lambda: float(generator.exponential(1 / rate))


def demo_traffic(
    simulator: "DaisyChainSimulator",
    duration: float = 30.0,
    interval: Optional[Callable[[], float]] = None,
) -> simpy.events.Process:
    """Run the demo: the token holder repeatedly sends to a random node.

    The demo checks for the token every ``interval()`` seconds; when a node
    holds it, that node sends to a random other node among those powered on
    when the demo started, then the demo waits one token interval. It ends
    after ``duration`` seconds or as soon as token passing stops.

    Args:
        simulator: The simulator to drive.
        duration: Demo length in seconds.
        interval: Delay between token checks (default: one second).

    Returns:
        SimPy process for the demo.

    Raises:
        InsufficientNodes: With fewer than two powered-on nodes.
    """
    env = simulator.env
    scheduler = simulator.scheduler
    candidates = simulator.registry.powered_on_ids
    if len(candidates) < 2:
        simulator.log_history("Failed to start demo: Not enough active nodes", False)
        raise InsufficientNodes("Need at least 2 powered-on nodes for demo!")

    next_interval = interval if interval is not None else constant_interval(1.0)
    end_time = env.now + duration

    def demo_process():
        while env.now < end_time and scheduler.running:
            yield env.timeout(next_interval())

            source = scheduler.current
            if not scheduler.running or source is None:
                continue
            destination = int(simulator.rng.choice([n for n in candidates if n != source]))
            simulator.enqueue_or_send(source, destination)

            yield env.timeout(scheduler.interval)

        simulator.log_history("Demo simulation completed", True)

    return env.process(demo_process())

"""Daisy chain network simulation.

A token-passing linear network simulated on a SimPy timeline: nodes joined by
point-to-point links, a circulating token and hop-by-hop message relay.
"""

from daisy_sim.config import SimulationConfig
from daisy_sim.core.simulator import DaisyChainSimulator

__all__ = ["DaisyChainSimulator", "SimulationConfig"]

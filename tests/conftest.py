from collections import defaultdict

import pytest

from daisy_sim.config import SimulationConfig
from daisy_sim.core.simulator import DaisyChainSimulator


@pytest.fixture
def sim():
    """Five powered-on nodes, token stopped."""
    return DaisyChainSimulator(config=SimulationConfig(initial_nodes=5))


@pytest.fixture
def three_node_sim():
    return DaisyChainSimulator(config=SimulationConfig(initial_nodes=3))


@pytest.fixture
def events(sim):
    """Record every hook call on ``sim`` as a list of argument tuples per event."""
    recorded = defaultdict(list)
    for name in sim.HOOK_TYPES:
        sim.register_hook(name, lambda *args, _name=name: recorded[_name].append(args))
    return recorded

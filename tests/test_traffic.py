import numpy as np
import pytest

from daisy_sim.config import SimulationConfig
from daisy_sim.core.errors import InsufficientNodes
from daisy_sim.core.simulator import DaisyChainSimulator
from daisy_sim.traffic.generators import constant_interval, demo_traffic, poisson_interval


def test_constant_interval():
    interval = constant_interval(2.5)
    assert [interval() for _ in range(3)] == [2.5, 2.5, 2.5]


def test_poisson_interval_is_positive():
    interval = poisson_interval(4.0, np.random.default_rng(0))
    samples = [interval() for _ in range(200)]
    assert all(s > 0 for s in samples)
    assert 0.1 < np.mean(samples) < 0.5


def test_poisson_interval_repeats_with_same_seed():
    a = poisson_interval(2.0, np.random.default_rng(7))
    b = poisson_interval(2.0, np.random.default_rng(7))
    assert [a() for _ in range(5)] == [b() for _ in range(5)]


def test_demo_sends_from_token_holder(sim):
    sim.start_token_passing()
    demo_traffic(sim, duration=10)
    sim.run(13)

    # The first attempt is made by node 1 at t=1, while it holds the token.
    first = sim.engine.transmissions[0]
    assert first.source == 1
    assert first.created_at == 1
    assert sim.messages_sent >= 1
    assert all(t.source != t.destination for t in sim.engine.transmissions)
    assert "Demo simulation completed" in [e.message for e in sim.history]


def test_demo_ends_when_token_stops(sim):
    sim.start_token_passing()
    process = demo_traffic(sim, duration=100)
    sim.env.run(until=5)
    sim.stop_token_passing()
    sim.env.run(until=10)
    assert not process.is_alive


def test_demo_requires_two_powered_on_nodes(sim):
    for node_id in (1, 2, 3, 4):
        sim.set_power(node_id, False)
    with pytest.raises(InsufficientNodes):
        demo_traffic(sim)


def test_demo_destinations_follow_own_seed():
    def run_demo(sim):
        sim.start_token_passing()
        demo_traffic(sim, duration=20)
        sim.run(25)
        return [(t.source, t.destination) for t in sim.engine.transmissions]

    a = DaisyChainSimulator()
    # Building other simulators must not disturb the first one's draws.
    DaisyChainSimulator(config=SimulationConfig(seed=1))
    first = run_demo(a)
    DaisyChainSimulator(config=SimulationConfig(seed=2))
    second = run_demo(DaisyChainSimulator())

    assert first
    assert first == second

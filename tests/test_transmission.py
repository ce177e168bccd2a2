import pytest

from daisy_sim.core.enums import FailureReason, TransmissionState
from daisy_sim.core.errors import ResourceBusy
from daisy_sim.core.simulator import DaisyChainSimulator


def test_delivery_across_whole_chain(sim, events):
    t = sim.engine.send(1, 5)
    assert t.state is TransmissionState.HOP_EXECUTING
    assert t.path == [1, 2, 3, 4, 5]
    assert sim.engine.in_flight

    sim.env.run()

    assert t.state is TransmissionState.DELIVERED
    assert t.reached == [1, 2, 3, 4, 5]
    assert t.get_hop_count() == 4
    assert t.finished_at == pytest.approx(4.0)
    assert t.get_total_delay() == pytest.approx(4.0)
    assert (sim.messages_sent, sim.messages_failed) == (1, 0)
    assert not sim.engine.in_flight
    assert events["hop_started"] == [(1, 2), (2, 3), (3, 4), (4, 5)]
    assert events["hop_completed"] == [(1, 2), (2, 3), (3, 4), (4, 5)]
    assert events["transmission_result"] == [(True, None)]


def test_backward_path(sim):
    t = sim.engine.send(4, 1)
    sim.env.run()
    assert t.delivered
    assert t.reached == [4, 3, 2, 1]


def test_broken_link_stops_at_hop(sim, events):
    sim.set_link_broken(1, True)
    t = sim.engine.send(1, 5)
    sim.env.run()

    assert t.state is TransmissionState.FAILED
    assert t.failure is FailureReason.LINK_BROKEN_DURING_TRANSFER
    assert t.reached == [1, 2]
    assert (sim.messages_sent, sim.messages_failed) == (1, 1)
    assert events["transmission_result"] == [
        (False, FailureReason.LINK_BROKEN_DURING_TRANSFER)
    ]
    assert "Wire between PC 2 and PC 3 is broken" in sim.history[-1].message


def test_self_send_fails_before_any_hop(sim, events):
    t = sim.engine.send(2, 2)
    assert t.failure is FailureReason.SELF_SEND
    assert t.state is TransmissionState.FAILED
    assert not sim.engine.in_flight
    sim.env.run()
    assert events["hop_started"] == []
    assert (sim.messages_sent, sim.messages_failed) == (0, 1)


@pytest.mark.parametrize(
    "off, reason",
    [
        (1, FailureReason.SOURCE_OFFLINE),
        (4, FailureReason.DESTINATION_OFFLINE),
    ],
)
def test_offline_endpoints_fail_preflight(sim, off, reason):
    sim.set_power(off, False)
    t = sim.engine.send(1, 4)
    assert t.failure is reason
    assert t.path == []
    assert (sim.messages_sent, sim.messages_failed) == (0, 1)


def test_unknown_node_fails_preflight(sim):
    t = sim.engine.send(1, 99)
    assert t.failure is FailureReason.INVALID_NODE
    assert sim.messages_failed == 1


def test_intermediate_node_powered_off_mid_transfer(sim):
    t = sim.engine.send(1, 5)
    sim.env.run(until=1.5)
    sim.set_power(4, False)
    sim.env.run()
    assert t.failure is FailureReason.NODE_OFFLINE_DURING_TRANSFER
    assert t.reached == [1, 2, 3]


def test_destination_powered_off_during_last_hop(sim):
    t = sim.engine.send(1, 2)
    sim.env.run(until=0.5)
    sim.set_power(2, False)
    sim.env.run()
    assert t.failure is FailureReason.NODE_OFFLINE_DURING_TRANSFER
    assert t.reached == [1]


def test_link_broken_after_transfer_started(sim):
    t = sim.engine.send(1, 5)
    sim.env.run(until=0.5)
    sim.set_link_broken(2, True)
    sim.env.run(until=1.5)
    # Not noticed until the packet reaches that link.
    assert t.state is TransmissionState.HOP_EXECUTING
    sim.env.run()
    assert t.failure is FailureReason.LINK_BROKEN_DURING_TRANSFER
    assert t.reached == [1, 2, 3]


def test_node_removed_mid_transfer(sim):
    t = sim.engine.send(1, 5)
    sim.env.run(until=0.5)
    sim.remove_node(3)
    sim.env.run()
    assert t.failure is FailureReason.TOPOLOGY_CHANGED
    assert t.reached == [1, 2]


def test_speed_change_applies_to_later_hops(sim):
    t = sim.engine.send(1, 3)
    sim.env.run(until=0.5)
    sim.set_speed_multiplier(2)
    sim.env.run()
    assert t.finished_at == pytest.approx(1.5)


def test_single_flight(sim):
    sim.engine.send(1, 5)
    with pytest.raises(ResourceBusy):
        sim.engine.send(2, 3)


def test_markers_reset_after_cooldown(sim):
    resets = []
    sim.register_hook("markers_reset", lambda: resets.append(sim.env.now))
    sim.engine.send(1, 2)
    sim.env.run()
    assert resets == [pytest.approx(3.0)]
    assert sim.engine.state is TransmissionState.IDLE


def test_cooldown_skipped_when_newer_transmission_started(sim):
    resets = []
    sim.register_hook("markers_reset", lambda: resets.append(sim.env.now))
    sim.engine.send(1, 2)
    sim.env.run(until=1.5)
    sim.engine.send(2, 5)
    sim.env.run()
    # Only the second transmission's reset fires: done at 4.5, reset at 6.5.
    assert resets == [pytest.approx(6.5)]


def test_token_moving_does_not_abort_transfer(sim):
    sim.start_token_passing()
    assert sim.enqueue_or_send(1, 5).name == "DISPATCHED"
    t = sim.engine.current
    sim.env.run(until=4.5)
    assert sim.scheduler.current == 2
    assert t.delivered


def test_stop_does_not_abort_transfer(sim):
    sim.start_token_passing()
    sim.enqueue_or_send(1, 3)
    t = sim.engine.current
    sim.stop_token_passing()
    sim.env.run()
    assert t.delivered


def test_transmission_ids_restart_per_simulator_and_after_reset():
    first = DaisyChainSimulator()
    second = DaisyChainSimulator()
    assert first.engine.send(1, 2).id == 1
    assert second.engine.send(1, 2).id == 1

    first.env.run()
    assert first.engine.send(2, 3).id == 2

    first.reset()
    assert first.engine.send(1, 2).id == 1

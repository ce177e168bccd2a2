"""End-to-end runs of the chain with the token circulating."""

from daisy_sim.core.enums import EnqueueStatus, FailureReason


def test_full_chain_delivery_with_token(sim):
    sim.start_token_passing()
    assert sim.enqueue_or_send(1, 5) is EnqueueStatus.DISPATCHED
    sim.env.run(until=10)
    t = sim.engine.last_transmission
    assert t.delivered
    assert t.reached == [1, 2, 3, 4, 5]
    assert sim.statistics().success_rate == 100


def test_mixed_outcomes(sim):
    sim.set_link_broken(1, True)
    sim.start_token_passing()

    sim.enqueue_or_send(1, 5)  # fails at the 2-3 wire
    sim.enqueue_or_send(3, 5)  # queued for node 3
    sim.enqueue_or_send(4, 4)  # queued, fails validation when drained
    sim.env.run(until=13)

    outcomes = [(t.source, t.destination, t.failure) for t in sim.engine.transmissions]
    assert outcomes == [
        (1, 5, FailureReason.LINK_BROKEN_DURING_TRANSFER),
        (3, 5, None),
        (4, 4, FailureReason.SELF_SEND),
    ]
    stats = sim.statistics()
    assert (stats.messages_sent, stats.messages_failed) == (2, 2)
    assert stats.success_rate == 0


def test_removed_and_recovered_node_rejoins_rotation(sim):
    sim.start_token_passing()
    sim.remove_node(2)
    sim.env.run(until=3.5)
    assert sim.scheduler.current == 3
    sim.recover_node(2)
    for _ in range(3):
        sim.scheduler.advance()
    assert sim.scheduler.current == 1
    assert sim.scheduler.advance() == 2

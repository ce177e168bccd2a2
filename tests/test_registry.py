import pytest

from daisy_sim.core.enums import RecoveryStatus, RemovalStatus
from daisy_sim.core.errors import (
    CapacityExceeded,
    InvalidLinkError,
    InvalidNodeError,
    MinimumNodesViolation,
)
from daisy_sim.core.registry import ChainRegistry


def make_registry(count=5, max_nodes=None):
    registry = ChainRegistry(max_nodes)
    for _ in range(count):
        registry.add_node()
    return registry


def assert_links_consistent(registry):
    active = registry.active_ids
    assert len(registry.links) == max(0, len(active) - 1)
    for i, link in enumerate(registry.links):
        assert link.index == i
        assert (link.left, link.right) == (active[i], active[i + 1])


def test_add_node_allocates_sequential_ids():
    registry = ChainRegistry()
    assert [registry.add_node() for _ in range(3)] == [1, 2, 3]
    assert registry.active_ids == [1, 2, 3]
    assert_links_consistent(registry)


def test_no_links_below_two_nodes():
    registry = ChainRegistry()
    assert registry.links == []
    registry.add_node()
    assert registry.links == []
    registry.add_node()
    assert len(registry.links) == 1


def test_remove_rebuilds_links_positionally():
    registry = make_registry()
    assert registry.remove_node(3) is RemovalStatus.REMOVED
    assert registry.active_ids == [1, 2, 4, 5]
    assert registry.link(1).endpoints == (2, 4)
    assert registry.link_between(2, 4) is registry.link(1)
    assert registry.link_between(2, 3) is None
    assert_links_consistent(registry)


def test_removed_ids_are_never_reused():
    registry = make_registry()
    registry.remove_node(5)
    assert registry.add_node() == 6
    assert registry.active_ids == [1, 2, 3, 4, 6]


def test_remove_respects_floor():
    registry = make_registry(3)
    registry.remove_node(1)
    with pytest.raises(MinimumNodesViolation):
        registry.remove_node(2)
    assert registry.active_ids == [2, 3]
    assert_links_consistent(registry)


def test_remove_already_removed_is_a_noop():
    registry = make_registry()
    registry.remove_node(2)
    assert registry.remove_node(2) is RemovalStatus.ALREADY_REMOVED
    assert registry.active_ids == [1, 3, 4, 5]


def test_remove_unknown_node():
    registry = make_registry()
    with pytest.raises(InvalidNodeError):
        registry.remove_node(42)


def test_recover_restores_position_and_power():
    registry = make_registry()
    registry.nodes[3].powered_on = False
    registry.remove_node(3)
    assert not registry.is_active(3)

    assert registry.recover_node(3) is RecoveryStatus.RECOVERED
    assert registry.active_ids == [1, 2, 3, 4, 5]
    assert registry.position(3) == 2
    assert not registry.nodes[3].powered_on
    assert_links_consistent(registry)


def test_recover_not_removed_leaves_state_unchanged():
    registry = make_registry()
    registry.remove_node(4)
    before = (registry.active_ids, set(registry.removed_ids), registry.max_node_id)
    assert registry.recover_node(2) is RecoveryStatus.NOT_REMOVED
    assert (registry.active_ids, set(registry.removed_ids), registry.max_node_id) == before


def test_recover_all():
    registry = make_registry()
    registry.remove_node(2)
    registry.remove_node(4)
    assert registry.recover_all() is RecoveryStatus.RECOVERED
    assert registry.active_ids == [1, 2, 3, 4, 5]
    assert registry.removed_ids == set()
    assert registry.recover_all() is RecoveryStatus.NOT_REMOVED


def test_rebuild_repairs_broken_links():
    registry = make_registry()
    registry.link(0).broken = True
    assert registry.broken_link_count == 1
    registry.add_node()
    assert registry.broken_link_count == 0


def test_capacity_ceiling():
    registry = make_registry(3, max_nodes=3)
    with pytest.raises(CapacityExceeded):
        registry.add_node()
    assert registry.max_node_id == 3


def test_path_between_walks_the_chain():
    registry = make_registry()
    assert registry.path_between(1, 5) == [1, 2, 3, 4, 5]
    assert registry.path_between(5, 2) == [5, 4, 3, 2]
    registry.remove_node(3)
    assert registry.path_between(5, 1) == [5, 4, 2, 1]


def test_path_between_rejects_removed_nodes():
    registry = make_registry()
    registry.remove_node(3)
    with pytest.raises(InvalidNodeError):
        registry.path_between(1, 3)


def test_link_index_out_of_range():
    registry = make_registry()
    with pytest.raises(InvalidLinkError):
        registry.link(4)
    with pytest.raises(InvalidLinkError):
        registry.link(-1)


def test_powered_on_ids_excludes_off_nodes():
    registry = make_registry()
    registry.nodes[2].powered_on = False
    assert registry.powered_on_ids == [1, 3, 4, 5]


def test_links_invariant_across_lifecycle():
    registry = make_registry()
    for step in [lambda: registry.remove_node(2), registry.add_node,
                 lambda: registry.remove_node(5), lambda: registry.recover_node(2),
                 registry.recover_all, lambda: registry.remove_node(1)]:
        step()
        assert_links_consistent(registry)
        assert len(registry) >= 2

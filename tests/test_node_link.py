import pytest

from daisy_sim.core.link import Link
from daisy_sim.core.node import Node


def test_node_defaults():
    node = Node(3)
    assert node.powered_on
    assert not node.has_token
    assert not node.removed
    assert node.status == "Active"


def test_node_status_labels():
    node = Node(1)
    node.powered_on = False
    assert node.status == "Powered Off"
    node.removed = True
    assert node.status == "Removed"


def test_node_id_must_be_positive():
    with pytest.raises(ValueError):
        Node(0)


def test_link_endpoints():
    link = Link(0, 2, 4)
    assert link.endpoints == (2, 4)
    assert not link.broken


def test_link_endpoints_must_ascend():
    with pytest.raises(ValueError):
        Link(0, 4, 2)

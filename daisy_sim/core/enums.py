"""Enumerations for the daisy chain simulation.

This module defines enumerations used throughout the simulator.
"""

from enum import Enum


class TokenStatus(Enum):
    """State of the token ring scheduler.

    Attributes:
        STOPPED: No token circulates.
        RUNNING: The token advances on every interval.
        SUSPENDED: Token passing paused because every node is powered off.
    """

    STOPPED = 1
    RUNNING = 2
    SUSPENDED = 3


class TransmissionState(Enum):
    """Lifecycle of a single transmission."""

    IDLE = 1
    VALIDATING = 2
    HOP_EXECUTING = 3
    DELIVERED = 4
    FAILED = 5


class FailureReason(Enum):
    """Why a transmission ended without delivery."""

    INVALID_NODE = "invalid node"
    SELF_SEND = "source and destination are the same node"
    SOURCE_OFFLINE = "source is powered off"
    DESTINATION_OFFLINE = "destination is powered off"
    NODE_OFFLINE_DURING_TRANSFER = "node powered off during transfer"
    LINK_BROKEN_DURING_TRANSFER = "link broken during transfer"
    TOPOLOGY_CHANGED = "chain changed during transfer"

    @property
    def preflight(self) -> bool:
        return self in (
            FailureReason.INVALID_NODE,
            FailureReason.SELF_SEND,
            FailureReason.SOURCE_OFFLINE,
            FailureReason.DESTINATION_OFFLINE,
        )


class EnqueueStatus(Enum):
    """Outcome of an enqueue-or-send request."""

    DISPATCHED = 1
    QUEUED = 2
    ALREADY_QUEUED = 3
    FAILED = 4


class RemovalStatus(Enum):
    REMOVED = 1
    ALREADY_REMOVED = 2


class RecoveryStatus(Enum):
    RECOVERED = 1
    NOT_REMOVED = 2

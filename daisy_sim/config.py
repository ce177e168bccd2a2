"""Configuration for the daisy chain simulation.

Defaults describe the interactive setup: five nodes, a token
that moves every three seconds and one second per hop at normal speed.
"""

import json
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from daisy_sim.core.errors import ValidationError

# Chain floor: removal is refused below this many active nodes.
MIN_ACTIVE_NODES = 2


@dataclass
class SimulationConfig:
    """Tunable simulation parameters.

    Times are in simulation seconds.
    """

    # Nodes created on initialisation and on reset
    initial_nodes: int = 5
    # Ceiling on active nodes; None means unbounded
    max_nodes: Optional[int] = None
    # Seconds the token rests at each node
    token_interval: float = 3.0
    # +1 walks towards higher ids, -1 towards lower ids
    token_direction: int = 1
    # Time for one hop at speed 1
    base_hop_time: float = 1.0
    speed_multiplier: float = 1.0
    # Delay between the end of a transmission and the markers reset signal
    marker_cooldown: float = 2.0
    # Number of history entries kept; None keeps everything
    history_limit: Optional[int] = None
    seed: int = 42

    def __post_init__(self) -> None:
        if self.initial_nodes < MIN_ACTIVE_NODES:
            raise ValidationError(
                f"initial_nodes must be at least {MIN_ACTIVE_NODES}, got {self.initial_nodes}"
            )
        if self.max_nodes is not None and self.max_nodes < self.initial_nodes:
            raise ValidationError("max_nodes cannot be smaller than initial_nodes")
        if self.token_interval <= 0:
            raise ValidationError("token_interval must be positive")
        if self.token_direction not in (1, -1):
            raise ValidationError("token_direction must be 1 or -1")
        if self.base_hop_time < 0:
            raise ValidationError("base_hop_time cannot be negative")
        if self.speed_multiplier <= 0:
            raise ValidationError("speed_multiplier must be positive")
        if self.marker_cooldown < 0:
            raise ValidationError("marker_cooldown cannot be negative")
        if self.history_limit is not None and self.history_limit <= 0:
            raise ValidationError("history_limit must be positive")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "SimulationConfig":
        """Build a config from a mapping of overrides.

        Args:
            values: Field names mapped to values.

        Returns:
            The validated config.

        Raises:
            ValidationError: If a key is not a config field.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValidationError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**values)

    @classmethod
    def from_json(cls, path: str) -> "SimulationConfig":
        """Load overrides from a JSON object file."""
        with open(path, "r", encoding="utf-8") as f:
            values = json.load(f)
        if not isinstance(values, dict):
            raise ValidationError(f"{path} must contain a JSON object")
        return cls.from_dict(values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

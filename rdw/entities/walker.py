"""
Simulated Walker
================
Auto-pilot user for batch runs and training.

The walker chases virtual waypoints: it physically turns toward the
next waypoint (at most angular_speed deg/s) and walks forward (speed
m/s) once roughly facing it. Because the waypoints live in the virtual
world, any redirection injected by the manager bends the physical path.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional

from ..geometry.vectors import flatten_position, flatten_direction, signed_angle, rotate
from .tracking import SimulatedHead


@dataclass
class WalkerConfig:
    """Auto-pilot parameters"""
    speed: float = 1.0                # m/s - tangent speed
    angular_speed: float = 90.0       # deg/s - turning rate
    waypoint_distance: float = 6.0    # m - distance between waypoints
    max_waypoint_turn: float = 60.0   # deg - max bearing change per waypoint
    arrival_radius: float = 0.3       # m
    walk_while_turning: float = 30.0  # deg - walk only when this well aligned


class SimulatedWalker:
    """Moves a SimulatedHead along randomly generated virtual waypoints"""

    def __init__(self, head: SimulatedHead,
                 config: Optional[WalkerConfig] = None,
                 seed: Optional[int] = None):
        self.head = head
        self.config = config or WalkerConfig()
        self.rng = np.random.default_rng(seed)
        self.target: Optional[np.ndarray] = None
        self.waypoints_reached = 0

    def reseed(self, seed: Optional[int]):
        self.rng = np.random.default_rng(seed)

    def reset(self):
        """Forget the current waypoint (after a teleport)"""
        self.target = None

    def _next_waypoint(self, position: np.ndarray, direction: np.ndarray) -> np.ndarray:
        turn = self.rng.uniform(-self.config.max_waypoint_turn, self.config.max_waypoint_turn)
        return position + rotate(direction, turn) * self.config.waypoint_distance

    def walk_update(self, dt: float, reset_turn: Optional[float] = None):
        """
        Advance the walker by dt seconds.

        During a reset the host passes the resetter's requested turn
        direction and the walker turns in place instead of walking.
        """
        if reset_turn is not None:
            self.head.turn(float(np.sign(reset_turn)) * self.config.angular_speed * dt)
            return

        position = flatten_position(self.head.position)
        direction = flatten_direction(self.head.forward, fallback=np.array([0.0, 1.0]))

        if self.target is None:
            self.target = self._next_waypoint(position, direction)

        to_target = self.target - position
        distance = np.linalg.norm(to_target)
        if distance < self.config.arrival_radius:
            self.waypoints_reached += 1
            self.target = self._next_waypoint(position, direction)
            to_target = self.target - position
            distance = np.linalg.norm(to_target)

        # Turning is physical; the same angle applies in both frames
        angle = signed_angle(direction, to_target / distance)
        max_turn = self.config.angular_speed * dt
        self.head.turn(float(np.clip(angle, -max_turn, max_turn)))

        if abs(angle) < self.config.walk_while_turning:
            self.head.move_forward(min(self.config.speed * dt, distance))

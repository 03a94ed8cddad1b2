"""
Tracked Space & Room Geometry
=============================
The tracked space is the physical room the user walks in. It is a
rigid 2D frame placed in the virtual world:

- RoomGeometry: size of the tracking rectangle, centered on the frame origin
- TrackedSpace: pose of that frame in the virtual world

Redirection works by moving the tracked-space frame under the user.
The user's real (room-relative) pose stays untouched while their
virtual (world) pose picks up the injected rotation/translation.
"""

import numpy as np
from dataclasses import dataclass

from .vectors import rotate


@dataclass(frozen=True)
class RoomGeometry:
    """
    Tracking-area rectangle centered at the tracked-space origin.

    Corner order: (+w/2, +d/2), (+w/2, -d/2), (-w/2, -d/2), (-w/2, +d/2)
    """
    width: float = 10.0   # m - extent along x
    depth: float = 10.0   # m - extent along z

    def __post_init__(self):
        if not (self.width > 0 and self.depth > 0):
            raise ValueError(
                f"Room dimensions must be positive, got {self.width} x {self.depth}"
            )

    @property
    def half_width(self) -> float:
        return self.width / 2

    @property
    def half_depth(self) -> float:
        return self.depth / 2

    @property
    def corners(self) -> np.ndarray:
        """The 4 room corners, shape (4, 2)"""
        hw, hd = self.half_width, self.half_depth
        return np.array([
            [hw, hd],
            [hw, -hd],
            [-hw, -hd],
            [-hw, hd],
        ])

    def shrunk(self, buffer: float) -> "RoomGeometry":
        """Room with every wall pulled inward by buffer meters"""
        return RoomGeometry(self.width - 2 * buffer, self.depth - 2 * buffer)


class TrackedSpace:
    """
    Pose of the tracked room in the virtual world.

    origin is the world position of the room center, heading the
    counterclockwise rotation (degrees) of the room axes relative to
    the world axes.
    """

    def __init__(self, room: RoomGeometry = None,
                 origin: np.ndarray = None,
                 heading: float = 0.0):
        self.room = room or RoomGeometry()
        self.origin = np.zeros(2) if origin is None else np.asarray(origin, dtype=float)
        self.heading = float(heading)

    # =========================================================================
    # FRAME CONVERSIONS
    # =========================================================================

    def to_local_point(self, world_point: np.ndarray) -> np.ndarray:
        return rotate(np.asarray(world_point, dtype=float) - self.origin, -self.heading)

    def to_world_point(self, local_point: np.ndarray) -> np.ndarray:
        return self.origin + rotate(np.asarray(local_point, dtype=float), self.heading)

    def to_local_direction(self, world_dir: np.ndarray) -> np.ndarray:
        return rotate(world_dir, -self.heading)

    def to_world_direction(self, local_dir: np.ndarray) -> np.ndarray:
        return rotate(local_dir, self.heading)

    # =========================================================================
    # REDIRECTION INJECTION
    # =========================================================================

    def rotate_around(self, pivot: np.ndarray, degrees: float):
        """Rotate the whole frame about a world-space pivot (the user's head)"""
        pivot = np.asarray(pivot, dtype=float)
        self.origin = pivot + rotate(self.origin - pivot, degrees)
        self.heading = (self.heading + degrees) % 360.0

    def translate(self, offset: np.ndarray):
        self.origin = self.origin + np.asarray(offset, dtype=float)

    def reset_frame(self):
        """Put the frame back at the world origin"""
        self.origin = np.zeros(2)
        self.heading = 0.0

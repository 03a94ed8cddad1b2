"""
Pose Tracking
=============
Reads the raw head transform and flattens it onto the ground plane,
in world (virtual) coordinates and in tracked-space (real) coordinates.

The head itself is a host collaborator: anything exposing a 3D world
position and forward vector satisfies HeadPoseSource. SimulatedHead is
the in-process implementation used by auto-pilot runs and training.
"""

import numpy as np
from typing import Optional, Protocol

from ..geometry.tracked_space import TrackedSpace
from ..geometry.vectors import (
    flatten_position, flatten_direction, direction_from_heading
)
from .state import Pose, FrameState


class HeadPoseSource(Protocol):
    """Anything that reports a head pose in world coordinates (y up)"""

    @property
    def position(self) -> np.ndarray: ...

    @property
    def forward(self) -> np.ndarray: ...


class PoseTracker:
    """
    Converts a raw head transform into a FrameState.

    Stateless: the caller passes the last known FrameState so that a
    head looking straight up or down keeps its previous direction.
    """

    def capture(self,
                head: HeadPoseSource,
                tracked_space: TrackedSpace,
                last: Optional[FrameState] = None) -> FrameState:
        pos = flatten_position(head.position)
        fallback = last.dir if last is not None else np.array([0.0, 1.0])
        direction = flatten_direction(head.forward, fallback=fallback)

        return FrameState(
            virtual=Pose(pos, direction),
            real=Pose(
                tracked_space.to_local_point(pos),
                tracked_space.to_local_direction(direction)
            )
        )


class SimulatedHead:
    """
    Head whose physical pose lives in the tracked space.

    The world pose is composed from the tracked-space frame, so moving
    the frame (redirection) moves the virtual head while the physical
    head stays where it is.
    """

    def __init__(self, tracked_space: TrackedSpace,
                 height: float = 1.7,
                 local_position: np.ndarray = None,
                 local_heading: float = 90.0):
        self.tracked_space = tracked_space
        self.height = height
        self.local_position = np.zeros(2) if local_position is None else np.asarray(local_position, dtype=float)
        self.local_heading = float(local_heading)   # degrees from +x, 90 = facing +z

    # ---- HeadPoseSource ----
    @property
    def position(self) -> np.ndarray:
        world = self.tracked_space.to_world_point(self.local_position)
        return np.array([world[0], self.height, world[1]])

    @property
    def forward(self) -> np.ndarray:
        world_dir = self.tracked_space.to_world_direction(self.local_direction)
        return np.array([world_dir[0], 0.0, world_dir[1]])

    # ---- physical motion ----
    @property
    def local_direction(self) -> np.ndarray:
        return direction_from_heading(self.local_heading)

    def turn(self, degrees: float):
        """Physical rotation, counterclockwise positive"""
        self.local_heading = (self.local_heading + degrees) % 360.0

    def move(self, local_offset: np.ndarray):
        """Physical translation in tracked-space coordinates"""
        self.local_position = self.local_position + np.asarray(local_offset, dtype=float)

    def move_forward(self, distance: float):
        self.move(self.local_direction * distance)

    def place(self, local_position: np.ndarray, local_heading: Optional[float] = None):
        """Teleport the physical head (episode resets, tests)"""
        self.local_position = np.asarray(local_position, dtype=float).reshape(2).copy()
        if local_heading is not None:
            self.local_heading = float(local_heading) % 360.0

"""
Boundary Monitor
================
Out-of-bounds detection for the tracked room.

Two independent signals lead to a reset:
- ResetTrigger: a trip-wire along the (buffered) room walls that fires
  once when the user crosses from inside to outside
- The redundant per-tick check the RedirectionManager runs through the
  active resetter, in case the trip-wire missed a fast crossing

Both end up in RedirectionManager.on_reset_trigger().
"""

import logging
import numpy as np
from enum import Enum
from typing import Callable, List, Optional

from .tracked_space import RoomGeometry

logger = logging.getLogger(__name__)

EDGE_TOLERANCE = 1e-9


class ResetSource(Enum):
    """Where a reset request came from"""
    TRIGGER = "trigger"       # Trip-wire crossing
    RESET_AID = "reset_aid"   # Per-tick backup check
    MANUAL = "manual"         # Host/user request


def _on_segment(p: np.ndarray, a: np.ndarray, b: np.ndarray) -> bool:
    ab = b - a
    ap = p - a
    cross = ab[0] * ap[1] - ab[1] * ap[0]
    if abs(cross) > EDGE_TOLERANCE * max(1.0, np.linalg.norm(ab)):
        return False
    dot = np.dot(ap, ab)
    return -EDGE_TOLERANCE <= dot <= np.dot(ab, ab) + EDGE_TOLERANCE


def point_in_polygon(point: np.ndarray, polygon: np.ndarray) -> bool:
    """
    Ray-casting point-in-polygon test.

    Points lying on an edge count as inside.
    """
    p = np.asarray(point, dtype=float)
    n = len(polygon)
    inside = False
    for i in range(n):
        a = polygon[i]
        b = polygon[(i + 1) % n]
        if _on_segment(p, a, b):
            return True
        # Edge straddles the horizontal ray through p
        if (a[1] > p[1]) != (b[1] > p[1]):
            x_cross = a[0] + (p[1] - a[1]) * (b[0] - a[0]) / (b[1] - a[1])
            if p[0] < x_cross:
                inside = not inside
    return inside


def is_out_of_bounds(real_position: np.ndarray, room: RoomGeometry) -> bool:
    """True if the room-relative position lies outside the room rectangle"""
    return not point_in_polygon(real_position, room.corners)


class ResetTrigger:
    """
    Trip-wire along the room walls, pulled inward by buffer meters.

    Edge-triggered: listeners are called once per inside -> outside
    crossing. A user who stays outside does not re-fire it.
    """

    def __init__(self, buffer: float = 0.5):
        if buffer < 0:
            raise ValueError(f"Trigger buffer must be non-negative, got {buffer}")
        self.buffer = buffer
        self.bounds: Optional[RoomGeometry] = None
        self._inside = True
        self._listeners: List[Callable[[ResetSource], None]] = []

    def initialize(self, room: RoomGeometry):
        """Rebuild the trip-wire for the given room"""
        if room.width > 2 * self.buffer and room.depth > 2 * self.buffer:
            self.bounds = room.shrunk(self.buffer)
        else:
            self.bounds = room
        self._inside = True

    def rearm(self, real_position: np.ndarray):
        """Sync with a teleported user without firing"""
        if self.bounds is not None:
            self._inside = not is_out_of_bounds(real_position, self.bounds)

    def add_listener(self, callback: Callable[[ResetSource], None]):
        self._listeners.append(callback)

    def update(self, real_position: np.ndarray) -> bool:
        """
        Feed the user's room-relative position.

        Returns True if the trip-wire fired on this update.
        """
        if self.bounds is None:
            return False
        inside = not is_out_of_bounds(real_position, self.bounds)
        fired = self._inside and not inside
        self._inside = inside
        if fired:
            self.fire()
        return fired

    def fire(self):
        logger.debug("Reset trigger fired")
        for callback in self._listeners:
            callback(ResetSource.TRIGGER)

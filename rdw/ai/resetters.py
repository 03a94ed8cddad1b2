"""
Resetters
=========
Reset strategies for the RedirectionManager.

A reset is an explicit maneuver that reorients the user when they
reach the tracking boundary. While it runs, redirection is suspended.

Lifecycle driven by the manager:
    is_reset_required() -> initialize_reset() -> apply_resetting() per tick
    -> end_reset() (strategy decides it is done) -> finalize_reset()
"""

import logging
import numpy as np
from typing import Optional

from ..entities.state import PoseAdjustment, StateBuffer
from ..geometry.tracked_space import RoomGeometry

logger = logging.getLogger(__name__)


class Resetter:
    """
    Base class for reset strategies.

    Owns the (possibly stricter) out-of-bounds definition used by the
    manager's per-tick backup check: the room shrunk by
    trigger_buffer on every side.
    """

    name = "base"

    def __init__(self, trigger_buffer: float = 0.5):
        self.manager = None
        self.trigger_buffer = trigger_buffer
        self.room: Optional[RoomGeometry] = None
        self.max_x = 0.0
        self.max_z = 0.0
        # Physical turn the user is asked to make: +1 ccw, -1 cw, 0 none
        self.turn_direction = 0.0

    def bind(self, manager):
        self.manager = manager

    def initialize(self, room: RoomGeometry):
        """(Re)compute the out-of-bounds limits for the room"""
        self.room = room
        self.max_x = max(room.half_width - self.trigger_buffer, 0.0)
        self.max_z = max(room.half_depth - self.trigger_buffer, 0.0)

    def is_user_out_of_bounds(self, state: StateBuffer) -> bool:
        pos = state.current.pos_real
        return abs(pos[0]) > self.max_x or abs(pos[1]) > self.max_z

    def crossed_wall_normal(self, pos_real: np.ndarray) -> np.ndarray:
        """
        Inward normal of the wall(s) the user is beyond.

        Sum of the per-axis normals, so a corner gives the diagonal;
        zero when the user is inside the limits.
        """
        normal = np.zeros(2)
        if abs(pos_real[0]) > self.max_x:
            normal[0] = -np.sign(pos_real[0])
        if abs(pos_real[1]) > self.max_z:
            normal[1] = -np.sign(pos_real[1])
        return normal

    def is_user_facing_away_from_wall(self, pos_real: np.ndarray, dir_real: np.ndarray) -> bool:
        """True unless the user faces (or walks along) a wall they are beyond"""
        normal = self.crossed_wall_normal(pos_real)
        for axis in range(2):
            if normal[axis] != 0.0 and normal[axis] * dir_real[axis] <= 0.0:
                return False
        return True

    def is_reset_required(self) -> bool:
        raise NotImplementedError

    def initialize_reset(self):
        pass

    def apply_resetting(self, state: StateBuffer, dt: float) -> PoseAdjustment:
        raise NotImplementedError

    def finalize_reset(self):
        self.turn_direction = 0.0

    def end_reset(self):
        """Signal the manager that the maneuver is complete"""
        if self.manager is not None:
            self.manager.on_reset_end()

    def release(self):
        self.manager = None


class NullResetter(Resetter):
    """Never resets; boundary violations are ignored"""

    name = "null"

    def is_reset_required(self) -> bool:
        return False

    def apply_resetting(self, state: StateBuffer, dt: float) -> PoseAdjustment:
        return PoseAdjustment.none()


class TwoOneTurnResetter(Resetter):
    """
    2:1 turn reset.

    The user turns 180 degrees in place while the virtual world turns
    along with them, so the virtual view completes a full 360 and ends
    up facing where it started, while the user now faces into the room.
    """

    name = "two_one_turn"

    REQUIRED_ROTATION = 180.0   # deg - physical turn

    def __init__(self, trigger_buffer: float = 0.5):
        super().__init__(trigger_buffer)
        self.overall_injected_rotation = 0.0

    def _user_state(self) -> StateBuffer:
        return self.manager.state

    def is_reset_required(self) -> bool:
        """Reset unless the user already faces away from every crossed wall"""
        if self.manager is None or self._user_state().current is None:
            return False
        current = self._user_state().current
        return not self.is_user_facing_away_from_wall(current.pos_real, current.dir_real)

    def initialize_reset(self):
        self.overall_injected_rotation = 0.0
        current = self._user_state().current
        # Turn the short way round toward the inside of the crossed wall
        inward = self.crossed_wall_normal(current.pos_real)
        if not np.any(inward):
            inward = -current.pos_real
        cross = current.dir_real[0] * inward[1] - current.dir_real[1] * inward[0]
        self.turn_direction = 1.0 if cross >= 0 else -1.0
        logger.debug("2:1 turn started, turn direction %+.0f", self.turn_direction)

    def apply_resetting(self, state: StateBuffer, dt: float) -> PoseAdjustment:
        remaining = self.REQUIRED_ROTATION - abs(self.overall_injected_rotation)
        if remaining <= 1e-6:
            self.end_reset()
            return PoseAdjustment.none()

        # Mirror the user's own rotation: virtual turns twice as far
        injection = state.delta.direction
        if abs(injection) > remaining:
            injection = float(np.sign(injection)) * remaining
        self.overall_injected_rotation += injection

        if self.REQUIRED_ROTATION - abs(self.overall_injected_rotation) <= 1e-6:
            self.end_reset()
        return PoseAdjustment(rotation=injection)

    def finalize_reset(self):
        super().finalize_reset()
        self.overall_injected_rotation = 0.0

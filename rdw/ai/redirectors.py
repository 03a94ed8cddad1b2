"""
Redirectors
===========
Redirection strategies for the RedirectionManager.

A redirector looks at the user's state each tick and returns a
PoseAdjustment (rotation about the head + translation) that the manager
injects into the tracked-space frame. Gains are bounded by the
manager's RedirectionGains so the manipulation stays imperceptible.

- NullRedirector: no redirection (movement passes through)
- SteerToCenterRedirector: steer the physical path toward the room center
- ActionRedirector: curvature chosen by an external policy (RL actions)
- PlannedRedirector: steering planned on a background PlanningTask
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional

from ..entities.state import PoseAdjustment, StateBuffer
from ..geometry.tracked_space import RoomGeometry
from ..geometry.vectors import signed_angle
from .planning import PlanningTask

logger = logging.getLogger(__name__)


@dataclass
class RedirectionGains:
    """Perceptual limits for injected gains"""
    max_trans_gain: float = 0.26     # Translation gain upper bound
    min_trans_gain: float = -0.14    # Translation gain lower bound
    max_rot_gain: float = 0.49       # Rotation gain upper bound
    min_rot_gain: float = -0.2       # Rotation gain lower bound
    curvature_radius: float = 7.5    # m - tightest imperceptible curve

    def __post_init__(self):
        if self.curvature_radius <= 0:
            raise ValueError(f"Curvature radius must be positive, got {self.curvature_radius}")
        if self.min_trans_gain <= -1 or self.min_rot_gain <= -1:
            raise ValueError("Minimum gains must be greater than -1")


class Redirector:
    """
    Base class for redirection strategies.

    Lifecycle: bind(manager) -> initialize(room) -> apply_redirection()
    every tick while not resetting -> release().
    pause()/resume() are no-ops unless the strategy owns background work.
    """

    name = "base"

    def __init__(self):
        self.manager = None
        self.room: Optional[RoomGeometry] = None

    def bind(self, manager):
        self.manager = manager

    @property
    def gains(self) -> RedirectionGains:
        if self.manager is not None:
            return self.manager.gains
        return RedirectionGains()

    def initialize(self, room: RoomGeometry):
        """(Re)build any geometry-derived state"""
        self.room = room

    def apply_redirection(self, state: StateBuffer, dt: float) -> PoseAdjustment:
        raise NotImplementedError

    def pause(self):
        pass

    def resume(self):
        pass

    def is_paused(self) -> bool:
        return False

    def release(self):
        self.manager = None

    # ---- injection helpers ----
    def curvature_rotation(self, distance: float) -> float:
        """Max imperceptible rotation (deg) for walking distance meters"""
        return float(np.degrees(distance / self.gains.curvature_radius))

    def rotation_gain_rotation(self, delta_dir: float, gain: float) -> float:
        """Extra rotation (deg) from a rotation gain applied to a head turn"""
        return delta_dir * gain


class NullRedirector(Redirector):
    """Leaves the user unredirected"""

    name = "null"

    def apply_redirection(self, state: StateBuffer, dt: float) -> PoseAdjustment:
        return PoseAdjustment.none()


class SteerToCenterRedirector(Redirector):
    """
    Steer-to-center.

    Injects rotation so that the user's physical path bends toward the
    room center. Uses the larger of the curvature rotation (while
    walking) and the rotation-gain rotation (while turning), capped
    per second.
    """

    name = "s2c"

    MOVEMENT_THRESHOLD = 0.2       # m/s - slower counts as standing
    ROTATION_THRESHOLD = 1.5       # deg/s - slower counts as not turning
    CURVATURE_CAP = 15.0           # deg/s
    ROTATION_CAP = 30.0            # deg/s
    DAMPENING_DISTANCE = 1.25      # m - ease off close to the target

    def steering_direction(self, state: StateBuffer) -> float:
        """
        +1 / -1: direction to inject.

        Rotating the world one way makes the user compensate the other
        way, so the injection is opposite to the wanted physical turn.
        """
        current = state.current
        to_center = -current.pos_real
        if np.linalg.norm(to_center) < 1e-6:
            return 0.0
        wanted_turn = signed_angle(current.dir_real, to_center)
        return -float(np.sign(wanted_turn))

    def apply_redirection(self, state: StateBuffer, dt: float) -> PoseAdjustment:
        if dt <= 0:
            return PoseAdjustment.none()
        steer = self.steering_direction(state)
        if steer == 0.0:
            return PoseAdjustment.none()

        delta = state.delta
        rotation = 0.0
        curvature = 0.0

        if abs(delta.direction) / dt >= self.ROTATION_THRESHOLD:
            # Turning with the steer direction gets amplified, against it damped
            if delta.direction * steer < 0:
                gain = abs(self.gains.min_rot_gain)
            else:
                gain = self.gains.max_rot_gain
            rotation = min(abs(self.rotation_gain_rotation(delta.direction, gain)),
                           self.ROTATION_CAP * dt)

        if delta.distance / dt >= self.MOVEMENT_THRESHOLD:
            curvature = min(self.curvature_rotation(delta.distance), self.CURVATURE_CAP * dt)

        magnitude = max(rotation, curvature)

        distance_to_center = float(np.linalg.norm(state.current.pos_real))
        if distance_to_center < self.DAMPENING_DISTANCE:
            magnitude *= np.sin(np.pi / 2 * distance_to_center / self.DAMPENING_DISTANCE)

        return PoseAdjustment(rotation=steer * magnitude)


class ActionRedirector(Redirector):
    """
    Curvature redirection driven by discrete actions.

    Actions name the physical curve: "Left" bends the physical path
    counterclockwise, so the injected rotation is clockwise.
    """

    name = "action"

    ACTION_NAMES = ("None", "SmallLeft", "LargeLeft", "SmallRight", "LargeRight")
    # Fraction of the maximum curvature, signed as the physical turn
    ACTION_CURVATURE = {0: 0.0, 1: 0.5, 2: 1.0, 3: -0.5, 4: -1.0}

    def __init__(self):
        super().__init__()
        self.action = 0

    def set_action(self, action: int):
        if action not in self.ACTION_CURVATURE:
            raise ValueError(f"Unknown action {action}; expected 0..{len(self.ACTION_NAMES) - 1}")
        self.action = action

    def apply_redirection(self, state: StateBuffer, dt: float) -> PoseAdjustment:
        fraction = self.ACTION_CURVATURE[self.action]
        if fraction == 0.0:
            return PoseAdjustment.none()
        rotation = self.curvature_rotation(state.delta.distance) * abs(fraction)
        return PoseAdjustment(rotation=-np.sign(fraction) * rotation)


class PlannedRedirector(Redirector):
    """
    Steering computed ahead of time on a background planner.

    The planner predicts where the user will be after horizon seconds of
    walking straight and picks a steering direction (and strength) that
    keeps that prediction inside the buffered room. apply_redirection
    only reads the latest published plan; while paused (during resets)
    it injects nothing.
    """

    name = "planned"

    HORIZON = 2.0          # s - lookahead
    SAFETY_MARGIN = 1.0    # m - keep predictions this far from the walls

    def __init__(self, threaded: bool = True, interval: float = 0.05):
        super().__init__()
        self._snapshot = None           # (pos_real, dir_real, speed)
        self.task = PlanningTask(self._plan, interval=interval,
                                 name="planned-redirector", threaded=threaded)

    def initialize(self, room: RoomGeometry):
        super().initialize(room)
        self.task.start()

    def _plan(self) -> Optional[float]:
        """Signed curvature fraction in [-1, 1] (physical turn sign)"""
        snapshot = self._snapshot
        if snapshot is None or self.room is None:
            return None
        pos, direction, speed = snapshot
        predicted = pos + direction * speed * self.HORIZON

        limit_x = max(self.room.half_width - self.SAFETY_MARGIN, 0.0)
        limit_z = max(self.room.half_depth - self.SAFETY_MARGIN, 0.0)
        overshoot = max(abs(predicted[0]) - limit_x, abs(predicted[1]) - limit_z, 0.0)
        if np.linalg.norm(pos) < 1e-6:
            return 0.0

        wanted_turn = float(np.sign(signed_angle(direction, -pos)))
        strength = 1.0 if overshoot > 0 else 0.25
        return wanted_turn * strength

    def apply_redirection(self, state: StateBuffer, dt: float) -> PoseAdjustment:
        current = state.current
        speed = state.delta.distance / dt if dt > 0 else 0.0
        self._snapshot = (current.pos_real.copy(), current.dir_real.copy(), speed)

        if not self.task.threaded:
            self.task.run_once()

        plan = self.task.latest()
        if not plan:
            return PoseAdjustment.none()
        rotation = self.curvature_rotation(state.delta.distance) * abs(plan)
        return PoseAdjustment(rotation=-np.sign(plan) * rotation)

    def pause(self):
        self.task.pause()
        logger.info("Planning paused")

    def resume(self):
        self.task.resume()
        logger.info("Planning resumed")

    def is_paused(self) -> bool:
        return self.task.is_paused()

    def release(self):
        self.task.stop()
        super().release()

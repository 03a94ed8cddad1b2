"""
User State
==========
Per-frame snapshots of the user's pose in both frames, and the
deltas the control loop derives from them.

- Pose: ground-plane position + unit direction
- FrameState: virtual (world) pose + real (room-relative) pose
- Delta: current - previous, recomputed every tick
- PoseAdjustment: what a strategy asks the manager to inject
- StateBuffer: holds current/previous snapshots and the latest delta

Writers:
- PoseTracker output goes into StateBuffer.update_current()
- The tick boundary archives into StateBuffer.update_previous()
Nothing else mutates the buffer.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Optional

from ..geometry.vectors import normalize, signed_angle


@dataclass(frozen=True)
class Pose:
    """Ground-plane pose (meters, unit direction)"""
    position: np.ndarray
    direction: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, 'position', np.asarray(self.position, dtype=float).reshape(2))
        object.__setattr__(self, 'direction', normalize(np.asarray(self.direction, dtype=float).reshape(2)))


@dataclass(frozen=True)
class FrameState:
    """The user's pose in both frames, captured once per tick"""
    virtual: Pose
    real: Pose

    @property
    def pos(self) -> np.ndarray:
        return self.virtual.position

    @property
    def dir(self) -> np.ndarray:
        return self.virtual.direction

    @property
    def pos_real(self) -> np.ndarray:
        return self.real.position

    @property
    def dir_real(self) -> np.ndarray:
        return self.real.direction


@dataclass(frozen=True)
class Delta:
    """Change between two FrameStates (virtual frame)"""
    position: np.ndarray = field(default_factory=lambda: np.zeros(2))
    direction: float = 0.0   # degrees, counterclockwise positive

    @classmethod
    def between(cls, previous: FrameState, current: FrameState) -> "Delta":
        return cls(
            position=current.pos - previous.pos,
            direction=signed_angle(previous.dir, current.dir)
        )

    @property
    def distance(self) -> float:
        return float(np.linalg.norm(self.position))


@dataclass(frozen=True)
class PoseAdjustment:
    """
    Redirection injected into the tracked-space frame.

    rotation is applied about the user's head, translation afterwards.
    """
    translation: np.ndarray = field(default_factory=lambda: np.zeros(2))
    rotation: float = 0.0    # degrees

    def __post_init__(self):
        object.__setattr__(self, 'translation', np.asarray(self.translation, dtype=float).reshape(2))

    @classmethod
    def none(cls) -> "PoseAdjustment":
        return cls()

    @property
    def is_identity(self) -> bool:
        return self.rotation == 0.0 and not np.any(self.translation)

    def __add__(self, other: "PoseAdjustment") -> "PoseAdjustment":
        return PoseAdjustment(
            translation=self.translation + other.translation,
            rotation=self.rotation + other.rotation
        )


class StateBuffer:
    """
    Current/previous FrameState pair owned by the control loop.

    Strategies read it; only the RedirectionManager writes it.
    """

    def __init__(self):
        self.current: Optional[FrameState] = None
        self.previous: Optional[FrameState] = None
        self.delta = Delta()

    @property
    def is_initialized(self) -> bool:
        return self.current is not None and self.previous is not None

    def update_current(self, frame: FrameState):
        self.current = frame

    def update_previous(self, frame: FrameState):
        self.previous = frame

    def calculate_state_changes(self) -> Delta:
        """Recompute delta = current - previous"""
        if not self.is_initialized:
            raise RuntimeError("State buffer used before the first capture")
        self.delta = Delta.between(self.previous, self.current)
        return self.delta

    def reset(self, frame: FrameState):
        """Start over from a single snapshot (no motion yet)"""
        self.current = frame
        self.previous = frame
        self.delta = Delta()

"""
Entities Module
===============
The tracked user and the per-frame state derived from it.

- Pose / FrameState / Delta / StateBuffer: per-tick user state
- PoseTracker: raw head transform -> FrameState
- SimulatedHead / SimulatedWalker: auto-pilot user
"""

from .state import Pose, FrameState, Delta, PoseAdjustment, StateBuffer
from .tracking import HeadPoseSource, PoseTracker, SimulatedHead
from .walker import SimulatedWalker, WalkerConfig

__all__ = [
    'Pose',
    'FrameState',
    'Delta',
    'PoseAdjustment',
    'StateBuffer',
    'HeadPoseSource',
    'PoseTracker',
    'SimulatedHead',
    'SimulatedWalker',
    'WalkerConfig'
]

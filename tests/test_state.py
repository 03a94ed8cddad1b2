"""
Test Suite: User State
======================
Unit tests for per-frame snapshots and deltas.

Tests:
- Pose validation
- Delta computation
- StateBuffer lifecycle
- PoseTracker flattening and direction fallback
"""

import numpy as np
import pytest

from rdw.entities import (
    Pose,
    FrameState,
    Delta,
    PoseAdjustment,
    StateBuffer,
    PoseTracker,
    SimulatedHead
)
from rdw.geometry import TrackedSpace


def frame(pos, direction):
    pose = Pose(np.array(pos, dtype=float), np.array(direction, dtype=float))
    return FrameState(virtual=pose, real=pose)


class FixedHead:
    """Head pose source with a fixed transform"""

    def __init__(self, position, forward):
        self.position = np.array(position, dtype=float)
        self.forward = np.array(forward, dtype=float)


class TestPose:
    """Tests for Pose"""

    def test_direction_normalized(self):
        pose = Pose(np.zeros(2), np.array([0.0, 3.0]))
        np.testing.assert_array_almost_equal(pose.direction, [0.0, 1.0])

    def test_zero_direction_rejected(self):
        with pytest.raises(ValueError):
            Pose(np.zeros(2), np.zeros(2))


class TestDelta:
    """Tests for Delta"""

    def test_delta_between_frames(self):
        """(0,0) facing +z -> (1,2) facing +x: moved (1,2), turned -90"""
        delta = Delta.between(frame([0, 0], [0, 1]), frame([1, 2], [1, 0]))

        np.testing.assert_array_almost_equal(delta.position, [1.0, 2.0])
        assert delta.direction == pytest.approx(-90.0)
        assert delta.distance == pytest.approx(np.sqrt(5.0))

    def test_delta_uses_virtual_frame(self):
        previous = FrameState(
            virtual=Pose(np.zeros(2), np.array([0.0, 1.0])),
            real=Pose(np.zeros(2), np.array([0.0, 1.0]))
        )
        current = FrameState(
            virtual=Pose(np.array([0.0, 1.0]), np.array([0.0, 1.0])),
            real=Pose(np.array([5.0, 5.0]), np.array([1.0, 0.0]))
        )
        delta = Delta.between(previous, current)
        np.testing.assert_array_almost_equal(delta.position, [0.0, 1.0])
        assert delta.direction == pytest.approx(0.0)


class TestStateBuffer:
    """Tests for StateBuffer"""

    def test_changes_before_capture_raise(self):
        with pytest.raises(RuntimeError):
            StateBuffer().calculate_state_changes()

    def test_reset_gives_zero_delta(self):
        buffer = StateBuffer()
        buffer.reset(frame([1, 1], [1, 0]))

        delta = buffer.calculate_state_changes()
        assert delta.distance == 0.0
        assert delta.direction == 0.0

    def test_update_then_calculate(self):
        buffer = StateBuffer()
        buffer.reset(frame([0, 0], [0, 1]))
        buffer.update_current(frame([0, 0.5], [0, 1]))

        assert buffer.calculate_state_changes().distance == pytest.approx(0.5)
        assert buffer.delta.distance == pytest.approx(0.5)


class TestPoseAdjustment:
    """Tests for PoseAdjustment"""

    def test_none_is_identity(self):
        assert PoseAdjustment.none().is_identity
        assert not PoseAdjustment(rotation=1.0).is_identity

    def test_sum(self):
        total = PoseAdjustment(rotation=2.0) + PoseAdjustment(translation=[0.1, 0.0], rotation=-0.5)
        assert total.rotation == pytest.approx(1.5)
        np.testing.assert_array_almost_equal(total.translation, [0.1, 0.0])


class TestPoseTracker:
    """Tests for PoseTracker"""

    def test_capture_in_both_frames(self):
        space = TrackedSpace(origin=np.array([10.0, 0.0]), heading=90.0)
        head = FixedHead([10.0, 1.7, 2.0], [0.0, 0.0, 1.0])

        state = PoseTracker().capture(head, space)

        np.testing.assert_array_almost_equal(state.pos, [10.0, 2.0])
        np.testing.assert_array_almost_equal(state.dir, [0.0, 1.0])
        np.testing.assert_array_almost_equal(state.pos_real, [2.0, 0.0])
        np.testing.assert_array_almost_equal(state.dir_real, [1.0, 0.0])

    def test_looking_straight_down_keeps_last_direction(self):
        space = TrackedSpace()
        last = frame([0, 0], [-1, 0])
        head = FixedHead([0.0, 1.7, 0.0], [0.0, -1.0, 0.0])

        state = PoseTracker().capture(head, space, last=last)
        np.testing.assert_array_almost_equal(state.dir, [-1.0, 0.0])

    def test_simulated_head_follows_frame(self):
        """Moving the frame moves the virtual head, not the physical one"""
        space = TrackedSpace()
        head = SimulatedHead(space, local_position=np.array([1.0, 0.0]), local_heading=90.0)

        space.rotate_around(np.zeros(2), 90.0)
        state = PoseTracker().capture(head, space)

        np.testing.assert_array_almost_equal(state.pos_real, [1.0, 0.0])
        np.testing.assert_array_almost_equal(state.pos, [0.0, 1.0])
        np.testing.assert_array_almost_equal(state.dir, [-1.0, 0.0])

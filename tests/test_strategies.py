"""
Test Suite: Strategies
======================
Unit tests for the reference redirectors, resetters and the planner.

Tests:
- Strategy registry lookup
- Action-driven curvature
- Steer-to-center injection sign
- 2:1 turn reset decisions
- Background planning pause/resume semantics
"""

import numpy as np
import pytest

from rdw.ai import (
    REDIRECTORS,
    RESETTERS,
    resolve_strategy,
    RedirectionGains,
    NullRedirector,
    SteerToCenterRedirector,
    ActionRedirector,
    PlannedRedirector,
    NullResetter,
    TwoOneTurnResetter,
    PlanningTask
)
from rdw.entities import FrameState, Pose, SimulatedHead, StateBuffer
from rdw.geometry import RoomGeometry, TrackedSpace
from rdw.manager import RedirectionManager

DT = 1.0 / 60.0


def make_state(previous_pos, current_pos, direction):
    """StateBuffer with real == virtual and a straight-line step"""
    def frame(pos):
        pose = Pose(np.array(pos, dtype=float), np.array(direction, dtype=float))
        return FrameState(virtual=pose, real=pose)

    buffer = StateBuffer()
    buffer.reset(frame(previous_pos))
    buffer.update_current(frame(current_pos))
    buffer.calculate_state_changes()
    return buffer


class TestRegistry:
    """Tests for strategy lookup by name"""

    def test_known_names(self):
        assert resolve_strategy("s2c", REDIRECTORS) is SteerToCenterRedirector
        assert resolve_strategy("two_one_turn", RESETTERS) is TwoOneTurnResetter
        assert resolve_strategy(None, REDIRECTORS) is None

    def test_unknown_name_lists_available(self):
        with pytest.raises(KeyError, match="planned"):
            resolve_strategy("missing", REDIRECTORS)


class TestGains:
    """Tests for RedirectionGains validation"""

    def test_defaults(self):
        gains = RedirectionGains()
        assert gains.curvature_radius == pytest.approx(7.5)
        assert gains.max_rot_gain == pytest.approx(0.49)

    def test_non_positive_radius_rejected(self):
        with pytest.raises(ValueError):
            RedirectionGains(curvature_radius=0.0)


class TestActionRedirector:
    """Tests for curvature chosen by discrete actions"""

    @pytest.fixture
    def redirector(self):
        redirector = ActionRedirector()
        redirector.initialize(RoomGeometry())
        return redirector

    @pytest.fixture
    def walking(self):
        return make_state([0.0, 0.0], [0.0, 1.0], [0.0, 1.0])

    def test_none_action_is_identity(self, redirector, walking):
        assert redirector.apply_redirection(walking, DT).is_identity

    def test_large_left_injects_clockwise(self, redirector, walking):
        redirector.set_action(2)
        adjustment = redirector.apply_redirection(walking, DT)
        assert adjustment.rotation == pytest.approx(-np.degrees(1.0 / 7.5))

    def test_small_right_injects_half_counterclockwise(self, redirector, walking):
        redirector.set_action(3)
        adjustment = redirector.apply_redirection(walking, DT)
        assert adjustment.rotation == pytest.approx(0.5 * np.degrees(1.0 / 7.5))

    def test_unknown_action_rejected(self, redirector):
        with pytest.raises(ValueError):
            redirector.set_action(5)

    def test_standing_still_injects_nothing(self, redirector):
        redirector.set_action(4)
        standing = make_state([1.0, 1.0], [1.0, 1.0], [0.0, 1.0])
        assert redirector.apply_redirection(standing, DT).rotation == pytest.approx(0.0)


class TestSteerToCenter:
    """Tests for steer-to-center"""

    @pytest.fixture
    def redirector(self):
        redirector = SteerToCenterRedirector()
        redirector.initialize(RoomGeometry())
        return redirector

    def test_walking_past_center_steers_toward_it(self, redirector):
        """Center is to the user's left: inject clockwise so the path bends left"""
        state = make_state([3.0, 0.0], [3.0, DT], [0.0, 1.0])
        adjustment = redirector.apply_redirection(state, DT)

        assert adjustment.rotation == pytest.approx(-np.degrees(DT / 7.5))

    def test_center_is_identity(self, redirector):
        state = make_state([0.0, 0.0], [0.0, 0.0], [0.0, 1.0])
        assert redirector.apply_redirection(state, DT).is_identity

    def test_standing_injects_nothing(self, redirector):
        state = make_state([3.0, 0.0], [3.0, 0.0], [0.0, 1.0])
        assert redirector.apply_redirection(state, DT).rotation == pytest.approx(0.0)

    def test_null_redirector_identity(self):
        state = make_state([3.0, 0.0], [3.0, 1.0], [0.0, 1.0])
        assert NullRedirector().apply_redirection(state, DT).is_identity


class TestResetters:
    """Tests for reset decisions"""

    @pytest.fixture
    def setup(self):
        space = TrackedSpace(RoomGeometry(10.0, 10.0))
        head = SimulatedHead(space)
        manager = RedirectionManager(head, space, resetter=TwoOneTurnResetter())
        return manager, head

    def test_out_of_bounds_uses_buffered_limits(self):
        resetter = TwoOneTurnResetter(trigger_buffer=0.5)
        resetter.initialize(RoomGeometry(10.0, 6.0))

        assert not resetter.is_user_out_of_bounds(make_state([0, 0], [4.4, 2.4], [0, 1]))
        assert resetter.is_user_out_of_bounds(make_state([0, 0], [0.0, 2.6], [0, 1]))

    def test_facing_wall_requires_reset(self, setup):
        manager, head = setup
        head.place(np.array([4.8, 0.0]), local_heading=0.0)
        manager.start()
        assert manager.resetter.is_reset_required()

    def test_facing_center_needs_no_reset(self, setup):
        manager, head = setup
        head.place(np.array([4.8, 0.0]), local_heading=180.0)
        manager.start()
        assert not manager.resetter.is_reset_required()

    def test_turns_short_way_to_center(self, setup):
        """Facing +z at the +x wall: the center is to the left (ccw)"""
        manager, head = setup
        head.place(np.array([4.8, 0.0]), local_heading=80.0)
        manager.start()

        manager.resetter.initialize_reset()
        assert manager.resetter.turn_direction == 1.0

    def test_oblique_approach_requires_reset(self, setup):
        """Walking diagonally into the +x wall from the -z half of the room"""
        manager, head = setup
        head.place(np.array([4.8, -3.0]), local_heading=60.0)
        manager.start()
        assert manager.resetter.is_reset_required()

    def test_oblique_retreat_needs_no_reset(self, setup):
        manager, head = setup
        head.place(np.array([4.8, -3.0]), local_heading=200.0)
        manager.start()
        assert not manager.resetter.is_reset_required()

    def test_walking_along_crossed_wall_requires_reset(self, setup):
        manager, head = setup
        head.place(np.array([4.8, 0.0]), local_heading=90.0)
        manager.start()
        assert manager.resetter.is_reset_required()

    @pytest.mark.parametrize("heading,required", [
        (135.0, True),     # leaving the x wall but still facing the z wall
        (225.0, False),    # facing away from both walls
    ])
    def test_corner_checks_both_walls(self, setup, heading, required):
        manager, head = setup
        head.place(np.array([4.8, 4.8]), local_heading=heading)
        manager.start()
        assert manager.resetter.is_reset_required() == required

    def test_turn_direction_follows_wall_normal(self, setup):
        """Slightly clockwise of the +x normal: clockwise is the short way round"""
        manager, head = setup
        head.place(np.array([4.8, -3.0]), local_heading=350.0)
        manager.start()

        manager.resetter.initialize_reset()
        assert manager.resetter.turn_direction == -1.0

    def test_null_resetter_never_required(self):
        assert not NullResetter().is_reset_required()


class TestPlanningTask:
    """Tests for the background planner in deterministic mode"""

    @pytest.fixture
    def task(self):
        counter = iter(range(100))
        return PlanningTask(lambda: next(counter), threaded=False)

    def test_publish(self, task):
        assert task.latest() is None
        assert task.run_once()
        assert task.latest() == 0

    def test_paused_hides_and_skips(self, task):
        task.run_once()
        task.pause()

        assert task.is_paused()
        assert task.latest() is None
        assert not task.run_once()

    def test_resume_starts_fresh(self, task):
        task.run_once()
        task.pause()
        task.resume()

        assert not task.is_paused()
        assert task.latest() is None
        task.run_once()
        assert task.latest() == 1

    def test_plan_finished_after_pause_discarded(self):
        holder = {}

        def plan():
            holder['task'].pause()
            return "stale"

        task = PlanningTask(plan, threaded=False)
        holder['task'] = task

        assert not task.run_once()
        assert task.plans_discarded == 1
        task.resume()
        assert task.latest() is None

    def test_threaded_start_stop(self):
        task = PlanningTask(lambda: 1, interval=0.01)
        task.start()
        assert task.is_alive()
        task.stop()
        assert not task.is_alive()


class TestPlannedRedirector:
    """Tests for the planned redirector"""

    @pytest.fixture
    def redirector(self):
        redirector = PlannedRedirector(threaded=False)
        redirector.initialize(RoomGeometry(10.0, 10.0))
        return redirector

    def test_heading_for_wall_steers_hard(self, redirector):
        """Walking fast toward the +x wall: full curvature back toward the center"""
        state = make_state([3.9, 0.0], [4.0, 0.0], [1.0, 0.0])
        adjustment = redirector.apply_redirection(state, 0.1)

        assert adjustment.rotation == pytest.approx(-np.degrees(0.1 / 7.5))

    def test_paused_injects_nothing(self, redirector):
        redirector.pause()
        state = make_state([3.9, 0.0], [4.0, 0.0], [1.0, 0.0])

        assert redirector.is_paused()
        assert redirector.apply_redirection(state, 0.1).is_identity

    def test_release_stops_thread(self):
        redirector = PlannedRedirector(threaded=True, interval=0.01)
        redirector.initialize(RoomGeometry())
        assert redirector.task.is_alive()

        redirector.release()
        assert not redirector.task.is_alive()

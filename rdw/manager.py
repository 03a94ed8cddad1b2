"""
Redirection Manager
===================
The per-frame control loop of the redirected walking system.

Each tick (late_update), in strict order:
1. Capture the current FrameState from the head (PoseTracker)
2. Compute deltas against the previous FrameState
3. Backup out-of-bounds check through the resetter ("reset aid")
4. Dispatch: apply_resetting() while resetting, else apply_redirection()
5. Inject the returned PoseAdjustment into the tracked-space frame
6. Archive the post-injection FrameState as previous

Control states:

    REDIRECTING --on_reset_trigger() [resetter.is_reset_required()]--> RESETTING
    RESETTING   --on_reset_end()-------------------------------------> REDIRECTING

The manager is the shared context strategies are bound to: they read
manager.state and manager.room, and only the manager writes them.
"""

import logging
import numpy as np
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Optional, Union

from .ai import REDIRECTORS, RESETTERS, resolve_strategy
from .ai.redirectors import Redirector, RedirectionGains
from .ai.resetters import Resetter
from .entities.state import PoseAdjustment, StateBuffer
from .entities.tracking import HeadPoseSource, PoseTracker
from .geometry.boundary import ResetSource, ResetTrigger
from .geometry.tracked_space import RoomGeometry, TrackedSpace
from .geometry.vectors import flatten_position, flatten_direction

logger = logging.getLogger(__name__)

RedirectorKind = Union[str, type, Redirector, None]
ResetterKind = Union[str, type, Resetter, None]


class ControlState(Enum):
    """Which strategy family owns the tick"""
    REDIRECTING = "redirecting"
    RESETTING = "resetting"


@dataclass
class SessionStats:
    """Running counters for one manager session"""
    ticks: int = 0
    resets: int = 0
    reset_aids: int = 0            # Resets started by the backup check
    declined_resets: int = 0       # Requests the resetter turned down
    virtual_distance: float = 0.0  # m
    real_distance: float = 0.0     # m
    injected_rotation: float = 0.0 # deg, absolute sum


class RedirectionManager:
    """
    Dispatches every tick to exactly one of the active redirector or
    resetter, and owns the transitions between the two.

    A strategy may be None ("no strategy"): its per-tick calls are
    skipped, and with no resetter boundary violations never reset.
    """

    def __init__(self,
                 head: HeadPoseSource,
                 tracked_space: TrackedSpace,
                 redirector: RedirectorKind = None,
                 resetter: ResetterKind = None,
                 reset_trigger: Optional[ResetTrigger] = None,
                 gains: Optional[RedirectionGains] = None,
                 trigger_buffer: float = 0.5):
        self.head = head
        self.tracked_space = tracked_space
        self.gains = gains or RedirectionGains()
        self.trigger_buffer = trigger_buffer

        self.tracker = PoseTracker()
        self.state = StateBuffer()
        self.in_reset = False
        self.stats = SessionStats()
        self.last_adjustment = PoseAdjustment.none()

        self.body_position = np.zeros(2)
        self.body_direction = np.array([0.0, 1.0])

        self.redirector: Optional[Redirector] = None
        self.resetter: Optional[Resetter] = None
        # A declined reset aid is reported once per out-of-bounds excursion
        self._aid_declined = False

        self.start()

        # Reset trigger must be initialized before the resetter
        self.reset_trigger = reset_trigger
        if reset_trigger is not None:
            reset_trigger.add_listener(self.on_reset_trigger)
            reset_trigger.initialize(self.room)

        self._install_redirector(self._build(redirector, REDIRECTORS, Redirector))
        self._install_resetter(self._build(resetter, RESETTERS, Resetter))

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def room(self) -> RoomGeometry:
        return self.tracked_space.room

    @property
    def control_state(self) -> ControlState:
        return ControlState.RESETTING if self.in_reset else ControlState.REDIRECTING

    # =========================================================================
    # TICK
    # =========================================================================

    def start(self):
        """Capture the initial state; current == previous, zero delta"""
        frame = self.tracker.capture(self.head, self.tracked_space, last=self.state.current)
        self.state.reset(frame)
        self._aid_declined = False
        self._update_body_pose()

    def late_update(self, dt: float) -> Dict:
        """
        Run one tick of the control loop.

        Returns telemetry for the host (display, logging, training).
        """
        current = self.tracker.capture(self.head, self.tracked_space, last=self.state.current)
        self.state.update_current(current)
        delta = self.state.calculate_state_changes()

        # Backup in case the trigger failed to fire (fast or teleported motion)
        if self.resetter is not None and not self.in_reset:
            if not self.resetter.is_user_out_of_bounds(self.state):
                self._aid_declined = False
            elif self.on_reset_trigger(ResetSource.RESET_AID):
                self.stats.reset_aids += 1
                logger.warning("Reset aid helped: out-of-bounds user reached the tick "
                               "without a trigger event at %s", np.round(current.pos_real, 3))

        dispatched = None
        adjustment = PoseAdjustment.none()
        if self.in_reset:
            if self.resetter is not None:
                adjustment = self.resetter.apply_resetting(self.state, dt)
                dispatched = ControlState.RESETTING
        else:
            if self.redirector is not None:
                adjustment = self.redirector.apply_redirection(self.state, dt)
                dispatched = ControlState.REDIRECTING

        self._apply_adjustment(adjustment)
        self.last_adjustment = adjustment

        previous = self.state.previous
        self.state.update_previous(
            self.tracker.capture(self.head, self.tracked_space, last=current)
        )
        self._update_body_pose()

        self.stats.ticks += 1
        self.stats.virtual_distance += delta.distance
        self.stats.real_distance += float(np.linalg.norm(current.pos_real - previous.pos_real))
        self.stats.injected_rotation += abs(adjustment.rotation)

        return {
            'state': self.control_state.value,
            'dispatched': dispatched.value if dispatched else None,
            'position': current.pos.tolist(),
            'position_real': current.pos_real.tolist(),
            'delta_position': delta.position.tolist(),
            'delta_direction': delta.direction,
            'injected_rotation': adjustment.rotation,
            'injected_translation': adjustment.translation.tolist(),
            'stats': asdict(self.stats)
        }

    def _apply_adjustment(self, adjustment: PoseAdjustment):
        if adjustment.is_identity:
            return
        pivot = flatten_position(self.head.position)
        self.tracked_space.rotate_around(pivot, adjustment.rotation)
        self.tracked_space.translate(adjustment.translation)

    def _update_body_pose(self):
        self.body_position = flatten_position(self.head.position)
        self.body_direction = flatten_direction(self.head.forward, fallback=self.body_direction)

    # =========================================================================
    # RESET STATE MACHINE
    # =========================================================================

    def on_reset_trigger(self, source: ResetSource = ResetSource.MANUAL) -> bool:
        """
        Request REDIRECTING -> RESETTING.

        Returns True if a reset was started. Ignored while already
        resetting; refused when there is no resetter or it reports no
        reset is needed.
        """
        if self.in_reset:
            logger.debug("Reset trigger (%s) ignored: already resetting", source.value)
            return False

        # Trigger events arrive between ticks: decide on the live head pose
        self.state.update_current(
            self.tracker.capture(self.head, self.tracked_space, last=self.state.current)
        )

        if self.resetter is None or not self.resetter.is_reset_required():
            self._note_declined(source)
            return False

        self._aid_declined = False

        self.resetter.initialize_reset()
        self.in_reset = True
        self.stats.resets += 1

        if self.redirector is not None:
            self.redirector.pause()
        logger.info("Reset started (%s) with %s", source.value, self.resetter.name)
        return True

    def _note_declined(self, source: ResetSource):
        if source == ResetSource.RESET_AID:
            if self._aid_declined:
                logger.debug("Reset aid declined again")
                return
            self._aid_declined = True
        self.stats.declined_resets += 1
        logger.info("Reset requested (%s) but not required", source.value)

    def on_reset_end(self):
        """RESETTING -> REDIRECTING; called when the maneuver completes"""
        if not self.in_reset:
            return
        if self.resetter is not None:
            self.resetter.finalize_reset()
        self.in_reset = False

        if self.redirector is not None:
            self.redirector.resume()
        logger.info("Reset ended")

    # =========================================================================
    # STRATEGY REGISTRY
    # =========================================================================

    def _build(self, kind, registry, base):
        if isinstance(kind, base):
            return kind
        cls = resolve_strategy(kind, registry)
        if cls is None:
            return None
        if issubclass(cls, Resetter):
            return cls(trigger_buffer=self.trigger_buffer)
        return cls()

    def _install_redirector(self, redirector: Optional[Redirector]):
        self.redirector = redirector
        if redirector is None:
            return
        redirector.bind(self)
        redirector.initialize(self.room)
        if self.in_reset:
            redirector.pause()

    def _install_resetter(self, resetter: Optional[Resetter]):
        self.resetter = resetter
        if resetter is None:
            return
        resetter.bind(self)
        resetter.initialize(self.room)

    def update_redirector(self, kind: RedirectorKind) -> Optional[Redirector]:
        """Tear down the active redirector and install a new one (or none)"""
        replacement = self._build(kind, REDIRECTORS, Redirector)
        if self.redirector is not None:
            self.redirector.release()
        self.redirector = None
        self._install_redirector(replacement)
        logger.info("Redirector set to %s", replacement.name if replacement else None)
        return replacement

    def update_resetter(self, kind: ResetterKind) -> Optional[Resetter]:
        """Tear down the active resetter and install a new one (or none)"""
        replacement = self._build(kind, RESETTERS, Resetter)
        if self.in_reset:
            self.on_reset_end()
        if self.resetter is not None:
            self.resetter.release()
        self.resetter = None
        self._install_resetter(replacement)
        logger.info("Resetter set to %s", replacement.name if replacement else None)
        return replacement

    # =========================================================================
    # GEOMETRY
    # =========================================================================

    def update_tracked_space_dimensions(self, width: float, depth: float):
        """
        Resize the tracked room.

        Re-initializes, in this order: reset trigger, redirector, resetter.
        """
        room = RoomGeometry(width, depth)   # validates before anything changes
        self.tracked_space.room = room

        if self.reset_trigger is not None:
            self.reset_trigger.initialize(room)
        if self.redirector is not None:
            self.redirector.initialize(room)
        if self.resetter is not None:
            self.resetter.initialize(room)
        logger.info("Tracked space resized to %.2f x %.2f", width, depth)

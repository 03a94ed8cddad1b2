"""
Redirected Walking - Main Simulation
====================================
Entry point for running the redirection loop with a simulated user.

RedirectionSimulation wires the host side around the RedirectionManager:
- SimulationClock: fixed-step or wall-clock time
- SimulatedHead + SimulatedWalker: auto-pilot user
- ResetTrigger: trip-wire polled like a physics step, before the loop

Usage:
    python -m rdw.main                # run with config/simulation_params.yaml
    python -m rdw.main resize         # demo: resize the room mid-run
    python -m rdw.main swap           # demo: swap strategies mid-run
"""

import argparse
import logging
import time
import numpy as np
from typing import Callable, Dict, Optional

from .ai.redirectors import RedirectionGains
from .config import load_config
from .entities.tracking import SimulatedHead
from .entities.walker import SimulatedWalker, WalkerConfig
from .geometry.boundary import ResetTrigger
from .geometry.tracked_space import RoomGeometry, TrackedSpace
from .geometry.vectors import flatten_position
from .manager import RedirectionManager, RedirectorKind, ResetterKind

logger = logging.getLogger(__name__)


class SimulationClock:
    """
    Time source for the loop.

    Manual mode advances exactly 1/target_fps per tick (deterministic
    batch runs); otherwise the wall clock is used.
    """

    def __init__(self, use_manual_time: bool = True, target_fps: float = 60.0):
        if target_fps <= 0:
            raise ValueError(f"target_fps must be positive, got {target_fps}")
        self.use_manual_time = use_manual_time
        self.target_fps = target_fps
        self.simulated_time = 0.0
        self._dt = 1.0 / target_fps
        self._wall_start = time.perf_counter()
        self._wall_last: Optional[float] = None

    def tick(self) -> float:
        """Advance one frame and return its delta time"""
        if self.use_manual_time:
            self._dt = 1.0 / self.target_fps
        else:
            now = time.perf_counter()
            self._dt = (now - self._wall_last) if self._wall_last is not None else 1.0 / self.target_fps
            self._wall_last = now
        self.simulated_time += self._dt
        return self._dt

    def delta_time(self) -> float:
        return self._dt

    def time(self) -> float:
        if self.use_manual_time:
            return self.simulated_time
        return time.perf_counter() - self._wall_start

    def reset(self):
        self.simulated_time = 0.0
        self._wall_start = time.perf_counter()
        self._wall_last = None


class RedirectionSimulation:
    """
    Simulated redirected walking session.

    Orchestrates:
    - Walker motion (physical head pose)
    - Trip-wire polling
    - The RedirectionManager tick
    """

    def __init__(self,
                 config_path: Optional[str] = None,
                 config: Optional[Dict] = None,
                 redirector: RedirectorKind = "config",
                 resetter: ResetterKind = "config"):
        self.config = config if config is not None else load_config(config_path)

        room_cfg = self.config['room']
        room = RoomGeometry(room_cfg['width'], room_cfg['depth'])
        self.tracked_space = TrackedSpace(room)

        self.head = SimulatedHead(self.tracked_space)
        walker_cfg = self.config['walker']
        self.walker = SimulatedWalker(
            self.head,
            WalkerConfig(
                speed=walker_cfg['speed'],
                angular_speed=walker_cfg['angular_speed'],
                waypoint_distance=walker_cfg['waypoint_distance']
            ),
            seed=walker_cfg.get('seed')
        )

        sim_cfg = self.config['simulation']
        self.clock = SimulationClock(sim_cfg['use_manual_time'], sim_cfg['target_fps'])

        buffer = self.config['reset']['trigger_buffer']
        self.reset_trigger = ResetTrigger(buffer)

        strategies = self.config['strategies']
        self.manager = RedirectionManager(
            self.head,
            self.tracked_space,
            redirector=strategies['redirector'] if redirector == "config" else redirector,
            resetter=strategies['resetter'] if resetter == "config" else resetter,
            reset_trigger=self.reset_trigger,
            gains=RedirectionGains(**self.config['gains']),
            trigger_buffer=buffer
        )

        self.running = False
        logger.info("Simulation ready: %.1fx%.1f m room, redirector=%s, resetter=%s",
                    room.width, room.depth,
                    self.manager.redirector.name if self.manager.redirector else None,
                    self.manager.resetter.name if self.manager.resetter else None)

    def step(self) -> Dict:
        """
        Execute one frame.

        Returns telemetry from the manager plus the simulated time.
        """
        dt = self.clock.tick()

        reset_turn = None
        if self.manager.in_reset and self.manager.resetter is not None:
            reset_turn = self.manager.resetter.turn_direction
        self.walker.walk_update(dt, reset_turn=reset_turn)

        self.reset_trigger.update(self.real_position())

        telemetry = self.manager.late_update(dt)
        telemetry['time'] = self.clock.time()
        return telemetry

    def real_position(self) -> np.ndarray:
        return self.tracked_space.to_local_point(flatten_position(self.head.position))

    def place_user(self, local_position: np.ndarray, local_heading: Optional[float] = None):
        """
        Teleport the physical user, ending any reset in progress.

        The tracked-space frame is left where it is; current and previous
        state are re-captured so the jump does not show up as a delta.
        """
        if self.manager.in_reset:
            self.manager.on_reset_end()
        self.head.place(local_position, local_heading)
        self.walker.reset()
        self.reset_trigger.rearm(self.real_position())
        self.manager.start()

    def run(self, duration: Optional[float] = None, callback: Optional[Callable[[Dict], None]] = None):
        """
        Run simulation for specified duration.

        Args:
            duration: Simulated seconds (default from config)
            callback: Optional function called each step with telemetry
        """
        if duration is None:
            duration = self.config['simulation']['duration']

        self.running = True
        start_time = time.time()
        start_sim = self.clock.time()

        print(f"Starting redirected walking simulation - Duration: {duration}s")
        print("=" * 50)

        last_report = -1
        telemetry = None
        while self.clock.time() - start_sim < duration and self.running:
            telemetry = self.step()

            if callback:
                callback(telemetry)

            # Progress update every simulated second
            second = int(self.clock.time() - start_sim)
            if second != last_report:
                last_report = second
                self._print_status(telemetry)

        real_time = time.time() - start_time
        print("=" * 50)
        print(f"Simulation complete. Sim time: {self.clock.time():.2f}s, Real time: {real_time:.2f}s")
        if telemetry is not None:
            stats = telemetry['stats']
            print(f"Resets: {stats['resets']} (aided: {stats['reset_aids']}) | "
                  f"Virtual distance: {stats['virtual_distance']:.1f}m | "
                  f"Real distance: {stats['real_distance']:.1f}m")

    def close(self):
        """Stop the run and tear down both strategies"""
        self.running = False
        self.manager.update_redirector(None)
        self.manager.update_resetter(None)

    def _print_status(self, telemetry: Dict):
        """Print compact status line"""
        x, z = telemetry['position_real']
        print(f"T={telemetry['time']:6.1f}s | "
              f"Real: ({x:5.2f}, {z:5.2f}) | "
              f"State: {telemetry['state']:11s} | "
              f"Resets: {telemetry['stats']['resets']}")


def demo_resize(sim: RedirectionSimulation):
    """Demonstration: shrink the room halfway through a run"""
    sim.run(duration=10.0)
    room = sim.manager.room
    print(f"\nResizing room {room.width:.1f}x{room.depth:.1f} -> 6.0x6.0\n")
    sim.manager.update_tracked_space_dimensions(6.0, 6.0)
    sim.run(duration=10.0)


def demo_swap(sim: RedirectionSimulation):
    """Demonstration: switch from steer-to-center to the planned redirector"""
    sim.run(duration=10.0)
    print("\nSwapping redirector -> planned\n")
    sim.manager.update_redirector("planned")
    sim.run(duration=10.0)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Redirected walking simulation")
    parser.add_argument("demo", nargs="?", choices=["run", "resize", "swap"], default="run")
    parser.add_argument("--config", type=str, default=None, help="YAML config file")
    parser.add_argument("--duration", type=float, default=None, help="Simulated seconds")
    parser.add_argument("--log-level", type=str, default="WARNING")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    sim = RedirectionSimulation(args.config)
    try:
        if args.demo == "resize":
            demo_resize(sim)
        elif args.demo == "swap":
            demo_swap(sim)
        else:
            sim.run(duration=args.duration)
    finally:
        sim.close()


if __name__ == "__main__":
    main()

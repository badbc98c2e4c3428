#!/usr/bin/env python3
"""
Path follower

Drives the robot toward the points of a pre-loaded path using the pose from an
odometry aggregator. The follower does one control iteration per ``step()``;
an external scheduler (a ROS timer, or ``run()``) decides when to call it.
"""

import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from .geometry import PathPoint, Point, Pose
from .path import Path
from .utils import shortest_turn

DEFAULT_CLOSE_ENOUGH_DISTANCE = 10.0


class PoseProvider(Protocol):
    def get_position(self) -> Pose:
        ...


class Drivetrain(Protocol):
    def drive(self, forward: float, strafe: float, rotation: float):
        ...


class FollowStatus(Enum):
    CONTINUE = 'continue'
    DONE = 'done'
    STUCK = 'stuck'
    CANCELLED = 'cancelled'

    @property
    def terminal(self) -> bool:
        return self is not FollowStatus.CONTINUE


@dataclass(frozen=True)
class DriveCommand:
    """Body-frame command sent to the drivetrain"""
    forward: float
    strafe: float
    rotation: float

    def translation(self) -> float:
        return math.hypot(self.forward, self.strafe)


STOP = DriveCommand(0.0, 0.0, 0.0)


class Follower:
    """
    Follows a path point by point

    The target index only moves forward: each step it jumps to the first point
    at or after the current target that is within ``close_enough_distance``.
    """

    def __init__(
        self,
        odometry: PoseProvider,
        drivetrain: Drivetrain,
        path: Path,
        close_enough_distance: float = DEFAULT_CLOSE_ENOUGH_DISTANCE,
        advance_on_arrival: bool = False,
        stuck_timeout: Optional[float] = None,
        progress_tolerance: float = 1e-3,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[Any] = None
    ):
        """
        Args:
            odometry: Running odometry, used for positioning
            drivetrain: Receives body-frame (forward, strafe, rotation) commands
            path (Path): Path to follow
            close_enough_distance (float): Distance at which a point counts as reached
            advance_on_arrival (bool): Once the target is reached, aim at the next point
            stuck_timeout (float): Seconds without progress before giving up, None to disable
            progress_tolerance (float): Distance gain toward the target that counts as progress
            clock (Callable): Monotonic time source in seconds
            logger: Optional logger with rclpy logger methods (info, warn, debug)
        """
        if close_enough_distance <= 0:
            raise ValueError("close_enough_distance must be positive")
        if stuck_timeout is not None and stuck_timeout <= 0:
            raise ValueError("stuck_timeout must be positive or None")

        self.odometry = odometry
        self.drivetrain = drivetrain
        self.path = path
        self.close_enough_distance = close_enough_distance
        self.advance_on_arrival = advance_on_arrival
        self.stuck_timeout = stuck_timeout
        self.progress_tolerance = progress_tolerance
        self.clock = clock
        self.logger = logger

        # index of current target point
        self._index = 0
        self._status = FollowStatus.CONTINUE
        self._last_command: Optional[DriveCommand] = None
        self._best_distance = math.inf
        self._last_progress_time: Optional[float] = None

    @property
    def index(self) -> int:
        return self._index

    @property
    def target(self) -> PathPoint:
        return self.path[self._index]

    @property
    def status(self) -> FollowStatus:
        return self._status

    @property
    def last_command(self) -> Optional[DriveCommand]:
        return self._last_command

    def step(self) -> FollowStatus:
        """
        Run one control iteration

        Returns:
            FollowStatus: CONTINUE while following, otherwise the terminal status
        """
        if self._status.terminal:
            return self._status

        now = self.clock()
        if self._last_progress_time is None:
            self._last_progress_time = now

        position = self.odometry.get_position()
        here = position.point()

        # if close enough advance
        previous = self._index
        for j in range(self._index, len(self.path)):
            if self.path[j].dist_to(here) < self.close_enough_distance:
                self._index = j
                break

        last = len(self.path) - 1
        reached = self.path[self._index].dist_to(here) < self.close_enough_distance
        if reached and self._index == last:
            return self.abort(FollowStatus.DONE)
        if reached and self.advance_on_arrival:
            self._index += 1

        if self._index != previous:
            self._on_progress(now)
            self._log('info', f"Target point {self._index}/{last}: {self.path[self._index]}")

        distance = self.target.dist_to(here)
        if distance < self._best_distance - self.progress_tolerance:
            self._best_distance = distance
            self._last_progress_time = now
        elif self.stuck_timeout is not None and now - self._last_progress_time > self.stuck_timeout:
            self._log('warn', f"No progress toward point {self._index} for {self.stuck_timeout:.1f}s")
            return self.abort(FollowStatus.STUCK)

        self._send(self.command_toward(position, self.target))
        return self._status

    @staticmethod
    def command_toward(position: Pose, target: PathPoint) -> DriveCommand:
        """Body-frame command moving ``position`` toward ``target``"""
        rot_diff = shortest_turn(position.r, target.dir, math.pi * 2)
        trans_diff = Point(target.x - position.x, target.y - position.y).scale(target.speed)
        trans_diff_intrinsic = trans_diff.rotate(-position.r)
        return DriveCommand(trans_diff_intrinsic.x, trans_diff_intrinsic.y, rot_diff)

    def abort(self, status: FollowStatus) -> FollowStatus:
        """Stop the drivetrain and end following with ``status``"""
        if not status.terminal:
            raise ValueError("abort() needs a terminal status")
        if self._status.terminal:
            return self._status

        self._send(STOP)
        self._status = status
        self._log('info', f"Path following finished: {status.value} at point {self._index}")
        return status

    def run(
        self,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        period: float = 0.0,
        sleep: Callable[[float], None] = time.sleep
    ) -> FollowStatus:
        """
        Step until a terminal status

        Args:
            timeout (float): Seconds before giving up with STUCK, None for no limit
            cancel_event (threading.Event): Set it to end with CANCELLED
            period (float): Seconds between steps
            sleep (Callable): Sleep function used between steps

        Returns:
            FollowStatus: DONE, STUCK or CANCELLED
        """
        deadline = None if timeout is None else self.clock() + timeout

        while not self._status.terminal:
            if cancel_event is not None and cancel_event.is_set():
                return self.abort(FollowStatus.CANCELLED)
            if deadline is not None and self.clock() >= deadline:
                self._log('warn', f"Path following timed out after {timeout:.1f}s")
                return self.abort(FollowStatus.STUCK)

            if self.step().terminal:
                break
            if period > 0:
                sleep(period)

        return self._status

    def _on_progress(self, now: float):
        self._best_distance = math.inf
        self._last_progress_time = now

    def _send(self, command: DriveCommand):
        self._last_command = command
        self.drivetrain.drive(command.forward, command.strafe, command.rotation)

    def _log(self, level: str, message: str):
        if self.logger is not None:
            getattr(self.logger, level)(message)

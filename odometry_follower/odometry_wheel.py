"""
Odometry wheel geometry

An odometry wheel is an encoder-equipped wheel fixed to the robot at a known
offset. The offset holds the mounting position relative to the robot's
reference origin (not necessarily the center of rotation) and the direction the
wheel faces, in trig coordinates. For an axially mounted wheel, pick the facing
angle pointing toward the POSITIVE direction of its rotation axis.

Besides delta tracking, the wheel converts between the linear distance it rolls
and the rotation of the whole robot about an arbitrary center of rotation.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .encoder_source import TickSource
from .geometry import Pose
from .utils import ticks_to_distance

# Angular band (radians) around pi/2 + k*pi inside which the projection
# cosine is treated as exactly zero.
COSINE_SNAP_TOLERANCE = 0.01


class DeltaNotReadyError(RuntimeError):
    """Raised when a delta is queried before the first update_delta call"""


@dataclass(frozen=True)
class WheelDelta:
    """Read-only copy of a wheel's last delta"""
    name: str
    ticks: int
    position: float


class OdometryWheel:
    """
    One odometry wheel and its geometric conversions

    Not thread-safe: delta tracking belongs to the single control task that
    calls ``update_delta``. Other readers should use ``snapshot()``.
    """

    def __init__(
        self,
        source: TickSource,
        offset: Pose,
        ticks_per_rev: int = 1024,
        radius: float = 3.0,
        name: str = "wheel",
        cosine_tolerance: float = COSINE_SNAP_TOLERANCE
    ):
        """
        Args:
            source: Raw tick source of this wheel's encoder
            offset (Pose): Mounting position and facing angle on the robot
            ticks_per_rev (int): Encoder ticks per wheel revolution
            radius (float): Wheel radius
            name (str): Wheel name for identification
            cosine_tolerance (float): Snap band for near-perpendicular projections
        """
        if ticks_per_rev <= 0:
            raise ValueError("ticks_per_rev must be positive")
        if radius <= 0:
            raise ValueError("radius must be positive")
        if cosine_tolerance < 0:
            raise ValueError("cosine_tolerance must not be negative")

        self.source = source
        self.offset = offset
        self.ticks_per_rev = ticks_per_rev
        self.radius = radius
        self.name = name
        self.cosine_tolerance = cosine_tolerance

        self._prev_ticks = 0
        self._delta_ticks: Optional[int] = None

    def update_delta(self) -> int:
        """
        Request and calculate the change in ticks of this wheel

        Call once per control cycle, before any delta query for that cycle.

        Returns:
            int: Ticks counted since the previous call
        """
        measurement = self.source.get_raw()
        self._delta_ticks = measurement - self._prev_ticks
        self._prev_ticks = measurement
        return self._delta_ticks

    def reset(self):
        """Start counting from the source's current reading"""
        self._prev_ticks = self.source.get_raw()
        self._delta_ticks = None

    def get_delta_ticks(self) -> int:
        """
        Returns:
            int: Difference in ticks between the two most recent update_delta calls
        """
        if self._delta_ticks is None:
            raise DeltaNotReadyError(
                f"Wheel '{self.name}': update_delta() must be called before reading deltas"
            )
        return self._delta_ticks

    def get_delta_position(self) -> float:
        """Distance rolled by the wheel during the last cycle"""
        return ticks_to_distance(self.get_delta_ticks(), self.ticks_per_rev, self.radius)

    def snapshot(self) -> WheelDelta:
        return WheelDelta(self.name, self.get_delta_ticks(), self.get_delta_position())

    def distance_traveled_towards_angle(self, delta_position: float, target_angle: float) -> float:
        """
        Distance the robot moved along ``target_angle`` given this wheel rolled
        ``delta_position`` along its own facing

        A wheel perpendicular to the target direction tells nothing about motion
        along it; inside the snap band the result is 0.0.
        """
        cos = self._cos(target_angle - self.offset.r)
        if cos == 0.0:
            return 0.0
        return delta_position / cos

    def dot_product(self, bot_trans_mag: float, bot_trans_dir: float) -> float:
        """
        Part of a robot translation this wheel senses (bot vector DOT wheel vector)

        Inverse of distance_traveled_towards_angle.
        """
        return bot_trans_mag * math.cos(bot_trans_dir - self.offset.r)

    def cc_tangent_dir(self, x_center: float, y_center: float) -> float:
        """Counter-clockwise tangent direction at the wheel for rotation about a center"""
        direction_from_center = math.atan2(self.offset.y - y_center, self.offset.x - x_center)
        return direction_from_center + math.pi / 2

    def radius_from_center(self, x_center: float, y_center: float) -> float:
        return math.hypot(self.offset.x - x_center, self.offset.y - y_center)

    def arclength_to_angle(self, arclength: float, x_center: float, y_center: float) -> float:
        radius = self.radius_from_center(x_center, y_center)
        if radius == 0.0:
            raise ValueError(
                f"Wheel '{self.name}' sits on the center of rotation ({x_center}, {y_center})"
            )
        return arclength / radius

    def angle_to_arclength(self, angle: float, x_center: float, y_center: float) -> float:
        return angle * self.radius_from_center(x_center, y_center)

    def odo_delta_to_bot_angle(self, delta_position: float, x_center: float, y_center: float) -> float:
        """
        Change in the wheel's tracked distance converted to radians of rotation
        around the robot's center of rotation

        Args:
            delta_position (float): Wheel distance change
            x_center (float): Center of rotation, robot frame
            y_center (float): Center of rotation, robot frame

        Returns:
            float: Change in robot angle about the center of rotation
        """
        arclength = self.distance_traveled_towards_angle(
            delta_position,
            self.cc_tangent_dir(x_center, y_center))
        return self.arclength_to_angle(arclength, x_center, y_center)

    def robot_angle_to_odo_delta(self, angle: float, x_center: float, y_center: float) -> float:
        """Distance this wheel would roll if the robot turned ``angle`` about the center"""
        arclength = self.angle_to_arclength(angle, x_center, y_center)
        return self.dot_product(arclength, self.cc_tangent_dir(x_center, y_center))

    def distance_to_center(self) -> float:
        """Distance from the robot's reference origin to the wheel"""
        return math.hypot(self.offset.x, self.offset.y)

    def _cos(self, angle: float) -> float:
        # zero within tolerance of pi/2 + k*pi, approached from either side
        from_asymptote = (angle - math.pi / 2) % math.pi
        if from_asymptote < self.cosine_tolerance or math.pi - from_asymptote < self.cosine_tolerance:
            return 0.0
        return math.cos(angle)

    def __repr__(self) -> str:
        return (
            f"OdometryWheel(name={self.name!r}, offset={self.offset}, "
            f"ticks_per_rev={self.ticks_per_rev}, radius={self.radius})"
        )

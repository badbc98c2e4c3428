"""
Kinematic robot simulation for odometry and follower testing

The simulated robot accepts drivetrain commands, moves its true pose, and rolls
each wheel's SimulatedTickSource by what that wheel would measure.
"""

import math
from typing import Optional, Sequence

from .encoder_source import SimulatedTickSource
from .geometry import Point, Pose
from .odometry_wheel import OdometryWheel
from .utils import normalize_angle


class SimulatedRobot:
    """
    Holonomic robot moving at ``gain * command`` per second

    Implements the drivetrain interface, so a Follower can drive it directly.
    """

    def __init__(
        self,
        wheels: Sequence[OdometryWheel],
        pose: Pose = Pose(),
        gain: float = 1.0,
        max_speed: Optional[float] = None
    ):
        for wheel in wheels:
            if not isinstance(wheel.source, SimulatedTickSource):
                raise TypeError(f"Wheel '{wheel.name}' is not driven by a SimulatedTickSource")

        self.wheels = list(wheels)
        self.pose = pose
        self.gain = gain
        self.max_speed = max_speed
        self.command = (0.0, 0.0, 0.0)

    def drive(self, forward: float, strafe: float, rotation: float):
        self.command = (forward, strafe, rotation)

    def advance(self, dt: float) -> Pose:
        """Apply the current command for ``dt`` seconds"""
        forward, strafe, rotation = (c * self.gain * dt for c in self.command)
        if self.max_speed is not None:
            step = math.hypot(forward, strafe)
            limit = self.max_speed * dt
            if step > limit:
                forward *= limit / step
                strafe *= limit / step
        return self.move(forward, strafe, rotation)

    def move(self, dx: float, dy: float, dtheta: float) -> Pose:
        """
        Move by a body-frame displacement of the reference origin

        Args:
            dx (float): Forward displacement
            dy (float): Leftward displacement
            dtheta (float): Rotation about the reference origin
        """
        translation = math.hypot(dx, dy)
        direction = math.atan2(dy, dx)
        for wheel in self.wheels:
            rolled = wheel.dot_product(translation, direction)
            rolled += wheel.robot_angle_to_odo_delta(dtheta, 0.0, 0.0)
            wheel.source.roll(rolled)

        world = Point(dx, dy).rotate(self.pose.r + dtheta / 2.0)
        self.pose = Pose(
            self.pose.x + world.x,
            self.pose.y + world.y,
            normalize_angle(self.pose.r + dtheta)
        )
        return self.pose

#!/usr/bin/env python3
"""
Multi-wheel pose estimation

Combines the per-wheel distances of three or more odometry wheels into one
body-frame displacement per cycle and integrates it into a world-frame pose.
"""

import math
from typing import List, Sequence, Tuple

import numpy as np

from .geometry import Point, Pose
from .odometry_wheel import OdometryWheel, WheelDelta
from .utils import normalize_angle


class WheelOdometry:
    """
    Least-squares odometry over an arbitrary wheel layout

    Every wheel reading is modelled as the projection of the robot's motion on
    that wheel: a translation of the center of rotation plus a rotation about
    it. The observation matrix is built once from the wheel geometry.
    """

    def __init__(
        self,
        wheels: Sequence[OdometryWheel],
        initial_pose: Pose = Pose(),
        x_center: float = 0.0,
        y_center: float = 0.0
    ):
        """
        Args:
            wheels: Odometry wheels, at least three
            initial_pose (Pose): Starting pose in the world frame
            x_center (float): Center of rotation in the robot frame
            y_center (float): Center of rotation in the robot frame
        """
        if len(wheels) < 3:
            raise ValueError(f"At least 3 odometry wheels are required, got {len(wheels)}")

        self.wheels: List[OdometryWheel] = list(wheels)
        self.x_center = x_center
        self.y_center = y_center

        # Columns: center translation along robot x, along robot y, rotation
        self.observation = np.array([
            [
                wheel.dot_product(1.0, 0.0),
                wheel.dot_product(1.0, math.pi / 2),
                wheel.robot_angle_to_odo_delta(1.0, x_center, y_center),
            ]
            for wheel in self.wheels
        ])
        rank = np.linalg.matrix_rank(self.observation)
        if rank < 3:
            names = ', '.join(wheel.name for wheel in self.wheels)
            raise ValueError(
                f"Wheel layout ({names}) cannot observe x, y and rotation (rank {rank})"
            )
        self._solver = np.linalg.pinv(self.observation)

        self._pose = initial_pose
        self._displacement = (0.0, 0.0, 0.0)
        self._residual = 0.0

    def update(self) -> Pose:
        """
        Read every wheel once and integrate the resulting motion

        Returns:
            Pose: Updated pose estimate
        """
        for wheel in self.wheels:
            wheel.update_delta()
        measured = np.array([wheel.get_delta_position() for wheel in self.wheels])

        motion = self._solver @ measured
        self._residual = float(np.max(np.abs(self.observation @ motion - measured)))
        tx, ty, dtheta = motion

        # Motion of the reference origin rather than the center of rotation
        dx = float(tx + dtheta * self.y_center)
        dy = float(ty - dtheta * self.x_center)
        dtheta = float(dtheta)
        self._displacement = (dx, dy, dtheta)

        # Midpoint heading for the body to world rotation
        world = Point(dx, dy).rotate(self._pose.r + dtheta / 2.0)
        self._pose = Pose(
            self._pose.x + world.x,
            self._pose.y + world.y,
            normalize_angle(self._pose.r + dtheta)
        )
        return self._pose

    def get_position(self) -> Pose:
        return self._pose

    def set_position(self, pose: Pose):
        self._pose = pose

    def reset(self, pose: Pose = Pose()):
        """Re-seed the estimate and restart every wheel from its current reading"""
        for wheel in self.wheels:
            wheel.reset()
        self._pose = pose
        self._displacement = (0.0, 0.0, 0.0)
        self._residual = 0.0

    def get_last_displacement(self) -> Tuple[float, float, float]:
        """Body-frame (dx, dy, dtheta) of the last update"""
        return self._displacement

    def get_last_residual(self) -> float:
        """
        Largest disagreement between a wheel and the fitted motion

        Large values point at wheel slip or a wrong wheel offset.
        """
        return self._residual

    def wheel_deltas(self) -> List[WheelDelta]:
        return [wheel.snapshot() for wheel in self.wheels]

#!/usr/bin/env python3
"""
Tests for least-squares multi-wheel odometry
"""

import math

import pytest

from odometry_follower.aggregator import WheelOdometry
from odometry_follower.encoder_source import SimulatedTickSource
from odometry_follower.geometry import Pose
from odometry_follower.odometry_wheel import OdometryWheel
from odometry_follower.simulation import SimulatedRobot

# Two parallel wheels and one lateral wheel behind the origin
THREE_WHEELS = [
    ('left', Pose(0.0, 5.0, 0.0)),
    ('right', Pose(0.0, -5.0, 0.0)),
    ('back', Pose(-5.0, 0.0, math.pi / 2)),
]
FRONT = ('front', Pose(5.0, 0.0, math.pi / 2))


def make_wheels(layout):
    return [
        OdometryWheel(SimulatedTickSource(4096, 1.0), offset, ticks_per_rev=4096, radius=1.0, name=name)
        for name, offset in layout
    ]


def make_system(layout=THREE_WHEELS, **kwargs):
    wheels = make_wheels(layout)
    return SimulatedRobot(wheels), WheelOdometry(wheels, **kwargs)


def drive(robot, odometry, motion, steps):
    for _ in range(steps):
        robot.move(*motion)
        odometry.update()


def test_requires_three_wheels():
    with pytest.raises(ValueError):
        WheelOdometry(make_wheels(THREE_WHEELS[:2]))


def test_rejects_unobservable_layout():
    # No wheel senses sideways motion
    layout = [
        ('a', Pose(0.0, 5.0, 0.0)),
        ('b', Pose(0.0, -5.0, 0.0)),
        ('c', Pose(0.0, 0.0, 0.0)),
    ]
    with pytest.raises(ValueError, match='rank'):
        WheelOdometry(make_wheels(layout))


def test_straight_line():
    robot, odometry = make_system()
    drive(robot, odometry, (1.0, 0.0, 0.0), 10)

    pose = odometry.get_position()
    assert pose.x == pytest.approx(10.0, abs=0.01)
    assert pose.y == pytest.approx(0.0, abs=0.01)
    assert pose.r == pytest.approx(0.0, abs=0.001)


def test_strafe():
    robot, odometry = make_system()
    drive(robot, odometry, (0.0, -2.0, 0.0), 5)

    pose = odometry.get_position()
    assert pose.x == pytest.approx(0.0, abs=0.01)
    assert pose.y == pytest.approx(-10.0, abs=0.01)


def test_turn_in_place():
    robot, odometry = make_system()
    drive(robot, odometry, (0.0, 0.0, 0.1), 10)

    pose = odometry.get_position()
    assert pose.r == pytest.approx(1.0, abs=0.002)
    assert math.hypot(pose.x, pose.y) < 0.01
    dx, dy, dtheta = odometry.get_last_displacement()
    assert dtheta == pytest.approx(0.1, abs=0.002)


def test_arc_matches_true_pose():
    robot, odometry = make_system()
    drive(robot, odometry, (1.0, 0.3, 0.05), 60)

    estimate = odometry.get_position()
    assert estimate.x == pytest.approx(robot.pose.x, abs=0.05)
    assert estimate.y == pytest.approx(robot.pose.y, abs=0.05)
    assert estimate.r == pytest.approx(robot.pose.r, abs=0.005)


def test_rotation_center_does_not_change_estimate():
    robot_a, origin_centered = make_system()
    robot_b, offset_centered = make_system(x_center=2.0, y_center=-1.0)

    drive(robot_a, origin_centered, (0.5, 0.2, 0.04), 40)
    drive(robot_b, offset_centered, (0.5, 0.2, 0.04), 40)

    a = origin_centered.get_position()
    b = offset_centered.get_position()
    assert b.x == pytest.approx(a.x, abs=1e-6)
    assert b.y == pytest.approx(a.y, abs=1e-6)
    assert b.r == pytest.approx(a.r, abs=1e-6)


def test_initial_pose_and_heading():
    wheels = make_wheels(THREE_WHEELS)
    robot = SimulatedRobot(wheels, pose=Pose(10.0, 0.0, math.pi / 2))
    odometry = WheelOdometry(wheels, initial_pose=Pose(10.0, 0.0, math.pi / 2))

    # Forward for a robot facing +y
    drive(robot, odometry, (1.0, 0.0, 0.0), 5)
    pose = odometry.get_position()
    assert pose.x == pytest.approx(10.0, abs=0.01)
    assert pose.y == pytest.approx(5.0, abs=0.01)


def test_residual_flags_slip():
    robot, odometry = make_system(THREE_WHEELS + [FRONT])
    drive(robot, odometry, (1.0, 0.0, 0.0), 3)
    assert odometry.get_last_residual() < 0.01

    # Left wheel spins without the robot moving
    robot.wheels[0].source.roll(3.0)
    odometry.update()
    assert odometry.get_last_residual() > 0.5


def test_reset_and_set_position():
    robot, odometry = make_system()
    drive(robot, odometry, (1.0, 0.0, 0.0), 3)

    odometry.reset(Pose(1.0, 2.0, 0.5))
    assert odometry.get_position() == Pose(1.0, 2.0, 0.5)
    assert odometry.get_last_displacement() == (0.0, 0.0, 0.0)

    odometry.update()
    assert odometry.get_position().x == pytest.approx(1.0)

    odometry.set_position(Pose(-4.0, 0.0, 0.0))
    assert odometry.get_position().x == -4.0


def test_wheel_deltas():
    robot, odometry = make_system()
    drive(robot, odometry, (1.0, 0.0, 0.0), 1)

    deltas = odometry.wheel_deltas()
    assert [d.name for d in deltas] == ['left', 'right', 'back']
    assert deltas[0].position == pytest.approx(1.0, abs=0.002)
    assert deltas[2].ticks == 0


if __name__ == '__main__':
    pytest.main([__file__])

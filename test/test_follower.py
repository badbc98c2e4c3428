#!/usr/bin/env python3
"""
Tests for the path follower step machine
"""

import math
import threading

import pytest

from odometry_follower.aggregator import WheelOdometry
from odometry_follower.encoder_source import SimulatedTickSource
from odometry_follower.follower import DriveCommand, Follower, FollowStatus
from odometry_follower.geometry import PathPoint, Pose
from odometry_follower.odometry_wheel import OdometryWheel
from odometry_follower.path import Path
from odometry_follower.simulation import SimulatedRobot

L_PATH = Path([
    PathPoint(0.0, 0.0, 0.0, 1.0),
    PathPoint(100.0, 0.0, 0.0, 1.0),
    PathPoint(100.0, 100.0, math.pi / 2, 1.0),
], name='l')


class FakeOdometry:
    def __init__(self, pose=Pose()):
        self.pose = pose

    def get_position(self):
        return self.pose


class RecordingDrivetrain:
    def __init__(self):
        self.commands = []

    def drive(self, forward, strafe, rotation):
        self.commands.append((forward, strafe, rotation))


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


class RecordingLogger:
    def __init__(self):
        self.messages = []

    def info(self, message):
        self.messages.append(('info', message))

    def warn(self, message):
        self.messages.append(('warn', message))

    def debug(self, message):
        self.messages.append(('debug', message))


def make_follower(pose=Pose(), path=L_PATH, **kwargs):
    odometry = FakeOdometry(pose)
    drivetrain = RecordingDrivetrain()
    kwargs.setdefault('clock', FakeClock())
    return Follower(odometry, drivetrain, path, **kwargs), odometry, drivetrain


def test_starts_on_first_point_without_moving():
    follower, _, drivetrain = make_follower(Pose(0.0, 0.0, 0.0))

    assert follower.step() is FollowStatus.CONTINUE
    assert follower.index == 0
    assert drivetrain.commands == [(0.0, 0.0, 0.0)]


def test_index_advances_forward_only():
    follower, odometry, _ = make_follower(Pose(0.0, 0.0, 0.0))
    follower.step()

    odometry.pose = Pose(50.0, 0.0, 0.0)
    follower.step()
    assert follower.index == 0

    odometry.pose = Pose(95.0, 0.0, 0.0)
    follower.step()
    assert follower.index == 1

    # Back near the first point: never re-targeted
    odometry.pose = Pose(2.0, 0.0, 0.0)
    follower.step()
    assert follower.index == 1
    assert follower.target == L_PATH[1]


def test_scan_picks_first_close_point():
    path = Path([
        PathPoint(0.0, 0.0),
        PathPoint(50.0, 0.0),
        PathPoint(54.0, 0.0),
        PathPoint(200.0, 0.0),
    ])
    follower, odometry, _ = make_follower(Pose(52.0, 0.0, 0.0), path=path)
    follower.step()
    assert follower.index == 1


def test_command_in_body_frame():
    path = Path([PathPoint(50.0, 0.0, 0.0, 0.5), PathPoint(100.0, 0.0)])
    follower, _, drivetrain = make_follower(Pose(0.0, 0.0, math.pi / 2), path=path)
    follower.step()

    forward, strafe, rotation = drivetrain.commands[-1]
    # Target is to the robot's right
    assert forward == pytest.approx(0.0, abs=1e-9)
    assert strafe == pytest.approx(-25.0)
    assert rotation == pytest.approx(-math.pi / 2)
    assert follower.last_command == DriveCommand(forward, strafe, rotation)


def test_rotation_takes_shortest_turn():
    path = Path([PathPoint(0.0, 0.0, math.pi - 0.1), PathPoint(100.0, 0.0)])
    follower, _, drivetrain = make_follower(Pose(0.0, 0.0, -math.pi + 0.1), path=path)
    follower.step()
    assert drivetrain.commands[-1][2] == pytest.approx(-0.2)


def test_translation_never_exceeds_scaled_distance():
    path = Path([PathPoint(30.0, -40.0, 1.0, 0.7), PathPoint(500.0, 500.0)])
    for pose in (Pose(0.0, 0.0, 0.0), Pose(-20.0, 15.0, 2.5), Pose(100.0, 3.0, -1.2)):
        follower, _, _ = make_follower(pose, path=path)
        follower.step()
        bound = path[0].dist_to(pose.point()) * path[0].speed
        assert follower.last_command.translation() <= bound + 1e-9


def test_done_at_last_point():
    logger = RecordingLogger()
    follower, odometry, drivetrain = make_follower(Pose(97.0, 98.0, 1.0), logger=logger)

    assert follower.step() is FollowStatus.DONE
    assert follower.index == 2
    assert drivetrain.commands == [(0.0, 0.0, 0.0)]
    assert any('done' in message for level, message in logger.messages)

    # Terminal status sticks and nothing else is commanded
    odometry.pose = Pose(0.0, 0.0, 0.0)
    assert follower.step() is FollowStatus.DONE
    assert len(drivetrain.commands) == 1


def test_stuck_without_progress():
    clock = FakeClock()
    logger = RecordingLogger()
    follower, _, drivetrain = make_follower(
        Pose(0.0, 0.0, 0.0), stuck_timeout=5.0, clock=clock, logger=logger
    )

    assert follower.step() is FollowStatus.CONTINUE
    clock.now = 3.0
    assert follower.step() is FollowStatus.CONTINUE
    clock.now = 6.0
    assert follower.step() is FollowStatus.STUCK
    assert drivetrain.commands[-1] == (0.0, 0.0, 0.0)
    assert any(level == 'warn' for level, _ in logger.messages)


def test_progress_keeps_follower_alive():
    clock = FakeClock()
    follower, odometry, _ = make_follower(Pose(-60.0, 0.0, 0.0), stuck_timeout=5.0, clock=clock)
    follower.step()

    # Slowly closing in on point 0
    for i in range(1, 21):
        clock.now += 1.0
        odometry.pose = Pose(-60.0 + 2.0 * i, 0.0, 0.0)
        assert follower.step() is FollowStatus.CONTINUE


def test_run_cancelled():
    follower, _, drivetrain = make_follower(Pose(0.0, 0.0, 0.0))
    cancel = threading.Event()
    cancel.set()

    assert follower.run(cancel_event=cancel) is FollowStatus.CANCELLED
    assert drivetrain.commands == [(0.0, 0.0, 0.0)]
    assert follower.status is FollowStatus.CANCELLED


def test_run_times_out():
    clock = FakeClock()
    follower, _, _ = make_follower(Pose(0.0, 0.0, 0.0), clock=clock)

    status = follower.run(timeout=1.0, period=0.1, sleep=clock.sleep)
    assert status is FollowStatus.STUCK
    assert 1.0 <= clock.now < 1.2


def test_abort_needs_terminal_status():
    follower, _, _ = make_follower()
    with pytest.raises(ValueError):
        follower.abort(FollowStatus.CONTINUE)


@pytest.mark.parametrize('kwargs', [
    {'close_enough_distance': 0.0},
    {'stuck_timeout': -1.0},
])
def test_invalid_options(kwargs):
    with pytest.raises(ValueError):
        make_follower(**kwargs)


def test_closed_loop_reaches_end():
    wheels = [
        OdometryWheel(SimulatedTickSource(4096, 1.0), offset, ticks_per_rev=4096, radius=1.0, name=name)
        for name, offset in (
            ('left', Pose(0.0, 15.0, 0.0)),
            ('right', Pose(0.0, -15.0, 0.0)),
            ('back', Pose(-12.0, 0.0, math.pi / 2)),
        )
    ]
    odometry = WheelOdometry(wheels)
    robot = SimulatedRobot(wheels, gain=2.0, max_speed=50.0)
    clock = FakeClock()
    follower = Follower(odometry, robot, L_PATH, advance_on_arrival=True, stuck_timeout=5.0, clock=clock)

    status = FollowStatus.CONTINUE
    for _ in range(5000):
        status = follower.step()
        if status.terminal:
            break
        robot.advance(0.05)
        odometry.update()
        clock.now += 0.05

    assert status is FollowStatus.DONE
    assert robot.pose.point().dist_to(L_PATH[2].point()) < 11.0
    assert odometry.get_position().point().dist_to(robot.pose.point()) < 0.5


if __name__ == '__main__':
    pytest.main([__file__])

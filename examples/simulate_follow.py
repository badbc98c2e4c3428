#!/usr/bin/env python3

"""
Closed-Loop Follow Simulation
=============================

Runs the follower against a simulated three-wheel robot without ROS:
simulated encoders -> odometry wheels -> least-squares odometry -> follower ->
simulated drivetrain.

Usage:
    python3 simulate_follow.py --path-name square
    python3 simulate_follow.py --path-file ../config/paths.yaml --layout ../config/wheel_layout.yaml

Author: ROS 2 Odometry Workspace
License: MIT
"""

import argparse
import os

from odometry_follower.aggregator import WheelOdometry
from odometry_follower.config import build_wheels, load_wheel_layout
from odometry_follower.encoder_source import SimulatedTickSource
from odometry_follower.follower import Follower, FollowStatus
from odometry_follower.path import YamlPathSource
from odometry_follower.simulation import SimulatedRobot

CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'config')


def main():
    parser = argparse.ArgumentParser(description=__doc__.split('\n')[1])
    parser.add_argument('--path-file', default=os.path.join(CONFIG_DIR, 'paths.yaml'))
    parser.add_argument('--path-name', default='default')
    parser.add_argument('--layout', default=os.path.join(CONFIG_DIR, 'wheel_layout.yaml'))
    parser.add_argument('--dt', type=float, default=0.02, help='Control period (s)')
    parser.add_argument('--gain', type=float, default=2.0, help='Robot response to commands (1/s)')
    parser.add_argument('--max-speed', type=float, default=50.0)
    parser.add_argument('--timeout', type=float, default=60.0, help='Simulated seconds before giving up')
    args = parser.parse_args()

    layout = load_wheel_layout(args.layout)
    sources = [SimulatedTickSource(w.ticks_per_rev, w.radius) for w in layout.wheels]
    wheels = build_wheels(layout, sources)
    odometry = WheelOdometry(wheels, x_center=layout.center_x, y_center=layout.center_y)
    odometry.reset()

    robot = SimulatedRobot(wheels, gain=args.gain, max_speed=args.max_speed)
    path = YamlPathSource(args.path_file).get_path(args.path_name)

    sim_time = [0.0]
    follower = Follower(
        odometry,
        robot,
        path,
        advance_on_arrival=True,
        stuck_timeout=5.0,
        clock=lambda: sim_time[0]
    )

    print(f"Following '{args.path_name}' ({len(path)} points)")
    status = FollowStatus.CONTINUE
    steps = 0
    while not status.terminal:
        if sim_time[0] >= args.timeout:
            status = follower.abort(FollowStatus.STUCK)
            break

        status = follower.step()
        robot.advance(args.dt)
        odometry.update()
        sim_time[0] += args.dt
        steps += 1

        if steps % 50 == 0:
            print(f"t={sim_time[0]:6.2f}s  target={follower.index}  "
                  f"estimate={odometry.get_position()}  true={robot.pose}")

    error = odometry.get_position().point().dist_to(robot.pose.point())
    print(f"Finished: {status.value} after {sim_time[0]:.2f}s")
    print(f"Final estimate {odometry.get_position()}, true {robot.pose}, error {error:.4f}")


if __name__ == '__main__':
    main()

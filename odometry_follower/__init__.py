"""
Odometry Follower Package

Pose estimation from arbitrarily placed odometry wheels and path following on
top of that pose. The ROS 2 nodes live in ``wheel_odometry_node`` and
``follower_node``; everything imported here runs without ROS.
"""

from .aggregator import WheelOdometry
from .follower import DriveCommand, Follower, FollowStatus
from .geometry import PathPoint, Point, Pose
from .odometry_wheel import COSINE_SNAP_TOLERANCE, DeltaNotReadyError, OdometryWheel, WheelDelta
from .path import Path, YamlPathSource

__version__ = "1.0.0"

__all__ = [
    'COSINE_SNAP_TOLERANCE',
    'DeltaNotReadyError',
    'DriveCommand',
    'FollowStatus',
    'Follower',
    'OdometryWheel',
    'Path',
    'PathPoint',
    'Point',
    'Pose',
    'WheelDelta',
    'WheelOdometry',
    'YamlPathSource',
]

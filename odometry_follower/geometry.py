"""
Planar geometry types shared by odometry and path following

All angles are radians, counter-clockwise from +x.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Pose:
    """Position in the world frame and heading ``r``"""
    x: float = 0.0
    y: float = 0.0
    r: float = 0.0

    def point(self) -> 'Point':
        return Point(self.x, self.y)

    def __str__(self) -> str:
        return f"Pose(x={self.x:.3f}, y={self.y:.3f}, r={math.degrees(self.r):.1f}°)"


@dataclass(frozen=True)
class Point:
    """2D vector"""
    x: float = 0.0
    y: float = 0.0

    def scale(self, factor: float) -> 'Point':
        return Point(self.x * factor, self.y * factor)

    def rotate(self, angle: float) -> 'Point':
        """Rotate counter-clockwise by ``angle`` about the origin"""
        c = math.cos(angle)
        s = math.sin(angle)
        return Point(self.x * c - self.y * s, self.x * s + self.y * c)

    def dist_to(self, other: 'Point') -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class PathPoint:
    """
    Waypoint of a path

    Attributes:
        x, y: Target position in the world frame
        dir: Target heading in radians
        speed: Feed-forward gain applied to the translation command
    """
    x: float
    y: float
    dir: float = 0.0
    speed: float = 1.0

    def point(self) -> Point:
        return Point(self.x, self.y)

    def dist_to(self, point: Point) -> float:
        return math.hypot(self.x - point.x, self.y - point.y)

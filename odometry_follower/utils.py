#!/usr/bin/env python3
"""
Utility functions for odometry wheel and path follower calculations
"""

import math
from typing import List, Tuple


def normalize_angle(angle: float) -> float:
    """
    Normalize angle to [-pi, pi]

    Args:
        angle (float): Angle in radians

    Returns:
        float: Normalized angle
    """
    while angle > math.pi:
        angle -= 2.0 * math.pi
    while angle < -math.pi:
        angle += 2.0 * math.pi
    return angle


def shortest_turn(current: float, target: float, full_turn: float = 2.0 * math.pi) -> float:
    """
    Smallest signed rotation taking ``current`` to ``target`` modulo ``full_turn``

    Positive results turn left (counter-clockwise), negative results turn right.

    Args:
        current (float): Current angle
        target (float): Target angle
        full_turn (float): Length of one full revolution in the same unit

    Returns:
        float: Signed turn in [-full_turn / 2, full_turn / 2)
    """
    if full_turn <= 0:
        raise ValueError("full_turn must be positive")

    half_turn = full_turn / 2.0
    return (target - current + half_turn) % full_turn - half_turn


def ticks_to_distance(ticks: float, ticks_per_rev: float, radius: float) -> float:
    """
    Convert encoder ticks to the arclength rolled by the wheel

    Args:
        ticks (float): Number of encoder ticks
        ticks_per_rev (float): Ticks per wheel revolution
        radius (float): Wheel radius

    Returns:
        float: Distance in the unit of ``radius``
    """
    revolutions = ticks / ticks_per_rev
    circumference = 2.0 * math.pi * radius
    return revolutions * circumference


def distance_to_ticks(distance: float, ticks_per_rev: float, radius: float) -> float:
    """Inverse of ticks_to_distance (fractional ticks)"""
    return distance / (2.0 * math.pi * radius) * ticks_per_rev


def calculate_velocities(
    dx: float, dy: float, dtheta: float, dt: float
) -> Tuple[float, float, float]:
    """
    Calculate body-frame velocities from one cycle's displacement

    Args:
        dx (float): Forward displacement
        dy (float): Leftward displacement
        dtheta (float): Heading change in radians
        dt (float): Time delta in seconds

    Returns:
        Tuple[float, float, float]: (vx, vy, angular_velocity)
    """
    if dt <= 0:
        return 0.0, 0.0, 0.0

    return dx / dt, dy / dt, dtheta / dt


def euler_to_quaternion(roll: float, pitch: float, yaw: float) -> List[float]:
    """
    Convert Euler angles to quaternion [x, y, z, w]

    Args:
        roll (float): Roll angle in radians
        pitch (float): Pitch angle in radians
        yaw (float): Yaw angle in radians

    Returns:
        List[float]: Quaternion [x, y, z, w]
    """
    cy = math.cos(yaw * 0.5)
    sy = math.sin(yaw * 0.5)
    cp = math.cos(pitch * 0.5)
    sp = math.sin(pitch * 0.5)
    cr = math.cos(roll * 0.5)
    sr = math.sin(roll * 0.5)

    qw = cr * cp * cy + sr * sp * sy
    qx = sr * cp * cy - cr * sp * sy
    qy = cr * sp * cy + sr * cp * sy
    qz = cr * cp * sy - sr * sp * cy

    return [qx, qy, qz, qw]


def quaternion_to_yaw(x: float, y: float, z: float, w: float) -> float:
    """Extract the yaw (heading about +z) from a quaternion"""
    siny_cosp = 2.0 * (w * z + x * y)
    cosy_cosp = 1.0 - 2.0 * (y * y + z * z)
    return math.atan2(siny_cosp, cosy_cosp)

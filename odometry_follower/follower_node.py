#!/usr/bin/env python3
"""
Path Follower Node

ROS 2 node that follows a named path from a YAML path file. The pose comes
from an odometry topic; commands go out as body-frame Twist messages
(linear.x forward, linear.y strafe, angular.z rotation) for the base
controller, which owns the wheel mixing.
"""

import math
import time
from typing import Optional

import rclpy
from rclpy.logging import get_logger
from rclpy.node import Node
from rclpy.qos import QoSProfile, ReliabilityPolicy, HistoryPolicy

from nav_msgs.msg import Odometry
from geometry_msgs.msg import Twist

from .follower import DEFAULT_CLOSE_ENOUGH_DISTANCE, Follower, FollowStatus
from .geometry import Pose
from .path import YamlPathSource
from .utils import quaternion_to_yaw


def pose_from_odometry(msg: Odometry) -> Pose:
    """Planar pose of a nav_msgs/Odometry message"""
    q = msg.pose.pose.orientation
    return Pose(
        msg.pose.pose.position.x,
        msg.pose.pose.position.y,
        quaternion_to_yaw(q.x, q.y, q.z, q.w)
    )


class OdometryPoseCache:
    """Latest pose received on the odometry topic"""

    def __init__(self):
        self.pose: Optional[Pose] = None

    def update(self, msg: Odometry):
        self.pose = pose_from_odometry(msg)

    def has_pose(self) -> bool:
        return self.pose is not None

    def get_position(self) -> Pose:
        if self.pose is None:
            raise RuntimeError("No odometry received yet")
        return self.pose


class TwistDrivetrain:
    """Publishes drive commands as geometry_msgs/Twist"""

    def __init__(self, publisher, max_linear: float = 0.0, max_angular: float = 0.0):
        self.publisher = publisher
        self.max_linear = max_linear
        self.max_angular = max_angular

    def drive(self, forward: float, strafe: float, rotation: float):
        # Scale translation as a vector so the direction is kept
        if self.max_linear > 0:
            magnitude = math.hypot(forward, strafe)
            if magnitude > self.max_linear:
                forward *= self.max_linear / magnitude
                strafe *= self.max_linear / magnitude
        if self.max_angular > 0:
            rotation = max(-self.max_angular, min(self.max_angular, rotation))

        msg = Twist()
        msg.linear.x = float(forward)
        msg.linear.y = float(strafe)
        msg.angular.z = float(rotation)
        self.publisher.publish(msg)


class FollowerNode(Node):
    """
    ROS 2 node driving a Follower from a timer

    The timer is the follower's scheduler: one step per tick until the path is
    done, stuck or timed out.
    """

    def __init__(self):
        super().__init__('follower_node')

        self.declare_parameters()
        self.get_parameters()

        path = YamlPathSource(self.path_file).get_path(self.path_name)

        odom_qos = QoSProfile(
            reliability=ReliabilityPolicy.RELIABLE,
            history=HistoryPolicy.KEEP_LAST,
            depth=10
        )

        self.pose_cache = OdometryPoseCache()
        self.odom_sub = self.create_subscription(
            Odometry,
            self.odometry_topic,
            self.pose_cache.update,
            odom_qos
        )

        self.cmd_pub = self.create_publisher(Twist, self.cmd_vel_topic, 10)
        self.drivetrain = TwistDrivetrain(self.cmd_pub, self.max_linear, self.max_angular)

        self.follower = Follower(
            self.pose_cache,
            self.drivetrain,
            path,
            close_enough_distance=self.close_enough_distance,
            advance_on_arrival=self.advance_on_arrival,
            stuck_timeout=self.stuck_timeout or None,
            logger=self.get_logger()
        )

        self.start_time: Optional[float] = None
        self.control_timer = self.create_timer(
            1.0 / self.control_rate,
            self.control_timer_callback
        )

        self.get_logger().info("Follower node started")
        self.get_logger().info(f"Path: '{self.path_name}' from {self.path_file} ({len(path)} points)")
        self.get_logger().info(f"Close enough distance: {self.close_enough_distance:.3f}")
        self.get_logger().info(f"Odometry topic: {self.odometry_topic}")
        self.get_logger().info(f"Command topic: {self.cmd_vel_topic}")

    def declare_parameters(self):
        """Declare all ROS parameters with default values"""
        self.declare_parameter('path_file', 'config/paths.yaml')
        self.declare_parameter('path_name', 'default')

        # Following behaviour
        self.declare_parameter('follower.close_enough_distance', DEFAULT_CLOSE_ENOUGH_DISTANCE)
        self.declare_parameter('follower.advance_on_arrival', False)
        self.declare_parameter('follower.control_rate', 20.0)
        self.declare_parameter('follower.stuck_timeout', 0.0)   # 0 disables
        self.declare_parameter('follower.follow_timeout', 0.0)  # 0 disables

        # Command limits (0 disables)
        self.declare_parameter('limits.max_linear', 0.0)
        self.declare_parameter('limits.max_angular', 0.0)

        # Topics
        self.declare_parameter('topics.odometry', '/odometry/wheels')
        self.declare_parameter('topics.cmd_vel', '/cmd_vel')

    def get_parameters(self):
        """Get all parameters from ROS parameter server"""
        self.path_file = self.get_parameter('path_file').value
        self.path_name = self.get_parameter('path_name').value

        self.close_enough_distance = self.get_parameter('follower.close_enough_distance').value
        self.advance_on_arrival = self.get_parameter('follower.advance_on_arrival').value
        self.control_rate = self.get_parameter('follower.control_rate').value
        self.stuck_timeout = self.get_parameter('follower.stuck_timeout').value
        self.follow_timeout = self.get_parameter('follower.follow_timeout').value

        self.max_linear = self.get_parameter('limits.max_linear').value
        self.max_angular = self.get_parameter('limits.max_angular').value

        self.odometry_topic = self.get_parameter('topics.odometry').value
        self.cmd_vel_topic = self.get_parameter('topics.cmd_vel').value

        if self.control_rate <= 0:
            raise ValueError("follower.control_rate must be positive")

    def control_timer_callback(self):
        """One follower step per timer tick"""
        if not self.pose_cache.has_pose():
            self.get_logger().debug("Waiting for odometry")
            return

        now = time.monotonic()
        if self.start_time is None:
            self.start_time = now

        if self.follow_timeout > 0 and now - self.start_time > self.follow_timeout:
            self.get_logger().warn(f"Path following timed out after {self.follow_timeout:.1f}s")
            status = self.follower.abort(FollowStatus.STUCK)
        else:
            status = self.follower.step()

        command = self.follower.last_command
        if command is not None:
            self.get_logger().debug(
                f"Target {self.follower.index}: forward={command.forward:.3f}, "
                f"strafe={command.strafe:.3f}, rotation={command.rotation:.3f}"
            )

        if status.terminal:
            self.control_timer.cancel()
            if status is FollowStatus.DONE:
                self.get_logger().info("Path complete")
            else:
                self.get_logger().warn(f"Path following ended: {status.value}")

    def destroy_node(self):
        """Stop the robot before going away"""
        self.get_logger().info("Stopping follower node...")
        # Publishing needs a live context; Ctrl-C may already have shut it down
        if rclpy.ok(context=self.context):
            self.follower.abort(FollowStatus.CANCELLED)
        super().destroy_node()


def main(args=None):
    rclpy.init(args=args)

    try:
        node = FollowerNode()
    except (OSError, KeyError, ValueError) as e:
        get_logger('follower_node').error(f"Failed to start: {e}")
        rclpy.shutdown()
        return

    try:
        rclpy.spin(node)
    except KeyboardInterrupt:
        pass
    finally:
        node.destroy_node()
        rclpy.try_shutdown()


if __name__ == '__main__':
    main()

#!/usr/bin/env python3
"""
Wheel Odometry Node

ROS 2 node estimating the planar pose from three or more odometry wheels with
arbitrary mounting positions and facing angles. Raw encoder counts come from
the hardware layer on a Int64MultiArray topic, one element per configured
wheel in layout order.
"""

import time

import rclpy
from rclpy.logging import get_logger
from rclpy.node import Node
from rclpy.qos import QoSProfile, ReliabilityPolicy, HistoryPolicy

# ROS messages
from nav_msgs.msg import Odometry
from geometry_msgs.msg import TransformStamped
from std_msgs.msg import Int64MultiArray
from std_srvs.srv import Empty
import tf2_ros

# Local imports
from .aggregator import WheelOdometry
from .config import build_wheels, load_wheel_layout
from .encoder_source import LatestTickSource
from .geometry import Pose
from .utils import calculate_velocities, euler_to_quaternion


class WheelOdometryNode(Node):
    """
    ROS 2 node for multi-wheel odometry estimation

    Everything runs on the node's single-threaded executor, so the wheels'
    delta tracking has exactly one owner.
    """

    def __init__(self):
        super().__init__('wheel_odometry_node')

        self.declare_parameters()
        self.get_parameters()

        # Wheels and aggregator from the layout file
        layout = load_wheel_layout(self.wheel_config_file)
        self.sources = [LatestTickSource(name) for name in layout.names]
        self.wheels = build_wheels(layout, self.sources)
        self.odometry = WheelOdometry(
            self.wheels,
            x_center=layout.center_x,
            y_center=layout.center_y
        )

        # Counting starts with the first complete tick message
        self.started = False
        self.last_time = time.time()
        self.velocity = (0.0, 0.0, 0.0)

        odom_qos = QoSProfile(
            reliability=ReliabilityPolicy.RELIABLE,
            history=HistoryPolicy.KEEP_LAST,
            depth=10
        )

        ticks_qos = QoSProfile(
            reliability=ReliabilityPolicy.BEST_EFFORT,
            history=HistoryPolicy.KEEP_LAST,
            depth=5
        )

        # Subscribers and publishers
        self.ticks_sub = self.create_subscription(
            Int64MultiArray,
            self.ticks_topic,
            self.ticks_callback,
            ticks_qos
        )

        self.odom_pub = self.create_publisher(
            Odometry,
            self.output_topic,
            odom_qos
        )

        # TF broadcaster
        if self.publish_tf:
            self.tf_broadcaster = tf2_ros.TransformBroadcaster(self)

        # Services
        self.reset_srv = self.create_service(
            Empty,
            '~/reset_odometry',
            self.reset_odometry_callback
        )

        # Timer for odometry calculation and publishing
        self.odom_timer = self.create_timer(
            1.0 / self.publish_rate,
            self.odometry_timer_callback
        )

        self.get_logger().info("Wheel Odometry node started")
        self.get_logger().info(f"Layout: {self.wheel_config_file}")
        for wheel in self.wheels:
            self.get_logger().info(f"  {wheel}")
        self.get_logger().info(
            f"Center of rotation: ({layout.center_x:.3f}, {layout.center_y:.3f})"
        )
        self.get_logger().info(f"Output topic: {self.output_topic}")

    def declare_parameters(self):
        """Declare all ROS parameters with default values"""
        self.declare_parameter('wheel_config_file', 'config/wheel_layout.yaml')

        # Topics and frames
        self.declare_parameter('topics.ticks_topic', '/encoders/raw_ticks')
        self.declare_parameter('topics.output_topic', '/odometry/wheels')
        self.declare_parameter('frames.base_frame', 'base_link')
        self.declare_parameter('frames.odom_frame', 'odom_wheels')

        # Publishing settings
        self.declare_parameter('publishing.publish_rate', 50.0)
        self.declare_parameter('publishing.publish_tf', True)

        # Diagnostics
        self.declare_parameter('diagnostics.slip_threshold', 0.5)

    def get_parameters(self):
        """Get all parameters from ROS parameter server"""
        self.wheel_config_file = self.get_parameter('wheel_config_file').value

        self.ticks_topic = self.get_parameter('topics.ticks_topic').value
        self.output_topic = self.get_parameter('topics.output_topic').value
        self.base_frame = self.get_parameter('frames.base_frame').value
        self.odom_frame = self.get_parameter('frames.odom_frame').value

        self.publish_rate = self.get_parameter('publishing.publish_rate').value
        self.publish_tf = self.get_parameter('publishing.publish_tf').value

        self.slip_threshold = self.get_parameter('diagnostics.slip_threshold').value

        if self.publish_rate <= 0:
            raise ValueError("publishing.publish_rate must be positive")

    def ticks_callback(self, msg: Int64MultiArray):
        """Store the latest raw counts reported by the hardware layer"""
        if len(msg.data) != len(self.sources):
            self.get_logger().warn(
                f"Expected {len(self.sources)} tick counts, got {len(msg.data)}; ignoring"
            )
            return

        for source, ticks in zip(self.sources, msg.data):
            source.report(ticks)

        if not self.started:
            # Ignore whatever the counters held before this node came up
            self.odometry.reset(self.odometry.get_position())
            self.last_time = time.time()
            self.started = True
            self.get_logger().info("Received first encoder counts, odometry running")

    def odometry_timer_callback(self):
        """Main odometry calculation and publishing timer"""
        if not self.started:
            return

        current_time = time.time()
        pose = self.odometry.update()

        dx, dy, dtheta = self.odometry.get_last_displacement()
        self.velocity = calculate_velocities(dx, dy, dtheta, current_time - self.last_time)
        self.last_time = current_time

        residual = self.odometry.get_last_residual()
        if residual > self.slip_threshold:
            self.get_logger().warn(
                f"Wheel readings disagree by {residual:.3f} (possible slip)"
            )

        self.get_logger().debug(
            f"Deltas: {[(d.name, d.ticks) for d in self.odometry.wheel_deltas()]}"
        )

        self.publish_odometry(pose)

    def publish_odometry(self, pose: Pose):
        """Publish odometry message"""
        odom_msg = Odometry()

        # Header
        odom_msg.header.stamp = self.get_clock().now().to_msg()
        odom_msg.header.frame_id = self.odom_frame
        odom_msg.child_frame_id = self.base_frame

        # Position
        odom_msg.pose.pose.position.x = pose.x
        odom_msg.pose.pose.position.y = pose.y
        odom_msg.pose.pose.position.z = 0.0

        # Orientation (convert heading to quaternion)
        quat = euler_to_quaternion(0.0, 0.0, pose.r)
        odom_msg.pose.pose.orientation.x = quat[0]
        odom_msg.pose.pose.orientation.y = quat[1]
        odom_msg.pose.pose.orientation.z = quat[2]
        odom_msg.pose.pose.orientation.w = quat[3]

        # Velocities (body frame)
        vx, vy, vtheta = self.velocity
        odom_msg.twist.twist.linear.x = vx
        odom_msg.twist.twist.linear.y = vy
        odom_msg.twist.twist.angular.z = vtheta

        self.odom_pub.publish(odom_msg)

        if self.publish_tf:
            self.publish_transform(odom_msg)

    def publish_transform(self, odom_msg: Odometry):
        """Publish TF transform"""
        t = TransformStamped()
        t.header = odom_msg.header
        t.child_frame_id = odom_msg.child_frame_id

        t.transform.translation.x = odom_msg.pose.pose.position.x
        t.transform.translation.y = odom_msg.pose.pose.position.y
        t.transform.translation.z = odom_msg.pose.pose.position.z
        t.transform.rotation = odom_msg.pose.pose.orientation

        self.tf_broadcaster.sendTransform(t)

    def reset_odometry_callback(self, request, response):
        """Service callback to reset odometry"""
        self.odometry.reset()
        self.velocity = (0.0, 0.0, 0.0)
        self.last_time = time.time()

        self.get_logger().info("Odometry reset to origin")
        return response


def main(args=None):
    rclpy.init(args=args)

    try:
        node = WheelOdometryNode()
    except (OSError, ValueError) as e:
        get_logger('wheel_odometry_node').error(f"Failed to start: {e}")
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

#!/usr/bin/env python3
"""
Launch file for the Wheel Odometry and Follower nodes
"""

from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument
from launch.conditions import IfCondition
from launch.substitutions import LaunchConfiguration, PathJoinSubstitution
from launch_ros.actions import Node
from launch_ros.substitutions import FindPackageShare


def generate_launch_description():
    """Generate launch description for odometry and path following"""

    # Declare launch arguments
    declare_config_file = DeclareLaunchArgument(
        'config_file',
        default_value=PathJoinSubstitution([
            FindPackageShare('odometry_follower'),
            'config',
            'odometry_follower.yaml'
        ]),
        description='Path to node parameter file'
    )

    declare_wheel_config_file = DeclareLaunchArgument(
        'wheel_config_file',
        default_value=PathJoinSubstitution([
            FindPackageShare('odometry_follower'),
            'config',
            'wheel_layout.yaml'
        ]),
        description='Path to odometry wheel layout file'
    )

    declare_path_file = DeclareLaunchArgument(
        'path_file',
        default_value=PathJoinSubstitution([
            FindPackageShare('odometry_follower'),
            'config',
            'paths.yaml'
        ]),
        description='Path to YAML path file'
    )

    declare_path_name = DeclareLaunchArgument(
        'path_name',
        default_value='default',
        description='Name of the path to follow'
    )

    declare_follow = DeclareLaunchArgument(
        'follow',
        default_value='true',
        description='Whether to start the follower node'
    )

    declare_publish_tf = DeclareLaunchArgument(
        'publish_tf',
        default_value='true',
        description='Whether to publish TF transforms'
    )

    wheel_odometry_node = Node(
        package='odometry_follower',
        executable='wheel_odometry_node',
        name='wheel_odometry_node',
        parameters=[
            LaunchConfiguration('config_file'),
            {
                'wheel_config_file': LaunchConfiguration('wheel_config_file'),
                'publishing.publish_tf': LaunchConfiguration('publish_tf'),
            }
        ],
        output='screen',
        emulate_tty=True,
    )

    follower_node = Node(
        package='odometry_follower',
        executable='follower_node',
        name='follower_node',
        parameters=[
            LaunchConfiguration('config_file'),
            {
                'path_file': LaunchConfiguration('path_file'),
                'path_name': LaunchConfiguration('path_name'),
            }
        ],
        output='screen',
        emulate_tty=True,
        condition=IfCondition(LaunchConfiguration('follow')),
    )

    return LaunchDescription([
        declare_config_file,
        declare_wheel_config_file,
        declare_path_file,
        declare_path_name,
        declare_follow,
        declare_publish_tf,
        wheel_odometry_node,
        follower_node,
    ])

from setuptools import setup
import os
from glob import glob

package_name = 'odometry_follower'

setup(
    name=package_name,
    version='1.0.0',
    packages=[package_name],
    data_files=[
        ('share/ament_index/resource_index/packages',
            ['resource/' + package_name]),
        ('share/' + package_name, ['package.xml']),
        (os.path.join('share', package_name, 'launch'), glob('launch/*.launch.py')),
        (os.path.join('share', package_name, 'config'), glob('config/*.yaml')),
    ],
    install_requires=['setuptools', 'numpy', 'PyYAML'],
    extras_require={
        'test': ['pytest'],
    },
    python_requires='>=3.8',
    zip_safe=True,
    maintainer='Robot Developer',
    maintainer_email='your.email@example.com',
    description='ROS 2 package for odometry-wheel pose estimation and path following',
    license='MIT',
    entry_points={
        'console_scripts': [
            'wheel_odometry_node = odometry_follower.wheel_odometry_node:main',
            'follower_node = odometry_follower.follower_node:main',
        ],
    },
)

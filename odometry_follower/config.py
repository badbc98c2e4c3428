"""
Wheel layout configuration

Layout file::

    rotation_center: {x: 0.0, y: 0.0}
    cosine_tolerance: 0.01
    wheels:
      - name: left
        x: 0.0
        y: 5.0
        facing_deg: 0.0       # or ``facing`` in radians
        ticks_per_rev: 1024
        radius: 1.0
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

import yaml

from .encoder_source import TickSource
from .geometry import Pose
from .odometry_wheel import COSINE_SNAP_TOLERANCE, OdometryWheel


@dataclass(frozen=True)
class WheelConfig:
    """Mounting and encoder parameters of one odometry wheel"""
    name: str
    x: float
    y: float
    facing: float  # radians
    ticks_per_rev: int = 1024
    radius: float = 3.0

    def offset(self) -> Pose:
        return Pose(self.x, self.y, self.facing)


@dataclass(frozen=True)
class WheelLayout:
    wheels: Tuple[WheelConfig, ...]
    center_x: float = 0.0
    center_y: float = 0.0
    cosine_tolerance: float = COSINE_SNAP_TOLERANCE

    @property
    def names(self) -> List[str]:
        return [wheel.name for wheel in self.wheels]


def _parse_wheel(index: int, entry: Dict[str, Any]) -> WheelConfig:
    if not isinstance(entry, dict):
        raise ValueError(f"wheel {index}: expected a mapping, got {entry!r}")

    name = str(entry.get('name', f"wheel_{index}"))
    for key in ('x', 'y'):
        if key not in entry:
            raise ValueError(f"wheel '{name}': missing '{key}'")
    if ('facing' in entry) == ('facing_deg' in entry):
        raise ValueError(f"wheel '{name}': give exactly one of 'facing' or 'facing_deg'")

    try:
        if 'facing_deg' in entry:
            facing = math.radians(float(entry['facing_deg']))
        else:
            facing = float(entry['facing'])
        x = float(entry['x'])
        y = float(entry['y'])
        ticks_per_rev = int(entry.get('ticks_per_rev', 1024))
        radius = float(entry.get('radius', 3.0))
    except (TypeError, ValueError) as e:
        raise ValueError(f"wheel '{name}': {e}") from e

    if ticks_per_rev <= 0 or radius <= 0:
        raise ValueError(f"wheel '{name}': ticks_per_rev and radius must be positive")

    return WheelConfig(
        name=name,
        x=x,
        y=y,
        facing=facing,
        ticks_per_rev=ticks_per_rev,
        radius=radius,
    )


def parse_wheel_layout(data: Dict[str, Any]) -> WheelLayout:
    """
    Build a WheelLayout from an already loaded mapping

    Raises:
        ValueError: On missing or invalid entries
    """
    if not isinstance(data, dict):
        raise ValueError("wheel layout must be a mapping")

    entries = data.get('wheels')
    if not isinstance(entries, list) or not entries:
        raise ValueError("wheel layout needs a non-empty 'wheels' list")

    wheels = tuple(_parse_wheel(i, entry) for i, entry in enumerate(entries))
    names = [wheel.name for wheel in wheels]
    if len(set(names)) != len(names):
        raise ValueError(f"duplicate wheel names in {names}")

    center = data.get('rotation_center') or {}
    if not isinstance(center, dict):
        raise ValueError(f"rotation_center must be a mapping, got {center!r}")

    try:
        return WheelLayout(
            wheels=wheels,
            center_x=float(center.get('x', 0.0)),
            center_y=float(center.get('y', 0.0)),
            cosine_tolerance=float(data.get('cosine_tolerance', COSINE_SNAP_TOLERANCE)),
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"invalid wheel layout: {e}") from e


def load_wheel_layout(path: str) -> WheelLayout:
    """
    Load a wheel layout YAML file

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: On malformed YAML or an invalid layout
    """
    with open(path, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"cannot parse wheel layout {path}: {e}") from e
    return parse_wheel_layout(data)


def build_wheels(layout: WheelLayout, sources: Sequence[TickSource]) -> List[OdometryWheel]:
    """Create one OdometryWheel per configured wheel, paired with ``sources`` in order"""
    if len(sources) != len(layout.wheels):
        raise ValueError(
            f"{len(layout.wheels)} wheels configured but {len(sources)} tick sources given"
        )

    return [
        OdometryWheel(
            source,
            wheel.offset(),
            ticks_per_rev=wheel.ticks_per_rev,
            radius=wheel.radius,
            name=wheel.name,
            cosine_tolerance=layout.cosine_tolerance,
        )
        for wheel, source in zip(layout.wheels, sources)
    ]

"""
Paths and the YAML path source

Path file layout::

    paths:
      square:
        - {x: 0.0, y: 0.0, dir: 0.0, speed: 1.0}
        - {x: 100.0, y: 0.0, dir_deg: 90.0}

``dir`` is radians, ``dir_deg`` degrees; ``speed`` defaults to 1.0.
"""

import math
from typing import Any, Dict, Iterable, Iterator, List, Tuple

import yaml

from .geometry import PathPoint


class Path:
    """Ordered, immutable sequence of path points"""

    def __init__(self, points: Iterable[PathPoint], name: str = ""):
        self._points: Tuple[PathPoint, ...] = tuple(points)
        self.name = name
        if not self._points:
            raise ValueError(f"Path '{name}' has no points")

    def __len__(self) -> int:
        return len(self._points)

    def __getitem__(self, index: int) -> PathPoint:
        return self._points[index]

    def __iter__(self) -> Iterator[PathPoint]:
        return iter(self._points)

    def __repr__(self) -> str:
        return f"Path(name={self.name!r}, points={len(self._points)})"


def parse_path_point(entry: Dict[str, Any]) -> PathPoint:
    """Build a PathPoint from one YAML mapping"""
    if not isinstance(entry, dict):
        raise ValueError(f"expected a mapping, got {entry!r}")
    if 'x' not in entry or 'y' not in entry:
        raise ValueError("x and y are required")
    if 'dir' in entry and 'dir_deg' in entry:
        raise ValueError("give either dir or dir_deg, not both")

    if 'dir_deg' in entry:
        direction = math.radians(float(entry['dir_deg']))
    else:
        direction = float(entry.get('dir', 0.0))

    return PathPoint(
        x=float(entry['x']),
        y=float(entry['y']),
        dir=direction,
        speed=float(entry.get('speed', 1.0)),
    )


def parse_path(name: str, entries: List[Dict[str, Any]]) -> Path:
    if not isinstance(entries, list):
        raise ValueError(f"Path '{name}' must be a list of points")

    points = []
    for index, entry in enumerate(entries):
        try:
            points.append(parse_path_point(entry))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Path '{name}' point {index}: {e}") from e
    return Path(points, name=name)


class YamlPathSource:
    """Loads named paths from a YAML file, once, on first use"""

    def __init__(self, path_file: str):
        self.path_file = path_file
        self._paths: Dict[str, Path] = {}
        self._loaded = False

    def _load(self):
        with open(self.path_file, 'r') as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"cannot parse paths file {self.path_file}: {e}") from e

        paths = data.get('paths') if isinstance(data, dict) else None
        if not isinstance(paths, dict):
            raise ValueError(f"{self.path_file}: top-level 'paths' mapping is missing")

        self._paths = {str(name): parse_path(str(name), entries) for name, entries in paths.items()}
        self._loaded = True

    def names(self) -> List[str]:
        if not self._loaded:
            self._load()
        return list(self._paths.keys())

    def get_path(self, identifier: str) -> Path:
        """
        Args:
            identifier (str): Name of the path in the file

        Returns:
            Path: The loaded path

        Raises:
            KeyError: If the file has no path with this name
        """
        if not self._loaded:
            self._load()
        if identifier not in self._paths:
            raise KeyError(
                f"No path '{identifier}' in {self.path_file} "
                f"(available: {', '.join(self._paths) or 'none'})"
            )
        return self._paths[identifier]

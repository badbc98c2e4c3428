#!/usr/bin/env python3
"""
Raw tick sources for odometry wheels

An odometry wheel only needs something exposing ``get_raw()``. The hardware
layer wires one of the variants below to its encoder:

- QuadratureCounter: dead-wheel encoders decoded from A/B edge callbacks
- LatestTickSource: counts reported by another process (e.g. a motor controller)
- SimulatedTickSource: ticks generated from simulated rolled distance

Counters are monotonic; wrap-around and resets of the hardware counter are
owned by the hardware layer and are not handled here.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

from .utils import distance_to_ticks


class TickSource(Protocol):
    """Capability required by OdometryWheel"""

    def get_raw(self) -> int:
        ...


@dataclass
class EncoderState:
    """State information for a single quadrature encoder"""
    ticks: int = 0
    last_a: bool = False
    last_b: bool = False
    direction: int = 1  # 1 for forward, -1 for reverse
    last_tick_time: float = 0.0


class QuadratureCounter:
    """
    Quadrature decoder fed by edge callbacks

    The hardware layer registers ``on_edge`` as the interrupt handler of both
    channels. Interrupts arrive on a different thread than the control loop,
    so the count is guarded by a lock.
    """

    def __init__(
        self,
        name: str = "encoder",
        invert_direction: bool = False,
        initial_a: bool = False,
        initial_b: bool = False,
        callback: Optional[Callable[[str, int, int], None]] = None
    ):
        """
        Initialize quadrature counter

        Args:
            name (str): Encoder name for identification
            invert_direction (bool): Invert rotation direction
            initial_a (bool): Channel A level at startup
            initial_b (bool): Channel B level at startup
            callback (Callable): Optional callback on tick change
        """
        self.name = name
        self.invert_direction = invert_direction
        self.callback = callback

        self.state = EncoderState(last_a=initial_a, last_b=initial_b)
        self.lock = threading.Lock()

    def on_edge(self, channel: str, level_a: bool, level_b: bool):
        """
        Process an edge on ``channel`` ('A' or 'B') given both pin levels

        Channel A leading B counts up, B leading A counts down
        (as AB levels: 00 -> 10 -> 11 -> 01 -> 00 is +4).
        """
        if channel not in ('A', 'B'):
            raise ValueError(f"Unknown encoder channel '{channel}'")

        with self.lock:
            if level_a == self.state.last_a and level_b == self.state.last_b:
                return  # No actual change (noise/bounce)

            direction = 0
            if channel == 'A':
                if level_a != self.state.last_a:
                    direction = -1 if level_a == level_b else 1
            else:
                if level_b != self.state.last_b:
                    direction = 1 if level_a == level_b else -1

            if self.invert_direction:
                direction = -direction

            if direction != 0:
                self.state.ticks += direction
                self.state.direction = direction
                self.state.last_tick_time = time.time()

            self.state.last_a = level_a
            self.state.last_b = level_b
            ticks = self.state.ticks

        if direction != 0 and self.callback:
            self.callback(self.name, ticks, direction)

    def get_raw(self) -> int:
        """Get current tick count"""
        with self.lock:
            return self.state.ticks

    def reset(self):
        """Reset tick counter to zero"""
        with self.lock:
            self.state.ticks = 0
            self.state.last_tick_time = 0.0

    def get_info(self) -> Dict[str, Any]:
        """Get complete encoder information"""
        with self.lock:
            return {
                'name': self.name,
                'ticks': self.state.ticks,
                'direction': self.state.direction,
                'last_tick_time': self.state.last_tick_time,
                'inverted': self.invert_direction,
            }


class LatestTickSource:
    """Holds the most recent tick count reported by an external publisher"""

    def __init__(self, name: str = "encoder"):
        self.name = name
        self._ticks = 0
        self._reported = False
        self.lock = threading.Lock()

    def report(self, ticks: int):
        with self.lock:
            self._ticks = int(ticks)
            self._reported = True

    @property
    def has_reported(self) -> bool:
        with self.lock:
            return self._reported

    def get_raw(self) -> int:
        with self.lock:
            return self._ticks


class SimulatedTickSource:
    """
    Tick source driven by simulated wheel motion

    Rolled distance accumulates as fractional ticks; ``get_raw`` reports the
    whole ticks an encoder would have counted.
    """

    def __init__(self, ticks_per_rev: float = 1024, radius: float = 3.0):
        self.ticks_per_rev = ticks_per_rev
        self.radius = radius
        self._ticks = 0.0

    def roll(self, distance: float):
        """Advance the wheel by ``distance`` along its rolling direction"""
        self._ticks += distance_to_ticks(distance, self.ticks_per_rev, self.radius)

    def get_raw(self) -> int:
        return int(math.floor(self._ticks))

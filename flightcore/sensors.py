"""Conversion of raw IMU register readings into calibrated, filtered rates and angles."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

GYR_SCALE = 0.0625
MAG_SCALE = 0.0625
EULER_SCALE = 0.0625
QUAT_SCALE = 1.0 / 16384.0


def _check_length(name: str, values: Sequence[int], length: int) -> None:
    if len(values) != length:
        raise ValueError(f"{name} needs {length} elements, got {len(values)}")


@dataclass(frozen=True)
class RawSensorData:
    """One raw sensor frame in register order, as integer counts."""

    pressure: int = 0
    acceleration: tuple[int, int, int] = (0, 0, 0)
    magnetic: tuple[int, int, int] = (0, 0, 0)
    angular_vel: tuple[int, int, int] = (0, 0, 0)
    euler_angles: tuple[int, int, int] = (0, 0, 0)
    quaternion: tuple[int, int, int, int] = (0, 0, 0, 0)
    linear_acceleration: tuple[int, int, int] = (0, 0, 0)
    gravity_vector: tuple[int, int, int] = (0, 0, 0)
    temperature: int = 0

    def __post_init__(self) -> None:
        for name in (
            "acceleration",
            "magnetic",
            "angular_vel",
            "euler_angles",
            "linear_acceleration",
            "gravity_vector",
        ):
            _check_length(name, getattr(self, name), 3)
        _check_length("quaternion", self.quaternion, 4)


def _zero3() -> list[float]:
    return [0.0, 0.0, 0.0]


@dataclass
class ImuReading:
    """Latest converted IMU values.

    Rates are in deg/s (``gyr``) and rad/s (``gyr_rad``); angles are roll,
    pitch, yaw in degrees (``euler``) and radians (``euler_rad``).
    """

    gyr: list[float] = field(default_factory=_zero3)
    acc: list[float] = field(default_factory=_zero3)
    mag: list[float] = field(default_factory=_zero3)
    euler: list[float] = field(default_factory=_zero3)
    quat: list[float] = field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0])
    gyr_rad: list[float] = field(default_factory=_zero3)
    euler_rad: list[float] = field(default_factory=_zero3)
    update_counter: int = 0


class Sensors:
    """Turns raw frames into bias-corrected, low-pass filtered body rates and angles."""

    def __init__(self, lowpass_weight: float) -> None:
        if not 0.0 <= lowpass_weight <= 1.0:
            raise ValueError("lowpass_weight must lie between 0 and 1")
        self.lowpass_weight = float(lowpass_weight)
        self.reading = ImuReading()
        self.gyr_bias: list[float] = _zero3()
        self.euler_bias: list[float] = _zero3()
        self._calibrated = False

    @property
    def calibrated(self) -> bool:
        """Whether the gyro and angle biases have been measured."""
        return self._calibrated

    def calibrate(self, samples: Iterable[RawSensorData | None]) -> None:
        """Average the rates and angles of ``samples`` into the biases.

        A ``None`` sample stands for a missed read: the previous values are
        counted again.
        """
        self._calibrated = False
        self.gyr_bias = _zero3()
        self.euler_bias = _zero3()
        count = 0
        for sample in samples:
            reading = self.update(sample)
            self.gyr_bias = [b + g for b, g in zip(self.gyr_bias, reading.gyr)]
            self.euler_bias = [b + e for b, e in zip(self.euler_bias, reading.euler)]
            count += 1
        if count == 0:
            raise ValueError("calibration needs at least one sample")
        self.gyr_bias = [b / count for b in self.gyr_bias]
        self.euler_bias = [b / count for b in self.euler_bias]
        self.reading.gyr = _zero3()
        self.reading.euler = _zero3()
        self._calibrated = True

    def update(self, raw: RawSensorData | None) -> ImuReading:
        """Convert one raw frame; ``None`` (no new data) leaves the reading as it is."""
        reading = self.reading
        if raw is None:
            return reading

        lin = raw.linear_acceleration
        reading.acc = [float(lin[1]), float(lin[2]), float(lin[0])]

        # Yaw-pitch-roll registers to roll-pitch-yaw.
        ypr = raw.euler_angles
        reading.euler = [ypr[1] * EULER_SCALE, ypr[2] * EULER_SCALE, ypr[0] * EULER_SCALE]

        rates = raw.angular_vel
        gyr = [
            rates[1] * GYR_SCALE * -1.0,
            rates[0] * GYR_SCALE * -1.0,
            rates[2] * GYR_SCALE * -1.0,
        ]

        if self._calibrated:
            reading.euler = [e - b for e, b in zip(reading.euler, self.euler_bias)]
            gyr = [g - b for g, b in zip(gyr, self.gyr_bias)]
            w = self.lowpass_weight
            reading.gyr = [w * old + (1 - w) * new for old, new in zip(reading.gyr, gyr)]
        else:
            reading.gyr = gyr

        reading.gyr_rad = [math.radians(g) for g in reading.gyr]
        reading.euler_rad = [math.radians(e) for e in reading.euler]
        reading.update_counter += 1
        return reading

    def format(self) -> str:
        """Describe rates, accelerations and angles on one line."""
        r = self.reading
        gyr = ",".join(f"{x:.2f}" for x in r.gyr)
        acc = ",".join(f"{x:.2f}" for x in r.acc)
        euler = ",".join(f"{x:.2f}" for x in r.euler)
        return f"{gyr}     {acc},     {euler}"
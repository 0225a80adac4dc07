"""Stick mapping, flight-mode selection and the quad-X motor mixer."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

MIN_PWM = 1000
MAX_PWM = 1980
STICK_MIN = 900
STICK_MAX = 2000
KILL_SWITCH_THRESHOLD = 1500
PAYLOAD_THRESHOLD = 1700
MANUAL_THRESHOLD = 1200

_THR_MIN, _THR_MAX = 1000, 2000
_MOMENT_MIN, _MOMENT_MAX = -500, 500

logger = logging.getLogger(__name__)


class FlightMode(enum.IntEnum):
    """Position of the auto/manual/payload switch."""

    AUTO = 0
    MANUAL = 1
    PAYLOAD_DROP = 2

    @property
    def manual(self) -> bool:
        """Whether the pilot's sticks drive the controller."""
        return self is not FlightMode.AUTO


@dataclass(frozen=True)
class MixerOutput:
    """Result of one mixer pass: launch state and the four motor pulse widths."""

    launch_state: int
    pwm: tuple[float, float, float, float]


def _limit(x: float, lower: float, upper: float) -> float:
    if x >= upper:
        return upper
    if x < lower:
        return lower
    return x


def _rescale(x: float, out_min: float, out_max: float) -> float:
    """Map ``x`` from [-1, 1] onto [out_min, out_max]."""
    return (x + 1) * (out_max - out_min) / 2 + out_min


def map_stick_input(value: float) -> float:
    """Map a receiver pulse width from [900, 2000] onto [-1, 1]."""
    return (value - STICK_MIN) * 2.0 / (STICK_MAX - STICK_MIN) - 1.0


def update_mixer(
    armed: bool, c_delf: float, c_delm0: float, c_delm1: float, c_delm2: float
) -> MixerOutput:
    """Mix normalised thrust and moment commands into four motor pulse widths.

    Motors are ordered front-right, back-right, back-left, front-left.
    When disarmed every motor gets the minimum pulse width.
    """
    if not armed:
        logger.info("KILLED")
        return MixerOutput(0, (float(MIN_PWM),) * 4)

    thr = _rescale(c_delf, _THR_MIN, _THR_MAX)
    roll = _rescale(c_delm0, _MOMENT_MIN, _MOMENT_MAX)
    pitch = _rescale(c_delm1, _MOMENT_MIN, _MOMENT_MAX)
    yaw = _rescale(c_delm2, _MOMENT_MIN, _MOMENT_MAX)

    pwm = (
        float(_limit(thr - roll - pitch - yaw, MIN_PWM, MAX_PWM)),
        float(_limit(thr - roll + pitch + yaw, MIN_PWM, MAX_PWM)),
        float(_limit(thr + roll + pitch - yaw, MIN_PWM, MAX_PWM)),
        float(_limit(thr + roll - pitch + yaw, MIN_PWM, MAX_PWM)),
    )
    return MixerOutput(1, pwm)


def select_mode(switch_value: float) -> FlightMode:
    """Decode the three-position mode switch."""
    if switch_value > PAYLOAD_THRESHOLD:
        return FlightMode.PAYLOAD_DROP
    if switch_value > MANUAL_THRESHOLD:
        return FlightMode.MANUAL
    return FlightMode.AUTO


def is_armed(good_receiver: bool, good_kill_wire: bool, kill_switch_value: float) -> bool:
    """Return whether the motors may run.

    A lost receiver or a loose kill wire always disarms; otherwise the kill
    switch disarms when its pulse width is above the threshold.
    """
    if not (good_receiver and good_kill_wire):
        return False
    return kill_switch_value <= KILL_SWITCH_THRESHOLD
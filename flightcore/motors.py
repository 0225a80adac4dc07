"""Motor and payload-servo output over pulse-width outputs."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import Protocol

NUM_MOTORS = 4
MIN_PWM_OUT = 1000
MAX_PWM_OUT = 1980
SERVO_OPEN = 2550
SERVO_CLOSED = 1500
PWM_PERIOD_US = 20000  # 50 Hz

_SETTLE_SECONDS = 0.1
_CALIBRATION_HOLD_SECONDS = 5.0


class PwmOutput(Protocol):
    """A pulse-width output channel."""

    def begin(self, period_us: int) -> None:
        """Start the output with the given period in microseconds."""

    def set_pulse_width(self, width_us: float) -> None:
        """Set the pulse width in microseconds."""


class Motors:
    """Drives four ESC outputs and one payload servo."""

    def __init__(
        self,
        outputs: Sequence[PwmOutput],
        servo: PwmOutput,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if len(outputs) != NUM_MOTORS:
            raise ValueError(f"expected {NUM_MOTORS} motor outputs, got {len(outputs)}")
        self._outputs = list(outputs)
        self._servo = servo
        self._sleep = sleep

    def start(self) -> None:
        """Start all outputs at 50 Hz with the motors stopped."""
        for output in self._outputs:
            output.begin(PWM_PERIOD_US)
        self.stop()
        self._sleep(_SETTLE_SECONDS)
        self._servo.begin(PWM_PERIOD_US)

    def calibrate(self) -> None:
        """Teach the ESCs their range by holding maximum, then minimum pulse width."""
        for output in self._outputs:
            output.set_pulse_width(MAX_PWM_OUT)
        self._sleep(_CALIBRATION_HOLD_SECONDS)
        for output in self._outputs:
            output.set_pulse_width(MIN_PWM_OUT)
        self._sleep(_CALIBRATION_HOLD_SECONDS)

    def stop(self) -> None:
        """Send the minimum pulse width to every motor."""
        for output in self._outputs:
            output.set_pulse_width(MIN_PWM_OUT)

    def update(self, pwm: Sequence[float]) -> list[float]:
        """Clamp and send one pulse width per motor; return the values sent."""
        if len(pwm) != NUM_MOTORS:
            raise ValueError(f"expected {NUM_MOTORS} pulse widths, got {len(pwm)}")
        sent = [min(max(float(p), MIN_PWM_OUT), MAX_PWM_OUT) for p in pwm]
        for output, width in zip(self._outputs, sent):
            output.set_pulse_width(width)
        return sent

    def servo_open(self) -> None:
        """Open the payload servo."""
        self._servo.set_pulse_width(SERVO_OPEN)

    def servo_closed(self) -> None:
        """Close the payload servo."""
        self._servo.set_pulse_width(SERVO_CLOSED)
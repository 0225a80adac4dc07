"""Radio-control receiver input conditioning and failure detection."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass, field

RC_CHANS = 6
MIN_PWM_IN = 900
MAX_PWM_IN = 2000
MID_PWM_OUT = (MAX_PWM_IN + MIN_PWM_IN) // 2
STALE_LIMIT = 100
_THRUST_WINDOW = 4


class Channel(enum.IntEnum):
    """Receiver channels in wire order."""

    ROLL = 0
    PITCH = 1
    THR = 2
    YAW = 3
    AUX = 4
    AUX2 = 5


@dataclass(frozen=True)
class ChannelCalibration:
    """Measured minimum, centre and maximum pulse width of a stick."""

    min: int
    mid: int
    max: int


def _default_calibration() -> dict[Channel, ChannelCalibration]:
    thr_min, thr_max = 1000, 1984
    return {
        Channel.ROLL: ChannelCalibration(999, 1498, 1991),
        Channel.PITCH: ChannelCalibration(1000, 1498, 1991),
        Channel.THR: ChannelCalibration(thr_min, (thr_min + thr_max) // 2, thr_max),
        Channel.YAW: ChannelCalibration(987, 1493, 1972),
        Channel.AUX: ChannelCalibration(1000, 1500, 2000),
        Channel.AUX2: ChannelCalibration(1000, 1500, 2000),
    }


@dataclass
class RcInput:
    """Conditioned stick values and receiver health."""

    roll: int = MIN_PWM_IN
    pitch: int = MIN_PWM_IN
    thr: int = MIN_PWM_IN
    yaw: int = MIN_PWM_IN
    aux: int = MIN_PWM_IN
    aux2: int = MIN_PWM_IN
    previous: tuple[int, ...] = (0,) * RC_CHANS
    same_count: int = 0
    same_count_kill_switch: int = 0
    good_receiver: bool = False
    good_kill_wire: bool = False


def manual_map(
    x: float,
    in_min: float,
    in_mid: float,
    in_max: float,
    out_min: float,
    out_mid: float,
    out_max: float,
) -> float:
    """Map ``x`` piecewise-linearly through two segments split at the midpoint."""
    if x < in_mid:
        return (x - in_min) * (out_mid - out_min) / (in_mid - in_min) + out_min
    return (x - in_mid) * (out_max - out_mid) / (in_max - in_mid) + out_mid


@dataclass
class RcPilot:
    """Turns raw receiver pulse widths into calibrated stick values."""

    rc_in: RcInput = field(init=False)
    calibration: dict[Channel, ChannelCalibration] = field(init=False)

    def __init__(self) -> None:
        self.rc_in = RcInput()
        self.calibration = _default_calibration()
        self._data = [MIN_PWM_IN] * RC_CHANS
        self._thrust_history = [0] * _THRUST_WINDOW
        self._thrust_index = 0
        self._thrust_average = 0

    @property
    def raw(self) -> tuple[int, ...]:
        """The last clamped pulse widths, in channel order."""
        return tuple(self._data)

    def reset(self) -> None:
        """Prepare for flight: clear history and mark the links as good."""
        self.rc_in.previous = (0,) * RC_CHANS
        self.rc_in.good_receiver = True
        self.rc_in.good_kill_wire = True
        self._thrust_history = [1000] * _THRUST_WINDOW
        self._thrust_index = 0
        self._thrust_average = 1000

    def _map(self, channel: Channel, value: float) -> int:
        cal = self.calibration[channel]
        mapped = manual_map(
            value, cal.min, cal.mid, cal.max, MIN_PWM_IN, MID_PWM_OUT, MAX_PWM_IN
        )
        return int(mapped)

    def update(self, raw_values: Sequence[int]) -> RcInput:
        """Feed one set of six raw pulse widths and return the conditioned input."""
        if len(raw_values) != RC_CHANS:
            raise ValueError(f"expected {RC_CHANS} channel values, got {len(raw_values)}")
        self._data = [min(max(int(v), MIN_PWM_IN), MAX_PWM_IN) for v in raw_values]
        data = self._data

        self._thrust_average = sum(self._thrust_history) // _THRUST_WINDOW
        self._thrust_history[self._thrust_index] = data[Channel.THR]
        self._thrust_index = (self._thrust_index + 1) % _THRUST_WINDOW
        filtered_thr = (self._thrust_average * 5 + data[Channel.THR]) // 6

        rc_in = self.rc_in
        rc_in.roll = self._map(Channel.ROLL, data[Channel.ROLL])
        rc_in.pitch = self._map(Channel.PITCH, data[Channel.PITCH])
        rc_in.yaw = self._map(Channel.YAW, data[Channel.YAW])
        rc_in.thr = self._map(Channel.THR, filtered_thr)
        rc_in.aux = data[Channel.AUX]
        rc_in.aux2 = data[Channel.AUX2]

        # A live receiver is noisy; identical frames for too long mean it is gone.
        if rc_in.previous[Channel.AUX] == data[Channel.AUX]:
            rc_in.same_count_kill_switch += 1
        else:
            rc_in.same_count_kill_switch = 0
        if rc_in.same_count_kill_switch >= STALE_LIMIT:
            rc_in.good_kill_wire = False

        if tuple(data) == rc_in.previous:
            rc_in.same_count += 1
        else:
            rc_in.same_count = 0
            rc_in.previous = tuple(data)
        if rc_in.same_count >= STALE_LIMIT:
            rc_in.good_receiver = False

        return rc_in

    def format(self) -> str:
        """Describe the raw and conditioned channel values."""
        data = self._data
        rc_in = self.rc_in
        raw = ", ".join(
            str(data[c]) for c in (Channel.ROLL, Channel.PITCH, Channel.THR, Channel.YAW)
        )
        conditioned = ", ".join(
            str(v)
            for v in (rc_in.roll, rc_in.pitch, rc_in.thr, rc_in.yaw, rc_in.aux, rc_in.aux2)
        )
        return f"RAW RC: {raw}, \nRC: {conditioned}"
"""Quaternion helpers for attitude estimation and sensor lever-arm corrections.

Quaternions are ordered scalar first: ``(w, x, y, z)``.
"""

from __future__ import annotations

import math
import random
from collections.abc import Sequence

from flightcore.matrix import Matrix, Vector, mat_cross

_MIN_NORM = 1e-8


def _require_length(name: str, values: Sequence[float], length: int) -> None:
    if len(values) < length:
        raise ValueError(f"{name} needs at least {length} elements, got {len(values)}")


def quat_to_euler(q: Sequence[float]) -> tuple[float, float, float]:
    """Return the roll, pitch and yaw angles (radians) of quaternion ``q``.

    Pitch saturates at plus or minus half pi when the quaternion is at or past
    the gimbal-lock singularity.
    """
    _require_length("quaternion", q, 4)
    q0, q1, q2, q3 = (float(x) for x in q[:4])
    phi = math.atan2(2.0 * (q0 * q1 + q2 * q3), 1.0 - 2.0 * (q1 * q1 + q2 * q2))
    sin_theta = 2.0 * (q0 * q2 - q3 * q1)
    if abs(sin_theta) >= 1.0:
        theta = math.copysign(math.pi / 2.0, sin_theta)
    else:
        theta = math.asin(sin_theta)
    psi = math.atan2(2.0 * (q0 * q3 + q1 * q2), 1.0 - 2.0 * (q2 * q2 + q3 * q3))
    return phi, theta, psi


def fix_quaternion(q: Sequence[float]) -> Vector:
    """Return ``q`` with its leading quaternion renormalised to a non-negative scalar part.

    Elements after the first four (for example gyro biases in a state vector)
    are passed through unchanged. A quaternion with a vanishing norm is
    replaced by the identity rotation.
    """
    _require_length("quaternion", q, 4)
    result = [float(x) for x in q]
    head = result[:4]
    norm = math.sqrt(sum(x * x for x in head))
    if norm > _MIN_NORM:
        head = [x / norm for x in head]
    else:
        head = [1.0, 0.0, 0.0, 0.0]
    if head[0] < 0:
        head = [-x for x in head]
    result[:4] = head
    return result


def rotation_matrix(q: Sequence[float]) -> Matrix:
    """Return the 3x3 body-to-local rotation matrix of quaternion ``q``."""
    _require_length("quaternion", q, 4)
    q0, q1, q2, q3 = (float(x) for x in q[:4])
    return [
        [
            q0 * q0 + q1 * q1 - q2 * q2 - q3 * q3,
            2 * (q1 * q2 - q0 * q3),
            2 * (q1 * q3 + q0 * q2),
        ],
        [
            2 * (q1 * q2 + q0 * q3),
            q0 * q0 - q1 * q1 + q2 * q2 - q3 * q3,
            2 * (q2 * q3 - q0 * q1),
        ],
        [
            2 * (q1 * q3 - q0 * q2),
            2 * (q2 * q3 + q0 * q1),
            q0 * q0 - q1 * q1 - q2 * q2 + q3 * q3,
        ],
    ]


def correct_imu_data(imu_data: Sequence[float], imu_position: Sequence[float]) -> Vector:
    """Move an IMU sample to the centre of gravity.

    ``imu_data`` holds three angular rates followed by three accelerations.
    The centrifugal term ``w x (w x r)`` of the IMU offset ``r`` is removed
    from the accelerations; the angular-acceleration term is taken as zero.
    """
    if len(imu_data) != 6:
        raise ValueError(f"IMU sample needs 6 elements, got {len(imu_data)}")
    if len(imu_position) != 3:
        raise ValueError("IMU position must be a 3-vector")
    omega = [float(x) for x in imu_data[:3]]
    accel = [float(x) for x in imu_data[3:]]
    centrifugal = mat_cross(omega, mat_cross(omega, imu_position))
    return omega + [a - c for a, c in zip(accel, centrifugal)]


def correct_motion_capture_position(
    position: Sequence[float],
    sensor_position: Sequence[float],
    quaternion: Sequence[float],
) -> Vector:
    """Move a motion-capture position fix from the marker to the centre of gravity."""
    if len(position) != 3 or len(sensor_position) != 3:
        raise ValueError("positions must be 3-vectors")
    rotation = rotation_matrix(quaternion)
    offset = [sum(r * s for r, s in zip(row, sensor_position)) for row in rotation]
    return [float(p) - o for p, o in zip(position, offset)]


def quaternion_difference(q1: Sequence[float], q2: Sequence[float]) -> Vector:
    """Return ``q1 - q2`` after flipping ``q1`` into the same hemisphere as ``q2``."""
    _require_length("quaternion", q1, 4)
    _require_length("quaternion", q2, 4)
    a = [float(x) for x in q1[:4]]
    b = [float(x) for x in q2[:4]]
    if sum(x * y for x, y in zip(a, b)) < 0:
        a = [-x for x in a]
    return [x - y for x, y in zip(a, b)]


def quaternion_dot_to_angular_rates(q: Sequence[float], q_dot: Sequence[float]) -> Vector:
    """Return the body angular rates that produce quaternion rate ``q_dot`` at ``q``."""
    _require_length("quaternion", q, 4)
    _require_length("quaternion rate", q_dot, 4)
    q0, q1, q2, q3 = (float(x) for x in q[:4])
    w = (
        (-q1, q0, q3, -q2),
        (-q2, -q3, q0, q1),
        (-q3, q2, -q1, q0),
    )
    return [2.0 * sum(c * d for c, d in zip(row, q_dot[:4])) for row in w]


def add_orientation_noise(
    q: Sequence[float],
    sigmas: Sequence[float],
    rng: random.Random | None = None,
) -> Vector:
    """Return ``q`` with Gaussian noise of the given standard deviations, renormalised."""
    _require_length("quaternion", q, 4)
    _require_length("sigmas", sigmas, 4)
    generator = rng if rng is not None else random.Random()
    noisy = list(q)
    noisy[:4] = [
        float(x) + generator.gauss(0.0, 1.0) * float(s) for x, s in zip(q[:4], sigmas[:4])
    ]
    return fix_quaternion(noisy)
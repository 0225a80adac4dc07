"""Extended Kalman filters for attitude and position from IMU and motion capture.

The attitude filter state is a scalar-first quaternion followed by three gyro
biases. The position filter state is position, velocity and three
accelerometer biases, all in the local frame.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from flightcore.matrix import Matrix, Vector, mat_invert, mat_mult, mat_mult_t
from flightcore.quaternions import (
    correct_imu_data,
    correct_motion_capture_position,
    fix_quaternion,
    quat_to_euler,
    quaternion_difference,
    quaternion_dot_to_angular_rates,
    rotation_matrix,
)

ORIENTATION_STATES = 7
POSITION_STATES = 9

GRAVITY = (0.0, 0.0, 32.2)
IMU_SIGMA_ACCEL = (0.1, 0.1, 0.1)
IMU_SIGMA_GYRO = (0.002, 0.002, 0.002)
IMU_POSITION = (0.1360052493, 0.0, 0.1593772966)
MOCAP_SIGMA_POSITION = (0.0001, 0.0001, 0.0001)
MOCAP_SENSOR_POSITION = (0.0, 0.0, 0.229659)
MOCAP_SIGMA_ORIENTATION = (0.0001, 0.0001, 0.0001, 0.0001)
RATE_FILTER_ALPHA = 0.08
INITIAL_VARIANCE = 0.1
BIAS_SETTLE_TIME = 4.0


def _zeros(rows: int, cols: int) -> Matrix:
    return [[0.0] * cols for _ in range(rows)]


def _check_vector(name: str, values: Sequence[float], length: int) -> None:
    if len(values) != length:
        raise ValueError(f"{name} needs {length} elements, got {len(values)}")


def _check_min_length(name: str, values: Sequence[float], length: int) -> None:
    if len(values) < length:
        raise ValueError(f"{name} needs at least {length} elements, got {len(values)}")


def _check_matrix(name: str, m: Sequence[Sequence[float]], rows: int, cols: int) -> None:
    if len(m) != rows or any(len(row) != cols for row in m):
        raise ValueError(f"{name} must be {rows}x{cols}")


def _mat_vec(a: Sequence[Sequence[float]], v: Sequence[float]) -> Vector:
    return [sum(x * y for x, y in zip(row, v)) for row in a]


def _propagate_covariance(
    f: Matrix, p: Sequence[Sequence[float]], q: Sequence[Sequence[float]], dt: float
) -> Matrix:
    """Euler step of ``P' = F P + P F' + Q``."""
    fp = mat_mult(f, p)
    pft = mat_mult_t(p, f)
    return [
        [p_ij + (fp_ij + pft_ij + q_ij) * dt for p_ij, fp_ij, pft_ij, q_ij in zip(*rows)]
        for rows in zip(p, fp, pft, q)
    ]


def _kalman_update(
    state: Sequence[float],
    covariance: Sequence[Sequence[float]],
    r_matrix: Sequence[Sequence[float]],
    h_matrix: Sequence[Sequence[float]],
    error: Sequence[float],
) -> tuple[Vector, Matrix]:
    pht = mat_mult_t(covariance, h_matrix)
    hp = mat_mult(h_matrix, covariance)
    innovation = [
        [a + b for a, b in zip(row_s, row_r)]
        for row_s, row_r in zip(mat_mult_t(hp, h_matrix), r_matrix)
    ]
    gain = mat_mult(pht, mat_invert(innovation))
    new_state = [float(x) + c for x, c in zip(state, _mat_vec(gain, error))]
    kh = mat_mult(gain, h_matrix)
    ikh = [
        [(1.0 if i == j else 0.0) - value for j, value in enumerate(row)]
        for i, row in enumerate(kh)
    ]
    return new_state, mat_mult(ikh, covariance)


# ---------------------------------------------------------------- orientation


def find_q_orientation(gyro_sigma: Sequence[float]) -> Matrix:
    """Process noise of the attitude filter from the gyro standard deviations."""
    _check_vector("gyro sigma", gyro_sigma, 3)
    average = sum(gyro_sigma) / 3.0
    q = _zeros(ORIENTATION_STATES, ORIENTATION_STATES)
    for i in range(4):
        q[i][i] = average * average / 4.0
    return q


def find_h_orientation() -> Matrix:
    """Measurement matrix picking the quaternion out of the attitude state."""
    h = _zeros(4, ORIENTATION_STATES)
    for i in range(4):
        h[i][i] = 1.0
    return h


def find_r_orientation(sigmas: Sequence[float]) -> Matrix:
    """Measurement noise of a quaternion fix from its four standard deviations."""
    _check_vector("orientation sigmas", sigmas, 4)
    r = _zeros(4, 4)
    for i, sigma in enumerate(sigmas):
        r[i][i] = float(sigma) ** 2
    return r


def derivative_orientation(state: Sequence[float], imu: Sequence[float]) -> Vector:
    """Time derivative of the attitude state for body rates ``imu[:3]``."""
    _check_vector("orientation state", state, ORIENTATION_STATES)
    _check_min_length("IMU sample", imu, 3)
    q = [float(x) for x in state[:4]]
    p, qr, r = (float(w) - float(b) for w, b in zip(imu[:3], state[4:7]))
    omega = (
        (0.0, -p, -qr, -r),
        (p, 0.0, r, -qr),
        (qr, -r, 0.0, p),
        (r, qr, -p, 0.0),
    )
    q_dot = [0.5 * sum(o * x for o, x in zip(row, q)) for row in omega]
    return q_dot + [0.0, 0.0, 0.0]


def find_f_orientation(state: Sequence[float], imu: Sequence[float]) -> Matrix:
    """Jacobian of :func:`derivative_orientation` with respect to the state."""
    _check_vector("orientation state", state, ORIENTATION_STATES)
    _check_min_length("IMU sample", imu, 3)
    q0, q1, q2, q3, bp, bq, br = (float(x) for x in state)
    wx, wy, wz = (float(x) for x in imu[:3])
    f11 = (
        (0.0, (bp - wx) / 2, (bq - wy) / 2, (br - wz) / 2),
        ((-bp + wx) / 2, 0.0, (-br + wz) / 2, (bq - wy) / 2),
        ((-bq + wy) / 2, (br - wz) / 2, 0.0, (-bp + wx) / 2),
        ((-br + wz) / 2, (-bq + wy) / 2, (bp - wx) / 2, 0.0),
    )
    f15 = (
        (q1 / 2, q2 / 2, q3 / 2),
        (-q0 / 2, q3 / 2, -q2 / 2),
        (-q3 / 2, -q0 / 2, q1 / 2),
        (q2 / 2, -q1 / 2, -q0 / 2),
    )
    f = _zeros(ORIENTATION_STATES, ORIENTATION_STATES)
    for i in range(4):
        f[i][:4] = list(f11[i])
        f[i][4:] = list(f15[i])
    return f


def predict_orientation(
    state: Sequence[float],
    covariance: Sequence[Sequence[float]],
    dt: float,
    q_matrix: Sequence[Sequence[float]],
    imu: Sequence[float],
) -> tuple[Vector, Matrix, Vector]:
    """Propagate the attitude filter by ``dt``.

    Returns the new state, the new covariance and the averaged state
    derivative used for the step.
    """
    _check_vector("orientation state", state, ORIENTATION_STATES)
    _check_matrix("covariance", covariance, ORIENTATION_STATES, ORIENTATION_STATES)
    _check_matrix("process noise", q_matrix, ORIENTATION_STATES, ORIENTATION_STATES)

    first = derivative_orientation(state, imu)
    trial = [float(x) + d * dt for x, d in zip(state, first)]
    norm = math.sqrt(sum(x * x for x in trial))
    if norm == 0.0:
        raise ValueError("orientation state has zero norm")
    trial = [x / norm for x in trial]
    second = derivative_orientation(trial, imu)

    derivative = [0.5 * (a + b) for a, b in zip(second, first)]
    new_state = fix_quaternion([float(x) + d * dt for x, d in zip(state, derivative)])

    f = find_f_orientation(new_state, imu)
    new_covariance = _propagate_covariance(f, covariance, q_matrix, dt)
    return new_state, new_covariance, derivative


def correct_orientation(
    state: Sequence[float],
    covariance: Sequence[Sequence[float]],
    r_matrix: Sequence[Sequence[float]],
    h_matrix: Sequence[Sequence[float]],
    measurement: Sequence[float],
    predicted: Sequence[float],
) -> tuple[Vector, Matrix]:
    """Fuse a measured quaternion into the attitude filter."""
    _check_vector("orientation state", state, ORIENTATION_STATES)
    _check_matrix("covariance", covariance, ORIENTATION_STATES, ORIENTATION_STATES)
    _check_matrix("measurement noise", r_matrix, 4, 4)
    _check_matrix("measurement matrix", h_matrix, 4, ORIENTATION_STATES)
    error = quaternion_difference(measurement, predicted)
    new_state, new_covariance = _kalman_update(state, covariance, r_matrix, h_matrix, error)
    return fix_quaternion(new_state), new_covariance


# ------------------------------------------------------------------- position


def find_q_position(accel_sigma: Sequence[float]) -> Matrix:
    """Process noise of the position filter from the accelerometer deviations."""
    _check_vector("accelerometer sigma", accel_sigma, 3)
    q = _zeros(POSITION_STATES, POSITION_STATES)
    for i, sigma in enumerate(accel_sigma):
        q[3 + i][3 + i] = float(sigma) * float(sigma)
    return q


def find_h_position() -> Matrix:
    """Measurement matrix picking the position out of the position state."""
    h = _zeros(3, POSITION_STATES)
    for i in range(3):
        h[i][i] = 1.0
    return h


def find_r_position(sigmas: Sequence[float]) -> Matrix:
    """Measurement noise of a position fix from its three standard deviations."""
    _check_vector("position sigmas", sigmas, 3)
    r = _zeros(3, 3)
    for i, sigma in enumerate(sigmas):
        r[i][i] = float(sigma) * float(sigma)
    return r


def find_f_position(quaternion: Sequence[float]) -> Matrix:
    """Jacobian of :func:`derivative_position` for a unit quaternion."""
    _check_min_length("quaternion", quaternion, 4)
    q0, q1, q2, q3 = (float(x) for x in quaternion[:4])
    f34 = (
        (-1 + 2 * (q2 * q2 + q3 * q3), -2 * (q1 * q2 - q0 * q3), -2 * (q1 * q3 + q0 * q2)),
        (-2 * (q0 * q3 + q1 * q2), -1 + 2 * (q1 * q1 + q3 * q3), -2 * (q2 * q3 - q0 * q1)),
        (-2 * (q1 * q3 - q0 * q2), -2 * (q0 * q1 + q2 * q3), -1 + 2 * (q1 * q1 + q2 * q2)),
    )
    f = _zeros(POSITION_STATES, POSITION_STATES)
    for i in range(3):
        f[i][i + 3] = 1.0
        f[i + 3][6:9] = list(f34[i])
    return f


def derivative_position(
    state: Sequence[float],
    imu: Sequence[float],
    g: Sequence[float],
    quaternion: Sequence[float],
) -> Vector:
    """Time derivative of the position state for body accelerations ``imu[3:6]``."""
    _check_vector("position state", state, POSITION_STATES)
    _check_vector("IMU sample", imu, 6)
    _check_vector("gravity", g, 3)
    velocity = [float(x) for x in state[3:6]]
    accel = [float(a) - float(b) for a, b in zip(imu[3:6], state[6:9])]
    rotated = _mat_vec(rotation_matrix(quaternion), accel)
    v_dot = [a + float(gi) for a, gi in zip(rotated, g)]
    return velocity + v_dot + [0.0, 0.0, 0.0]


def predict_position(
    state: Sequence[float],
    covariance: Sequence[Sequence[float]],
    dt: float,
    q_matrix: Sequence[Sequence[float]],
    imu: Sequence[float],
    g: Sequence[float],
    quaternion: Sequence[float],
) -> tuple[Vector, Matrix, Vector]:
    """Propagate the position filter by ``dt``.

    Returns the new state, the new covariance and the averaged state
    derivative used for the step.
    """
    _check_vector("position state", state, POSITION_STATES)
    _check_matrix("covariance", covariance, POSITION_STATES, POSITION_STATES)
    _check_matrix("process noise", q_matrix, POSITION_STATES, POSITION_STATES)

    first = derivative_position(state, imu, g, quaternion)
    trial = [float(x) + d * dt for x, d in zip(state, first)]
    second = derivative_position(trial, imu, g, quaternion)

    derivative = [0.5 * (a + b) for a, b in zip(second, first)]
    new_state = [float(x) + d * dt for x, d in zip(state, derivative)]

    f = find_f_position(quaternion)
    new_covariance = _propagate_covariance(f, covariance, q_matrix, dt)
    return new_state, new_covariance, derivative


def correct_position(
    state: Sequence[float],
    covariance: Sequence[Sequence[float]],
    r_matrix: Sequence[Sequence[float]],
    h_matrix: Sequence[Sequence[float]],
    measurement: Sequence[float],
    predicted: Sequence[float],
) -> tuple[Vector, Matrix]:
    """Fuse a measured position into the position filter."""
    _check_vector("position state", state, POSITION_STATES)
    _check_matrix("covariance", covariance, POSITION_STATES, POSITION_STATES)
    _check_matrix("measurement noise", r_matrix, 3, 3)
    _check_matrix("measurement matrix", h_matrix, 3, POSITION_STATES)
    _check_vector("measurement", measurement, 3)
    _check_vector("predicted measurement", predicted, 3)
    error = [float(m) - float(p) for m, p in zip(measurement, predicted)]
    return _kalman_update(state, covariance, r_matrix, h_matrix, error)


# --------------------------------------------------------------------- filter


@dataclass
class NavigationOutput:
    """Navigation solution published to the controller."""

    position: Vector = field(default_factory=lambda: [0.0, 0.0, 0.0])
    velocity: Vector = field(default_factory=lambda: [0.0, 0.0, 0.0])
    acceleration: Vector = field(default_factory=lambda: [0.0, 0.0, 0.0])
    velocity_body: Vector = field(default_factory=lambda: [0.0, 0.0, 0.0])
    acceleration_body: Vector = field(default_factory=lambda: [0.0, 0.0, 0.0])
    angular_rates: Vector = field(default_factory=lambda: [0.0, 0.0, 0.0])
    quaternion: Vector = field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0])
    phi: float = 0.0
    theta: float = 0.0
    psi: float = 0.0
    time: float = 0.0


class NavigationFilter:
    """Attitude and position filters driven by IMU samples and motion-capture fixes."""

    def __init__(self) -> None:
        self.orientation_state: Vector = [1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0]
        self.position_state: Vector = [0.0] * POSITION_STATES
        self.orientation_covariance: Matrix = _zeros(ORIENTATION_STATES, ORIENTATION_STATES)
        self.position_covariance: Matrix = _zeros(POSITION_STATES, POSITION_STATES)
        self.orientation_derivative: Vector = [0.0] * ORIENTATION_STATES
        self.position_derivative: Vector = [0.0] * POSITION_STATES
        self.euler_angles: tuple[float, float, float] = (0.0, 0.0, 0.0)
        self.angular_rates_avg: Vector = [0.0, 0.0, 0.0]
        self.angular_rates_current: Vector = [0.0, 0.0, 0.0]
        self.ekf_counter = 0
        self.imu_counter = 0
        self.gps_counter = 0
        self.output = NavigationOutput()

    def _initialise_covariances(self) -> None:
        for i in range(ORIENTATION_STATES):
            self.orientation_covariance[i][i] = INITIAL_VARIANCE
        for i in range(POSITION_STATES):
            self.position_covariance[i][i] = INITIAL_VARIANCE

    def update(
        self,
        dt: float,
        gyro: Sequence[float],
        accel: Sequence[float],
        imu_counter: int,
        mocap_position: Sequence[float],
        mocap_quaternion: Sequence[float],
        mocap_counter: int,
    ) -> NavigationOutput:
        """Run one navigation step.

        A new IMU sample (``imu_counter`` changed) triggers a prediction; a new
        motion-capture fix (``mocap_counter`` changed) then triggers a
        correction. Rates are in rad/s.
        """
        _check_vector("gyro", gyro, 3)
        _check_vector("accelerometer", accel, 3)
        self.ekf_counter += 1
        time = self.output.time + dt

        if self.ekf_counter == 1:
            self._initialise_covariances()

        if imu_counter != self.imu_counter:
            if time <= BIAS_SETTLE_TIME:
                self.position_state[6:9] = [0.0, 0.0, 0.0]
            self.imu_counter = imu_counter
            imu = correct_imu_data(list(gyro) + list(accel), IMU_POSITION)

            q_orientation = find_q_orientation(IMU_SIGMA_GYRO)
            q_position = find_q_position(IMU_SIGMA_ACCEL)
            prior_quaternion = self.orientation_state[:4]

            (
                self.orientation_state,
                self.orientation_covariance,
                self.orientation_derivative,
            ) = predict_orientation(
                self.orientation_state, self.orientation_covariance, dt, q_orientation, imu
            )
            (
                self.position_state,
                self.position_covariance,
                self.position_derivative,
            ) = predict_position(
                self.position_state,
                self.position_covariance,
                dt,
                q_position,
                imu,
                GRAVITY,
                prior_quaternion,
            )
            self.orientation_state = fix_quaternion(self.orientation_state)

            if mocap_counter != self.gps_counter:
                self.gps_counter = mocap_counter
                self._correct(mocap_position, mocap_quaternion)

        q = self.orientation_state[:4]
        q_dot = self.orientation_derivative[:4]
        self.euler_angles = quat_to_euler(q)
        self.angular_rates_current = quaternion_dot_to_angular_rates(q, q_dot)
        self.angular_rates_avg = [
            RATE_FILTER_ALPHA * current + (1 - RATE_FILTER_ALPHA) * average
            for current, average in zip(self.angular_rates_current, self.angular_rates_avg)
        ]

        phi, theta, psi = self.euler_angles
        self.output = NavigationOutput(
            position=list(self.position_state[:3]),
            velocity=list(self.position_state[3:6]),
            acceleration=list(self.position_derivative[3:6]),
            velocity_body=list(self.output.velocity_body),
            acceleration_body=list(self.output.acceleration_body),
            angular_rates=list(self.angular_rates_avg),
            quaternion=list(q),
            phi=phi,
            theta=theta,
            psi=psi,
            time=time,
        )
        return self.output

    def _correct(
        self, mocap_position: Sequence[float], mocap_quaternion: Sequence[float]
    ) -> None:
        predicted_orientation = self.orientation_state[:4]
        measured_orientation = fix_quaternion(mocap_quaternion)
        measured_position = correct_motion_capture_position(
            mocap_position, MOCAP_SENSOR_POSITION, predicted_orientation
        )
        predicted_position = self.position_state[:3]

        self.orientation_state, self.orientation_covariance = correct_orientation(
            self.orientation_state,
            self.orientation_covariance,
            find_r_orientation(MOCAP_SIGMA_ORIENTATION),
            find_h_orientation(),
            measured_orientation,
            predicted_orientation,
        )
        self.position_state, self.position_covariance = correct_position(
            self.position_state,
            self.position_covariance,
            find_r_position(MOCAP_SIGMA_POSITION),
            find_h_position(),
            measured_position,
            predicted_position,
        )
        self.orientation_state = fix_quaternion(self.orientation_state)
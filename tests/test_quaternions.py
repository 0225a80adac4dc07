import math
import random

import pytest

from flightcore.quaternions import (
    add_orientation_noise,
    correct_imu_data,
    correct_motion_capture_position,
    fix_quaternion,
    quat_to_euler,
    quaternion_difference,
    quaternion_dot_to_angular_rates,
    rotation_matrix,
)

IDENTITY = [1.0, 0.0, 0.0, 0.0]


def _norm(v):
    return math.sqrt(sum(x * x for x in v))


def _unit(q):
    n = _norm(q)
    return [x / n for x in q]


SAMPLE_QUATERNIONS = [
    IDENTITY,
    _unit([0.9, 0.1, -0.2, 0.3]),
    _unit([0.5, 0.5, 0.5, 0.5]),
    _unit([0.2, -0.7, 0.1, 0.4]),
]


def test_identity_gives_zero_euler_angles():
    assert quat_to_euler(IDENTITY) == pytest.approx((0.0, 0.0, 0.0))


def test_pure_yaw_quaternion():
    half = math.pi / 4
    phi, theta, psi = quat_to_euler([math.cos(half), 0.0, 0.0, math.sin(half)])
    assert phi == pytest.approx(0.0)
    assert theta == pytest.approx(0.0)
    assert psi == pytest.approx(math.pi / 2)


def test_pitch_saturates_at_gimbal_lock():
    # sin(theta) = 2*(q0*q2 - q3*q1) is beyond 1 for this unnormalised input
    _, theta, _ = quat_to_euler([1.0, 0.0, 1.0, 0.0])
    assert theta == pytest.approx(math.pi / 2)
    _, theta, _ = quat_to_euler([1.0, 0.0, -1.0, 0.0])
    assert theta == pytest.approx(-math.pi / 2)


def test_fix_quaternion_normalises():
    fixed = fix_quaternion([2.0, 0.0, 0.0, 0.0])
    assert fixed == pytest.approx(IDENTITY)
    assert _norm(fix_quaternion([0.3, 1.2, -0.4, 2.0])) == pytest.approx(1.0)


def test_fix_quaternion_flips_negative_scalar():
    fixed = fix_quaternion([-0.5, 0.5, -0.5, 0.5])
    assert fixed[0] > 0
    assert fixed == pytest.approx([0.5, -0.5, 0.5, -0.5])


def test_fix_quaternion_replaces_degenerate_with_identity():
    assert fix_quaternion([0.0, 0.0, 0.0, 0.0]) == IDENTITY


def test_fix_quaternion_keeps_trailing_state():
    state = [2.0, 0.0, 0.0, 0.0, 0.1, -0.2, 0.3]
    fixed = fix_quaternion(state)
    assert fixed[4:] == [0.1, -0.2, 0.3]
    assert fixed[:4] == pytest.approx(IDENTITY)
    assert state[0] == 2.0


def test_fix_quaternion_rejects_short_input():
    with pytest.raises(ValueError):
        fix_quaternion([1.0, 0.0])


def test_rotation_matrix_of_identity():
    r = rotation_matrix(IDENTITY)
    for i in range(3):
        for j in range(3):
            assert r[i][j] == pytest.approx(1.0 if i == j else 0.0)


@pytest.mark.parametrize("q", SAMPLE_QUATERNIONS)
def test_rotation_matrix_is_orthonormal(q):
    r = rotation_matrix(q)
    for i in range(3):
        for j in range(3):
            dot = sum(r[i][k] * r[j][k] for k in range(3))
            assert dot == pytest.approx(1.0 if i == j else 0.0, abs=1e-12)


@pytest.mark.parametrize("q", SAMPLE_QUATERNIONS)
def test_rotation_matrix_same_for_negated_quaternion(q):
    a = rotation_matrix(q)
    b = rotation_matrix([-x for x in q])
    for row_a, row_b in zip(a, b):
        assert row_a == pytest.approx(row_b)


def test_correct_imu_data_without_rotation_keeps_sample():
    sample = [0.0, 0.0, 0.0, 1.0, -2.0, 9.8]
    assert correct_imu_data(sample, [0.1, 0.2, 0.3]) == pytest.approx(sample)


def test_correct_imu_data_rate_parallel_to_offset_has_no_effect():
    sample = [0.0, 0.0, 2.0, 0.5, 0.5, 0.5]
    assert correct_imu_data(sample, [0.0, 0.0, 0.4]) == pytest.approx(sample)


def test_correct_imu_data_removes_centripetal_acceleration():
    corrected = correct_imu_data([0.0, 0.0, 1.0, 0.0, 0.0, 0.0], [1.0, 0.0, 0.0])
    assert corrected[:3] == [0.0, 0.0, 1.0]
    assert corrected[3:] == pytest.approx([1.0, 0.0, 0.0])


def test_correct_imu_data_rejects_bad_lengths():
    with pytest.raises(ValueError):
        correct_imu_data([0.0] * 5, [0.0, 0.0, 0.0])
    with pytest.raises(ValueError):
        correct_imu_data([0.0] * 6, [0.0, 0.0])


def test_correct_motion_capture_position_identity():
    result = correct_motion_capture_position([1.0, 2.0, 3.0], [0.0, 0.0, 0.5], IDENTITY)
    assert result == pytest.approx([1.0, 2.0, 2.5])


@pytest.mark.parametrize("q", SAMPLE_QUATERNIONS)
def test_correct_motion_capture_position_preserves_offset_length(q):
    position = [4.0, -1.0, 2.0]
    offset = [0.3, -0.1, 0.2]
    result = correct_motion_capture_position(position, offset, q)
    shift = [p - r for p, r in zip(position, result)]
    assert _norm(shift) == pytest.approx(_norm(offset))


def test_quaternion_difference_of_equal_is_zero():
    q = SAMPLE_QUATERNIONS[1]
    assert quaternion_difference(q, q) == pytest.approx([0.0] * 4)


@pytest.mark.parametrize("q", SAMPLE_QUATERNIONS)
def test_quaternion_difference_aligns_hemisphere(q):
    assert quaternion_difference([-x for x in q], q) == pytest.approx([0.0] * 4, abs=1e-12)


def test_quaternion_difference_is_elementwise():
    q1 = [1.0, 0.0, 0.0, 0.0]
    q2 = [0.5, 0.5, 0.5, 0.5]
    assert quaternion_difference(q1, q2) == pytest.approx([0.5, -0.5, -0.5, -0.5])


def test_angular_rates_at_identity():
    omega = [0.3, -0.2, 0.7]
    q_dot = [0.0, omega[0] / 2, omega[1] / 2, omega[2] / 2]
    assert quaternion_dot_to_angular_rates(IDENTITY, q_dot) == pytest.approx(omega)


def test_angular_rates_zero_for_zero_rate():
    q = SAMPLE_QUATERNIONS[2]
    assert quaternion_dot_to_angular_rates(q, [0.0] * 4) == pytest.approx([0.0] * 3)


def test_noise_with_zero_sigma_only_normalises():
    result = add_orientation_noise([2.0, 0.0, 0.0, 0.0], [0.0] * 4, random.Random(1))
    assert result == pytest.approx(IDENTITY)


def test_noise_is_reproducible_and_unit():
    q = SAMPLE_QUATERNIONS[1]
    a = add_orientation_noise(q, [0.01] * 4, random.Random(42))
    b = add_orientation_noise(q, [0.01] * 4, random.Random(42))
    assert a == b
    assert _norm(a) == pytest.approx(1.0)
    assert a[0] >= 0
    assert a != pytest.approx(q, abs=1e-9)


def test_noise_rejects_short_sigmas():
    with pytest.raises(ValueError):
        add_orientation_noise(IDENTITY, [0.1, 0.1], random.Random(0))
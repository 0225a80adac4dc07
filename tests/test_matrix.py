import pytest

from flightcore.matrix import (
    format_matrix,
    mat_cross,
    mat_invert,
    mat_mult,
    mat_mult_t,
    mat_norm2,
    mat_normalize,
    mat_qr_sub_t,
    mat_qr_t,
    mat_t_mult,
    mat_transpose,
)

A = [[4.0, 1.0, 2.0], [0.5, 3.0, -1.0], [2.0, -1.0, 5.0]]
B = [[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]]


def _assert_close(actual, expected, tol=1e-9):
    assert len(actual) == len(expected)
    for row_a, row_e in zip(actual, expected):
        assert row_a == pytest.approx(row_e, abs=tol)


def _identity(n):
    return [[1.0 if i == j else 0.0 for j in range(n)] for i in range(n)]


def test_mult_by_identity_returns_same_matrix():
    _assert_close(mat_mult(_identity(3), A), A)
    _assert_close(mat_mult(A, _identity(3)), A)


def test_mult_dimension_mismatch_raises():
    with pytest.raises(ValueError):
        mat_mult(B, B)


def test_mult_shape():
    product = mat_mult(A, B)
    assert len(product) == 3
    assert all(len(row) == 2 for row in product)


def test_mult_t_matches_mult_with_transpose():
    other = [[1.0, 0.0, 2.0], [-1.0, 3.0, 1.0]]
    _assert_close(mat_mult_t(A, other), mat_mult(A, mat_transpose(other)))


def test_mult_t_mismatch_raises():
    with pytest.raises(ValueError):
        mat_mult_t(A, B)


def test_t_mult_matches_transpose_then_mult():
    _assert_close(mat_t_mult(B, A), mat_mult(mat_transpose(B), A))


def test_t_mult_mismatch_raises():
    with pytest.raises(ValueError):
        mat_t_mult([[1.0, 2.0]], B)


def test_transpose_is_involution():
    transposed = mat_transpose(B)
    assert len(transposed) == 2 and len(transposed[0]) == 3
    _assert_close(mat_transpose(transposed), B)


def test_ragged_matrix_rejected():
    with pytest.raises(ValueError):
        mat_transpose([[1.0, 2.0], [3.0]])


def test_invert_gives_identity_product():
    m = [
        [5.0, 1.0, 0.5, 0.0],
        [1.0, 4.0, 0.2, 0.1],
        [0.5, 0.2, 3.0, 0.3],
        [0.0, 0.1, 0.3, 2.0],
    ]
    inv = mat_invert(m)
    _assert_close(mat_mult(m, inv), _identity(4))
    _assert_close(mat_mult(inv, m), _identity(4))


def test_invert_permutation_needs_pivoting():
    perm = [[0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0]]
    _assert_close(mat_invert(perm), mat_transpose(perm))


def test_invert_zero_row_raises():
    with pytest.raises(ValueError):
        mat_invert([[1.0, 2.0], [0.0, 0.0]])


def test_invert_non_square_raises():
    with pytest.raises(ValueError):
        mat_invert(B)


def test_cross_of_basis_vectors():
    assert mat_cross([1.0, 0.0, 0.0], [0.0, 1.0, 0.0]) == [0.0, 0.0, 1.0]


def test_cross_is_orthogonal_and_antisymmetric():
    v1 = [1.5, -2.0, 0.7]
    v2 = [0.3, 4.0, -1.1]
    c = mat_cross(v1, v2)
    assert sum(x * y for x, y in zip(c, v1)) == pytest.approx(0.0, abs=1e-12)
    assert sum(x * y for x, y in zip(c, v2)) == pytest.approx(0.0, abs=1e-12)
    assert mat_cross(v2, v1) == pytest.approx([-x for x in c])


def test_cross_rejects_wrong_length():
    with pytest.raises(ValueError):
        mat_cross([1.0, 2.0], [3.0, 4.0, 5.0])


def test_normalize_gives_unit_norm():
    v = [3.0, -4.0, 12.0, 0.5]
    assert mat_norm2(mat_normalize(v)) == pytest.approx(1.0)


def test_normalize_zero_vector_stays_zero():
    assert mat_normalize([0.0, 0.0, 0.0]) == [0.0, 0.0, 0.0]


def test_norm2_is_scale_covariant():
    v = [1.0, 2.0, -2.0]
    assert mat_norm2([3 * x for x in v]) == pytest.approx(3 * mat_norm2(v))


def test_qr_result_is_upper_triangular_and_preserves_gram_matrix():
    r = mat_qr_t(A)
    for i, row in enumerate(r):
        for j in range(i):
            assert row[j] == pytest.approx(0.0, abs=1e-9)
    _assert_close(mat_mult_t(r, r), mat_mult_t(A, A))


def test_qr_sub_leaves_outside_block_untouched():
    big = [
        [2.0, 1.0, 0.0, 7.0],
        [1.0, 3.0, 1.0, 8.0],
        [0.0, 1.0, 4.0, 9.0],
        [6.0, 5.0, 4.0, 3.0],
    ]
    r = mat_qr_sub_t(big, 3)
    assert r[3] == big[3]
    assert [row[3] for row in r] == [row[3] for row in big]
    block = [row[:3] for row in r]
    original = [row[:3] for row in big[:3]]
    _assert_close(mat_mult_t(block[:3], block[:3]), mat_mult_t(original, original))


def test_qr_sub_too_big_raises():
    with pytest.raises(ValueError):
        mat_qr_sub_t(B, 3)


def test_format_matrix_right_aligns_in_eight_columns():
    text = format_matrix([[1, 2], [3, 4]])
    assert text == "       1       2\n       3       4"
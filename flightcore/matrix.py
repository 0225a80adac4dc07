"""Small dense matrix routines on row-major lists of lists."""

from __future__ import annotations

import math
from collections.abc import Sequence

Matrix = list[list[float]]
Vector = list[float]

MAXSIZE = 25
MAT_MAX_QR = 64 * 3
_NORMALIZE_EPS = 1e-24
_ZERO_PIVOT = 1.0e-12


def _shape(a: Sequence[Sequence[float]]) -> tuple[int, int]:
    rows = len(a)
    cols = len(a[0]) if rows else 0
    if any(len(row) != cols for row in a):
        raise ValueError("matrix rows must all have the same length")
    return rows, cols


def _sign(x: float) -> float:
    if x < 0:
        return -1.0
    if x > 0:
        return 1.0
    return 0.0


def mat_mult(a: Sequence[Sequence[float]], b: Sequence[Sequence[float]]) -> Matrix:
    """Return the product ``a * b``."""
    _, ma = _shape(a)
    nb, mb = _shape(b)
    if ma != nb:
        raise ValueError(f"matrix: dim problem ({ma} columns times {nb} rows)")
    columns = [list(col) for col in zip(*b)] if mb else []
    return [
        [float(sum(x * y for x, y in zip(row, col))) for col in columns]
        for row in a
    ]


def mat_mult_t(a: Sequence[Sequence[float]], b: Sequence[Sequence[float]]) -> Matrix:
    """Return ``a * b'``, the product of ``a`` with ``b`` transposed."""
    _, ma = _shape(a)
    _, mb = _shape(b)
    if ma != mb:
        raise ValueError(f"matrix: dim problem ({ma} columns against {mb} columns)")
    return [
        [float(sum(x * y for x, y in zip(row_a, row_b))) for row_b in b]
        for row_a in a
    ]


def mat_t_mult(a: Sequence[Sequence[float]], b: Sequence[Sequence[float]]) -> Matrix:
    """Return ``a' * b``, the product of ``a`` transposed with ``b``."""
    na, _ = _shape(a)
    nb, _ = _shape(b)
    if na != nb:
        raise ValueError(f"matrix: dim problem ({na} rows against {nb} rows)")
    return mat_mult(mat_transpose(a), b)


def mat_transpose(a: Sequence[Sequence[float]]) -> Matrix:
    """Return the transpose of ``a``."""
    _shape(a)
    return [[float(x) for x in col] for col in zip(*a)]


def _lu_decomp(a: Matrix) -> list[int]:
    """Crout LU decomposition with scaled partial pivoting, in place."""
    n = len(a)
    scale = []
    for row in a:
        big = max((abs(x) for x in row), default=0.0)
        if big == 0.0:
            raise ValueError("matrix is singular")
        scale.append(1.0 / big)

    index = [0] * n
    for j in range(n):
        for i in range(j):
            a[i][j] -= sum(a[i][k] * a[k][j] for k in range(i))
        big = 0.0
        imax = j
        for i in range(j, n):
            total = a[i][j] - sum(a[i][k] * a[k][j] for k in range(j))
            a[i][j] = total
            dum = scale[i] * abs(total)
            if dum >= big:
                big = dum
                imax = i
        if j != imax:
            a[imax], a[j] = a[j], a[imax]
            scale[imax] = scale[j]
        index[j] = imax
        if a[j][j] == 0.0:
            a[j][j] = _ZERO_PIVOT
        if j != n - 1:
            inv = 1.0 / a[j][j]
            for i in range(j + 1, n):
                a[i][j] *= inv
    return index


def _lu_back_sub(a: Matrix, index: list[int], b: list[float]) -> None:
    n = len(a)
    first = -1
    for i in range(n):
        ip = index[i]
        total = b[ip]
        b[ip] = b[i]
        if first != -1:
            total -= sum(a[i][j] * b[j] for j in range(first, i))
        elif total:
            first = i
        b[i] = total
    for i in reversed(range(n)):
        total = b[i] - sum(a[i][j] * b[j] for j in range(i + 1, n))
        b[i] = total / a[i][i]


def mat_invert(a: Sequence[Sequence[float]]) -> Matrix:
    """Return the inverse of the square matrix ``a`` via LU decomposition."""
    n, m = _shape(a)
    if n != m:
        raise ValueError("only square matrices can be inverted")
    lu = [[float(x) for x in row] for row in a]
    index = _lu_decomp(lu)
    columns = []
    for j in range(n):
        b = [0.0] * n
        b[j] = 1.0
        _lu_back_sub(lu, index, b)
        columns.append(b)
    return mat_transpose(columns)


def mat_cross(v1: Sequence[float], v2: Sequence[float]) -> Vector:
    """Return the cross product of two 3-vectors."""
    if len(v1) != 3 or len(v2) != 3:
        raise ValueError("cross product needs two 3-vectors")
    return [
        v1[1] * v2[2] - v1[2] * v2[1],
        v1[2] * v2[0] - v1[0] * v2[2],
        v1[0] * v2[1] - v1[1] * v2[0],
    ]


def mat_norm2(v: Sequence[float]) -> float:
    """Return the Euclidean norm of ``v``."""
    return math.sqrt(sum(x * x for x in v))


def mat_normalize(v: Sequence[float]) -> Vector:
    """Return ``v`` scaled to unit 2-norm; tiny vectors are divided by a floor."""
    total = sum(x * x for x in v)
    if total < _NORMALIZE_EPS:
        total = _NORMALIZE_EPS
    magnitude = math.sqrt(total)
    return [x / magnitude for x in v]


def mat_qr_sub_t(a: Sequence[Sequence[float]], m: int) -> Matrix:
    """Triangulate the leading ``m`` by ``m`` block of ``a`` with Householder reflections.

    The block is multiplied on the right by an orthogonal matrix so that it
    becomes upper triangular; the rest of ``a`` is returned unchanged.
    """
    rows, la = _shape(a)
    if m < 0 or m > MAT_MAX_QR or m > la or m > rows:
        raise ValueError("mat_qr_T: matrix too big")
    result = [[float(x) for x in row] for row in a]
    for j in reversed(range(m)):
        size = j + 1
        vec = result[j][:size]
        d = mat_norm2(vec)
        vec[j] += _sign(vec[j]) * d
        vec = mat_normalize(vec)
        projections = [
            sum(vk * result[q][k] for k, vk in enumerate(vec)) for q in range(size)
        ]
        for q, proj in enumerate(projections):
            row = result[q]
            for k, vk in enumerate(vec):
                row[k] -= 2 * vk * proj
    return result


def mat_qr_t(a: Sequence[Sequence[float]]) -> Matrix:
    """Triangulate the whole square matrix ``a``; see :func:`mat_qr_sub_t`."""
    n, m = _shape(a)
    if n != m:
        raise ValueError("mat_qr_t needs a square matrix")
    return mat_qr_sub_t(a, n)


def format_matrix(a: Sequence[Sequence[float]]) -> str:
    """Render ``a`` with every entry right-aligned in eight characters."""
    _shape(a)
    return "\n".join("".join(f"{x:>8g}" for x in row) for row in a)
# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import math
from typing import Optional

import numpy as np

# Machine epsilon for float64
EPS: float = 2.0**-52


def hypot(a: float, b: float) -> float:
    """
    sqrt(a**2 + b**2) without destructive underflow or overflow.

    The larger operand is factored out before squaring, so intermediate
    values stay near 1 even when |a| or |b| is close to the float range.
    """
    if a == 0.0:
        return abs(b)
    if abs(a) > abs(b):
        c = b / a
        return abs(a) * math.sqrt(1.0 + c * c)
    c = a / b
    return abs(b) * math.sqrt(1.0 + c * c)


def stable_norm(x: np.ndarray) -> float:
    """2-norm of a vector accumulated with `hypot`."""
    r = 0.0
    for xi in x:
        r = hypot(r, float(xi))
    return r


def as_matrix(A) -> np.ndarray:
    """
    Return a private float64 copy of A after checking it is a usable
    two-dimensional matrix.

    Raises
    ------
    ValueError : if A is not 2-D, has zero rows or columns, or holds
                 non-finite entries.
    """
    A = np.array(A, dtype=float, copy=True)
    if A.ndim != 2:
        raise ValueError(f"expected a 2-D matrix, got an array with ndim={A.ndim}")
    m, n = A.shape
    if m == 0 or n == 0:
        raise ValueError(f"matrix must have at least one row and column, got {m}x{n}")
    if not np.all(np.isfinite(A)):
        raise ValueError("matrix contains NaN or infinite entries")
    return A


def as_rhs(b, length: int, name: str = "b") -> np.ndarray:
    """
    Return b as a float64 array of shape (length,) or (length, k).
    """
    b = np.asarray(b, dtype=float)
    if b.ndim not in (1, 2):
        raise ValueError(f"{name} must be a vector or a 2-D stack of columns")
    if b.shape[0] != length:
        raise ValueError(f"{name} has {b.shape[0]} rows, expected {length}")
    if not np.all(np.isfinite(b)):
        raise ValueError(f"{name} contains NaN or infinite entries")
    return b


def rank_tol(s: np.ndarray) -> float:
    """Relative cut-off below which a singular value counts as zero."""
    return s.size * float(s[0]) * EPS


def random_orthogonal(n: int, seed=None) -> np.ndarray:
    """
    Random n-by-n orthogonal matrix from the QR factors of a Gaussian matrix.

    Returns
    -------
    Matrix with float64 dtype
    """
    rng = np.random.default_rng(seed)
    Q, R = np.linalg.qr(rng.standard_normal((n, n)))
    # fix the column signs so Q is Haar distributed
    return Q * np.sign(np.diag(R))


def random_low_rank(
    m: int,
    n: int,
    r: int,
    noise: float = 0.0,
    seed=None,
    spectrum: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Build an m-by-n matrix of exact rank r as a sum of r orthogonal rank-one
    terms, optionally perturbed by Gaussian noise of size `noise`.

    Parameters
    ----------
    spectrum : (r,) ndarray or None
        Singular values of the noiseless matrix. Defaults to a geometric
        sequence from 10 down to 1.
    """
    if not 0 <= r <= min(m, n):
        raise ValueError("r must be between 0 and min(m, n)")
    rng = np.random.default_rng(seed)
    if spectrum is None:
        spectrum = np.geomspace(10.0, 1.0, r) if r else np.zeros(0)
    Ul = random_orthogonal(m, rng)[:, :r]
    Vr = random_orthogonal(n, rng)[:, :r]
    A = (Ul * spectrum) @ Vr.T
    if noise:
        A += noise * rng.standard_normal((m, n))
    return A

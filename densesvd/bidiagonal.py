# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Householder reduction to upper-bidiagonal form.

The reduction works in place on a private copy of A. Column reflections
zero everything below the diagonal, row reflections everything right of
the superdiagonal. The reflection vectors are cached in the raw storage
of U and V and back-multiplied afterwards by `generate_u` / `generate_v`.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from .utils import stable_norm

logger = logging.getLogger(__name__)


def transform_counts(m: int, n: int) -> Tuple[int, int]:
    """Number of column and row reflections needed for an m-by-n matrix."""
    nct = min(m - 1, n)
    nrt = max(0, min(n - 2, m))
    return nct, nrt


def bidiagonalize(
    A: np.ndarray,
    compute_u: bool = True,
    compute_v: bool = True,
) -> Tuple[np.ndarray, np.ndarray, Optional[np.ndarray], Optional[np.ndarray]]:
    """
    Reduce A to upper-bidiagonal form B = U' A V.

    A is overwritten; pass a copy if the original is still needed.

    Parameters
    ----------
    A : (m, n) ndarray
        Working matrix, float64.
    compute_u, compute_v : bool
        Whether to cache the column / row reflections for later
        generation of U / V.

    Returns
    -------
    s : (min(m+1, n),) ndarray
        Diagonal of B (may still carry negative signs).
    e : (n,) ndarray
        Superdiagonal of B; e[k] couples s[k] and s[k+1].
    U : (m, m) ndarray | None
        Raw column reflection vectors (not yet orthogonal).
    V : (n, n) ndarray | None
        Raw row reflection vectors (not yet orthogonal).
    """
    m, n = A.shape
    nct, nrt = transform_counts(m, n)

    s = np.zeros(min(m + 1, n))
    e = np.zeros(n)
    work = np.zeros(m)
    U = np.zeros((m, m)) if compute_u else None
    V = np.zeros((n, n)) if compute_v else None

    for k in range(max(nct, nrt)):
        if k < nct:
            # ---- column reflection, k-th diagonal goes to s[k] -------------
            s[k] = stable_norm(A[k:, k])
            if s[k] != 0.0:
                if A[k, k] < 0.0:
                    s[k] = -s[k]
                A[k:, k] /= s[k]
                A[k, k] += 1.0
            s[k] = -s[k]

            if s[k] != 0.0 and k + 1 < n:
                t = -(A[k:, k] @ A[k:, k + 1 :]) / A[k, k]
                A[k:, k + 1 :] += np.outer(A[k:, k], t)

        # k-th row of A feeds the row reflection below
        e[k + 1 :] = A[k, k + 1 :]

        if U is not None and k < nct:
            U[k:, k] = A[k:, k]

        if k < nrt:
            # ---- row reflection, k-th superdiagonal goes to e[k] -----------
            e[k] = stable_norm(e[k + 1 :])
            if e[k] != 0.0:
                if e[k + 1] < 0.0:
                    e[k] = -e[k]
                e[k + 1 :] /= e[k]
                e[k + 1] += 1.0
            e[k] = -e[k]

            if k + 1 < m and e[k] != 0.0:
                work[k + 1 :] = A[k + 1 :, k + 1 :] @ e[k + 1 :]
                A[k + 1 :, k + 1 :] += np.outer(work[k + 1 :], -e[k + 1 :] / e[k + 1])

            if V is not None:
                V[k + 1 :, k] = e[k + 1 :]

    # Fill in the corner of the bidiagonal matrix of order p that the
    # reflections did not reach.
    p = min(n, m + 1)
    if nct < n:
        s[nct] = A[nct, nct]
    if m < p:
        s[p - 1] = 0.0
    if nrt + 1 < p:
        e[nrt] = A[nrt, p - 1]
    e[p - 1] = 0.0

    logger.debug(f"bidiagonalized {m}x{n} matrix ({nct} column, {nrt} row reflections)")
    return s, e, U, V


def generate_u(U: np.ndarray, s: np.ndarray, n: int) -> np.ndarray:
    """
    Turn the raw column reflections cached in U into the orthogonal
    m-by-m left factor, in place.

    Parameters
    ----------
    U : (m, m) ndarray
        Raw storage filled by `bidiagonalize`.
    s : ndarray
        Diagonal from `bidiagonalize`; s[k] == 0 marks an empty reflection.
    n : int
        Column count of the original matrix.
    """
    m = U.shape[0]
    nct, _ = transform_counts(m, n)

    # untouched trailing columns start as the identity
    U[:, nct:] = 0.0
    U[np.arange(nct, m), np.arange(nct, m)] = 1.0

    for k in range(nct - 1, -1, -1):
        if s[k] != 0.0:
            if k + 1 < m:
                t = -(U[k:, k] @ U[k:, k + 1 :]) / U[k, k]
                U[k:, k + 1 :] += np.outer(U[k:, k], t)
            U[k:, k] = -U[k:, k]
            U[k, k] += 1.0
            U[:k, k] = 0.0
        else:
            U[:, k] = 0.0
            U[k, k] = 1.0
    return U


def generate_v(V: np.ndarray, e: np.ndarray, m: int) -> np.ndarray:
    """
    Turn the raw row reflections cached in V into the orthogonal n-by-n
    right factor, in place.

    Parameters
    ----------
    V : (n, n) ndarray
        Raw storage filled by `bidiagonalize`.
    e : ndarray
        Superdiagonal from `bidiagonalize`; e[k] == 0 marks an empty
        reflection.
    m : int
        Row count of the original matrix.
    """
    n = V.shape[0]
    _, nrt = transform_counts(m, n)

    for k in range(n - 1, -1, -1):
        if k < nrt and e[k] != 0.0:
            t = -(V[k + 1 :, k] @ V[k + 1 :, k + 1 :]) / V[k + 1, k]
            V[k + 1 :, k + 1 :] += np.outer(V[k + 1 :, k], t)
        V[:, k] = 0.0
        V[k, k] = 1.0
    return V

# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Implicit-shift QR iteration on an upper-bidiagonal matrix.

Each pass inspects the trailing part of the active block (s[:p], e[:p])
for negligible entries and picks one of four actions:

    DEFLATE    s[p-1] is negligible: rotate e[p-2] away from the bottom up.
    SPLIT      some interior s[k] is negligible: rotate e[k-1] away.
    QR_STEP    nothing negligible: one Wilkinson-shifted sweep.
    CONVERGED  e[p-2] is negligible: fix sign and order of s[p-1], p -= 1.

The loop ends when p reaches zero.
"""

import enum
import logging
from typing import Optional, Tuple

import numpy as np

from .utils import EPS, hypot

logger = logging.getLogger(__name__)

# QR sweeps allowed for a single singular value before giving up
MAX_QR_SWEEPS: int = 75


class Case(enum.Enum):
    DEFLATE = 1
    SPLIT = 2
    QR_STEP = 3
    CONVERGED = 4


def classify(s: np.ndarray, e: np.ndarray, p: int) -> Tuple[Case, int]:
    """
    Decide what to do with the active block of order p.

    Negligible entries that decide the case are set to exactly zero.

    Returns
    -------
    case : Case
    k : int
        First index of the sub-block the action applies to.
    """
    k = p - 2
    while k >= 0:
        if abs(e[k]) <= EPS * (abs(s[k]) + abs(s[k + 1])):
            e[k] = 0.0
            break
        k -= 1

    if k == p - 2:
        return Case.CONVERGED, k + 1

    ks = p - 1
    while ks > k:
        t = abs(e[ks]) + (abs(e[ks - 1]) if ks != k + 1 else 0.0)
        if abs(s[ks]) <= EPS * t:
            s[ks] = 0.0
            break
        ks -= 1

    if ks == k:
        return Case.QR_STEP, k + 1
    if ks == p - 1:
        return Case.DEFLATE, k + 1
    return Case.SPLIT, ks + 1


def _rotate(X: np.ndarray, i: int, j: int, cs: float, sn: float) -> None:
    # columns (i, j) <- (cs*x_i + sn*x_j, -sn*x_i + cs*x_j)
    t = cs * X[:, i] + sn * X[:, j]
    X[:, j] = -sn * X[:, i] + cs * X[:, j]
    X[:, i] = t


def _deflate(s, e, k, p, V):
    f = e[p - 2]
    e[p - 2] = 0.0
    for j in range(p - 2, k - 1, -1):
        t = hypot(s[j], f)
        cs = s[j] / t
        sn = f / t
        s[j] = t
        if j != k:
            f = -sn * e[j - 1]
            e[j - 1] = cs * e[j - 1]
        if V is not None:
            _rotate(V, j, p - 1, cs, sn)


def _split(s, e, k, p, U):
    f = e[k - 1]
    e[k - 1] = 0.0
    for j in range(k, p):
        t = hypot(s[j], f)
        cs = s[j] / t
        sn = f / t
        s[j] = t
        f = -sn * e[j]
        e[j] = cs * e[j]
        if U is not None:
            _rotate(U, j, k - 1, cs, sn)


def wilkinson_shift(s: np.ndarray, e: np.ndarray, k: int, p: int) -> Tuple[float, float, float]:
    """
    Shift from the trailing 2x2 block, plus the first bulge (f, g) of a
    sweep that starts at index k. All quantities are scaled by the largest
    entry involved to keep them in range.
    """
    scale = max(abs(s[p - 1]), abs(s[p - 2]), abs(e[p - 2]), abs(s[k]), abs(e[k]))
    sp = s[p - 1] / scale
    spm1 = s[p - 2] / scale
    epm1 = e[p - 2] / scale
    sk = s[k] / scale
    ek = e[k] / scale
    b = ((spm1 + sp) * (spm1 - sp) + epm1 * epm1) / 2.0
    c = (sp * epm1) * (sp * epm1)
    shift = 0.0
    if b != 0.0 or c != 0.0:
        shift = np.sqrt(b * b + c)
        if b < 0.0:
            shift = -shift
        shift = c / (b + shift)
    f = (sk + sp) * (sk - sp) + shift
    g = sk * ek
    return shift, f, g


def _qr_step(s, e, k, p, U, V, m):
    _, f, g = wilkinson_shift(s, e, k, p)

    # chase the bulge down the block
    for j in range(k, p - 1):
        t = hypot(f, g)
        cs = f / t
        sn = g / t
        if j != k:
            e[j - 1] = t
        f = cs * s[j] + sn * e[j]
        e[j] = cs * e[j] - sn * s[j]
        g = sn * s[j + 1]
        s[j + 1] = cs * s[j + 1]
        if V is not None:
            _rotate(V, j, j + 1, cs, sn)

        t = hypot(f, g)
        cs = f / t
        sn = g / t
        s[j] = t
        f = cs * e[j] + sn * s[j + 1]
        s[j + 1] = -sn * e[j] + cs * s[j + 1]
        g = sn * e[j + 1]
        e[j + 1] = cs * e[j + 1]
        if U is not None and j < m - 1:
            _rotate(U, j, j + 1, cs, sn)
    e[p - 2] = f


def _converge(s, k, pp, U, V, m, n):
    # make the singular value non-negative
    if s[k] <= 0.0:
        s[k] = -s[k] if s[k] < 0.0 else 0.0
        if V is not None:
            V[:, k] = -V[:, k]

    # bubble it into descending position
    while k < pp:
        if s[k] >= s[k + 1]:
            break
        s[[k, k + 1]] = s[[k + 1, k]]
        if V is not None and k < n - 1:
            V[:, [k, k + 1]] = V[:, [k + 1, k]]
        if U is not None and k < m - 1:
            U[:, [k, k + 1]] = U[:, [k + 1, k]]
        k += 1


def diagonalize(
    s: np.ndarray,
    e: np.ndarray,
    m: int,
    n: int,
    U: Optional[np.ndarray] = None,
    V: Optional[np.ndarray] = None,
    max_iter: int = MAX_QR_SWEEPS,
) -> int:
    """
    Drive the bidiagonal matrix (s, e) to diagonal form in place.

    On return s holds the singular values in descending order, all
    non-negative, and U / V (when given) have absorbed every rotation.

    Parameters
    ----------
    s : (p,) ndarray
        Diagonal, p = min(m+1, n).
    e : (n,) ndarray
        Superdiagonal.
    m, n : int
        Shape of the original matrix.
    U, V : ndarray | None
        Orthogonal factors from `generate_u` / `generate_v`.
    max_iter : int
        QR sweeps allowed before one singular value must converge.

    Returns
    -------
    sweeps : int
        Total number of QR sweeps performed.

    Raises
    ------
    numpy.linalg.LinAlgError : if a singular value fails to converge within
                               `max_iter` sweeps.
    """
    p = s.size
    pp = p - 1
    sweeps = 0
    since_converged = 0

    while p > 0:
        case, k = classify(s, e, p)

        if case is Case.DEFLATE:
            _deflate(s, e, k, p, V)
        elif case is Case.SPLIT:
            _split(s, e, k, p, U)
        elif case is Case.QR_STEP:
            if since_converged >= max_iter:
                raise np.linalg.LinAlgError(
                    f"SVD did not converge: singular value {p - 1} still "
                    f"coupled after {max_iter} QR sweeps"
                )
            _qr_step(s, e, k, p, U, V, m)
            sweeps += 1
            since_converged += 1
        else:
            _converge(s, k, pp, U, V, m, n)
            since_converged = 0
            p -= 1

    logger.debug(f"QR iteration finished after {sweeps} sweeps")
    return sweeps

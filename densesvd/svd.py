# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging
from typing import Tuple

import numpy as np

from .bidiagonal import bidiagonalize, generate_u, generate_v
from .qr_iteration import MAX_QR_SWEEPS, diagonalize
from .utils import as_matrix, as_rhs, rank_tol

logger = logging.getLogger(__name__)


class FactorNotComputedError(RuntimeError):
    """Raised when U or V is needed but was not requested at construction."""


def _factorize(A: np.ndarray, compute_u: bool, compute_v: bool, max_iter: int):
    # A is tall (m >= n) and owned by the caller of this helper
    m, n = A.shape
    s, e, U, V = bidiagonalize(A, compute_u, compute_v)
    if U is not None:
        generate_u(U, s, n)
    if V is not None:
        generate_v(V, e, m)
    sweeps = diagonalize(s, e, m, n, U, V, max_iter=max_iter)
    return s, U, V, sweeps


class SVD:
    """
    Singular value decomposition A = U @ diag(S) @ V.T of a real m-by-n
    matrix, by Householder bidiagonalization followed by implicit-shift
    QR iteration (Golub-Reinsch).

    The factorization runs to completion in the constructor; afterwards
    the object is read-only.

    Parameters
    ----------
    A : (m, n) array_like
        Real matrix with m, n >= 1. It is copied, never modified.
    compute_u, compute_v : bool
        Whether to form the m-by-m left / n-by-n right orthogonal factor.
        `solve`, `pinv` and `reconstruct` need both; `solve_ata` and
        `null_space` need V.
    max_iter : int
        QR sweeps allowed per singular value before raising LinAlgError.

    Attributes
    ----------
    singular_values : ndarray, length min(m+1, n)
        Non-negative, descending. When m < n the extra trailing entry is 0.
    U : (m, m) ndarray
    V : (n, n) ndarray
    rank : int
        Number of singular values above len(S) * S[0] * eps.

    Example
    -------
    >>> import numpy as np
    >>> from densesvd import SVD
    >>> f = SVD(np.diag([3.0, 1.0]))
    >>> f.cond()
    3.0
    """

    def __init__(
        self,
        A,
        compute_u: bool = True,
        compute_v: bool = True,
        max_iter: int = MAX_QR_SWEEPS,
    ):
        A = as_matrix(A)
        if max_iter < 0:
            raise ValueError(f"max_iter must be non-negative, got {max_iter}")
        m, n = A.shape
        self._shape = (m, n)
        self._has_u = bool(compute_u)
        self._has_v = bool(compute_v)

        if m >= n:
            s, U, V, sweeps = _factorize(A, self._has_u, self._has_v, max_iter)
        else:
            # Wide matrix: factor A.T and swap the roles of U and V.
            s, V, U, sweeps = _factorize(
                np.ascontiguousarray(A.T), self._has_v, self._has_u, max_iter
            )
            s = np.append(s, 0.0)

        self._s = s
        self._U = U
        self._V = V
        for arr in (self._s, self._U, self._V):
            if arr is not None:
                arr.flags.writeable = False

        self._rank = self._numerical_rank()
        logger.debug(
            f"SVD of {m}x{n} matrix: {sweeps} QR sweeps, rank {self._rank}"
        )

    def _numerical_rank(self) -> int:
        s = self._s
        if s[0] == 0.0:
            # all-zero matrix
            return 0
        tol = rank_tol(s)
        r = min(self._shape)
        while r > 0 and s[r - 1] < tol:
            r -= 1
        return r

    def _require(self, which: str, operation: str) -> None:
        has = self._has_u if which == "U" else self._has_v
        if not has:
            flag = "compute_u" if which == "U" else "compute_v"
            raise FactorNotComputedError(
                f"{operation} needs {which}; construct the SVD with {flag}=True"
            )

    def __repr__(self) -> str:
        m, n = self._shape
        return f"SVD(shape=({m}, {n}), rank={self._rank})"

    # ------------------------------------------------------------------
    # read accessors
    # ------------------------------------------------------------------

    @property
    def shape(self) -> Tuple[int, int]:
        return self._shape

    @property
    def singular_values(self) -> np.ndarray:
        return self._s

    @property
    def U(self) -> np.ndarray:
        self._require("U", "U")
        return self._U

    @property
    def V(self) -> np.ndarray:
        self._require("V", "V")
        return self._V

    @property
    def rank(self) -> int:
        return self._rank

    def norm(self) -> float:
        """Two-norm of A, i.e. the largest singular value."""
        return float(self._s[0])

    def cond(self) -> float:
        """
        Two-norm condition number S[0] / S[min(m, n) - 1].

        Follows IEEE division: a zero smallest singular value gives inf,
        an all-zero matrix gives nan. Check `rank` first if that matters.
        """
        smallest = self._s[min(self._shape) - 1]
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(np.float64(self._s[0]) / smallest)

    # ------------------------------------------------------------------
    # solves
    # ------------------------------------------------------------------

    def solve(self, b) -> np.ndarray:
        """
        Minimum-norm least-squares solution of A x = b.

        Only the first `rank` singular triplets are used, so directions
        that are numerically null contribute nothing to x.

        Parameters
        ----------
        b : (m,) or (m, k) array_like

        Returns
        -------
        x : (n,) or (n, k) ndarray
        """
        self._require("U", "solve")
        self._require("V", "solve")
        m, n = self._shape
        b = as_rhs(b, m)

        r = self._rank
        if r < min(m, n):
            logger.warning(
                f"solve(): matrix is rank deficient (rank {r} < {min(m, n)}), "
                "returning the minimum-norm solution"
            )

        c = b[:, None] if b.ndim == 1 else b
        y = (self._U[:, :r].T @ c) / self._s[:r, None]
        x = self._V[:, :r] @ y
        return x.ravel() if b.ndim == 1 else x

    def solve_ata(self, b) -> np.ndarray:
        """
        Solve the normal equations A.T A x = b as V S^2 V.T x = b.

        Precondition: A has full column rank. Otherwise A.T A is singular
        and LinAlgError is raised instead of dividing by a zero singular
        value.

        Parameters
        ----------
        b : (n,) or (n, k) array_like

        Returns
        -------
        x : (n,) or (n, k) ndarray
        """
        self._require("V", "solve_ata")
        m, n = self._shape
        b = as_rhs(b, n)
        if self._rank < n:
            raise np.linalg.LinAlgError(
                f"A.T A is singular: rank {self._rank} < {n} columns"
            )

        c = b[:, None] if b.ndim == 1 else b
        y = (self._V.T @ c) / (self._s[:n, None] ** 2)
        x = self._V @ y
        return x.ravel() if b.ndim == 1 else x

    # ------------------------------------------------------------------
    # derived matrices
    # ------------------------------------------------------------------

    def null_space(self) -> np.ndarray:
        """
        Orthonormal basis of the null space of A.

        Returns
        -------
        N : (n, n - rank) ndarray
            Columns span N(A). If A has full column rank the result has
            shape (n, 0).
        """
        self._require("V", "null_space")
        return self._V[:, self._rank :].copy()

    def pinv(self) -> np.ndarray:
        """Moore-Penrose pseudo-inverse, (n, m), truncated at `rank`."""
        self._require("U", "pinv")
        self._require("V", "pinv")
        r = self._rank
        return self._V[:, :r] @ (self._U[:, :r].T / self._s[:r, None])

    def reconstruct(self) -> np.ndarray:
        """U @ diag(S) @ V.T as an (m, n) array."""
        self._require("U", "reconstruct")
        self._require("V", "reconstruct")
        k = min(self._shape)
        return (self._U[:, :k] * self._s[:k]) @ self._V[:, :k].T


def svd(A, compute_uv: bool = True, max_iter: int = MAX_QR_SWEEPS):
    """
    Full singular value decomposition, numpy style.

    For an m-by-n real matrix this returns
        U : m-by-m orthogonal matrix
        s : length min(m, n) vector of singular values, descending
        Vt: n-by-n orthogonal matrix (V.T)
    or only `s` when compute_uv is False.
    """
    f = SVD(A, compute_u=compute_uv, compute_v=compute_uv, max_iter=max_iter)
    s = f.singular_values[: min(f.shape)].copy()
    if not compute_uv:
        return s
    return f.U.copy(), s, f.V.T.copy()


def lstsq_svd(A, b) -> np.ndarray:
    """Minimum-norm least-squares solution of A x = b."""
    return SVD(A).solve(b)


def matrix_rank(A) -> int:
    """Numerical rank of A from its singular values."""
    return SVD(A, compute_u=False, compute_v=False).rank


def cond(A) -> float:
    """Two-norm condition number of A."""
    return SVD(A, compute_u=False, compute_v=False).cond()

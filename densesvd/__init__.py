# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
densesvd
========

Dense real singular value decomposition (Golub-Reinsch) with the
rank, norm, condition-number and least-squares queries built on it.

Public API
~~~~~~~~~~
- Factorization object
    - `SVD`  (singular values, U, V, rank, norm, cond, solve, solve_ata,
      null_space, pinv, reconstruct)
- Functional wrappers
    - `svd`, `lstsq_svd`, `matrix_rank`, `cond`
- Numerics
    - `hypot`, `EPS`

Everything else lives in sub-modules and is **not** considered part of the
stable interface.

Example
-------
>>> import numpy as np, densesvd as ds
>>> A = np.random.randn(5, 3)
>>> U, s, Vt = ds.svd(A)
>>> np.allclose((U[:, :3] * s) @ Vt, A)
True
"""

from importlib.metadata import version as _pkg_version

from .qr_iteration import MAX_QR_SWEEPS

# ---------------------------------------------------------------------
# Re-export the high-level functions users are expected to call.
# Each of these names is implemented in one of the internal sub-modules.
# ---------------------------------------------------------------------
from .svd import (
    SVD,
    FactorNotComputedError,
    cond,
    lstsq_svd,
    matrix_rank,
    svd,
)
from .utils import EPS, hypot

__all__ = [
    "SVD",
    "FactorNotComputedError",
    "svd",
    "lstsq_svd",
    "matrix_rank",
    "cond",
    "hypot",
    "EPS",
    "MAX_QR_SWEEPS",
]

# ---------------------------------------------------------------------
# Version string (helps “pip show densesvd”, Sphinx, etc.)
# ---------------------------------------------------------------------
try:  # installed via pip / build backend
    __version__ = _pkg_version(__name__)
except Exception:  # running from a checkout
    __version__ = "0.0.0.dev0"

# ---------------------------------------------------------------------
# Library logging stays silent unless the application configures it.
# ---------------------------------------------------------------------
import logging as _logging

_logging.getLogger(__name__).addHandler(_logging.NullHandler())

from __future__ import annotations

import importlib.util
from typing import List, Sequence, Tuple

from math_backends import python_backend

Point = Tuple[float, float]

NUMBA_AVAILABLE = importlib.util.find_spec("numba") is not None
if NUMBA_AVAILABLE:
    import numba
    import numpy as np


if NUMBA_AVAILABLE:

    @numba.njit(cache=True)
    def _dft_numba(
        xs: np.ndarray,
        ys: np.ndarray,
        table_re: np.ndarray,
        table_im: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        n = len(xs)
        out_re = np.empty(n, dtype=np.float64)
        out_im = np.empty(n, dtype=np.float64)
        for k in range(n):
            acc_re = 0.0
            acc_im = 0.0
            m = 0
            for j in range(n):
                c = table_re[m]
                s = table_im[m]
                acc_re += xs[j] * c - ys[j] * s
                acc_im += xs[j] * s + ys[j] * c
                m += k
                if m >= n:
                    m -= n
            out_re[k] = acc_re / n
            out_im[k] = acc_im / n
        return out_re, out_im


def compute_dft(points: Sequence[Point]) -> List[complex]:
    """Same transform as :func:`python_backend.compute_dft`, JIT-compiled."""
    if not NUMBA_AVAILABLE:
        return python_backend.compute_dft(points)
    n = len(points)
    if n == 0:
        return []

    coords = np.asarray(points, dtype=np.float64).reshape(n, 2)
    xs = np.ascontiguousarray(coords[:, 0])
    ys = np.ascontiguousarray(coords[:, 1])
    table = np.exp(-2j * np.pi * np.arange(n, dtype=np.float64) / n)
    table_re = np.ascontiguousarray(table.real)
    table_im = np.ascontiguousarray(table.imag)

    out_re, out_im = _dft_numba(xs, ys, table_re, table_im)
    return [complex(float(re), float(im)) for re, im in zip(out_re, out_im)]

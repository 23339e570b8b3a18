from __future__ import annotations

import cmath
import math
from typing import List, Sequence, Tuple

Point = Tuple[float, float]


def twiddle_table(n: int) -> List[complex]:
    """
    Table of ``e^{-2πi·m/n}`` for ``m`` in ``[0, n)``.

    Since ``e^{-2πi·k·j/n}`` only depends on ``(k*j) mod n``, every factor
    of the transform is read from this table.
    """
    return [cmath.exp(complex(0.0, -2.0 * math.pi * m / n)) for m in range(n)]


def compute_dft(points: Sequence[Point]) -> List[complex]:
    """
    Direct O(N²) discrete Fourier transform of a closed path.

    Each point is read as ``x + iy``; entry ``k`` of the result is
    ``(1/N) Σ_j point[j]·e^{-2πi·k·j/N}``, in raw index order.
    """
    n = len(points)
    if n == 0:
        return []
    samples = [complex(x, y) for (x, y) in points]
    table = twiddle_table(n)
    sums: List[complex] = []
    for k in range(n):
        acc = 0j
        m = 0
        for z in samples:
            acc += z * table[m]
            m += k
            if m >= n:
                m -= n
        sums.append(acc / n)
    return sums

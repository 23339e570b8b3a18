from __future__ import annotations

from dataclasses import dataclass
import cmath
import importlib.util
import math
from typing import Callable, List, Optional, Sequence, Tuple

from math_backends import numba_backend, python_backend

Point = Tuple[float, float]
_NUMBA_AVAILABLE = importlib.util.find_spec("numba") is not None


@dataclass(frozen=True)
class Epicycle:
    """
    One rotating vector of the decomposition.

    ``value`` is the vector at ``t = 0``; it turns ``frequency`` times per
    unit of normalised time.
    """

    value: complex
    frequency: int
    amplitude: float
    phase: float

    def evaluate(self, t: float) -> complex:
        angle = self.frequency * (2.0 * math.pi * t)
        return self.value * cmath.exp(complex(0.0, angle))


@dataclass(frozen=True)
class MathBackend:
    name: str
    label: str
    available: bool
    kernel: Callable[[Sequence[Point]], List[complex]]


_BACKENDS: dict[str, MathBackend] = {}
_ACTIVE_BACKEND = "numba" if _NUMBA_AVAILABLE else "python"


def register_backend(backend: MathBackend) -> None:
    _BACKENDS[backend.name] = backend


def list_backends(*, available_only: bool = False) -> list[MathBackend]:
    backends = list(_BACKENDS.values())
    if available_only:
        backends = [b for b in backends if b.available]
    return sorted(backends, key=lambda b: b.name)


def get_backend_name() -> str:
    return _ACTIVE_BACKEND


def set_backend(name: str) -> None:
    backend = _BACKENDS.get(name)
    if backend is None:
        raise ValueError(f"Unknown math backend: {name}")
    if not backend.available:
        raise ValueError(f"Math backend not available: {name}")
    global _ACTIVE_BACKEND
    _ACTIVE_BACKEND = backend.name


def signed_frequency(k: int, n: int) -> int:
    """
    Map a raw DFT index onto a signed rotation rate.

    Indices in the upper half stand for negative frequencies, so the
    result lies in ``[-n/2, n/2)``. For even ``n`` the Nyquist index
    ``n/2`` is read as ``-n/2``; both rates agree at every sample time.
    """
    if n % 2 == 0 and 2 * k == n:
        return -k
    if k <= n // 2:
        return k
    return k - n


def epicycles_from_sums(sums: Sequence[complex]) -> List[Epicycle]:
    """Build the ranked epicycle list from raw-order DFT sums."""
    n = len(sums)
    epicycles = [
        Epicycle(
            value=value,
            frequency=signed_frequency(k, n),
            amplitude=abs(value),
            phase=cmath.phase(value),
        )
        for k, value in enumerate(sums)
    ]
    # sorted() is stable: equal amplitudes keep their raw index order.
    return sorted(epicycles, key=lambda e: e.amplitude, reverse=True)


def decompose(path: Sequence[Point]) -> List[Epicycle]:
    """
    Decompose a closed path into epicycles, largest circle first.

    An empty path gives an empty list.
    """
    if not path:
        return []
    backend = _BACKENDS.get(_ACTIVE_BACKEND)
    if backend is None:
        raise ValueError(f"Unknown math backend: {_ACTIVE_BACKEND}")
    return epicycles_from_sums(backend.kernel(path))


def reconstruct(epicycles: Sequence[Epicycle], t: float, count: Optional[int] = None) -> complex:
    """Sum the first ``count`` epicycles (all of them by default) at time ``t``."""
    if count is None:
        count = len(epicycles)
    total = 0j
    for epicycle in epicycles[:count]:
        total += epicycle.evaluate(t)
    return total


register_backend(
    MathBackend(
        name="python",
        label="Python",
        available=True,
        kernel=python_backend.compute_dft,
    )
)
register_backend(
    MathBackend(
        name="numba",
        label="Numba",
        available=_NUMBA_AVAILABLE,
        kernel=numba_backend.compute_dft,
    )
)


__all__ = [
    "Epicycle",
    "MathBackend",
    "decompose",
    "epicycles_from_sums",
    "get_backend_name",
    "list_backends",
    "reconstruct",
    "register_backend",
    "set_backend",
    "signed_frequency",
]

"""
Background decomposition pipeline.

One load runs at a time on a single worker thread:

- sampling: the curve sampler (or the given point list) supplies raw points
- resampling: raw points become a fixed-size normalised path
- calculating: the path is decomposed into epicycles

The interactive loop calls :meth:`AsyncComputationPipeline.poll` once per
frame; it never waits. Results are published through a single slot guarded
by a lock, so a reader sees either the whole result or nothing.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
import functools
import itertools
import json
import logging
import threading
from typing import Callable, List, Optional, Sequence, Tuple, Union

import forge_geometry
import forge_math
from forge_errors import InputError, PipelineBusyError
from forge_math import Epicycle

Point = Tuple[float, float]
PointSource = Union[Sequence[Point], Callable[[], Sequence[Point]]]
_LOGGER = logging.getLogger(__name__)

DEFAULT_SAMPLE_COUNT = 10000


def read_points_file(path: str) -> List[Point]:
    """
    Read raw points from a JSON file.

    The file holds either a list of ``[x, y]`` pairs or an object with a
    ``"points"`` list.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("points")
    if not isinstance(data, list):
        raise InputError(f"{path}: expected a list of points")
    points: List[Point] = []
    for item in data:
        try:
            x, y = item
            points.append((float(x), float(y)))
        except (TypeError, ValueError) as exc:
            raise InputError(f"{path}: invalid point {item!r}") from exc
    return points


def file_sampler(path: str) -> Callable[[], List[Point]]:
    """Curve sampler reading ``path`` on the pipeline's worker thread."""
    return functools.partial(read_points_file, path)


class ComputationState(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ComputationHandle:
    request_id: int


@dataclass(frozen=True)
class ComputationResult:
    path: Tuple[Point, ...]
    epicycles: Tuple[Epicycle, ...]


@dataclass(frozen=True)
class PollResult:
    state: ComputationState
    result: Optional[ComputationResult] = None
    reason: Optional[str] = None


class AsyncComputationPipeline:
    def __init__(
        self,
        sample_count: int = DEFAULT_SAMPLE_COUNT,
        target_size: float = forge_geometry.DEFAULT_TARGET_SIZE,
        *,
        decomposer: Callable[[Sequence[Point]], List[Epicycle]] = forge_math.decompose,
    ) -> None:
        self.sample_count = max(2, int(sample_count))
        self.target_size = float(target_size)
        self._decomposer = decomposer
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="forge-dft")
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._pending: Optional[ComputationHandle] = None
        self._future: Optional[Future] = None
        self._slot: Optional[Tuple[ComputationHandle, PollResult]] = None
        self._status_key = "status_ready"

    # ----- Status -----

    @property
    def status(self) -> str:
        """Localisation key of the current phase."""
        with self._lock:
            return self._status_key

    def _set_status(self, key: str) -> None:
        with self._lock:
            self._status_key = key

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._pending is not None

    # ----- Submission -----

    def submit(self, source: PointSource) -> ComputationHandle:
        """
        Start decomposing ``source`` in the background.

        Raises :class:`PipelineBusyError` while another request is pending;
        the in-flight request is left untouched.
        """
        with self._lock:
            if self._pending is not None:
                raise PipelineBusyError(
                    f"Request {self._pending.request_id} is still computing"
                )
            handle = ComputationHandle(next(self._ids))
            self._pending = handle
            self._slot = None
            self._status_key = "status_sampling"
        _LOGGER.info("Load request %d submitted", handle.request_id)
        self._future = self._executor.submit(self._run, handle, source)
        return handle

    def _run(self, handle: ComputationHandle, source: PointSource) -> None:
        try:
            raw_points = list(source() if callable(source) else source)
            self._set_status("status_resampling")
            path = forge_geometry.resample(raw_points, self.sample_count, self.target_size)
            if len(path) < 2:
                raise InputError(f"Need at least 2 points, got {len(raw_points)}")
            self._set_status("status_calculating")
            epicycles = self._decomposer(path)
            if not epicycles:
                raise InputError("Decomposition produced no epicycles")
            outcome = PollResult(
                ComputationState.READY,
                ComputationResult(tuple(path), tuple(epicycles)),
            )
            status = "status_loaded"
        except InputError as exc:
            _LOGGER.warning("Load request %d rejected: %s", handle.request_id, exc)
            outcome = PollResult(ComputationState.FAILED, reason=str(exc))
            status = "status_failed_empty"
        except Exception as exc:
            _LOGGER.exception("Load request %d failed", handle.request_id)
            outcome = PollResult(ComputationState.FAILED, reason=str(exc) or type(exc).__name__)
            status = "status_failed_error"

        with self._lock:
            self._slot = (handle, outcome)
            self._pending = None
            self._status_key = status
        _LOGGER.info("Load request %d finished: %s", handle.request_id, outcome.state.value)

    # ----- Polling -----

    def poll(self, handle: ComputationHandle) -> PollResult:
        with self._lock:
            if self._pending == handle:
                return PollResult(ComputationState.PENDING)
            if self._slot is not None and self._slot[0] == handle:
                return self._slot[1]
        return PollResult(ComputationState.FAILED, reason="unknown request")

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the in-flight request has finished."""
        future = self._future
        if future is not None:
            future.result(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


__all__ = [
    "AsyncComputationPipeline",
    "ComputationHandle",
    "ComputationResult",
    "ComputationState",
    "PollResult",
    "file_sampler",
    "read_points_file",
]

"""
Parallel execution backend checks.

Every stage runs as Numba ``prange`` kernels. The threading layer is probed once
before a conversion so a missing backend aborts at setup rather than midway.

Numba's ``workqueue`` layer aborts the process when two threads launch parallel
kernels at the same time. When it is the active layer, ``stage_guard`` hands out
a process-wide lock so concurrent conversions run their kernel stages one after
another.
"""

from __future__ import annotations

import logging
import threading
from contextlib import nullcontext
from typing import ContextManager

import numba
import numpy as np
from numba import njit, prange

from gausstex.errors import ResourceError

logger = logging.getLogger(__name__)

# Layers that tolerate parallel kernels launched from several threads
THREADSAFE_LAYERS = frozenset({"tbb", "omp"})

_backend_layer: str | None = None
_init_lock = threading.Lock()
_stage_lock = threading.Lock()


@njit(parallel=True, nogil=True)
def _probe_numba(out: np.ndarray) -> None:
    for i in prange(out.shape[0]):
        out[i] = i


def ensure_parallel_backend() -> str:
    """
    Make sure Numba can run parallel kernels.

    Safe to call from several threads: the first caller probes, the rest wait
    for its result.

    Returns:
        Name of the active threading layer (e.g. "tbb", "omp", "workqueue")

    Raises:
        ResourceError: If no threading layer can be loaded or no worker threads exist
    """
    global _backend_layer
    if _backend_layer is not None:
        return _backend_layer

    with _init_lock:
        if _backend_layer is not None:
            return _backend_layer

        try:
            threads = numba.get_num_threads()
            probe = np.zeros(64, dtype=np.int64)
            _probe_numba(probe)
            layer = numba.threading_layer()
        except (ValueError, RuntimeError, OSError) as exc:
            raise ResourceError(f"Numba parallel backend unavailable: {exc}") from exc

        if threads < 1:
            raise ResourceError(f"Numba reports {threads} worker threads")

        if probe[-1] != probe.shape[0] - 1:
            raise ResourceError("Numba parallel probe produced wrong results")

        _backend_layer = layer
        logger.info("[Backend] Using numba threading layer '%s' with %d threads", layer, threads)
        if layer not in THREADSAFE_LAYERS:
            logger.info("[Backend] Layer '%s' is not thread-safe, serializing conversions", layer)
        return layer


def stage_guard(layer: str) -> ContextManager:
    """
    Context that kernel stages of one conversion run inside.

    Args:
        layer: Threading layer returned by ``ensure_parallel_backend``

    Returns:
        The shared stage lock for layers outside ``THREADSAFE_LAYERS``,
        otherwise a no-op context
    """
    if layer in THREADSAFE_LAYERS:
        return nullcontext()
    return _stage_lock

"""
galaxy_session.py
=================
Regeneration lifecycle for galaxy point clouds.

A :class:`GalaxySession` owns the single *current* dataset shown by a render
sink.  Regenerating is a two-step protocol: the new dataset is generated
first (so invalid parameters leave the screen untouched), then the old one
is disposed and the new one presented.

    from galaxy_points import GalaxyParameters, NumpyRandomSource
    from galaxy_session import GalaxySession, ParametersCommitted

    session = GalaxySession(sink, NumpyRandomSource(seed=7))
    session.regenerate(GalaxyParameters())
    # later, when a control is released:
    session.on_parameters_committed(ParametersCommitted(new_params))
"""

from __future__ import annotations

import dataclasses
import time
from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np

from galaxy_points import GalaxyDataset, GalaxyParameters, RandomSource, generate


@runtime_checkable
class RenderSink(Protocol):
    """Consumer of generated buffers (a scene, a plot, a GPU upload …)."""

    def present(self, positions: np.ndarray, colors: np.ndarray,
                point_size: float) -> Any:
        """Show the buffers; return an opaque handle for later disposal."""
        ...

    def dispose(self, handle: Any) -> None:
        """Release everything allocated for *handle*."""
        ...


@dataclasses.dataclass(frozen=True)
class ParametersCommitted:
    """Emitted by a configuration surface once a parameter edit is final."""

    params: GalaxyParameters


class GalaxySession:
    """Holds the current dataset and swaps it safely on regeneration.

    Not thread-safe: drive one session from one thread.  Independent
    sessions with independent random sources do not share state.
    """

    def __init__(
        self,
        sink: RenderSink,
        rng: RandomSource,
        params: Optional[GalaxyParameters] = None,
        verbose: bool = False,
    ) -> None:
        self.sink = sink
        self._rng = rng
        self._params = params if params is not None else GalaxyParameters()
        self._verbose = verbose
        self._current: Optional[GalaxyDataset] = None
        self._handle: Any = None

    @property
    def params(self) -> GalaxyParameters:
        return self._params

    @property
    def current(self) -> Optional[GalaxyDataset]:
        return self._current

    @property
    def handle(self) -> Any:
        return self._handle

    def regenerate(self, params: Optional[GalaxyParameters] = None) -> GalaxyDataset:
        """Generate from *params* (or the stored ones) and present the result.

        Raises :class:`~galaxy_points.InvalidParameterError` before touching
        the sink or the stored state when *params* is out of bounds.
        """
        params = self._params if params is None else params

        t0 = time.perf_counter()
        dataset = generate(params, self._rng)
        if self._verbose:
            print(f"  {dataset.count:,} points generated in "
                  f"{time.perf_counter() - t0:.2f}s")

        self.clear()
        self._handle = self.sink.present(dataset.positions, dataset.colors,
                                         dataset.point_size)
        self._current = dataset
        self._params = params
        return dataset

    def on_parameters_committed(self, event: ParametersCommitted) -> GalaxyDataset:
        return self.regenerate(event.params)

    def clear(self) -> None:
        """Dispose the current dataset, if any, and empty the slot."""
        if self._current is None:
            return
        handle = self._handle
        self._current = None
        self._handle = None
        self.sink.dispose(handle)
        if self._verbose:
            print("  Disposed previous dataset.")

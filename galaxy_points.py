"""
galaxy_points.py
================
Core procedural generator for spiral-galaxy point clouds.

Produces ``count`` points arranged in a thin 3-D disk with evenly spaced
spiral arms, then colours every point by blending an inside colour into an
outside colour along the radius.  The output is two flat ``float32`` buffers
(positions and colours, stride 3) ready to hand to a point renderer.

Algorithm (per point *i*)
-------------------------
1. Radius:   r = U · radius                 (uniform over radius, not area,
                                              so the core is denser)
2. Spin:     spin_angle = r · spin
3. Branch:   branch_angle = (i mod branches) / branches · 2π
4. Jitter:   for x, y, z:  U^randomness_power · randomness · r · (±1)
5. Place:    x = sin(branch_angle + spin_angle) · r + jx
             z = cos(branch_angle + spin_angle) · r + jz
             y = jy
6. Colour:   inside · (1 − r/radius) + outside · r/radius

Every point consumes seven uniform draws in the order
``r, jx, sx, jy, sy, jz, sz`` (magnitude then sign for each axis).

Usage (importable)
------------------
    from galaxy_points import GalaxyParameters, NumpyRandomSource, generate
    params  = GalaxyParameters(count=50_000, branches=4)
    dataset = generate(params, NumpyRandomSource(seed=7))
    dataset.positions_xyz()   # (50_000, 3) view

Usage (script, uses all defaults)
---------------------------------
    python galaxy_points.py
"""

from __future__ import annotations

import dataclasses
import math
import numbers
import time
from typing import Any, Mapping, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

import numpy as np
import pandas as pd
from matplotlib.colors import to_hex, to_rgb


FULL_CIRCLE = 2.0 * math.pi
VERTEX_PARAMS = 3       # floats per point in each buffer
DRAWS_PER_POINT = 7     # r, then (magnitude, sign) for x, y, z

RGB = Tuple[float, float, float]
ColorLike = Union[str, Sequence[float], Sequence[int]]


class InvalidParameterError(ValueError):
    """A galaxy parameter is missing, mistyped or outside its bounds."""


# ---------------------------------------------------------------------------
# Colour helpers
# ---------------------------------------------------------------------------

def to_unit_rgb(value: ColorLike) -> RGB:
    """Normalise a boundary colour to three floats in [0, 1].

    Accepted forms
    --------------
    * hex string (``"#ff6030"``, ``"#f63"``) or any matplotlib colour name
    * triple of 0-1 floats, e.g. ``(1.0, 0.38, 0.19)``
    * triple of 0-255 ints, e.g. ``(255, 96, 48)``; recognised when every
      component is an ``int`` and at least one exceeds 1
    """
    if isinstance(value, str):
        try:
            return tuple(float(c) for c in to_rgb(value.strip()))
        except ValueError as exc:
            raise InvalidParameterError(f"invalid colour {value!r}: {exc}") from None

    try:
        channels = list(value)
    except TypeError:
        raise InvalidParameterError(f"invalid colour {value!r}: expected 3 channels") from None
    if len(channels) != 3:
        raise InvalidParameterError(
            f"invalid colour {value!r}: expected 3 channels, got {len(channels)}")
    for c in channels:
        if isinstance(c, bool) or not isinstance(c, numbers.Real) or not math.isfinite(c):
            raise InvalidParameterError(f"invalid colour {value!r}: non-numeric channel {c!r}")

    is_byte_triple = (all(isinstance(c, numbers.Integral) for c in channels)
                      and any(c > 1 for c in channels))
    if is_byte_triple:
        if any(c < 0 or c > 255 for c in channels):
            raise InvalidParameterError(f"invalid colour {value!r}: channels must be 0-255")
        return tuple(int(c) / 255.0 for c in channels)

    if any(c < 0.0 or c > 1.0 for c in channels):
        raise InvalidParameterError(f"invalid colour {value!r}: channels must be in [0, 1]")
    return tuple(float(c) for c in channels)


def mix_colors(inside: Sequence[float], outside: Sequence[float], t) -> np.ndarray:
    """Component-wise linear blend from *inside* (t = 0) to *outside* (t = 1).

    *t* may be a scalar or an array; the result has shape ``t.shape + (3,)``.
    Written as ``inside·(1−t) + outside·t`` so both endpoints are exact.
    """
    t = np.asarray(t, dtype=np.float64)[..., None]
    a = np.asarray(inside, dtype=np.float64)
    b = np.asarray(outside, dtype=np.float64)
    return a * (1.0 - t) + b * t


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

# (lower, upper) inclusive bounds, except radius whose lower bound is open
_INT_BOUNDS = {
    "count":    (1, 1_000_000),
    "branches": (2, 20),
}
_FLOAT_BOUNDS = {
    "size":             (0.001, 0.1),
    "radius":           (0.0, 20.0),
    "spin":             (-5.0, 5.0),
    "randomness":       (0.0, 2.0),
    "randomness_power": (1.0, 10.0),
}
_COLOR_FIELDS = ("inside_color", "outside_color")


@dataclasses.dataclass(frozen=True)
class GalaxyParameters:
    """All tunable parameters for one galaxy point cloud.

    Defaults give a three-armed orange-to-blue galaxy of 100 000 points.  Colour
    fields hold normalised RGB triples; hex strings passed to the constructor
    are converted on the way in.  Bounds are checked by :meth:`validate`
    (which :func:`generate` always calls), never clamped.
    """

    # ---- point count / appearance ----
    count: int = 100_000
    size: float = 0.01          # rendered point size, passed through untouched

    # ---- shape ----
    radius: float = 5.0
    branches: int = 3
    spin: float = 1.0           # radians of extra rotation per unit radius

    # ---- scatter ----
    randomness: float = 0.2
    randomness_power: float = 3.0

    # ---- colouring ----
    inside_color: RGB = to_unit_rgb("#ff6030")
    outside_color: RGB = to_unit_rgb("#1b3984")

    def __post_init__(self) -> None:
        for name in _COLOR_FIELDS:
            value = getattr(self, name)
            if isinstance(value, str):
                object.__setattr__(self, name, to_unit_rgb(value))

    def validate(self) -> None:
        """Raise :class:`InvalidParameterError` if any field is out of bounds."""
        for name, (lo, hi) in _INT_BOUNDS.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise InvalidParameterError(
                    f"{name} must be an integer, got {value!r}")
            if not lo <= value <= hi:
                raise InvalidParameterError(
                    f"{name}={value} out of range [{lo}, {hi}]")

        for name, (lo, hi) in _FLOAT_BOUNDS.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise InvalidParameterError(
                    f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidParameterError(f"{name} must be finite, got {value!r}")
            if name == "radius":
                if not lo < value <= hi:
                    raise InvalidParameterError(
                        f"radius={value} out of range ({lo}, {hi}]")
            elif not lo <= value <= hi:
                raise InvalidParameterError(
                    f"{name}={value} out of range [{lo}, {hi}]")

        for name in _COLOR_FIELDS:
            value = getattr(self, name)
            try:
                channels = tuple(value)
            except TypeError:
                raise InvalidParameterError(
                    f"{name} must be an RGB triple, got {value!r}") from None
            ok = (
                len(channels) == 3
                and all(isinstance(c, numbers.Real) and not isinstance(c, bool)
                        and math.isfinite(c) and 0.0 <= c <= 1.0
                        for c in channels)
            )
            if not ok:
                raise InvalidParameterError(
                    f"{name} must be three channels in [0, 1], got {value!r}")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "GalaxyParameters":
        """Build parameters from a plain dict such as a loaded ``params.json``.

        Missing keys keep their defaults; unknown keys are rejected.  Colours
        may use any form accepted by :func:`to_unit_rgb`.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise InvalidParameterError(f"unknown parameter(s): {', '.join(unknown)}")
        kwargs = dict(mapping)
        for name in _COLOR_FIELDS:
            if name in kwargs:
                kwargs[name] = to_unit_rgb(kwargs[name])
        params = cls(**kwargs)
        params.validate()
        return params

    def to_dict(self) -> dict:
        """JSON-friendly dict; colours are written as hex strings."""
        out = {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}
        for name in _COLOR_FIELDS:
            out[name] = to_hex(out[name])
        return out


# ---------------------------------------------------------------------------
# Random sources
# ---------------------------------------------------------------------------

@runtime_checkable
class RandomSource(Protocol):
    """Anything that yields uniform floats in [0, 1).

    Sources may also offer ``uniform01_batch(n) -> ndarray``; when present it
    must return the same sequence as *n* successive ``uniform01()`` calls.
    """

    def uniform01(self) -> float:
        ...


class NumpyRandomSource:
    """:class:`RandomSource` backed by ``numpy.random.default_rng``."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = np.random.default_rng(seed)

    def uniform01(self) -> float:
        return float(self._rng.random())

    def uniform01_batch(self, n: int) -> np.ndarray:
        return self._rng.random(n)


def _draw_uniforms(rng: RandomSource, n: int) -> np.ndarray:
    """Pull *n* uniforms from *rng*, batched when the source supports it."""
    batch = getattr(rng, "uniform01_batch", None)
    if batch is not None:
        values = np.asarray(batch(n), dtype=np.float64).reshape(-1)
    else:
        values = np.fromiter((rng.uniform01() for _ in range(n)),
                             dtype=np.float64, count=n)

    if values.shape != (n,):
        raise ValueError(f"random source returned {values.size} values, expected {n}")
    if n and (values.min() < 0.0 or values.max() >= 1.0):
        raise ValueError("random source produced values outside [0, 1)")
    return values


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True, eq=False)
class GalaxyDataset:
    """One generated point cloud: flat position and colour buffers.

    Both buffers are read-only ``float32`` arrays of length ``count * 3``.
    A dataset is never edited after creation; regenerating produces a new
    one.
    """

    positions: np.ndarray
    colors: np.ndarray
    point_size: float
    params: GalaxyParameters

    def __post_init__(self) -> None:
        self.positions.flags.writeable = False
        self.colors.flags.writeable = False

    @property
    def count(self) -> int:
        return len(self.positions) // VERTEX_PARAMS

    def positions_xyz(self) -> np.ndarray:
        return self.positions.reshape(-1, VERTEX_PARAMS)

    def colors_rgb(self) -> np.ndarray:
        return self.colors.reshape(-1, VERTEX_PARAMS)


def branch_angles(count: int, branches: int) -> np.ndarray:
    """Arm angle of every point index: ``(i mod branches) / branches · 2π``."""
    return (np.arange(count) % branches) / branches * FULL_CIRCLE


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def generate(params: GalaxyParameters, rng: RandomSource) -> GalaxyDataset:
    """Generate a spiral-galaxy point cloud.

    Parameters are validated before any random draw or buffer allocation; an
    :class:`InvalidParameterError` leaves nothing behind.  The function keeps
    no state between calls, so concurrent calls with independent random
    sources are safe.

    Parameters
    ----------
    params : GalaxyParameters
    rng    : RandomSource – the only source of randomness; a deterministic
             source gives bit-identical output.

    Returns
    -------
    GalaxyDataset
    """
    params.validate()
    n = params.count

    draws = _draw_uniforms(rng, n * DRAWS_PER_POINT).reshape(n, DRAWS_PER_POINT)

    r = draws[:, 0] * params.radius
    angle = branch_angles(n, params.branches) + r * params.spin

    # Columns 1, 3, 5 are jitter magnitudes; 2, 4, 6 the matching signs.
    magnitude = draws[:, 1::2] ** params.randomness_power
    sign = np.where(draws[:, 2::2] < 0.5, -1.0, 1.0)
    jitter = sign * magnitude * (params.randomness * r)[:, None]

    positions = np.empty((n, VERTEX_PARAMS), dtype=np.float32)
    positions[:, 0] = np.sin(angle) * r + jitter[:, 0]
    positions[:, 1] = jitter[:, 1]
    positions[:, 2] = np.cos(angle) * r + jitter[:, 2]

    colors = mix_colors(params.inside_color, params.outside_color,
                        r / params.radius).astype(np.float32)

    return GalaxyDataset(
        positions=positions.reshape(-1),
        colors=colors.reshape(-1),
        point_size=float(params.size),
        params=params,
    )


# ---------------------------------------------------------------------------
# Tabular export
# ---------------------------------------------------------------------------

def dataset_to_frame(dataset: GalaxyDataset) -> pd.DataFrame:
    """One row per point with columns ``x, y, z, r, g, b``."""
    xyz = dataset.positions_xyz()
    rgb = dataset.colors_rgb()
    return pd.DataFrame({
        "x": xyz[:, 0], "y": xyz[:, 1], "z": xyz[:, 2],
        "r": rgb[:, 0], "g": rgb[:, 1], "b": rgb[:, 2],
    })


def dataset_from_frame(frame: pd.DataFrame, params: GalaxyParameters) -> GalaxyDataset:
    """Rebuild a dataset from a frame written by :func:`dataset_to_frame`."""
    missing = [c for c in ("x", "y", "z", "r", "g", "b") if c not in frame.columns]
    if missing:
        raise ValueError(f"point table is missing column(s): {', '.join(missing)}")
    positions = frame[["x", "y", "z"]].to_numpy(dtype=np.float32).reshape(-1)
    colors = frame[["r", "g", "b"]].to_numpy(dtype=np.float32).reshape(-1)
    return GalaxyDataset(
        positions=positions.copy(),
        colors=colors.copy(),
        point_size=float(params.size),
        params=params,
    )


# ---------------------------------------------------------------------------
# Acceptance tests
# ---------------------------------------------------------------------------

def run_checks(dataset: GalaxyDataset) -> bool:
    """Print acceptance test results to stdout; return True if all pass.

    The planar bound allows ``√2 · randomness · radius`` of jitter because x
    and z are scattered independently; each axis alone stays within
    ``randomness · radius``.
    """
    p = dataset.params
    xyz = dataset.positions_xyz().astype(np.float64)
    rgb = dataset.colors_rgb()
    tol = 1e-4 * max(p.radius, 1.0)
    sep = "─" * 52
    results = []

    print(f"\n{sep}")
    print("  ACCEPTANCE TESTS")
    print(sep)

    ok = dataset.count == p.count
    results.append(ok)
    print(f"  Point count : {dataset.count:>9,}  (target {p.count:,})  "
          f"{'✓' if ok else '✗ FAIL'}")

    max_jitter = p.randomness * p.radius
    planar = np.hypot(xyz[:, 0], xyz[:, 2])
    limit = p.radius + math.sqrt(2.0) * max_jitter
    ok = planar.max() <= limit + tol
    results.append(ok)
    print(f"  Max r(x,z)  : {planar.max():>9.4f}  <= {limit:.4f}  "
          f"{'✓' if ok else '✗ FAIL'}")

    axis_limit = p.radius + max_jitter
    axis_max = max(np.abs(xyz[:, 0]).max(), np.abs(xyz[:, 2]).max())
    ok = axis_max <= axis_limit + tol
    results.append(ok)
    print(f"  Max |x|,|z| : {axis_max:>9.4f}  <= {axis_limit:.4f}  "
          f"{'✓' if ok else '✗ FAIL'}")

    y_max = np.abs(xyz[:, 1]).max()
    ok = y_max <= max_jitter + tol
    results.append(ok)
    print(f"  Max |y|     : {y_max:>9.4f}  <= {max_jitter:.4f}  "
          f"{'✓' if ok else '✗ FAIL'}")

    ok = bool(np.all(np.isfinite(xyz))) and rgb.min() >= 0.0 and rgb.max() <= 1.0
    results.append(ok)
    print(f"  Colours     : [{rgb.min():.3f}, {rgb.max():.3f}]  within [0, 1]  "
          f"{'✓' if ok else '✗ FAIL'}")

    print(sep + "\n")
    return all(results)


# ---------------------------------------------------------------------------
# Script entry point (uses all GalaxyParameters defaults)
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    t0 = time.perf_counter()
    ds = generate(GalaxyParameters(), NumpyRandomSource(seed=7))
    print(f"{ds.count:,} points generated in {time.perf_counter() - t0:.2f}s")
    run_checks(ds)

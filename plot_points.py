"""
plot_points.py
==============
Matplotlib preview for generated galaxy point clouds.

Provides :class:`MatplotlibPointSink`, a render sink that draws each
presented dataset as a 3-D scatter (world *y* is up), and a small CLI that
re-renders a dataset saved by ``run_generate.py``.

Usage
-----
    # Default: read ./output/points.csv and open an interactive window
    python plot_points.py

    # Save to PNG instead
    python plot_points.py --save galaxy.png

    # Save as SVG (defaults to galaxy.svg when no filename is given)
    python plot_points.py --svg

    # Only plot a subset of points (large clouds render slowly)
    python plot_points.py --max_points 50000
"""

from __future__ import annotations

import argparse
import itertools
import json
import math
import os
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from galaxy_points import GalaxyParameters, dataset_from_frame


BG = "#09090f"

# Looking at the origin from (3, 3, 3).
VIEW_ELEV = math.degrees(math.atan(1.0 / math.sqrt(2.0)))
VIEW_AZIM = 45.0

# Scatter marker area (points²) per unit of world point size.
SIZE_TO_AREA = 100.0


# ---------------------------------------------------------------------------
# Render sink
# ---------------------------------------------------------------------------

class MatplotlibPointSink:
    """Render sink drawing point clouds onto a 3-D matplotlib axes.

    Each :meth:`present` call adds one scatter artist and returns an integer
    handle; :meth:`dispose` removes that artist again.
    """

    def __init__(self, ax=None, alpha: float = 0.8) -> None:
        if ax is None:
            fig = plt.figure(figsize=(10, 10))
            ax = fig.add_subplot(projection="3d")
        self.ax = ax
        self.alpha = alpha
        self._artists: Dict[int, object] = {}
        self._ids = itertools.count(1)

        fig = ax.figure
        fig.patch.set_facecolor(BG)
        ax.set_facecolor(BG)
        ax.set_axis_off()
        ax.view_init(elev=VIEW_ELEV, azim=VIEW_AZIM)

    @property
    def figure(self) -> plt.Figure:
        return self.ax.figure

    @property
    def live_handles(self) -> list:
        return list(self._artists)

    def present(self, positions: np.ndarray, colors: np.ndarray,
                point_size: float) -> int:
        xyz = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        rgb = np.clip(np.asarray(colors, dtype=np.float64).reshape(-1, 3), 0.0, 1.0)

        # matplotlib's vertical axis is z; the galaxy disk lies in world x/z.
        artist = self.ax.scatter(
            xyz[:, 0], xyz[:, 2], xyz[:, 1],
            c=rgb,
            s=(point_size * SIZE_TO_AREA) ** 2,
            alpha=self.alpha,
            linewidths=0,
            depthshade=False,
        )

        extent = float(np.abs(xyz).max()) if len(xyz) else 1.0
        extent = max(extent, 1e-6)
        self.ax.set_xlim(-extent, extent)
        self.ax.set_ylim(-extent, extent)
        self.ax.set_zlim(-extent, extent)

        handle = next(self._ids)
        self._artists[handle] = artist
        return handle

    def dispose(self, handle: int) -> None:
        try:
            artist = self._artists.pop(handle)
        except KeyError:
            raise KeyError(f"unknown or already disposed handle {handle!r}") from None
        artist.remove()


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="plot_points.py",
        description="Preview a galaxy point cloud saved by run_generate.py.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--out_dir", default="output",
                   help="Directory containing points.csv and params.json.")
    p.add_argument("--save", default=None, metavar="FILE",
                   help="Save figure to FILE (png/pdf/svg) instead of displaying.")
    p.add_argument("--svg", nargs="?", const="galaxy.svg", default=None,
                   metavar="FILE",
                   help="Save figure as SVG.  FILE defaults to 'galaxy.svg' "
                        "when omitted.  Overrides --save when both are given.")
    p.add_argument("--max_points", type=int, default=None, metavar="N",
                   help="Plot only the first N points.")
    p.add_argument("--alpha", type=float, default=0.8,
                   help="Point opacity (0=invisible, 1=solid).")
    return p


# ---------------------------------------------------------------------------
# Plot
# ---------------------------------------------------------------------------

def draw_points(args: argparse.Namespace) -> plt.Figure:
    """Load ``points.csv`` (+ ``params.json``) and draw the point cloud."""
    points_path = os.path.join(args.out_dir, "points.csv")
    params_path = os.path.join(args.out_dir, "params.json")

    if not os.path.exists(points_path):
        raise FileNotFoundError(
            f"points.csv not found in '{args.out_dir}'.  "
            "Run run_generate.py first."
        )

    if os.path.exists(params_path):
        with open(params_path) as f:
            params = GalaxyParameters.from_mapping(json.load(f))
    else:
        params = GalaxyParameters()

    frame = pd.read_csv(points_path)
    max_points = getattr(args, "max_points", None)
    if max_points is not None:
        frame = frame.iloc[:max_points]
    dataset = dataset_from_frame(frame, params)

    sink = MatplotlibPointSink(alpha=getattr(args, "alpha", 0.8))
    sink.present(dataset.positions, dataset.colors, dataset.point_size)

    title = (
        f"Galaxy  —  {dataset.count:,} points  |  "
        f"{params.branches} branches  |  spin {params.spin:g}"
    )
    sink.ax.set_title(title, color="white", fontsize=11, pad=10)
    return sink.figure


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[list] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    fig = draw_points(args)

    if args.svg:
        fig.savefig(args.svg, format="svg", bbox_inches="tight",
                    facecolor=fig.get_facecolor())
        print(f"Saved figure to {args.svg}")
    elif args.save:
        fig.savefig(args.save, dpi=150, bbox_inches="tight",
                    facecolor=fig.get_facecolor())
        print(f"Saved figure to {args.save}")
    else:
        plt.show()


if __name__ == "__main__":
    main()

"""
run_generate.py
===============
CLI entrypoint for the spiral-galaxy point cloud generator.

All parameters are optional; unspecified parameters fall back to the defaults
defined in ``GalaxyParameters`` (or to a ``params.json`` given via
``--params``, which explicit flags still override).

Quick start
-----------
    python run_generate.py

With custom parameters (matching the default preset)::

    python run_generate.py \\
        --count 100000 \\
        --size 0.01 \\
        --radius 5 \\
        --branches 3 \\
        --spin 1 \\
        --randomness 0.2 \\
        --randomness_power 3 \\
        --inside_color "#ff6030" \\
        --outside_color "#1b3984" \\
        --seed 7 \\
        --out_dir output

Preview directly, or save the preview::

    python run_generate.py --preview
    python run_generate.py --save galaxy.png

Then re-render a saved run::

    python plot_points.py --out_dir output
"""

import argparse
import json
import os
import time
from typing import Optional

from galaxy_points import (
    GalaxyParameters,
    InvalidParameterError,
    NumpyRandomSource,
    dataset_to_frame,
    generate,
    run_checks,
)


_DEFAULTS = GalaxyParameters().to_dict()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="run_generate.py",
        description=(
            "Procedural spiral-galaxy point cloud generator.\n"
            "Produces points.csv and params.json in OUT_DIR."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # ── Count & appearance ────────────────────────────────────────────────
    p.add_argument(
        "--count", type=int, default=_DEFAULTS["count"],
        metavar="N",
        help="Number of points to generate (1 – 1,000,000).",
    )
    p.add_argument(
        "--size", type=float, default=_DEFAULTS["size"],
        metavar="S",
        help="Rendered point size (0.001 – 0.1).",
    )

    # ── Shape ─────────────────────────────────────────────────────────────
    p.add_argument(
        "--radius", type=float, default=_DEFAULTS["radius"],
        metavar="R",
        help="Galaxy radius (0 < R ≤ 20).",
    )
    p.add_argument(
        "--branches", type=int, default=_DEFAULTS["branches"],
        metavar="N",
        help="Number of spiral arms (2 – 20).",
    )
    p.add_argument(
        "--spin", type=float, default=_DEFAULTS["spin"],
        metavar="A",
        help="Extra rotation in radians per unit radius (−5 – 5).",
    )

    # ── Scatter ───────────────────────────────────────────────────────────
    p.add_argument(
        "--randomness", type=float, default=_DEFAULTS["randomness"],
        metavar="F",
        help="Jitter magnitude as a fraction of each point's radius (0 – 2).",
    )
    p.add_argument(
        "--randomness_power", type=float, default=_DEFAULTS["randomness_power"],
        metavar="P",
        help="Exponent biasing jitter toward the arm centreline (1 – 10).",
    )

    # ── Colours ───────────────────────────────────────────────────────────
    p.add_argument(
        "--inside_color", default=_DEFAULTS["inside_color"],
        metavar="COLOR",
        help="Colour at the centre (hex or matplotlib colour name).",
    )
    p.add_argument(
        "--outside_color", default=_DEFAULTS["outside_color"],
        metavar="COLOR",
        help="Colour at the rim (hex or matplotlib colour name).",
    )

    # ── Reproducibility ───────────────────────────────────────────────────
    p.add_argument(
        "--seed", type=int, default=7,
        metavar="S",
        help="Random seed for reproducible output.",
    )
    p.add_argument(
        "--params", default=None,
        metavar="FILE",
        help="Load parameters from a params.json; explicit flags override it.",
    )

    # ── Output ────────────────────────────────────────────────────────────
    p.add_argument(
        "--out_dir", type=str, default="output",
        metavar="DIR",
        help="Directory to write output files (created if absent).",
    )
    p.add_argument(
        "--preview", action="store_true",
        help="Open an interactive matplotlib preview after generating.",
    )
    p.add_argument(
        "--save", default=None,
        metavar="FILE",
        help="Save a preview image to FILE (png/pdf/svg).",
    )

    return p


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse *argv*, using ``--params`` (when given) as the defaults layer."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.params:
        with open(args.params) as f:
            saved = json.load(f)
        try:
            saved = GalaxyParameters.from_mapping(saved).to_dict()
        except InvalidParameterError as exc:
            parser.error(f"{args.params}: {exc}")
        parser.set_defaults(**saved)
        args = parser.parse_args(argv)
    return args


def params_from_args(args: argparse.Namespace) -> GalaxyParameters:
    return GalaxyParameters.from_mapping({
        "count":            args.count,
        "size":             args.size,
        "radius":           args.radius,
        "branches":         args.branches,
        "spin":             args.spin,
        "randomness":       args.randomness,
        "randomness_power": args.randomness_power,
        "inside_color":     args.inside_color,
        "outside_color":    args.outside_color,
    })


def main(argv: Optional[list] = None) -> None:
    args = parse_args(argv)

    try:
        params = params_from_args(args)
    except InvalidParameterError as exc:
        build_parser().error(str(exc))

    # Print config so the user can confirm parameters before waiting
    print("Configuration")
    print("─" * 40)
    for key, value in params.to_dict().items():
        print(f"  {key:<18} = {value}")
    print(f"  {'seed':<18} = {args.seed}")
    print()

    os.makedirs(args.out_dir, exist_ok=True)
    rng = NumpyRandomSource(seed=args.seed)
    want_plot = args.preview or args.save is not None

    print("Generating points …")
    if want_plot:
        from galaxy_session import GalaxySession
        from plot_points import MatplotlibPointSink

        sink = MatplotlibPointSink()
        session = GalaxySession(sink, rng, verbose=True)
        dataset = session.regenerate(params)
    else:
        t0 = time.perf_counter()
        dataset = generate(params, rng)
        print(f"  {dataset.count:,} points generated in "
              f"{time.perf_counter() - t0:.2f}s")

    run_checks(dataset)

    points_path = os.path.join(args.out_dir, "points.csv")
    dataset_to_frame(dataset).to_csv(points_path, index=False)
    print(f"Wrote {points_path}")

    # Persist parameters so plot_points.py can read them automatically
    params_path = os.path.join(args.out_dir, "params.json")
    with open(params_path, "w") as f:
        json.dump(params.to_dict(), f, indent=2)
    print(f"Wrote {params_path}")

    if want_plot:
        import matplotlib.pyplot as plt

        if args.save:
            sink.figure.savefig(args.save, dpi=150, bbox_inches="tight",
                                facecolor=sink.figure.get_facecolor())
            print(f"Saved figure to {args.save}")
        if args.preview:
            plt.show()
        plt.close(sink.figure)
        return

    print(f"\nNext steps:\n"
          f"  • Preview : python plot_points.py --out_dir {args.out_dir}")


if __name__ == "__main__":
    main()

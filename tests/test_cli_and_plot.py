import argparse
import json
import os

import matplotlib.pyplot as plt
import pandas as pd
import pytest

import run_generate
from galaxy_points import GalaxyParameters, NumpyRandomSource, generate
from galaxy_session import GalaxySession
from plot_points import MatplotlibPointSink, draw_points


def test_cli_writes_points_and_params(tmp_path, capsys):
    out_dir = tmp_path / "run"
    run_generate.main(["--count", "300", "--branches", "4",
                       "--inside_color", "#ff0000", "--out_dir", str(out_dir)])

    frame = pd.read_csv(out_dir / "points.csv")
    assert list(frame.columns) == ["x", "y", "z", "r", "g", "b"]
    assert len(frame) == 300

    with open(out_dir / "params.json") as f:
        saved = json.load(f)
    assert saved["count"] == 300
    assert saved["branches"] == 4
    assert saved["inside_color"] == "#ff0000"

    out = capsys.readouterr().out
    assert "ACCEPTANCE TESTS" in out
    assert "Wrote" in out


def test_cli_is_reproducible_for_a_seed(tmp_path):
    a, b = tmp_path / "a", tmp_path / "b"
    run_generate.main(["--count", "100", "--seed", "3", "--out_dir", str(a)])
    run_generate.main(["--count", "100", "--seed", "3", "--out_dir", str(b)])
    pd.testing.assert_frame_equal(pd.read_csv(a / "points.csv"),
                                  pd.read_csv(b / "points.csv"))


def test_cli_rejects_out_of_range_parameters(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        run_generate.main(["--branches", "1", "--out_dir", str(tmp_path)])
    assert exc.value.code == 2
    assert "branches" in capsys.readouterr().err
    assert not os.path.exists(tmp_path / "points.csv")


def test_params_file_is_overridden_by_flags(tmp_path):
    params_file = tmp_path / "params.json"
    params_file.write_text(json.dumps({"count": 120, "branches": 6, "spin": -2.0}))

    args = run_generate.parse_args(["--params", str(params_file), "--branches", "8"])
    params = run_generate.params_from_args(args)

    assert params.count == 120
    assert params.branches == 8
    assert params.spin == -2.0


def test_cli_save_renders_preview(tmp_path):
    image = tmp_path / "galaxy.png"
    run_generate.main(["--count", "200", "--out_dir", str(tmp_path),
                       "--save", str(image)])
    assert image.exists()


def test_sink_present_and_dispose():
    sink = MatplotlibPointSink()
    ds = generate(GalaxyParameters(count=100), NumpyRandomSource(seed=1))

    handle = sink.present(ds.positions, ds.colors, ds.point_size)
    assert sink.live_handles == [handle]
    assert len(sink.ax.collections) == 1

    sink.dispose(handle)
    assert sink.live_handles == []
    assert len(sink.ax.collections) == 0

    with pytest.raises(KeyError):
        sink.dispose(handle)
    plt.close(sink.figure)


def test_session_keeps_one_scatter_on_matplotlib_sink():
    sink = MatplotlibPointSink()
    session = GalaxySession(sink, NumpyRandomSource(seed=1))
    for count in (100, 200, 300):
        session.regenerate(GalaxyParameters(count=count))

    assert len(sink.ax.collections) == 1
    assert sink.live_handles == [session.handle]
    plt.close(sink.figure)


def test_draw_points_reads_saved_run(tmp_path):
    run_generate.main(["--count", "150", "--branches", "5", "--out_dir", str(tmp_path)])

    ns = argparse.Namespace(out_dir=str(tmp_path), max_points=100, alpha=0.5)
    fig = draw_points(ns)
    ax = fig.axes[0]
    assert "100 points" in ax.get_title()
    assert "5 branches" in ax.get_title()
    plt.close(fig)


def test_draw_points_requires_points_csv(tmp_path):
    ns = argparse.Namespace(out_dir=str(tmp_path))
    with pytest.raises(FileNotFoundError):
        draw_points(ns)

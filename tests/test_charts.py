import numpy as np
import pandas as pd
import plotly.graph_objects as go

from repeat_survival.charts import _step_xy, gap_histogram, hazard_ratio_plot, save_survival_png, survival_plot
from repeat_survival.survival import fit_cox, km_curve


def _curves():
    return pd.concat(
        [km_curve([1, 2, 3], [1, 0, 1], label="a"), km_curve([1, 2], [1, 1], label="b")],
        ignore_index=True,
    )


def test_step_path():
    xs, ys = _step_xy([0, 1, 2], [1.0, 0.5, 0.2])
    assert xs.tolist() == [0, 1, 1, 2, 2]
    assert ys.tolist() == [1.0, 1.0, 0.5, 0.5, 0.2]


def test_survival_plot_traces():
    fig = survival_plot(_curves())
    assert isinstance(fig, go.Figure)
    # a: ribbon, line, censor marks; b: ribbon, line
    assert len(fig.data) == 5
    names = [t.name for t in fig.data]
    assert "a censored" in names
    assert "b censored" not in names

    bare = survival_plot(_curves(), show_ci=False, show_censors=False)
    assert [t.name for t in bare.data] == ["a", "b"]


def test_hazard_ratio_plot(rossi):
    summary = fit_cox(rossi, "week", "arrest", ["fin", "age", "prio"]).summary
    fig = hazard_ratio_plot(summary)
    assert len(fig.data) == 1
    assert sorted(fig.data[0].y) == ["age", "fin", "prio"]


def test_gap_histogram_uses_completed_gaps_only():
    gaps = pd.DataFrame({"gap": [1.0, 2.0, 50.0], "event": [1, 1, 0]})
    fig = gap_histogram(gaps)
    assert len(fig.data) == 1
    assert sorted(np.asarray(fig.data[0].x).tolist()) == [1.0, 2.0]


def test_save_survival_png(tmp_path):
    out = tmp_path / "km.png"
    save_survival_png(_curves(), title="km", xlabel="days", outpath=out)
    assert out.exists()
    assert out.stat().st_size > 0

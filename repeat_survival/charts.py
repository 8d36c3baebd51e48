from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

PALETTE = px.colors.qualitative.Plotly


def _step_xy(x, y) -> tuple[np.ndarray, np.ndarray]:
    """Expand points into an explicit right-continuous step path."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if len(x) < 2:
        return x, y
    xs = np.repeat(x, 2)[1:]
    ys = np.repeat(y, 2)[:-1]
    return xs, ys


def _rgba(hex_color: str, alpha: float) -> str:
    h = hex_color.lstrip("#")
    r, g, b = (int(h[i:i + 2], 16) for i in (0, 2, 4))
    return f"rgba({r},{g},{b},{alpha})"


def survival_plot(
    curves: pd.DataFrame,
    title: str = "Kaplan-Meier estimate",
    time_label: str = "time",
    show_ci: bool = True,
    show_censors: bool = True,
) -> go.Figure:
    """
    Interactive survival chart from fit_km output.
    Per group: a confidence ribbon, the step curve and '+' marks at censoring times.
    """
    fig = go.Figure()
    for i, (group, g) in enumerate(curves.groupby("group", sort=False)):
        color = PALETTE[i % len(PALETTE)]
        g = g.sort_values("time")

        if show_ci:
            xs, lo = _step_xy(g["time"], g["ci_lower"])
            _, hi = _step_xy(g["time"], g["ci_upper"])
            fig.add_trace(go.Scatter(
                x=np.concatenate([xs, xs[::-1]]),
                y=np.concatenate([hi, lo[::-1]]),
                fill="toself",
                fillcolor=_rgba(color, 0.15),
                line=dict(width=0),
                hoverinfo="skip",
                showlegend=False,
                legendgroup=str(group),
                name=f"{group} CI",
            ))

        fig.add_trace(go.Scatter(
            x=g["time"],
            y=g["survival"],
            mode="lines",
            line=dict(color=color, width=2, shape="hv"),
            name=str(group),
            legendgroup=str(group),
            customdata=g[["at_risk"]].to_numpy(),
            hovertemplate="t=%{x}<br>S(t)=%{y:.3f}<br>at risk=%{customdata[0]}<extra></extra>",
        ))

        cens = g[g["censored"] > 0]
        if show_censors and not cens.empty:
            fig.add_trace(go.Scatter(
                x=cens["time"],
                y=cens["survival"],
                mode="markers",
                marker=dict(symbol="cross-thin", size=8, line=dict(color=color, width=1.5)),
                showlegend=False,
                legendgroup=str(group),
                name=f"{group} censored",
                hoverinfo="skip",
            ))

    fig.update_layout(title=title, xaxis_title=time_label, yaxis_title="Survival probability")
    fig.update_yaxes(range=[0, 1.02], tickformat=".0%")
    return fig


def hazard_ratio_plot(summary: pd.DataFrame, title: str = "Hazard ratios") -> go.Figure:
    """Forest plot of exp(coef) with its confidence interval from a lifelines summary."""
    lo_col = next(c for c in summary.columns if c.startswith("exp(coef) lower"))
    hi_col = next(c for c in summary.columns if c.startswith("exp(coef) upper"))
    s = summary.sort_values("exp(coef)")
    hr = s["exp(coef)"]

    fig = go.Figure(go.Scatter(
        x=hr,
        y=s.index.astype(str),
        mode="markers",
        error_x=dict(type="data", symmetric=False, array=s[hi_col] - hr, arrayminus=hr - s[lo_col]),
        marker=dict(size=9, color=PALETTE[0]),
    ))
    fig.add_vline(x=1.0, line_dash="dash", line_color="grey")
    fig.update_layout(title=title, xaxis_title="Hazard ratio", yaxis_title="")
    fig.update_xaxes(type="log")
    return fig


def gap_histogram(gaps: pd.DataFrame, title: str = "Days between purchases", nbins: int = 50) -> go.Figure:
    completed = gaps.loc[gaps["event"] == 1, "gap"].dropna()
    fig = px.histogram(completed, nbins=nbins, title=title)
    fig.update_layout(bargap=0.05, showlegend=False, xaxis_title="gap (days)")
    return fig


def save_survival_png(curves: pd.DataFrame, title: str, xlabel: str, outpath: Path) -> None:
    """Static export of the same curves for slides and reports."""
    plt.figure()
    for group, g in curves.groupby("group", sort=False):
        g = g.sort_values("time")
        line = plt.step(g["time"], g["survival"], where="post", label=str(group))[0]
        plt.fill_between(g["time"], g["ci_lower"], g["ci_upper"], step="post", alpha=0.15, color=line.get_color())
    plt.ylim(0, 1.02)
    plt.title(title)
    plt.xlabel(xlabel)
    plt.ylabel("survival probability")
    plt.legend()
    plt.savefig(outpath, dpi=150, bbox_inches="tight")
    plt.close()

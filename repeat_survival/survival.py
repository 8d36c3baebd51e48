from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from lifelines import CoxPHFitter, KaplanMeierFitter
from lifelines.statistics import multivariate_logrank_test
from lifelines.utils import median_survival_times

from .config import DEFAULT_CONF_LEVEL, RECURRENT_COVARIATES
from .recurrent import episode_bucket, repeat_summary

logger = logging.getLogger(__name__)

CURVE_COLS = ["group", "time", "survival", "ci_lower", "ci_upper", "at_risk", "observed", "censored"]


@dataclass(frozen=True)
class LogRankResult:
    test_statistic: float
    p_value: float
    degrees_of_freedom: int
    n_groups: int


@dataclass(frozen=True)
class CoxResult:
    summary: pd.DataFrame
    concordance: float
    log_likelihood: float
    n_observations: int
    n_events: int


@dataclass(frozen=True)
class RecurrentFit:
    curves: pd.DataFrame
    cox: CoxResult
    episodes: pd.DataFrame


def _require(df: pd.DataFrame, cols) -> None:
    missing = [c for c in cols if c is not None and c not in df.columns]
    if missing:
        raise KeyError(f"missing columns: {missing}")


def _fit_kmf(durations, events, label, conf_level: float) -> KaplanMeierFitter:
    kmf = KaplanMeierFitter(alpha=1 - conf_level)
    kmf.fit(durations, event_observed=events, label=str(label))
    return kmf


def _groups(df: pd.DataFrame, group_col: str | None):
    if group_col is None:
        yield "all", df
        return
    for g, sub in df.groupby(group_col, sort=True):
        yield g, sub


def _curve_frame(kmf: KaplanMeierFitter, label) -> pd.DataFrame:
    sf = kmf.survival_function_.iloc[:, 0]
    ci = kmf.confidence_interval_survival_function_
    table = kmf.event_table.reindex(sf.index).fillna(0)
    return pd.DataFrame(
        {
            "group": str(label),
            "time": sf.index.to_numpy(dtype=float),
            "survival": sf.to_numpy(),
            "ci_lower": ci.iloc[:, 0].to_numpy(),
            "ci_upper": ci.iloc[:, 1].to_numpy(),
            "at_risk": table["at_risk"].astype(int).to_numpy(),
            "observed": table["observed"].astype(int).to_numpy(),
            "censored": table["censored"].astype(int).to_numpy(),
        }
    )


def km_curve(durations, events, label="all", conf_level: float = DEFAULT_CONF_LEVEL) -> pd.DataFrame:
    """
    Kaplan-Meier estimate as a tidy frame.
    Output: group, time, survival, ci_lower, ci_upper, at_risk, observed, censored
    """
    kmf = _fit_kmf(durations, events, label, conf_level)
    return _curve_frame(kmf, label)


def fit_km(
    df: pd.DataFrame,
    duration_col: str,
    event_col: str,
    group_col: str | None = None,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> pd.DataFrame:
    """Kaplan-Meier curves per group (or a single 'all' curve), stacked."""
    _require(df, [duration_col, event_col, group_col])
    curves = [
        km_curve(sub[duration_col], sub[event_col], label=g, conf_level=conf_level)
        for g, sub in _groups(df, group_col)
    ]
    if not curves:
        return pd.DataFrame(columns=CURVE_COLS)
    return pd.concat(curves, ignore_index=True)


def median_survival(
    df: pd.DataFrame,
    duration_col: str,
    event_col: str,
    group_col: str | None = None,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> pd.DataFrame:
    """
    Median survival time per group with confidence bounds.
    A median that is never reached is reported as inf.
    """
    _require(df, [duration_col, event_col, group_col])
    rows = []
    for g, sub in _groups(df, group_col):
        kmf = _fit_kmf(sub[duration_col], sub[event_col], g, conf_level)
        bounds = median_survival_times(kmf.confidence_interval_)
        rows.append({
            "group": str(g),
            "n": int(len(sub)),
            "n_events": int(sub[event_col].sum()),
            "median": float(kmf.median_survival_time_),
            "median_lower": float(bounds.iloc[0, 0]),
            "median_upper": float(bounds.iloc[0, 1]),
        })
    return pd.DataFrame(rows)


def survival_at(
    df: pd.DataFrame,
    times,
    duration_col: str,
    event_col: str,
    group_col: str | None = None,
) -> pd.DataFrame:
    """Survival probability at fixed horizons. Output: group, time, survival"""
    _require(df, [duration_col, event_col, group_col])
    times = list(np.atleast_1d(times))
    rows = []
    for g, sub in _groups(df, group_col):
        kmf = _fit_kmf(sub[duration_col], sub[event_col], g, DEFAULT_CONF_LEVEL)
        probs = kmf.survival_function_at_times(times)
        for t, p in zip(times, probs.to_numpy()):
            rows.append({"group": str(g), "time": float(t), "survival": float(p)})
    return pd.DataFrame(rows)


def logrank(df: pd.DataFrame, duration_col: str, event_col: str, group_col: str) -> LogRankResult:
    """Log-rank test for equality of survival curves across groups."""
    _require(df, [duration_col, event_col, group_col])
    n_groups = int(df[group_col].nunique())
    if n_groups < 2:
        raise ValueError(f"log-rank test needs at least two groups in {group_col!r}, got {n_groups}")

    res = multivariate_logrank_test(df[duration_col], df[group_col], df[event_col])
    return LogRankResult(
        test_statistic=float(res.test_statistic),
        p_value=float(res.p_value),
        degrees_of_freedom=n_groups - 1,
        n_groups=n_groups,
    )


def fit_cox(
    df: pd.DataFrame,
    duration_col: str,
    event_col: str,
    covariates,
    cluster_col: str | None = None,
    penalizer: float = 0.0,
) -> CoxResult:
    """
    Cox proportional hazards fit.
    With cluster_col, lifelines uses the robust sandwich variance for
    correlated rows (several gaps per user).
    """
    covariates = list(covariates)
    cols = [duration_col, event_col, *covariates] + ([cluster_col] if cluster_col else [])
    _require(df, cols)

    data = df[cols].dropna()
    dropped = len(df) - len(data)
    if dropped:
        logger.warning("dropped %d rows with missing values before Cox fit", dropped)

    cph = CoxPHFitter(penalizer=penalizer)
    cph.fit(data, duration_col=duration_col, event_col=event_col, cluster_col=cluster_col)
    logger.info("Cox fit on %d rows, concordance %.3f", len(data), cph.concordance_index_)

    return CoxResult(
        summary=cph.summary,
        concordance=float(cph.concordance_index_),
        log_likelihood=float(cph.log_likelihood_),
        n_observations=int(len(data)),
        n_events=int(data[event_col].sum()),
    )


def fit_recurrent(
    gaps: pd.DataFrame,
    covariates=tuple(RECURRENT_COVARIATES),
    user_col: str = "userID",
    bucket_cap: int = 4,
    conf_level: float = DEFAULT_CONF_LEVEL,
    penalizer: float = 0.0,
) -> RecurrentFit:
    """
    Gap-time analysis of repeat purchases.
      - curves:   Kaplan-Meier of time to next purchase by episode bucket
      - cox:      Cox model on gap times clustered by user
      - episodes: per-episode completion summary
    """
    by_episode = gaps.assign(episode_group=episode_bucket(gaps["episode"], cap=bucket_cap))
    curves = fit_km(by_episode, "gap", "event", group_col="episode_group", conf_level=conf_level)
    cox = fit_cox(gaps, "gap", "event", covariates, cluster_col=user_col, penalizer=penalizer)
    return RecurrentFit(curves=curves, cox=cox, episodes=repeat_summary(gaps))

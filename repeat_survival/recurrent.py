from __future__ import annotations

import logging
import numbers

import pandas as pd

from .censoring import DERIVED_COLS, chronological, coerce_timestamps

logger = logging.getLogger(__name__)

GAP_COLS = ["episode", "start", "stop", "gap", "event", "prior_count", "prior_total"]


def gap_time_table(
    labeled: pd.DataFrame,
    window_end=None,
    user_col: str = "userID",
    date_col: str = "date",
) -> pd.DataFrame:
    """
    Turn labeled purchases into one row per inter-purchase gap.

    Input must carry the label_censoring columns; rows are put back in
    (user, date) order, so frames reloaded from CSV or reordered are fine.
    Each purchase opens a gap that ends at the next purchase (event=1) or at
    window_end for the user's last purchase (event=0). Times are in days
    (or in the input's own units when dates are numeric day offsets):
      - episode:      1-based purchase index within the user
      - start / stop: time since the user's first purchase
      - gap:          stop - start
      - prior_count / prior_total: running sums including the opening purchase

    window_end defaults to the latest purchase date in the data.
    """
    missing = [c for c in [user_col, date_col, *DERIVED_COLS] if c not in labeled.columns]
    if missing:
        raise KeyError(f"labeled purchases missing columns: {missing}")

    labeled = labeled.assign(**{date_col: coerce_timestamps(labeled[date_col])})
    # the censored record goes last among same-date ties
    labeled = chronological(labeled, user_col, date_col, tiebreak=-labeled["event"].to_numpy())
    dates = labeled[date_col]
    is_datetime = pd.api.types.is_datetime64_any_dtype(dates)
    is_number = isinstance(window_end, numbers.Real) and not isinstance(window_end, bool)

    if window_end is None:
        window_end = dates.max()
    elif is_datetime:
        if is_number:
            raise ValueError(f"window_end {window_end!r} is a number but purchase dates are timestamps")
        window_end = pd.Timestamp(window_end)
    elif not is_number:
        raise ValueError(f"window_end {window_end!r} is not a number but purchase dates are day offsets")

    if len(dates) and (dates > window_end).any():
        raise ValueError(f"window_end {window_end} is before the latest purchase {dates.max()}")

    grouped = labeled.groupby(user_col, sort=False)
    end = grouped[date_col].shift(-1).fillna(window_end)
    first = grouped[date_col].transform("min")

    def to_days(delta: pd.Series) -> pd.Series:
        if is_datetime:
            return delta / pd.Timedelta(days=1)
        return delta.astype(float)

    out = pd.DataFrame(
        {
            user_col: labeled[user_col],
            "episode": grouped.cumcount() + 1,
            "start": to_days(dates - first),
            "stop": to_days(end - first),
            "event": labeled["event"].astype(int),
            "prior_count": labeled["cumCount"],
            "prior_total": labeled["cumTotal"],
        },
        index=labeled.index,
    )
    out["gap"] = out["stop"] - out["start"]

    logger.debug("built %d gaps (window_end=%s)", len(out), window_end)
    return out[[user_col, *GAP_COLS]]


def episode_bucket(episode: pd.Series, cap: int = 4) -> pd.Series:
    """Label episodes '1', '2', ... with everything from cap onwards as 'cap+'."""
    labels = episode.clip(upper=cap).astype(int).astype(str)
    return labels.where(episode < cap, f"{cap}+")


def repeat_summary(gaps: pd.DataFrame) -> pd.DataFrame:
    """
    Per-episode view of repeat behaviour.
    Output: episode, n_gaps, n_completed, completion_rate, median_completed_gap
    """
    out = (
        gaps.groupby("episode")
        .agg(n_gaps=("gap", "size"), n_completed=("event", "sum"))
        .reset_index()
    )
    out["completion_rate"] = out["n_completed"] / out["n_gaps"]

    med = (
        gaps[gaps["event"] == 1]
        .groupby("episode")["gap"]
        .median()
        .rename("median_completed_gap")
        .reset_index()
    )
    return out.merge(med, on="episode", how="left")

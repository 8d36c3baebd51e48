from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Iterable

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

DERIVED_COLS = ["delta", "cumCount", "cumTotal", "event"]


class InvalidTimestampError(ValueError):
    """Raised when a date value is missing or cannot be parsed."""

    def __init__(self, rows: list):
        self.rows = rows
        preview = rows[:10]
        more = f" (+{len(rows) - len(preview)} more)" if len(rows) > len(preview) else ""
        super().__init__(f"invalid timestamp at rows {preview}{more}")


@dataclass(frozen=True)
class TransactionRecord:
    """One purchase. date is a timestamp (or date string), or a numeric day offset."""

    userID: str
    date: pd.Timestamp | str | float
    count: int
    total: float


def records_to_frame(records: Iterable[TransactionRecord]) -> pd.DataFrame:
    rows = [asdict(r) for r in records]
    df = pd.DataFrame(rows, columns=["userID", "date", "count", "total"])
    df["date"] = coerce_timestamps(df["date"])
    return df.astype({"count": int, "total": float})


def coerce_timestamps(values, date_format: str | None = None) -> pd.Series:
    """
    Validate a column of dates before any arithmetic touches it.

    Numeric values are taken as day offsets and must be finite.
    Datetimes pass through; anything else is parsed with pd.to_datetime.
    Missing or unparsable values raise InvalidTimestampError.
    """
    s = values if isinstance(values, pd.Series) else pd.Series(values)

    if pd.api.types.is_bool_dtype(s):
        raise InvalidTimestampError(s.index.tolist())

    if pd.api.types.is_numeric_dtype(s):
        out = s
        bad = ~np.isfinite(s.astype(float))
    elif pd.api.types.is_datetime64_any_dtype(s):
        out = s
        bad = s.isna()
    else:
        out = pd.to_datetime(s, format=date_format, errors="coerce")
        bad = out.isna()

    if bad.any():
        raise InvalidTimestampError(s.index[bad.to_numpy()].tolist())
    return out


def chronological(tx: pd.DataFrame, user_col: str, date_col: str, tiebreak=None) -> pd.DataFrame:
    """
    Rows sorted by user, then date. Remaining ties go by tiebreak (ascending),
    then by input position. No columns are added to tx.
    """
    keys = pd.DataFrame({"user": tx[user_col].to_numpy(), "date": tx[date_col].to_numpy()})
    cols = ["user", "date"]
    if tiebreak is not None:
        keys["tiebreak"] = np.asarray(tiebreak)
        cols.append("tiebreak")
    keys["pos"] = np.arange(len(tx))
    cols.append("pos")
    order = keys.sort_values(cols).index.to_numpy()
    return tx.iloc[order]


def label_censoring(
    transactions: pd.DataFrame,
    user_col: str = "userID",
    date_col: str = "date",
    count_col: str = "count",
    total_col: str = "total",
) -> pd.DataFrame:
    """
    Annotate each purchase with its inter-purchase gap and censoring flag.

    Returns a new frame sorted by (user, date) with the original columns plus:
      - delta:    days since the user's previous purchase (0 for the first)
      - cumCount: running sum of count per user
      - cumTotal: running sum of total per user
      - event:    1 if a later purchase by the same user exists, 0 for the
                  user's last purchase (right-censored)

    Tie policy: purchases sharing a date keep their input order, so the one
    appearing last in the input is the censored one.
    Original index labels are kept so results can be joined back.
    """
    required = [user_col, date_col, count_col, total_col]
    missing = [c for c in required if c not in transactions.columns]
    if missing:
        raise KeyError(f"transactions missing columns: {missing}")

    tx = transactions.copy()
    if tx[user_col].isna().any():
        raise ValueError(f"{user_col} has missing values")
    tx[date_col] = coerce_timestamps(tx[date_col])

    tx = chronological(tx, user_col, date_col)

    grouped = tx.groupby(user_col, sort=False)
    step = grouped[date_col].diff()
    if pd.api.types.is_datetime64_any_dtype(tx[date_col]):
        step = step / pd.Timedelta(days=1)
    tx["delta"] = step.fillna(0).astype(float)
    tx["cumCount"] = grouped[count_col].cumsum()
    tx["cumTotal"] = grouped[total_col].cumsum()
    # every record but the user's last is followed by another purchase
    tx["event"] = tx.duplicated(subset=[user_col], keep="last").astype(int)

    logger.debug(
        "labeled %d records for %d users (%d censored)",
        len(tx), tx[user_col].nunique(), int((tx["event"] == 0).sum()),
    )
    return tx


def censoring_summary(labeled: pd.DataFrame, user_col: str = "userID", date_col: str = "date") -> pd.DataFrame:
    """One row per user: n_records, first/last date, completed gaps and censored records."""
    out = (
        labeled.groupby(user_col)
        .agg(
            n_records=(date_col, "size"),
            first_date=(date_col, "min"),
            last_date=(date_col, "max"),
            n_events=("event", "sum"),
        )
        .reset_index()
    )
    out["n_censored"] = out["n_records"] - out["n_events"]
    return out


def check_censoring(labeled: pd.DataFrame, user_col: str = "userID", date_col: str = "date") -> None:
    """Raise ValueError unless each user has one censored record, at their latest date."""
    censored = labeled[labeled["event"] == 0]
    per_user = censored.groupby(user_col).size().reindex(labeled[user_col].unique(), fill_value=0)
    bad_users = per_user[per_user != 1].index.tolist()
    if bad_users:
        raise ValueError(f"users without exactly one censored record: {bad_users[:10]}")

    last_date = labeled.groupby(user_col)[date_col].max()
    late = censored[censored[date_col].to_numpy() != last_date.loc[censored[user_col]].to_numpy()]
    if not late.empty:
        raise ValueError(f"censored record is not the latest for users: {late[user_col].tolist()[:10]}")

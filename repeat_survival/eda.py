from __future__ import annotations

from dataclasses import dataclass
import pandas as pd


@dataclass(frozen=True)
class PurchaseOverview:
    n_purchases: int
    n_users: int
    n_repeat_users: int
    units: int
    revenue: float
    date_min: str
    date_max: str


def purchase_overview(purchases: pd.DataFrame) -> PurchaseOverview:
    tx = purchases
    per_user = tx.groupby("userID").size()
    return PurchaseOverview(
        n_purchases=int(len(tx)),
        n_users=int(tx["userID"].nunique()),
        n_repeat_users=int((per_user > 1).sum()),
        units=int(tx["count"].sum()),
        revenue=float(tx["total"].sum()),
        date_min=str(tx["date"].min()),
        date_max=str(tx["date"].max()),
    )


def describe_series(s: pd.Series) -> pd.DataFrame:
    """Describe table including upper percentiles."""
    desc = s.describe(percentiles=[0.5, 0.75, 0.9, 0.95, 0.99])
    return desc.to_frame(name="value")


def cohort_overview(cohort: pd.DataFrame, duration_col: str, event_col: str) -> pd.DataFrame:
    """
    One-row table: subjects, events, censored share and follow-up range.
    """
    n = len(cohort)
    n_events = int(cohort[event_col].sum())
    return pd.DataFrame(
        [{
            "n_subjects": n,
            "n_events": n_events,
            "censored_share": (n - n_events) / n if n else 0.0,
            "followup_min": float(cohort[duration_col].min()) if n else 0.0,
            "followup_max": float(cohort[duration_col].max()) if n else 0.0,
        }]
    )

# app_survival/components/filters.py
from __future__ import annotations

from dataclasses import dataclass
import pandas as pd
import streamlit as st


@dataclass(frozen=True)
class PurchaseFilters:
    date_min: pd.Timestamp
    date_max: pd.Timestamp
    min_purchases: int


def init_filters_state(purchases: pd.DataFrame) -> None:
    """
    Initialize session_state defaults once.
    """
    if "filters_initialized" in st.session_state:
        return

    st.session_state["f_date_min"] = purchases["date"].min()
    st.session_state["f_date_max"] = purchases["date"].max()
    st.session_state["f_min_purchases"] = 1
    st.session_state["filters_initialized"] = True


def render_sidebar_filters(purchases: pd.DataFrame) -> PurchaseFilters:
    """
    Render sidebar controls and return active filters.
    """
    init_filters_state(purchases)

    st.sidebar.header("Purchase filters")

    dmin = purchases["date"].min()
    dmax = purchases["date"].max()

    date_range = st.sidebar.date_input(
        "Observation window",
        value=(st.session_state["f_date_min"].date(), st.session_state["f_date_max"].date()),
        min_value=dmin.date(),
        max_value=dmax.date(),
    )
    if isinstance(date_range, tuple) and len(date_range) == 2:
        st.session_state["f_date_min"] = pd.to_datetime(date_range[0])
        st.session_state["f_date_max"] = pd.to_datetime(date_range[1])

    st.session_state["f_min_purchases"] = st.sidebar.number_input(
        "Minimum purchases per user",
        min_value=1,
        max_value=50,
        value=int(st.session_state["f_min_purchases"]),
        help="Keeps users with at least this many purchases inside the window.",
    )

    return PurchaseFilters(
        date_min=st.session_state["f_date_min"],
        date_max=st.session_state["f_date_max"],
        min_purchases=int(st.session_state["f_min_purchases"]),
    )


def apply_filters(purchases: pd.DataFrame, f: PurchaseFilters) -> pd.DataFrame:
    """
    Restrict purchases to the window, then drop users below the purchase threshold.
    Labels must be recomputed afterwards: the window end moves the censoring point.
    """
    out = purchases[(purchases["date"] >= f.date_min) & (purchases["date"] <= f.date_max)]
    if f.min_purchases > 1:
        per_user = out.groupby("userID")["date"].transform("size")
        out = out[per_user >= f.min_purchases]
    return out

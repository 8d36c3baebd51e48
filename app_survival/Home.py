# app_survival/Home.py
from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import streamlit as st

from app_survival.components.bootstrap import add_repo_root_to_path

repo_root = add_repo_root_to_path()

from repeat_survival.config import COHORT_DURATION_COL, COHORT_EVENT_COL, PURCHASES_FILE
from repeat_survival.eda import cohort_overview, purchase_overview
from app_survival.components.data import load_cohort_data, load_purchases

st.set_page_config(page_title="Survival Explorer", layout="wide")

st.title("Survival Explorer: time to event and time to next purchase")
st.markdown(
    """
Two views on **time-to-event** data:
- a **cohort** with one row per subject (Kaplan-Meier, log-rank, Cox);
- a **purchase log** where every purchase opens a gap that ends at the next purchase, or is **censored** at the end of the window.
"""
)

cohort = load_cohort_data()
st.subheader("Cohort")
st.dataframe(cohort_overview(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL), use_container_width=True)

st.subheader("Purchases")
purchases = load_purchases(repo_root / "data" / "raw" / PURCHASES_FILE)
if purchases is None:
    st.info(f"Place {PURCHASES_FILE} under data/raw/ to enable the repeat-purchase pages.")
else:
    ov = purchase_overview(purchases)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Purchases", f"{ov.n_purchases:,}")
    c2.metric("Users", f"{ov.n_users:,}")
    c3.metric("Repeat users", f"{ov.n_repeat_users:,}")
    c4.metric("Revenue", f"{ov.revenue:,.0f}")
    st.caption(f"Window: {ov.date_min} → {ov.date_max}")

st.divider()

st.subheader("How to use the pages")
st.markdown(
    """
- **Kaplan Meier**: survival curves by group, log-rank test and Cox hazard ratios on the cohort.
- **Repeat Purchase Survival**: censoring labels per purchase, time to next purchase by purchase number, and a user-clustered Cox model on gap times.
"""
)

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import streamlit as st

from app_survival.components.bootstrap import add_repo_root_to_path
repo_root = add_repo_root_to_path()

from repeat_survival.charts import gap_histogram, hazard_ratio_plot, survival_plot
from repeat_survival.config import PURCHASES_FILE
from repeat_survival.recurrent import gap_time_table
from repeat_survival.survival import fit_recurrent
from app_survival.components.data import labeled_purchases, load_purchases
from app_survival.components.filters import apply_filters, render_sidebar_filters

st.title("Repeat Purchase Survival")
st.markdown(
    """
**Purpose:** treat every purchase as the start of a waiting time until the next one.
A user's last purchase is **censored**: we only know the next purchase had not happened by the end of the window.
"""
)

purchases = load_purchases(repo_root / "data" / "raw" / PURCHASES_FILE)
if purchases is None:
    st.info(f"Missing data/raw/{PURCHASES_FILE}.")
    st.stop()

filters = render_sidebar_filters(purchases)
pf = apply_filters(purchases, filters)
if pf.empty:
    st.info("No purchases under the current filters.")
    st.stop()

labeled = labeled_purchases(pf)
gaps = gap_time_table(labeled, window_end=filters.date_max)

# -----------------------------
# 1) Labels
# -----------------------------
st.subheader("1) Censoring labels")
c1, c2, c3 = st.columns(3)
c1.metric("Purchases", f"{len(labeled):,}")
c2.metric("Completed gaps (event=1)", f"{int(labeled['event'].sum()):,}")
c3.metric("Censored (event=0)", f"{int((labeled['event'] == 0).sum()):,}")
st.dataframe(labeled.head(200), use_container_width=True)

st.plotly_chart(gap_histogram(gaps), use_container_width=True)

# -----------------------------
# 2) Gap-time survival
# -----------------------------
st.subheader("2) Time to next purchase by purchase number")
cap = st.sidebar.slider("Bucket purchases from", min_value=2, max_value=8, value=4)
penalizer = st.sidebar.number_input("Cox penalizer", min_value=0.0, max_value=1.0, value=0.0, step=0.01)

fit = fit_recurrent(gaps, bucket_cap=cap, penalizer=penalizer)
st.plotly_chart(
    survival_plot(fit.curves, title="Probability of no repeat purchase yet", time_label="days since purchase"),
    use_container_width=True,
)
st.dataframe(fit.episodes, use_container_width=True)
st.caption("A curve that drops earlier means that purchase number is followed by the next one sooner.")

# -----------------------------
# 3) Cox on gap times
# -----------------------------
st.subheader("3) Cox model on gap times (clustered by user)")
st.metric("Concordance", f"{fit.cox.concordance:.3f}")
st.plotly_chart(hazard_ratio_plot(fit.cox.summary), use_container_width=True)
st.dataframe(fit.cox.summary, use_container_width=True)

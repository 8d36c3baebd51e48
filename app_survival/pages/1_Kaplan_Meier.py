import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import streamlit as st

from app_survival.components.bootstrap import add_repo_root_to_path
repo_root = add_repo_root_to_path()

from repeat_survival.charts import hazard_ratio_plot, survival_plot
from repeat_survival.config import COHORT_COVARIATES, COHORT_DURATION_COL, COHORT_EVENT_COL, COHORT_GROUP_COL
from repeat_survival.survival import fit_cox, fit_km, logrank, median_survival
from app_survival.components.data import load_cohort_data

st.title("Kaplan-Meier & Cox (cohort)")
st.markdown(
    """
**Purpose:** estimate the survival function without assuming a distribution, compare groups,
and quantify covariate effects with a proportional hazards model.
"""
)

cohort = load_cohort_data()

candidates = [c for c in cohort.columns if c not in (COHORT_DURATION_COL, COHORT_EVENT_COL) and cohort[c].nunique() <= 10]
default_idx = candidates.index(COHORT_GROUP_COL) if COHORT_GROUP_COL in candidates else 0
group_col = st.sidebar.selectbox("Group by", options=["(none)"] + candidates, index=default_idx + 1)
group_col = None if group_col == "(none)" else group_col
show_ci = st.sidebar.checkbox("Show confidence band", value=True)

# -----------------------------
# 1) Curves
# -----------------------------
st.subheader("1) Survival curves")
curves = fit_km(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL, group_col=group_col)
st.plotly_chart(
    survival_plot(curves, title="Kaplan-Meier estimate", time_label=COHORT_DURATION_COL, show_ci=show_ci),
    use_container_width=True,
)
st.dataframe(median_survival(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL, group_col=group_col), use_container_width=True)
st.caption("'+' marks are censored subjects; a median of inf means the curve never drops below 50%.")

# -----------------------------
# 2) Log-rank
# -----------------------------
if group_col is not None:
    st.subheader("2) Log-rank test")
    lr = logrank(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL, group_col)
    c1, c2 = st.columns(2)
    c1.metric("Chi-square", f"{lr.test_statistic:.2f}", help=f"{lr.degrees_of_freedom} degrees of freedom")
    c2.metric("p-value", f"{lr.p_value:.4f}")

# -----------------------------
# 3) Cox model
# -----------------------------
st.subheader("3) Cox proportional hazards")
options = [c for c in cohort.columns if c not in (COHORT_DURATION_COL, COHORT_EVENT_COL)]
covariates = st.multiselect(
    "Covariates",
    options=options,
    default=[c for c in COHORT_COVARIATES if c in options],
)
if not covariates:
    st.info("Pick at least one covariate.")
    st.stop()

cox = fit_cox(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL, covariates)
st.metric("Concordance", f"{cox.concordance:.3f}")
st.plotly_chart(hazard_ratio_plot(cox.summary), use_container_width=True)
st.dataframe(cox.summary, use_container_width=True)

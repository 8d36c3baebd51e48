# app_survival/components/data.py
from __future__ import annotations

from pathlib import Path
import pandas as pd
import streamlit as st

from repeat_survival.censoring import label_censoring
from repeat_survival.load_data import load_cohort, read_purchases


@st.cache_data(show_spinner=True)
def load_purchases(path: Path) -> pd.DataFrame | None:
    """
    Cached purchase loader. Returns None when the file is not there,
    so pages can show a hint instead of a traceback.
    """
    if not Path(path).exists():
        return None
    return read_purchases(path)


@st.cache_data(show_spinner=True)
def load_cohort_data(path: Path | None = None) -> pd.DataFrame:
    return load_cohort(path)


@st.cache_data(show_spinner=False)
def labeled_purchases(purchases: pd.DataFrame) -> pd.DataFrame:
    return label_censoring(purchases)

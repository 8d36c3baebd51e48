from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd
from lifelines.datasets import load_rossi

from .censoring import coerce_timestamps
from .config import (
    COHORT_DURATION_COL,
    COHORT_EVENT_COL,
    PURCHASE_COLUMNS,
    PURCHASE_DATE_FORMAT,
    PURCHASES_FILE,
    RAW_DIR,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataBundle:
    purchases: pd.DataFrame
    cohort: pd.DataFrame


def read_purchases(path, date_format: str = PURCHASE_DATE_FORMAT) -> pd.DataFrame:
    """
    Read a CDNOW-style purchase log.

    Expected layout (no header, whitespace separated):
      userID  YYYYMMDD  count  total

    Returns columns userID (str), date (datetime64), count (int), total (float).
    Raises InvalidTimestampError on a malformed date.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"purchase file not found: {path}")

    df = pd.read_csv(
        path,
        sep=r"\s+",
        header=None,
        names=PURCHASE_COLUMNS,
        dtype={"userID": str, "date": str},
    )
    df["date"] = coerce_timestamps(df["date"], date_format=date_format)
    df["count"] = df["count"].astype(int)
    df["total"] = df["total"].astype(float)

    logger.info("read %d purchases for %d users from %s", len(df), df["userID"].nunique(), path)
    return df


def load_cohort(path=None) -> pd.DataFrame:
    """Cohort CSV with one row per subject; defaults to lifelines' Rossi data."""
    if path is None:
        logger.info("no cohort file given, using lifelines Rossi dataset")
        return load_rossi()
    return pd.read_csv(path)


def load_all(raw_dir=None, cohort_path=None) -> DataBundle:
    """Load the purchase log from raw_dir (default RAW_DIR) and the cohort dataset."""
    raw_dir = Path(raw_dir) if raw_dir is not None else RAW_DIR
    return DataBundle(
        purchases=read_purchases(raw_dir / PURCHASES_FILE),
        cohort=load_cohort(cohort_path),
    )


def smoke_test() -> None:
    """Quick check: load data and print shapes + key columns presence."""
    data = load_all()
    print("Loaded:")
    print("  purchases ", data.purchases.shape)
    print("  cohort    ", data.cohort.shape)

    missing = {COHORT_DURATION_COL, COHORT_EVENT_COL} - set(data.cohort.columns)
    if missing:
        raise ValueError(f"cohort missing columns: {sorted(missing)}")

    print("Smoke test OK")


if __name__ == "__main__":
    smoke_test()

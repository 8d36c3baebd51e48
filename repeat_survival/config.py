from __future__ import annotations

import logging
from pathlib import Path

# Repo root = parent of /repeat_survival
REPO_DIR = Path(__file__).resolve().parents[1]

DATA_DIR = REPO_DIR / "data"
RAW_DIR = DATA_DIR / "raw"

REPORTS_DIR = REPO_DIR / "reports"
FIGURES_DIR = REPORTS_DIR / "figures"
TABLES_DIR = REPORTS_DIR / "tables"

# CDNOW-style purchase log: "userID YYYYMMDD count total", whitespace separated
PURCHASES_FILE = "CDNOW_master.txt"
PURCHASE_COLUMNS = ["userID", "date", "count", "total"]
PURCHASE_DATE_FORMAT = "%Y%m%d"

# Default cohort is lifelines' Rossi recidivism data
COHORT_DURATION_COL = "week"
COHORT_EVENT_COL = "arrest"
COHORT_GROUP_COL = "fin"
COHORT_COVARIATES = ["fin", "age", "race", "wexp", "mar", "paro", "prio"]

RECURRENT_COVARIATES = ["episode", "prior_count", "prior_total"]

DEFAULT_CONF_LEVEL = 0.95

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging once; called by scripts, never by library modules."""
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)

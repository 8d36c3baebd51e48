# app_survival/components/bootstrap.py
from __future__ import annotations

import sys
from pathlib import Path


def add_repo_root_to_path() -> Path:
    """
    Ensures 'repeat_survival' is importable when running Streamlit from app_survival/.
    Returns the repo root path.
    """
    repo_root = Path(__file__).resolve().parents[2]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))
    return repo_root

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
from lifelines.datasets import load_rossi


@pytest.fixture
def purchases() -> pd.DataFrame:
    """Two users, input deliberately out of date order."""
    return pd.DataFrame(
        {
            "userID": ["129", "7", "129", "7", "129"],
            "date": pd.to_datetime(["1997-02-10", "1997-01-03", "1997-01-11", "1997-01-01", "1997-01-16"]),
            "count": [3, 1, 1, 2, 2],
            "total": [30.0, 9.5, 10.0, 20.0, 18.0],
        }
    )


@pytest.fixture
def rossi() -> pd.DataFrame:
    return load_rossi()


@pytest.fixture
def synthetic_purchases() -> pd.DataFrame:
    """Numeric day offsets for 150 users with 1-6 purchases each."""
    rng = np.random.RandomState(42)
    rows = []
    for uid in range(150):
        n = rng.randint(1, 7)
        days = np.cumsum(1 + rng.exponential(scale=20.0, size=n).round()) + rng.randint(0, 30)
        for d in days:
            c = rng.randint(1, 5)
            rows.append({"userID": f"u{uid}", "date": float(d), "count": c, "total": c * rng.uniform(8, 20)})
    return pd.DataFrame(rows)

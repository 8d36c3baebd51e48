import numpy as np
import pandas as pd
import pytest

from repeat_survival.censoring import label_censoring
from repeat_survival.recurrent import episode_bucket, gap_time_table, repeat_summary


@pytest.fixture
def labeled():
    tx = pd.DataFrame(
        {
            "userID": ["a", "b", "a", "a"],
            "date": [10, 5, 0, 30],
            "count": [1, 4, 2, 1],
            "total": [10.0, 40.0, 20.0, 10.0],
        }
    )
    return label_censoring(tx)


def test_gaps_end_at_next_purchase_or_window(labeled):
    gaps = gap_time_table(labeled, window_end=40)

    a = gaps[gaps["userID"] == "a"]
    assert a["episode"].tolist() == [1, 2, 3]
    assert a["start"].tolist() == [0.0, 10.0, 30.0]
    assert a["stop"].tolist() == [10.0, 30.0, 40.0]
    assert a["gap"].tolist() == [10.0, 20.0, 10.0]
    assert a["event"].tolist() == [1, 1, 0]
    assert a["prior_count"].tolist() == [2, 3, 4]

    b = gaps[gaps["userID"] == "b"]
    assert b["gap"].tolist() == [35.0]
    assert b["event"].tolist() == [0]


def test_window_defaults_to_latest_purchase(labeled):
    gaps = gap_time_table(labeled).set_index(["userID", "episode"])
    assert gaps.loc[("a", 3), "gap"] == 0.0
    assert gaps.loc[("b", 1), "gap"] == 25.0


def test_window_before_last_purchase_is_rejected(labeled):
    with pytest.raises(ValueError):
        gap_time_table(labeled, window_end=20)


def test_datetime_gaps_are_in_days():
    tx = pd.DataFrame(
        {
            "userID": ["u", "u"],
            "date": pd.to_datetime(["1997-01-01", "1997-01-11"]),
            "count": [1, 1],
            "total": [1.0, 1.0],
        }
    )
    gaps = gap_time_table(label_censoring(tx), window_end="1997-03-01")
    assert gaps["gap"].tolist() == [10.0, 49.0]
    assert gaps["event"].tolist() == [1, 0]


def test_unlabeled_input_is_rejected():
    with pytest.raises(KeyError):
        gap_time_table(pd.DataFrame({"userID": ["a"], "date": [1]}))


def test_episode_bucket():
    out = episode_bucket(pd.Series([1, 2, 3, 4, 5]), cap=3)
    assert out.tolist() == ["1", "2", "3+", "3+", "3+"]


def test_repeat_summary(labeled):
    summary = repeat_summary(gap_time_table(labeled, window_end=40)).set_index("episode")

    assert summary.loc[1, "n_gaps"] == 2
    assert summary.loc[1, "n_completed"] == 1
    assert summary.loc[1, "completion_rate"] == 0.5
    assert summary.loc[1, "median_completed_gap"] == 10.0
    assert summary.loc[2, "median_completed_gap"] == 20.0
    assert np.isnan(summary.loc[3, "median_completed_gap"])


def test_reordered_input_is_put_back_in_date_order(labeled):
    expected = gap_time_table(labeled, window_end=40)
    out = gap_time_table(labeled.iloc[::-1], window_end=40)

    pd.testing.assert_frame_equal(out, expected)
    assert (out["gap"] >= 0).all()
    assert out[out["userID"] == "a"]["event"].tolist() == [1, 1, 0]


def test_labels_reloaded_from_csv(tmp_path):
    tx = pd.DataFrame(
        {
            "userID": ["u", "u", "u"],
            "date": pd.to_datetime(["1997-01-11", "1997-01-01", "1997-01-11"]),
            "count": [1, 1, 1],
            "total": [1.0, 2.0, 3.0],
        }
    )
    path = tmp_path / "labeled.csv"
    label_censoring(tx).iloc[::-1].to_csv(path, index=False)

    gaps = gap_time_table(pd.read_csv(path, dtype={"userID": str}), window_end="1997-01-21")
    assert gaps["gap"].tolist() == [10.0, 0.0, 10.0]
    assert gaps["event"].tolist() == [1, 1, 0]
    assert gaps["prior_total"].tolist() == [2.0, 3.0, 6.0]


def test_window_end_type_must_match_dates(labeled):
    with pytest.raises(ValueError, match="day offsets"):
        gap_time_table(labeled, window_end="1998-06-30")

    tx = pd.DataFrame(
        {"userID": ["u"], "date": pd.to_datetime(["1997-01-01"]), "count": [1], "total": [1.0]}
    )
    with pytest.raises(ValueError, match="timestamps"):
        gap_time_table(label_censoring(tx), window_end=40)

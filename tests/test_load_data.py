import pandas as pd
import pytest

from repeat_survival.censoring import InvalidTimestampError
from repeat_survival.config import PURCHASES_FILE
from repeat_survival.eda import cohort_overview, purchase_overview
from repeat_survival.load_data import load_all, load_cohort, read_purchases

CDNOW_SAMPLE = """\
00001 19970101  1   11.77
00002 19970112  1   12.00
00002 19970112  5   77.00
00003 19970102  2   20.76
00003 19970330  2   20.76
"""


def test_read_purchases(tmp_path):
    path = tmp_path / "purchases.txt"
    path.write_text(CDNOW_SAMPLE)

    df = read_purchases(path)

    assert list(df.columns) == ["userID", "date", "count", "total"]
    assert df["userID"].tolist()[:2] == ["00001", "00002"]
    assert df["date"].iloc[0] == pd.Timestamp("1997-01-01")
    assert df["count"].sum() == 11
    assert df["total"].iloc[2] == 77.0


def test_read_purchases_bad_date(tmp_path):
    path = tmp_path / "purchases.txt"
    path.write_text("00001 19970101 1 11.77\n00001 19971345 1 3.00\n")
    with pytest.raises(InvalidTimestampError):
        read_purchases(path)


def test_read_purchases_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_purchases(tmp_path / "nope.txt")


def test_load_cohort_defaults_to_rossi():
    cohort = load_cohort()
    assert {"week", "arrest", "fin"} <= set(cohort.columns)


def test_load_all_and_overviews(tmp_path):
    (tmp_path / PURCHASES_FILE).write_text(CDNOW_SAMPLE)
    data = load_all(tmp_path)

    ov = purchase_overview(data.purchases)
    assert ov.n_purchases == 5
    assert ov.n_users == 3
    assert ov.n_repeat_users == 2
    assert ov.units == 11

    co = cohort_overview(data.cohort, "week", "arrest")
    assert co.loc[0, "n_subjects"] == 432
    assert co.loc[0, "n_events"] == 114


def test_smoke_test(tmp_path, monkeypatch, capsys):
    import repeat_survival.load_data as load_data

    (tmp_path / PURCHASES_FILE).write_text(CDNOW_SAMPLE)
    monkeypatch.setattr(load_data, "RAW_DIR", tmp_path)

    load_data.smoke_test()
    out = capsys.readouterr().out
    assert "purchases  (5, 4)" in out
    assert "Smoke test OK" in out


def test_smoke_test_missing_cohort_columns(tmp_path, monkeypatch):
    import repeat_survival.load_data as load_data

    (tmp_path / PURCHASES_FILE).write_text(CDNOW_SAMPLE)
    monkeypatch.setattr(load_data, "RAW_DIR", tmp_path)
    monkeypatch.setattr(load_data, "load_cohort", lambda path=None: pd.DataFrame({"week": [1]}))

    with pytest.raises(ValueError, match="arrest"):
        load_data.smoke_test()

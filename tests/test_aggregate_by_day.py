# tests/test_aggregate_by_day.py

import pandas as pd

from sales_data import normalize_records
from sales_insights import aggregate_by_day


def test_same_day_records_share_one_bucket():
    records = normalize_records(
        pd.DataFrame(
            [
                {"orderDate": "2024-01-01", "sales": 10, "profit": 2},
                {"orderDate": "2024-01-01", "sales": 20, "profit": 3},
            ]
        )
    )

    daily = aggregate_by_day(records)

    assert len(daily) == 1
    row = daily.iloc[0]
    assert row["date"] == pd.Timestamp("2024-01-01")
    assert row["sales"] == 30
    assert row["profit"] == 5
    assert row["revenue"] == 25


def test_buckets_are_sorted_and_ignore_time_of_day():
    records = normalize_records(
        pd.DataFrame(
            [
                {"date": "2024-01-03T09:00:00", "amount": 5},
                {"date": "2024-01-01T22:00:00", "amount": 1},
                {"date": "2024-01-03T18:30:00", "amount": 7},
            ]
        )
    )

    daily = aggregate_by_day(records)

    assert daily["date"].tolist() == [pd.Timestamp("2024-01-01"), pd.Timestamp("2024-01-03")]
    assert daily["sales"].tolist() == [1.0, 12.0]


def test_undated_records_are_left_out_and_totals_match():
    records = normalize_records(
        pd.DataFrame(
            [
                {"orderDate": "2024-02-01", "sales": 10.5, "profit": 1},
                {"orderDate": None, "product": "X", "sales": 100, "profit": 50},
                {"orderDate": "2024-02-02", "sales": 4.5, "profit": 0.5},
            ]
        )
    )

    daily = aggregate_by_day(records)
    dated = records.loc[records["orderDate"].notna()]

    assert len(daily) == 2
    assert daily["sales"].sum() == dated["sales"].sum()
    assert daily["profit"].sum() == dated["profit"].sum()


def test_revenue_is_sales_minus_profit_per_bucket():
    records = normalize_records(
        pd.DataFrame(
            [
                {"orderDate": "2024-03-01", "quantity": 2, "unitPrice": 10},
                {"orderDate": "2024-03-01", "sales": 40, "profit": 15},
            ]
        )
    )

    row = aggregate_by_day(records).iloc[0]

    # first record: sales derived as 2 * 10, profit missing -> 0
    assert row["sales"] == 60
    assert row["profit"] == 15
    assert row["revenue"] == 45


def test_empty_input_gives_empty_series():
    daily = aggregate_by_day(normalize_records(pd.DataFrame()))

    assert daily.empty
    assert list(daily.columns) == ["date", "sales", "profit", "revenue"]

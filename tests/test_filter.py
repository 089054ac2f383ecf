# tests/test_filter.py

from datetime import date

import pandas as pd

from sales_data import normalize_records
from sales_insights import (
    DateRange,
    FilterSpec,
    build_dashboard,
    default_filter_spec,
    derive_facets,
    filter_records,
)


def make_records() -> pd.DataFrame:
    rows = [
        {"orderId": "1", "orderDate": "2024-01-01", "category": "Tech", "region": "East"},
        {"orderId": "2", "orderDate": "2024-01-15", "category": "Home", "region": "West"},
        {"orderId": "3", "orderDate": "2024-02-01", "category": "Tech", "region": "West"},
        {"orderId": "4", "orderDate": None, "category": "Tech", "region": "East"},
        {"orderId": "5", "orderDate": "2024-01-20", "category": None, "region": None},
        {"orderId": "6", "orderDate": "garbage", "category": "Home", "region": "East"},
    ]
    return normalize_records(pd.DataFrame(rows))


def january() -> DateRange:
    return DateRange(start="2024-01-01", end="2024-01-31")


def test_date_range_is_inclusive_and_keeps_order():
    filtered = filter_records(make_records(), FilterSpec(date_range=january()))

    assert filtered["orderId"].tolist() == ["1", "2", "5"]


def test_single_day_range():
    spec = FilterSpec(date_range=DateRange(start=date(2024, 1, 15), end=date(2024, 1, 15)))

    assert filter_records(make_records(), spec)["orderId"].tolist() == ["2"]


def test_inverted_range_matches_nothing():
    spec = FilterSpec(date_range=DateRange(start="2024-02-01", end="2024-01-01"))

    filtered = filter_records(make_records(), spec)

    assert filtered.empty
    assert list(filtered.columns) == list(make_records().columns)


def test_no_date_range_keeps_undated_records():
    filtered = filter_records(make_records(), FilterSpec(category="Tech"))

    assert filtered["orderId"].tolist() == ["1", "3", "4"]


def test_category_match_is_case_sensitive():
    assert filter_records(make_records(), FilterSpec(category="tech")).empty


def test_constraints_are_combined():
    spec = FilterSpec(date_range=january(), region="West")

    assert filter_records(make_records(), spec)["orderId"].tolist() == ["2"]


def test_filter_is_idempotent():
    records = make_records()
    spec = FilterSpec(date_range=january(), category="Tech")

    once = filter_records(records, spec)
    twice = filter_records(once, spec)

    pd.testing.assert_frame_equal(once, twice)


def test_filter_does_not_mutate_input():
    records = make_records()
    before = records.copy()

    filter_records(records, FilterSpec(date_range=january(), region="East"))

    pd.testing.assert_frame_equal(records, before)


def test_facets_skip_missing_values():
    facets = derive_facets(make_records())

    assert facets == {"categories": ["Home", "Tech"], "regions": ["East", "West"]}


def test_dashboard_facets_ignore_current_filter():
    records = make_records()
    spec = FilterSpec(date_range=january(), category="Home")

    views = build_dashboard(records, spec)

    assert views["facets"] == derive_facets(records)
    assert views["filtered"]["orderId"].tolist() == ["2"]


def test_default_filter_spec_covers_last_month():
    spec = default_filter_spec(today=date(2024, 3, 15))

    assert spec.date_range.start == date(2024, 2, 15)
    assert spec.date_range.end == date(2024, 3, 15)
    assert spec.category == ""
    assert spec.region == ""


def test_default_filter_spec_uses_configured_lookback():
    config = {"filters": {"default_lookback_months": 3}}

    spec = default_filter_spec(config, today=date(2024, 3, 15))

    assert spec.date_range.start == date(2023, 12, 15)

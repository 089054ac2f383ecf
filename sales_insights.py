"""
sales_insights.py

Filter engine and chart aggregators for the sales insights dashboard.

Everything here is a pure function over a canonical record DataFrame
(see sales_data.normalize_records):
- filter_records / derive_facets: interactive filters and their options,
- aggregate_by_day: daily sales / profit / revenue series,
- top_products: top-N products by quantity,
- aggregate_by_region: regional sales totals with optional "Other" bucket.

Inputs are never mutated and empty inputs give empty outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Union

import pandas as pd

from sales_data import DEFAULT_CONFIG

DateLike = Union[str, date, pd.Timestamp, None]


# -----------------------------------------------------------------------------
# 1. Filter spec
# -----------------------------------------------------------------------------

@dataclass
class DateRange:
    start: DateLike = None
    end: DateLike = None

    def bounds(self) -> Optional[tuple]:
        """Both bounds as midnight Timestamps, or None when unconstrained."""
        if self.start in (None, "") or self.end in (None, ""):
            return None
        return (
            pd.Timestamp(self.start).normalize(),
            pd.Timestamp(self.end).normalize(),
        )


@dataclass
class FilterSpec:
    date_range: DateRange = field(default_factory=DateRange)
    category: str = ""
    region: str = ""


def default_filter_spec(config: Optional[Dict] = None, today: Optional[date] = None) -> FilterSpec:
    """
    The dashboard's initial (and "reset") filter: the last
    filters.default_lookback_months months up to today, no facet constraint.
    """
    config = config or DEFAULT_CONFIG
    months = int(config["filters"]["default_lookback_months"])
    end = pd.Timestamp(today or date.today()).normalize()
    start = end - pd.DateOffset(months=months)
    return FilterSpec(date_range=DateRange(start=start.date(), end=end.date()))


# -----------------------------------------------------------------------------
# 2. Filter engine
# -----------------------------------------------------------------------------

def filter_records(records: pd.DataFrame, spec: FilterSpec) -> pd.DataFrame:
    """
    Return the records matching every constraint of spec, in original order.

    - date: start <= orderDate <= end (calendar days); undated records fail
      whenever a date range is set, and start > end matches nothing,
    - category / region: exact, case-sensitive match when non-empty.
    """
    mask = pd.Series(True, index=records.index)

    bounds = spec.date_range.bounds()
    if bounds is not None:
        start, end = bounds
        if start > end:
            return records.iloc[0:0].copy()
        order_day = records["orderDate"]
        mask &= order_day.notna() & (order_day >= start) & (order_day <= end)

    if spec.category:
        mask &= records["category"].eq(spec.category)

    if spec.region:
        mask &= records["region"].eq(spec.region)

    return records.loc[mask].copy()


def _distinct_values(series: pd.Series) -> List[str]:
    values = series.dropna()
    values = values[values != ""]
    return sorted(set(values.astype(str)))


def derive_facets(records: pd.DataFrame) -> Dict[str, List[str]]:
    """
    Sorted distinct categories and regions of the full record set.

    Call this on the unfiltered records so the filter options stay stable.
    Missing values are left out (no "Unknown" entry).
    """
    return {
        "categories": _distinct_values(records["category"]),
        "regions": _distinct_values(records["region"]),
    }


# -----------------------------------------------------------------------------
# 3. Time series
# -----------------------------------------------------------------------------

def aggregate_by_day(records: pd.DataFrame) -> pd.DataFrame:
    """
    Daily totals, ascending by date.

    Columns: date, sales, profit, revenue (= sales - profit per bucket).
    Records without an order date are left out.
    """
    dated = records.loc[records["orderDate"].notna()]
    if dated.empty:
        return pd.DataFrame(
            {
                "date": pd.Series(dtype="datetime64[ns]"),
                "sales": pd.Series(dtype=float),
                "profit": pd.Series(dtype=float),
                "revenue": pd.Series(dtype=float),
            }
        )

    daily = (
        dated.assign(date=dated["orderDate"].dt.normalize())
        .groupby("date", as_index=False)
        .agg(sales=("sales", "sum"), profit=("profit", "sum"))
        .sort_values("date")
        .reset_index(drop=True)
    )
    daily["revenue"] = daily["sales"] - daily["profit"]
    return daily


# -----------------------------------------------------------------------------
# 4. Top products
# -----------------------------------------------------------------------------

def top_products_limit(config: Optional[Dict] = None, compact: bool = False) -> int:
    display = (config or DEFAULT_CONFIG)["display"]
    return int(display["top_products_compact"] if compact else display["top_products"])


def top_products(
    records: pd.DataFrame,
    limit: int,
    compact: bool = False,
    missing_quantity: int = 0,
    unknown_label: str = "Unknown",
) -> pd.DataFrame:
    """
    Top products by quantity sold.

    Per product: quantity = sum of quantities, sales = sum of
    quantity * unitPrice per record. A record without a quantity counts as
    missing_quantity (0 by default, 1 for the legacy ranking).

    Sorted by quantity descending; ties keep the order in which products
    first appear. Truncated to limit; compact mode reverses the result so the
    largest bar ends up last.
    """
    if limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit}")

    quantity = records["quantity"].fillna(missing_quantity).astype(float)
    lines = pd.DataFrame(
        {
            "name": records["productName"].fillna(unknown_label),
            "quantity": quantity,
            "sales": quantity * records["unitPrice"].astype(float),
        }
    )

    ranking = (
        lines.groupby("name", sort=False, as_index=False)
        .agg(quantity=("quantity", "sum"), sales=("sales", "sum"))
        .sort_values("quantity", ascending=False, kind="stable")
        .head(limit)
        .reset_index(drop=True)
    )

    if compact:
        ranking = ranking.iloc[::-1].reset_index(drop=True)
    return ranking


# -----------------------------------------------------------------------------
# 5. Regional sales
# -----------------------------------------------------------------------------

def aggregate_by_region(
    records: pd.DataFrame,
    compact: bool = False,
    max_slices: int = 5,
    other_label: str = "Other",
    unknown_label: str = "Unknown",
) -> pd.DataFrame:
    """
    Sales value per region, descending.

    value = sum of unitPrice * quantity (recomputed, the sales column is not
    used), rounded to 2 decimals. Missing regions are grouped as
    unknown_label.

    In compact mode, when there are more than max_slices regions, the top
    max_slices - 1 are kept and the rest are summed into one other_label row.
    """
    region = records["region"].where(
        records["region"].notna() & (records["region"] != ""), unknown_label
    )
    lines = pd.DataFrame(
        {
            "name": region,
            "value": records["unitPrice"].astype(float)
            * records["quantity"].fillna(0).astype(float),
        }
    )

    totals = (
        lines.groupby("name", sort=False, as_index=False)
        .agg(value=("value", "sum"))
    )
    totals["value"] = totals["value"].round(2)
    totals = totals.sort_values("value", ascending=False, kind="stable").reset_index(drop=True)

    if compact and len(totals) > max_slices:
        keep = max_slices - 1
        other_total = round(float(totals["value"].iloc[keep:].sum()), 2)
        totals = pd.concat(
            [
                totals.iloc[:keep],
                pd.DataFrame({"name": [other_label], "value": [other_total]}),
            ],
            ignore_index=True,
        )

    return totals


def region_shares(regions: pd.DataFrame) -> pd.DataFrame:
    """
    Add a percent column (0..1) relative to the displayed rows' total.
    """
    result = regions.copy()
    total = float(result["value"].sum()) if not result.empty else 0.0
    result["percent"] = result["value"] / total if total else 0.0
    return result


# -----------------------------------------------------------------------------
# 6. Dashboard views
# -----------------------------------------------------------------------------

def build_dashboard(
    records: pd.DataFrame,
    spec: FilterSpec,
    compact: bool = False,
    config: Optional[Dict] = None,
) -> Dict[str, object]:
    """
    Compute every dashboard view from one record set and filter.
    """
    config = config or DEFAULT_CONFIG
    display = config["display"]

    filtered = filter_records(records, spec)
    return {
        "facets": derive_facets(records),
        "filtered": filtered,
        "trend": aggregate_by_day(filtered),
        "top_products": top_products(
            filtered,
            limit=top_products_limit(config, compact=compact),
            compact=compact,
            unknown_label=display["unknown_label"],
        ),
        "regions": region_shares(
            aggregate_by_region(
                filtered,
                compact=compact,
                max_slices=int(display["max_region_slices"]),
                other_label=display["other_label"],
                unknown_label=display["unknown_label"],
            )
        ),
    }


__all__ = [
    "DateRange",
    "FilterSpec",
    "default_filter_spec",
    "filter_records",
    "derive_facets",
    "aggregate_by_day",
    "top_products_limit",
    "top_products",
    "aggregate_by_region",
    "region_shares",
    "build_dashboard",
]

"""
sales_charts.py

Chart rendering and batch report for the sales insights dashboard.

The plot_* functions turn aggregator output (sales_insights) into matplotlib
figures; main() runs the whole pipeline once and writes the CSV export and
PNG charts under output_dir:

    python sales_charts.py
"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from matplotlib.ticker import FuncFormatter

from sales_data import (
    PROJECT_ROOT,
    load_config,
    save_export,
    store,
)
from sales_insights import (
    build_dashboard,
    default_filter_spec,
)


sns.set(style="whitegrid")

TREND_COLORS = {"sales": "#8884d8", "revenue": "#82ca9d", "profit": "#ffc658"}
REGION_COLORS = [
    "#0088FE", "#00C49F", "#FFBB28", "#FF8042", "#8884D8",
    "#A4DE6C", "#D0ED57", "#FFC658", "#8884d8", "#82ca9d",
]
# slices below this share get no label in compact mode
MIN_COMPACT_LABEL_SHARE = 0.1


# -----------------------------------------------------------------------------
# 1. Label formatting
# -----------------------------------------------------------------------------

def format_day_label(day, compact: bool = False) -> str:
    """'Jan 5, 2024', or 'Jan 5, 24' in compact mode."""
    ts = pd.Timestamp(day)
    year = ts.strftime("%y") if compact else str(ts.year)
    return f"{ts.strftime('%b')} {ts.day}, {year}"


def format_currency_tick(value: float, compact: bool = False) -> str:
    if compact and value >= 1000:
        return f"${value / 1000:g}k"
    return f"${value:,.0f}"


def format_share_label(percent: float) -> str:
    return f"{percent * 100:.0f}%"


def share_label_visible(percent: float, compact: bool = False) -> bool:
    return not (compact and percent < MIN_COMPACT_LABEL_SHARE)


# -----------------------------------------------------------------------------
# 2. Plotting functions
# -----------------------------------------------------------------------------

def _empty_figure(title: str, figsize) -> plt.Figure:
    fig, ax = plt.subplots(figsize=figsize)
    ax.set_title(title, fontsize=14)
    ax.text(0.5, 0.5, "No data", ha="center", va="center", fontsize=12)
    ax.set_axis_off()
    return fig


def plot_sales_trend(trend: pd.DataFrame, compact: bool = False) -> plt.Figure:
    figsize = (6, 4) if compact else (11, 5)
    if trend.empty:
        return _empty_figure("Sales Trend", figsize)

    labels = [format_day_label(d, compact=compact) for d in trend["date"]]
    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(labels, trend["sales"], marker="o", color=TREND_COLORS["sales"], label="Total Sales")
    ax.plot(labels, trend["revenue"], color=TREND_COLORS["revenue"], label="Revenue")
    ax.plot(labels, trend["profit"], color=TREND_COLORS["profit"], label="Profit")

    fontsize = 10 if compact else 12
    ax.set_title("Sales Trend", fontsize=14)
    ax.yaxis.set_major_formatter(
        FuncFormatter(lambda v, _: format_currency_tick(v, compact=compact))
    )
    ax.tick_params(labelsize=fontsize)
    if compact and len(labels) > 2:
        # first and last labels only
        ax.set_xticks([0, len(labels) - 1])
    plt.setp(ax.get_xticklabels(), rotation=35, ha="right")
    ax.legend()
    fig.tight_layout()
    return fig


def plot_top_products(products: pd.DataFrame, compact: bool = False) -> plt.Figure:
    figsize = (6, 4) if compact else (11, 6)
    if products.empty:
        return _empty_figure("Top Products", figsize)

    # barh draws the first row at the bottom
    ordered = products if compact else products.iloc[::-1]
    fig, ax = plt.subplots(figsize=figsize)
    positions = range(len(ordered))
    height = 0.35 if compact else 0.4
    ax.barh([p + height / 2 for p in positions], ordered["quantity"], height=height,
            color="#8884d8", label="Quantity")
    ax.barh([p - height / 2 for p in positions], ordered["sales"], height=height,
            color="#82ca9d", label="Sales")
    ax.set_yticks(list(positions))
    ax.set_yticklabels(ordered["name"], fontsize=10 if compact else 12)
    ax.xaxis.set_major_formatter(
        FuncFormatter(lambda v, _: format_currency_tick(v, compact=compact))
    )
    ax.set_title("Top Products", fontsize=14)
    ax.legend()
    fig.tight_layout()
    return fig


def plot_regional_sales(regions: pd.DataFrame, compact: bool = False) -> plt.Figure:
    """
    Pie chart of regional sales; expects region_shares() output.
    """
    figsize = (5, 5) if compact else (8, 8)
    if regions.empty or float(regions["value"].sum()) <= 0:
        return _empty_figure("Regional Sales", figsize)

    labels = [
        (format_share_label(p) if compact else f"{name}: {format_share_label(p)}")
        if share_label_visible(p, compact=compact) else ""
        for name, p in zip(regions["name"], regions["percent"])
    ]
    colors = [REGION_COLORS[i % len(REGION_COLORS)] for i in range(len(regions))]

    fig, ax = plt.subplots(figsize=figsize)
    wedges, _ = ax.pie(
        regions["value"],
        labels=labels,
        colors=colors,
        startangle=90,
        wedgeprops={"linewidth": 2 if compact else 5, "edgecolor": "white"},
    )
    ax.legend(wedges, regions["name"], loc="lower center", ncol=min(len(regions), 5),
              bbox_to_anchor=(0.5, -0.1), fontsize=10 if compact else 12)
    ax.set_title("Regional Sales", fontsize=14)
    ax.axis("equal")
    fig.tight_layout()
    return fig


def chart_filename(chart_id: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{chart_id}-{today.isoformat()}.png"


def save_figure(fig: plt.Figure, chart_id: str, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    file_path = output_dir / chart_filename(chart_id)
    fig.savefig(file_path, dpi=140)
    plt.close(fig)
    print(f"[PLOT] Saved {chart_id} chart to {file_path}")
    return file_path


# -----------------------------------------------------------------------------
# 3. Batch report
# -----------------------------------------------------------------------------

def print_views_to_console(views: dict) -> None:
    print(f"\n[INFO] {len(views['filtered'])} records match the filters")
    print(f"[INFO] Categories: {', '.join(views['facets']['categories']) or '-'}")
    print(f"[INFO] Regions: {', '.join(views['facets']['regions']) or '-'}")

    for name in ["trend", "top_products", "regions"]:
        print(f"\n[INFO] {name.replace('_', ' ').title()}:")
        table = views[name]
        print(table if not table.empty else "(no data)")


def main() -> int:
    try:
        config = load_config()
        output_dir = PROJECT_ROOT / config["output_dir"]

        store.load_initial(config)
        records = store.records
        if "report_date" in config:
            spec = default_filter_spec(config, today=pd.Timestamp(config["report_date"]).date())
        else:
            spec = default_filter_spec(config)

        views = build_dashboard(records, spec, config=config)
        print_views_to_console(views)

        save_export(views["filtered"], output_dir, prefix=config["export"]["filename_prefix"])

        chart_dir = output_dir / "charts"
        save_figure(plot_sales_trend(views["trend"]), "sales-trend", chart_dir)
        save_figure(plot_top_products(views["top_products"]), "top-products", chart_dir)
        save_figure(plot_regional_sales(views["regions"]), "regional-sales", chart_dir)

        print("\n[DONE] Sales report completed successfully.")
        return 0

    except Exception as exc:
        print(f"[ERROR] {exc}")
        return 1


__all__ = [
    "format_day_label",
    "format_currency_tick",
    "format_share_label",
    "share_label_visible",
    "plot_sales_trend",
    "plot_top_products",
    "plot_regional_sales",
    "chart_filename",
    "save_figure",
]


if __name__ == "__main__":
    sys.exit(main())

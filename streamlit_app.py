"""
Streamlit front end for the sales insights dashboard.

Thin presentation layer over sales_data / sales_insights / sales_charts:
  - upload JSON / CSV / Excel data (or use the bundled sample)
  - filter by date range, category and region
  - show the sales trend, top products and regional sales charts
  - download the filtered records as CSV and the charts as PNG
  - for running python -m streamlit run streamlit_app.py
"""

from __future__ import annotations

import io
from datetime import date
from typing import Optional

import matplotlib.pyplot as plt
import streamlit as st

from sales_data import (
    RecordStore,
    export_csv,
    export_filename,
    load_config,
    load_records_from_bytes,
)
from sales_charts import (
    chart_filename,
    plot_regional_sales,
    plot_sales_trend,
    plot_top_products,
)
from sales_insights import (
    DateRange,
    FilterSpec,
    build_dashboard,
    default_filter_spec,
    derive_facets,
)

ALL_OPTION = "(all)"


@st.cache_data(show_spinner=False)
def get_config() -> dict:
    return load_config()


def get_store(config: dict) -> RecordStore:
    """
    One record store per browser session, seeded with the sample data.
    """
    if "store" not in st.session_state:
        record_store = RecordStore()
        record_store.load_initial(config)
        st.session_state["store"] = record_store
    return st.session_state["store"]


def reset_filters(config: dict) -> None:
    spec = default_filter_spec(config)
    st.session_state["start"] = spec.date_range.start
    st.session_state["end"] = spec.date_range.end
    st.session_state["category"] = ALL_OPTION
    st.session_state["region"] = ALL_OPTION


def figure_to_png(fig) -> bytes:
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=140)
    plt.close(fig)
    return buffer.getvalue()


def replace_from_upload(record_store: RecordStore, filename: str, content: bytes) -> Optional[str]:
    """
    Replace the store with an uploaded file; returns an error message on failure
    and leaves the current records untouched.
    """
    try:
        records = load_records_from_bytes(filename, content)
    except ValueError as exc:
        return str(exc)
    record_store.replace(records)
    return None


def handle_upload(record_store: RecordStore) -> None:
    uploaded = st.session_state.get("upload")
    if uploaded is None:
        return
    error = replace_from_upload(record_store, uploaded.name, uploaded.getvalue())
    if error:
        st.session_state["upload_error"] = error
    else:
        st.session_state.pop("upload_error", None)


def main():
    st.set_page_config(page_title="E-Commerce Sales Insights", layout="wide")
    st.title("E-Commerce Sales Insights")

    config = get_config()
    record_store = get_store(config)
    if "start" not in st.session_state:
        reset_filters(config)

    with st.sidebar:
        st.header("Data")
        st.file_uploader(
            "Upload data",
            type=["json", "csv", "xlsx", "xls"],
            key="upload",
            on_change=handle_upload,
            args=(record_store,),
        )
        compact = st.toggle("Compact charts", value=False)

    if "upload_error" in st.session_state:
        st.error(f"Error: {st.session_state['upload_error']}")

    records = record_store.records
    facets = derive_facets(records)

    with st.sidebar:
        st.header("Filters")
        start = st.date_input("Start date", key="start", max_value=st.session_state["end"])
        end = st.date_input("End date", key="end", min_value=st.session_state["start"])
        category = st.selectbox("Category", [ALL_OPTION] + facets["categories"], key="category")
        region = st.selectbox("Region", [ALL_OPTION] + facets["regions"], key="region")
        st.button("Reset filters", on_click=reset_filters, args=(config,))

    spec = FilterSpec(
        date_range=DateRange(start=start, end=end),
        category="" if category == ALL_OPTION else category,
        region="" if region == ALL_OPTION else region,
    )
    views = build_dashboard(records, spec, compact=compact, config=config)
    filtered = views["filtered"]

    count = len(filtered)
    st.write(f"**{count}** {'record' if count == 1 else 'records'} found")

    if filtered.empty:
        if record_store.is_empty:
            st.info("Upload a JSON, CSV, or Excel file to get started.")
        else:
            st.info("No records match the current filters.")
        return

    st.download_button(
        "Export data",
        data=export_csv(filtered),
        file_name=export_filename(config["export"]["filename_prefix"]),
        mime="text/csv",
    )

    charts = [
        ("sales-trend", "Sales Trend", plot_sales_trend(views["trend"], compact=compact)),
        ("top-products", "Top Products", plot_top_products(views["top_products"], compact=compact)),
        ("regional-sales", "Regional Sales", plot_regional_sales(views["regions"], compact=compact)),
    ]
    columns = st.columns(1 if compact else 2)
    for i, (chart_id, title, fig) in enumerate(charts):
        with columns[i % len(columns)]:
            st.subheader(title)
            st.pyplot(fig)
            st.download_button(
                "Export chart",
                data=figure_to_png(fig),
                file_name=chart_filename(chart_id, today=date.today()),
                mime="image/png",
                key=f"export-{chart_id}",
            )


if __name__ == "__main__":
    main()

"""
sales_data.py

Config, ingestion and normalization layer for the sales insights dashboard.

Features:
- Load settings from a configurable YAML file (config.yaml).
- Read raw sales tables from JSON, CSV or Excel (first sheet only).
- Normalize heterogeneous column names (sales/amount, productName/product,
  orderDate/date, unitPrice/price) into one canonical record shape.
- Keep the full record set in a process-wide store (replace-on-upload).
- Export records as a fully quoted CSV.
"""

from __future__ import annotations

import copy
import csv
import io
import json
import math
import numbers
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd
import yaml


# -----------------------------------------------------------------------------
# 1. Paths & default config
# -----------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config.yaml"

DEFAULT_CONFIG = {
    "sample_data_path": "data/sample_sales.json",
    "output_dir": "output",
    "filters": {
        "default_lookback_months": 1,
    },
    "display": {
        "top_products": 10,
        "top_products_compact": 5,
        "max_region_slices": 5,
        "other_label": "Other",
        "unknown_label": "Unknown",
    },
    "export": {
        "filename_prefix": "sales-data",
    },
}


# -----------------------------------------------------------------------------
# 2. Config loading
# -----------------------------------------------------------------------------

def load_config(path: Path = DEFAULT_CONFIG_PATH) -> Dict:
    """
    Load configuration from a YAML file and merge it over DEFAULT_CONFIG.

    Nested sections (filters, display, export) are merged key by key, so a
    config file only needs to list the values it overrides.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        for key, value in raw.items():
            if (
                key in config
                and isinstance(config[key], dict)
                and isinstance(value, dict)
            ):
                cfg = config[key].copy()
                cfg.update(value)
                config[key] = cfg
            else:
                config[key] = value

        print(f"[INFO] Loaded config from {path}")
    else:
        print(f"[WARN] Config file not found at {path}, using DEFAULT_CONFIG")

    return config


# -----------------------------------------------------------------------------
# 3. Errors
# -----------------------------------------------------------------------------

class DataFormatError(ValueError):
    """Raised when an input file cannot be read as a table of sales rows."""


class UnsupportedFormatError(DataFormatError):
    """Raised for files that are neither JSON, CSV nor Excel."""


# -----------------------------------------------------------------------------
# 4. Normalization
# -----------------------------------------------------------------------------

# canonical name -> accepted source names, in priority order
FIELD_ALIASES: Dict[str, List[str]] = {
    "orderDate": ["orderDate", "date"],
    "productName": ["productName", "product"],
    "sales": ["sales", "amount"],
    "unitPrice": ["unitPrice", "price"],
}

CANONICAL_COLUMNS = [
    "orderId",
    "orderDate",
    "productName",
    "category",
    "quantity",
    "unitPrice",
    "sales",
    "profit",
    "region",
    "country",
]

TEXT_COLUMNS = ["productName", "category", "region", "country"]


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        # lists / dicts in a JSON cell
        return False


def _blank_to_na(series: pd.Series) -> pd.Series:
    return series.map(lambda v: None if _is_missing(v) else v)


def _coalesce(raw: pd.DataFrame, names: List[str]) -> pd.Series:
    """First non-empty value across the given columns, row by row."""
    result = pd.Series([None] * len(raw), index=raw.index, dtype="object")
    for name in names:
        if name in raw.columns:
            result = result.where(result.notna(), _blank_to_na(raw[name]))
    return result


def _to_money(series: pd.Series) -> pd.Series:
    return pd.to_numeric(series, errors="coerce").fillna(0.0).astype(float)


# nullable Int64 bounds
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def _truncate(value: Any) -> Optional[int]:
    if pd.isna(value) or not math.isfinite(value):
        return None
    result = int(value)
    if not INT64_MIN <= result <= INT64_MAX:
        return None
    return result


def _to_quantity(series: pd.Series) -> pd.Series:
    # truncate toward zero, keep absence as <NA>
    values = pd.to_numeric(series, errors="coerce")
    return values.map(_truncate).astype("Int64")


def _parse_day(value: Any) -> pd.Timestamp:
    if _is_missing(value):
        return pd.NaT
    try:
        if isinstance(value, numbers.Real) and not isinstance(value, bool):
            # spreadsheet / JSON numbers are epoch milliseconds
            ts = pd.Timestamp(value, unit="ms")
        else:
            ts = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError):
        return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.normalize()


def _to_text(series: pd.Series) -> pd.Series:
    return pd.Series(
        [None if _is_missing(v) else str(v) for v in series],
        index=series.index,
        dtype="object",
    )


def normalize_records(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Map a raw table onto the canonical record columns.

    Rules:
      - aliases are resolved once (see FIELD_ALIASES), first non-empty wins,
      - unitPrice / sales / profit fall back to 0 when missing or malformed,
      - quantity keeps absence as <NA> so consumers choose their own default,
      - sales missing -> quantity * unitPrice,
      - orderDate becomes a calendar day (NaT when unparseable),
      - rows with no value at all are dropped,
      - unknown columns are passed through after the canonical ones.

    Never raises on bad cell values.
    """
    if raw.columns.empty:
        # rows without any column carry no value
        raw = pd.DataFrame()
    else:
        has_value = pd.Series(
            [any(not _is_missing(v) for v in row) for row in raw.itertuples(index=False)],
            index=raw.index,
            dtype=bool,
        )
        raw = raw.loc[has_value].reset_index(drop=True)

    consumed = set()
    for names in FIELD_ALIASES.values():
        consumed.update(names)

    result = pd.DataFrame(index=raw.index)
    result["orderId"] = _coalesce(raw, ["orderId"])
    result["orderDate"] = pd.to_datetime(
        _coalesce(raw, FIELD_ALIASES["orderDate"]).map(_parse_day)
    )
    result["productName"] = _coalesce(raw, FIELD_ALIASES["productName"])
    result["category"] = _coalesce(raw, ["category"])
    result["quantity"] = _to_quantity(_coalesce(raw, ["quantity"]))
    result["unitPrice"] = _to_money(_coalesce(raw, FIELD_ALIASES["unitPrice"]))

    sales = pd.to_numeric(_coalesce(raw, FIELD_ALIASES["sales"]), errors="coerce")
    derived = result["quantity"].fillna(0).astype(float) * result["unitPrice"]
    result["sales"] = sales.where(sales.notna(), derived).astype(float)

    result["profit"] = _to_money(_coalesce(raw, ["profit"]))
    result["region"] = _coalesce(raw, ["region"])
    result["country"] = _coalesce(raw, ["country"])

    for col in TEXT_COLUMNS:
        result[col] = _to_text(result[col])

    extras = [
        col for col in raw.columns
        if col not in consumed and col not in CANONICAL_COLUMNS
    ]
    for col in extras:
        result[col] = raw[col]

    return result


def normalize_record(raw_row: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Normalize a single raw row.

    Returns None (skip) for non-mapping input or a row without any value.
    """
    if not isinstance(raw_row, Mapping):
        return None
    records = normalize_records(pd.DataFrame([dict(raw_row)]))
    if records.empty:
        return None
    return records.iloc[0].to_dict()


# -----------------------------------------------------------------------------
# 5. Ingestion
# -----------------------------------------------------------------------------

JSON_SUFFIXES = {".json"}
CSV_SUFFIXES = {".csv"}
EXCEL_SUFFIXES = {".xlsx", ".xls"}


def _frame_from_json(payload: Any) -> pd.DataFrame:
    if isinstance(payload, dict) and isinstance(payload.get("records"), list):
        payload = payload["records"]
    if not isinstance(payload, list):
        raise DataFormatError("JSON data must be a list of records.")
    if not all(isinstance(row, dict) for row in payload):
        raise DataFormatError("Every JSON record must be an object.")
    return pd.DataFrame(payload)


def read_raw_table(filename: str, buffer: Union[io.BytesIO, Path]) -> pd.DataFrame:
    """
    Read a raw, un-normalized table based on the file extension.

    Raises:
        UnsupportedFormatError: unknown extension.
        DataFormatError: content cannot be parsed.
    """
    suffix = Path(filename).suffix.lower()

    if suffix in JSON_SUFFIXES:
        try:
            if isinstance(buffer, Path):
                with open(buffer, "r", encoding="utf-8") as f:
                    payload = json.load(f)
            else:
                payload = json.loads(buffer.getvalue().decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DataFormatError(f"Could not parse JSON file '{filename}': {exc}") from exc
        return _frame_from_json(payload)

    if suffix in CSV_SUFFIXES:
        try:
            # text as given: no NA strings, no numeric inference on ids / codes
            return pd.read_csv(buffer, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except (pd.errors.ParserError, UnicodeDecodeError) as exc:
            raise DataFormatError(f"Could not parse CSV file '{filename}': {exc}") from exc

    if suffix in EXCEL_SUFFIXES:
        try:
            # first sheet only
            return pd.read_excel(buffer, sheet_name=0)
        except Exception as exc:
            raise DataFormatError(f"Could not read Excel file '{filename}': {exc}") from exc

    raise UnsupportedFormatError(
        "Unsupported file format. Please upload a JSON, CSV, or Excel file."
    )


def load_records(path: Path) -> pd.DataFrame:
    """
    Load and normalize sales records from a file on disk.

    Raises:
        FileNotFoundError: if the file does not exist.
        UnsupportedFormatError / DataFormatError: unreadable input.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    raw = read_raw_table(path.name, path)
    records = normalize_records(raw)
    print(f"[LOAD] Loaded {len(records)} records from {path}")
    return records


def load_records_from_bytes(filename: str, content: bytes) -> pd.DataFrame:
    """
    Load and normalize an uploaded file given its name and raw bytes.
    """
    raw = read_raw_table(filename, io.BytesIO(content))
    records = normalize_records(raw)
    print(f"[LOAD] Loaded {len(records)} records from upload '{filename}'")
    return records


def load_sample_records(config: Dict) -> pd.DataFrame:
    """
    Load the bundled sample dataset referenced by config['sample_data_path'].
    """
    return load_records(PROJECT_ROOT / config["sample_data_path"])


# -----------------------------------------------------------------------------
# 6. Record store
# -----------------------------------------------------------------------------

class RecordStore:
    """
    Process-wide holder of the full (unfiltered) record set.

    The set is replaced wholesale on every upload or sample load; filtered
    views and aggregates are always recomputed from it.
    """

    def __init__(self) -> None:
        self._records = normalize_records(pd.DataFrame())

    @property
    def records(self) -> pd.DataFrame:
        return self._records.copy()

    @property
    def is_empty(self) -> bool:
        return self._records.empty

    def replace(self, records: pd.DataFrame) -> None:
        self._records = records.reset_index(drop=True).copy()
        print(f"[STORE] Record set replaced ({len(self._records)} records)")

    def clear(self) -> None:
        self._records = normalize_records(pd.DataFrame())
        print("[STORE] Record set cleared")

    def load_initial(self, config: Dict) -> None:
        """Load the sample dataset unless records are already present."""
        if not self.is_empty:
            return
        self.replace(load_sample_records(config))


store = RecordStore()


# -----------------------------------------------------------------------------
# 7. Export
# -----------------------------------------------------------------------------

def export_csv(records: pd.DataFrame) -> str:
    """
    Render records as CSV text.

    Every field, header included, is double-quoted and internal quotes are
    doubled. Missing values become empty strings and dates use YYYY-MM-DD.
    """
    return records.to_csv(
        index=False,
        quoting=csv.QUOTE_ALL,
        date_format="%Y-%m-%d",
        lineterminator="\n",
        na_rep="",
    )


def export_filename(prefix: str = "sales-data", today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{prefix}-{today.isoformat()}.csv"


def save_export(records: pd.DataFrame, output_dir: Path, prefix: str = "sales-data") -> Path:
    """
    Write the CSV export for the given records under output_dir.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    file_path = output_dir / export_filename(prefix)
    with open(file_path, "w", encoding="utf-8", newline="") as f:
        f.write(export_csv(records))
    print(f"[EXPORT] Saved {len(records)} records to {file_path}")
    return file_path


# -----------------------------------------------------------------------------
# 8. Public API (for reuse as a module)
# -----------------------------------------------------------------------------

__all__ = [
    "PROJECT_ROOT",
    "CANONICAL_COLUMNS",
    "FIELD_ALIASES",
    "DataFormatError",
    "UnsupportedFormatError",
    "load_config",
    "normalize_records",
    "normalize_record",
    "read_raw_table",
    "load_records",
    "load_records_from_bytes",
    "load_sample_records",
    "RecordStore",
    "store",
    "export_csv",
    "export_filename",
    "save_export",
]

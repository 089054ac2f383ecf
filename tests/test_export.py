# tests/test_export.py

import csv
import io
from datetime import date

import pandas as pd

from sales_data import CANONICAL_COLUMNS, export_csv, export_filename, normalize_records, save_export


def sample_records() -> pd.DataFrame:
    return normalize_records(
        pd.DataFrame(
            [
                {
                    "orderId": "O-1",
                    "orderDate": "2024-01-05",
                    "productName": 'Mug "XL"',
                    "quantity": 2,
                    "unitPrice": 3.5,
                    "region": "East",
                },
                {"orderId": "O-2", "orderDate": None, "productName": "Lamp", "unitPrice": 10},
            ]
        )
    )


def test_every_field_is_quoted_and_quotes_are_doubled():
    lines = export_csv(sample_records()).splitlines()

    assert lines[0] == ",".join(f'"{col}"' for col in CANONICAL_COLUMNS)
    assert lines[1].startswith('"O-1","2024-01-05","Mug ""XL""",')
    assert len(lines) == 3


def test_missing_values_are_empty_strings():
    rows = list(csv.reader(io.StringIO(export_csv(sample_records()))))
    header, second = rows[0], rows[2]

    assert second[header.index("orderDate")] == ""
    assert second[header.index("quantity")] == ""
    assert second[header.index("region")] == ""
    assert second[header.index("productName")] == "Lamp"


def test_extra_columns_are_exported_after_canonical_ones():
    records = normalize_records(pd.DataFrame([{"orderId": "O-9", "coupon": "SPRING"}]))

    header = export_csv(records).splitlines()[0]

    assert header.endswith('"country","coupon"')


def test_export_filename_is_dated():
    assert export_filename("sales-data", today=date(2024, 1, 5)) == "sales-data-2024-01-05.csv"


def test_save_export_writes_file(tmp_path):
    path = save_export(sample_records(), tmp_path / "out")

    assert path.exists()
    assert path.read_text(encoding="utf-8") == export_csv(sample_records())

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from scopedelta.scope_io import (
    CANONICAL_COLUMNS,
    ScopeInputError,
    canonicalize_columns,
    load_scope,
    scope_from_records,
)


def test_load_csv_with_carrier_headers(tmp_path: Path):
    path = tmp_path / "carrier.csv"
    path.write_text(
        "Selector,Desc,Qty,UOM,Unit Price,RCV\n"
        'RFG+IWS,Ice & water shield,120,LF,$5.00,"$600.00"\n'
        "RFG+VENT,Ridge vent,40,LF,12.5,\n",
        encoding="utf-8",
    )

    items = load_scope(path)

    assert [i.description for i in items] == ["Ice & water shield", "Ridge vent"]
    assert items[0].code == "RFG+IWS"
    assert items[0].unit == "LF"
    assert items[0].unit_price == 5.0
    assert items[0].total == 600.0
    assert items[1].total == 500.0  # blank total back-filled from quantity x unit price


def test_load_excel_with_alternate_headers(tmp_path: Path):
    df = pd.DataFrame(
        {
            "Item Code": ["GUTR", "PNT"],
            "Line Item": ["Seamless gutter", "Paint fascia"],
            "Quantity": [150, 1],
            "Unit": ["LF", "EA"],
            "Rate": [9.25, 420],
            "Line Total": [1387.5, 400],
        }
    )
    path = tmp_path / "contractor.xlsx"
    df.to_excel(path, index=False)

    items = load_scope(path)

    assert [i.code for i in items] == ["GUTR", "PNT"]
    assert items[1].total == 400.0  # kept as given, not recomputed
    assert items[0].quantity == 150.0


def test_load_json_wrapped_payload(tmp_path: Path):
    path = tmp_path / "scope.json"
    payload = {
        "lineItems": [
            {"code": "RFG", "description": "Shingles - 30yr", "quantity": 10, "unit": "SQ", "unitPrice": 100, "totalPrice": 1000},
            {"description": "Haul debris", "quantity": 1, "unitPrice": 350},
        ]
    }
    path.write_text(json.dumps(payload), encoding="utf-8")

    items = load_scope(path)

    assert len(items) == 2
    assert items[0].total == 1000
    assert items[1].code is None
    assert items[1].total == 350.0


def test_json_schema_rejects_negative_quantity(tmp_path: Path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([{"description": "Felt", "quantity": -1, "unitPrice": 10}]), encoding="utf-8")

    with pytest.raises(ScopeInputError, match="0/quantity"):
        load_scope(path)


def test_json_rejects_unexpected_top_level(tmp_path: Path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"estimate": []}), encoding="utf-8")
    with pytest.raises(ScopeInputError, match="expected a list"):
        load_scope(path)


def test_csv_rejects_empty_description(tmp_path: Path):
    path = tmp_path / "bad.csv"
    path.write_text("Description,Qty,Unit Price,Total\nShingles,1,10,10\n  ,2,5,10\n", encoding="utf-8")
    with pytest.raises(ScopeInputError, match="row 2: description is empty"):
        load_scope(path)


def test_csv_rejects_negative_unit_price(tmp_path: Path):
    path = tmp_path / "bad.csv"
    path.write_text("Description,Qty,Unit Price\nShingles,1,-10\n", encoding="utf-8")
    with pytest.raises(ScopeInputError, match="unit price must not be negative"):
        load_scope(path)


def test_missing_file_and_unknown_suffix(tmp_path: Path):
    with pytest.raises(ScopeInputError, match="not found"):
        load_scope(tmp_path / "absent.csv")
    other = tmp_path / "scope.txt"
    other.write_text("x", encoding="utf-8")
    with pytest.raises(ScopeInputError, match="unsupported"):
        load_scope(other)


def test_empty_csv_is_empty_scope(tmp_path: Path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    assert load_scope(path) == []


def test_scope_from_records_accepts_snake_case():
    items = scope_from_records([{"description": "Drip edge", "qty": 200, "unit_price": 2.5, "total": 500}])
    assert items[0].quantity == 200
    assert items[0].unit_price == 2.5
    assert scope_from_records([]) == []


def test_canonicalize_columns_drops_unknown_and_fills_missing():
    df = pd.DataFrame({"Desc": ["A"], "Notes": ["x"], "Qty": [1], "Quantity": [9]})
    out = canonicalize_columns(df)
    assert list(out.columns) == CANONICAL_COLUMNS
    assert out.loc[0, "QUANTITY"] == 1
    assert out["UNIT_PRICE"].isna().all()


def test_description_header_beats_item_number_column(tmp_path: Path):
    path = tmp_path / "numbered.csv"
    path.write_text(
        "Item,Description,Qty,Unit Price,Amount,Total\n"
        "1,Shingles,10,100,999,1000\n"
        "2,Ridge vent,1,300,999,300\n",
        encoding="utf-8",
    )

    items = load_scope(path)

    assert [i.description for i in items] == ["Shingles", "Ridge vent"]
    assert [i.total for i in items] == [1000.0, 300.0]


def test_item_column_used_when_no_better_description_header():
    out = canonicalize_columns(pd.DataFrame({"Item": ["Drip edge"], "Qty": [1]}))
    assert out.loc[0, "DESCRIPTION"] == "Drip edge"


def test_row_numbers_survive_dropped_blank_rows(tmp_path: Path):
    path = tmp_path / "gappy.csv"
    path.write_text("Description,Qty,Unit Price\nShingles,1,10\n,,\nFelt,-1,5\n", encoding="utf-8")
    with pytest.raises(ScopeInputError, match="row 3: quantity must not be negative"):
        load_scope(path)


@pytest.mark.parametrize(
    "name, content",
    [
        ("latin1.csv", b"Description,Qty,Unit Price\n\xff\xfeShingles,1,10\n"),
        ("latin1.json", b'[{"description": "Shingles \xff", "quantity": 1, "unitPrice": 10}]'),
        ("text.xlsx", b"Description,Qty\nShingles,1\n"),
        ("truncated.xlsx", b"PK\x03\x04not really a workbook"),
    ],
)
def test_unreadable_files_raise_scope_input_error(tmp_path: Path, name: str, content: bytes):
    path = tmp_path / name
    path.write_bytes(content)
    with pytest.raises(ScopeInputError, match="could not read scope"):
        load_scope(path)

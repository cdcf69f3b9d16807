from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from scopedelta.delta import compute_delta, compute_statistics, supplement_total
from scopedelta.models import ScopeLineItem
from scopedelta.reporting import (
    VARIANCE_COLUMNS,
    delta_by_trade,
    make_summary_text,
    variances_to_frame,
    write_outputs,
)


def _scopes():
    adjuster = [
        ScopeLineItem("Shingles - 30yr", 10, 100, 1000, code="RFG"),
        ScopeLineItem("Seamless gutter", 100, 8, 800, code="GUTR"),
    ]
    contractor = [
        ScopeLineItem("shingles -  30YR", 12, 120, 1440, code="RFG"),
        ScopeLineItem("Ridge Vent", 1, 300, 300, code="RFG+VENT"),
        ScopeLineItem("Seamless gutter", 100, 9, 900, code="GUTR"),
        ScopeLineItem("Haul debris", 1, 3500, 3500),
    ]
    return adjuster, contractor


def test_variances_to_frame_columns_and_order():
    variances = compute_delta(*_scopes())
    frame = variances_to_frame(variances)

    assert list(frame.columns) == VARIANCE_COLUMNS
    assert frame["DELTA_TOTAL"].tolist() == [3500, 440, 440, 300, 100]
    assert frame["KIND"].tolist() == ["MISSING", "QTY_MISMATCH", "UNDERPAID", "MISSING", "UNDERPAID"]
    assert frame.loc[0, "TRADE"] == "Other"
    assert frame.loc[1, "TRADE"] == "Roofing"
    assert pd.isna(frame.loc[0, "ADJUSTER_TOTAL"])
    assert frame.loc[1, "ADJUSTER_TOTAL"] == 1000


def test_empty_frame_keeps_columns():
    frame = variances_to_frame([])
    assert frame.empty
    assert list(frame.columns) == VARIANCE_COLUMNS
    assert delta_by_trade(frame).empty


def test_delta_by_trade_uses_display_order():
    frame = variances_to_frame(compute_delta(*_scopes()))
    by_trade = delta_by_trade(frame)
    assert by_trade["TRADE"].tolist() == ["Roofing", "Gutters", "Other"]
    assert by_trade["VARIANCES"].tolist() == [3, 1, 1]
    assert by_trade["DELTA_TOTAL"].tolist() == [1180, 100, 3500]


def test_summary_text_mentions_totals():
    variances = compute_delta(*_scopes())
    stats = compute_statistics(variances)
    text = make_summary_text(variances, stats, supplement_total(variances, tax_rate=0.0), top_n=2)

    assert "Variances detected: 5 (net delta $4,780.00)." in text
    assert "high=1 medium=0 low=4" in text
    assert "Supplement request: $4,340.00" in text
    assert "Haul debris" in text
    assert "Delta by trade:" in text


def test_summary_text_without_variances():
    text = make_summary_text([], compute_statistics([]))
    assert text.startswith("No variances detected")


def test_write_outputs(tmp_path: Path):
    variances = compute_delta(*_scopes())
    stats = compute_statistics(variances)
    supplement = supplement_total(variances)

    artifacts = write_outputs(
        variances,
        stats,
        supplement,
        output_csv=tmp_path / "out" / "Delta_Variances.csv",
        output_json=tmp_path / "out" / "delta_summary.json",
        output_xlsx=tmp_path / "out" / "Delta_Report.xlsx",
        inputs={"adjuster": "a.csv", "contractor": "c.csv"},
    )

    assert set(artifacts) == {"csv", "json", "xlsx"}
    csv_frame = pd.read_csv(artifacts["csv"])
    assert len(csv_frame) == 5
    summary = json.loads(artifacts["json"].read_text(encoding="utf-8"))
    assert summary["statistics"]["total_variances"] == 5
    assert summary["supplement"]["subtotal"] == 4340.0
    assert summary["inputs"]["adjuster"] == "a.csv"
    assert summary["variances"][0]["DESCRIPTION"] == "Haul debris"
    sheets = pd.read_excel(artifacts["xlsx"], sheet_name=None)
    assert set(sheets) == {"Variances", "Summary", "ByTrade"}


def test_write_outputs_without_excel(tmp_path: Path):
    artifacts = write_outputs(
        [],
        compute_statistics([]),
        supplement_total([]),
        output_csv=tmp_path / "v.csv",
        output_json=tmp_path / "s.json",
    )
    assert set(artifacts) == {"csv", "json"}
    assert not (tmp_path / "Delta_Report.xlsx").exists()

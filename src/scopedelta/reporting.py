from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Optional, Sequence

import pandas as pd

from .models import DeltaStatistics, SupplementTotal, Variance
from .trades import OTHER_TRADE, trade_for_code, trade_names

logger = logging.getLogger(__name__)

VARIANCE_COLUMNS = [
    "KIND",
    "SEVERITY",
    "DESCRIPTION",
    "CODE",
    "TRADE",
    "ADJUSTER_QTY",
    "CONTRACTOR_QTY",
    "ADJUSTER_UNIT_PRICE",
    "CONTRACTOR_UNIT_PRICE",
    "ADJUSTER_TOTAL",
    "CONTRACTOR_TOTAL",
    "DELTA_TOTAL",
]


def variances_to_frame(variances: Sequence[Variance]) -> pd.DataFrame:
    """One row per variance, in the order given."""

    rows = []
    for variance in variances:
        adjuster = variance.adjuster
        contractor = variance.contractor
        code = (contractor.code if contractor else None) or (adjuster.code if adjuster else None)
        rows.append(
            {
                "KIND": variance.kind,
                "SEVERITY": variance.severity,
                "DESCRIPTION": variance.description,
                "CODE": code or "",
                "TRADE": trade_for_code(code) or OTHER_TRADE,
                "ADJUSTER_QTY": adjuster.quantity if adjuster else float("nan"),
                "CONTRACTOR_QTY": contractor.quantity if contractor else float("nan"),
                "ADJUSTER_UNIT_PRICE": adjuster.unit_price if adjuster else float("nan"),
                "CONTRACTOR_UNIT_PRICE": contractor.unit_price if contractor else float("nan"),
                "ADJUSTER_TOTAL": adjuster.total if adjuster else float("nan"),
                "CONTRACTOR_TOTAL": contractor.total if contractor else float("nan"),
                "DELTA_TOTAL": variance.delta_total,
            }
        )
    return pd.DataFrame(rows, columns=VARIANCE_COLUMNS)


def statistics_to_dict(stats: DeltaStatistics) -> Dict[str, object]:
    return asdict(stats)


def delta_by_trade(frame: pd.DataFrame) -> pd.DataFrame:
    """Variance count and summed delta per trade, in trade display order."""

    if frame.empty:
        return pd.DataFrame(columns=["TRADE", "VARIANCES", "DELTA_TOTAL"])
    grouped = (
        frame.groupby("TRADE", sort=False)
        .agg(VARIANCES=("DELTA_TOTAL", "size"), DELTA_TOTAL=("DELTA_TOTAL", "sum"))
        .reset_index()
    )
    order = {name: idx for idx, name in enumerate(trade_names())}
    grouped["_ORDER"] = grouped["TRADE"].map(order)
    return grouped.sort_values("_ORDER", kind="stable").drop(columns="_ORDER").reset_index(drop=True)


def make_summary_text(
    variances: Sequence[Variance],
    stats: DeltaStatistics,
    supplement: Optional[SupplementTotal] = None,
    top_n: int = 5,
) -> str:
    if not variances:
        return "No variances detected: the adjuster scope covers every contractor line item.\n"

    frame = variances_to_frame(variances)
    top = frame.head(max(0, top_n))[["KIND", "SEVERITY", "DESCRIPTION", "DELTA_TOTAL"]]
    by_trade = delta_by_trade(frame)
    lines = [
        f"Variances detected: {stats.total_variances} (net delta ${stats.total_delta:,.2f}).",
        f"Severity: high={stats.high_severity} medium={stats.medium_severity} low={stats.low_severity}",
        (
            f"Kinds: missing={stats.missing_items} underpaid={stats.underpaid_items} "
            f"qty_mismatch={stats.qty_mismatches}"
        ),
    ]
    if supplement is not None:
        lines.append(
            f"Supplement request: ${supplement.subtotal:,.2f} + tax "
            f"${supplement.tax:,.2f} ({supplement.tax_rate:.1%}) = ${supplement.total:,.2f}"
        )
    lines.append(f"Top variances:\n{top.to_string(index=False)}")
    lines.append(f"Delta by trade:\n{by_trade.to_string(index=False)}")
    return "\n".join(lines) + "\n"


def write_outputs(
    variances: Sequence[Variance],
    stats: DeltaStatistics,
    supplement: SupplementTotal,
    output_csv: Path,
    output_json: Path,
    output_xlsx: Optional[Path] = None,
    inputs: Optional[Dict[str, str]] = None,
) -> Dict[str, Path]:
    """
    Write the variance table and summary artifacts.

    Returns a dict with keys ``csv`` and ``json``, plus ``xlsx`` when an Excel
    path was given.
    """

    frame = variances_to_frame(variances)
    summary = {
        "statistics": statistics_to_dict(stats),
        "supplement": asdict(supplement),
        "inputs": dict(inputs or {}),
        "variances": json.loads(frame.to_json(orient="records")),
    }

    artifacts: Dict[str, Path] = {}
    output_csv.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(output_csv, index=False)
    artifacts["csv"] = output_csv

    output_json.parent.mkdir(parents=True, exist_ok=True)
    with open(output_json, "w", encoding="utf-8") as fh:
        json.dump(summary, fh, indent=2)
    artifacts["json"] = output_json

    if output_xlsx is not None:
        output_xlsx.parent.mkdir(parents=True, exist_ok=True)
        summary_rows = [{"METRIC": key, "VALUE": value} for key, value in summary["statistics"].items()]
        summary_rows.extend(
            {"METRIC": f"supplement_{key}", "VALUE": value} for key, value in summary["supplement"].items()
        )
        with pd.ExcelWriter(output_xlsx, engine="openpyxl") as writer:
            frame.to_excel(writer, sheet_name="Variances", index=False)
            pd.DataFrame(summary_rows).to_excel(writer, sheet_name="Summary", index=False)
            delta_by_trade(frame).to_excel(writer, sheet_name="ByTrade", index=False)
        artifacts["xlsx"] = output_xlsx

    logger.debug("Wrote %d variance row(s) to %s", len(frame), output_csv)
    return artifacts

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .cli import run as run_pipeline
from .config import load_config
from .delta import compute_delta, compute_statistics
from .models import DeltaStatistics, Variance
from .scope_io import scope_from_records


@dataclass
class DeltaOptions:
    adjuster: Path
    contractor: Path
    output_dir: Optional[Path] = None
    tax_rate: Optional[float] = None
    top_n: Optional[int] = None
    write_excel: bool = True


def analyze(options: DeltaOptions) -> Dict[str, Path]:
    """Programmatic interface to run delta detection and return artifact paths.

    Returns a dict with keys: csv, json and, unless disabled, xlsx.
    """
    import os

    env = dict(os.environ)
    env["ADJUSTER_SCOPE"] = str(options.adjuster)
    env["CONTRACTOR_SCOPE"] = str(options.contractor)
    if options.output_dir:
        env["OUTPUT_DIR"] = str(options.output_dir)
    if options.tax_rate is not None:
        env["SUPPLEMENT_TAX_RATE"] = str(options.tax_rate)
    if options.top_n is not None:
        env["SUMMARY_TOP_N"] = str(options.top_n)
    env["DISABLE_EXCEL"] = "0" if options.write_excel else "1"

    cfg = load_config(env, None)
    rc = run_pipeline(runtime_config=cfg)
    if rc != 0:
        raise RuntimeError(f"Delta detection failed with code {rc}")
    artifacts = {"csv": cfg.output_csv, "json": cfg.output_json}
    if cfg.write_excel:
        artifacts["xlsx"] = cfg.output_xlsx
    return artifacts


def compare_records(
    adjuster_records: Iterable[Mapping[str, object]],
    contractor_records: Iterable[Mapping[str, object]],
) -> Tuple[List[Variance], DeltaStatistics]:
    """Validate JSON-style records and run the engine in memory."""

    adjuster_scope = scope_from_records(adjuster_records, "adjuster")
    contractor_scope = scope_from_records(contractor_records, "contractor")
    variances = compute_delta(adjuster_scope, contractor_scope)
    return variances, compute_statistics(variances)

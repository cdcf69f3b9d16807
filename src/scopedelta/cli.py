import argparse
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .config import Config
from .config import load_config as load_runtime_config
from .delta import compute_delta, compute_statistics, supplement_total
from .reporting import make_summary_text, write_outputs
from .scope_io import ScopeInputError, load_scope

BASE_DIR = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_BAD_INPUT = 2


def run(runtime_config: Optional[Config] = None) -> int:
    runtime_cfg = runtime_config or load_runtime_config(os.environ, None)

    stage_counter = 0

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    def log_stage(message: str) -> None:
        nonlocal stage_counter
        stage_counter += 1
        logger.info("[delta:%02d] %s", stage_counter, message)

    def log_detail(message: str) -> None:
        logger.info("         %s", message)

    adjuster_path = runtime_cfg.adjuster_path
    contractor_path = runtime_cfg.contractor_path
    if adjuster_path is None or contractor_path is None:
        logger.error(
            "Both scopes are required: pass --adjuster and --contractor "
            "(or set ADJUSTER_SCOPE and CONTRACTOR_SCOPE)."
        )
        return EXIT_BAD_INPUT

    try:
        log_stage("Loading adjuster scope")
        adjuster_scope = load_scope(adjuster_path)
        log_detail(f"adjuster_items={len(adjuster_scope):,} <= {adjuster_path}")

        log_stage("Loading contractor scope")
        contractor_scope = load_scope(contractor_path)
        log_detail(f"contractor_items={len(contractor_scope):,} <= {contractor_path}")
    except ScopeInputError as exc:
        logger.error("Invalid scope input: %s", exc)
        return EXIT_BAD_INPUT

    log_stage("Computing variances")
    variances = compute_delta(adjuster_scope, contractor_scope)
    stats = compute_statistics(variances)
    supplement = supplement_total(variances, tax_rate=runtime_cfg.tax_rate)
    log_detail(f"variances={stats.total_variances:,} net_delta=${stats.total_delta:,.2f}")

    log_stage("Writing outputs")
    artifacts = write_outputs(
        variances,
        stats,
        supplement,
        output_csv=runtime_cfg.output_csv,
        output_json=runtime_cfg.output_json,
        output_xlsx=runtime_cfg.output_xlsx if runtime_cfg.write_excel else None,
        inputs={"adjuster": str(adjuster_path), "contractor": str(contractor_path)},
    )

    logger.info("\n=== SUMMARY ===\n")
    logger.info("%s", make_summary_text(variances, stats, supplement, top_n=runtime_cfg.top_n))
    logger.info("Outputs written:")
    for path in artifacts.values():
        logger.info(" - %s", path)
    return EXIT_OK


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compare an adjuster scope against a contractor scope and rank the variances"
    )
    parser.add_argument("--adjuster", help="Adjuster (carrier) scope file: CSV, XLSX or JSON")
    parser.add_argument("--contractor", help="Contractor scope file: CSV, XLSX or JSON")
    parser.add_argument("--output-dir", help="Directory for generated outputs")
    parser.add_argument("--tax-rate", help="Sales tax rate for the supplement total, e.g. 0.089 or 8.9%%")
    parser.add_argument("--top-n", type=int, help="Number of variances listed in the summary")
    parser.add_argument("--no-excel", action="store_true", help="Skip the Excel report")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv(BASE_DIR / ".env")
    args = parse_args(argv)
    runtime_cfg = load_runtime_config(os.environ, args)
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    try:
        return run(runtime_config=runtime_cfg)
    except Exception:  # pragma: no cover - defensive
        logger.exception("Fatal error during delta detection")
        return EXIT_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

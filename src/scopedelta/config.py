from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Mapping, Optional

from .delta import DEFAULT_TAX_RATE

_BOOLEAN_TRUE = {"1", "true", "yes", "on"}

DEFAULT_TOP_N = 5


@dataclass(frozen=True)
class Config:
    """Runtime configuration assembled from environment variables and CLI options."""

    base_dir: Path
    adjuster_path: Optional[Path]
    contractor_path: Optional[Path]
    output_dir: Path
    output_csv: Path
    output_xlsx: Path
    output_json: Path
    tax_rate: float = DEFAULT_TAX_RATE
    top_n: int = DEFAULT_TOP_N
    write_excel: bool = True
    verbose: bool = False


def _to_path(value: object | None) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser().resolve()
    text = str(value).strip()
    if not text:
        return None
    return Path(text).expanduser().resolve()


def _to_int(value: object | None) -> Optional[int]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None


def _to_rate(value: object | None) -> Optional[float]:
    """Parse ``0.089``, ``"8.9%"`` or ``" 0.089 "``; negatives are rejected."""

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    percent = text.endswith("%")
    try:
        rate = float(text.rstrip("%").strip())
    except ValueError:
        return None
    if percent:
        rate /= 100.0
    if rate < 0:
        return None
    return rate


def _flag(value: object | None) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _BOOLEAN_TRUE


def _namespace(cli_args: object | None) -> SimpleNamespace:
    if cli_args is None:
        return SimpleNamespace()
    if isinstance(cli_args, SimpleNamespace):
        return cli_args
    if hasattr(cli_args, "__dict__"):
        return SimpleNamespace(**{k: v for k, v in vars(cli_args).items()})
    return SimpleNamespace()


def _output_paths(output_dir: Path) -> tuple[Path, Path, Path]:
    return (
        (output_dir / "Delta_Variances.csv").resolve(),
        (output_dir / "Delta_Report.xlsx").resolve(),
        (output_dir / "delta_summary.json").resolve(),
    )


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables and CLI options.

    CLI options win over the environment; unparseable values fall back to
    the defaults.
    """

    base_dir = Path(__file__).resolve().parents[2]
    default_output_dir = (base_dir / "outputs").resolve()

    adjuster_path = _to_path(env.get("ADJUSTER_SCOPE"))
    contractor_path = _to_path(env.get("CONTRACTOR_SCOPE"))
    output_dir = _to_path(env.get("OUTPUT_DIR")) or default_output_dir
    tax_rate = _to_rate(env.get("SUPPLEMENT_TAX_RATE"))
    if tax_rate is None:
        tax_rate = DEFAULT_TAX_RATE
    top_n = _to_int(env.get("SUMMARY_TOP_N"))
    if top_n is None or top_n < 0:
        top_n = DEFAULT_TOP_N
    write_excel = not _flag(env.get("DISABLE_EXCEL"))
    verbose = False

    cli_ns = _namespace(cli_args)
    if getattr(cli_ns, "adjuster", None):
        adjuster_path = _to_path(cli_ns.adjuster)
    if getattr(cli_ns, "contractor", None):
        contractor_path = _to_path(cli_ns.contractor)
    if getattr(cli_ns, "output_dir", None):
        output_dir = _to_path(cli_ns.output_dir) or output_dir
    if getattr(cli_ns, "tax_rate", None) is not None:
        cli_rate = _to_rate(cli_ns.tax_rate)
        if cli_rate is not None:
            tax_rate = cli_rate
    if getattr(cli_ns, "top_n", None) is not None:
        top_n = max(0, int(cli_ns.top_n))
    if getattr(cli_ns, "no_excel", False):
        write_excel = False
    if getattr(cli_ns, "verbose", False):
        verbose = bool(cli_ns.verbose)

    output_csv, output_xlsx, output_json = _output_paths(output_dir)
    return Config(
        base_dir=base_dir,
        adjuster_path=adjuster_path,
        contractor_path=contractor_path,
        output_dir=output_dir,
        output_csv=output_csv,
        output_xlsx=output_xlsx,
        output_json=output_json,
        tax_rate=tax_rate,
        top_n=top_n,
        write_excel=write_excel,
        verbose=verbose,
    )


__all__ = ["Config", "DEFAULT_TOP_N", "load_config"]

"""Helper script to run delta detection on a pair of scope files."""
from __future__ import annotations

import argparse

from scopedelta.cli import main


def _parse_args(argv: list[str] | None = None) -> tuple[argparse.Namespace, list[str]]:
    parser = argparse.ArgumentParser(description="Run scope delta detection")
    parser.add_argument("adjuster", help="Adjuster scope file")
    parser.add_argument("contractor", help="Contractor scope file")
    return parser.parse_known_args(argv)


if __name__ == "__main__":  # pragma: no cover
    args, remaining = _parse_args()
    forward_args: list[str] = ["--adjuster", args.adjuster, "--contractor", args.contractor]
    forward_args.extend(remaining)
    raise SystemExit(main(forward_args))

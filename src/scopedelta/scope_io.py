"""Loading adjuster / contractor scopes from CSV, Excel and JSON files."""

from __future__ import annotations

import json
import logging
import math
import re
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
from jsonschema import Draft7Validator

from .models import ScopeLineItem

LOGGER = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema" / "scope_line_items.schema.json"

CANONICAL_COLUMNS = ["CODE", "DESCRIPTION", "QUANTITY", "UNIT", "UNIT_PRICE", "TOTAL"]

# Header spellings seen in carrier and contractor exports, keyed after
# lower-casing and dropping everything but letters and digits. Earlier
# spellings win when a file carries more than one for the same column.
HEADER_ALIASES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("CODE", ("code", "itemcode", "selector")),
    ("DESCRIPTION", ("description", "desc", "lineitem", "item")),
    ("QUANTITY", ("quantity", "qty")),
    ("UNIT", ("unit", "units", "uom")),
    ("UNIT_PRICE", ("unitprice", "price", "rate", "unitcost")),
    ("TOTAL", ("total", "totalprice", "linetotal", "rcv", "amount")),
)

_ALIAS_RANK: Dict[str, Tuple[str, int]] = {
    alias: (target, rank)
    for target, aliases in HEADER_ALIASES
    for rank, alias in enumerate(aliases)
}

JSON_LIST_KEYS = ("lineItems", "line_items", "items")

_HEADER_STRIP = re.compile(r"[^a-z0-9]+")


class ScopeInputError(ValueError):
    """Raised when a scope file or record set cannot be turned into line items."""


def _header_key(value: object) -> str:
    return _HEADER_STRIP.sub("", str(value).lower())


def canonicalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename recognised headers to the canonical column names.

    When several headers map to one canonical name the highest-priority
    spelling wins (``Description`` over ``Item``), then the leftmost column.
    Losing and unrecognised columns are dropped.
    """

    chosen: Dict[str, Tuple[int, object]] = {}
    for column in df.columns:
        match = _ALIAS_RANK.get(_header_key(column))
        if match is None:
            continue
        target, rank = match
        if target not in chosen or rank < chosen[target][0]:
            chosen[target] = (rank, column)
    rename: Dict[object, str] = {column: target for target, (_, column) in chosen.items()}
    out = df.loc[:, list(rename)].rename(columns=rename)
    for column in CANONICAL_COLUMNS:
        if column not in out.columns:
            out[column] = None
    return out[CANONICAL_COLUMNS]


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _to_money(value: object) -> Optional[float]:
    if _is_blank(value):
        return None
    if isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
        return float(value)
    text = str(value).replace("$", "").replace(",", "").strip()
    if text.startswith("(") and text.endswith(")"):
        text = "-" + text[1:-1]
    try:
        return float(text)
    except ValueError:
        return None


def _to_text(value: object) -> Optional[str]:
    if _is_blank(value):
        return None
    return str(value).strip()


def _row_error(source: str, row_number: int, message: str) -> ScopeInputError:
    return ScopeInputError(f"{source}: row {row_number}: {message}")


def _non_negative(value: object, field: str, source: str, row_number: int) -> float:
    number = _to_money(value)
    if number is None:
        raise _row_error(source, row_number, f"{field} is missing or not numeric ({value!r})")
    if not math.isfinite(number):
        raise _row_error(source, row_number, f"{field} must be finite")
    if number < 0:
        raise _row_error(source, row_number, f"{field} must not be negative ({number})")
    return number


def frame_to_items(df: pd.DataFrame, source: str = "<frame>") -> List[ScopeLineItem]:
    """
    Convert a scope DataFrame into validated :class:`ScopeLineItem` objects.

    Headers are canonicalized first. A blank total is filled with
    ``quantity * unit_price``; a present total is kept as given.

    Raises
    ------
    ScopeInputError
        On an empty description, a missing / negative / non-finite quantity
        or unit price, or an unparseable total. Row numbers are 1-based and
        come from the frame's integer index, so rows dropped upstream do not
        shift them.
    """

    frame = canonicalize_columns(df)
    if pd.api.types.is_integer_dtype(frame.index):
        row_numbers = [int(label) + 1 for label in frame.index]
    else:
        row_numbers = list(range(1, len(frame) + 1))
    items: List[ScopeLineItem] = []
    for row_number, row in zip(row_numbers, frame.itertuples(index=False)):
        description = _to_text(row.DESCRIPTION)
        if description is None:
            raise _row_error(source, row_number, "description is empty")
        quantity = _non_negative(row.QUANTITY, "quantity", source, row_number)
        unit_price = _non_negative(row.UNIT_PRICE, "unit price", source, row_number)

        if _is_blank(row.TOTAL):
            total = round(quantity * unit_price, 2)
        else:
            total = _to_money(row.TOTAL)
            if total is None or not math.isfinite(total):
                raise _row_error(source, row_number, f"total is not numeric ({row.TOTAL!r})")

        items.append(
            ScopeLineItem(
                description=description,
                quantity=quantity,
                unit_price=unit_price,
                total=total,
                code=_to_text(row.CODE),
                unit=_to_text(row.UNIT),
            )
        )
    return items


def _load_validator() -> Draft7Validator:
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        return Draft7Validator(json.load(f))


def _extract_json_records(payload: object, source: str) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in JSON_LIST_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
    raise ScopeInputError(
        f"{source}: expected a list of line items or an object with one of {', '.join(JSON_LIST_KEYS)}"
    )


def validate_records(records: list, source: str = "<records>") -> None:
    """Validate JSON-style line item records against the packaged schema."""

    validator = _load_validator()
    errors = sorted(validator.iter_errors(records), key=lambda e: list(e.absolute_path))
    if not errors:
        return
    first = errors[0]
    location = "/".join(str(part) for part in first.absolute_path) or "<root>"
    LOGGER.debug("%s: %d schema violation(s)", source, len(errors))
    raise ScopeInputError(f"{source}: {location}: {first.message}")


def scope_from_records(
    records: Iterable[Mapping[str, object]],
    source: str = "<records>",
) -> List[ScopeLineItem]:
    """Build line items from an iterable of dict records (JSON-style keys)."""

    rows = [dict(record) for record in records]
    validate_records(rows, source)
    if not rows:
        return []
    return frame_to_items(pd.DataFrame(rows), source)


def _read_json(path: Path) -> List[ScopeLineItem]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ScopeInputError(f"{path}: invalid JSON ({exc})") from exc
    except UnicodeDecodeError as exc:
        raise ScopeInputError(f"{path}: could not read scope ({exc})") from exc
    return scope_from_records(_extract_json_records(payload, str(path)), str(path))


def load_scope(path: Path) -> List[ScopeLineItem]:
    """Load a scope from ``.csv``, ``.xlsx`` / ``.xls`` or ``.json``."""

    path = Path(path)
    if not path.exists():
        raise ScopeInputError(f"Scope file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".json":
        items = _read_json(path)
    elif suffix in {".csv", ".xlsx", ".xls"}:
        try:
            if suffix == ".csv":
                df = pd.read_csv(path)
            else:
                df = pd.read_excel(path)
        except pd.errors.EmptyDataError:
            LOGGER.debug("Scope file %s is empty", path)
            return []
        except (UnicodeDecodeError, pd.errors.ParserError, ValueError, zipfile.BadZipFile) as exc:
            raise ScopeInputError(f"{path}: could not read scope ({exc})") from exc
        df = df.dropna(how="all")
        items = frame_to_items(df, str(path))
    else:
        raise ScopeInputError(f"{path}: unsupported scope file type '{path.suffix}'")

    LOGGER.debug("Loaded %d line item(s) from %s", len(items), path)
    return items


__all__ = [
    "CANONICAL_COLUMNS",
    "HEADER_ALIASES",
    "ScopeInputError",
    "canonicalize_columns",
    "frame_to_items",
    "load_scope",
    "scope_from_records",
    "validate_records",
]

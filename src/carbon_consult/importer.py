import os
import re
import logging
from typing import Optional, Tuple

import pandas as pd

from .constants import CONCRETE_MATERIAL, REINFORCED_MARKER, TOTAL_LABEL
from .models import (
    Category, LineItems, MaterialItem, ConcreteItem, ProcessItem,
    TransportItem, EndOfLifeItem, as_number
)
from .factors import EmissionFactorTable, default_factor_table
from .reporting import (
    COL_CATEGORY, COL_NAME, COL_UNIT, COL_QUANTITY, COL_CEMENT,
    COL_REBAR_FACTOR, COL_REBAR_MASS, COL_WEIGHT
)

logger = logging.getLogger(__name__)

# Optional column accepted in hand-edited reports
COL_REINFORCED = "Reinforced"

REQUIRED_COLUMNS = (COL_CATEGORY, COL_NAME, COL_QUANTITY)
CONCRETE_UNITS = ("m³", "m3")

_MARKER_RE = re.compile(re.escape(REINFORCED_MARKER.strip()), re.IGNORECASE)


class ReportImportError(Exception):
    """Raised once when a report cannot be read or is structurally invalid."""


def _cell(row: pd.Series, column: str) -> str:
    if column not in row.index:
        return ""
    val = row[column]
    if val is None or (isinstance(val, float) and pd.isna(val)):
        return ""
    return str(val).strip()


def _optional_number(row: pd.Series, column: str) -> Optional[float]:
    text = _cell(row, column)
    return as_number(text) if text else None


def _truthy(text: str) -> bool:
    return text.strip().lower() in ("1", "true", "yes", "y", "x")


def split_reinforced_marker(name: str) -> Tuple[str, bool]:
    """
    Strip the reinforced marker from an item name.
    Returns (base name, marker found).
    """
    if not _MARKER_RE.search(name):
        return name.strip(), False
    return _MARKER_RE.sub("", name).strip(), True


def read_report_frame(path: str) -> pd.DataFrame:
    """
    Read a report produced by export_report (or a compatible hand-edited one).
    All cells are read as text; blanks become "".
    """
    if not os.path.exists(path):
        raise ReportImportError(f"Report file not found: {path}")

    ext = os.path.splitext(path)[1].lower()
    try:
        if ext == ".csv":
            df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8")
        elif ext in (".xlsx", ".xls"):
            df = pd.read_excel(path, dtype=str)
        else:
            raise ReportImportError(f"Unsupported report format '{ext or path}'")
    except ReportImportError:
        raise
    except Exception as e:
        raise ReportImportError(f"Could not read report {path}: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ReportImportError(f"Report {path} is missing columns: {', '.join(missing)}")

    return df.fillna("")


def _parse_material(row: pd.Series, name: str, factors: EmissionFactorTable):
    base, has_marker = split_reinforced_marker(name)
    unit = _cell(row, COL_UNIT)
    cement = _optional_number(row, COL_CEMENT)

    is_concrete = (
        factors.is_concrete_type(base)
        or base == CONCRETE_MATERIAL
        or unit in CONCRETE_UNITS
        or cement is not None
    )
    if not is_concrete:
        return MaterialItem(material_name=name, quantity=as_number(_cell(row, COL_QUANTITY)))

    explicit = _cell(row, COL_REINFORCED)
    is_reinforced = _truthy(explicit) if explicit else has_marker

    return ConcreteItem(
        concrete_type_name="" if base == CONCRETE_MATERIAL else base,
        quantity=as_number(_cell(row, COL_QUANTITY)),
        cement_mass_per_volume=cement or 0.0,
        is_reinforced=is_reinforced,
        rebar_mass_per_volume=_optional_number(row, COL_REBAR_MASS) or 0.0,
        rebar_factor=_optional_number(row, COL_REBAR_FACTOR) or 0.0,
    )


def parse_report_frame(df: pd.DataFrame, factors: Optional[EmissionFactorTable] = None) -> LineItems:
    """
    Rebuild the five category lists from report rows (top to bottom).
    The Category column sets the current section; the Total row ends parsing.
    """
    factors = factors or default_factor_table()
    items = LineItems()
    current: Optional[Category] = None
    unknown_label = ""

    for pos, (_, row) in enumerate(df.iterrows()):
        row_num = pos + 2  # spreadsheet row (header is row 1)
        label = _cell(row, COL_CATEGORY)
        if label:
            if label.lower() == TOTAL_LABEL.lower():
                break
            current = Category.from_label(label)
            unknown_label = "" if current else label
            if current is None:
                logger.warning(f"Row {row_num}: unknown category '{label}', skipping its rows.")

        name = _cell(row, COL_NAME)
        if not name or current is None:
            if name and unknown_label:
                logger.debug(f"Row {row_num}: '{name}' ignored (category '{unknown_label}')")
            continue

        quantity = as_number(_cell(row, COL_QUANTITY))

        if current is Category.MATERIALS:
            items.materials.append(_parse_material(row, name, factors))
        elif current in (Category.MANUFACTURING, Category.IMPLEMENTATION):
            items.for_category(current).append(ProcessItem(process_name=name, duration_hours=quantity))
        elif current is Category.TRANSPORT:
            items.transport.append(TransportItem(
                mode_name=name,
                distance_km=quantity,
                weight_tonnes=as_number(_cell(row, COL_WEIGHT)),
            ))
        elif current is Category.END_OF_LIFE:
            items.end_of_life.append(EndOfLifeItem(method_name=name, weight_kg=quantity))

    return items


def import_report(path: str, factors: Optional[EmissionFactorTable] = None) -> LineItems:
    """
    Read and parse a tabular report into fresh line items.
    Raises ReportImportError (once) for unreadable or structurally invalid files.
    """
    df = read_report_frame(path)
    try:
        items = parse_report_frame(df, factors)
    except Exception as e:
        raise ReportImportError(f"Could not parse report {path}: {e}") from e
    logger.info(f"Imported {items.count()} line items from {path}")
    return items

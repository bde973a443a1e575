import os
import logging
from typing import Dict, List, Optional

import pandas as pd

from .constants import (
    CONCRETE_UNIT, TOTAL_LABEL, REPORT_DECIMALS, REPORT_SHEET_NAME, REPORT_FILENAME_PREFIX
)
from .models import (
    Category, LineItems, LineItem, MaterialItem, ConcreteItem, ProcessItem,
    TransportItem, EndOfLifeItem, EmissionResult
)
from .factors import EmissionFactorTable, default_factor_table
from .utils.calculations import calculate_emissions, display_name, format_emissions, item_co2e

logger = logging.getLogger(__name__)

COL_CATEGORY = "Category"
COL_NAME = "Item name"
COL_UNIT = "Unit"
COL_QUANTITY = "Quantity"
COL_FACTOR = "Emission factor"
COL_CEMENT = "Cement mass (kg/m³)"
COL_REBAR_FACTOR = "Rebar factor"
COL_REBAR_MASS = "Rebar mass (kg/m³)"
COL_WEIGHT = "Transport weight (tonnes)"
COL_CO2E = "CO2e (kg)"

REPORT_COLUMNS = [
    COL_CATEGORY, COL_NAME, COL_UNIT, COL_QUANTITY, COL_FACTOR,
    COL_CEMENT, COL_REBAR_FACTOR, COL_REBAR_MASS, COL_WEIGHT, COL_CO2E,
]


class ReportExportError(Exception):
    """Raised when the tabular report cannot be written."""


def report_filename(label: Optional[str] = None, ext: str = "xlsx") -> str:
    """carbon_report_<label with spaces replaced by underscores, or 'export'>.<ext>"""
    label = (label or "").strip()
    stem = label.replace(" ", "_") if label else "export"
    return f"{REPORT_FILENAME_PREFIX}_{stem}.{ext.lstrip('.')}"


def _num(x) -> str:
    return format_emissions(x, REPORT_DECIMALS)


def _blank_row() -> Dict[str, str]:
    return {col: "" for col in REPORT_COLUMNS}


def _item_row(item: LineItem, category: Category, factors: EmissionFactorTable) -> Dict[str, str]:
    row = _blank_row()
    row[COL_NAME] = display_name(item)

    if isinstance(item, ConcreteItem):
        row[COL_UNIT] = CONCRETE_UNIT
        row[COL_QUANTITY] = _num(item.quantity)
        row[COL_FACTOR] = _num(factors.concrete_factor(item.concrete_type_name))
        row[COL_CEMENT] = _num(item.cement_mass_per_volume)
        if item.is_reinforced:
            row[COL_REBAR_FACTOR] = _num(item.rebar_factor)
            row[COL_REBAR_MASS] = _num(item.rebar_mass_per_volume)
    elif isinstance(item, MaterialItem):
        row[COL_UNIT] = category.unit
        row[COL_QUANTITY] = _num(item.quantity)
        row[COL_FACTOR] = _num(factors.factor(category, item.material_name))
    elif isinstance(item, ProcessItem):
        row[COL_UNIT] = category.unit
        row[COL_QUANTITY] = _num(item.duration_hours)
        row[COL_FACTOR] = _num(factors.factor(category, item.process_name))
    elif isinstance(item, TransportItem):
        row[COL_UNIT] = category.unit
        row[COL_QUANTITY] = _num(item.distance_km)
        row[COL_FACTOR] = _num(factors.factor(category, item.mode_name))
        row[COL_WEIGHT] = _num(item.weight_tonnes)
    elif isinstance(item, EndOfLifeItem):
        row[COL_UNIT] = category.unit
        row[COL_QUANTITY] = _num(item.weight_kg)
        row[COL_FACTOR] = _num(factors.factor(category, item.method_name))

    return row


def build_report_rows(
    items: LineItems,
    result: Optional[EmissionResult] = None,
    factors: Optional[EmissionFactorTable] = None,
) -> List[Dict[str, str]]:
    """
    One row per line item, grouped by category (label on the group's first row
    only), followed by the Total row. Every cell is text.
    """
    factors = factors or default_factor_table()
    if result is None:
        result = calculate_emissions(items, factors)

    rows: List[Dict[str, str]] = []

    for category in Category:
        for idx, item in enumerate(items.for_category(category)):
            row = _item_row(item, category, factors)
            row[COL_CATEGORY] = category.label if idx == 0 else ""
            # Same value as the details entry; filtered items (co2e <= 0) show 0
            co2e = item_co2e(item, category, factors)
            row[COL_CO2E] = _num(co2e if co2e > 0 else 0.0)
            rows.append(row)

    total_row = _blank_row()
    total_row[COL_CATEGORY] = TOTAL_LABEL
    total_row[COL_CO2E] = _num(result.grand_total)
    rows.append(total_row)
    return rows


def build_report_dataframe(
    items: LineItems,
    result: Optional[EmissionResult] = None,
    factors: Optional[EmissionFactorTable] = None,
) -> pd.DataFrame:
    rows = build_report_rows(items, result, factors)
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def _write_xlsx(df: pd.DataFrame, path: str):
    """Write the report with xlsxwriter formatting (header band, bold total row)."""
    with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
        df.to_excel(writer, index=False, sheet_name=REPORT_SHEET_NAME)

        workbook = writer.book
        worksheet = writer.sheets[REPORT_SHEET_NAME]

        header_fmt = workbook.add_format({
            'bold': True,
            'text_wrap': True,
            'valign': 'top',
            'fg_color': '#4F81BD',
            'font_color': '#FFFFFF',
            'border': 1
        })
        category_fmt = workbook.add_format({
            'bold': True,
            'bg_color': '#DCE6F1',
            'border': 1
        })
        total_fmt = workbook.add_format({
            'bold': True,
            'bg_color': '#F2F2F2',
            'top': 2
        })

        worksheet.set_column('A:A', 16)
        worksheet.set_column('B:B', 32)
        worksheet.set_column('C:C', 8)
        worksheet.set_column('D:I', 16)
        worksheet.set_column('J:J', 14)

        for col_num, value in enumerate(df.columns.values):
            worksheet.write(0, col_num, value, header_fmt)

        # Excel row index = DataFrame index + 1 (header is row 0).
        # Values are written as strings so the 2-decimal text survives a reload.
        last = len(df) - 1
        for row_num, category in enumerate(df[COL_CATEGORY]):
            r = row_num + 1
            if row_num == last and category == TOTAL_LABEL:
                worksheet.merge_range(r, 0, r, len(REPORT_COLUMNS) - 2, TOTAL_LABEL, total_fmt)
                worksheet.write_string(r, len(REPORT_COLUMNS) - 1, df.iloc[row_num][COL_CO2E], total_fmt)
            elif category:
                worksheet.write_string(r, 0, category, category_fmt)


def export_report(
    items: LineItems,
    path: str,
    result: Optional[EmissionResult] = None,
    factors: Optional[EmissionFactorTable] = None,
) -> str:
    """
    Export line items and their CO2e to a tabular report (.xlsx or .csv).
    Returns the written path.
    """
    ext = os.path.splitext(path)[1].lower()
    if ext not in (".xlsx", ".csv"):
        raise ReportExportError(f"Unsupported report format '{ext or path}' (use .xlsx or .csv)")

    df = build_report_dataframe(items, result, factors)

    directory = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(directory, exist_ok=True)
        if ext == ".csv":
            df.to_csv(path, index=False, encoding="utf-8")
        else:
            _write_xlsx(df, path)
    except OSError as e:
        raise ReportExportError(f"Could not write report to {path}: {e}") from e

    logger.info(f"Report saved to: {path} ({len(df) - 1} line items)")
    return path

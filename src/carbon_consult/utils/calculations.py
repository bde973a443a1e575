import logging
from typing import Dict, List, Optional

from ..constants import DECIMALS, CONCRETE_MATERIAL, REINFORCED_MARKER
from ..models import (
    Category, LineItems, LineItem, MaterialItem, ConcreteItem, ProcessItem,
    TransportItem, EndOfLifeItem, EmissionDetail, EmissionResult, as_number
)
from ..factors import EmissionFactorTable, default_factor_table
from ..audit import audit_logger

logger = logging.getLogger(__name__)


def format_emissions(x: float, decimals: Optional[int] = None) -> str:
    """
    Format a float with a fixed number of decimal places (DECIMALS on screen).
    Presentation only: running totals are never rounded.
    """
    if decimals is None:
        decimals = DECIMALS
    return f"{as_number(x):.{decimals}f}"


def display_name(item: LineItem) -> str:
    """
    Name shown in details and in the report's Item name column.
    Concrete uses its mix name (fallback "Concrete") plus the reinforced marker.
    """
    if isinstance(item, ConcreteItem):
        base = (item.concrete_type_name or "").strip() or CONCRETE_MATERIAL
        return f"{base}{REINFORCED_MARKER}" if item.is_reinforced else base
    if isinstance(item, MaterialItem):
        return item.material_name or ""
    if isinstance(item, ProcessItem):
        return item.process_name or ""
    if isinstance(item, TransportItem):
        return item.mode_name or ""
    if isinstance(item, EndOfLifeItem):
        return item.method_name or ""
    return ""


def concrete_breakdown(item: ConcreteItem, factors: EmissionFactorTable) -> Dict[str, float]:
    """
    Concrete sub-model:
    - cement  = volume(m³) * cement(kg/m³) * EF_mix(kgCO2e/kg cement)
    - rebar   = volume(m³) * rebar(kg/m³) * EF_rebar(kgCO2e/kg steel), reinforced only
    """
    volume = as_number(item.quantity)
    cement_kgco2 = volume * as_number(item.cement_mass_per_volume) * factors.concrete_factor(item.concrete_type_name)
    rebar_kgco2 = 0.0
    if item.is_reinforced:
        rebar_kgco2 = volume * as_number(item.rebar_mass_per_volume) * as_number(item.rebar_factor)

    return {
        "cement_kgco2": cement_kgco2,
        "rebar_kgco2": rebar_kgco2,
        "total_kgco2": cement_kgco2 + rebar_kgco2,
    }


def item_co2e(item: LineItem, category: Category, factors: Optional[EmissionFactorTable] = None) -> float:
    """
    CO2e (kg) of one line item. Never raises: unresolved names use a zero
    factor and missing/non-numeric quantities count as zero.
    """
    factors = factors or default_factor_table()

    if isinstance(item, ConcreteItem):
        parts = concrete_breakdown(item, factors)
        audit_logger.log_calculation(
            context=f"Materials: {display_name(item)}",
            formula="Vol * Cement * EF_mix + [Vol * Rebar * EF_rebar]",
            variables={
                "Vol_m3": item.quantity,
                "Cement_kg_m3": item.cement_mass_per_volume,
                "EF_mix": factors.concrete_factor(item.concrete_type_name),
                "Reinforced": item.is_reinforced,
                "Rebar_kg_m3": item.rebar_mass_per_volume,
                "EF_rebar": item.rebar_factor,
            },
            result=parts["total_kgco2"],
            unit="kgCO2e",
        )
        return parts["total_kgco2"]

    if isinstance(item, MaterialItem):
        if item.material_name == CONCRETE_MATERIAL:
            # Plain "Concrete" without mix data has no generic factor
            return 0.0
        ef = factors.factor(Category.MATERIALS, item.material_name)
        result = as_number(item.quantity) * ef
        formula, variables = "Qty * EF", {"Qty_kg": item.quantity, "EF": ef}

    elif isinstance(item, ProcessItem):
        ef = factors.factor(category, item.process_name)
        result = as_number(item.duration_hours) * ef
        formula, variables = "Hours * EF", {"Hours": item.duration_hours, "EF": ef}

    elif isinstance(item, TransportItem):
        ef = factors.factor(Category.TRANSPORT, item.mode_name)
        result = as_number(item.distance_km) * as_number(item.weight_tonnes) * ef
        formula = "Distance(km) * Weight(t) * EF"
        variables = {"Distance_km": item.distance_km, "Weight_t": item.weight_tonnes, "EF": ef}

    elif isinstance(item, EndOfLifeItem):
        ef = factors.factor(Category.END_OF_LIFE, item.method_name)
        result = as_number(item.weight_kg) * ef
        formula, variables = "Weight(kg) * EF", {"Weight_kg": item.weight_kg, "EF": ef}

    else:
        logger.debug(f"Unsupported line item type {type(item).__name__} in {category.label}")
        return 0.0

    audit_logger.log_calculation(
        context=f"{category.label}: {display_name(item) or '<unnamed>'}",
        formula=formula,
        variables=variables,
        result=result,
        unit="kgCO2e",
    )
    return result


def calculate_emissions(items: LineItems, factors: Optional[EmissionFactorTable] = None) -> EmissionResult:
    """
    Aggregate all line items into per-category details and totals.
    Totals include every item (zero and negative credits too); details keep
    only items with co2e > 0, in insertion order.
    """
    factors = factors or default_factor_table()

    details: Dict[Category, List[EmissionDetail]] = {}
    totals: Dict[Category, float] = {}

    for category in Category:
        cat_details: List[EmissionDetail] = []
        cat_total = 0.0
        for item in items.for_category(category):
            co2e = item_co2e(item, category, factors)
            cat_total += co2e
            if co2e > 0:
                cat_details.append(EmissionDetail(name=display_name(item), co2e=co2e))
        details[category] = cat_details
        totals[category] = cat_total

    grand_total = sum(totals.values())
    return EmissionResult(details=details, totals=totals, grand_total=grand_total)

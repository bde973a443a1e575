from .models import (
    Category,
    MaterialItem,
    ConcreteItem,
    ProcessItem,
    TransportItem,
    EndOfLifeItem,
    LineItems,
    EmissionDetail,
    EmissionResult,
    make_material_item,
)
from .factors import (
    EmissionFactorEntry,
    EmissionFactorTable,
    default_factor_table,
)
from .utils.calculations import calculate_emissions
from .reporting import export_report
from .importer import import_report

__all__ = [
    "Category",
    "MaterialItem",
    "ConcreteItem",
    "ProcessItem",
    "TransportItem",
    "EndOfLifeItem",
    "LineItems",
    "EmissionDetail",
    "EmissionResult",
    "make_material_item",
    "EmissionFactorEntry",
    "EmissionFactorTable",
    "default_factor_table",
    "calculate_emissions",
    "export_report",
    "import_report",
]

import os
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .constants import CONCRETE_MATERIAL, FACTOR_TABLE_PATH
from .models import Category

logger = logging.getLogger(__name__)


class FactorTableError(Exception):
    """Raised when an emission factor sheet cannot be read."""


@dataclass(frozen=True)
class EmissionFactorEntry:
    name: str
    factor: float
    unit: str


# ============================================================================
# DEFAULT FACTORS
# ============================================================================
# Negative factors are net credits (recycling / composting offsets).

DEFAULT_MATERIALS = [
    ("Steel (Recycled)", 0.5, "kg CO2e/kg"),
    ("Steel (Virgin)", 2.0, "kg CO2e/kg"),
    ("Aluminium (Recycled)", 1.5, "kg CO2e/kg"),
    ("Aluminium (Virgin)", 11.0, "kg CO2e/kg"),
    ("Plastic (PET)", 2.3, "kg CO2e/kg"),
    ("Glass", 0.9, "kg CO2e/kg"),
    ("Paper/Cardboard", 0.6, "kg CO2e/kg"),
    ("Timber (Sustainable source)", 0.05, "kg CO2e/kg"),
]

DEFAULT_MANUFACTURING = [
    ("Machining", 5.0, "kg CO2e/hr"),
    ("Welding", 7.5, "kg CO2e/hr"),
    ("Assembly", 1.2, "kg CO2e/hr"),
    ("Painting", 3.0, "kg CO2e/hr"),
    ("3D printing (Plastic)", 6.0, "kg CO2e/hr"),
]

DEFAULT_IMPLEMENTATION = [
    ("Excavation (Diesel machinery)", 25.0, "kg CO2e/hr"),
    ("Crane lifting", 15.0, "kg CO2e/hr"),
    ("Concrete pouring", 8.0, "kg CO2e/hr"),
    ("Scaffolding", 2.0, "kg CO2e/hr"),
    ("Site generator", 10.0, "kg CO2e/hr"),
]

DEFAULT_TRANSPORT = [
    ("Road (Diesel truck)", 0.1, "kg CO2e/t-km"),
    ("Road (Electric truck)", 0.04, "kg CO2e/t-km"),
    ("Rail", 0.02, "kg CO2e/t-km"),
    ("Sea", 0.01, "kg CO2e/t-km"),
    ("Air", 0.6, "kg CO2e/t-km"),
]

DEFAULT_END_OF_LIFE = [
    ("Landfill", 0.2, "kg CO2e/kg"),
    ("Incineration", 1.0, "kg CO2e/kg"),
    ("Recycling (Metals)", -1.8, "kg CO2e/kg"),
    ("Recycling (Plastics)", -1.2, "kg CO2e/kg"),
    ("Composting", -0.1, "kg CO2e/kg"),
]

# Concrete mixes: factor applies per kg of cement
DEFAULT_CONCRETE_TYPES = [
    ("CEM I", 0.765, "kg CO2e/kg cement"),
    ("CEM II/A", 0.651, "kg CO2e/kg cement"),
    ("CEM II/B", 0.523, "kg CO2e/kg cement"),
    ("CEM III/A", 0.313, "kg CO2e/kg cement"),
    ("CEM III/B", 0.22, "kg CO2e/kg cement"),
]

# Rebar: factor applies per kg of reinforcing steel
DEFAULT_REBAR = [
    ("Recycled steel (EAF)", 0.6, "kg CO2e/kg steel"),
    ("European average", 1.2, "kg CO2e/kg steel"),
    ("Primary steel (BOF)", 2.0, "kg CO2e/kg steel"),
]

# Sheet "Table" column values -> EmissionFactorTable attribute
TABLE_KEYS = {
    "materials": "materials",
    "manufacturing": "manufacturing",
    "implementation": "implementation",
    "transport": "transport",
    "endoflife": "end_of_life",
    "end_of_life": "end_of_life",
    "concrete": "concrete_types",
    "concrete_types": "concrete_types",
    "rebar": "rebar",
}


def _entries(rows) -> Tuple[EmissionFactorEntry, ...]:
    return tuple(EmissionFactorEntry(name=n, factor=float(f), unit=u) for n, f, u in rows)


def _lookup(entries: Tuple[EmissionFactorEntry, ...], name) -> Optional[EmissionFactorEntry]:
    if not name:
        return None
    for entry in entries:
        if entry.name == name:
            return entry
    return None


@dataclass(frozen=True)
class EmissionFactorTable:
    """
    Process-wide, read-only emission factor table.
    Materials own two extra sub-tables used only for Concrete: concrete mixes
    and rebar factors.
    """
    materials: Tuple[EmissionFactorEntry, ...]
    manufacturing: Tuple[EmissionFactorEntry, ...]
    implementation: Tuple[EmissionFactorEntry, ...]
    transport: Tuple[EmissionFactorEntry, ...]
    end_of_life: Tuple[EmissionFactorEntry, ...]
    concrete_types: Tuple[EmissionFactorEntry, ...]
    rebar: Tuple[EmissionFactorEntry, ...]

    def entries(self, category: Category) -> Tuple[EmissionFactorEntry, ...]:
        return {
            Category.MATERIALS: self.materials,
            Category.MANUFACTURING: self.manufacturing,
            Category.IMPLEMENTATION: self.implementation,
            Category.TRANSPORT: self.transport,
            Category.END_OF_LIFE: self.end_of_life,
        }[category]

    def find(self, category: Category, name) -> Optional[EmissionFactorEntry]:
        return _lookup(self.entries(category), name)

    def factor(self, category: Category, name) -> float:
        """Factor for a name in a category; unresolved names give 0.0."""
        entry = self.find(category, name)
        return entry.factor if entry else 0.0

    def find_concrete(self, name) -> Optional[EmissionFactorEntry]:
        return _lookup(self.concrete_types, name)

    def concrete_factor(self, name) -> float:
        entry = self.find_concrete(name)
        return entry.factor if entry else 0.0

    def is_concrete_type(self, name) -> bool:
        return self.find_concrete(name) is not None

    def find_rebar(self, name) -> Optional[EmissionFactorEntry]:
        return _lookup(self.rebar, name)

    def rebar_factor(self, name) -> float:
        entry = self.find_rebar(name)
        return entry.factor if entry else 0.0

    def option_names(self, category: Category) -> List[str]:
        names = [e.name for e in self.entries(category)]
        if category is Category.MATERIALS:
            names.append(CONCRETE_MATERIAL)
        return names


def build_default_table() -> EmissionFactorTable:
    return EmissionFactorTable(
        materials=_entries(DEFAULT_MATERIALS),
        manufacturing=_entries(DEFAULT_MANUFACTURING),
        implementation=_entries(DEFAULT_IMPLEMENTATION),
        transport=_entries(DEFAULT_TRANSPORT),
        end_of_life=_entries(DEFAULT_END_OF_LIFE),
        concrete_types=_entries(DEFAULT_CONCRETE_TYPES),
        rebar=_entries(DEFAULT_REBAR),
    )


def load_factor_table(path: str) -> EmissionFactorTable:
    """
    Build a factor table from a sheet with columns: Table, Name, Factor, Unit.
    Table is one of materials / manufacturing / implementation / transport /
    endOfLife / concrete / rebar. Sub-tables absent from the sheet keep their
    default entries.
    """
    if not os.path.exists(path):
        raise FactorTableError(f"Factor table not found at {path}")
    try:
        if path.lower().endswith(".csv"):
            df = pd.read_csv(path)
        else:
            df = pd.read_excel(path)
    except Exception as e:
        raise FactorTableError(f"Could not read factor table {path}: {e}") from e

    missing = [c for c in ("Table", "Name", "Factor") if c not in df.columns]
    if missing:
        raise FactorTableError(f"Factor table {path} missing columns: {', '.join(missing)}")

    loaded: Dict[str, List[EmissionFactorEntry]] = {}
    for _, row in df.iterrows():
        table_key = TABLE_KEYS.get(str(row["Table"]).strip().lower())
        if table_key is None:
            logger.warning(f"Skipping factor row with unknown table '{row['Table']}'")
            continue
        try:
            factor = float(row["Factor"])
        except (TypeError, ValueError):
            factor = float("nan")
        if pd.isna(factor):
            logger.warning(f"Skipping factor '{row['Name']}': non-numeric factor '{row['Factor']}'")
            continue
        unit = str(row["Unit"]) if "Unit" in df.columns and not pd.isna(row["Unit"]) else ""
        loaded.setdefault(table_key, []).append(
            EmissionFactorEntry(name=str(row["Name"]).strip(), factor=factor, unit=unit)
        )

    defaults = build_default_table()
    fields = {key: tuple(entries) for key, entries in loaded.items()}
    for attr in TABLE_KEYS.values():
        fields.setdefault(attr, getattr(defaults, attr))
    logger.info(f"Loaded {sum(len(v) for v in loaded.values())} emission factors from {path}")
    return EmissionFactorTable(**fields)


@lru_cache(maxsize=1)
def default_factor_table() -> EmissionFactorTable:
    """
    The shared factor table, built once per process.
    Uses FACTOR_TABLE_PATH from the parameters workbook when it is set.
    """
    if FACTOR_TABLE_PATH:
        return load_factor_table(FACTOR_TABLE_PATH)
    return build_default_table()

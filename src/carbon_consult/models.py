import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from .constants import CONCRETE_MATERIAL


class Category(Enum):
    """
    The five lifecycle stages of an offer.
    Each member carries (key, label, quantity unit):
    - key: stable identifier used in payloads (camelCase, as the web form used)
    - label: text written in the Category column of the tabular report
    """
    MATERIALS = ("materials", "Materials", "kg")
    MANUFACTURING = ("manufacturing", "Manufacturing", "H")
    IMPLEMENTATION = ("implementation", "Implementation", "H")
    TRANSPORT = ("transport", "Transport", "km")
    END_OF_LIFE = ("endOfLife", "End of life", "kg")

    def __init__(self, key: str, label: str, unit: str):
        self.key = key
        self.label = label
        self.unit = unit

    @classmethod
    def from_label(cls, text: Any) -> Optional["Category"]:
        """Resolve a label, key or member name (case-insensitive). None if unknown."""
        if text is None:
            return None
        needle = str(text).strip().lower()
        if not needle:
            return None
        for cat in cls:
            if needle in (cat.label.lower(), cat.key.lower(), cat.name.lower()):
                return cat
        return None


def as_number(value: Any) -> float:
    """
    Coerce raw user input to a float.
    None, blanks, non-numeric text and NaN all become 0.0; negatives pass through.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        num = float(str(value).strip().replace(",", ".")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(num) or math.isinf(num):
        return 0.0
    return num


@dataclass
class MaterialItem:
    """Generic raw material, quantity in kg."""
    material_name: str = ""
    quantity: float = 0.0


@dataclass
class ConcreteItem:
    """
    Concrete line item, quantity in m³.
    Emissions come from the cement content (kg/m³) and, when reinforced,
    the rebar content (kg/m³) times the selected rebar factor.
    rebar_* fields are kept when is_reinforced is toggled off but ignored.
    """
    concrete_type_name: str = ""
    quantity: float = 0.0
    cement_mass_per_volume: float = 0.0
    is_reinforced: bool = False
    rebar_mass_per_volume: float = 0.0
    rebar_factor: float = 0.0

    @property
    def material_name(self) -> str:
        return CONCRETE_MATERIAL


@dataclass
class ProcessItem:
    """Manufacturing or implementation process, duration in hours."""
    process_name: str = ""
    duration_hours: float = 0.0


@dataclass
class TransportItem:
    mode_name: str = ""
    distance_km: float = 0.0
    weight_tonnes: float = 0.0


@dataclass
class EndOfLifeItem:
    method_name: str = ""
    weight_kg: float = 0.0


MaterialLine = Union[MaterialItem, ConcreteItem]
LineItem = Union[MaterialItem, ConcreteItem, ProcessItem, TransportItem, EndOfLifeItem]

# Which item classes may live in which category list
ITEM_TYPES = {
    Category.MATERIALS: (MaterialItem, ConcreteItem),
    Category.MANUFACTURING: (ProcessItem,),
    Category.IMPLEMENTATION: (ProcessItem,),
    Category.TRANSPORT: (TransportItem,),
    Category.END_OF_LIFE: (EndOfLifeItem,),
}


def make_material_item(material_name: str, quantity: Any = 0.0, **concrete_fields) -> MaterialLine:
    """
    Build the right material variant for a picker selection:
    "Concrete" gives a ConcreteItem, anything else a MaterialItem.
    """
    if material_name == CONCRETE_MATERIAL:
        return ConcreteItem(quantity=quantity, **concrete_fields)
    return MaterialItem(material_name=material_name, quantity=quantity)


@dataclass
class LineItems:
    """
    The five category lists of an offer, each in insertion order.
    """
    materials: List[MaterialLine] = field(default_factory=list)
    manufacturing: List[ProcessItem] = field(default_factory=list)
    implementation: List[ProcessItem] = field(default_factory=list)
    transport: List[TransportItem] = field(default_factory=list)
    end_of_life: List[EndOfLifeItem] = field(default_factory=list)

    def for_category(self, category: Category) -> list:
        return {
            Category.MATERIALS: self.materials,
            Category.MANUFACTURING: self.manufacturing,
            Category.IMPLEMENTATION: self.implementation,
            Category.TRANSPORT: self.transport,
            Category.END_OF_LIFE: self.end_of_life,
        }[category]

    def append(self, category: Category, item: LineItem) -> None:
        if not isinstance(item, ITEM_TYPES[category]):
            raise TypeError(f"{type(item).__name__} cannot be added to {category.label}")
        self.for_category(category).append(item)

    def remove(self, category: Category, index: int) -> LineItem:
        return self.for_category(category).pop(index)

    def count(self) -> int:
        return sum(len(self.for_category(cat)) for cat in Category)

    def is_empty(self) -> bool:
        return self.count() == 0

    def copy(self) -> "LineItems":
        return LineItems.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Plain dict keyed by category key; concrete rows are tagged with 'kind'."""
        out: Dict[str, List[Dict[str, Any]]] = {}
        for cat in Category:
            rows = []
            for item in self.for_category(cat):
                row = asdict(item)
                if isinstance(item, ConcreteItem):
                    row["kind"] = "concrete"
                    row["material_name"] = CONCRETE_MATERIAL
                rows.append(row)
            out[cat.key] = rows
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, List[Dict[str, Any]]]) -> "LineItems":
        items = cls()
        for row in data.get(Category.MATERIALS.key, []):
            row = dict(row)
            if row.pop("kind", None) == "concrete" or row.get("material_name") == CONCRETE_MATERIAL:
                row.pop("material_name", None)
                items.materials.append(ConcreteItem(**row))
            else:
                items.materials.append(MaterialItem(**row))
        for row in data.get(Category.MANUFACTURING.key, []):
            items.manufacturing.append(ProcessItem(**row))
        for row in data.get(Category.IMPLEMENTATION.key, []):
            items.implementation.append(ProcessItem(**row))
        for row in data.get(Category.TRANSPORT.key, []):
            items.transport.append(TransportItem(**row))
        for row in data.get(Category.END_OF_LIFE.key, []):
            items.end_of_life.append(EndOfLifeItem(**row))
        return items


@dataclass
class EmissionDetail:
    name: str
    co2e: float


@dataclass
class EmissionResult:
    """
    Calculator output.
    - details: per category, items with co2e > 0 in insertion order
    - totals: per category, sum over ALL items (zero and credits included)
    - grand_total: sum of the five category totals
    """
    details: Dict[Category, List[EmissionDetail]]
    totals: Dict[Category, float]
    grand_total: float

    def total(self, category: Category) -> float:
        return self.totals.get(category, 0.0)

    def as_summary(self) -> Dict[str, float]:
        summary = {cat.key: self.total(cat) for cat in Category}
        summary["grandTotal"] = self.grand_total
        return summary

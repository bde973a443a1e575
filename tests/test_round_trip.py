import pandas as pd
import pytest

from carbon_consult.models import (
    Category, LineItems, MaterialItem, ConcreteItem, ProcessItem, TransportItem, EndOfLifeItem
)
from carbon_consult.factors import default_factor_table
from carbon_consult.utils.calculations import calculate_emissions
from carbon_consult.reporting import REPORT_COLUMNS, export_report
from carbon_consult.importer import (
    ReportImportError, import_report, parse_report_frame, split_reinforced_marker
)

FACTORS = default_factor_table()


def plain_items() -> LineItems:
    return LineItems(
        materials=[
            MaterialItem(material_name="Steel (Virgin)", quantity=120.5),
            MaterialItem(material_name="Glass", quantity=33.333),
        ],
        manufacturing=[ProcessItem(process_name="Welding", duration_hours=12)],
        implementation=[
            ProcessItem(process_name="Crane lifting", duration_hours=4.5),
            ProcessItem(process_name="Scaffolding", duration_hours=16),
        ],
        transport=[TransportItem(mode_name="Rail", distance_km=250, weight_tonnes=3.2)],
        end_of_life=[
            EndOfLifeItem(method_name="Recycling (Metals)", weight_kg=100),
            EndOfLifeItem(method_name="Landfill", weight_kg=20),
        ],
    )


def item_signature(item):
    """(type, name, numbers) for comparing items within 2-decimal precision."""
    values = [v for v in vars(item).values()]
    return type(item).__name__, [v for v in values if isinstance(v, str)], [
        round(float(v), 2) for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)
    ]


@pytest.mark.parametrize("ext", ["csv", "xlsx"])
def test_plain_items_round_trip(tmp_path, ext):
    print(f"Running round trip through .{ext}...")
    items = plain_items()
    original = calculate_emissions(items, FACTORS)

    path = export_report(items, str(tmp_path / f"report.{ext}"), factors=FACTORS)
    restored = import_report(path, FACTORS)

    for cat in Category:
        before = [item_signature(i) for i in items.for_category(cat)]
        after = [item_signature(i) for i in restored.for_category(cat)]
        assert before == after, cat

    again = calculate_emissions(restored, FACTORS)
    for cat in Category:
        # Quantities are exported with 2 decimals (33.333 kg glass -> 33.33 kg)
        assert abs(original.total(cat) - again.total(cat)) < 0.01
    assert abs(original.grand_total - again.grand_total) < 0.01


@pytest.mark.parametrize("ext", ["csv", "xlsx"])
def test_reinforced_concrete_round_trip(tmp_path, ext):
    items = LineItems(materials=[
        ConcreteItem(
            concrete_type_name="CEM III/A", quantity=10, cement_mass_per_volume=300,
            is_reinforced=True, rebar_mass_per_volume=100, rebar_factor=1.2,
        ),
        ConcreteItem(concrete_type_name="CEM I", quantity=2.5, cement_mass_per_volume=350),
        MaterialItem(material_name="Timber (Sustainable source)", quantity=40),
    ])
    path = export_report(items, str(tmp_path / f"concrete.{ext}"), factors=FACTORS)
    restored = import_report(path, FACTORS)

    reinforced, plain, timber = restored.materials
    assert isinstance(reinforced, ConcreteItem)
    assert reinforced.concrete_type_name == "CEM III/A"
    assert reinforced.is_reinforced is True
    assert reinforced.quantity == 10.0
    assert reinforced.cement_mass_per_volume == 300.0
    assert reinforced.rebar_mass_per_volume == 100.0
    assert reinforced.rebar_factor == 1.2

    assert isinstance(plain, ConcreteItem)
    assert plain.concrete_type_name == "CEM I"
    assert plain.is_reinforced is False
    assert plain.rebar_factor == 0.0

    assert isinstance(timber, MaterialItem)
    assert timber.material_name == "Timber (Sustainable source)"

    assert abs(calculate_emissions(restored, FACTORS).grand_total - calculate_emissions(items, FACTORS).grand_total) < 0.01


def test_split_reinforced_marker():
    assert split_reinforced_marker("CEM I (Reinforced)") == ("CEM I", True)
    assert split_reinforced_marker("CEM I (reinforced)") == ("CEM I", True)
    assert split_reinforced_marker("CEM I") == ("CEM I", False)


def frame(rows):
    return pd.DataFrame([{**{c: "" for c in REPORT_COLUMNS}, **r} for r in rows], columns=REPORT_COLUMNS)


def test_parse_tracks_process_sections():
    df = frame([
        {"Category": "Manufacturing", "Item name": "Welding", "Quantity": "3"},
        {"Item name": "Painting", "Quantity": "1.5"},
        {"Category": "Implementation", "Item name": "Crane lifting", "Quantity": "2"},
        {"Item name": "Welding", "Quantity": "7"},
    ])
    items = parse_report_frame(df, FACTORS)
    assert [(i.process_name, i.duration_hours) for i in items.manufacturing] == [("Welding", 3.0), ("Painting", 1.5)]
    assert [(i.process_name, i.duration_hours) for i in items.implementation] == [("Crane lifting", 2.0), ("Welding", 7.0)]


def test_parse_is_lenient_with_hand_edited_reports():
    df = frame([
        {"Category": "Materials", "Item name": "Glass", "Quantity": "lots"},
        {"Item name": "", "Quantity": "99"},
        {"Item name": "Concrete (Reinforced)", "Unit": "m³", "Quantity": "4", "Rebar mass (kg/m³)": "90",
         "Rebar factor": "0.6"},
        {"Category": "Widgets", "Item name": "Sprocket", "Quantity": "5"},
        {"Category": "transport", "Item name": "Sea", "Quantity": "1000", "Transport weight (tonnes)": "x"},
        {"Category": "Total", "CO2e (kg)": "123.00"},
        {"Category": "End of life", "Item name": "Landfill", "Quantity": "10"},
    ])
    items = parse_report_frame(df, FACTORS)

    glass, concrete = items.materials
    assert glass.quantity == 0.0
    assert isinstance(concrete, ConcreteItem)
    assert concrete.concrete_type_name == ""
    assert concrete.is_reinforced is True
    assert concrete.rebar_mass_per_volume == 90.0

    assert [(t.mode_name, t.distance_km, t.weight_tonnes) for t in items.transport] == [("Sea", 1000.0, 0.0)]
    # Rows after the Total row are not line items
    assert items.end_of_life == []
    assert items.count() == 3


def test_explicit_reinforced_column_wins():
    df = frame([
        {"Category": "Materials", "Item name": "CEM II/A", "Unit": "m³", "Quantity": "1",
         "Cement mass (kg/m³)": "320", "Rebar factor": "1.20", "Rebar mass (kg/m³)": "80"},
    ])
    df["Reinforced"] = ["yes"]
    concrete = parse_report_frame(df, FACTORS).materials[0]
    assert concrete.concrete_type_name == "CEM II/A"
    assert concrete.is_reinforced is True


def test_import_failures_raise_once(tmp_path):
    with pytest.raises(ReportImportError):
        import_report(str(tmp_path / "missing.xlsx"), FACTORS)

    corrupt = tmp_path / "corrupt.xlsx"
    corrupt.write_bytes(b"PK\x03\x04 definitely not a workbook")
    with pytest.raises(ReportImportError):
        import_report(str(corrupt), FACTORS)

    wrong = tmp_path / "wrong.csv"
    pd.DataFrame([{"Foo": 1, "Bar": 2}]).to_csv(wrong, index=False)
    with pytest.raises(ReportImportError):
        import_report(str(wrong), FACTORS)

    other = tmp_path / "report.json"
    other.write_text("{}")
    with pytest.raises(ReportImportError):
        import_report(str(other), FACTORS)

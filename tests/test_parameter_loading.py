import pandas as pd

from carbon_consult.config import load_excel_config
from carbon_consult import constants


def test_missing_file_uses_defaults(tmp_path):
    assert load_excel_config(str(tmp_path / "nope.xlsx")) == {}


def test_key_value_sheet_is_loaded(tmp_path):
    path = tmp_path / "project_parameters.xlsx"
    pd.DataFrame([
        {"Key": "DECIMALS", "Value": 3, "Unit": "", "Description": "Decimals in reports"},
        {"Key": " SUGGESTION_LANGUAGE ", "Value": "English", "Unit": "", "Description": ""},
        {"Key": "SUBMISSION_URL", "Value": None, "Unit": "", "Description": "Blank means local JSON"},
    ]).to_excel(path, index=False)

    config = load_excel_config(str(path))
    print(f"Loaded: {config}")
    assert config["DECIMALS"] == 3
    assert config["SUGGESTION_LANGUAGE"] == "English"
    # Blank values are "not set"
    assert "SUBMISSION_URL" not in config


def test_sheet_without_key_value_columns_is_ignored(tmp_path):
    path = tmp_path / "other.xlsx"
    pd.DataFrame([{"Name": "DECIMALS", "Setting": 4}]).to_excel(path, index=False)
    assert load_excel_config(str(path)) == {}


def test_constants_have_defaults():
    assert isinstance(constants.DECIMALS, int)
    assert constants.CONCRETE_MATERIAL == "Concrete"
    assert constants.TOTAL_LABEL == "Total"
    assert constants.REPORTS_DIR.endswith("reports")


def test_blank_text_setting_keeps_default(monkeypatch):
    monkeypatch.setattr(constants, "_config", {"REINFORCED_MARKER": "  ", "SUGGESTION_LANGUAGE": "English"})
    assert constants._get_text("REINFORCED_MARKER", " (Reinforced)") == " (Reinforced)"
    assert constants._get_text("SUGGESTION_LANGUAGE", "French") == "English"
    assert constants._get_text("MISSING", "x") == "x"
    assert constants.REINFORCED_MARKER.strip()

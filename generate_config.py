import sys
import os
sys.path.append(os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))
import pandas as pd
from carbon_consult.factors import build_default_table, TABLE_KEYS

# Parameters workbook rows.
# KEY is identical to the constant name in carbon_consult/constants.py.
PARAMS = [
    # --- SECTION: GLOBAL ---
    {
        "Key": "DECIMALS",
        "Value": 2,
        "Unit": "Integer",
        "Section": "1. Global Settings",
        "Description": "Decimal places used on screen. Exported reports always use 2."
    },
    {
        "Key": "AUDIT_ENABLED",
        "Value": False,
        "Unit": "Bool",
        "Section": "1. Global Settings",
        "Description": "Write a calculation audit trail (reports/audit_<session>.txt) from start-up."
    },

    # --- SECTION: CONCRETE ---
    {
        "Key": "REINFORCED_MARKER",
        "Value": " (Reinforced)",
        "Unit": "Text",
        "Section": "2. Concrete",
        "Description": "Suffix appended to reinforced concrete item names in reports."
    },

    # --- SECTION: FACTORS ---
    {
        "Key": "FACTOR_TABLE_PATH",
        "Value": "",
        "Unit": "Path",
        "Section": "3. Emission Factors",
        "Description": "Optional factor sheet (Table | Name | Factor | Unit) replacing the built-in factors."
    },

    # --- SECTION: AI SUGGESTIONS ---
    {
        "Key": "OPENAI_MODEL",
        "Value": "gpt-4o-mini",
        "Unit": "Text",
        "Section": "4. AI Suggestions",
        "Description": "Chat model used for improvement suggestions (API key from OPENAI_API_KEY)."
    },
    {
        "Key": "OPENAI_TEMPERATURE",
        "Value": 0.2,
        "Unit": "Ratio",
        "Section": "4. AI Suggestions",
        "Description": "Sampling temperature for suggestions."
    },
    {
        "Key": "SUGGESTION_LANGUAGE",
        "Value": "French",
        "Unit": "Text",
        "Section": "4. AI Suggestions",
        "Description": "Language of the assessment and recommendations."
    },

    # --- SECTION: SUBMISSION ---
    {
        "Key": "SUBMISSION_URL",
        "Value": "",
        "Unit": "URL",
        "Section": "5. Submission",
        "Description": "Endpoint receiving submissions as JSON. Empty = save JSON files under reports/submissions."
    },
    {
        "Key": "SUBMISSION_TIMEOUT_S",
        "Value": 15,
        "Unit": "Seconds",
        "Section": "5. Submission",
        "Description": "HTTP timeout for submissions."
    },
]

ROOT = os.path.dirname(os.path.abspath(__file__))
OUTPUT_DIR = os.path.join(ROOT, "data", "parameters_config")


def create_formatted_parameters(output_path: str):
    df = pd.DataFrame(PARAMS)
    df = df[["Section", "Key", "Value", "Unit", "Description"]]

    with pd.ExcelWriter(output_path, engine='xlsxwriter') as writer:
        df.to_excel(writer, index=False, sheet_name='Parameters')

        workbook = writer.book
        worksheet = writer.sheets['Parameters']

        header_fmt = workbook.add_format({
            'bold': True,
            'text_wrap': True,
            'valign': 'top',
            'fg_color': '#4F81BD',
            'font_color': '#FFFFFF',
            'border': 1
        })
        section_fmt = workbook.add_format({
            'bold': True,
            'bg_color': '#DCE6F1',
            'border': 1
        })
        key_fmt = workbook.add_format({
            'bold': True,
            'font_color': '#333333',
            'bg_color': '#F2F2F2',
            'border': 1
        })
        value_fmt = workbook.add_format({
            'bg_color': '#FFFFCC',  # Light yellow to indicate editable
            'border': 1
        })
        text_fmt = workbook.add_format({
            'text_wrap': True,
            'valign': 'top',
            'border': 1
        })

        worksheet.set_column('A:A', 25)
        worksheet.set_column('B:B', 28)
        worksheet.set_column('C:C', 18, value_fmt)
        worksheet.set_column('D:D', 10)
        worksheet.set_column('E:E', 70, text_fmt)

        for col_num, value in enumerate(df.columns.values):
            worksheet.write(0, col_num, value, header_fmt)

        for row_num, row_data in enumerate(PARAMS):
            r = row_num + 1
            worksheet.write(r, 0, row_data["Section"], section_fmt)
            worksheet.write(r, 1, row_data["Key"], key_fmt)
            worksheet.write(r, 2, row_data["Value"], value_fmt)
            worksheet.write(r, 3, row_data["Unit"], text_fmt)
            worksheet.write(r, 4, row_data["Description"], text_fmt)

    print(f"Formatted parameters created at {output_path}")


def create_factor_template(output_path: str):
    """Dump the built-in factors in the sheet layout load_factor_table() reads."""
    table = build_default_table()
    rows = []
    for table_name in ("materials", "manufacturing", "implementation", "transport", "endOfLife", "concrete", "rebar"):
        for entry in getattr(table, TABLE_KEYS[table_name.lower()]):
            rows.append({"Table": table_name, "Name": entry.name, "Factor": entry.factor, "Unit": entry.unit})

    df = pd.DataFrame(rows, columns=["Table", "Name", "Factor", "Unit"])
    df.to_excel(output_path, index=False, sheet_name="Factors")
    print(f"Factor table template created at {output_path}")


if __name__ == "__main__":
    os.makedirs(OUTPUT_DIR, exist_ok=True)
    create_formatted_parameters(os.path.join(OUTPUT_DIR, "project_parameters.xlsx"))
    create_factor_template(os.path.join(OUTPUT_DIR, "emission_factors.xlsx"))

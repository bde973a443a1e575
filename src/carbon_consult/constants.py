import os
from typing import Literal
from .config import load_excel_config, PROJECT_ROOT

# ============================================================================
# SETTINGS & CONSTANTS
# ============================================================================

# Load configuration immediately (blocking).
# Every setting has a built-in default; project_parameters.xlsx only overrides.
_config = load_excel_config()

def _get(key, default):
    return _config.get(key, default)

def _get_text(key, default: str) -> str:
    """Text setting; a blank cell keeps the default."""
    val = str(_config.get(key, default))
    return val if val.strip() else default

def _get_bool(key, default: bool) -> bool:
    val = _config.get(key, default)
    if isinstance(val, str):
        return val.strip().lower() in ("1", "true", "yes", "y")
    return bool(val)

# Presentation
DECIMALS = int(_get("DECIMALS", 2))

# Concrete
CONCRETE_MATERIAL = "Concrete"
REINFORCED_MARKER = _get_text("REINFORCED_MARKER", " (Reinforced)")
CONCRETE_UNIT = "m³"

# Tabular report
# Exported numeric cells always carry 2 decimals, whatever DECIMALS says
REPORT_DECIMALS = 2
TOTAL_LABEL = "Total"
REPORT_SHEET_NAME = "Carbon report"
REPORT_FILENAME_PREFIX = "carbon_report"

# Factor table override (optional Excel/CSV with Table | Name | Factor | Unit)
FACTOR_TABLE_PATH = str(_get("FACTOR_TABLE_PATH", ""))

# AI suggestions
OPENAI_MODEL = str(_get("OPENAI_MODEL", "gpt-4o-mini"))
OPENAI_TEMPERATURE = float(_get("OPENAI_TEMPERATURE", 0.2))
SUGGESTION_LANGUAGE = str(_get("SUGGESTION_LANGUAGE", "French"))

# Submission
SUBMISSION_URL = str(_get("SUBMISSION_URL", ""))
SUBMISSION_TIMEOUT_S = float(_get("SUBMISSION_TIMEOUT_S", 15))

# Audit trail
AUDIT_ENABLED = _get_bool("AUDIT_ENABLED", False)

# Output
REPORTS_DIR = os.path.join(PROJECT_ROOT, "reports")

# ============================================================================
# TYPES (Code constructs, not excel parameters)
# ============================================================================

ReportFormat = Literal["xlsx", "csv"]

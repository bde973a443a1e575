import os
import pandas as pd
import logging
from typing import Dict, Any

logger = logging.getLogger(__name__)

# Path to the Excel parameters file.
# This code lives in <root>/src/carbon_consult/config.py, so the project root
# is three levels up.
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DEFAULT_CONFIG_PATH = os.path.join(PROJECT_ROOT, "data", "parameters_config", "project_parameters.xlsx")

def load_excel_config(path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration overrides from an Excel file.
    Expected columns: Key, Value (Unit, Section and Description are informational)
    Returns a dictionary of Key -> Value
    """
    config = {}
    if not os.path.exists(path):
        logger.debug(f"Config file not found at {path}. Using defaults.")
        return config

    try:
        df = pd.read_excel(path)
        if "Key" in df.columns and "Value" in df.columns:
            for _, row in df.iterrows():
                key = str(row["Key"]).strip()
                val = row["Value"]
                # Blank Value cells come back as NaN; treat them as "not set"
                if pd.isna(val):
                    continue
                config[key] = val
            logger.info(f"Loaded {len(config)} parameters from {path}")
        else:
            logger.warning(f"Excel file {path} missing 'Key' or 'Value' columns.")
    except Exception as e:
        logger.error(f"Failed to load config from {path}: {e}")

    return config

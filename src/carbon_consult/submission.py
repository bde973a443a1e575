import os
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from .constants import REPORTS_DIR, SUBMISSION_URL, SUBMISSION_TIMEOUT_S
from .models import LineItems
from .utils.calculations import calculate_emissions
from .factors import EmissionFactorTable

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    success: bool
    message: str = ""


def build_submission_payload(
    items: LineItems,
    comments: str = "",
    factors: Optional[EmissionFactorTable] = None,
) -> Dict[str, Any]:
    result = calculate_emissions(items, factors)
    return {
        "submittedAt": datetime.now().isoformat(timespec="seconds"),
        "lineItems": items.to_dict(),
        "comments": comments or "",
        "totals": result.as_summary(),
    }


class SubmissionStore:
    """Store-and-acknowledge boundary. save() never raises."""

    def save(self, payload: Dict[str, Any]) -> SubmissionResult:
        raise NotImplementedError


class JsonFileSubmissionStore(SubmissionStore):
    """Writes each submission to its own timestamped JSON file."""

    def __init__(self, directory: Optional[str] = None):
        self.directory = directory or os.path.join(REPORTS_DIR, "submissions")

    def save(self, payload: Dict[str, Any]) -> SubmissionResult:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        path = os.path.join(self.directory, f"submission_{ts}.json")
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save submission to {path}: {e}")
            return SubmissionResult(success=False, message=f"Could not save submission: {e}")

        logger.info(f"Submission saved to {path}")
        return SubmissionResult(success=True, message=path)


class HttpSubmissionStore(SubmissionStore):
    """POSTs the submission as JSON to a collecting endpoint."""

    def __init__(self, url: str = SUBMISSION_URL, timeout: float = SUBMISSION_TIMEOUT_S):
        self.url = url
        self.timeout = timeout

    def save(self, payload: Dict[str, Any]) -> SubmissionResult:
        if not self.url:
            return SubmissionResult(success=False, message="No submission URL configured.")
        try:
            headers = {'User-Agent': 'CarbonConsult/1.0'}
            resp = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            logger.info(f"Submission HTTP status: {resp.status_code}")
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Submission error: {e}")
            return SubmissionResult(success=False, message=f"Submission failed: {e}")

        return SubmissionResult(success=True, message=f"Submitted to {self.url}")


def default_store() -> SubmissionStore:
    if SUBMISSION_URL:
        return HttpSubmissionStore(SUBMISSION_URL)
    return JsonFileSubmissionStore()

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional

from .models import Category, LineItems, LineItem, EmissionResult
from .factors import EmissionFactorTable, default_factor_table
from .utils.calculations import calculate_emissions
from .reporting import export_report
from .importer import import_report
from .suggestions import SuggestionResult, build_suggestion_request, suggest_improvements
from .submission import SubmissionResult, SubmissionStore, build_submission_payload, default_store

logger = logging.getLogger(__name__)


class _LatestSlot:
    """
    Holds the result of the most recently issued request of one action.
    A completion carrying an older ticket is dropped (last request wins).
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._ticket = 0
        self.value = None

    def issue(self) -> int:
        with self._lock:
            self._ticket += 1
            return self._ticket

    def store(self, ticket: int, value) -> bool:
        with self._lock:
            if ticket != self._ticket:
                return False
            self.value = value
            return True


class CarbonSession:
    """
    Single-session, single-writer in-memory document: line items + comments.
    Suggestions and submissions each run on their own one-worker executor.
    """
    def __init__(
        self,
        factors: Optional[EmissionFactorTable] = None,
        suggestion_client: Optional[Any] = None,
        store: Optional[SubmissionStore] = None,
    ):
        self.factors = factors or default_factor_table()
        self.items = LineItems()
        self.comments = ""
        self.suggestion_client = suggestion_client
        self.store = store or default_store()

        self._suggestion_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="suggest")
        self._submission_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="submit")
        self._suggestion_slot = _LatestSlot()
        self._submission_slot = _LatestSlot()

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add_item(self, category: Category, item: LineItem):
        self.items.append(category, item)

    def remove_item(self, category: Category, index: int) -> LineItem:
        return self.items.remove(category, index)

    def replace_items(self, items: LineItems):
        self.items = items

    # ------------------------------------------------------------------
    # Calculation / tabular round trip
    # ------------------------------------------------------------------

    def calculate(self) -> EmissionResult:
        return calculate_emissions(self.items, self.factors)

    def export(self, path: str) -> str:
        return export_report(self.items, path, factors=self.factors)

    def import_file(self, path: str) -> LineItems:
        """
        Replace line items with the report's content. Comments are kept.
        On ReportImportError the current items are left untouched.
        """
        items = import_report(path, self.factors)
        self.items = items
        return items

    # ------------------------------------------------------------------
    # Async actions
    # ------------------------------------------------------------------

    @property
    def last_suggestion(self) -> Optional[SuggestionResult]:
        return self._suggestion_slot.value

    @property
    def last_submission(self) -> Optional[SubmissionResult]:
        return self._submission_slot.value

    def request_suggestions(self) -> "Future[SuggestionResult]":
        request = build_suggestion_request(self.calculate(), self.comments)
        ticket = self._suggestion_slot.issue()

        def run() -> SuggestionResult:
            result = suggest_improvements(request, client=self.suggestion_client)
            if not self._suggestion_slot.store(ticket, result):
                logger.debug(f"Dropped stale suggestion result (ticket {ticket})")
            return result

        return self._suggestion_pool.submit(run)

    def submit(self) -> "Future[SubmissionResult]":
        payload = build_submission_payload(self.items.copy(), self.comments, self.factors)
        ticket = self._submission_slot.issue()

        def run() -> SubmissionResult:
            result = self.store.save(payload)
            if not self._submission_slot.store(ticket, result):
                logger.debug(f"Dropped stale submission result (ticket {ticket})")
            return result

        return self._submission_pool.submit(run)

    def close(self):
        self._suggestion_pool.shutdown(wait=True)
        self._submission_pool.shutdown(wait=True)

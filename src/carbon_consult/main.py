import logging
import os

from .constants import REPORTS_DIR
from .models import Category
from .importer import ReportImportError
from .reporting import ReportExportError, report_filename
from .session import CarbonSession
from .audit import audit_logger
from .visualization import Visualizer
from .logging_conf import setup_logging
from .utils.input_helpers import (
    prompt_choice, prompt_yes_no, prompt_text, prompt_line_items, print_header,
    print_line_items, print_totals_overview, print_suggestions, C_SUCCESS, C_RESET
)

logger = logging.getLogger(__name__)

ACTION_ADD = "Add line items"
ACTION_REMOVE = "Remove a line item"
ACTION_TOTALS = "Show totals"
ACTION_COMMENTS = "Edit comments"
ACTION_EXPORT = "Export report"
ACTION_IMPORT = "Import report"
ACTION_CHART = "Save charts"
ACTION_SUGGEST = "Get AI suggestions"
ACTION_SUBMIT = "Submit"
ACTION_EXIT = "Exit"

ACTIONS = [
    ACTION_ADD, ACTION_REMOVE, ACTION_TOTALS, ACTION_COMMENTS, ACTION_EXPORT,
    ACTION_IMPORT, ACTION_CHART, ACTION_SUGGEST, ACTION_SUBMIT, ACTION_EXIT,
]


def run_import(session: CarbonSession, path: str) -> bool:
    """Import a report; on failure the session keeps its current items."""
    try:
        session.import_file(path)
    except ReportImportError as e:
        logger.error(f"Import failed: {e}")
        return False
    logger.info(f"{session.items.count()} line items loaded (comments kept).")
    return True


def run_export(session: CarbonSession, label: str) -> str:
    ext = prompt_choice("Format", ["xlsx", "csv"], default="xlsx")
    default_path = os.path.join(REPORTS_DIR, report_filename(label, ext))
    path = prompt_text("Output file", default=default_path)
    try:
        return session.export(path)
    except ReportExportError as e:
        logger.error(f"Export failed: {e}")
        return ""


def remove_line_item(session: CarbonSession):
    category = Category.from_label(
        prompt_choice("Category", [c.label for c in Category], default=Category.MATERIALS.label)
    )
    rows = session.items.for_category(category)
    if not rows:
        logger.warning(f"No {category.label.lower()} lines to remove.")
        return
    print_line_items(session.items, session.factors)
    idx_str = prompt_text(f"Line number to remove (1-{len(rows)})")
    if not idx_str.isdigit() or not 1 <= int(idx_str) <= len(rows):
        logger.warning("Nothing removed.")
        return
    session.remove_item(category, int(idx_str) - 1)


def main():
    # 1. LOGGING SETUP
    setup_logging(console_level=logging.INFO)

    # 2. PROCESS START BANNER
    print_header("Carbon footprint of a supply-chain offer – Start")

    session = CarbonSession()
    label = prompt_text("Offer label (used in report file names)")

    if prompt_yes_no("Write a calculation audit trail?", default=False):
        audit_logger.enable()

    if prompt_yes_no("Start from an existing report?", default=False):
        run_import(session, prompt_text("Report file (.xlsx or .csv)"))

    try:
        while True:
            action = prompt_choice("Action", ACTIONS, default=ACTION_TOTALS)

            if action == ACTION_ADD:
                prompt_line_items(session.items, session.factors)
            elif action == ACTION_REMOVE:
                remove_line_item(session)
            elif action == ACTION_TOTALS:
                print_line_items(session.items, session.factors)
                print_totals_overview(session.calculate(), label)
            elif action == ACTION_COMMENTS:
                session.comments = prompt_text("Comments / assumptions", default=session.comments)
            elif action == ACTION_EXPORT:
                out = run_export(session, label)
                if out:
                    print(f"{C_SUCCESS}Report saved to: {out}{C_RESET}")
            elif action == ACTION_IMPORT:
                run_import(session, prompt_text("Report file (.xlsx or .csv)"))
            elif action == ACTION_CHART:
                vis = Visualizer()
                vis.generate_all(session.calculate(), label)
                print(f"\nCharts saved to: {vis.session_dir}")
            elif action == ACTION_SUGGEST:
                print("Generating suggestions...")
                print_suggestions(session.request_suggestions().result())
            elif action == ACTION_SUBMIT:
                result = session.submit().result()
                if result.success:
                    print(f"{C_SUCCESS}Submission saved ({result.message}).{C_RESET}")
                else:
                    logger.error(f"Submission failed: {result.message}. Your line items are kept; try again.")
            elif action == ACTION_EXIT:
                break
    finally:
        session.close()


if __name__ == "__main__":
    main()

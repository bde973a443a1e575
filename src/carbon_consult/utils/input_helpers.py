import logging
from typing import List, Optional

import colorama
from colorama import Fore, Style, Back

from ..constants import CONCRETE_MATERIAL, DECIMALS
from ..models import (
    Category, LineItems, LineItem, ConcreteItem, ProcessItem, TransportItem,
    EndOfLifeItem, EmissionResult, make_material_item
)
from ..factors import EmissionFactorTable
from ..suggestions import SuggestionResult
from .calculations import display_name, format_emissions, concrete_breakdown

colorama.init(autoreset=True)

logger = logging.getLogger(__name__)

# Style Constants
C_HEADER = Fore.CYAN + Style.BRIGHT
C_PROMPT = Fore.YELLOW
C_CHOICE = Fore.MAGENTA
C_ERROR = Fore.RED
C_SUCCESS = Fore.GREEN
C_RESET = Style.RESET_ALL

def style_prompt(prompt_text: str) -> str:
    """Helper to wrap input prompt in color."""
    return f"{C_PROMPT}{prompt_text}{C_RESET}"

def print_header(text: str):
    """Print a styled header."""
    # print directly for visual flair, bypassing the logger formatter
    print(f"\n{C_HEADER}{'='*60}")
    print(f"{text.center(60)}")
    print(f"{'='*60}{C_RESET}")


def prompt_choice(label: str, options: List[str], default: str) -> str:
    """
    Prompt user to pick one value from a list of options; returns the chosen option.
    Supports selecting by index (1-based) or typing the name.
    """
    display_parts = []
    for idx, opt in enumerate(options, 1):
        display_parts.append(f"[{C_SUCCESS}{idx}{C_PROMPT}] {C_CHOICE}{opt}{C_PROMPT}")
    opts_str = "\n  ".join(display_parts)

    while True:
        print(f"\n{C_PROMPT}{label} options:{C_RESET}\n  {opts_str}")
        s = input(style_prompt(f"Select option (name or number) [default={default}]: ")).strip()

        if not s:
            return default

        if s.isdigit():
            idx = int(s)
            if 1 <= idx <= len(options):
                return options[idx - 1]

        for opt in options:
            if opt.lower() == s.lower():
                return opt

        logger.warning(f"Invalid choice '{s}'. Please choose a number 1-{len(options)} or a listed name.")


def prompt_yes_no(label: str, default: bool) -> bool:
    default_str = "y" if default else "n"
    while True:
        s = input(style_prompt(f"{label} (y/n) [default={default_str}]: ")).strip().lower()
        if not s:
            return default
        if s in ("y", "yes"):
            return True
        if s in ("n", "no"):
            return False
        logger.warning("Please answer 'y' or 'n'.")


def prompt_float(label: str, default: float = 0.0, allow_negative: bool = False) -> float:
    """
    Prompt for a number. Empty input returns the default; commas are accepted
    as decimal separators.
    """
    while True:
        s = input(style_prompt(f"{label} [default={default}]: ")).strip()
        if not s:
            return default
        try:
            val = float(s.replace(",", "."))
        except ValueError:
            logger.warning(f"'{s}' is not a number.")
            continue
        if val < 0 and not allow_negative:
            logger.warning("Value must be >= 0.")
            continue
        return val


def prompt_text(label: str, default: str = "") -> str:
    s = input(style_prompt(f"{label} [default={default or 'none'}]: ")).strip()
    return s or default


# ============================================================================
# LINE ITEM ENTRY
# ============================================================================

def prompt_concrete_item(factors: EmissionFactorTable) -> ConcreteItem:
    mix_names = [e.name for e in factors.concrete_types]
    concrete_type = prompt_choice("Concrete mix", mix_names, default=mix_names[0])
    volume = prompt_float("Volume (m³)")
    cement = prompt_float("Cement content (kg/m³)", default=300.0)
    item = ConcreteItem(
        concrete_type_name=concrete_type,
        quantity=volume,
        cement_mass_per_volume=cement,
    )
    if prompt_yes_no("Reinforced concrete?", default=False):
        rebar_names = [f"{e.name} ({e.factor} {e.unit})" for e in factors.rebar]
        picked = prompt_choice("Rebar factor", rebar_names, default=rebar_names[0])
        item.is_reinforced = True
        item.rebar_factor = factors.rebar[rebar_names.index(picked)].factor
        item.rebar_mass_per_volume = prompt_float("Rebar content (kg/m³)", default=100.0)
    return item


def prompt_line_item(category: Category, factors: EmissionFactorTable) -> LineItem:
    """Ask for one line item of the given category."""
    options = factors.option_names(category)
    name = prompt_choice(category.label, options, default=options[0])

    if category is Category.MATERIALS:
        if name == CONCRETE_MATERIAL:
            return prompt_concrete_item(factors)
        return make_material_item(name, prompt_float("Quantity (kg)"))
    if category in (Category.MANUFACTURING, Category.IMPLEMENTATION):
        return ProcessItem(process_name=name, duration_hours=prompt_float("Duration (hours)"))
    if category is Category.TRANSPORT:
        return TransportItem(
            mode_name=name,
            distance_km=prompt_float("Distance (km)"),
            weight_tonnes=prompt_float("Weight (tonnes)"),
        )
    return EndOfLifeItem(method_name=name, weight_kg=prompt_float("Weight (kg)"))


def prompt_line_items(items: LineItems, factors: EmissionFactorTable) -> LineItems:
    """Category by category, append items until the user stops."""
    for category in Category:
        print_header(f"{category.label}")
        while prompt_yes_no(f"Add a {category.label.lower()} line?", default=not items.for_category(category)):
            item = prompt_line_item(category, factors)
            items.append(category, item)
            logger.info(f"  -> Added {display_name(item) or '<unnamed>'} to {category.label}")
    return items


# ============================================================================
# OVERVIEWS
# ============================================================================

def print_line_items(items: LineItems, factors: EmissionFactorTable):
    print(f"\n{C_HEADER}Line items:{C_RESET}")
    if items.is_empty():
        print("  (none)")
        return
    for category in Category:
        rows = items.for_category(category)
        if not rows:
            continue
        print(f"  {Style.BRIGHT}{category.label}{C_RESET}")
        for idx, item in enumerate(rows, 1):
            extra = ""
            if isinstance(item, ConcreteItem):
                parts = concrete_breakdown(item, factors)
                extra = f" (cement {parts['cement_kgco2']:.{DECIMALS}f}, rebar {parts['rebar_kgco2']:.{DECIMALS}f})"
            print(f"    {idx}. {display_name(item) or '<unnamed>'}{extra}")


def print_totals_overview(result: EmissionResult, label: str = ""):
    """
    Common reporting of totals and per-item details.
    """
    title = f"CARBON FOOTPRINT: {label.upper()}" if label else "CARBON FOOTPRINT"
    print(f"\n{Back.BLACK}{C_HEADER}{'='*60}")
    print(f"   {title}")
    print(f"{'='*60}{Style.RESET_ALL}")

    for category in Category:
        print(f"\n{C_HEADER}{category.label}:{C_RESET} {format_emissions(result.total(category))} kg CO2e")
        for d in result.details.get(category, []):
            print(f"  {d.name:<40} : {format_emissions(d.co2e)}")

    print(f"{'-'*60}")
    print(f"  {Style.BRIGHT}TOTAL EMISSIONS : {C_SUCCESS}{format_emissions(result.grand_total)}{C_RESET} {Style.BRIGHT}kg CO2e{C_RESET}")
    print(f"{'='*60}\n")


def print_suggestions(result: Optional[SuggestionResult]):
    if result is None:
        return
    if not result.success:
        logger.error(f"AI suggestion failed: {result.error}")
        return
    print(f"\n{C_HEADER}Assessment:{C_RESET}\n  {result.assessment}")
    print(f"\n{C_HEADER}Recommendations:{C_RESET}")
    for idx, rec in enumerate(result.recommendations, 1):
        print(f"  {idx}. {rec}")

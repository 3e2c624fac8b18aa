from pathlib import Path
from typing import Final

from fastapi.templating import Jinja2Templates

from ..config import settings
from ..domain.constants import (
    NO_COPAY_PLACEHOLDER,
    NO_LIMITS_PLACEHOLDER,
    NO_RULES_PLACEHOLDER,
)
from ..domain.formatting import format_currency, format_number

TEMPLATES_DIR: Final = Path(__file__).parent / "templates"

templates: Final = Jinja2Templates(directory=TEMPLATES_DIR)


def _fragments_filter(cell: str) -> list[str]:
    """Split a matrix cell back into its fragments for badge rendering."""
    return [part for part in cell.split(", ") if part] if cell else []


def _money_filter(amount, digits: int = 2) -> str:
    return format_currency(amount, max_fraction_digits=digits)


templates.env.filters["fragments"] = _fragments_filter
templates.env.filters["money"] = _money_filter
templates.env.filters["number"] = format_number
templates.env.globals["app_name"] = settings.app_name
templates.env.globals["NO_LIMITS"] = NO_LIMITS_PLACEHOLDER
templates.env.globals["NO_RULES"] = NO_RULES_PLACEHOLDER
templates.env.globals["NO_COPAY"] = NO_COPAY_PLACEHOLDER

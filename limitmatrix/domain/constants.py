"""Domain business rules and constants."""

from typing import Final

# Business Rules - Core domain constraints
MAX_DESCRIPTION_LENGTH: Final = 500
MIN_PRIORITY: Final = 1
MAX_COPAY_PERCENT: Final = 100

# Select-box sentinel meaning "no filter"
ALL: Final = "all"

# Priority bands shown in the matrix filter
HIGH_PRIORITY_MAX: Final = 3
MEDIUM_PRIORITY_MAX: Final = 6

# Rendering of empty cells
EMPTY_CSV_CELL: Final = "-"
NO_LIMITS_PLACEHOLDER: Final = "No limits"
NO_RULES_PLACEHOLDER: Final = "No rules"
NO_COPAY_PLACEHOLDER: Final = "No co-pay"

DEFAULT_LINK_TYPE: Final = "DEPENDENCY"

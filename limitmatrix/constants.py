"""Infrastructure and technical constants."""

from typing import Final

# Technical configuration constants
DEFAULT_PORT: Final = 8000
DEFAULT_POLICY_SERVICE_URL: Final = "http://localhost:8080"
DEFAULT_UPSTREAM_TIMEOUT: Final = 10.0

# Upstream policy service paging
COMBINATION_FETCH_SIZE: Final = 1000
DEFAULT_PAGE_SIZE: Final = 20

from typing import Final

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import HTMLResponse

from ..application import combination_service
from ..application.validation import parse_rule_kind
from ..domain.constants import ALL
from ..domain.entities import CashScope, FrequencyAppliesTo, NetworkScope, RuleKind
from ..domain.exceptions import PolicyServiceError
from ..domain.matrix import (
    RULE_FILTER_FIELDS,
    MatrixFilter,
    RuleFilter,
    summarize_matrix,
    summarize_rules,
)
from ..infrastructure.policy_client import PolicyServiceClient, get_policy_client
from ..logging_config import get_logger
from ..request_utils import is_htmx_request
from .api_routes import matrix_filter_params, rule_filter_params
from .error_handlers import ErrorFormatter
from .templating import templates

logger: Final = get_logger(__name__)

router: Final = APIRouter()

RULE_KIND_TITLES: Final = {
    RuleKind.AMOUNTS: "Amount Limits",
    RuleKind.COUNTS: "Count Limits",
    RuleKind.FREQUENCIES: "Frequency Limits",
    RuleKind.CO_INSURANCES: "Co-Insurance",
}

# Select options per filter, rendered only for kinds that support the filter
FILTER_OPTIONS: Final = {
    "network_scope": [scope.value for scope in NetworkScope],
    "cash_scope": [scope.value for scope in CashScope],
    "applies_to": [target.value for target in FrequencyAppliesTo],
}


@router.get("/contracts/{contract_id}/limits", response_class=HTMLResponse)
async def matrix_page(
    request: Request,
    contract_id: int = Path(..., ge=1),
    filters: MatrixFilter = Depends(matrix_filter_params),
    client: PolicyServiceClient = Depends(get_policy_client),
):
    """Matrix view; HTMX requests receive only the table."""
    rows = []
    error = None
    try:
        rows = await combination_service.get_matrix(client, contract_id, filters)
    except PolicyServiceError as e:
        # The page still renders; the banner replaces the table
        logger.warning(
            "Matrix page rendered without data", contract_id=contract_id, error=str(e)
        )
        error = ErrorFormatter.format_user_friendly_message(e)

    template = "_matrix_table.html" if is_htmx_request(request) else "matrix.html"
    return templates.TemplateResponse(
        request,
        template,
        {
            "contract_id": contract_id,
            "rows": rows,
            "summary": summarize_matrix(rows),
            "filters": filters,
            "filters_active": filters.is_active(),
            "error": error,
        },
    )


@router.get(
    "/contracts/{contract_id}/limits/rules/{rule_kind}", response_class=HTMLResponse
)
async def rules_page(
    request: Request,
    contract_id: int = Path(..., ge=1),
    rule_kind: str = Path(...),
    filters: RuleFilter = Depends(rule_filter_params),
    client: PolicyServiceClient = Depends(get_policy_client),
):
    kind = parse_rule_kind(rule_kind)
    combinations = []
    rows = []
    error = None
    try:
        combinations, rows = await combination_service.get_rule_rows(
            client, contract_id, kind, filters
        )
    except PolicyServiceError as e:
        logger.warning(
            "Rule page rendered without data",
            contract_id=contract_id,
            rule_kind=kind.value,
            error=str(e),
        )
        error = ErrorFormatter.format_user_friendly_message(e)

    template = "_rules_table.html" if is_htmx_request(request) else "rules.html"
    return templates.TemplateResponse(
        request,
        template,
        {
            "contract_id": contract_id,
            "kind": kind,
            "title": RULE_KIND_TITLES[kind],
            "combinations": combinations,
            "rows": rows,
            "summary": summarize_rules(kind, rows),
            "filters": filters,
            "filter_fields": {
                field: FILTER_OPTIONS[field] for field in RULE_FILTER_FIELDS[kind]
            },
            "all": ALL,
            "error": error,
        },
    )

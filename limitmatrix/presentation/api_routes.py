from typing import Annotated, Any, Final

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status
from pydantic import Field
from sqlmodel import Session

from ..application import combination_service, link_service
from ..application.validation import parse_rule_kind
from ..constants import DEFAULT_PAGE_SIZE
from ..domain.constants import ALL, DEFAULT_LINK_TYPE, MAX_DESCRIPTION_LENGTH
from ..domain.entities import CamelModel, LimitCombination, LimitCombinationPayload
from ..domain.links import LinkedCombination
from ..domain.matrix import (
    MatrixFilter,
    MatrixRow,
    MatrixSummary,
    RuleFilter,
    RuleSummary,
    summarize_matrix,
    summarize_rules,
)
from ..infrastructure.database.database import get_session
from ..infrastructure.policy_client import PolicyServiceClient, get_policy_client

api_router: Final = APIRouter(
    prefix="/api/contracts/{contract_id}/limits",
    responses={
        400: {"description": "Bad Request - Invalid input or filter"},
        404: {"description": "Not Found - Combination or link does not exist"},
        409: {"description": "Conflict - Duplicate or circular link"},
        502: {"description": "Bad Gateway - Policy service unavailable"},
    },
)

ContractId = Annotated[int, Path(ge=1, description="Contract identifier")]

# Query parameters of the paginated list that are not forwarded as filters
_PAGING_PARAMS: Final = {"page", "size"}


# Request Models
class LinkCreate(CamelModel):
    """Request model for linking two combinations."""

    parent_combination_id: int = Field(..., ge=1, description="Parent combination")
    child_combination_id: int = Field(..., ge=1, description="Child combination")
    link_type: str | None = Field(
        default=DEFAULT_LINK_TYPE, max_length=50, examples=["DEPENDENCY"]
    )
    description: str | None = Field(
        default=None,
        max_length=MAX_DESCRIPTION_LENGTH,
        examples=["Maternity visits depend on general consultation limits"],
    )


# Response Models
class MatrixResponse(CamelModel):
    """Matrix view of a contract's combinations."""

    contract_id: int = Field(description="Contract identifier")
    count: int = Field(description="Number of rows after filtering")
    rows: list[MatrixRow] = Field(description="One row per combination")
    summary: MatrixSummary = Field(description="Counts over the filtered rows")


class RuleRowsResponse(CamelModel):
    """Flattened rules of one kind across a contract's combinations."""

    contract_id: int
    rule_kind: str
    count: int
    rows: list[dict[str, Any]] = Field(
        description="Rule fields plus combinationId and combinationDescription"
    )
    summary: RuleSummary = Field(description="Figures over the filtered rules")


class LinkResponse(CamelModel):
    id: int
    contract_id: int
    parent_combination_id: int
    child_combination_id: int
    link_type: str
    description: str | None = None

    @classmethod
    def from_domain(cls, link: LinkedCombination) -> "LinkResponse":
        return cls(
            id=link.id,
            contract_id=link.contract_id,
            parent_combination_id=link.parent_combination_id,
            child_combination_id=link.child_combination_id,
            link_type=link.link_type,
            description=link.description,
        )


class LinkListResponse(CamelModel):
    links: list[LinkResponse]


class CombinationOption(CamelModel):
    """Short form of a combination for select boxes."""

    id: int
    description: str | None = None
    priority: int


# Combination pass-through


@api_router.get(
    "/combinations",
    summary="List combinations (paginated)",
    description="Forwards paging and filter parameters to the policy service.",
)
async def api_list_combinations(
    request: Request,
    contract_id: ContractId,
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=1000),
    client: PolicyServiceClient = Depends(get_policy_client),
) -> dict[str, Any]:
    params = {
        key: value
        for key, value in request.query_params.items()
        if key not in _PAGING_PARAMS
    }
    result = await combination_service.list_combinations(
        client, contract_id, page=page, size=size, params=params
    )
    return result.model_dump(mode="json", by_alias=True)


@api_router.post(
    "/combinations",
    response_model=LimitCombination,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a combination",
)
async def api_create_combination(
    payload: LimitCombinationPayload,
    contract_id: ContractId,
    client: PolicyServiceClient = Depends(get_policy_client),
) -> LimitCombination:
    return await combination_service.create_combination(client, contract_id, payload)


@api_router.get(
    "/combinations/{combination_id}",
    response_model=LimitCombination,
    response_model_by_alias=True,
    summary="Get a combination",
)
async def api_get_combination(
    contract_id: ContractId,
    combination_id: int = Path(..., ge=1),
    client: PolicyServiceClient = Depends(get_policy_client),
) -> LimitCombination:
    return await combination_service.get_combination(client, contract_id, combination_id)


@api_router.put(
    "/combinations/{combination_id}",
    response_model=LimitCombination,
    response_model_by_alias=True,
    summary="Replace a combination",
)
async def api_update_combination(
    payload: LimitCombinationPayload,
    contract_id: ContractId,
    combination_id: int = Path(..., ge=1),
    client: PolicyServiceClient = Depends(get_policy_client),
) -> LimitCombination:
    return await combination_service.update_combination(
        client, contract_id, combination_id, payload
    )


@api_router.delete(
    "/combinations/{combination_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a combination and its links",
)
async def api_delete_combination(
    contract_id: ContractId,
    combination_id: int = Path(..., ge=1),
    client: PolicyServiceClient = Depends(get_policy_client),
    session: Session = Depends(get_session),
) -> Response:
    await combination_service.delete_combination(
        client, session, contract_id, combination_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Projections


def matrix_filter_params(
    search: str = Query("", description="Substring of description or id"),
    region: str = Query(ALL, description="Region id or 'all'"),
    network: str = Query(ALL, description="Network id or 'all'"),
    priority: str = Query(ALL, description="high, medium, low or 'all'"),
) -> MatrixFilter:
    return MatrixFilter(search=search, region=region, network=network, priority=priority)


def rule_filter_params(
    combination: str = Query(ALL, description="Combination id or 'all'"),
    network_scope: str = Query(ALL, alias="networkScope"),
    cash_scope: str = Query(ALL, alias="cashScope"),
    applies_to: str = Query(ALL, alias="appliesTo"),
) -> RuleFilter:
    return RuleFilter(
        combination=combination,
        network_scope=network_scope,
        cash_scope=cash_scope,
        applies_to=applies_to,
    )


@api_router.get(
    "/matrix",
    response_model=MatrixResponse,
    response_model_by_alias=True,
    summary="Matrix view",
    description="""
    One row per combination with amount, count and co-insurance rules grouped
    by network scope and frequencies joined into one cell. All filtering is
    done in memory on a single fetch of the contract's combinations.
    """,
)
async def api_matrix(
    contract_id: ContractId,
    filters: MatrixFilter = Depends(matrix_filter_params),
    client: PolicyServiceClient = Depends(get_policy_client),
) -> MatrixResponse:
    rows = await combination_service.get_matrix(client, contract_id, filters)
    return MatrixResponse(
        contract_id=contract_id,
        count=len(rows),
        rows=rows,
        summary=summarize_matrix(rows),
    )


@api_router.get(
    "/matrix/export",
    summary="Export the matrix view as CSV",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}},
)
async def api_export_matrix(
    contract_id: ContractId,
    filters: MatrixFilter = Depends(matrix_filter_params),
    client: PolicyServiceClient = Depends(get_policy_client),
) -> Response:
    filename, content = await combination_service.export_matrix(
        client, contract_id, filters
    )
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@api_router.get(
    "/rules/{rule_kind}",
    response_model=RuleRowsResponse,
    response_model_by_alias=True,
    summary="Flattened rules of one kind",
)
async def api_rule_rows(
    contract_id: ContractId,
    rule_kind: str = Path(..., description="amounts, counts, frequencies, coInsurances"),
    filters: RuleFilter = Depends(rule_filter_params),
    client: PolicyServiceClient = Depends(get_policy_client),
) -> RuleRowsResponse:
    kind = parse_rule_kind(rule_kind)
    _, rows = await combination_service.get_rule_rows(client, contract_id, kind, filters)
    return RuleRowsResponse(
        contract_id=contract_id,
        rule_kind=kind.value,
        count=len(rows),
        rows=[row.to_wire() for row in rows],
        summary=summarize_rules(kind, rows),
    )


# Linked combinations


@api_router.get("/links", response_model=LinkListResponse, response_model_by_alias=True)
async def api_list_links(
    contract_id: ContractId, session: Session = Depends(get_session)
) -> LinkListResponse:
    links = link_service.list_links(session, contract_id)
    return LinkListResponse(links=[LinkResponse.from_domain(link) for link in links])


@api_router.post(
    "/links",
    response_model=LinkResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    summary="Link two combinations",
)
async def api_create_link(
    body: LinkCreate,
    contract_id: ContractId,
    session: Session = Depends(get_session),
    client: PolicyServiceClient = Depends(get_policy_client),
) -> LinkResponse:
    link = await link_service.create_link(
        session,
        client,
        contract_id,
        parent_combination_id=body.parent_combination_id,
        child_combination_id=body.child_combination_id,
        link_type=body.link_type,
        description=body.description,
    )
    return LinkResponse.from_domain(link)


@api_router.get(
    "/links/available-children",
    response_model=list[CombinationOption],
    response_model_by_alias=True,
    summary="Combinations that can be linked below a parent",
)
async def api_available_children(
    contract_id: ContractId,
    parent: int = Query(..., ge=1, description="Parent combination id"),
    session: Session = Depends(get_session),
    client: PolicyServiceClient = Depends(get_policy_client),
) -> list[CombinationOption]:
    children = await link_service.get_available_children(
        session, client, contract_id, parent
    )
    return [
        CombinationOption(
            id=child.id, description=child.description, priority=child.priority
        )
        for child in children
        if child.id is not None
    ]


@api_router.delete("/links/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def api_delete_link(
    contract_id: ContractId,
    link_id: int = Path(..., ge=1),
    session: Session = Depends(get_session),
) -> Response:
    link_service.delete_link(session, contract_id, link_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

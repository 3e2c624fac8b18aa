"""Use cases for limit combinations.

Combinations are owned by the policy service. Every projection fetches the
contract once, then builds and filters rows in memory.
"""

from collections.abc import Mapping
from typing import Any, Final

from sqlmodel import Session

from ..domain.entities import (
    CombinationPage,
    LimitCombination,
    LimitCombinationPayload,
    RuleKind,
)
from ..domain.export import export_matrix_csv, matrix_csv_filename
from ..domain.matrix import (
    MatrixFilter,
    MatrixRow,
    RuleFilter,
    RuleRow,
    build_matrix,
    filter_matrix_rows,
    filter_rule_rows,
    flatten_rule_type,
)
from ..infrastructure.database.repositories import LinkedCombinationRepository
from ..infrastructure.policy_client import PolicyServiceClient
from ..logging_config import get_logger
from ..metrics import (
    combinations_projected,
    csv_exports_total,
    matrix_projections_total,
    rule_projections_total,
)

logger: Final = get_logger(__name__)


async def load_combinations(
    client: PolicyServiceClient, contract_id: int
) -> list[LimitCombination]:
    """Load the contract's combinations with a single upstream request."""
    combinations = await client.fetch_all_combinations(contract_id)
    logger.debug(
        "Loaded combinations", contract_id=contract_id, count=len(combinations)
    )
    return combinations


async def get_matrix(
    client: PolicyServiceClient, contract_id: int, filters: MatrixFilter
) -> list[MatrixRow]:
    combinations = await load_combinations(client, contract_id)
    rows = filter_matrix_rows(build_matrix(combinations), filters)

    matrix_projections_total.add(1)
    combinations_projected.record(len(combinations), {"view": "matrix"})
    logger.info(
        "Matrix built",
        contract_id=contract_id,
        combinations=len(combinations),
        displayed=len(rows),
    )
    return rows


async def get_rule_rows(
    client: PolicyServiceClient,
    contract_id: int,
    kind: RuleKind,
    filters: RuleFilter,
) -> tuple[list[LimitCombination], list[RuleRow]]:
    """Return the combinations (for the selector) and the filtered rule rows."""
    combinations = await load_combinations(client, contract_id)
    rows = filter_rule_rows(flatten_rule_type(combinations, kind), kind, filters)

    rule_projections_total.add(1, {"rule_kind": kind.value})
    combinations_projected.record(len(combinations), {"view": kind.value})
    logger.info(
        "Rule rows built",
        contract_id=contract_id,
        rule_kind=kind.value,
        displayed=len(rows),
    )
    return combinations, rows


async def export_matrix(
    client: PolicyServiceClient, contract_id: int, filters: MatrixFilter
) -> tuple[str, str]:
    """Return ``(filename, csv_text)`` for the filtered matrix."""
    combinations = await load_combinations(client, contract_id)
    rows = filter_matrix_rows(build_matrix(combinations), filters)
    content = export_matrix_csv(rows)

    csv_exports_total.add(1)
    logger.info("Matrix exported", contract_id=contract_id, rows=len(rows))
    return matrix_csv_filename(contract_id), content


async def list_combinations(
    client: PolicyServiceClient,
    contract_id: int,
    page: int,
    size: int,
    params: Mapping[str, Any] | None = None,
) -> CombinationPage:
    return await client.list_combinations(contract_id, page=page, size=size, params=params)


async def get_combination(
    client: PolicyServiceClient, contract_id: int, combination_id: int
) -> LimitCombination:
    return await client.get_combination(contract_id, combination_id)


async def create_combination(
    client: PolicyServiceClient, contract_id: int, payload: LimitCombinationPayload
) -> LimitCombination:
    created = await client.create_combination(contract_id, payload)
    logger.info(
        "Combination created",
        contract_id=contract_id,
        combination_id=created.id,
        priority=created.priority,
    )
    return created


async def update_combination(
    client: PolicyServiceClient,
    contract_id: int,
    combination_id: int,
    payload: LimitCombinationPayload,
) -> LimitCombination:
    updated = await client.update_combination(contract_id, combination_id, payload)
    logger.info(
        "Combination updated", contract_id=contract_id, combination_id=combination_id
    )
    return updated


async def delete_combination(
    client: PolicyServiceClient,
    session: Session,
    contract_id: int,
    combination_id: int,
) -> int:
    """Delete upstream, then drop local links that pointed at it.

    Returns the number of links removed.
    """
    await client.delete_combination(contract_id, combination_id)
    removed = LinkedCombinationRepository(session).delete_for_combination(
        contract_id, combination_id
    )
    logger.info(
        "Combination deleted",
        contract_id=contract_id,
        combination_id=combination_id,
        links_removed=removed,
    )
    return removed

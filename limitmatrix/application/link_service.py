"""Use cases for linked combinations.

Links live in this service's database; the combinations they connect live in
the policy service and are fetched to check that both ends exist.
"""

from typing import Final

from sqlmodel import Session

from ..domain.constants import DEFAULT_LINK_TYPE
from ..domain.entities import LimitCombination
from ..domain.exceptions import CyclicLinkError, LinkNotFoundError
from ..domain.links import LinkedCombination, available_children, creates_cycle
from ..infrastructure.database.repositories import LinkedCombinationRepository
from ..infrastructure.policy_client import PolicyServiceClient
from ..logging_config import get_logger
from ..logging_utils import log_database_operation
from ..metrics import links_created_total, links_rejected_total
from .combination_service import load_combinations
from .validation import ensure_combinations_exist

logger: Final = get_logger(__name__)


def list_links(session: Session, contract_id: int) -> list[LinkedCombination]:
    return LinkedCombinationRepository(session).find_by_contract(contract_id)


async def create_link(
    session: Session,
    client: PolicyServiceClient,
    contract_id: int,
    parent_combination_id: int,
    child_combination_id: int,
    link_type: str | None = None,
    description: str | None = None,
) -> LinkedCombination:
    """Create a parent -> child link.

    Raises:
        ValidationError: If parent and child are the same combination
        CombinationNotFoundError: If either end is not a combination of the contract
        LinkAlreadyExistsError: If the same link already exists
        CyclicLinkError: If the link would make a combination depend on itself
    """
    logger.debug(
        "Creating link",
        contract_id=contract_id,
        parent=parent_combination_id,
        child=child_combination_id,
    )

    # Entity validates parent != child on construction
    link = LinkedCombination(
        id=None,
        contract_id=contract_id,
        parent_combination_id=parent_combination_id,
        child_combination_id=child_combination_id,
        link_type=(link_type or DEFAULT_LINK_TYPE).strip(),
        description=description.strip() if description else None,
    )

    combinations = await load_combinations(client, contract_id)
    ensure_combinations_exist(
        combinations, contract_id, parent_combination_id, child_combination_id
    )

    repository = LinkedCombinationRepository(session)
    edges = [existing.edge for existing in repository.find_by_contract(contract_id)]
    if creates_cycle(edges, parent_combination_id, child_combination_id):
        links_rejected_total.add(1, {"reason": "cycle"})
        logger.warning(
            "Link rejected - would create cycle",
            contract_id=contract_id,
            parent=parent_combination_id,
            child=child_combination_id,
        )
        raise CyclicLinkError(
            f"Linking {parent_combination_id} to {child_combination_id} would "
            "create a circular dependency"
        )

    saved = repository.save(link)

    links_created_total.add(1)
    log_database_operation(
        operation="create",
        table="LinkedCombination",
        success=True,
        link_id=saved.id,
        contract_id=contract_id,
    )
    return saved


def delete_link(session: Session, contract_id: int, link_id: int) -> None:
    if not LinkedCombinationRepository(session).delete(contract_id, link_id):
        raise LinkNotFoundError(
            f"Link {link_id} does not exist for contract {contract_id}"
        )
    log_database_operation(
        operation="delete",
        table="LinkedCombination",
        success=True,
        link_id=link_id,
        contract_id=contract_id,
    )


async def get_available_children(
    session: Session,
    client: PolicyServiceClient,
    contract_id: int,
    parent_combination_id: int,
) -> list[LimitCombination]:
    combinations = await load_combinations(client, contract_id)
    ensure_combinations_exist(combinations, contract_id, parent_combination_id)
    links = list_links(session, contract_id)
    return available_children(combinations, links, parent_combination_id)

"""Tests for linked combinations: graph rules, repository and service."""

import pytest
from sqlmodel import Session

from limitmatrix.application import link_service
from limitmatrix.domain.entities import LimitCombination
from limitmatrix.domain.exceptions import (
    CombinationNotFoundError,
    CyclicLinkError,
    LinkAlreadyExistsError,
    LinkNotFoundError,
    ValidationError,
)
from limitmatrix.domain.links import (
    LinkedCombination,
    available_children,
    creates_cycle,
    reachable_from,
)
from limitmatrix.infrastructure.database.repositories import (
    LinkedCombinationRepository,
)


def _link(parent: int, child: int, contract_id: int = 42, link_id=None):
    return LinkedCombination(
        id=link_id,
        contract_id=contract_id,
        parent_combination_id=parent,
        child_combination_id=child,
    )


class TestLinkGraph:
    def test_self_link_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _link(1, 1)
        assert exc_info.value.field == "childCombinationId"

    def test_blank_link_type_is_rejected(self):
        with pytest.raises(ValidationError):
            LinkedCombination(
                id=None,
                contract_id=1,
                parent_combination_id=1,
                child_combination_id=2,
                link_type="  ",
            )

    def test_reachable_follows_transitive_links(self):
        edges = [(1, 2), (2, 3), (4, 5)]
        assert reachable_from(edges, 1) == {2, 3}
        assert reachable_from(edges, 3) == set()

    def test_cycle_detection(self):
        edges = [(1, 2), (2, 3)]
        assert creates_cycle(edges, 3, 1)
        assert creates_cycle(edges, 2, 1)
        assert not creates_cycle(edges, 1, 3)
        assert not creates_cycle(edges, 4, 1)

    def test_available_children(self):
        combinations = [
            LimitCombination(id=combination_id) for combination_id in (1, 2, 3, 4)
        ]
        links = [_link(1, 2), _link(3, 1)]

        options = available_children(combinations, links, parent_id=1)

        # 1 is the parent, 2 is already a child, 3 would close a cycle
        assert [c.id for c in options] == [4]


class TestLinkedCombinationRepository:
    def test_save_and_find(self, session: Session):
        repository = LinkedCombinationRepository(session)
        saved = repository.save(_link(1, 2))

        assert saved.id is not None
        assert repository.find_by_id(42, saved.id) == saved
        assert repository.find_by_id(43, saved.id) is None
        assert repository.find_by_contract(42) == [saved]

    def test_duplicate_edge_is_rejected(self, session: Session):
        repository = LinkedCombinationRepository(session)
        repository.save(_link(1, 2))

        with pytest.raises(LinkAlreadyExistsError):
            repository.save(_link(1, 2))

        # Same edge in another contract is fine
        repository.save(_link(1, 2, contract_id=43))

    def test_delete_is_scoped_to_contract(self, session: Session):
        repository = LinkedCombinationRepository(session)
        saved = repository.save(_link(1, 2))

        assert repository.delete(43, saved.id) is False
        assert repository.delete(42, saved.id) is True
        assert repository.find_by_contract(42) == []

    def test_delete_for_combination(self, session: Session):
        repository = LinkedCombinationRepository(session)
        repository.save(_link(1, 2))
        repository.save(_link(3, 1))
        kept = repository.save(_link(2, 3))

        assert repository.delete_for_combination(42, 1) == 2
        assert repository.find_by_contract(42) == [kept]


class TestLinkService:
    @pytest.fixture(autouse=True)
    def _combinations(self, policy_backend):
        for combination_id in (1, 2, 3):
            policy_backend.add(
                42, id=combination_id, description=f"Combination {combination_id}"
            )

    @pytest.mark.asyncio
    async def test_create_link(self, session, make_client):
        async with make_client() as client:
            link = await link_service.create_link(
                session, client, 42, 1, 2, description="  Needs 1 first  "
            )

        assert link.id is not None
        assert link.link_type == "DEPENDENCY"
        assert link.description == "Needs 1 first"
        assert link_service.list_links(session, 42) == [link]

    @pytest.mark.asyncio
    async def test_cycle_is_rejected(self, session, make_client):
        async with make_client() as client:
            await link_service.create_link(session, client, 42, 1, 2)
            await link_service.create_link(session, client, 42, 2, 3)

            with pytest.raises(CyclicLinkError):
                await link_service.create_link(session, client, 42, 3, 1)

        assert len(link_service.list_links(session, 42)) == 2

    @pytest.mark.asyncio
    async def test_duplicate_is_rejected(self, session, make_client):
        async with make_client() as client:
            await link_service.create_link(session, client, 42, 1, 2)
            with pytest.raises(LinkAlreadyExistsError):
                await link_service.create_link(session, client, 42, 1, 2)

    @pytest.mark.asyncio
    async def test_unknown_combination_is_rejected(self, session, make_client):
        async with make_client() as client:
            with pytest.raises(CombinationNotFoundError):
                await link_service.create_link(session, client, 42, 1, 99)

    @pytest.mark.asyncio
    async def test_self_link_fails_before_calling_backend(
        self, session, make_client, policy_backend
    ):
        async with make_client() as client:
            with pytest.raises(ValidationError):
                await link_service.create_link(session, client, 42, 2, 2)
        assert policy_backend.requests == []

    @pytest.mark.asyncio
    async def test_available_children(self, session, make_client):
        async with make_client() as client:
            await link_service.create_link(session, client, 42, 1, 2)
            options = await link_service.get_available_children(session, client, 42, 2)

        assert [c.id for c in options] == [3]

    def test_delete_missing_link(self, session):
        with pytest.raises(LinkNotFoundError):
            link_service.delete_link(session, 42, 12345)

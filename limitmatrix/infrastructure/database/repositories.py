"""Infrastructure layer - Repository implementations."""

from sqlalchemy import or_
from sqlmodel import Session, select

from ...domain.exceptions import LinkAlreadyExistsError
from ...domain.links import LinkedCombination as DomainLinkedCombination
from .models import LinkedCombination as LinkedCombinationModel


class LinkedCombinationRepository:
    """Repository for linked combination persistence operations."""

    def __init__(self, session: Session):
        self.session = session

    def save(self, domain_link: DomainLinkedCombination) -> DomainLinkedCombination:
        """Save domain link to database."""
        link_model = LinkedCombinationModel.from_domain(domain_link)

        if link_model.id is None:
            existing = self.session.exec(
                select(LinkedCombinationModel).where(
                    LinkedCombinationModel.contract_id == link_model.contract_id,
                    LinkedCombinationModel.parent_combination_id
                    == link_model.parent_combination_id,
                    LinkedCombinationModel.child_combination_id
                    == link_model.child_combination_id,
                )
            ).first()
            if existing:
                raise LinkAlreadyExistsError(
                    f"Combination {link_model.parent_combination_id} is already "
                    f"linked to {link_model.child_combination_id}"
                )

        self.session.add(link_model)
        self.session.commit()
        self.session.refresh(link_model)

        return link_model.to_domain()

    def find_by_id(
        self, contract_id: int, link_id: int
    ) -> DomainLinkedCombination | None:
        """Find a link of a contract by ID."""
        link_model = self.session.get(LinkedCombinationModel, link_id)
        if link_model is None or link_model.contract_id != contract_id:
            return None
        return link_model.to_domain()

    def find_by_contract(self, contract_id: int) -> list[DomainLinkedCombination]:
        """Get all links of a contract, oldest first."""
        links = self.session.exec(
            select(LinkedCombinationModel)
            .where(LinkedCombinationModel.contract_id == contract_id)
            .order_by(LinkedCombinationModel.id)  # type: ignore[arg-type]
        ).all()
        return [link.to_domain() for link in links]

    def delete(self, contract_id: int, link_id: int) -> bool:
        """Delete link by ID."""
        link_model = self.session.get(LinkedCombinationModel, link_id)
        if link_model and link_model.contract_id == contract_id:
            self.session.delete(link_model)
            self.session.commit()
            return True
        return False

    def delete_for_combination(self, contract_id: int, combination_id: int) -> int:
        """Delete every link touching a combination; returns how many went."""
        links = self.session.exec(
            select(LinkedCombinationModel).where(
                LinkedCombinationModel.contract_id == contract_id,
                or_(
                    LinkedCombinationModel.parent_combination_id == combination_id,
                    LinkedCombinationModel.child_combination_id == combination_id,
                ),
            )
        ).all()
        for link in links:
            self.session.delete(link)
        self.session.commit()
        return len(links)

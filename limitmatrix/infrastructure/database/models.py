from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ...domain.constants import DEFAULT_LINK_TYPE, MAX_DESCRIPTION_LENGTH
from ...domain.links import LinkedCombination as DomainLinkedCombination


class LinkedCombination(SQLModel, table=True):  # type: ignore[call-arg]
    """A dependency edge between two combinations of the same contract."""

    __table_args__ = (
        UniqueConstraint(
            "contract_id",
            "parent_combination_id",
            "child_combination_id",
            name="uq_linked_combination_edge",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    contract_id: int = Field(index=True)
    parent_combination_id: int = Field(index=True)
    child_combination_id: int = Field(index=True)
    link_type: str = Field(default=DEFAULT_LINK_TYPE, max_length=50)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)

    @classmethod
    def from_domain(cls, domain_link: DomainLinkedCombination) -> "LinkedCombination":
        """Convert domain entity to persistence model."""
        return cls(
            id=domain_link.id,
            contract_id=domain_link.contract_id,
            parent_combination_id=domain_link.parent_combination_id,
            child_combination_id=domain_link.child_combination_id,
            link_type=domain_link.link_type,
            description=domain_link.description,
        )

    def to_domain(self) -> DomainLinkedCombination:
        """Convert persistence model to domain entity."""
        return DomainLinkedCombination(
            id=self.id,
            contract_id=self.contract_id,
            parent_combination_id=self.parent_combination_id,
            child_combination_id=self.child_combination_id,
            link_type=self.link_type,
            description=self.description,
        )

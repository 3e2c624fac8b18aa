"""Limit combination entities as exchanged with the policy service.

Attributes are snake_case in Python and camelCase on the wire. Every nested
rule list defaults to empty, so ``None`` from the backend and a missing key
behave the same.

Rules are read leniently: enum values outside the known set become ``None``
and numeric bounds are not checked. The bounds apply to the ``*Input`` rules of
``LimitCombinationPayload``, which is what the edit form sends.
"""

from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import MAX_COPAY_PERCENT, MAX_DESCRIPTION_LENGTH, MIN_PRIORITY


class LimitScope(StrEnum):
    GROUP_CONTRACT = "GROUP_CONTRACT"
    INDIVIDUAL_CONTRACT = "INDIVIDUAL_CONTRACT"
    INDIVIDUAL_CASE = "INDIVIDUAL_CASE"
    INDIVIDUAL_VISIT = "INDIVIDUAL_VISIT"
    INDIVIDUAL_CLAIM = "INDIVIDUAL_CLAIM"
    VISIT = "VISIT"
    CLAIM = "CLAIM"


class NetworkScope(StrEnum):
    IN = "IN"
    OUT = "OUT"
    IN_OUT = "IN_OUT"


class LimitPeriod(StrEnum):
    PER_YEAR = "PER_YEAR"
    PER_CASE = "PER_CASE"
    PER_VISIT = "PER_VISIT"
    PER_CLAIM = "PER_CLAIM"
    PER_MONTH = "PER_MONTH"
    PER_DAY = "PER_DAY"

    @property
    def label(self) -> str:
        """Period name without the ``PER_`` prefix, e.g. ``YEAR``."""
        return self.value.removeprefix("PER_")


class FrequencyUnit(StrEnum):
    DAY = "DAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    YEAR = "YEAR"


class FrequencyAppliesTo(StrEnum):
    VISIT = "VISIT"
    CLAIM = "CLAIM"
    SERVICE = "SERVICE"


class CashScope(StrEnum):
    CASH = "CASH"
    NON_CASH = "NON_CASH"
    BOTH = "BOTH"


class InsuranceDegree(StrEnum):
    FIRST = "FIRST"
    SECOND = "SECOND"
    THIRD = "THIRD"


class RuleKind(StrEnum):
    """The four nested rule collections of a combination."""

    AMOUNTS = "amounts"
    COUNTS = "counts"
    FREQUENCIES = "frequencies"
    CO_INSURANCES = "coInsurances"

    @property
    def attribute(self) -> str:
        """Python attribute holding this collection on ``LimitCombination``."""
        return "co_insurances" if self is RuleKind.CO_INSURANCES else self.value


class CamelModel(BaseModel):
    """Base model serialising to the backend's camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
        allow_inf_nan=False,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _known_or_none(enum_type: type[StrEnum]) -> BeforeValidator:
    """Map values outside ``enum_type`` to ``None`` instead of failing."""

    def parse(value: Any) -> Any:
        if value is None or isinstance(value, enum_type):
            return value
        try:
            return enum_type(value)
        except ValueError:
            return None

    return BeforeValidator(parse)


# Read-side enum fields; unknown values become None
ReadLimitScope = Annotated[LimitScope | None, _known_or_none(LimitScope)]
ReadNetworkScope = Annotated[NetworkScope | None, _known_or_none(NetworkScope)]
ReadLimitPeriod = Annotated[LimitPeriod | None, _known_or_none(LimitPeriod)]
ReadFrequencyUnit = Annotated[FrequencyUnit | None, _known_or_none(FrequencyUnit)]
ReadAppliesTo = Annotated[
    FrequencyAppliesTo | None, _known_or_none(FrequencyAppliesTo)
]
ReadCashScope = Annotated[CashScope | None, _known_or_none(CashScope)]


class AmountLimit(CamelModel):
    """Maximum money covered within a period."""

    id: int | None = None
    scope: ReadLimitScope = None
    network_scope: ReadNetworkScope = None
    amount: float
    limit_period: ReadLimitPeriod = None


class CountLimit(CamelModel):
    """Maximum number of occurrences within a period."""

    id: int | None = None
    scope: ReadLimitScope = None
    network_scope: ReadNetworkScope = None
    count_limit: int
    limit_period: ReadLimitPeriod = None


class FrequencyLimit(CamelModel):
    """At most ``freq_value`` per ``freq_unit``, optionally over a day window."""

    id: int | None = None
    freq_value: int
    freq_unit: ReadFrequencyUnit = None
    freq_over: int | None = None
    applies_to: ReadAppliesTo = None


class CoInsurance(CamelModel):
    """Member cost share applied once a claim is otherwise covered."""

    id: int | None = None
    network_scope: ReadNetworkScope = None
    cash_scope: ReadCashScope = None
    deductible: float
    copay_percent: float
    max_copay_visit: float | None = None
    max_copay_claim: float | None = None
    deductible_copay_min: float | None = None
    deductible_copay_max: float | None = None


# Write-side rules: what the edit form may send to the policy service


class AmountLimitInput(AmountLimit):
    scope: LimitScope | None = None
    network_scope: NetworkScope
    amount: float = Field(ge=0)
    limit_period: LimitPeriod


class CountLimitInput(CountLimit):
    scope: LimitScope | None = None
    network_scope: NetworkScope
    count_limit: int = Field(ge=0)
    limit_period: LimitPeriod


class FrequencyLimitInput(FrequencyLimit):
    freq_value: int = Field(ge=1)
    freq_unit: FrequencyUnit
    freq_over: int | None = Field(default=None, ge=1)
    applies_to: FrequencyAppliesTo


class CoInsuranceInput(CoInsurance):
    network_scope: NetworkScope
    cash_scope: CashScope
    deductible: float = Field(ge=0)
    copay_percent: float = Field(ge=0, le=MAX_COPAY_PERCENT)
    max_copay_visit: float | None = Field(default=None, ge=0)
    max_copay_claim: float | None = Field(default=None, ge=0)
    deductible_copay_min: float | None = Field(default=None, ge=0)
    deductible_copay_max: float | None = Field(default=None, ge=0)


class CombinationScope(CamelModel):
    """Scope selector dimensions shared by reads and writes.

    ``None`` on any dimension means "any value".
    """

    region_id: int | None = None
    subscriber_type_id: int | None = None
    subscriber_id: int | None = None
    claim_type_id: int | None = None
    service_type_id: int | None = None
    mp_type_id: int | None = None
    network_id: int | None = None
    insurance_degree: str | None = None
    coverage_type: str | None = None
    icd_basket_id: int | None = None
    icd_id: int | None = None
    hcpcs_basket_id: int | None = None
    procedure_id: int | None = None
    drug_basket_id: int | None = None
    drug_id: int | None = None
    doctor_specialty_id: int | None = None
    description: str | None = None
    priority: int = 1

    amounts: list[AmountLimit] = Field(default_factory=list)
    counts: list[CountLimit] = Field(default_factory=list)
    frequencies: list[FrequencyLimit] = Field(default_factory=list)
    co_insurances: list[CoInsurance] = Field(default_factory=list)

    @field_validator("amounts", "counts", "frequencies", "co_insurances", mode="before")
    @classmethod
    def null_list_is_empty(cls, v):
        return [] if v is None else v

    def rules(self, kind: RuleKind) -> list:
        """Return the nested rule list for ``kind``."""
        return getattr(self, kind.attribute)


class LimitCombination(CombinationScope):
    """A stored combination as returned by the policy service."""

    id: int | None = None
    contract_id: int | None = None


class LimitCombinationPayload(CombinationScope):
    """Body sent to the policy service when creating or updating."""

    description: str | None = Field(default=None, validate_default=True)

    amounts: list[AmountLimitInput] = Field(default_factory=list)  # type: ignore[assignment]
    counts: list[CountLimitInput] = Field(default_factory=list)  # type: ignore[assignment]
    frequencies: list[FrequencyLimitInput] = Field(default_factory=list)  # type: ignore[assignment]
    co_insurances: list[CoInsuranceInput] = Field(default_factory=list)  # type: ignore[assignment]

    @field_validator("description")
    @classmethod
    def description_required(cls, v: str | None) -> str:
        if v is None or not v.strip():
            raise ValueError("Description is required")
        v = v.strip()
        if len(v) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(
                f"Description cannot be longer than {MAX_DESCRIPTION_LENGTH} characters"
            )
        return v

    @field_validator("priority")
    @classmethod
    def priority_positive(cls, v: int) -> int:
        if v < MIN_PRIORITY:
            raise ValueError(f"Priority must be at least {MIN_PRIORITY}")
        return v


class CombinationPage(CamelModel):
    """Paginated list envelope from the policy service.

    Envelope keys other than the ones declared here are kept as extras so the
    pass-through endpoint returns what the backend sent.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    content: list[LimitCombination] = Field(default_factory=list)
    total_pages: int = 1
    total_elements: int = 0

    @field_validator("content", mode="before")
    @classmethod
    def null_content_is_empty(cls, v):
        return [] if v is None else v

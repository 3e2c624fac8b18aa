"""Shared validation utilities for the application layer.

Domain checks raise ``ValidationError``; these helpers add the logging the
services want around them so failed requests show up in monitoring.
"""

from collections.abc import Iterable

from ..domain.entities import LimitCombination, RuleKind
from ..domain.exceptions import CombinationNotFoundError, ValidationError
from ..logging_config import get_logger

logger = get_logger(__name__)


def parse_rule_kind(value: str) -> RuleKind:
    """Map a path segment such as ``amounts`` or ``coInsurances`` to a kind.

    ``co-insurances`` and ``co_insurances`` are accepted as spellings of
    ``coInsurances``.
    """
    normalized = value.strip()
    if normalized.replace("-", "_").lower() == "co_insurances":
        normalized = RuleKind.CO_INSURANCES.value
    try:
        return RuleKind(normalized)
    except ValueError:
        logger.warning("Unknown rule kind requested", rule_kind=repr(value))
        allowed = ", ".join(kind.value for kind in RuleKind)
        raise ValidationError(
            f"Unknown rule kind '{value}'. Expected one of: {allowed}",
            field="ruleKind",
        ) from None


def ensure_combinations_exist(
    combinations: Iterable[LimitCombination], contract_id: int, *combination_ids: int
) -> None:
    """Raise if any id is not among the contract's combinations."""
    known = {combination.id for combination in combinations}
    missing = [cid for cid in combination_ids if cid not in known]
    if missing:
        logger.warning(
            "Combination reference not found",
            contract_id=contract_id,
            missing_ids=missing,
        )
        raise CombinationNotFoundError(
            f"Combination {missing[0]} does not exist for contract {contract_id}"
        )

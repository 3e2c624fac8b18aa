"""Projection of limit combinations into display rows.

Two projections exist:

* the matrix view, one summary row per combination where each nested rule is
  rendered as a short text fragment and bucketed by network scope;
* the per-rule-type views, one row per individual rule tagged with the id and
  description of the combination that owns it.

Both are pure functions of their input and are followed by in-memory
filtering; neither talks to the policy service. The summaries shown under
each table are computed from the filtered rows.
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from statistics import fmean
from typing import Any

from .constants import ALL, HIGH_PRIORITY_MAX, MEDIUM_PRIORITY_MAX
from .entities import (
    AmountLimit,
    CamelModel,
    CoInsurance,
    CountLimit,
    FrequencyLimit,
    LimitCombination,
    NetworkScope,
    RuleKind,
)
from .exceptions import ValidationError
from .formatting import format_currency, format_number

FRAGMENT_SEPARATOR = ", "

PRIORITY_BANDS = ("high", "medium", "low")


class MatrixRow(CamelModel):
    """One combination with its rules flattened into display strings."""

    combination: LimitCombination
    amount_in: str = ""
    amount_out: str = ""
    amount_in_out: str = ""
    count_in: str = ""
    count_out: str = ""
    count_in_out: str = ""
    frequencies: str = ""
    co_insurance_in: str = ""
    co_insurance_out: str = ""


def _with_qualifier(text: str, qualifier: str | None) -> str:
    return text if qualifier is None else f"{text} ({qualifier})"


def amount_fragment(limit: AmountLimit) -> str:
    period = limit.limit_period.label if limit.limit_period else None
    return _with_qualifier(format_currency(limit.amount), period)


def count_fragment(limit: CountLimit) -> str:
    period = limit.limit_period.label if limit.limit_period else None
    return _with_qualifier(str(limit.count_limit), period)


def frequency_fragment(limit: FrequencyLimit) -> str:
    if limit.freq_unit is None:
        text = str(limit.freq_value)
    else:
        plural = "s" if limit.freq_value > 1 else ""
        text = f"{limit.freq_value} {limit.freq_unit.value.lower()}{plural}"
    target = limit.applies_to.value if limit.applies_to else None
    return _with_qualifier(text, target)


def co_insurance_fragment(rule: CoInsurance) -> str:
    return (
        f"{format_number(rule.copay_percent)}% "
        f"(Ded: {format_currency(rule.deductible)})"
    )


def _bucket_by_network(rules: Iterable[Any], render) -> dict[NetworkScope, str]:
    """Join rendered fragments per network scope, keeping list order.

    Rules without a known network scope have no column and are skipped.
    """
    buckets: dict[NetworkScope, list[str]] = {scope: [] for scope in NetworkScope}
    for rule in rules:
        if rule.network_scope in buckets:
            buckets[rule.network_scope].append(render(rule))
    return {scope: FRAGMENT_SEPARATOR.join(parts) for scope, parts in buckets.items()}


def build_matrix_row(combination: LimitCombination) -> MatrixRow:
    """Project one combination into a matrix row.

    Co-insurance rules scoped ``IN_OUT`` have no matrix column and are left
    out. Missing rule lists produce empty strings.
    """
    amounts = _bucket_by_network(combination.amounts, amount_fragment)
    counts = _bucket_by_network(combination.counts, count_fragment)
    co_insurances = _bucket_by_network(combination.co_insurances, co_insurance_fragment)
    frequencies = FRAGMENT_SEPARATOR.join(
        frequency_fragment(freq) for freq in combination.frequencies
    )

    return MatrixRow(
        combination=combination,
        amount_in=amounts[NetworkScope.IN],
        amount_out=amounts[NetworkScope.OUT],
        amount_in_out=amounts[NetworkScope.IN_OUT],
        count_in=counts[NetworkScope.IN],
        count_out=counts[NetworkScope.OUT],
        count_in_out=counts[NetworkScope.IN_OUT],
        frequencies=frequencies,
        co_insurance_in=co_insurances[NetworkScope.IN],
        co_insurance_out=co_insurances[NetworkScope.OUT],
    )


def build_matrix(combinations: Iterable[LimitCombination]) -> list[MatrixRow]:
    return [build_matrix_row(combination) for combination in combinations]


@dataclass(frozen=True)
class RuleRow:
    """A single rule together with a back-reference to its combination."""

    rule: AmountLimit | CountLimit | FrequencyLimit | CoInsurance
    combination_id: int | None
    combination_description: str | None

    def to_wire(self) -> dict[str, Any]:
        data = self.rule.to_wire()
        data["combinationId"] = self.combination_id
        data["combinationDescription"] = self.combination_description
        return data


def flatten_rule_type(
    combinations: Iterable[LimitCombination], kind: RuleKind
) -> list[RuleRow]:
    """Flatten every rule of ``kind`` across all combinations."""
    return [
        RuleRow(
            rule=rule,
            combination_id=combination.id,
            combination_description=combination.description,
        )
        for combination in combinations
        for rule in combination.rules(kind)
    ]


# Filtering


class MatrixFilter(CamelModel):
    """Select-box filters of the matrix view; ``all`` disables a filter."""

    search: str = ""
    region: str = ALL
    network: str = ALL
    priority: str = ALL

    def is_active(self) -> bool:
        return bool(self.search.strip()) or any(
            value != ALL for value in (self.region, self.network, self.priority)
        )


def _matches_search(combination: LimitCombination, term: str) -> bool:
    needle = term.lower()
    description = (combination.description or "").lower()
    identifier = "" if combination.id is None else str(combination.id)
    return needle in description or needle in identifier


def _matches_priority_band(priority: int, band: str) -> bool:
    if band == "high":
        return priority <= HIGH_PRIORITY_MAX
    if band == "medium":
        return HIGH_PRIORITY_MAX < priority <= MEDIUM_PRIORITY_MAX
    return priority > MEDIUM_PRIORITY_MAX


def _matches_value(value: Any, selected: str) -> bool:
    if selected == ALL:
        return True
    return value is not None and str(value) == selected


def filter_matrix_rows(
    rows: Sequence[MatrixRow], filters: MatrixFilter
) -> list[MatrixRow]:
    """Apply the matrix filters in memory."""
    if filters.priority != ALL and filters.priority not in PRIORITY_BANDS:
        raise ValidationError(
            f"Unknown priority band '{filters.priority}'", field="priority"
        )

    term = filters.search.strip()
    result = []
    for row in rows:
        combination = row.combination
        if term and not _matches_search(combination, term):
            continue
        if not _matches_value(combination.region_id, filters.region):
            continue
        if not _matches_value(combination.network_id, filters.network):
            continue
        if filters.priority != ALL and not _matches_priority_band(
            combination.priority, filters.priority
        ):
            continue
        result.append(row)
    return result


class RuleFilter(CamelModel):
    """Filters of the per-rule-type views; ``all`` disables a filter."""

    combination: str = ALL
    network_scope: str = ALL
    cash_scope: str = ALL
    applies_to: str = ALL


# Rule attributes each kind can be filtered on, besides the owning combination
RULE_FILTER_FIELDS: dict[RuleKind, tuple[str, ...]] = {
    RuleKind.AMOUNTS: ("network_scope",),
    RuleKind.COUNTS: ("network_scope",),
    RuleKind.FREQUENCIES: ("applies_to",),
    RuleKind.CO_INSURANCES: ("network_scope", "cash_scope"),
}


def filter_rule_rows(
    rows: Sequence[RuleRow], kind: RuleKind, filters: RuleFilter
) -> list[RuleRow]:
    """Apply the rule-view filters in memory.

    Raises:
        ValidationError: If a filter is set that ``kind`` has no field for
    """
    allowed = RULE_FILTER_FIELDS[kind]
    active: dict[str, str] = {}
    for field in ("network_scope", "cash_scope", "applies_to"):
        selected = getattr(filters, field)
        if selected == ALL:
            continue
        if field not in allowed:
            raise ValidationError(
                f"Cannot filter {kind.value} by {field}", field=field
            )
        active[field] = selected

    return [
        row
        for row in rows
        if _matches_value(row.combination_id, filters.combination)
        and all(
            _matches_value(getattr(row.rule, field), selected)
            for field, selected in active.items()
        )
    ]


# Summaries


class MatrixSummary(CamelModel):
    """Headline counts over the displayed matrix rows."""

    total: int = 0
    with_amounts: int = 0
    with_counts: int = 0
    with_co_insurances: int = 0


class RuleSummary(CamelModel):
    """Headline figures over the displayed rules of one kind.

    Only the figures that apply to the kind are set; averages and maxima stay
    ``None`` when there are no rows.
    """

    total: int = 0
    in_network: int | None = None
    average_amount: float | None = None
    highest_amount: float | None = None
    average_count: float | None = None
    highest_count: int | None = None
    average_freq_value: float | None = None
    most_common_unit: str | None = None
    average_copay_percent: float | None = None
    average_deductible: float | None = None


def summarize_matrix(rows: Sequence[MatrixRow]) -> MatrixSummary:
    return MatrixSummary(
        total=len(rows),
        with_amounts=sum(1 for row in rows if row.combination.amounts),
        with_counts=sum(1 for row in rows if row.combination.counts),
        with_co_insurances=sum(1 for row in rows if row.combination.co_insurances),
    )


def _mean(values: Sequence[float]) -> float | None:
    return fmean(values) if values else None


def _most_common_unit(rules: Iterable[FrequencyLimit]) -> str | None:
    units = Counter(rule.freq_unit.value for rule in rules if rule.freq_unit)
    if not units:
        return None
    return units.most_common(1)[0][0]


def summarize_rules(kind: RuleKind, rows: Sequence[RuleRow]) -> RuleSummary:
    """Compute the figures shown above a rule table for ``kind``."""
    rules: list[Any] = [row.rule for row in rows]
    summary = RuleSummary(total=len(rules))

    if kind in (RuleKind.AMOUNTS, RuleKind.COUNTS, RuleKind.CO_INSURANCES):
        summary.in_network = sum(
            1 for rule in rules if rule.network_scope is NetworkScope.IN
        )

    if kind is RuleKind.AMOUNTS:
        amounts = [rule.amount for rule in rules]
        summary.average_amount = _mean(amounts)
        summary.highest_amount = max(amounts, default=None)
    elif kind is RuleKind.COUNTS:
        counts = [rule.count_limit for rule in rules]
        summary.average_count = _mean(counts)
        summary.highest_count = max(counts, default=None)
    elif kind is RuleKind.FREQUENCIES:
        summary.average_freq_value = _mean([rule.freq_value for rule in rules])
        summary.most_common_unit = _most_common_unit(rules)
    else:
        summary.average_copay_percent = _mean([rule.copay_percent for rule in rules])
        summary.average_deductible = _mean([rule.deductible for rule in rules])
    return summary

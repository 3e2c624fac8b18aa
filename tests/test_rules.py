"""Tests for the per-rule-type projection and its filters."""

import pytest

from limitmatrix.application.validation import parse_rule_kind
from limitmatrix.domain.entities import LimitCombination, RuleKind
from limitmatrix.domain.exceptions import ValidationError
from limitmatrix.domain.matrix import (
    RuleFilter,
    filter_rule_rows,
    flatten_rule_type,
    summarize_rules,
)


@pytest.fixture
def combinations() -> list[LimitCombination]:
    return [
        LimitCombination.model_validate(data)
        for data in [
            {
                "id": 10,
                "description": "Outpatient",
                "amounts": [
                    {"amount": 100, "networkScope": "IN", "limitPeriod": "PER_VISIT"},
                    {"amount": 900, "networkScope": "OUT", "limitPeriod": "PER_YEAR"},
                ],
                "frequencies": [
                    {"freqValue": 2, "freqUnit": "WEEK", "appliesTo": "VISIT"}
                ],
            },
            {"id": 11, "description": "Inpatient"},
            {
                "id": 12,
                "description": "Pharmacy",
                "amounts": [
                    {"amount": 50, "networkScope": "IN", "limitPeriod": "PER_CLAIM"}
                ],
                "coInsurances": [
                    {
                        "networkScope": "OUT",
                        "cashScope": "CASH",
                        "deductible": 0,
                        "copayPercent": 10,
                    }
                ],
            },
        ]
    ]


def test_flatten_yields_one_row_per_rule(combinations):
    rows = flatten_rule_type(combinations, RuleKind.AMOUNTS)

    assert len(rows) == sum(len(c.amounts) for c in combinations)
    assert [row.combination_id for row in rows] == [10, 10, 12]
    assert rows[2].combination_description == "Pharmacy"
    assert rows[0].rule is combinations[0].amounts[0]


def test_flatten_kind_without_rules_is_empty(combinations):
    assert flatten_rule_type(combinations, RuleKind.COUNTS) == []


def test_rule_row_wire_format(combinations):
    row = flatten_rule_type(combinations, RuleKind.CO_INSURANCES)[0]
    wire = row.to_wire()

    assert wire["combinationId"] == 12
    assert wire["combinationDescription"] == "Pharmacy"
    assert wire["copayPercent"] == 10
    assert wire["cashScope"] == "CASH"


def test_network_filter_then_all_round_trips(combinations):
    rows = flatten_rule_type(combinations, RuleKind.AMOUNTS)

    in_network = filter_rule_rows(
        rows, RuleKind.AMOUNTS, RuleFilter(network_scope="IN")
    )
    assert {row.rule.network_scope for row in in_network} == {"IN"}
    assert len(in_network) == 2

    reset = filter_rule_rows(rows, RuleKind.AMOUNTS, RuleFilter(network_scope="all"))
    assert reset == rows


def test_combination_filter(combinations):
    rows = flatten_rule_type(combinations, RuleKind.AMOUNTS)
    result = filter_rule_rows(rows, RuleKind.AMOUNTS, RuleFilter(combination="12"))
    assert [row.combination_id for row in result] == [12]


def test_applies_to_filter_on_frequencies(combinations):
    rows = flatten_rule_type(combinations, RuleKind.FREQUENCIES)
    claims_only = RuleFilter(applies_to="CLAIM")
    assert filter_rule_rows(rows, RuleKind.FREQUENCIES, claims_only) == []


@pytest.mark.parametrize(
    "kind,filters",
    [
        (RuleKind.AMOUNTS, RuleFilter(cash_scope="CASH")),
        (RuleKind.COUNTS, RuleFilter(applies_to="VISIT")),
        (RuleKind.FREQUENCIES, RuleFilter(network_scope="IN")),
        (RuleKind.CO_INSURANCES, RuleFilter(applies_to="CLAIM")),
    ],
)
def test_inapplicable_filter_is_rejected(combinations, kind, filters):
    rows = flatten_rule_type(combinations, kind)
    with pytest.raises(ValidationError):
        filter_rule_rows(rows, kind, filters)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("amounts", RuleKind.AMOUNTS),
        ("frequencies", RuleKind.FREQUENCIES),
        ("coInsurances", RuleKind.CO_INSURANCES),
        ("co-insurances", RuleKind.CO_INSURANCES),
        ("co_insurances", RuleKind.CO_INSURANCES),
    ],
)
def test_parse_rule_kind(value, expected):
    assert parse_rule_kind(value) is expected


def test_parse_rule_kind_rejects_unknown():
    with pytest.raises(ValidationError) as exc_info:
        parse_rule_kind("deductibles")
    assert exc_info.value.field == "ruleKind"


def test_unknown_network_scope_never_matches_a_network_filter():
    combination = LimitCombination.model_validate(
        {
            "id": 20,
            "amounts": [
                {"amount": 10, "networkScope": "ABROAD", "limitPeriod": "PER_YEAR"}
            ],
        }
    )
    rows = flatten_rule_type([combination], RuleKind.AMOUNTS)

    assert rows[0].rule.network_scope is None
    in_network = RuleFilter(network_scope="IN")
    assert filter_rule_rows(rows, RuleKind.AMOUNTS, in_network) == []
    assert filter_rule_rows(rows, RuleKind.AMOUNTS, RuleFilter()) == rows


class TestRuleSummary:
    def test_amounts(self, combinations):
        rows = flatten_rule_type(combinations, RuleKind.AMOUNTS)

        summary = summarize_rules(RuleKind.AMOUNTS, rows)

        assert summary.total == 3
        assert summary.in_network == 2
        assert summary.average_amount == 350
        assert summary.highest_amount == 900
        assert summary.average_copay_percent is None

    def test_frequencies(self, combinations):
        rows = flatten_rule_type(combinations, RuleKind.FREQUENCIES)

        summary = summarize_rules(RuleKind.FREQUENCIES, rows)

        assert summary.total == 1
        assert summary.most_common_unit == "WEEK"
        assert summary.average_freq_value == 2
        assert summary.in_network is None

    def test_co_insurances(self, combinations):
        rows = flatten_rule_type(combinations, RuleKind.CO_INSURANCES)

        summary = summarize_rules(RuleKind.CO_INSURANCES, rows)

        assert summary.total == 1
        assert summary.in_network == 0
        assert summary.average_copay_percent == 10
        assert summary.average_deductible == 0

    def test_follows_the_filtered_rows(self, combinations):
        rows = filter_rule_rows(
            flatten_rule_type(combinations, RuleKind.AMOUNTS),
            RuleKind.AMOUNTS,
            RuleFilter(combination="12"),
        )

        summary = summarize_rules(RuleKind.AMOUNTS, rows)

        assert summary.total == 1
        assert summary.average_amount == 50

    @pytest.mark.parametrize("kind", list(RuleKind))
    def test_no_rows_has_no_averages(self, kind):
        summary = summarize_rules(kind, [])

        assert summary.total == 0
        assert summary.average_amount is None
        assert summary.highest_amount is None
        assert summary.average_count is None
        assert summary.highest_count is None
        assert summary.average_freq_value is None
        assert summary.most_common_unit is None
        assert summary.average_copay_percent is None
        assert summary.average_deductible is None

    def test_most_common_unit_ignores_unknown_units(self):
        combination = LimitCombination.model_validate(
            {
                "id": 30,
                "frequencies": [
                    {"freqValue": 1, "freqUnit": "HOUR", "appliesTo": "VISIT"},
                    {"freqValue": 1, "freqUnit": "HOUR", "appliesTo": "VISIT"},
                    {"freqValue": 4, "freqUnit": "MONTH", "appliesTo": "CLAIM"},
                ],
            }
        )
        rows = flatten_rule_type([combination], RuleKind.FREQUENCIES)

        summary = summarize_rules(RuleKind.FREQUENCIES, rows)

        assert summary.most_common_unit == "MONTH"
        assert summary.average_freq_value == 2

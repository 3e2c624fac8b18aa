"""Tests for combination payload validation and wire format."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from limitmatrix.domain.entities import (
    CombinationPage,
    LimitCombination,
    LimitCombinationPayload,
    LimitPeriod,
    NetworkScope,
    RuleKind,
)


def test_payload_requires_description():
    with pytest.raises(PydanticValidationError, match="Description is required"):
        LimitCombinationPayload()

    with pytest.raises(PydanticValidationError, match="Description is required"):
        LimitCombinationPayload(description="   ")


def test_payload_description_is_trimmed_and_bounded():
    assert LimitCombinationPayload(description="  Dental ").description == "Dental"

    with pytest.raises(PydanticValidationError, match="cannot be longer than 500"):
        LimitCombinationPayload(description="x" * 501)


def test_payload_priority_must_be_positive():
    with pytest.raises(PydanticValidationError, match="Priority must be at least 1"):
        LimitCombinationPayload(description="Dental", priority=0)


def test_payload_serializes_camel_case():
    payload = LimitCombinationPayload.model_validate(
        {
            "description": "Dental",
            "regionId": 3,
            "coInsurances": [
                {
                    "networkScope": "IN",
                    "cashScope": "BOTH",
                    "deductible": 100,
                    "copayPercent": 20,
                }
            ],
        }
    )

    wire = payload.to_wire()
    assert wire["regionId"] == 3
    assert wire["coInsurances"][0]["copayPercent"] == 20
    assert "region_id" not in wire


@pytest.mark.parametrize(
    "rule",
    [
        {"amounts": [{"amount": -1, "networkScope": "IN", "limitPeriod": "PER_YEAR"}]},
        {
            "counts": [
                {"countLimit": 1, "networkScope": "MOON", "limitPeriod": "PER_DAY"}
            ]
        },
        {"frequencies": [{"freqValue": 0, "freqUnit": "DAY", "appliesTo": "VISIT"}]},
        {
            "coInsurances": [
                {
                    "networkScope": "IN",
                    "cashScope": "CASH",
                    "deductible": 0,
                    "copayPercent": 120,
                }
            ]
        },
    ],
    ids=["negative-amount", "unknown-network", "zero-frequency", "copay-over-100"],
)
def test_invalid_rules_are_rejected_on_write(rule):
    with pytest.raises(PydanticValidationError):
        LimitCombinationPayload.model_validate({"description": "Dental", **rule})


def test_stored_rules_are_read_leniently():
    combination = LimitCombination.model_validate(
        {
            "id": 1,
            "amounts": [
                {"amount": 100, "networkScope": None, "limitPeriod": "PER_FORTNIGHT"}
            ],
            "coInsurances": [
                {
                    "networkScope": "IN",
                    "cashScope": "CASH",
                    "deductible": 0,
                    "copayPercent": 120,
                }
            ],
        }
    )

    amount = combination.amounts[0]
    assert amount.network_scope is None
    assert amount.limit_period is None
    assert combination.co_insurances[0].copay_percent == 120
    assert combination.co_insurances[0].network_scope is NetworkScope.IN


@pytest.mark.parametrize("value", [float("inf"), float("nan")], ids=["inf", "nan"])
def test_non_finite_numbers_are_rejected(value):
    with pytest.raises(PydanticValidationError):
        LimitCombination.model_validate(
            {
                "id": 1,
                "amounts": [
                    {"amount": value, "networkScope": "IN", "limitPeriod": "PER_YEAR"}
                ],
            }
        )


def test_rules_by_kind():
    combination = LimitCombination.model_validate(
        {
            "id": 1,
            "counts": [
                {"countLimit": 3, "networkScope": "IN", "limitPeriod": "PER_DAY"}
            ],
        }
    )
    assert len(combination.rules(RuleKind.COUNTS)) == 1
    assert combination.rules(RuleKind.CO_INSURANCES) == []


def test_limit_period_label():
    assert LimitPeriod.PER_YEAR.label == "YEAR"
    assert LimitPeriod.PER_VISIT.label == "VISIT"


def test_page_keeps_unknown_envelope_keys():
    page = CombinationPage.model_validate(
        {"content": None, "totalPages": 0, "totalElements": 0, "number": 2}
    )
    assert page.content == []
    assert page.model_dump(by_alias=True)["number"] == 2

"""Domain types tests — enum values and the outcome → status mapping."""

import pytest

from toolfinder.core.domain_types import (
    JobKind, OutcomeStatus, ProblemStatus, PromptFunction, problem_status_for,
)


@pytest.mark.parametrize("outcome, expected", [
    (OutcomeStatus.SOLVED, ProblemStatus.SOLVED),
    (OutcomeStatus.SUGGESTED, ProblemStatus.PENDING),
    (OutcomeStatus.OPPORTUNITY, ProblemStatus.OPPORTUNITY),
])
def test_problem_status_mapping(outcome, expected):
    assert problem_status_for(outcome) == expected


def test_mapping_accepts_raw_strings():
    assert problem_status_for("suggested") == ProblemStatus.PENDING


def test_mapping_rejects_unknown_outcome():
    with pytest.raises(ValueError):
        problem_status_for("maybe")


def test_prompt_function_names_are_stable():
    assert {f.value for f in PromptFunction} == {
        "match-problem", "suggest-tools", "validate-relevance", "extract-tool-info",
    }


def test_str_enums_compare_to_strings():
    assert JobKind.PROBLEM == "problem"
    assert ProblemStatus.OPPORTUNITY.value == "opportunity"

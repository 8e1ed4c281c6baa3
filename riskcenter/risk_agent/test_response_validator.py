import json

import pytest

from riskcenter.risk_agent.errors import ParseError, SchemaViolation
from riskcenter.risk_agent.response_validator import ResponseValidator, strip_code_fence


@pytest.fixture
def validator():
    return ResponseValidator()


def test_valid_json_becomes_report(validator, document, envelope):
    result = validator.validate(json.dumps(document), envelope)

    assert result.success
    assert result.value.id == envelope.id
    assert len(result.value.steps) == 6


def test_single_markdown_fence_is_stripped(validator, document, envelope):
    raw = "\n  ```json\n" + json.dumps(document, indent=2) + "\n```  \n"

    assert validator.validate(raw, envelope).success


def test_strip_code_fence_leaves_plain_text_alone():
    assert strip_code_fence('  {"a": 1}\n') == '{"a": 1}'
    assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'


@pytest.mark.parametrize("raw", [
    "",
    "   \n",
    "The service is overloaded, please retry",
    '{"step1": ',
    "Here is your report: {}",
])
def test_non_json_is_parse_error(validator, raw):
    result = validator.parse(raw)

    assert not result.success
    assert isinstance(result.error, ParseError)
    assert result.error.user_message().startswith("The analysis service returned unparsable output: ")


@pytest.mark.parametrize("raw", ["[1, 2, 3]", '"step1"', "42", "null"])
def test_non_object_json_is_parse_error(validator, raw):
    error = validator.parse(raw).error

    assert isinstance(error, ParseError)
    assert "expected a JSON object" in error.message


def test_contract_failure_is_schema_violation_not_parse_error(validator, document, envelope):
    del document["step4"]

    error = validator.validate(json.dumps(document), envelope).error

    assert isinstance(error, SchemaViolation)
    assert error.user_message() == "The analysis service returned a document that is missing step 4"


def test_no_default_filling(validator, document, envelope):
    document["step6"]["content"].pop("implementationSteps")

    error = validator.validate(json.dumps(document), envelope).error

    assert error.path == "step6.content.implementationSteps"

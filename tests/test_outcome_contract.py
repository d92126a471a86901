import pytest

from models.outcome import ADVANCE_KINDS, ErrorKind, PipelineResult, ProviderOutcome
from models.records import CandidateRecord, Category


def test_success_requires_text():
    with pytest.raises(ValueError):
        ProviderOutcome(provider="p/m")


def test_failure_must_not_carry_text():
    with pytest.raises(ValueError):
        ProviderOutcome(provider="p/m", text="hello", error=ErrorKind.TRANSIENT)


def test_constructors():
    ok = ProviderOutcome.success("p/m", "hello", latency_ms=12)
    failed = ProviderOutcome.failure("p/m", ErrorKind.RATE_LIMITED, "quota")

    assert ok.is_success and not ok.is_error
    assert failed.is_error and failed.text == ""
    assert failed.detail == "quota"


def test_terminal_kinds_do_not_advance():
    assert ErrorKind.ALL_PROVIDERS_EXHAUSTED not in ADVANCE_KINDS
    assert ErrorKind.CANCELED not in ADVANCE_KINDS
    assert ErrorKind.RATE_LIMITED in ADVANCE_KINDS


def test_error_kind_values_are_wire_names():
    assert ErrorKind("no_valid_records") is ErrorKind.NO_VALID_RECORDS
    assert ErrorKind.INVALID_INPUT.value == "invalid_input"


def test_pipeline_result_to_dict_success():
    record = CandidateRecord("Title", "Q?", "A", "B", Category.FILMS, "https://example.com")
    payload = PipelineResult.ok([record], provider_used="s1/model", run_id="r1").to_dict()

    assert payload == {
        "success": True,
        "data": [
            {
                "title": "Title",
                "question": "Q?",
                "variantA": "A",
                "variantB": "B",
                "category": "films",
                "sourceUrl": "https://example.com",
            }
        ],
        "providerUsed": "s1/model",
        "error": None,
        "detail": None,
        "metadata": {"run_id": "r1"},
    }


def test_pipeline_result_to_dict_failure():
    payload = PipelineResult.fail(ErrorKind.CANCELED, "run canceled").to_dict()
    assert payload["success"] is False
    assert payload["data"] is None
    assert payload["error"] == "canceled"
    assert payload["detail"] == "run canceled"


@pytest.mark.parametrize(
    "value,expected",
    [("films", Category.FILMS), ("BRANDS", Category.BRANDS), ("tv", Category.OTHER), (None, Category.OTHER)],
)
def test_category_normalize(value, expected):
    assert Category.normalize(value) is expected

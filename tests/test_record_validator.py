import pytest

from models.outcome import ErrorKind
from models.records import Category
from pipeline.validator import RecordValidator, title_key


def _record(**overrides):
    record = {
        "title": "Berenstain Bears",
        "question": "How is the bear family spelled?",
        "variantA": "Berenstein",
        "variantB": "Berenstain",
        "category": "childhood",
    }
    record.update(overrides)
    return record


@pytest.fixture
def validator():
    return RecordValidator()


class TestValidateCandidates:
    def test_non_list_is_invalid_response(self, validator):
        result = validator.validate_candidates({"title": "x"})
        assert not result.success
        assert result.error == ErrorKind.INVALID_RESPONSE

    def test_one_valid_record_among_invalid(self, validator):
        parsed = [
            _record(),
            _record(title=""),
            "not a mapping",
            _record(variantA=None),
        ]
        result = validator.validate_candidates(parsed)

        assert result.success
        assert len(result.data) == 1
        assert result.data[0].title == "Berenstain Bears"
        assert result.metadata["rejected"] == 3

    def test_all_invalid_is_no_valid_records(self, validator):
        result = validator.validate_candidates([_record(title="   "), _record(question=5)])
        assert not result.success
        assert result.error == ErrorKind.NO_VALID_RECORDS

    def test_empty_list_is_no_valid_records(self, validator):
        result = validator.validate_candidates([])
        assert result.error == ErrorKind.NO_VALID_RECORDS

    def test_unknown_category_becomes_other(self, validator):
        result = validator.validate_candidates([_record(category="cartoons")])
        assert result.data[0].category == Category.OTHER

    def test_category_is_case_insensitive(self, validator):
        result = validator.validate_candidates([_record(category=" Films ")])
        assert result.data[0].category == Category.FILMS

    def test_missing_category_is_dropped(self, validator):
        record = _record()
        del record["category"]
        assert validator.validate_candidates([record]).error == ErrorKind.NO_VALID_RECORDS

    def test_prompt_alias_for_question(self, validator):
        record = _record()
        record["prompt"] = record.pop("question")
        result = validator.validate_candidates([record])
        assert result.data[0].question == "How is the bear family spelled?"

    def test_identical_variants_are_dropped(self, validator):
        result = validator.validate_candidates([_record(variantA="Same", variantB="same")])
        assert result.error == ErrorKind.NO_VALID_RECORDS

    def test_fields_are_trimmed(self, validator):
        result = validator.validate_candidates([_record(title="  Pikachu tail  ")])
        assert result.data[0].title == "Pikachu tail"

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("  https://reddit.com/r/MandelaEffect  ", "https://reddit.com/r/MandelaEffect"),
            ("", None),
            ("   ", None),
            (123, None),
            (None, None),
        ],
    )
    def test_source_url_kept_only_when_non_empty_string(self, validator, source, expected):
        result = validator.validate_candidates([_record(sourceUrl=source)])
        assert result.data[0].source_url == expected

    def test_to_dict_uses_wire_keys(self, validator):
        record = validator.validate_candidates([_record()]).data[0]
        assert record.to_dict() == {
            "title": "Berenstain Bears",
            "question": "How is the bear family spelled?",
            "variantA": "Berenstein",
            "variantB": "Berenstain",
            "category": "childhood",
            "sourceUrl": None,
        }


class TestDedupeCandidates:
    def _records(self, validator, *titles):
        return validator.validate_candidates([_record(title=t) for t in titles]).data

    def test_drops_titles_in_exclusion_list(self, validator):
        records = self._records(validator, "Berenstain Bears", "Pikachu Tail")
        result = validator.dedupe_candidates(records, ["berenstain  bears!"])

        assert result.success
        assert [r.title for r in result.data] == ["Pikachu Tail"]
        assert result.metadata["duplicates"] == 1

    def test_drops_repeats_within_batch(self, validator):
        records = self._records(validator, "Pikachu Tail", "PIKACHU TAIL", "Monopoly Monocle")
        result = validator.dedupe_candidates(records, [])
        assert [r.title for r in result.data] == ["Pikachu Tail", "Monopoly Monocle"]

    def test_uses_full_exclusion_list(self, validator):
        exclusions = [f"Effect {i}" for i in range(200)] + ["Pikachu Tail"]
        records = self._records(validator, "Pikachu Tail", "Fruit of the Loom")
        result = validator.dedupe_candidates(records, exclusions)
        assert [r.title for r in result.data] == ["Fruit of the Loom"]

    def test_all_duplicates_is_no_valid_records(self, validator):
        records = self._records(validator, "Pikachu Tail")
        result = validator.dedupe_candidates(records, ["Pikachu tail"])
        assert not result.success
        assert result.error == ErrorKind.NO_VALID_RECORDS


@pytest.mark.parametrize(
    "a,b",
    [
        ("Star Wars: Luke, I am your father", "star wars luke i am your father"),
        ("  Kit-Kat  ", "kit kat"),
        ("Эффект Манделы", "эффект  манделы"),
    ],
)
def test_title_key_normalizes(a, b):
    assert title_key(a) == title_key(b)

"""
Schema validator tests
"""
import copy

import pytest

from ielts_admin.question_types import ALLOWED_QUESTION_TYPES, MULTIPLE_CHOICE, QUESTION_TYPES
from ielts_admin.schemas import GridRow, ReadingPaperIn
from ielts_admin.validation import best_type_match, check_question_type, load_paper, validate, validate_rows


def _paper(data):
    return ReadingPaperIn.model_validate(data)


def _codes(issues):
    return [issue.code for issue in issues]


def test_sample_paper_is_valid(sample_paper):
    assert validate(_paper(sample_paper)) == []


def test_catalogue_has_fifteen_types():
    assert len(ALLOWED_QUESTION_TYPES) == 15
    assert set(ALLOWED_QUESTION_TYPES) == set(QUESTION_TYPES)


def test_duplicate_passage_number_reported_once(sample_paper):
    sample_paper["passages"][1]["passage_number"] = 1
    issues = validate(_paper(sample_paper))
    assert _codes(issues).count("duplicate_passage_number") == 1
    assert "Duplicate passage_number: 1" in [str(i) for i in issues]


def test_duplicate_question_number_reported_once(sample_paper):
    questions = sample_paper["passages"][0]["questions"]
    questions[0]["question_number"] = 3
    questions[1]["question_number"] = 3
    issues = validate(_paper(sample_paper))
    assert _codes(issues).count("duplicate_question_number") == 1


def test_same_question_number_in_different_passages_is_fine(sample_paper):
    sample_paper["passages"][1]["questions"][0]["question_number"] = 1
    assert validate(_paper(sample_paper)) == []


def test_multiple_choice_requires_non_empty_options(sample_paper):
    question = {
        "question_number": 1,
        "question_type": MULTIPLE_CHOICE,
        "question_text": "Pick one",
        "options": [],
        "correct_answer": "A",
    }
    sample_paper["passages"] = [{"passage_number": 1, "questions": [question]}]
    issues = validate(_paper(sample_paper))
    assert _codes(issues) == ["empty_options"]
    assert "must be a non-empty array" in str(issues[0])

    fixed = copy.deepcopy(sample_paper)
    fixed["passages"][0]["questions"][0]["options"] = ["A", "B"]
    assert validate(_paper(fixed)) == []


def test_legacy_type_rejected_by_name(sample_paper):
    sample_paper["passages"][1]["questions"][0]["question_type"] = "Note/Table/Flow-Chart Completion"
    issues = validate(_paper(sample_paper))
    assert _codes(issues) == ["legacy_question_type"]
    assert "Note/Table/Flow-Chart Completion" in str(issues[0])
    assert "legacy" in str(issues[0])


def test_near_miss_type_gets_suggestion():
    message = check_question_type("Multiple Choise")
    assert "Did you mean: 'Multiple Choice'?" in message
    assert best_type_match("Multiple Choise")[0] == MULTIPLE_CHOICE


def test_far_off_type_has_no_suggestion():
    message = check_question_type("zzz")
    assert message.startswith('Invalid question_type: "zzz".')
    assert "Did you mean" not in message


def test_unknown_type_still_checks_base_fields():
    paper = _paper({
        "title": "T",
        "type": "academic",
        "passages": [{"passage_number": 1, "questions": [
            {"question_number": 1, "question_type": "Unknown", "question_text": "Q?", "correct_answer": ""},
        ]}],
    })
    assert _codes(validate(paper)) == ["invalid_question_type", "missing_field"]


def test_paper_level_checks_in_order():
    issues = validate(_paper({"title": "", "type": "", "passages": []}))
    assert _codes(issues) == ["missing_title", "missing_type", "no_passages"]


def test_passage_without_questions(sample_paper):
    sample_paper["passages"][1]["questions"] = []
    issues = validate(_paper(sample_paper))
    assert _codes(issues) == ["no_questions"]
    assert str(issues[0]) == "Passage 2: No questions"


def test_unsupported_paper_type(sample_paper):
    sample_paper["type"] = "scientific"
    assert _codes(validate(_paper(sample_paper))) == ["invalid_type"]


def test_true_false_answer_domain(sample_paper):
    sample_paper["passages"][0]["questions"][0]["correct_answer"] = "Maybe"
    issues = validate(_paper(sample_paper))
    assert _codes(issues) == ["answer_out_of_domain"]

    sample_paper["passages"][0]["questions"][0]["correct_answer"] = "not given"
    assert validate(_paper(sample_paper)) == []


def test_legacy_text_and_answer_fields_resolve(sample_paper):
    question = sample_paper["passages"][1]["questions"][0]
    question["text"] = question.pop("question_text")
    question["answer"] = question.pop("correct_answer")
    assert validate(_paper(sample_paper)) == []


def test_revalidation_after_fixing_is_clean(sample_paper):
    broken = copy.deepcopy(sample_paper)
    broken["passages"][0]["questions"][1]["options"] = []
    broken["passages"][1]["questions"][0]["correct_answer"] = ""
    assert len(validate(_paper(broken))) == 2

    broken["passages"][0]["questions"][1]["options"] = ["A", "B"]
    broken["passages"][1]["questions"][0]["correct_answer"] = "water"
    fixed = _paper(broken)
    assert validate(fixed) == []
    assert validate(fixed) == []


def test_json_array_answer_becomes_list(sample_paper):
    sample_paper["passages"][1]["questions"][0]["correct_answer"] = '["water", "moisture"]'
    paper = _paper(sample_paper)
    assert paper.passages[1].questions[0].correct_answer == ["water", "moisture"]


def test_load_paper_reports_bad_json():
    paper, issues = load_paper("{not json")
    assert paper is None
    assert _codes(issues) == ["invalid_json"]


def test_load_paper_reports_schema_errors():
    paper, issues = load_paper({"title": "T", "passages": [{"questions": []}]})
    assert paper is None
    assert _codes(issues) == ["schema"]
    assert "passage_number" in str(issues[0])


@pytest.mark.parametrize("bad_options", [5, True, {"A": "Plastic"}])
def test_load_paper_rejects_non_list_options(sample_paper, bad_options):
    sample_paper["passages"][0]["questions"][1]["options"] = bad_options
    paper, issues = load_paper(sample_paper)
    assert paper is None
    assert _codes(issues) == ["schema"]
    assert "passages.0.questions.1.options" in str(issues[0])
    assert "options must be a list of strings" in str(issues[0])


def test_load_paper_accepts_bytes(sample_paper):
    import json

    paper, issues = load_paper(json.dumps(sample_paper).encode("utf-8"))
    assert issues == []
    assert paper.question_count == 3


def test_validate_rows_flags_empty_text():
    rows = [
        GridRow(passage_number=1, question_number=1, question_text="ok"),
        GridRow(passage_number=1, question_number=2, question_text="  "),
    ]
    assert [str(i) for i in validate_rows(rows)] == ["Row 2: Missing question_text"]


def test_validate_rows_flags_duplicate_question_numbers():
    rows = [
        GridRow(passage_number=1, question_number=3, question_text="First"),
        GridRow(passage_number=1, question_number=3, question_text="Second"),
        GridRow(passage_number=2, question_number=3, question_text="Other passage"),
    ]
    issues = validate_rows(rows)
    assert _codes(issues) == ["duplicate_question_number"]
    assert str(issues[0]) == "Row 2: Passage 1: Duplicate question_number 3"


def test_validate_rows_checks_named_types():
    rows = [
        GridRow(passage_number=1, question_number=1, question_text="a", question_type="Unknown"),
        GridRow(passage_number=1, question_number=2, question_text="b", question_type="Note/Table/Flow-Chart Completion"),
        GridRow(passage_number=1, question_number=3, question_text="c", question_type="Short-Answer Questions"),
        GridRow(passage_number=1, question_number=4, question_text="d", question_type=""),
    ]
    assert _codes(validate_rows(rows)) == ["invalid_question_type", "legacy_question_type"]

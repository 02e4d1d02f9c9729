"""
Heuristic parser tests
"""
import re

from ielts_admin.parser import DEFAULT_PAPER_TITLE, PASSAGE_RULES, extract_fields, parse, parse_rows, sniff_question_type
from ielts_admin.question_types import MATCHING_FEATURES, MATCHING_HEADINGS, UNKNOWN
from ielts_admin.validation import validate

OCEAN_TEXT = (
    "Section 1\nbased on Reading Passage\nOcean Life\nTurtles face threats.\n"
    "Question 1. What is the main threat? Plastic pollution."
)


def test_ocean_life_scenario():
    paper = parse(OCEAN_TEXT)

    assert paper.title == DEFAULT_PAPER_TITLE
    assert paper.type == "academic"
    assert len(paper.passages) == 1
    passage = paper.passages[0]
    assert passage.passage_number == 1
    assert passage.title == "Ocean Life"
    assert passage.body == "Turtles face threats."
    assert len(passage.questions) == 1
    question = passage.questions[0]
    assert question.question_number == 1
    assert question.question_text == "What is the main threat? Plastic pollution."
    assert question.question_type == UNKNOWN
    assert question.correct_answer == ""
    assert question.options is None
    assert question.status == "draft"

    messages = [str(issue) for issue in validate(paper)]
    assert any('"correct_answer"' in m and "Q1" in m for m in messages)


def test_one_passage_per_section_marker():
    text = (
        "Reading Test 3\n"
        "Section 1\nQuestion 1. First question here\nQuestion 2. Second question here\n\n"
        "Section 2\nQuestion 3. Third question here\n\n"
        "Section 3\nQuestion 4. Fourth question here"
    )
    paper = parse(text)

    assert paper.title == "Reading Test 3"
    assert len(paper.passages) == len(re.findall(r"Section \d+", text))
    assert [p.passage_number for p in paper.passages] == [1, 2, 3]
    numbers = [q.question_number for p in paper.passages for q in p.questions]
    assert numbers == sorted(numbers) == [1, 2, 3, 4]


def test_no_section_markers_yields_no_passages():
    paper = parse("Question 1. Floating question with no section")
    assert paper.passages == []
    assert validate(paper)[0].code == "no_passages"


def test_empty_input_never_raises():
    assert parse("").passages == []
    assert parse(None).passages == []


def test_preamble_before_first_section_is_ignored():
    paper = parse("Cover notes. Question 99. not a real question\nSection 1\nQuestion 1. Kept question text")
    assert len(paper.passages) == 1
    assert [q.question_number for q in paper.passages[0].questions] == [1]


def test_title_falls_back_to_passage_number():
    paper = parse("Section 1\nQuestion 1. a\n\nSection 2\nQuestion 2. b")
    assert [p.title for p in paper.passages] == ["Passage 1", "Passage 2"]


def test_section_instruction_is_extracted():
    block = "\nInstructions: Write NO MORE THAN TWO WORDS.\n\nQuestion 1. The river flows ____."
    fields = extract_fields(block, 0)
    assert fields["section_instruction"] == "Write NO MORE THAN TWO WORDS."
    assert fields["title"] == "Passage 1"


def test_missing_instruction_is_none():
    assert PASSAGE_RULES[2].apply("Question 1. nothing else", 0) is None


def test_keyword_applies_to_every_question_in_block():
    text = (
        "Section 1\nChoose the correct heading from the list of headings below.\n"
        "Question 1. Paragraph A\nQuestion 2. Paragraph B"
    )
    questions = parse(text).passages[0].questions
    assert [q.question_type for q in questions] == [MATCHING_HEADINGS, MATCHING_HEADINGS]


def test_sniff_question_type_order():
    assert sniff_question_type("Match the features to the people") == MATCHING_FEATURES
    assert sniff_question_type("Answer the following") == UNKNOWN


def test_parse_rows_flattens_questions():
    text = (
        "Section 1\nbased on Reading Passage 1\nOcean Life\nTurtles face threats from plastic.\n"
        "Question 1. What is the main threat?\nQuestion 2. Where do turtles nest?\n"
        "Section 2\nshort"
    )
    rows = parse_rows(text)

    assert [(r.passage_number, r.question_number) for r in rows] == [(1, 1), (1, 2)]
    assert rows[0].passage_title == "Ocean Life"
    assert rows[0].question_type == UNKNOWN
    assert rows[0].correct_answer == ""

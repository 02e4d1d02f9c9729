"""Structural validation of a reading paper before any write.

Pure data inspection: no network or database access, so it can run
synchronously ahead of the destructive import steps. It is stricter than the
parser on purpose; AI- and hand-edited JSON is held to the same contract.
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Any, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from . import question_types as qt
from .schemas import GridRow, ReadingPaperIn, ReadingQuestionIn

PAPER_TYPES: Tuple[str, ...] = ("academic", "general")
SUGGESTION_THRESHOLD = 0.3

# Fields every type requires; checked even when the type itself is unresolved
BASE_REQUIRED_FIELDS: Tuple[str, ...] = qt.TEXT_AND_ANSWER


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    passage_number: Optional[int] = None
    question_number: Optional[int] = None

    def __str__(self) -> str:
        return self.message

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "passage_number": self.passage_number,
            "question_number": self.question_number,
        }


def best_type_match(name: str) -> Tuple[Optional[str], float]:
    best: Optional[str] = None
    best_score = 0.0
    for candidate in qt.ALLOWED_QUESTION_TYPES:
        score = SequenceMatcher(None, name.lower(), candidate.lower()).ratio()
        if score > best_score:
            best, best_score = candidate, score
    return best, best_score


def check_question_type(name: str) -> Optional[str]:
    """Return an error message for a type outside the catalogue, else None."""
    allowed = ", ".join(qt.ALLOWED_QUESTION_TYPES)
    if name in qt.LEGACY_QUESTION_TYPES:
        return f'Invalid/legacy question_type: "{name}". Use one of these exactly: {allowed}'
    if name in qt.QUESTION_TYPES:
        return None
    hint = ""
    suggestion, score = best_type_match(name)
    if suggestion and score > SUGGESTION_THRESHOLD:
        hint = f" Did you mean: '{suggestion}'?"
    return f'Invalid question_type: "{name}".{hint} Must be one of: {allowed}'


def _field_value(question: ReadingQuestionIn, field: str) -> Any:
    if field == "question_text":
        return question.resolved_text
    if field == "correct_answer":
        return question.resolved_answer
    return getattr(question, field, None)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_question(question: ReadingQuestionIn, passage_number: int) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    where = f"Passage {passage_number} Q{question.question_number}"

    def issue(code: str, text: str) -> ValidationIssue:
        return ValidationIssue(code, f"{where}: {text}", passage_number, question.question_number)

    type_error = check_question_type(question.question_type)
    if type_error:
        code = "legacy_question_type" if question.question_type in qt.LEGACY_QUESTION_TYPES else "invalid_question_type"
        issues.append(issue(code, type_error))
        fields: Sequence[str] = BASE_REQUIRED_FIELDS
    else:
        fields = qt.required_fields(question.question_type)

    for field in fields:
        value = _field_value(question, field)
        if _is_blank(value):
            issues.append(issue(
                "missing_field",
                f'Missing or empty field "{field}" for type "{question.question_type}".',
            ))
        elif field == "options" and isinstance(value, list) and len(value) == 0:
            issues.append(issue(
                "empty_options",
                f'"options" must be a non-empty array for type "{question.question_type}".',
            ))

    info = qt.get_question_type_info(question.question_type)
    answer = question.resolved_answer
    if info and info.answer_choices and not _is_blank(answer):
        domain = {choice.lower() for choice in info.answer_choices}
        values = answer if isinstance(answer, list) else [answer]
        bad = [v for v in values if v.strip().lower() not in domain]
        if bad:
            issues.append(issue(
                "answer_out_of_domain",
                f'correct_answer {", ".join(repr(b) for b in bad)} must be one of: {", ".join(info.answer_choices)}.',
            ))
    return issues


def validate(paper: ReadingPaperIn) -> List[ValidationIssue]:
    """Return every problem found, in check order; an empty list means valid."""
    issues: List[ValidationIssue] = []
    if not paper.title.strip():
        issues.append(ValidationIssue("missing_title", "Missing title"))
    if not paper.type.strip():
        issues.append(ValidationIssue("missing_type", "Missing type"))
    elif paper.type not in PAPER_TYPES:
        issues.append(ValidationIssue("invalid_type", f'Invalid type "{paper.type}". Must be one of: {", ".join(PAPER_TYPES)}'))
    if not paper.passages:
        issues.append(ValidationIssue("no_passages", "No passages provided"))

    seen_passages = set()
    for passage in paper.passages:
        number = passage.passage_number
        if number in seen_passages:
            issues.append(ValidationIssue("duplicate_passage_number", f"Duplicate passage_number: {number}", number))
        else:
            seen_passages.add(number)

        if not passage.questions:
            issues.append(ValidationIssue("no_questions", f"Passage {number}: No questions", number))
            continue

        seen_questions = set()
        for question in passage.questions:
            if question.question_number in seen_questions:
                issues.append(ValidationIssue(
                    "duplicate_question_number",
                    f"Passage {number}: Duplicate question_number {question.question_number}",
                    number,
                    question.question_number,
                ))
            else:
                seen_questions.add(question.question_number)
            issues.extend(validate_question(question, number))
    return issues


def _schema_issue(error: dict) -> ValidationIssue:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return ValidationIssue("schema", f"{location or 'paper'}: {error.get('msg', 'invalid value')}")


def load_paper(source: Union[str, bytes, dict]) -> Tuple[Optional[ReadingPaperIn], List[ValidationIssue]]:
    """Decode editable JSON into a paper, turning shape errors into issues."""
    data: Any = source
    if isinstance(source, (str, bytes)):
        try:
            data = json.loads(source)
        except ValueError as exc:
            return None, [ValidationIssue("invalid_json", f"Invalid JSON: {exc}")]
    if not isinstance(data, dict):
        return None, [ValidationIssue("invalid_json", "Paper JSON must be an object")]
    try:
        return ReadingPaperIn.model_validate(data), []
    except ValidationError as exc:
        return None, [_schema_issue(err) for err in exc.errors()]


def validate_rows(rows: Sequence[GridRow]) -> List[ValidationIssue]:
    """Row-level checks for grid uploads.

    A blank question_type is allowed (the row stays a draft), but a named type
    must resolve to the catalogue and each passage's question numbers must be
    unique.
    """
    issues: List[ValidationIssue] = []
    seen = set()
    for idx, row in enumerate(rows, start=1):
        if not row.question_text.strip():
            issues.append(ValidationIssue(
                "missing_field",
                f"Row {idx}: Missing question_text",
                row.passage_number,
                row.question_number,
            ))
        key = (row.passage_number, row.question_number)
        if key in seen:
            issues.append(ValidationIssue(
                "duplicate_question_number",
                f"Row {idx}: Passage {row.passage_number}: Duplicate question_number {row.question_number}",
                row.passage_number,
                row.question_number,
            ))
        else:
            seen.add(key)
        name = qt.canonical_question_type(row.question_type.strip())
        type_error = check_question_type(name) if name else None
        if type_error:
            code = "legacy_question_type" if name in qt.LEGACY_QUESTION_TYPES else "invalid_question_type"
            issues.append(ValidationIssue(code, f"Row {idx}: {type_error}", row.passage_number, row.question_number))
    return issues

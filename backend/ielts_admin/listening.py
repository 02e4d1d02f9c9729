"""Listening-test import: schema, validation and grid projection."""

from __future__ import annotations
import csv
import io
import json
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .schemas import Answer, coerce_answer, coerce_options
from .validation import ValidationIssue


LISTENING_QUESTION_TYPES: Tuple[str, ...] = (
    "fill-blank",
    "mcq",
    "matching",
    "map-diagram",
    "sentence-completion",
    "short-answer",
)
# Folded into mcq when stored
LISTENING_TYPE_ALIASES: Dict[str, str] = {"multi-mcq": "mcq", "map": "mcq"}
OPTION_TYPES = {"mcq", "matching"}
SECTION_RANGE = range(1, 5)

LISTENING_CSV_COLUMNS: List[str] = [
    "section_number",
    "question_number",
    "question_type",
    "question_text",
    "options",
    "correct_answer",
    "audio_url",
    "timestamp",
]


class ListeningQuestionIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    question_number: int
    question_type: str = ""
    question_text: str = ""
    options: Optional[List[str]] = None
    correct_answer: Optional[Answer] = None
    transcript: Optional[str] = None
    audio_url: Optional[str] = None
    timestamp: Optional[int] = None
    section: Optional[int] = None

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _answer(cls, value: Any) -> Optional[Answer]:
        return coerce_answer(value)

    @field_validator("options", mode="before")
    @classmethod
    def _options(cls, value: Any) -> Optional[List[str]]:
        return coerce_options(value)

    @field_validator("question_type", "question_text", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


class ListeningSectionIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    section_number: int
    instructions: str = ""
    questions: List[ListeningQuestionIn] = Field(default_factory=list)

    @field_validator("instructions", mode="before")
    @classmethod
    def _instructions(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ListeningTestIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    audio_src: str = ""
    sections: List[ListeningSectionIn] = Field(default_factory=list)

    @field_validator("title", "audio_src", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def question_count(self) -> int:
        return sum(len(s.questions) for s in self.sections)


class ListeningRow(BaseModel):
    section_number: int
    question_number: int
    question_type: str = ""
    question_text: str = ""
    options: str = ""
    correct_answer: str = ""
    audio_url: str = ""
    timestamp: Optional[int] = None


def load_listening(source: Union[str, bytes, dict]) -> Tuple[Optional[ListeningTestIn], List[ValidationIssue]]:
    data: Any = source
    if isinstance(source, (str, bytes)):
        try:
            data = json.loads(source)
        except ValueError as exc:
            return None, [ValidationIssue("invalid_json", f"Invalid JSON: {exc}")]
    if not isinstance(data, dict):
        return None, [ValidationIssue("invalid_json", "Listening JSON must be an object")]
    try:
        return ListeningTestIn.model_validate(data), []
    except ValidationError as exc:
        return None, [
            ValidationIssue("schema", f"{'.'.join(str(p) for p in err.get('loc', ())) or 'test'}: {err.get('msg')}")
            for err in exc.errors()
        ]


def apply_audio_source(test: ListeningTestIn, audio_src: str) -> ListeningTestIn:
    """Set the test-level audio and fill it into questions that have none."""
    updated = test.model_copy(deep=True)
    updated.audio_src = audio_src
    for section in updated.sections:
        for question in section.questions:
            if not question.audio_url:
                question.audio_url = audio_src
    return updated


def canonical_listening_type(name: str) -> str:
    return LISTENING_TYPE_ALIASES.get(name, name)


def validate_listening(test: ListeningTestIn) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    if not test.title.strip():
        issues.append(ValidationIssue("missing_title", "Missing title"))
    if not test.sections:
        issues.append(ValidationIssue("no_sections", "No sections provided"))

    seen_sections = set()
    for section in test.sections:
        number = section.section_number
        if number not in SECTION_RANGE:
            issues.append(ValidationIssue("section_out_of_range", f"Section {number}: section_number must be between 1 and 4", number))
        if number in seen_sections:
            issues.append(ValidationIssue("duplicate_section_number", f"Duplicate section_number: {number}", number))
        else:
            seen_sections.add(number)
        if not section.questions:
            issues.append(ValidationIssue("no_questions", f"Section {number}: No questions", number))
            continue

        seen_questions = set()
        for q in section.questions:
            where = f"Section {number} Q{q.question_number}"
            if q.question_number in seen_questions:
                issues.append(ValidationIssue("duplicate_question_number", f"Section {number}: Duplicate question_number {q.question_number}", number, q.question_number))
            else:
                seen_questions.add(q.question_number)
            qtype = canonical_listening_type(q.question_type)
            if qtype not in LISTENING_QUESTION_TYPES:
                issues.append(ValidationIssue(
                    "invalid_question_type",
                    f'{where}: Invalid question_type "{q.question_type}". Must be one of: {", ".join(LISTENING_QUESTION_TYPES)}',
                    number,
                    q.question_number,
                ))
            if not q.question_text:
                issues.append(ValidationIssue("missing_field", f'{where}: Missing or empty field "question_text".', number, q.question_number))
            if qtype in OPTION_TYPES and not q.options:
                issues.append(ValidationIssue("empty_options", f'{where}: "options" must be a non-empty array for type "{qtype}".', number, q.question_number))
    return issues


def _join(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ";".join(value)
    return str(value)


def listening_to_rows(test: ListeningTestIn) -> List[ListeningRow]:
    rows: List[ListeningRow] = []
    for section in test.sections:
        for q in section.questions:
            rows.append(ListeningRow(
                section_number=section.section_number,
                question_number=q.question_number,
                question_type=q.question_type,
                question_text=q.question_text,
                options=_join(q.options),
                correct_answer=_join(q.correct_answer),
                audio_url=q.audio_url or test.audio_src,
                timestamp=q.timestamp,
            ))
    return rows


def listening_rows_to_csv(rows: Sequence[ListeningRow]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(LISTENING_CSV_COLUMNS)
    for row in rows:
        data = row.model_dump()
        writer.writerow(["" if data[col] is None else data[col] for col in LISTENING_CSV_COLUMNS])
    return buf.getvalue()

"""Pydantic models for the editable import buffers."""

from __future__ import annotations
import json
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# str for a single answer, list for multi-part answers; decided once on load
Answer = Union[List[str], str]


def coerce_answer(value: Any) -> Optional[Answer]:
    """Decide the answer variant from whatever the editor or the LLM produced.

    A string holding a JSON array literal becomes a list; everything else
    stays scalar. Persisted answers are stored with their variant and are
    never re-sniffed.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                decoded = json.loads(stripped)
            except ValueError:
                return value
            if isinstance(decoded, list):
                return [str(v) for v in decoded if v is not None]
        return value
    return str(value)


def coerce_options(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        if stripped.startswith("["):
            try:
                decoded = json.loads(stripped)
                if isinstance(decoded, list):
                    return [str(v) for v in decoded]
            except ValueError:
                pass
        return split_list_cell(stripped)
    if not isinstance(value, (list, tuple)):
        raise ValueError("options must be a list of strings")
    return [str(v) for v in value]


def split_list_cell(cell: str) -> List[str]:
    # Flattened CSV cells join lists with ";" (preferred) or ","
    sep = ";" if ";" in cell else ","
    return [part.strip() for part in cell.split(sep) if part.strip()]


class ReadingQuestionIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    question_number: int
    question_type: str = ""
    question_text: Optional[str] = None
    text: Optional[str] = None  # legacy alias of question_text
    instruction: Optional[str] = None
    options: Optional[List[str]] = None
    correct_answer: Optional[Answer] = None
    answer: Optional[Answer] = None  # legacy alias of correct_answer
    explanation: Optional[str] = None
    status: str = "draft"

    @field_validator("correct_answer", "answer", mode="before")
    @classmethod
    def _decide_answer(cls, value: Any) -> Optional[Answer]:
        return coerce_answer(value)

    @field_validator("options", mode="before")
    @classmethod
    def _options(cls, value: Any) -> Optional[List[str]]:
        return coerce_options(value)

    @field_validator("question_type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @property
    def resolved_text(self) -> Optional[str]:
        return self.question_text or self.text

    @property
    def resolved_answer(self) -> Optional[Answer]:
        # An empty scalar falls through to the legacy alias, as "" is falsy
        return self.correct_answer or self.answer


class ReadingPassageIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    passage_number: int
    title: Optional[str] = None
    body: Optional[str] = None
    section_instruction: Optional[str] = None
    status: str = "draft"
    questions: List[ReadingQuestionIn] = Field(default_factory=list)

    @field_validator("questions", mode="before")
    @classmethod
    def _questions(cls, value: Any) -> Any:
        return [] if value is None else value


class ReadingPaperIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    type: str = ""
    status: str = "draft"
    passages: List[ReadingPassageIn] = Field(default_factory=list)

    @field_validator("title", "type", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("passages", mode="before")
    @classmethod
    def _passages(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def question_count(self) -> int:
        return sum(len(p.questions) for p in self.passages)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(), indent=2, ensure_ascii=False)


class GridRow(BaseModel):
    """One row per question; a disposable view used for tabular edit and CSV."""

    model_config = ConfigDict(extra="ignore")

    passage_number: int
    passage_title: str = ""
    question_number: int
    question_text: str = ""
    question_type: str = ""
    options: str = ""
    correct_answer: str = ""

    @field_validator("passage_title", "question_text", "question_type", "options", "correct_answer", mode="before")
    @classmethod
    def _cell(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ";".join(str(v) for v in value)
        return str(value)


def split_answer_cell(cell: str) -> Optional[Answer]:
    # Answers may contain commas, so only ";" marks a multi-part answer
    cell = (cell or "").strip()
    if not cell:
        return None
    if ";" in cell:
        return [part.strip() for part in cell.split(";") if part.strip()]
    return cell

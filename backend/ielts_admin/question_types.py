"""IELTS reading question-type catalogue."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


MATCHING_HEADINGS = "Matching Headings"
MATCHING_INFORMATION = "Matching Information"
MATCHING_FEATURES = "Matching Features"
MATCHING_SENTENCE_ENDINGS = "Matching Sentence Endings"
TRUE_FALSE_NOT_GIVEN = "Identifying Information (True/False/Not Given)"
YES_NO_NOT_GIVEN = "Identifying Writer's Views/Claims (Yes/No/Not Given)"
MULTIPLE_CHOICE = "Multiple Choice"
LIST_OF_OPTIONS = "List of Options"
CHOOSE_A_TITLE = "Choose a Title"
SHORT_ANSWER = "Short-answer Questions"
SENTENCE_COMPLETION = "Sentence Completion"
SUMMARY_COMPLETION = "Summary Completion"
TABLE_COMPLETION = "Table Completion"
FLOW_CHART_COMPLETION = "Flow-Chart Completion"
DIAGRAM_LABEL_COMPLETION = "Diagram Label Completion"

# Placeholder emitted by the heuristic parser; never valid for upload
UNKNOWN = "Unknown"

WITH_OPTIONS: Tuple[str, ...] = ("question_text", "options", "correct_answer")
TEXT_AND_ANSWER: Tuple[str, ...] = ("question_text", "correct_answer")


@dataclass(frozen=True)
class QuestionTypeInfo:
    name: str
    display_name: str
    ui: str
    required_fields: Tuple[str, ...]
    student_instructions: str
    answer_choices: Optional[Tuple[str, ...]] = None

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "ui": self.ui,
            "required_fields": list(self.required_fields),
            "student_instructions": self.student_instructions,
            "answer_choices": list(self.answer_choices) if self.answer_choices else None,
        }


_CATALOGUE: Tuple[QuestionTypeInfo, ...] = (
    QuestionTypeInfo(MATCHING_HEADINGS, "Matching Headings", "matching", WITH_OPTIONS,
                     "Match each paragraph to the correct heading. Options list is provided."),
    QuestionTypeInfo(MATCHING_INFORMATION, "Matching Information", "matching", WITH_OPTIONS,
                     "Identify which paragraph contains the given information."),
    QuestionTypeInfo(MATCHING_FEATURES, "Matching Features", "matching", WITH_OPTIONS,
                     "Match features (e.g., names, objects) to statements. Options list provided."),
    QuestionTypeInfo(MATCHING_SENTENCE_ENDINGS, "Matching Sentence Endings", "matching", WITH_OPTIONS,
                     "Complete each sentence by choosing the correct ending from the list."),
    QuestionTypeInfo(TRUE_FALSE_NOT_GIVEN, "True/False/Not Given", "dropdown", TEXT_AND_ANSWER,
                     "Select True, False, or Not Given for each statement.",
                     ("True", "False", "Not Given")),
    QuestionTypeInfo(YES_NO_NOT_GIVEN, "Yes/No/Not Given", "dropdown", TEXT_AND_ANSWER,
                     "Select Yes, No, or Not Given for each statement.",
                     ("Yes", "No", "Not Given")),
    QuestionTypeInfo(MULTIPLE_CHOICE, "Multiple Choice", "mcq", WITH_OPTIONS,
                     "Choose the correct answer from the options."),
    QuestionTypeInfo(LIST_OF_OPTIONS, "List of Options", "options", WITH_OPTIONS,
                     "Choose one or more correct options (e.g., 'Select THREE')."),
    QuestionTypeInfo(CHOOSE_A_TITLE, "Choose a Title", "title", WITH_OPTIONS,
                     "Choose the most appropriate title for the passage."),
    QuestionTypeInfo(SHORT_ANSWER, "Short Answer", "input", TEXT_AND_ANSWER,
                     "Write a short answer. Usually limited to a number of words."),
    QuestionTypeInfo(SENTENCE_COMPLETION, "Sentence Completion", "blank", TEXT_AND_ANSWER,
                     "Fill in the blank(s) to complete the sentence."),
    QuestionTypeInfo(SUMMARY_COMPLETION, "Summary Completion", "blank", TEXT_AND_ANSWER,
                     "Complete the summary using words from the passage."),
    QuestionTypeInfo(TABLE_COMPLETION, "Table Completion", "blank", TEXT_AND_ANSWER,
                     "Fill in the blanks in the table with correct information."),
    QuestionTypeInfo(FLOW_CHART_COMPLETION, "Flow-Chart Completion", "blank", TEXT_AND_ANSWER,
                     "Fill in the blanks in the flow-chart."),
    QuestionTypeInfo(DIAGRAM_LABEL_COMPLETION, "Diagram Label Completion", "blank", TEXT_AND_ANSWER,
                     "Label the diagram by filling in the missing words."),
)

QUESTION_TYPES: Dict[str, QuestionTypeInfo] = {info.name: info for info in _CATALOGUE}
ALLOWED_QUESTION_TYPES: List[str] = [info.name for info in _CATALOGUE]

# Retired names are rejected outright, never migrated
LEGACY_QUESTION_TYPES: Tuple[str, ...] = (
    "Note/Table/Flow-Chart Completion",
    "Note Completion/Table Completion/Flow-chart Completion",
)

# Applied at persistence time only
QUESTION_TYPE_ALIASES: Dict[str, str] = {
    "Matching Paragraph Information": MATCHING_INFORMATION,
    "Short-Answer Questions": SHORT_ANSWER,
}


def get_question_type_info(name: str) -> Optional[QuestionTypeInfo]:
    return QUESTION_TYPES.get(name)


def canonical_question_type(name: str) -> str:
    return QUESTION_TYPE_ALIASES.get(name, name)


def required_fields(name: str) -> Tuple[str, ...]:
    info = QUESTION_TYPES.get(name)
    return info.required_fields if info else ()

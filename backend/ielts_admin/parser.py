"""Heuristic parser: raw IELTS reading text -> editable paper structure.

Each section block is run through an ordered table of extraction rules, so
the heuristics live in data rather than inline regex literals. The parser
never infers answers and never raises; when nothing matches it returns empty
collections and leaves it to validation to reject the result.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from re import Match, Pattern
from typing import Callable, Dict, List, Optional, Tuple

from . import question_types as qt
from .schemas import GridRow, ReadingPaperIn, ReadingPassageIn, ReadingQuestionIn

logger = logging.getLogger(__name__)


DEFAULT_PAPER_TITLE = "IELTS Academic Reading"
PAPER_TITLE_RE = re.compile(r"Reading Test \d+", re.IGNORECASE)
SECTION_SPLIT_RE = re.compile(r"Section \d+", re.IGNORECASE)

QUESTION_RE = re.compile(
    r"Question\s*(\d+)[\.\)]?\s+([^\n]+?)(?=\s*Question\s*\d+|\n\n|\s*\Z)",
    re.IGNORECASE | re.DOTALL,
)
# Grid projection has no blank-line stop
ROW_QUESTION_RE = re.compile(
    r"Question\s*(\d+)[\.\)]?\s+([^\n]+?)(?=\s*Question\s*\d+|\s*\Z)",
    re.IGNORECASE | re.DOTALL,
)
ROW_MIN_BLOCK_LENGTH = 30


@dataclass(frozen=True)
class ExtractionRule:
    field: str
    pattern: Pattern[str]
    postprocess: Callable[[Match[str]], Optional[str]]
    default: Callable[[str, int], Optional[str]]

    def apply(self, block: str, index: int) -> Optional[str]:
        match = self.pattern.search(block)
        if match is None:
            return self.default(block, index)
        return self.postprocess(match)


def _collapse_newlines(text: str) -> str:
    return re.sub(r"\n+", " ", text).strip()


def _strip_instruction_marker(match: Match[str]) -> Optional[str]:
    return re.sub(r"Instructions?:", "", match.group(0), count=1, flags=re.IGNORECASE).strip()


PASSAGE_RULES: Tuple[ExtractionRule, ...] = (
    ExtractionRule(
        field="title",
        pattern=re.compile(r"based on Reading Passage[^\n]*\n([^\n]+)", re.IGNORECASE),
        postprocess=lambda m: m.group(1).strip(),
        default=lambda block, index: f"Passage {index + 1}",
    ),
    ExtractionRule(
        field="body",
        pattern=re.compile(
            r"based on Reading Passage[^\n]*\n[^\n]+\n([\s\S]*?)(?:Question\s*\d+|\n\n|\Z)",
            re.IGNORECASE,
        ),
        postprocess=lambda m: _collapse_newlines(m.group(1)),
        default=lambda block, index: block.strip(),
    ),
    ExtractionRule(
        field="section_instruction",
        pattern=re.compile(r"Instructions?:[\s\S]*?(?=\n\n|\nQuestions?|\Z)", re.IGNORECASE),
        postprocess=_strip_instruction_marker,
        default=lambda block, index: None,
    ),
)

# First keyword found anywhere in the block wins, for every question in it
TYPE_KEYWORDS: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"headings", re.IGNORECASE), qt.MATCHING_HEADINGS),
    (re.compile(r"features", re.IGNORECASE), qt.MATCHING_FEATURES),
    (re.compile(r"information", re.IGNORECASE), qt.MATCHING_INFORMATION),
    (re.compile(r"sentence endings", re.IGNORECASE), qt.MATCHING_SENTENCE_ENDINGS),
)


def split_sections(raw_text: str) -> List[str]:
    """Return the text following each ``Section N`` marker.

    Text before the first marker is a preamble (paper title, cover notes) and
    does not become a passage. Whitespace-only blocks are dropped.
    """
    parts = SECTION_SPLIT_RE.split(raw_text or "")
    return [block for block in parts[1:] if block.strip()]


def extract_fields(block: str, index: int, rules: Tuple[ExtractionRule, ...] = PASSAGE_RULES) -> Dict[str, Optional[str]]:
    return {rule.field: rule.apply(block, index) for rule in rules}


def sniff_question_type(block: str) -> str:
    for pattern, name in TYPE_KEYWORDS:
        if pattern.search(block):
            return name
    return qt.UNKNOWN


def _question_instruction(block: str, number: str, text: str) -> Optional[str]:
    prefix = rf"Question\s*{number}[\.\)]?\s+{re.escape(text)}"
    match = re.search(prefix + r"[\s\S]*?(?=Instructions?:|Question\s*\d+|\n\n|\Z)", block)
    if match is None:
        return None
    remainder = re.sub(prefix, "", match.group(0), count=1).strip()
    return remainder or None


def parse_questions(block: str) -> List[ReadingQuestionIn]:
    question_type = sniff_question_type(block)
    questions: List[ReadingQuestionIn] = []
    for match in QUESTION_RE.finditer(block):
        number, text = match.group(1), match.group(2).strip()
        questions.append(
            ReadingQuestionIn(
                question_number=int(number),
                question_type=question_type,
                question_text=text,
                instruction=_question_instruction(block, number, text),
                options=None,
                correct_answer="",
                status="draft",
            )
        )
    return questions


def parse(raw_text: str) -> ReadingPaperIn:
    logger.debug("Parsing raw text: %r", (raw_text or "")[:100])
    title_match = PAPER_TITLE_RE.search(raw_text or "")
    title = title_match.group(0).strip() if title_match else DEFAULT_PAPER_TITLE

    passages: List[ReadingPassageIn] = []
    for idx, block in enumerate(split_sections(raw_text)):
        logger.debug("Processing block %d: %r", idx + 1, block[:100])
        fields = extract_fields(block, idx)
        passages.append(
            ReadingPassageIn(
                passage_number=idx + 1,
                title=fields["title"],
                body=fields["body"],
                section_instruction=fields["section_instruction"],
                status="draft",
                questions=parse_questions(block),
            )
        )

    paper = ReadingPaperIn(title=title, type="academic", status="draft", passages=passages)
    logger.debug("Parsed %d passage(s), %d question(s)", len(passages), paper.question_count)
    return paper


def parse_rows(raw_text: str) -> List[GridRow]:
    """Flatten raw text straight into grid rows, skipping near-empty blocks."""
    rows: List[GridRow] = []
    blocks = [b for b in split_sections(raw_text) if len(b.strip()) > ROW_MIN_BLOCK_LENGTH]
    for idx, block in enumerate(blocks):
        title = PASSAGE_RULES[0].apply(block, idx) or f"Passage {idx + 1}"
        for match in ROW_QUESTION_RE.finditer(block):
            rows.append(
                GridRow(
                    passage_number=idx + 1,
                    passage_title=title,
                    question_number=int(match.group(1)),
                    question_text=match.group(2).strip(),
                    question_type=qt.UNKNOWN,
                    options="",
                    correct_answer="",
                )
            )
    return rows

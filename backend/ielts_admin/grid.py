from __future__ import annotations
import csv
import io
from typing import Dict, List, Sequence

from .errors import ImportPipelineError
from .schemas import GridRow, ReadingPaperIn, ReadingPassageIn, ReadingQuestionIn, split_answer_cell, split_list_cell

CSV_COLUMNS: List[str] = [
    "passage_number",
    "passage_title",
    "question_number",
    "question_text",
    "question_type",
    "options",
    "correct_answer",
]
LIST_DELIMITER = ";"

JSON_EXPORT_NAME = "reading_test.json"
CSV_EXPORT_NAME = "reading_test.csv"


def _join(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return LIST_DELIMITER.join(value)
    return str(value)


def paper_to_rows(paper: ReadingPaperIn) -> List[GridRow]:
    rows: List[GridRow] = []
    for passage in paper.passages:
        for question in passage.questions:
            rows.append(GridRow(
                passage_number=passage.passage_number,
                passage_title=passage.title or "",
                question_number=question.question_number,
                question_text=question.resolved_text or "",
                question_type=question.question_type,
                options=_join(question.options),
                correct_answer=_join(question.resolved_answer),
            ))
    return rows


def rows_to_paper(rows: Sequence[GridRow], title: str = "", paper_type: str = "academic") -> ReadingPaperIn:
    """Rebuild a paper from grid rows, grouping by passage number in order of appearance."""
    passages: Dict[int, ReadingPassageIn] = {}
    for row in rows:
        passage = passages.get(row.passage_number)
        if passage is None:
            passage = passages[row.passage_number] = ReadingPassageIn(
                passage_number=row.passage_number,
                title=row.passage_title or None,
            )
        passage.questions.append(ReadingQuestionIn(
            question_number=row.question_number,
            question_type=row.question_type,
            question_text=row.question_text or None,
            options=split_list_cell(row.options) or None,
            correct_answer=split_answer_cell(row.correct_answer),
        ))
    return ReadingPaperIn(title=title, type=paper_type, passages=list(passages.values()))


def rows_to_csv(rows: Sequence[GridRow]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for row in rows:
        data = row.model_dump()
        writer.writerow([data[col] for col in CSV_COLUMNS])
    return buf.getvalue()


def csv_to_rows(text: str) -> List[GridRow]:
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    missing = [col for col in ("passage_number", "question_number") if col not in (reader.fieldnames or [])]
    if missing:
        raise ImportPipelineError(f"CSV is missing column(s): {', '.join(missing)}")
    rows: List[GridRow] = []
    for line_no, record in enumerate(reader, start=2):
        try:
            rows.append(GridRow(
                passage_number=int((record.get("passage_number") or "").strip()),
                passage_title=record.get("passage_title"),
                question_number=int((record.get("question_number") or "").strip()),
                question_text=(record.get("question_text") or "").strip(),
                question_type=(record.get("question_type") or "").strip(),
                options=(record.get("options") or "").strip(),
                correct_answer=(record.get("correct_answer") or "").strip(),
            ))
        except ValueError as err:
            raise ImportPipelineError(f"CSV line {line_no}: passage_number and question_number must be integers") from err
    return rows

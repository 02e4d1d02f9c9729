from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import PaperValidationFailed, PersistenceError
from .grid import rows_to_paper
from .listening import ListeningTestIn, canonical_listening_type, validate_listening
from .models import (
	ListeningQuestion,
	ListeningSection,
	ListeningTest,
	ReadingImportLog,
	ReadingPaper,
	ReadingPassage,
	ReadingQuestion,
)
from .question_types import canonical_question_type
from .schemas import GridRow, ReadingPaperIn
from .settings import settings
from .validation import validate, validate_rows

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

PAPER_INSERTED_PROGRESS = 10
QUESTIONS_PROGRESS_SPAN = 85


class ProgressTracker:
	"""Percentage that only moves forward."""

	def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
		self.value = 0
		self._callback = callback

	def advance(self, value: int) -> None:
		value = max(0, min(100, int(value)))
		if value <= self.value:
			return
		self.value = value
		if self._callback is not None:
			self._callback(value)

	def questions_done(self, inserted: int, total: int) -> None:
		if total <= 0:
			return
		self.advance(PAPER_INSERTED_PROGRESS + (QUESTIONS_PROGRESS_SPAN * inserted) // total)


@dataclass
class ImportResult:
	paper_id: int
	inserted_question_ids: List[int] = field(default_factory=list)
	num_passages: int = 0
	num_questions: int = 0
	progress: int = 100

	def as_dict(self) -> dict:
		return {
			"paper_id": self.paper_id,
			"inserted_question_ids": self.inserted_question_ids,
			"num_passages": self.num_passages,
			"num_questions": self.num_questions,
			"progress": self.progress,
		}


def compensating_delete(db: Session, model, row_id: Optional[int], *criteria, attempts: Optional[int] = None) -> bool:
	"""Delete ``row_id`` from ``model``; safe to repeat, retried on store errors.

	Extra ``criteria`` pin the row further (e.g. by title) so a reused id is
	never hit. Dependent rows go with it through ON DELETE CASCADE.
	"""
	if row_id is None:
		return True
	attempts = max(1, attempts or settings.compensation_attempts)
	for attempt in range(1, attempts + 1):
		try:
			db.execute(delete(model).where(model.id == row_id, *criteria))
			db.commit()
			return True
		except SQLAlchemyError:
			db.rollback()
			if attempt == attempts:
				logger.exception("Compensating delete of %s %s failed after %d attempt(s)", model.__tablename__, row_id, attempts)
	return False


def find_paper_id_by_title(db: Session, title: str) -> Optional[int]:
	return db.execute(select(ReadingPaper.id).where(ReadingPaper.title == title)).scalars().first()


def canonicalize_types(paper: ReadingPaperIn) -> ReadingPaperIn:
	normalized = paper.model_copy(deep=True)
	for passage in normalized.passages:
		for question in passage.questions:
			question.question_type = canonical_question_type(question.question_type)
	return normalized


class ReadingImporter:
	def __init__(self, db: Session, *, user_id: Optional[str] = None, compensation_attempts: Optional[int] = None) -> None:
		self.db = db
		self.user_id = user_id
		self.compensation_attempts = compensation_attempts or settings.compensation_attempts

	def persist(self, paper: ReadingPaperIn, progress: Optional[ProgressCallback] = None) -> ImportResult:
		paper = canonicalize_types(paper)

		existing = find_paper_id_by_title(self.db, paper.title)
		if existing is not None:
			raise PersistenceError(
				f'A paper with title "{paper.title}" already exists in the database.',
				paper_id=existing,
				duplicate=True,
			)

		issues = validate(paper)
		if issues:
			raise PaperValidationFailed(issues)

		tracker = ProgressTracker(progress)
		total = paper.question_count
		paper_id: Optional[int] = None
		inserted: List[int] = []
		try:
			paper_id = self._insert_paper(paper.title, paper.type, paper.status)
			tracker.advance(PAPER_INSERTED_PROGRESS)
			for passage in paper.passages:
				passage_row = self._add(ReadingPassage(
					paper_id=paper_id,
					passage_number=passage.passage_number,
					title=passage.title,
					body=passage.body,
					section_instruction=passage.section_instruction or None,
					status=passage.status or "draft",
					created_by=self.user_id,
					updated_by=self.user_id,
				))
				for q in passage.questions:
					question_row = self._add(ReadingQuestion(
						paper_id=paper_id,
						passage_id=passage_row.id,
						question_number=q.question_number,
						question_type=q.question_type,
						text=q.resolved_text or "",
						instruction=q.instruction or None,
						answer=q.resolved_answer or None,
						options=q.options or None,
						explanation=q.explanation or None,
						status=q.status or "draft",
						created_by=self.user_id,
						updated_by=self.user_id,
					))
					inserted.append(question_row.id)
					tracker.questions_done(len(inserted), total)
			self._log_import(paper.title, paper_id, len(paper.passages), total)
			self.db.commit()
		except Exception as err:
			self._fail(err, paper_id, paper.title)

		tracker.advance(100)
		logger.info("Imported reading paper %r (id=%s): %d passage(s), %d question(s)", paper.title, paper_id, len(paper.passages), total)
		return ImportResult(
			paper_id=paper_id,
			inserted_question_ids=inserted,
			num_passages=len(paper.passages),
			num_questions=total,
			progress=tracker.value,
		)

	def persist_rows(self, rows: Sequence[GridRow], progress: Optional[ProgressCallback] = None) -> ImportResult:
		"""Import flattened grid rows as a new draft paper."""
		issues = validate_rows(rows)
		if issues:
			raise PaperValidationFailed(issues)

		paper = rows_to_paper(rows, title=f"CSV Import {int(time.time() * 1000)}")
		tracker = ProgressTracker(progress)
		total = paper.question_count
		paper_id: Optional[int] = None
		inserted: List[int] = []
		try:
			paper_id = self._insert_paper(paper.title, paper.type, "draft")
			tracker.advance(PAPER_INSERTED_PROGRESS)
			for passage in paper.passages:
				passage_row = self._add(ReadingPassage(
					paper_id=paper_id,
					passage_number=passage.passage_number,
					title=passage.title,
					body=None,
					status="draft",
					created_by=self.user_id,
					updated_by=self.user_id,
				))
				for q in passage.questions:
					question_row = self._add(ReadingQuestion(
						paper_id=paper_id,
						passage_id=passage_row.id,
						question_number=q.question_number,
						question_type=canonical_question_type(q.question_type),
						text=q.resolved_text or "",
						options=q.options,
						answer=q.resolved_answer,
						status="draft",
						created_by=self.user_id,
						updated_by=self.user_id,
					))
					inserted.append(question_row.id)
					tracker.questions_done(len(inserted), total)
			self._log_import(paper.title, paper_id, len(paper.passages), total)
			self.db.commit()
		except Exception as err:
			self._fail(err, paper_id, paper.title)

		tracker.advance(100)
		logger.info("Imported %d CSV row(s) into paper %r (id=%s)", total, paper.title, paper_id)
		return ImportResult(
			paper_id=paper_id,
			inserted_question_ids=inserted,
			num_passages=len(paper.passages),
			num_questions=total,
			progress=tracker.value,
		)

	def undo(self, question_ids: Sequence[int]) -> int:
		"""Bulk-delete question rows; papers and passages are left in place."""
		ids = list(question_ids)
		if not ids:
			return 0
		try:
			res = self.db.execute(delete(ReadingQuestion).where(ReadingQuestion.id.in_(ids)))
			self.db.commit()
		except SQLAlchemyError as err:
			self.db.rollback()
			raise PersistenceError(f"Undo failed: {err}") from err
		removed = res.rowcount or 0
		logger.info("Undo removed %d of %d question(s)", removed, len(ids))
		return removed

	def _add(self, row):
		self.db.add(row)
		self.db.flush()
		return row

	def _insert_paper(self, title: str, paper_type: str, status: str) -> int:
		row = self._add(ReadingPaper(
			title=title,
			type=paper_type,
			status=status or "draft",
			created_by=self.user_id,
			updated_by=self.user_id,
		))
		return row.id

	def _log_import(self, title: str, paper_id: int, num_passages: int, num_questions: int) -> None:
		self._add(ReadingImportLog(
			summary={"paper_title": title, "num_passages": num_passages, "num_questions": num_questions},
			affected_paper_ids=[paper_id],
			user_id=self.user_id,
		))

	def _fail(self, err: Exception, paper_id: Optional[int], title: str) -> None:
		self.db.rollback()
		compensated = compensating_delete(
			self.db, ReadingPaper, paper_id, ReadingPaper.title == title, attempts=self.compensation_attempts
		)
		logger.warning("Import of %r failed; compensating delete of paper %s %s", title, paper_id, "succeeded" if compensated else "FAILED")
		raise PersistenceError(
			f"Upload failed: {err}",
			paper_id=paper_id,
			compensated=compensated,
		) from err


class ListeningImporter:
	def __init__(self, db: Session, *, compensation_attempts: Optional[int] = None) -> None:
		self.db = db
		self.compensation_attempts = compensation_attempts or settings.compensation_attempts

	def persist(self, test: ListeningTestIn, progress: Optional[ProgressCallback] = None) -> ImportResult:
		issues = validate_listening(test)
		if issues:
			raise PaperValidationFailed(issues)

		tracker = ProgressTracker(progress)
		total = test.question_count
		test_id: Optional[int] = None
		inserted: List[int] = []
		try:
			test_row = ListeningTest(title=test.title, audio_src=test.audio_src or "")
			self.db.add(test_row)
			self.db.flush()
			test_id = test_row.id
			tracker.advance(PAPER_INSERTED_PROGRESS)
			for section in test.sections:
				section_row = ListeningSection(
					test_id=test_id,
					section_number=section.section_number,
					instructions=section.instructions,
				)
				self.db.add(section_row)
				self.db.flush()
				for q in section.questions:
					question_row = ListeningQuestion(
						test_id=test_id,
						section_id=section_row.id,
						question_number=q.question_number,
						question_type=canonical_listening_type(q.question_type),
						question_text=q.question_text,
						options=q.options or None,
						correct_answer=q.correct_answer or None,
						transcript=q.transcript,
						audio_url=q.audio_url or test.audio_src,
						timestamp=q.timestamp,
					)
					self.db.add(question_row)
					self.db.flush()
					inserted.append(question_row.id)
					tracker.questions_done(len(inserted), total)
			self.db.commit()
		except Exception as err:
			self.db.rollback()
			compensated = compensating_delete(
				self.db, ListeningTest, test_id, ListeningTest.title == test.title, attempts=self.compensation_attempts
			)
			logger.warning("Listening upload of %r failed; compensating delete %s", test.title, "succeeded" if compensated else "FAILED")
			raise PersistenceError(f"JSON upload failed: {err}", paper_id=test_id, compensated=compensated) from err

		tracker.advance(100)
		logger.info("Imported listening test %r (id=%s): %d section(s), %d question(s)", test.title, test_id, len(test.sections), total)
		return ImportResult(
			paper_id=test_id,
			inserted_question_ids=inserted,
			num_passages=len(test.sections),
			num_questions=total,
			progress=tracker.value,
		)

	def undo(self, question_ids: Sequence[int]) -> int:
		ids = list(question_ids)
		if not ids:
			return 0
		try:
			res = self.db.execute(delete(ListeningQuestion).where(ListeningQuestion.id.in_(ids)))
			self.db.commit()
		except SQLAlchemyError as err:
			self.db.rollback()
			raise PersistenceError(f"Undo failed: {err}") from err
		removed = res.rowcount or 0
		logger.info("Undo removed %d of %d listening question(s)", removed, len(ids))
		return removed

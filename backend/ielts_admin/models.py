from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Text, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from .db import Base


class ReadingPaper(Base):
	__tablename__ = "reading_papers"
	id = Column(Integer, primary_key=True, autoincrement=True)
	title = Column(String(256), nullable=False, unique=True, index=True)
	type = Column(String(32), nullable=False)
	status = Column(String(32), default="draft", nullable=False)
	created_by = Column(String(128), nullable=True)
	updated_by = Column(String(128), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
	# Child rows are removed by the database (ON DELETE CASCADE), not by the ORM
	passages = relationship("ReadingPassage", back_populates="paper", passive_deletes=True, order_by="ReadingPassage.passage_number")


class ReadingPassage(Base):
	__tablename__ = "reading_passages"
	id = Column(Integer, primary_key=True, autoincrement=True)
	paper_id = Column(Integer, ForeignKey("reading_papers.id", ondelete="CASCADE"), nullable=False, index=True)
	passage_number = Column(Integer, nullable=False)
	title = Column(String(512), nullable=True)
	body = Column(Text, nullable=True)
	section_instruction = Column(Text, nullable=True)
	status = Column(String(32), default="draft", nullable=False)
	created_by = Column(String(128), nullable=True)
	updated_by = Column(String(128), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	paper = relationship("ReadingPaper", back_populates="passages")
	questions = relationship("ReadingQuestion", back_populates="passage", passive_deletes=True, order_by="ReadingQuestion.question_number")


class ReadingQuestion(Base):
	__tablename__ = "reading_questions"
	id = Column(Integer, primary_key=True, autoincrement=True)
	paper_id = Column(Integer, ForeignKey("reading_papers.id", ondelete="CASCADE"), nullable=False, index=True)
	passage_id = Column(Integer, ForeignKey("reading_passages.id", ondelete="CASCADE"), nullable=False, index=True)
	question_number = Column(Integer, nullable=False)
	question_type = Column(String(128), nullable=False)
	text = Column(Text, nullable=False, default="")
	instruction = Column(Text, nullable=True)
	answer = Column(JSON, nullable=True)  # string or list of strings
	options = Column(JSON, nullable=True)
	explanation = Column(Text, nullable=True)
	status = Column(String(32), default="draft", nullable=False)
	created_by = Column(String(128), nullable=True)
	updated_by = Column(String(128), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	passage = relationship("ReadingPassage", back_populates="questions")


class ReadingImportLog(Base):
	__tablename__ = "reading_import_logs"
	id = Column(Integer, primary_key=True, autoincrement=True)
	imported_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	summary = Column(JSON, nullable=False)
	affected_paper_ids = Column(JSON, nullable=False)
	user_id = Column(String(128), nullable=True)


class ListeningTest(Base):
	__tablename__ = "listening_tests"
	id = Column(Integer, primary_key=True, autoincrement=True)
	title = Column(String(256), nullable=False)
	audio_src = Column(Text, nullable=False, default="")
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
	sections = relationship("ListeningSection", back_populates="test", passive_deletes=True, order_by="ListeningSection.section_number")


class ListeningSection(Base):
	__tablename__ = "listening_sections"
	__table_args__ = (UniqueConstraint("test_id", "section_number", name="uq_listening_section_number"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	test_id = Column(Integer, ForeignKey("listening_tests.id", ondelete="CASCADE"), nullable=False, index=True)
	section_number = Column(Integer, nullable=False)
	instructions = Column(Text, nullable=False, default="")
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	test = relationship("ListeningTest", back_populates="sections")
	questions = relationship("ListeningQuestion", back_populates="section", passive_deletes=True, order_by="ListeningQuestion.question_number")


class ListeningQuestion(Base):
	__tablename__ = "listening_questions"
	__table_args__ = (UniqueConstraint("section_id", "question_number", name="uq_listening_question_number"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	test_id = Column(Integer, ForeignKey("listening_tests.id", ondelete="CASCADE"), nullable=False, index=True)
	section_id = Column(Integer, ForeignKey("listening_sections.id", ondelete="CASCADE"), nullable=False, index=True)
	question_number = Column(Integer, nullable=False)
	question_type = Column(String(64), nullable=False)
	question_text = Column(Text, nullable=False)
	options = Column(JSON, nullable=True)
	correct_answer = Column(JSON, nullable=True)
	transcript = Column(Text, nullable=True)
	audio_url = Column(Text, nullable=True)
	timestamp = Column(Integer, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	section = relationship("ListeningSection", back_populates="questions")


class SavedPrompt(Base):
	__tablename__ = "saved_prompts"
	id = Column(Integer, primary_key=True, autoincrement=True)
	label = Column(String(256), nullable=False)
	prompt = Column(Text, nullable=False)
	module = Column(String(32), default="reading", nullable=False)
	created_by = Column(String(128), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

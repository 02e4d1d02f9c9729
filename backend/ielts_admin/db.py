from __future__ import annotations
import sqlite3

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./app.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
	# SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
	if isinstance(dbapi_connection, sqlite3.Connection):
		cursor = dbapi_connection.cursor()
		cursor.execute("PRAGMA foreign_keys=ON")
		cursor.close()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema() -> None:
	try:
		inspector = inspect(engine)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	if "reading_questions" in tables:
		cols = {c["name"] for c in inspector.get_columns("reading_questions")}
		with engine.begin() as conn:
			if "instruction" not in cols:
				conn.exec_driver_sql("ALTER TABLE reading_questions ADD COLUMN instruction TEXT")
			if "updated_by" not in cols:
				conn.exec_driver_sql("ALTER TABLE reading_questions ADD COLUMN updated_by VARCHAR(128)")
			if "explanation" not in cols:
				conn.exec_driver_sql("ALTER TABLE reading_questions ADD COLUMN explanation TEXT")
	if "listening_questions" in tables:
		cols = {c["name"] for c in inspector.get_columns("listening_questions")}
		with engine.begin() as conn:
			if "transcript" not in cols:
				conn.exec_driver_sql("ALTER TABLE listening_questions ADD COLUMN transcript TEXT")
			if "timestamp" not in cols:
				conn.exec_driver_sql("ALTER TABLE listening_questions ADD COLUMN timestamp INTEGER")

"""
Pytest configuration and shared fixtures
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ielts_admin.db import Base, get_db
from ielts_admin.main import app
from ielts_admin.routers.deps import normalizer
from ielts_admin.ai_normalizer import AINormalizer
from ielts_admin.cache import MemoryCache


@pytest.fixture
def engine():
    """In-memory SQLite shared across connections, foreign keys on."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


class FakeBackend:
    """Completion backend that returns a canned reply and counts calls."""

    def __init__(self, reply='```json\n{"title": "Reading Test 1"}\n```'):
        self.reply = reply
        self.calls = []

    async def complete(self, prompt, text):
        self.calls.append((prompt, text))
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def client(db_session, fake_backend):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[normalizer] = lambda: AINormalizer(backend=fake_backend, cache=MemoryCache(16))
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def sample_paper():
    """A valid two-passage paper in the editable JSON shape."""
    return {
        "title": "Reading Test 7",
        "type": "academic",
        "status": "draft",
        "passages": [
            {
                "passage_number": 1,
                "title": "Ocean Life",
                "body": "Turtles face threats.",
                "section_instruction": "Answer questions 1-2.",
                "questions": [
                    {
                        "question_number": 1,
                        "question_type": "Identifying Information (True/False/Not Given)",
                        "question_text": "Turtles are endangered.",
                        "correct_answer": "True",
                    },
                    {
                        "question_number": 2,
                        "question_type": "Multiple Choice",
                        "question_text": "What is the main threat?",
                        "options": ["A. Plastic", "B. Sharks", "C. Storms"],
                        "correct_answer": "A",
                    },
                ],
            },
            {
                "passage_number": 2,
                "title": "Desert Plants",
                "body": "Cacti store water.",
                "questions": [
                    {
                        "question_number": 3,
                        "question_type": "Summary Completion",
                        "question_text": "Cacti store ____ in their stems.",
                        "correct_answer": "water",
                    },
                ],
            },
        ],
    }

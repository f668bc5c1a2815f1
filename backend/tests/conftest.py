"""
Exam Autograder - Test Configuration
Pytest fixtures and configuration for testing
"""
import asyncio
import os
from collections.abc import AsyncGenerator
from typing import Any

# Settings are read at import time; keep tests off Postgres and off any real LLM
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///./test.db")
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import autograder.models  # noqa: F401
from autograder.ai.answer_evaluator import EvaluationResult, fallback_evaluation
from autograder.api.deps import get_answer_evaluator
from autograder.core.database import Base, get_db
from autograder.core.retry import RetryPolicy
from autograder.main import app
from autograder.services.catalog import ExamCatalog
from autograder.services.grading import GradingEngine


MCQ_BLOCK = """
1. What is 2+2?
A. 3
B. 4
C. 5
D. 6
(Correct: B)

2. Which planet is known as the Red Planet?
A) Venus
B) Jupiter
C) Mars
D) Saturn
Correct: C
"""

SHORT_BLOCK = """
1. Explain photosynthesis.
2. What causes the seasons on Earth?
"""


class StubEvaluator:
    """
    In-memory answer evaluator.
    
    ``delays`` maps question text to seconds to sleep before answering, and
    ``gate`` holds every call until it is set.
    """
    
    def __init__(
        self,
        similarity: float = 0.8,
        feedback: str = "Good understanding shown",
        degraded: bool = False,
        error: Exception | None = None,
        delays: dict[str, float] | None = None,
        gate: asyncio.Event | None = None,
    ):
        self.similarity = similarity
        self.feedback = feedback
        self.degraded = degraded
        self.error = error
        self.delays = delays or {}
        self.gate = gate
        self.calls: list[dict[str, str]] = []
    
    async def evaluate(
        self,
        student_answer: str,
        reference_answer: str,
        question_text: str,
    ) -> EvaluationResult:
        self.calls.append({
            "student_answer": student_answer,
            "reference_answer": reference_answer,
            "question_text": question_text,
        })
        delay = self.delays.get(question_text, 0)
        if delay:
            await asyncio.sleep(delay)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.degraded:
            return fallback_evaluation(student_answer)
        return EvaluationResult(
            similarity=self.similarity,
            feedback=self.feedback,
            matched_concepts=["core idea"],
            suggestions="Add an example",
            grading_breakdown={"understanding": 2.5, "details": 1.0, "clarity": 1.0},
            model_used="stub-model",
        )


@pytest.fixture
def make_evaluator():
    """Factory for stub evaluators."""
    return StubEvaluator


@pytest.fixture
def evaluator() -> StubEvaluator:
    return StubEvaluator()


@pytest.fixture
def grading_engine(evaluator: StubEvaluator) -> GradingEngine:
    return GradingEngine(evaluator)


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, backoff_seconds=0.0, backoff_cap_seconds=0.0)


@pytest_asyncio.fixture(scope="function")
async def session_maker(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite database per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, evaluator: StubEvaluator) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session and evaluator overrides."""
    
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_answer_evaluator] = lambda: evaluator
    
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac
    
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def mixed_exam(db_session: AsyncSession, fast_retry: RetryPolicy):
    """Two multiple-choice questions (2 marks each) then two short answers (5 marks each)."""
    catalog = ExamCatalog(db_session, fast_retry)
    return await catalog.create_from_content(
        title="General Science",
        exam_type="Mixed",
        duration_minutes=15,
        mcq_content=MCQ_BLOCK,
        short_content=SHORT_BLOCK,
        mcq_marks=2,
        short_marks=5,
    )


@pytest.fixture
def sample_student() -> dict[str, Any]:
    return {
        "student_name": "Sarah Student",
        "student_email": "sarah@example.com",
    }


@pytest_asyncio.fixture
async def short_exam(db_session: AsyncSession, fast_retry: RetryPolicy):
    """Two short-answer questions worth 5 marks each."""
    catalog = ExamCatalog(db_session, fast_retry)
    return await catalog.create_from_content(
        title="Short Only",
        exam_type="Short",
        duration_minutes=10,
        mcq_content=None,
        short_content=SHORT_BLOCK,
        mcq_marks=1,
        short_marks=5,
    )

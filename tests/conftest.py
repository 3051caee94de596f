"""
Pytest configuration and fixtures for the quiz API tests.
"""
import sys
import os
import pytest
import pytest_asyncio

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AUTH_SECRET", "test-secret")
os.environ.setdefault("ENV", "development")

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from models.base import Base
from models.session import QuizSession
from helpers import create_quiz, quiz_layout

ANSWER_KEY = [0, 2, 1]


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session

@pytest_asyncio.fixture
async def sample_quiz(db):
    """3 questions, 4 options each, answer key [0, 2, 1]."""
    return quiz_layout(await create_quiz(db, ANSWER_KEY))


@pytest_asyncio.fixture
async def other_quiz(db):
    return quiz_layout(await create_quiz(db, [3, 3]))


@pytest_asyncio.fixture
async def quiz_session(db, sample_quiz):
    session = QuizSession(user_id="user-1", quiz_id=sample_quiz.quiz.id, total_questions=3)
    db.add(session)
    await db.commit()
    return session

@pytest.fixture
def sample_generated_quiz():
    """Generated quiz payload as returned by the model."""
    return [
        {
            "question": "The manager asked all staff to ____ the report by Friday.",
            "question_translation": "经理要求所有员工在周五之前____报告。",
            "options": [
                {"option": "submit", "option_translation": "提交", "option_explanation": "正确。"},
                {"option": "submits", "option_translation": "提交", "option_explanation": "主语后面要用原形。"},
                {"option": "submitting", "option_translation": "提交", "option_explanation": "to 后面用原形。"},
                {"option": "submitted", "option_translation": "提交了", "option_explanation": "to 后面用原形。"},
            ],
            "answer_index": 0,
            "explanation": "ask somebody to do something。",
        },
        {
            "question": "Ms. Park has worked here ____ 2019.",
            "question_translation": "朴女士从2019年____在这里工作。",
            "options": [
                {"option": "for", "option_translation": "持续", "option_explanation": "for 后面接时间段。"},
                {"option": "since", "option_translation": "自从", "option_explanation": "正确。"},
                {"option": "during", "option_translation": "在…期间", "option_explanation": "不能和年份起点搭配。"},
                {"option": "until", "option_translation": "直到", "option_explanation": "意思不对。"},
            ],
            "answer_index": 1,
            "explanation": "since 加时间点。",
        },
    ]

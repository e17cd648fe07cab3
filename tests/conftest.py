import os

# The application engine is built at import time; keep it in memory
os.environ.setdefault("DATABASE_URL", "sqlite://")

import random
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quran_quiz.infrastructure.db.base import Base
from quran_quiz.infrastructure.db import models  # noqa: F401  (registers tables)
from quran_quiz.infrastructure.quiz_engine.cache import NullDailyQuizCache
from quran_quiz.infrastructure.quiz_engine.engine import QuizEngine

from factories import FixedClock, make_user, seed_question_pool


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def today(clock):
    return clock().date()


@pytest.fixture
def quiz_engine(db, clock):
    return QuizEngine(db, cache=NullDailyQuizCache(), rng=random.Random(7), clock=clock)


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def question_pool(db):
    return seed_question_pool(db)

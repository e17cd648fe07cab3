import random
from datetime import datetime, timedelta, timezone

import pytest

from quran_quiz.infrastructure.db.models import AttemptModel, QuizSession, SessionStatus
from quran_quiz.infrastructure.quiz_engine.cache import NullDailyQuizCache
from quran_quiz.infrastructure.quiz_engine.engine import QuizEngine
from quran_quiz.infrastructure.quiz_engine.errors import (
    InvalidAnswerError,
    InvalidStateError,
    NotFoundError,
)
from quran_quiz.infrastructure.quiz_engine.scoring import StreakUpdater
from quran_quiz.infrastructure.quiz_engine.session_machine import QuizSessionMachine
from quran_quiz.infrastructure.repositories.daily_quiz_repository import DailyQuizRepository
from quran_quiz.infrastructure.repositories.question_repository import QuestionRepository
from quran_quiz.infrastructure.repositories.quiz_session_repository import QuizSessionRepository
from quran_quiz.infrastructure.repositories.streak_repository import StreakRepository

from factories import answer_quiz, make_question


@pytest.fixture
def quiz(quiz_engine, question_pool):
    return quiz_engine.current_daily_quiz("UTC")


@pytest.fixture
def session(quiz_engine, user, quiz):
    return quiz_engine.start_session(user.id, quiz.id)


class RacingSessionRepository(QuizSessionRepository):
    """A second device opens the session between our lookup and our insert."""

    def __init__(self, db, clock):
        super().__init__(db)
        self.clock = clock
        self.winner = None

    def get_by_status(self, user_id, daily_quiz_id, status):
        if status == SessionStatus.IN_PROGRESS and self.winner is None:
            self.winner = super().create(user_id, daily_quiz_id, "UTC", self.clock())
            return None
        return super().get_by_status(user_id, daily_quiz_id, status)


class RacingCompletionRepository(QuizSessionRepository):
    """Another request scores the session after our status check passed."""

    def __init__(self, db, rival):
        super().__init__(db)
        self.rival = rival

    def mark_completed(self, session, attempts, now):
        self.rival.complete_session(session.id)
        return super().mark_completed(session, attempts, now)


@pytest.fixture
def second_device(session_factory, clock):
    """An engine with its own database session, like a parallel request."""
    other_db = session_factory()
    try:
        yield QuizEngine(other_db, cache=NullDailyQuizCache(), rng=random.Random(7), clock=clock)
    finally:
        other_db.close()


def _machine(db, session_repo, clock):
    return QuizSessionMachine(
        session_repo=session_repo,
        daily_quiz_repo=DailyQuizRepository(db),
        question_repo=QuestionRepository(db),
        streak_updater=StreakUpdater(streak_repo=StreakRepository(db), session_repo=session_repo, clock=clock),
        clock=clock,
    )


# ---------------------------
# Start
# ---------------------------

def test_start_creates_an_in_progress_session(session, user, quiz, clock):
    assert session.user_id == user.id
    assert session.daily_quiz_id == quiz.id
    assert session.status == SessionStatus.IN_PROGRESS.value
    assert session.current_question_index == 0
    assert session.answers == {}


def test_start_twice_resumes_the_same_session(db, quiz_engine, user, quiz, session):
    again = quiz_engine.start_session(user.id, quiz.id)

    assert again.id == session.id
    assert db.query(QuizSession).filter(QuizSession.user_id == user.id).count() == 1


def test_concurrent_start_returns_the_winning_session(db, user, quiz, clock):
    session_repo = RacingSessionRepository(db, clock)
    machine = _machine(db, session_repo, clock)

    session = machine.start(user.id, quiz.id)

    assert session.id == session_repo.winner.id
    assert db.query(QuizSession).count() == 1


def test_start_on_unknown_quiz_raises(quiz_engine, user):
    with pytest.raises(NotFoundError):
        quiz_engine.start_session(user.id, 9999)


def test_get_unknown_session_raises(quiz_engine):
    with pytest.raises(NotFoundError):
        quiz_engine.get_session(12345)


# ---------------------------
# Answers
# ---------------------------

def test_answers_advance_the_index_one_step_at_a_time(quiz_engine, session, quiz):
    indexes = []
    for question_id in quiz.question_ids[:3]:
        updated = quiz_engine.record_answer(session.id, question_id, "right")
        indexes.append(updated.current_question_index)

    assert indexes == [1, 2, 3]


def test_answer_without_advance_keeps_the_index(quiz_engine, session, quiz):
    updated = quiz_engine.record_answer(session.id, quiz.question_ids[0], "right", advance=False)

    assert updated.current_question_index == 0
    assert updated.answers == {str(quiz.question_ids[0]): "right"}


def test_answering_again_overwrites_the_previous_choice(quiz_engine, session, quiz):
    first_question = quiz.question_ids[0]
    quiz_engine.record_answer(session.id, first_question, "wrong 2", advance=False)
    updated = quiz_engine.record_answer(session.id, first_question, "right")

    assert updated.answers == {str(first_question): "right"}


def test_answers_from_two_devices_are_merged(db, quiz_engine, second_device, session, quiz):
    first, second = quiz.question_ids[:2]
    second_device.get_session(session.id)

    quiz_engine.record_answer(session.id, first, "right")
    updated = second_device.record_answer(session.id, second, "wrong 1")

    assert updated.answers == {str(first): "right", str(second): "wrong 1"}
    assert updated.current_question_index == 2
    db.expire_all()
    assert db.get(QuizSession, session.id).answers == updated.answers


def test_answer_updates_last_activity(quiz_engine, session, quiz, clock):
    clock.advance(minutes=2)
    updated = quiz_engine.record_answer(session.id, quiz.question_ids[0], "right")

    assert updated.last_activity_at.replace(tzinfo=timezone.utc) == clock()


def test_answer_for_question_outside_the_quiz_is_rejected(db, quiz_engine, session):
    outsider = make_question(db, "easy", surah=100)

    with pytest.raises(InvalidAnswerError):
        quiz_engine.record_answer(session.id, outsider.id, "right")


def test_answer_that_is_not_a_choice_is_rejected(quiz_engine, session, quiz):
    with pytest.raises(InvalidAnswerError):
        quiz_engine.record_answer(session.id, quiz.question_ids[0], "made up")


# ---------------------------
# Completion
# ---------------------------

def test_three_of_five_scores_sixty(db, quiz_engine, session, quiz, clock):
    answer_quiz(quiz_engine, session.id, quiz, wrong_positions=(1, 3))
    clock.advance(seconds=90)

    result = quiz_engine.complete_session(session.id)

    assert result.score == 60
    assert result.correct_answers == 3
    assert result.total_questions == 5
    assert result.time_spent_ms == 90_000
    assert [a.question_id for a in result.answers] == list(quiz.question_ids)
    assert [a.is_correct for a in result.answers] == [True, False, True, False, True]


def test_completion_records_one_attempt_per_question(db, quiz_engine, session, quiz):
    answer_quiz(quiz_engine, session.id, quiz, wrong_positions=(0,))

    quiz_engine.complete_session(session.id)

    attempts = db.query(AttemptModel).filter(AttemptModel.session_id == session.id).all()
    assert len(attempts) == 5
    assert sum(1 for a in attempts if a.correct) == 4


def test_changed_answer_is_the_one_scored(db, quiz_engine, session, quiz):
    first_question = quiz.question_ids[0]
    quiz_engine.record_answer(session.id, first_question, "wrong 1", advance=False)
    quiz_engine.record_answer(session.id, first_question, "right")

    quiz_engine.complete_session(session.id)

    attempts = (
        db.query(AttemptModel)
        .filter(AttemptModel.session_id == session.id, AttemptModel.question_id == first_question)
        .all()
    )
    assert len(attempts) == 1
    assert attempts[0].response == "right"
    assert attempts[0].correct is True


def test_unanswered_questions_count_as_wrong(quiz_engine, session, quiz):
    quiz_engine.record_answer(session.id, quiz.question_ids[0], "right")

    result = quiz_engine.complete_session(session.id)

    assert result.correct_answers == 1
    assert result.score == 20
    assert result.answers[1].selected_answer == ""


def test_completed_session_is_terminal(quiz_engine, session, quiz):
    answer_quiz(quiz_engine, session.id, quiz)
    quiz_engine.complete_session(session.id)

    completed = quiz_engine.get_session(session.id)
    assert completed.status == SessionStatus.COMPLETED.value
    assert completed.completed_at is not None

    with pytest.raises(InvalidStateError):
        quiz_engine.record_answer(session.id, quiz.question_ids[0], "right")
    with pytest.raises(InvalidStateError):
        quiz_engine.complete_session(session.id)


def test_completing_from_a_stale_copy_conflicts(db, quiz_engine, second_device, session, quiz):
    answer_quiz(quiz_engine, session.id, quiz)
    second_device.get_session(session.id)
    quiz_engine.complete_session(session.id)

    with pytest.raises(InvalidStateError):
        second_device.complete_session(session.id)

    db.expire_all()
    assert db.query(AttemptModel).filter(AttemptModel.session_id == session.id).count() == 5


def test_losing_a_completion_race_conflicts(db, second_device, session, quiz, clock):
    machine = _machine(db, RacingCompletionRepository(db, second_device), clock)

    with pytest.raises(InvalidStateError):
        machine.complete(session.id)

    db.expire_all()
    assert db.get(QuizSession, session.id).status == SessionStatus.COMPLETED.value
    assert db.query(AttemptModel).filter(AttemptModel.session_id == session.id).count() == 5


def test_new_session_can_start_after_completion(quiz_engine, user, session, quiz):
    quiz_engine.complete_session(session.id)

    assert quiz_engine.has_completed_today(user.id)
    assert quiz_engine.start_session(user.id, quiz.id).id != session.id


# ---------------------------
# Status
# ---------------------------

def test_user_status_reports_the_resumable_session(quiz_engine, user, session):
    status = quiz_engine.user_status(user.id)

    assert status.has_completed_today is False
    assert status.current_session.id == session.id
    assert status.streak.current == 0


def test_today_follows_the_learner_timezone(quiz_engine, question_pool, clock):
    clock.now = datetime(2026, 10, 18, 23, 30, tzinfo=timezone.utc)

    utc_quiz = quiz_engine.current_daily_quiz("UTC")
    tokyo_quiz = quiz_engine.current_daily_quiz("Asia/Tokyo")

    assert tokyo_quiz.quiz_date == utc_quiz.quiz_date + timedelta(days=1)


def test_unknown_timezone_is_rejected(quiz_engine, question_pool):
    with pytest.raises(ValueError):
        quiz_engine.current_daily_quiz("Mars/Olympus_Mons")


def test_pregenerate_covers_yesterday_today_and_tomorrow(quiz_engine, question_pool, today):
    outcome = quiz_engine.pregenerate()

    assert outcome["errors"] == []
    assert [r["date"] for r in outcome["results"]] == [
        (today + timedelta(days=offset)).isoformat() for offset in (-1, 0, 1)
    ]
    assert all(r["questions_count"] == 5 for r in outcome["results"])


def test_pregenerate_reports_failures_per_date(quiz_engine):
    outcome = quiz_engine.pregenerate()

    assert outcome["results"] == []
    assert len(outcome["errors"]) == 3

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..db.models import AttemptModel, QuizSession, SessionStatus
from ..repositories.daily_quiz_repository import DailyQuizRepository
from ..repositories.question_repository import QuestionRepository
from ..repositories.quiz_session_repository import QuizSessionRepository
from .clock import Clock, as_utc, utcnow
from .conflict import retry_on_conflict
from .errors import ConstraintConflictError, InvalidAnswerError, InvalidStateError, NotFoundError
from .records import QuizResult
from .scoring import StreakUpdater, percentage, score_answers

logger = logging.getLogger(__name__)


class QuizSessionMachine:
    """
    One user's pass through a daily quiz.

    in_progress --complete()--> completed
    in_progress --(external sweep)--> expired

    Completed and expired sessions are terminal; every mutating operation
    requires in_progress.
    """

    def __init__(
        self,
        *,
        session_repo: QuizSessionRepository,
        daily_quiz_repo: DailyQuizRepository,
        question_repo: QuestionRepository,
        streak_updater: StreakUpdater,
        clock: Clock = utcnow,
    ):
        self._sessions = session_repo
        self._quizzes = daily_quiz_repo
        self._questions = question_repo
        self._streaks = streak_updater
        self._clock = clock

    # ---------------------------
    # Lookups
    # ---------------------------

    def get(self, session_id: int) -> QuizSession:
        session = self._sessions.get_by_id(session_id)
        if session is None:
            logger.warning(f"Quiz session not found: session_id={session_id}")
            raise NotFoundError(f"Quiz session {session_id} not found")
        return session

    def _lock(self, session_id: int) -> QuizSession:
        session = self._sessions.get_for_update(session_id)
        if session is None:
            logger.warning(f"Quiz session not found: session_id={session_id}")
            raise NotFoundError(f"Quiz session {session_id} not found")
        return session

    def active_session(self, user_id: int, daily_quiz_id: int) -> Optional[QuizSession]:
        return self._sessions.get_by_status(user_id, daily_quiz_id, SessionStatus.IN_PROGRESS)

    def has_completed(self, user_id: int, daily_quiz_id: int) -> bool:
        return self._sessions.get_by_status(user_id, daily_quiz_id, SessionStatus.COMPLETED) is not None

    # ---------------------------
    # Transitions
    # ---------------------------

    @retry_on_conflict
    def start(self, user_id: int, daily_quiz_id: int, timezone: str = "UTC") -> QuizSession:
        existing = self.active_session(user_id, daily_quiz_id)
        if existing is not None:
            logger.info(f"Resuming session {existing.id} for user_id={user_id}")
            return existing

        if self._quizzes.get_by_id(daily_quiz_id) is None:
            raise NotFoundError(f"Daily quiz {daily_quiz_id} not found")

        session = self._sessions.create(user_id, daily_quiz_id, timezone, self._clock())
        logger.info(
            f"Started session {session.id} for user_id={user_id}, daily_quiz_id={daily_quiz_id}"
        )
        return session

    def record_answer(
        self,
        session_id: int,
        question_id: int,
        selected_choice: str,
        advance: bool = True,
    ) -> QuizSession:
        # Merge into the committed map, not a copy loaded by an earlier request
        session = self._lock(session_id)
        self._require_in_progress(session)
        self._validate_answer(session, question_id, selected_choice)

        answers = dict(session.answers or {})
        answers[str(question_id)] = selected_choice
        index = session.current_question_index + 1 if advance else session.current_question_index

        session = self._sessions.save_progress(session, answers, index, self._clock())
        logger.debug(
            f"Session {session_id}: answered question {question_id}, index={session.current_question_index}"
        )
        return session

    def complete(self, session_id: int) -> QuizResult:
        session = self._lock(session_id)
        # Scoring twice would duplicate attempts and double-apply the streak
        self._require_in_progress(session)

        quiz = self._quizzes.get_by_id(session.daily_quiz_id)
        if quiz is None:
            raise NotFoundError(f"Daily quiz {session.daily_quiz_id} not found")
        questions = self._questions.get_ordered([int(qid) for qid in quiz.question_ids])
        if not questions:
            raise NotFoundError(f"No questions found for daily quiz {quiz.id}")

        outcomes, correct = score_answers(questions, session.answers or {})
        completed_at = self._clock()

        attempts = [
            AttemptModel(
                user_id=session.user_id,
                question_id=outcome.question_id,
                session_id=session.id,
                response=outcome.selected_answer or None,
                correct=outcome.is_correct,
                answered_at=completed_at,
            )
            for outcome in outcomes
        ]
        try:
            session = self._sessions.mark_completed(session, attempts, completed_at)
        except ConstraintConflictError as exc:
            logger.warning(f"Session {session_id} was completed by a concurrent request")
            raise InvalidStateError(f"Quiz session {session_id} was already completed") from exc
        logger.info(
            f"Session {session.id} completed: {correct}/{len(questions)} correct"
        )

        # The session is already closed at this point; a failed streak write
        # is reported through streak_updated instead of failing the request.
        streak_updated = False
        try:
            if correct == len(questions):
                self._streaks.apply_perfect_completion(
                    session.user_id, quiz.quiz_date, exclude_session_id=session.id
                )
                streak_updated = True
            else:
                self._streaks.apply_imperfect_completion(session.user_id)
        except (SQLAlchemyError, ConstraintConflictError) as e:
            logger.error(f"Streak update failed for user_id={session.user_id}: {e}", exc_info=True)
            self._sessions.db.rollback()

        elapsed = completed_at - as_utc(session.started_at)
        return QuizResult(
            session_id=session.id,
            score=percentage(correct, len(questions)),
            total_questions=len(questions),
            correct_answers=correct,
            time_spent_ms=max(0, int(elapsed.total_seconds() * 1000)),
            answers=outcomes,
            streak_updated=streak_updated,
        )

    # ---------------------------
    # Guards
    # ---------------------------

    @staticmethod
    def _require_in_progress(session: QuizSession) -> None:
        if session.status != SessionStatus.IN_PROGRESS.value:
            logger.warning(f"Session {session.id} is {session.status}, rejecting operation")
            raise InvalidStateError(f"Quiz session {session.id} is not active ({session.status})")

    def _validate_answer(self, session: QuizSession, question_id: int, selected_choice: str) -> None:
        quiz = self._quizzes.get_by_id(session.daily_quiz_id)
        quiz_question_ids = {int(qid) for qid in quiz.question_ids} if quiz else set()
        if question_id not in quiz_question_ids:
            raise InvalidAnswerError(f"Question {question_id} is not part of this quiz")

        question = self._questions.get_by_id(question_id)
        if question is None:
            raise NotFoundError(f"Question {question_id} not found")
        if selected_choice not in (question.choices or []):
            raise InvalidAnswerError(f"'{selected_choice}' is not a choice of question {question_id}")

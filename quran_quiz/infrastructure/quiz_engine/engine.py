from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..db.models import Question, QuizSession
from ..repositories.daily_quiz_repository import DailyQuizRepository
from ..repositories.question_repository import QuestionRepository
from ..repositories.quiz_session_repository import QuizSessionRepository
from ..repositories.streak_repository import StreakRepository
from .cache import DailyQuizCache
from .clock import Clock, days_around, today_for_timezone, utcnow
from .errors import QuizEngineError
from .records import DailyQuizSnapshot, QuizResult, StreakInfo
from .scoring import StreakUpdater
from .selector import DailyQuizSelector
from .session_machine import QuizSessionMachine

logger = logging.getLogger(__name__)


# ---------------------------
# Domain Models
# ---------------------------

@dataclass
class QuizStatus:
    todays_quiz: DailyQuizSnapshot
    has_completed_today: bool
    current_session: Optional[QuizSession]
    streak: StreakInfo


# ---------------------------
# Quiz Engine
# ---------------------------

class QuizEngine:
    """
    Entry point used by the request layer. Wires the selector, the session
    state machine and the streak updater onto one database session.
    """

    def __init__(
        self,
        db: Session,
        *,
        cache: Optional[DailyQuizCache] = None,
        rng: Optional[random.Random] = None,
        clock: Clock = utcnow,
    ):
        self._clock = clock

        self._quizzes = DailyQuizRepository(db)
        self._questions = QuestionRepository(db)
        session_repo = QuizSessionRepository(db)

        self.selector = DailyQuizSelector(
            daily_quiz_repo=self._quizzes,
            question_repo=self._questions,
            cache=cache,
            rng=rng,
        )
        self.streaks = StreakUpdater(
            streak_repo=StreakRepository(db),
            session_repo=session_repo,
            clock=clock,
        )
        self.sessions = QuizSessionMachine(
            session_repo=session_repo,
            daily_quiz_repo=self._quizzes,
            question_repo=self._questions,
            streak_updater=self.streaks,
            clock=clock,
        )

    # ---------------------------
    # Daily quiz
    # ---------------------------

    def resolve(self, quiz_date: date) -> DailyQuizSnapshot:
        return self.selector.resolve(quiz_date)

    def current_daily_quiz(self, timezone: str = "UTC") -> DailyQuizSnapshot:
        return self.selector.resolve(today_for_timezone(timezone, self._clock()))

    def quiz_questions(self, quiz: DailyQuizSnapshot) -> List[Question]:
        return self._questions.get_ordered(quiz.question_ids)

    def pregenerate(self) -> Dict[str, List[Dict]]:
        """
        Resolve yesterday's, today's and tomorrow's quiz (UTC) so every
        timezone finds its quiz ready. Failures are reported per date.
        """
        results: List[Dict] = []
        errors: List[Dict] = []
        for quiz_date in days_around(self._clock().date()):
            try:
                quiz = self.selector.resolve(quiz_date)
                results.append(
                    {"date": quiz_date.isoformat(), "quiz_id": quiz.id, "questions_count": len(quiz.question_ids)}
                )
                logger.info(f"Daily quiz ready for {quiz_date}: {quiz.id}")
            except QuizEngineError as e:
                logger.error(f"Failed to generate daily quiz for {quiz_date}: {e}")
                errors.append({"date": quiz_date.isoformat(), "error": str(e)})
        return {"results": results, "errors": errors}

    # ---------------------------
    # Sessions
    # ---------------------------

    def start_session(self, user_id: int, daily_quiz_id: int, timezone: str = "UTC") -> QuizSession:
        return self.sessions.start(user_id, daily_quiz_id, timezone)

    def get_session(self, session_id: int) -> QuizSession:
        return self.sessions.get(session_id)

    def record_answer(self, session_id: int, question_id: int, selected_choice: str, advance: bool = True) -> QuizSession:
        return self.sessions.record_answer(session_id, question_id, selected_choice, advance)

    def complete_session(self, session_id: int) -> QuizResult:
        return self.sessions.complete(session_id)

    # ---------------------------
    # Status
    # ---------------------------

    def has_completed_today(self, user_id: int, timezone: str = "UTC") -> bool:
        quiz_date = today_for_timezone(timezone, self._clock())
        quiz = self._quizzes.get_by_date(quiz_date)
        if quiz is None:
            return False
        return self.sessions.has_completed(user_id, quiz.id)

    def user_status(self, user_id: int, timezone: str = "UTC") -> QuizStatus:
        quiz = self.current_daily_quiz(timezone)
        return QuizStatus(
            todays_quiz=quiz,
            has_completed_today=self.sessions.has_completed(user_id, quiz.id),
            current_session=self.sessions.active_session(user_id, quiz.id),
            streak=self.streaks.get_streak(user_id),
        )

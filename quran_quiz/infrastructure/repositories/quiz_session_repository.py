from datetime import date, datetime
from typing import Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import AttemptModel, DailyQuiz, QuizSession, SessionStatus
from ..quiz_engine.errors import ConstraintConflictError

logger = logging.getLogger(__name__)


class QuizSessionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, session_id: int) -> Optional[QuizSession]:
        return (
            self.db.query(QuizSession)
            .filter(QuizSession.id == session_id)
            .first()
        )

    def get_for_update(self, session_id: int) -> Optional[QuizSession]:
        """
        Re-read the row from the database, overwriting any stale copy in the
        identity map, and lock it until the surrounding transaction ends.
        """
        return (
            self.db.query(QuizSession)
            .filter(QuizSession.id == session_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def get_by_status(self, user_id: int, daily_quiz_id: int, status: SessionStatus) -> Optional[QuizSession]:
        return (
            self.db.query(QuizSession)
            .filter(
                QuizSession.user_id == user_id,
                QuizSession.daily_quiz_id == daily_quiz_id,
                QuizSession.status == status.value,
            )
            .order_by(QuizSession.started_at.desc())
            .first()
        )

    def create(self, user_id: int, daily_quiz_id: int, timezone: str, now: datetime) -> QuizSession:
        session = QuizSession(
            user_id=user_id,
            daily_quiz_id=daily_quiz_id,
            current_question_index=0,
            answers={},
            status=SessionStatus.IN_PROGRESS.value,
            timezone=timezone,
            started_at=now,
            last_activity_at=now,
        )
        self.db.add(session)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.info(
                f"Concurrent start detected for user_id={user_id}, daily_quiz_id={daily_quiz_id}"
            )
            raise ConstraintConflictError("An active session already exists") from exc
        self.db.refresh(session)
        return session

    def save_progress(self, session: QuizSession, answers: Dict[str, str], index: int, now: datetime) -> QuizSession:
        # Assign a new dict so the JSON column is flagged dirty
        session.answers = dict(answers)
        session.current_question_index = index
        session.last_activity_at = now
        self.db.commit()
        self.db.refresh(session)
        return session

    def mark_completed(self, session: QuizSession, attempts: List[AttemptModel], now: datetime) -> QuizSession:
        """Write the attempts and close the session in one transaction."""
        self.db.add_all(attempts)
        session.status = SessionStatus.COMPLETED.value
        session.completed_at = now
        session.last_activity_at = now
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConstraintConflictError(f"Session {session.id} was already scored") from exc
        self.db.refresh(session)
        return session

    def last_completion_date(self, user_id: int, exclude_session_id: Optional[int] = None) -> Optional[date]:
        """Latest daily quiz date among the user's completed sessions."""
        query = (
            self.db.query(func.max(DailyQuiz.quiz_date))
            .join(QuizSession, QuizSession.daily_quiz_id == DailyQuiz.id)
            .filter(
                QuizSession.user_id == user_id,
                QuizSession.status == SessionStatus.COMPLETED.value,
                QuizSession.completed_at.isnot(None),
            )
        )
        if exclude_session_id is not None:
            query = query.filter(QuizSession.id != exclude_session_id)
        return query.scalar()

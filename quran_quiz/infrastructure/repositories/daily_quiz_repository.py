from datetime import date
from typing import List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import DailyQuiz
from ..quiz_engine.errors import ConstraintConflictError

logger = logging.getLogger(__name__)


class DailyQuizRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_date(self, quiz_date: date) -> Optional[DailyQuiz]:
        return (
            self.db.query(DailyQuiz)
            .filter(DailyQuiz.quiz_date == quiz_date)
            .first()
        )

    def get_by_id(self, daily_quiz_id: int) -> Optional[DailyQuiz]:
        return (
            self.db.query(DailyQuiz)
            .filter(DailyQuiz.id == daily_quiz_id)
            .first()
        )

    def create(self, quiz_date: date, question_ids: List[int]) -> DailyQuiz:
        """
        Insert the quiz for a date. Raises ConstraintConflictError when another
        writer already created that date's quiz.
        """
        quiz = DailyQuiz(quiz_date=quiz_date, question_ids=list(question_ids))
        self.db.add(quiz)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.info(f"Daily quiz for {quiz_date} was created concurrently, re-reading")
            raise ConstraintConflictError(f"Daily quiz for {quiz_date} already exists") from exc
        self.db.refresh(quiz)
        logger.info(f"Daily quiz {quiz.id} created for {quiz_date} with {len(question_ids)} questions")
        return quiz

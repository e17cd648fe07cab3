import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from quran_quiz.infrastructure.db.models import Question
from quran_quiz.infrastructure.quiz_engine.clock import Clock, utcnow
from quran_quiz.infrastructure.quiz_engine.errors import InvalidStateError, NotFoundError
from quran_quiz.infrastructure.repositories.question_repository import QuestionRepository

logger = logging.getLogger(__name__)


def list_pending_questions(db: Session, limit: int = 50) -> List[Question]:
    return QuestionRepository(db).list_pending(limit)


def approve_question(db: Session, question_id: int, moderator_id: Optional[int], clock: Clock = utcnow) -> Question:
    repo = QuestionRepository(db)
    question = repo.get_by_id(question_id)
    if question is None:
        raise NotFoundError(f"Question {question_id} not found")
    if question.is_approved:
        raise InvalidStateError(f"Question {question_id} is already approved")
    return repo.approve(question, moderator_id, clock())


def reject_question(db: Session, question_id: int) -> None:
    repo = QuestionRepository(db)
    question = repo.get_by_id(question_id)
    if question is None:
        raise NotFoundError(f"Question {question_id} not found")
    if question.is_approved:
        # Approved questions may already sit in a daily quiz
        raise InvalidStateError(f"Question {question_id} is approved and cannot be rejected")
    logger.info(f"Rejecting question {question_id}")
    repo.delete(question)

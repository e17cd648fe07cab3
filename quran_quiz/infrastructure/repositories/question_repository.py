from datetime import datetime
from typing import Dict, List, Optional, Sequence
import logging

from sqlalchemy.orm import Session, joinedload

from ..db.models import Question

logger = logging.getLogger(__name__)


class QuestionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_approved_candidates(self, difficulty: str, limit: int) -> List[Question]:
        """
        Approved questions of one difficulty tier, with their verse loaded.
        Order is not meaningful; the selector randomizes.
        """
        logger.debug(f"Fetching up to {limit} approved '{difficulty}' questions")
        questions = (
            self.db.query(Question)
            .options(joinedload(Question.verse))
            .filter(Question.difficulty == difficulty)
            .filter(Question.approved_at.isnot(None))
            .order_by(Question.created_at.desc(), Question.id.desc())
            .limit(limit)
            .all()
        )
        logger.info(f"Found {len(questions)} approved '{difficulty}' candidates")
        return questions

    def get_by_id(self, question_id: int) -> Optional[Question]:
        question = (
            self.db.query(Question)
            .filter(Question.id == question_id)
            .first()
        )
        if not question:
            logger.warning(f"Question not found: question_id={question_id}")
        return question

    def get_by_ids(self, question_ids: Sequence[int]) -> Dict[int, Question]:
        if not question_ids:
            return {}
        rows = (
            self.db.query(Question)
            .options(joinedload(Question.verse))
            .filter(Question.id.in_(list(question_ids)))
            .all()
        )
        return {q.id: q for q in rows}

    def get_ordered(self, question_ids: Sequence[int]) -> List[Question]:
        """Questions in the given order; ids with no row are skipped."""
        by_id = self.get_by_ids(question_ids)
        missing = [qid for qid in question_ids if qid not in by_id]
        if missing:
            logger.warning(f"Quiz references missing questions: {missing}")
        return [by_id[qid] for qid in question_ids if qid in by_id]

    # ---------------------------
    # Moderation queue
    # ---------------------------

    def add_to_moderation_queue(self, questions: List[Question]) -> List[Question]:
        for question in questions:
            question.approved_at = None
        self.db.add_all(questions)
        self.db.commit()
        for question in questions:
            self.db.refresh(question)
        logger.info(f"Queued {len(questions)} questions for moderation")
        return questions

    def list_pending(self, limit: int = 50) -> List[Question]:
        return (
            self.db.query(Question)
            .options(joinedload(Question.verse))
            .filter(Question.approved_at.is_(None))
            .order_by(Question.created_at.asc(), Question.id.asc())
            .limit(limit)
            .all()
        )

    def approve(self, question: Question, moderator_id: Optional[int], when: datetime) -> Question:
        question.approved_at = when
        question.approved_by = moderator_id
        self.db.commit()
        self.db.refresh(question)
        logger.info(f"Question {question.id} approved by moderator {moderator_id}")
        return question

    def delete(self, question: Question) -> None:
        self.db.delete(question)
        self.db.commit()
        logger.info(f"Question {question.id} removed from moderation queue")

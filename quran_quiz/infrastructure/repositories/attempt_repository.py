from typing import List

from sqlalchemy.orm import Session, joinedload

from ..db.models import AttemptModel, Question


class AttemptRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: int, limit: int = 10, offset: int = 0) -> List[AttemptModel]:
        """Newest first, with question and verse loaded for display."""
        return (
            self.db.query(AttemptModel)
            .options(joinedload(AttemptModel.question).joinedload(Question.verse))
            .filter(AttemptModel.user_id == user_id)
            .order_by(AttemptModel.answered_at.desc(), AttemptModel.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_for_user(self, user_id: int) -> int:
        return self.db.query(AttemptModel).filter(AttemptModel.user_id == user_id).count()

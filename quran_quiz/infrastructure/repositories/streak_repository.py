from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import Streak
from ..quiz_engine.errors import ConstraintConflictError

logger = logging.getLogger(__name__)


class StreakRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[Streak]:
        return self.db.query(Streak).filter(Streak.user_id == user_id).first()

    def get_for_update(self, user_id: int) -> Optional[Streak]:
        """Row-lock the streak until the surrounding transaction ends."""
        return (
            self.db.query(Streak)
            .filter(Streak.user_id == user_id)
            .with_for_update()
            .first()
        )

    def write(self, streak: Optional[Streak], user_id: int, current: int, longest: int, now: datetime) -> Streak:
        """
        Insert or update the user's streak and commit. A concurrent first
        insert for the same user surfaces as ConstraintConflictError.
        """
        if streak is None:
            streak = Streak(user_id=user_id)
            self.db.add(streak)
        streak.current_streak = current
        streak.longest_streak = longest
        streak.updated_at = now
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConstraintConflictError(f"Streak row for user {user_id} created concurrently") from exc
        self.db.refresh(streak)
        return streak

import logging
from dataclasses import asdict
from typing import Dict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quran_quiz.infrastructure.quiz_engine.engine import QuizEngine
from quran_quiz.infrastructure.repositories.attempt_repository import AttemptRepository
from quran_quiz.presentation.dependencies import get_current_user, get_db, get_quiz_engine
from quran_quiz.presentation.schemas.quiz_schema import AttemptHistoryOut, AttemptOut, StreakOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["User"])


@router.get("/streak", response_model=StreakOut)
def get_streak(
    current_user: Dict = Depends(get_current_user),
    engine: QuizEngine = Depends(get_quiz_engine),
):
    return StreakOut(**asdict(engine.streaks.get_streak(current_user["user_id"])))


@router.get("/attempts", response_model=AttemptHistoryOut)
def get_attempts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: Dict = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Scored answers from completed sessions, newest first."""
    user_id = current_user["user_id"]
    repo = AttemptRepository(db)
    attempts = repo.list_for_user(user_id, limit=limit, offset=(page - 1) * limit)
    logger.debug(f"Returning {len(attempts)} attempts for user_id={user_id}, page={page}")
    return AttemptHistoryOut(
        attempts=[AttemptOut.model_validate(a) for a in attempts],
        page=page,
        limit=limit,
        total=repo.count_for_user(user_id),
    )

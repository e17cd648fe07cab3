import logging
from dataclasses import asdict
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from quran_quiz.application.admin.verse_import_usecase import process_verse_upload
from quran_quiz.application.moderation.moderation_usecase import (
    approve_question,
    list_pending_questions,
    reject_question,
)
from quran_quiz.infrastructure.generation.batch_processor import BatchProcessor, summarize_runs
from quran_quiz.infrastructure.quiz_engine.clock import utcnow
from quran_quiz.infrastructure.quiz_engine.engine import QuizEngine
from quran_quiz.infrastructure.quiz_engine.errors import InvalidStateError, NotFoundError
from quran_quiz.infrastructure.repositories.batch_run_repository import BatchRunRepository
from quran_quiz.presentation.dependencies import (
    get_batch_processor,
    get_db,
    get_quiz_engine,
    moderator_required,
)
from quran_quiz.presentation.schemas.admin_schema import (
    BatchHistoryOut,
    BatchRunResponse,
    PendingQuestionOut,
    PregenerateResponse,
    VerseUploadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


# --------------------------------------------------
# Daily quiz pre-generation (cron)
# --------------------------------------------------
@router.post("/daily-quiz/pregenerate", response_model=PregenerateResponse)
def pregenerate_daily_quizzes(
    admin: dict = Depends(moderator_required),
    engine: QuizEngine = Depends(get_quiz_engine),
):
    """
    Makes sure yesterday's, today's and tomorrow's quizzes exist so every
    timezone has its quiz ready.
    """
    logger.info(f"User {admin['user_id']} triggered daily quiz pre-generation")
    return engine.pregenerate()


# --------------------------------------------------
# Batch question generation
# --------------------------------------------------
@router.post("/batch/run", response_model=BatchRunResponse)
def run_batch(
    admin: dict = Depends(moderator_required),
    processor: BatchProcessor = Depends(get_batch_processor),
):
    logger.info(f"User {admin['user_id']} triggered a question generation batch")
    return processor.process_batch().to_dict()


@router.post("/batch/surah/{surah}", response_model=BatchRunResponse)
def run_batch_for_surah(
    surah: int,
    ayah_start: Optional[int] = Query(None, ge=1),
    ayah_end: Optional[int] = Query(None, ge=1),
    admin: dict = Depends(moderator_required),
    processor: BatchProcessor = Depends(get_batch_processor),
):
    if not 1 <= surah <= 114:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Surah must be between 1 and 114")
    logger.info(f"User {admin['user_id']} triggered generation for surah {surah}")
    outcome = processor.generate_for_surah(surah, ayah_start, ayah_end)
    if not outcome.success:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=outcome.message)
    return outcome.to_dict()


@router.get("/batch/stats", response_model=BatchHistoryOut)
def get_batch_stats(
    days: int = Query(7, ge=1, le=90),
    db: Session = Depends(get_db),
    admin: dict = Depends(moderator_required),
):
    runs = BatchRunRepository(db).list_since(utcnow() - timedelta(days=days))
    return asdict(summarize_runs(runs))


# --------------------------------------------------
# Moderation queue
# --------------------------------------------------
@router.get("/questions/pending", response_model=List[PendingQuestionOut])
def get_pending_questions(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin: dict = Depends(moderator_required),
):
    return list_pending_questions(db, limit)


@router.post("/questions/{question_id}/approve", response_model=PendingQuestionOut)
def approve(
    question_id: int,
    db: Session = Depends(get_db),
    admin: dict = Depends(moderator_required),
):
    try:
        return approve_question(db, question_id, admin["user_id"])
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.delete("/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def reject(
    question_id: int,
    db: Session = Depends(get_db),
    admin: dict = Depends(moderator_required),
):
    try:
        reject_question(db, question_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


# --------------------------------------------------
# Verse import
# --------------------------------------------------
@router.post("/verses/upload", response_model=VerseUploadResponse)
async def upload_verses(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    admin: dict = Depends(moderator_required),
):
    content = await file.read()
    try:
        return process_verse_upload(db, content, file.filename or "")
    except ValueError as e:
        logger.warning(f"Verse upload rejected for user {admin['user_id']}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

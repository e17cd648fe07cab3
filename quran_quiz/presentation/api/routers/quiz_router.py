import logging
from dataclasses import asdict
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from quran_quiz.infrastructure.db.models import Question, QuizSession
from quran_quiz.infrastructure.quiz_engine.engine import QuizEngine
from quran_quiz.infrastructure.quiz_engine.errors import (
    InsufficientContentError,
    InvalidStateError,
    NotFoundError,
)
from quran_quiz.infrastructure.quiz_engine.records import DailyQuizSnapshot
from quran_quiz.presentation.dependencies import get_current_user, get_quiz_engine
from quran_quiz.presentation.schemas.quiz_schema import (
    AnswerRequest,
    DailyQuizOut,
    DailyQuizResponse,
    QuizQuestionOut,
    QuizResultOut,
    QuizSessionOut,
    QuizStatusOut,
    StartSessionRequest,
    StartSessionResponse,
    StreakOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz", tags=["Daily Quiz"])


def _quiz_out(quiz: DailyQuizSnapshot, questions: List[Question]) -> DailyQuizOut:
    return DailyQuizOut(
        id=quiz.id,
        date=quiz.quiz_date,
        question_ids=list(quiz.question_ids),
        questions=[QuizQuestionOut.model_validate(q) for q in questions],
    )


def _owned_session(engine: QuizEngine, session_id: int, user_id: int) -> QuizSession:
    session = engine.get_session(session_id)
    if session.user_id != user_id:
        logger.warning(
            f"Session ownership mismatch: session_id={session_id}, "
            f"session.user_id={session.user_id}, current_user_id={user_id}"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Session does not belong to current user",
        )
    return session


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, InvalidStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, InsufficientContentError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# --------------------------------------------------
# 1. Today's quiz
# --------------------------------------------------
@router.get("/daily", response_model=DailyQuizResponse)
def get_daily_quiz(
    timezone: str = Query("UTC"),
    current_user: Dict = Depends(get_current_user),
    engine: QuizEngine = Depends(get_quiz_engine),
):
    """
    Returns today's quiz for the caller's timezone (answers withheld), along
    with completion status, any resumable session and the current streak.
    """
    user_id = current_user["user_id"]
    try:
        quiz_status = engine.user_status(user_id, timezone)
        questions = engine.quiz_questions(quiz_status.todays_quiz)
    except (NotFoundError, InsufficientContentError, ValueError) as e:
        logger.warning(f"Daily quiz unavailable for user_id={user_id}: {e}")
        raise _http_error(e)

    difficulties = {"easy": 0, "medium": 0, "hard": 0}
    for q in questions:
        difficulties[q.difficulty] = difficulties.get(q.difficulty, 0) + 1

    current = quiz_status.current_session
    return DailyQuizResponse(
        quiz=_quiz_out(quiz_status.todays_quiz, questions),
        status=QuizStatusOut(
            has_completed_today=quiz_status.has_completed_today,
            current_session=QuizSessionOut.model_validate(current) if current else None,
            streak=StreakOut(**asdict(quiz_status.streak)),
        ),
        timezone=timezone,
        difficulties=difficulties,
    )


# --------------------------------------------------
# 2. Start / resume session
# --------------------------------------------------
@router.post(
    "/sessions/start",
    response_model=StartSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_session(
    request: StartSessionRequest,
    current_user: Dict = Depends(get_current_user),
    engine: QuizEngine = Depends(get_quiz_engine),
):
    """
    Starts a session on today's quiz, or resumes the one already in progress.
    """
    user_id = current_user["user_id"]
    try:
        if engine.has_completed_today(user_id, request.timezone):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Daily quiz already completed for today",
            )
        quiz = engine.current_daily_quiz(request.timezone)
        session = engine.start_session(user_id, quiz.id, request.timezone)
        questions = engine.quiz_questions(quiz)
        logger.info(f"User {user_id} on session {session.id} for daily quiz {quiz.id}")
        return StartSessionResponse(
            session=QuizSessionOut.model_validate(session),
            quiz=_quiz_out(quiz, questions),
        )
    except HTTPException:
        raise
    except (NotFoundError, InvalidStateError, InsufficientContentError, ValueError) as e:
        logger.warning(f"Cannot start session for user_id={user_id}: {e}")
        raise _http_error(e)


# --------------------------------------------------
# 3. Session state
# --------------------------------------------------
@router.get("/sessions/{session_id}", response_model=QuizSessionOut)
def get_session(
    session_id: int,
    current_user: Dict = Depends(get_current_user),
    engine: QuizEngine = Depends(get_quiz_engine),
):
    try:
        return _owned_session(engine, session_id, current_user["user_id"])
    except NotFoundError as e:
        raise _http_error(e)


# --------------------------------------------------
# 4. Save / update an answer
# --------------------------------------------------
@router.post("/sessions/{session_id}/answers", response_model=QuizSessionOut)
def save_answer(
    session_id: int,
    answer: AnswerRequest,
    current_user: Dict = Depends(get_current_user),
    engine: QuizEngine = Depends(get_quiz_engine),
):
    """
    Records (or overwrites) the answer to one question and optionally moves
    the progress cursor forward.
    """
    try:
        _owned_session(engine, session_id, current_user["user_id"])
        return engine.record_answer(
            session_id,
            answer.question_id,
            answer.selected_answer,
            advance=answer.advance,
        )
    except (NotFoundError, InvalidStateError, ValueError) as e:
        logger.warning(f"Rejected answer for session {session_id}: {e}")
        raise _http_error(e)


# --------------------------------------------------
# 5. Completion
# --------------------------------------------------
@router.post("/sessions/{session_id}/complete", response_model=QuizResultOut)
def complete_session(
    session_id: int,
    current_user: Dict = Depends(get_current_user),
    engine: QuizEngine = Depends(get_quiz_engine),
):
    """
    Scores the session, records attempts and updates the streak.
    """
    user_id = current_user["user_id"]
    try:
        _owned_session(engine, session_id, user_id)
        result = engine.complete_session(session_id)
    except (NotFoundError, InvalidStateError) as e:
        logger.warning(f"Cannot complete session {session_id}: {e}")
        raise _http_error(e)

    logger.info(
        f"User {user_id} completed session {session_id}: score={result.score}, "
        f"streak_updated={result.streak_updated}"
    )
    return QuizResultOut(**asdict(result))

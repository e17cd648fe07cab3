from quran_quiz.infrastructure.db.session import SessionLocal
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt
import logging
from quran_quiz.config import settings
from quran_quiz.infrastructure.db.models.user_model import UserModel
from quran_quiz.infrastructure.quiz_engine.cache import LRUDailyQuizCache
from quran_quiz.infrastructure.quiz_engine.engine import QuizEngine
from quran_quiz.infrastructure.security.jwt_service import decode_access_token
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

# Process-local read-through cache; each worker keeps its own
daily_quiz_cache = LRUDailyQuizCache(maxsize=settings.daily_quiz_cache_size)

MODERATOR_ROLES = {"admin", "scholar"}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> dict:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError as e:
        logger.warning(f"Token validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    # Verify user exists in DB
    user = db.query(UserModel).filter(UserModel.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    logger.debug(f"Validated token for user_id: {user.id}")
    return {
        "user_id": user.id,
        "role": user.role,
    }


def moderator_required(current_user: dict = Depends(get_current_user)) -> dict:
    if current_user.get("role") not in MODERATOR_ROLES:
        logger.warning(
            f"Access denied for non-moderator user_id: {current_user.get('user_id')}"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Moderator privileges required",
        )
    return current_user


def get_quiz_engine(db: Session = Depends(get_db)) -> QuizEngine:
    return QuizEngine(db, cache=daily_quiz_cache)


def get_batch_processor(db: Session = Depends(get_db)):
    from quran_quiz.infrastructure.generation.batch_processor import BatchProcessor
    from quran_quiz.infrastructure.generation.huggingface_client import HuggingFaceChatClient
    from quran_quiz.infrastructure.generation.question_generation import VerseQuestionGenerator
    from quran_quiz.infrastructure.repositories.batch_run_repository import BatchRunRepository
    from quran_quiz.infrastructure.repositories.question_repository import QuestionRepository
    from quran_quiz.infrastructure.repositories.verse_repository import VerseRepository

    if not settings.hf_token:
        logger.error("HF_TOKEN is not configured, question generation unavailable")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Question generation is not configured",
        )

    return BatchProcessor(
        generator=VerseQuestionGenerator(HuggingFaceChatClient.from_settings(settings)),
        verse_repo=VerseRepository(db),
        question_repo=QuestionRepository(db),
        batch_run_repo=BatchRunRepository(db),
        batch_size=settings.batch_size,
        delay_seconds=settings.batch_delay_seconds,
        verse_limit=settings.batch_verse_limit,
        target_per_verse=settings.target_questions_per_verse,
    )

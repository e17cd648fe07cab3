import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from a .env file
load_dotenv()


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read once from the environment."""

    database_url: str = "sqlite:///./quran_quiz.db"
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # Hugging Face endpoint used for question generation
    hf_token: Optional[str] = None
    hf_repo_id: str = "mistralai/Mistral-7B-Instruct-v0.2"
    hf_max_new_tokens: int = 1024

    daily_quiz_cache_size: int = 64

    # Batch generation
    batch_size: int = 10
    batch_delay_seconds: float = 30.0
    batch_verse_limit: int = 50
    target_questions_per_verse: int = 2

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            hf_token=os.getenv("HF_TOKEN"),
            hf_repo_id=os.getenv("HF_REPO_ID", cls.hf_repo_id),
            hf_max_new_tokens=_int_env("HF_MAX_NEW_TOKENS", cls.hf_max_new_tokens),
            daily_quiz_cache_size=_int_env("DAILY_QUIZ_CACHE_SIZE", cls.daily_quiz_cache_size),
            batch_size=_int_env("BATCH_SIZE", cls.batch_size),
            batch_delay_seconds=_float_env("BATCH_DELAY_SECONDS", cls.batch_delay_seconds),
            batch_verse_limit=_int_env("BATCH_VERSE_LIMIT", cls.batch_verse_limit),
            target_questions_per_verse=_int_env(
                "TARGET_QUESTIONS_PER_VERSE", cls.target_questions_per_verse
            ),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


settings = Settings.from_env()

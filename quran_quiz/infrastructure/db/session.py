from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from quran_quiz.config import settings
from .base import Base

connect_args = {}
if settings.database_url.startswith("sqlite"):
    # FastAPI serves sync endpoints from a threadpool
    connect_args["check_same_thread"] = False

engine = create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

__all__ = ["Base", "engine", "SessionLocal"]

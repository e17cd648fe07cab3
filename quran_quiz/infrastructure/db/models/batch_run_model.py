from sqlalchemy import Column, Integer, Boolean, Text, DateTime
from ..base import Base


class BatchRun(Base):
    __tablename__ = "batch_runs"

    id = Column(Integer, primary_key=True, index=True)
    run_at = Column(DateTime(timezone=True), nullable=False, index=True)
    verses_processed = Column(Integer, nullable=False, default=0)
    questions_generated = Column(Integer, nullable=False, default=0)
    questions_saved = Column(Integer, nullable=False, default=0)
    errors = Column(Integer, nullable=False, default=0)
    duration_seconds = Column(Integer, nullable=False, default=0)
    success = Column(Boolean, nullable=False)
    error_message = Column(Text)

from sqlalchemy import Column, Integer, Date, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..base import Base


class DailyQuiz(Base):
    __tablename__ = "daily_quizzes"

    id = Column(Integer, primary_key=True, index=True)
    quiz_date = Column(Date, unique=True, nullable=False, index=True)
    question_ids = Column(JSON, nullable=False)  # ordered, never changed after insert
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    sessions = relationship("QuizSession", back_populates="daily_quiz", passive_deletes=True)

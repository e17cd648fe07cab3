import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Index, text
from sqlalchemy.orm import relationship
from ..base import Base


class SessionStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    EXPIRED = "expired"


class QuizSession(Base):
    __tablename__ = "quiz_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    daily_quiz_id = Column(Integer, ForeignKey("daily_quizzes.id", ondelete="CASCADE"), nullable=False)
    current_question_index = Column(Integer, nullable=False, default=0)
    answers = Column(JSON, nullable=False, default=dict)  # {"<question_id>": "<choice>"}
    status = Column(String(20), nullable=False, default=SessionStatus.IN_PROGRESS.value)
    timezone = Column(String(64), nullable=False, default="UTC")
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    last_activity_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("UserModel", back_populates="sessions")
    daily_quiz = relationship("DailyQuiz", back_populates="sessions")

    __table_args__ = (
        # One in-progress session per (user, daily quiz)
        Index(
            "uq_quiz_sessions_active",
            "user_id",
            "daily_quiz_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
    )

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Boolean, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from ..base import Base


class AttemptModel(Base):
    __tablename__ = "attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(Integer, ForeignKey("quiz_sessions.id", ondelete="CASCADE"), nullable=True)
    response = Column(Text)
    correct = Column(Boolean, nullable=False)  # Computed at session completion
    answered_at = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    user = relationship("UserModel")
    question = relationship("Question")

    __table_args__ = (
        UniqueConstraint("user_id", "question_id", "session_id", name="uq_attempt_once"),
    )

#user_model.py
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from ..base import Base
from sqlalchemy.orm import relationship
from sqlalchemy import UniqueConstraint


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    email = Column(String, unique=True, nullable=False, index=True)
    role = Column(String, nullable=False, default="learner")  # learner, scholar, admin
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    sessions = relationship("QuizSession", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    streak = relationship("Streak", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("email", name="uq_email_user"),
    )

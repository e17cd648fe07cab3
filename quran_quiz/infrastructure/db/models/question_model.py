from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..base import Base

DIFFICULTIES = ("easy", "medium", "hard")


# ---------------------------
# Questions
# ---------------------------
class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    verse_id = Column(Integer, ForeignKey("verses.id", ondelete="CASCADE"), nullable=False, index=True)
    prompt = Column(Text, nullable=False)
    choices = Column(JSON, nullable=False)  # ordered list of choice texts
    answer = Column(Text, nullable=False)  # text of the correct choice
    difficulty = Column(String(10), nullable=False, index=True)
    explanation = Column(Text)
    source = Column(String(10), nullable=False, default="human")  # "ai" or "human"
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    approved_at = Column(DateTime(timezone=True), nullable=True, index=True)  # NULL = moderation queue
    approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    verse = relationship("Verse", back_populates="questions")

    @property
    def is_approved(self) -> bool:
        return self.approved_at is not None

from sqlalchemy import Column, Integer, Text, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from ..base import Base


class Verse(Base):
    __tablename__ = "verses"

    id = Column(Integer, primary_key=True, index=True)
    surah = Column(Integer, nullable=False)
    ayah = Column(Integer, nullable=False)
    arabic_text = Column(Text, nullable=False)
    translation_en = Column(Text)

    questions = relationship("Question", back_populates="verse", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("surah", "ayah", name="uq_verse_surah_ayah"),
        Index("idx_verses_surah_ayah", "surah", "ayah"),
    )

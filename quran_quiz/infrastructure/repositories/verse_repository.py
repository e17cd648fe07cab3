from typing import List, Optional, Tuple
import logging

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from ..db.models import Question, Verse

logger = logging.getLogger(__name__)


class VerseRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_under_covered(self, target: int, limit: int) -> List[Tuple[Verse, int]]:
        """
        Verses with fewer than `target` approved questions, paired with their
        approved question count, in mushaf order.
        """
        approved_count = func.count(Question.id)
        rows = (
            self.db.query(Verse, approved_count)
            .outerjoin(
                Question,
                and_(Question.verse_id == Verse.id, Question.approved_at.isnot(None)),
            )
            .group_by(Verse.id)
            .having(approved_count < target)
            .order_by(Verse.surah.asc(), Verse.ayah.asc())
            .limit(limit)
            .all()
        )
        logger.info(f"Found {len(rows)} verses with fewer than {target} approved questions")
        return [(verse, count) for verse, count in rows]

    def get_by_surah(self, surah: int, ayah_start: Optional[int] = None, ayah_end: Optional[int] = None) -> List[Verse]:
        query = self.db.query(Verse).filter(Verse.surah == surah)
        if ayah_start is not None:
            query = query.filter(Verse.ayah >= ayah_start)
        if ayah_end is not None:
            query = query.filter(Verse.ayah <= ayah_end)
        return query.order_by(Verse.ayah.asc()).all()

    def get_by_reference(self, surah: int, ayah: int) -> Optional[Verse]:
        return (
            self.db.query(Verse)
            .filter(Verse.surah == surah, Verse.ayah == ayah)
            .first()
        )

    def upsert(self, surah: int, ayah: int, arabic_text: str, translation_en: Optional[str]) -> Tuple[Verse, bool]:
        """Stage an insert or update; the caller commits. Returns (verse, created)."""
        verse = self.get_by_reference(surah, ayah)
        created = verse is None
        if created:
            verse = Verse(surah=surah, ayah=ayah)
            self.db.add(verse)
        verse.arabic_text = arabic_text
        verse.translation_en = translation_en
        self.db.flush()
        return verse, created

from __future__ import annotations

import logging
import random
from datetime import date
from typing import List, Optional, Sequence, Set, Tuple

from ..db.models import Question
from ..repositories.daily_quiz_repository import DailyQuizRepository
from ..repositories.question_repository import QuestionRepository
from .cache import DailyQuizCache, NullDailyQuizCache
from .conflict import retry_on_conflict
from .errors import InsufficientContentError
from .records import DailyQuizSnapshot

logger = logging.getLogger(__name__)


# Fixed daily composition, processed in this order
DAILY_COMPOSITION: Tuple[Tuple[str, int], ...] = (
    ("easy", 2),
    ("medium", 2),
    ("hard", 1),
)

# Candidate pool size per tier, as a multiple of the required count
OVERSAMPLE_FACTOR = 5


def _surah_of(question: Question) -> Optional[int]:
    return question.verse.surah if question.verse is not None else None


class DailyQuizSelector:
    """
    Resolves the single daily quiz for a calendar date, building it on first
    request with a balanced, surah-diverse set of approved questions.
    """

    def __init__(
        self,
        *,
        daily_quiz_repo: DailyQuizRepository,
        question_repo: QuestionRepository,
        cache: Optional[DailyQuizCache] = None,
        rng: Optional[random.Random] = None,
        composition: Sequence[Tuple[str, int]] = DAILY_COMPOSITION,
    ):
        self._quizzes = daily_quiz_repo
        self._questions = question_repo
        self._cache = cache if cache is not None else NullDailyQuizCache()
        self._rng = rng or random.Random()
        self._composition = tuple(composition)

    # ---------------------------
    # Public API
    # ---------------------------

    def resolve(self, quiz_date: date) -> DailyQuizSnapshot:
        cached = self._cache.get(quiz_date)
        if cached is not None:
            logger.debug(f"Daily quiz cache hit for {quiz_date}")
            return cached

        quiz = self._get_or_create(quiz_date)
        self._cache.put(quiz_date, quiz)
        return quiz

    # ---------------------------
    # Persistence
    # ---------------------------

    @retry_on_conflict
    def _get_or_create(self, quiz_date: date) -> DailyQuizSnapshot:
        existing = self._quizzes.get_by_date(quiz_date)
        if existing is not None:
            logger.info(f"Loaded existing daily quiz {existing.id} for {quiz_date}")
            return DailyQuizSnapshot.from_model(existing)

        logger.info(f"No daily quiz for {quiz_date}, generating one")
        questions = self.select_questions()
        created = self._quizzes.create(quiz_date, [q.id for q in questions])
        return DailyQuizSnapshot.from_model(created)

    # ---------------------------
    # Selection
    # ---------------------------

    def select_questions(self) -> List[Question]:
        selected: List[Question] = []
        used_surahs: Set[int] = set()

        for difficulty, count in self._composition:
            pool = self._questions.get_approved_candidates(difficulty, count * OVERSAMPLE_FACTOR)
            picked = self._pick(pool, count, used_surahs)

            if len(picked) < count:
                logger.warning(
                    f"Only {len(picked)} of {count} '{difficulty}' questions available, "
                    f"daily quiz will be short"
                )

            for question in picked:
                surah = _surah_of(question)
                if surah is not None:
                    used_surahs.add(surah)
            selected.extend(picked)

        if not selected:
            raise InsufficientContentError("No approved questions are available for a daily quiz")

        # Tier boundaries mean nothing to the learner
        self._rng.shuffle(selected)
        logger.info(
            f"Selected {len(selected)} questions across {len(used_surahs)} surahs"
        )
        return selected

    def _pick(self, pool: List[Question], count: int, used_surahs: Set[int]) -> List[Question]:
        """
        Randomly take `count` questions, preferring surahs not used yet (by
        earlier tiers or by earlier picks in this tier). When the pool cannot
        supply enough fresh surahs, the remainder comes from the full pool.
        """
        candidates = list(pool)
        self._rng.shuffle(candidates)

        picked: List[Question] = []
        seen = set(used_surahs)
        for question in candidates:
            if len(picked) == count:
                break
            surah = _surah_of(question)
            if surah not in seen:
                picked.append(question)
                seen.add(surah)

        if len(picked) < count:
            logger.debug(
                f"Diversified pool too small ({len(picked)}/{count}), falling back to full pool"
            )
            chosen_ids = {q.id for q in picked}
            for question in candidates:
                if len(picked) == count:
                    break
                if question.id not in chosen_ids:
                    picked.append(question)
                    chosen_ids.add(question.id)

        return picked

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Mapping, Optional, Tuple

from ..db.models import Question, Streak
from ..repositories.quiz_session_repository import QuizSessionRepository
from ..repositories.streak_repository import StreakRepository
from .clock import Clock, utcnow
from .conflict import retry_on_conflict
from .records import AnswerOutcome, StreakInfo

logger = logging.getLogger(__name__)


def score_answers(questions: Iterable[Question], answers: Mapping[str, str]) -> Tuple[List[AnswerOutcome], int]:
    """
    Compare each question's correct answer with the recorded choice.
    Unanswered questions count as wrong with an empty selection.
    """
    outcomes: List[AnswerOutcome] = []
    correct = 0
    for question in questions:
        selected = answers.get(str(question.id)) or ""
        is_correct = selected != "" and selected == question.answer
        if is_correct:
            correct += 1
        outcomes.append(
            AnswerOutcome(question_id=question.id, selected_answer=selected, is_correct=is_correct)
        )
    return outcomes, correct


def percentage(correct: int, total: int) -> int:
    if total == 0:
        return 0
    # Round half up (round() would give 62 for 62.5 but 64 for 63.5)
    return int(correct * 100 / total + 0.5)


def next_streak(current: int, last_completion: Optional[date], today: date) -> int:
    """Current streak after a perfect completion on `today`."""
    if last_completion is None:
        return 1
    gap = (today - last_completion).days
    if gap <= 1:
        # Same day (repeat invocation), previous day, or an older quiz
        # finished after a newer one
        return current + 1
    return 1


class StreakUpdater:
    """
    Maintains the per-user consecutive-day streak of perfect daily quizzes.

    Each update is a single transaction: the streak row is locked, the new
    values are computed from the locked row and written back. A first-ever
    insert that races another device is retried via retry_on_conflict.
    """

    def __init__(
        self,
        *,
        streak_repo: StreakRepository,
        session_repo: QuizSessionRepository,
        clock: Clock = utcnow,
    ):
        self._streaks = streak_repo
        self._sessions = session_repo
        self._clock = clock

    def get_streak(self, user_id: int) -> StreakInfo:
        streak = self._streaks.get(user_id)
        if streak is None:
            return StreakInfo()
        return StreakInfo(current=streak.current_streak, longest=streak.longest_streak)

    @retry_on_conflict
    def apply_perfect_completion(
        self,
        user_id: int,
        completion_date: date,
        exclude_session_id: Optional[int] = None,
    ) -> Streak:
        streak = self._streaks.get_for_update(user_id)
        current = streak.current_streak if streak else 0
        longest = streak.longest_streak if streak else 0

        last_completion = self._sessions.last_completion_date(user_id, exclude_session_id)
        new_current = next_streak(current, last_completion, completion_date)
        new_longest = max(longest, new_current)

        logger.info(
            f"Perfect completion for user_id={user_id} on {completion_date}: "
            f"last_completion={last_completion}, streak {current} -> {new_current}"
        )
        return self._streaks.write(streak, user_id, new_current, new_longest, self._clock())

    @retry_on_conflict
    def apply_imperfect_completion(self, user_id: int) -> Streak:
        streak = self._streaks.get_for_update(user_id)
        longest = streak.longest_streak if streak else 0
        logger.info(f"Imperfect completion for user_id={user_id}, streak reset to 0")
        return self._streaks.write(streak, user_id, 0, longest, self._clock())

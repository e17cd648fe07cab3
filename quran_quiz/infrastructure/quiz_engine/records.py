from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class DailyQuizSnapshot:
    """Detached, immutable view of a persisted daily quiz (safe to cache)."""

    id: int
    quiz_date: date
    question_ids: Tuple[int, ...]
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model) -> "DailyQuizSnapshot":
        return cls(
            id=model.id,
            quiz_date=model.quiz_date,
            question_ids=tuple(int(qid) for qid in model.question_ids),
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class AnswerOutcome:
    question_id: int
    selected_answer: str
    is_correct: bool
    time_spent: int = 0


@dataclass
class QuizResult:
    session_id: int
    score: int
    total_questions: int
    correct_answers: int
    time_spent_ms: int
    answers: List[AnswerOutcome] = field(default_factory=list)
    streak_updated: bool = False


@dataclass(frozen=True)
class StreakInfo:
    current: int = 0
    longest: int = 0

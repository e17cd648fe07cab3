from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class VerseOut(BaseModel):
    id: int
    surah: int
    ayah: int
    arabic_text: str
    translation_en: Optional[str] = None

    class Config:
        from_attributes = True


class QuizQuestionOut(BaseModel):
    """A quiz question as shown to learners: the correct answer is withheld."""

    id: int
    verse_id: int
    prompt: str
    choices: List[str]
    difficulty: str
    verse: Optional[VerseOut] = None

    class Config:
        from_attributes = True


class DailyQuizOut(BaseModel):
    id: int
    date: date
    question_ids: List[int]
    questions: List[QuizQuestionOut] = []


class QuizSessionOut(BaseModel):
    id: int
    user_id: int
    daily_quiz_id: int
    current_question_index: int
    answers: Dict[int, str]
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    last_activity_at: datetime
    timezone: str

    class Config:
        from_attributes = True


class StreakOut(BaseModel):
    current: int = 0
    longest: int = 0


class QuizStatusOut(BaseModel):
    has_completed_today: bool
    current_session: Optional[QuizSessionOut] = None
    streak: StreakOut


class DailyQuizResponse(BaseModel):
    quiz: DailyQuizOut
    status: QuizStatusOut
    timezone: str
    difficulties: Dict[str, int]


class StartSessionRequest(BaseModel):
    timezone: str = "UTC"


class StartSessionResponse(BaseModel):
    session: QuizSessionOut
    quiz: DailyQuizOut


class AnswerRequest(BaseModel):
    question_id: int
    selected_answer: str = Field(min_length=1)
    advance: bool = True


class AnswerOutcomeOut(BaseModel):
    question_id: int
    selected_answer: str
    is_correct: bool
    time_spent: int = 0


class QuizResultOut(BaseModel):
    session_id: int
    score: int = Field(ge=0, le=100)
    total_questions: int
    correct_answers: int
    time_spent_ms: int
    answers: List[AnswerOutcomeOut]
    streak_updated: bool


class AttemptOut(BaseModel):
    id: int
    question_id: int
    session_id: Optional[int] = None
    response: Optional[str] = None
    correct: bool
    answered_at: datetime
    question: Optional[QuizQuestionOut] = None

    class Config:
        from_attributes = True


class AttemptHistoryOut(BaseModel):
    attempts: List[AttemptOut]
    page: int
    limit: int
    total: int

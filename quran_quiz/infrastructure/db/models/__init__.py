from .user_model import UserModel
from .verse_model import Verse
from .question_model import Question, DIFFICULTIES
from .daily_quiz_model import DailyQuiz
from .quiz_session_model import QuizSession, SessionStatus
from .attempt_model import AttemptModel
from .streak_model import Streak
from .batch_run_model import BatchRun

__all__ = [
    "UserModel",
    "Verse",
    "Question",
    "DIFFICULTIES",
    "DailyQuiz",
    "QuizSession",
    "SessionStatus",
    "AttemptModel",
    "Streak",
    "BatchRun",
]

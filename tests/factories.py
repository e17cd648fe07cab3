from datetime import datetime, timedelta, timezone

from quran_quiz.infrastructure.db.models import (
    DailyQuiz,
    Question,
    QuizSession,
    SessionStatus,
    Streak,
    UserModel,
    Verse,
)

APPROVED_AT = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_user(db, email="learner@example.com", role="learner"):
    user = UserModel(email=email, name=email.split("@")[0], role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_verse(db, surah, ayah=1, translation="In the name of God"):
    verse = db.query(Verse).filter(Verse.surah == surah, Verse.ayah == ayah).first()
    if verse is None:
        verse = Verse(
            surah=surah,
            ayah=ayah,
            arabic_text=f"آية {surah}:{ayah}",
            translation_en=translation,
        )
        db.add(verse)
        db.commit()
        db.refresh(verse)
    return verse


def make_question(db, difficulty, surah, ayah=1, approved=True):
    verse = make_verse(db, surah, ayah)
    question = Question(
        verse_id=verse.id,
        prompt=f"{difficulty} question on {surah}:{ayah}",
        choices=["right", "wrong 1", "wrong 2", "wrong 3"],
        answer="right",
        difficulty=difficulty,
        source="human",
        approved_at=APPROVED_AT if approved else None,
    )
    db.add(question)
    db.commit()
    db.refresh(question)
    return question


def seed_question_pool(db, per_tier=6):
    """Approved questions for every tier; each tier spans surahs 1..per_tier."""
    questions = []
    for offset, difficulty in enumerate(("easy", "medium", "hard")):
        for i in range(per_tier):
            questions.append(make_question(db, difficulty, surah=1 + i, ayah=1 + offset))
    return questions


def make_completed_session(db, user, quiz_date):
    quiz = db.query(DailyQuiz).filter(DailyQuiz.quiz_date == quiz_date).first()
    if quiz is None:
        quiz = DailyQuiz(quiz_date=quiz_date, question_ids=[])
        db.add(quiz)
        db.commit()
    when = datetime(quiz_date.year, quiz_date.month, quiz_date.day, 12, tzinfo=timezone.utc)
    session = QuizSession(
        user_id=user.id,
        daily_quiz_id=quiz.id,
        current_question_index=0,
        answers={},
        status=SessionStatus.COMPLETED.value,
        timezone="UTC",
        started_at=when,
        completed_at=when,
        last_activity_at=when,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def set_streak(db, user, current, longest):
    db.add(Streak(user_id=user.id, current_streak=current, longest_streak=longest, updated_at=APPROVED_AT))
    db.commit()


def answer_quiz(engine, session_id, quiz, wrong_positions=()):
    """Answer every question in quiz order, choosing wrongly at the given positions."""
    session = None
    for position, question_id in enumerate(quiz.question_ids):
        choice = "wrong 1" if position in wrong_positions else "right"
        session = engine.record_answer(session_id, question_id, choice)
    return session

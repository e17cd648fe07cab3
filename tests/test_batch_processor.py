import pytest

from quran_quiz.infrastructure.db.models import BatchRun, Question
from quran_quiz.infrastructure.generation.batch_processor import BatchProcessor, summarize_runs
from quran_quiz.infrastructure.generation.question_generation import GeneratedQuestion
from quran_quiz.infrastructure.quiz_engine.errors import GenerationError
from quran_quiz.infrastructure.repositories.batch_run_repository import BatchRunRepository
from quran_quiz.infrastructure.repositories.question_repository import QuestionRepository
from quran_quiz.infrastructure.repositories.verse_repository import VerseRepository

from factories import make_question, make_verse


class FakeGenerator:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.requests = []

    def generate_for_verse(self, verse, count=2):
        self.requests.append(((verse.surah, verse.ayah), count))
        if (verse.surah, verse.ayah) in self.failing:
            raise GenerationError(f"No valid questions generated for verse {verse.surah}:{verse.ayah}")
        return [
            GeneratedQuestion(
                prompt=f"Generated {i} for {verse.surah}:{verse.ayah}",
                choices=["a", "b", "c", "d"],
                answer="a",
                difficulty="easy",
            )
            for i in range(count)
        ]


class BrokenVerseRepository(VerseRepository):
    def get_under_covered(self, target, limit):
        raise RuntimeError("verse index unavailable")


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_processor(db, clock, sleeps):
    def _make(generator=None, verse_repo=None, **options):
        options.setdefault("batch_size", 2)
        options.setdefault("delay_seconds", 30.0)
        return BatchProcessor(
            generator=generator or FakeGenerator(),
            verse_repo=verse_repo or VerseRepository(db),
            question_repo=QuestionRepository(db),
            batch_run_repo=BatchRunRepository(db),
            sleep=sleeps.append,
            clock=clock,
            **options,
        )

    return _make


@pytest.fixture
def verses(db):
    """Surah 1: ayah 1 fully covered, ayah 2 half covered, ayahs 3-5 bare."""
    make_question(db, "easy", surah=1, ayah=1)
    make_question(db, "medium", surah=1, ayah=1)
    make_question(db, "easy", surah=1, ayah=2)
    for ayah in range(3, 6):
        make_verse(db, 1, ayah)


def test_under_covered_verses_ignore_pending_questions(db, verses):
    make_question(db, "hard", surah=1, ayah=3, approved=False)

    rows = VerseRepository(db).get_under_covered(target=2, limit=50)

    assert [((v.surah, v.ayah), count) for v, count in rows] == [
        ((1, 2), 1),
        ((1, 3), 0),
        ((1, 4), 0),
        ((1, 5), 0),
    ]


def test_batch_generates_missing_questions_into_the_moderation_queue(db, verses, make_processor, sleeps):
    generator = FakeGenerator()

    outcome = make_processor(generator).process_batch()

    assert outcome.success is True
    assert generator.requests == [((1, 2), 1), ((1, 3), 2), ((1, 4), 2), ((1, 5), 2)]
    assert outcome.stats.verses_processed == 4
    assert outcome.stats.questions_generated == 7
    assert outcome.stats.questions_saved == 7
    assert outcome.stats.errors == 0

    queued = db.query(Question).filter(Question.source == "ai").all()
    assert len(queued) == 7
    assert all(q.approved_at is None for q in queued)


def test_batch_waits_between_sub_batches(verses, make_processor, sleeps):
    make_processor(delay_seconds=12.5).process_batch()

    # four verses in sub-batches of two
    assert sleeps == [12.5]


def test_failing_verse_is_counted_and_the_batch_continues(db, verses, make_processor):
    outcome = make_processor(FakeGenerator(failing={(1, 3)})).process_batch()

    assert outcome.success is True
    assert outcome.stats.errors == 1
    assert outcome.stats.verses_processed == 4
    assert outcome.stats.questions_saved == 5


def test_batch_records_its_run(db, verses, make_processor):
    make_processor().process_batch()

    run = db.query(BatchRun).one()
    assert run.success is True
    assert run.verses_processed == 4
    assert run.questions_saved == 7
    assert run.error_message is None


def test_nothing_to_do_when_every_verse_is_covered(db, make_processor):
    make_question(db, "easy", surah=2, ayah=1)
    make_question(db, "hard", surah=2, ayah=1)

    outcome = make_processor().process_batch()

    assert outcome.success is True
    assert outcome.stats.verses_processed == 0
    assert db.query(BatchRun).count() == 0


def test_unexpected_failure_records_a_failed_run(db, verses, make_processor):
    outcome = make_processor(verse_repo=BrokenVerseRepository(db)).process_batch()

    assert outcome.success is False
    assert "verse index unavailable" in outcome.message
    run = db.query(BatchRun).one()
    assert run.success is False
    assert run.error_message == "verse index unavailable"


def test_verse_limit_caps_the_batch(verses, make_processor):
    generator = FakeGenerator()

    outcome = make_processor(generator, verse_limit=2).process_batch()

    assert outcome.stats.verses_processed == 2
    assert [ref for ref, _ in generator.requests] == [(1, 2), (1, 3)]


def test_generate_for_surah_covers_the_ayah_range(db, verses, make_processor):
    generator = FakeGenerator()

    outcome = make_processor(generator, target_per_verse=1).generate_for_surah(1, ayah_start=2, ayah_end=4)

    assert outcome.success is True
    assert [ref for ref, _ in generator.requests] == [(1, 2), (1, 3), (1, 4)]
    assert outcome.stats.questions_saved == 3


def test_generate_for_unknown_surah_fails(db, make_processor):
    outcome = make_processor().generate_for_surah(114)

    assert outcome.success is False
    assert "114" in outcome.message


def test_batch_stats_summarize_recent_runs(db, verses, make_processor, clock):
    processor = make_processor(FakeGenerator(failing={(1, 5)}))
    processor.process_batch()
    make_processor(verse_repo=BrokenVerseRepository(db)).process_batch()
    clock.advance(days=1)

    history = processor.get_batch_stats(days=7)

    assert history.total_runs == 2
    assert history.successful_runs == 1
    assert history.total_questions_generated == 5
    assert history.recent_errors == ["verse index unavailable"]


def test_batch_stats_exclude_old_runs(db, verses, make_processor, clock):
    processor = make_processor()
    processor.process_batch()
    clock.advance(days=10)

    assert processor.get_batch_stats(days=7).total_runs == 0


def test_summarize_runs_without_runs():
    history = summarize_runs([])

    assert history.total_runs == 0
    assert history.recent_errors == []

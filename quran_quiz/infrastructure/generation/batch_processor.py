from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Sequence

from ..db.models import BatchRun
from ..quiz_engine.clock import Clock, as_utc, utcnow
from ..repositories.batch_run_repository import BatchRunRepository
from ..repositories.question_repository import QuestionRepository
from ..repositories.verse_repository import VerseRepository
from .question_generation import VerseQuestionGenerator

logger = logging.getLogger(__name__)


@dataclass
class BatchStats:
    verses_processed: int = 0
    questions_generated: int = 0
    questions_saved: int = 0
    errors: int = 0

    def add(self, other: "BatchStats") -> None:
        self.verses_processed += other.verses_processed
        self.questions_generated += other.questions_generated
        self.questions_saved += other.questions_saved
        self.errors += other.errors


@dataclass
class BatchOutcome:
    success: bool
    stats: BatchStats
    message: str
    duration_seconds: int = 0

    def to_dict(self) -> Dict:
        return {
            "success": self.success,
            "stats": asdict(self.stats),
            "message": self.message,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class BatchHistory:
    total_runs: int = 0
    successful_runs: int = 0
    total_questions_generated: int = 0
    average_duration: int = 0
    recent_errors: List[str] = field(default_factory=list)


def summarize_runs(runs: List[BatchRun]) -> BatchHistory:
    """Aggregate recorded batch runs, newest first."""
    if not runs:
        return BatchHistory()
    return BatchHistory(
        total_runs=len(runs),
        successful_runs=sum(1 for r in runs if r.success),
        total_questions_generated=sum(r.questions_generated for r in runs),
        average_duration=round(sum(r.duration_seconds for r in runs) / len(runs)),
        recent_errors=[r.error_message or "Unknown error" for r in runs if not r.success][:5],
    )


class BatchProcessor:
    """
    Periodic job: finds verses with too few approved questions, asks the
    generator for the missing ones in rate-limited sub-batches and stages
    the results in the moderation queue.
    """

    def __init__(
        self,
        *,
        generator: VerseQuestionGenerator,
        verse_repo: VerseRepository,
        question_repo: QuestionRepository,
        batch_run_repo: BatchRunRepository,
        batch_size: int = 10,
        delay_seconds: float = 30.0,
        verse_limit: int = 50,
        target_per_verse: int = 2,
        sleep: Callable[[float], None] = time.sleep,
        clock: Clock = utcnow,
    ):
        self._generator = generator
        self._verses = verse_repo
        self._questions = question_repo
        self._runs = batch_run_repo
        self.batch_size = batch_size
        self.delay_seconds = delay_seconds
        self.verse_limit = verse_limit
        self.target_per_verse = target_per_verse
        self._sleep = sleep
        self._clock = clock

    # ---------------------------
    # Public API
    # ---------------------------

    def process_batch(self) -> BatchOutcome:
        started = self._clock()
        logger.info("Starting AI question generation batch")

        try:
            pending = self._verses.get_under_covered(self.target_per_verse, self.verse_limit)
            if not pending:
                logger.info("No verses need question generation")
                return BatchOutcome(success=True, stats=BatchStats(), message="No verses need processing at this time")

            total = BatchStats()
            chunks = [pending[i : i + self.batch_size] for i in range(0, len(pending), self.batch_size)]
            for number, chunk in enumerate(chunks, start=1):
                logger.info(f"Processing sub-batch {number} of {len(chunks)} ({len(chunk)} verses)")
                try:
                    total.add(self._process_chunk(chunk))
                except Exception as e:
                    # One failed sub-batch never aborts the run
                    logger.error(f"Sub-batch {number} failed: {e}", exc_info=True)
                    self._questions.db.rollback()
                    total.errors += 1

                if number < len(chunks) and self.delay_seconds > 0:
                    logger.info(f"Waiting {self.delay_seconds}s before next sub-batch")
                    self._sleep(self.delay_seconds)

            duration = self._elapsed_seconds(started)
            message = (
                f"Batch completed in {duration}s: {total.questions_generated} questions generated, "
                f"{total.questions_saved} saved to moderation queue"
            )
            logger.info(message)
            self._log_run(total, duration, success=True)
            return BatchOutcome(success=True, stats=total, message=message, duration_seconds=duration)

        except Exception as e:
            duration = self._elapsed_seconds(started)
            message = f"Batch process failed after {duration}s: {e}"
            logger.error(message, exc_info=True)
            self._questions.db.rollback()
            self._log_run(BatchStats(errors=1), duration, success=False, error_message=str(e))
            return BatchOutcome(success=False, stats=BatchStats(errors=1), message=message, duration_seconds=duration)

    def generate_for_surah(
        self,
        surah: int,
        ayah_start: Optional[int] = None,
        ayah_end: Optional[int] = None,
    ) -> BatchOutcome:
        """Manual trigger for one surah (optionally an ayah range)."""
        verses = self._verses.get_by_surah(surah, ayah_start, ayah_end)
        if not verses:
            return BatchOutcome(success=False, stats=BatchStats(), message=f"No verses found for Surah {surah}")

        started = self._clock()
        stats = self._process_chunk([(verse, 0) for verse in verses])
        duration = self._elapsed_seconds(started)
        return BatchOutcome(
            success=True,
            stats=stats,
            message=f"Generated {stats.questions_generated} questions for {len(verses)} verses in Surah {surah}",
            duration_seconds=duration,
        )

    def get_batch_stats(self, days: int = 7) -> BatchHistory:
        cutoff = self._clock() - timedelta(days=days)
        return summarize_runs(self._runs.list_since(cutoff))

    # ---------------------------
    # Internals
    # ---------------------------

    def _process_chunk(self, chunk: Sequence[tuple]) -> BatchStats:
        stats = BatchStats()
        for verse, approved_count in chunk:
            stats.verses_processed += 1
            missing = max(self.target_per_verse - approved_count, 1)
            try:
                generated = self._generator.generate_for_verse(verse, missing)
            except Exception as e:
                logger.warning(f"Generation failed for verse {verse.surah}:{verse.ayah}: {e}")
                stats.errors += 1
                continue

            stats.questions_generated += len(generated)
            saved = self._questions.add_to_moderation_queue([q.to_model(verse) for q in generated])
            stats.questions_saved += len(saved)
        return stats

    def _elapsed_seconds(self, started) -> int:
        return int(round((self._clock() - as_utc(started)).total_seconds()))

    def _log_run(self, stats: BatchStats, duration: int, *, success: bool, error_message: Optional[str] = None) -> None:
        run = BatchRun(
            run_at=self._clock(),
            verses_processed=stats.verses_processed,
            questions_generated=stats.questions_generated,
            questions_saved=stats.questions_saved,
            errors=stats.errors,
            duration_seconds=duration,
            success=success,
            error_message=error_message,
        )
        self._runs.record(run)



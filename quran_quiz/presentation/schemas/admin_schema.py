from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from .quiz_schema import VerseOut


class PendingQuestionOut(BaseModel):
    id: int
    verse_id: int
    prompt: str
    choices: List[str]
    answer: str
    difficulty: str
    explanation: Optional[str] = None
    source: str
    created_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    verse: Optional[VerseOut] = None

    class Config:
        from_attributes = True


class PregenerateResponse(BaseModel):
    results: List[Dict]
    errors: List[Dict]


class BatchStatsOut(BaseModel):
    verses_processed: int
    questions_generated: int
    questions_saved: int
    errors: int


class BatchRunResponse(BaseModel):
    success: bool
    stats: BatchStatsOut
    message: str
    duration_seconds: int = 0


class BatchHistoryOut(BaseModel):
    total_runs: int
    successful_runs: int
    total_questions_generated: int
    average_duration: int
    recent_errors: List[str] = []


class VerseUploadResponse(BaseModel):
    total_rows: int
    inserted: int
    updated: int
    failed: int
    errors: list[str] = []

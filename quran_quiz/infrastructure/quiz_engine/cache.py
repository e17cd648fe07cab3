import threading
from datetime import date
from typing import Optional, Protocol

from cachetools import LRUCache

from .records import DailyQuizSnapshot


class DailyQuizCache(Protocol):
    """
    Read-through cache for daily quizzes keyed by calendar date.

    Never authoritative: a miss always falls back to the database, and
    entries may be dropped at any time.
    """

    def get(self, quiz_date: date) -> Optional[DailyQuizSnapshot]:
        ...

    def put(self, quiz_date: date, quiz: DailyQuizSnapshot) -> None:
        ...


class NullDailyQuizCache:
    def get(self, quiz_date: date) -> Optional[DailyQuizSnapshot]:
        return None

    def put(self, quiz_date: date, quiz: DailyQuizSnapshot) -> None:
        return None


class LRUDailyQuizCache:
    """Bounded in-process cache, evicting the least recently used date."""

    def __init__(self, maxsize: int = 64):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.maxsize = maxsize
        self._entries: LRUCache = LRUCache(maxsize=maxsize)
        # LRUCache reorders on reads, so lookups need the lock too
        self._lock = threading.Lock()

    def get(self, quiz_date: date) -> Optional[DailyQuizSnapshot]:
        with self._lock:
            return self._entries.get(quiz_date)

    def put(self, quiz_date: date, quiz: DailyQuizSnapshot) -> None:
        with self._lock:
            self._entries[quiz_date] = quiz

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

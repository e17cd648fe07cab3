from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from ..db.models import BatchRun


class BatchRunRepository:
    def __init__(self, db: Session):
        self.db = db

    def record(self, run: BatchRun) -> BatchRun:
        self.db.add(run)
        self.db.commit()
        self.db.refresh(run)
        return run

    def list_since(self, cutoff: datetime) -> List[BatchRun]:
        return (
            self.db.query(BatchRun)
            .filter(BatchRun.run_at >= cutoff)
            .order_by(BatchRun.run_at.desc())
            .all()
        )

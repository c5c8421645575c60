"""
Cleanup Run Repository for the history of maintenance operations.
"""

from typing import List, Optional, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy import func

from models import CleanupRun, RunStatus
from .base import BaseRepository

class CleanupRunRepository(BaseRepository):
    """Repository for CleanupRun model operations."""

    def __init__(self, session: Session):
        super().__init__(CleanupRun, session)

    def record_result(self, result, triggered_by: Optional[str] = None) -> CleanupRun:
        """Store a finished CleanupResult."""
        duration = None
        if result.finished_at and result.started_at:
            duration = int((result.finished_at - result.started_at).total_seconds())

        status = RunStatus.SUCCESS.value
        if result.failed_ids:
            status = RunStatus.PARTIAL.value if result.succeeded > 0 else RunStatus.FAILED.value

        return self.create(
            operation=result.operation,
            status=status,
            dry_run=result.dry_run,
            triggered_by=triggered_by,
            processed=result.processed,
            succeeded=result.succeeded,
            failed=len(result.failed_ids),
            failed_ids=list(result.failed_ids),
            message=result.message,
            started_at=result.started_at,
            completed_at=result.finished_at,
            duration=duration
        )

    def get_recent_runs(self, operation: Optional[str] = None, limit: int = 10) -> List[CleanupRun]:
        """Get the most recent runs, newest first."""
        query = self.session.query(CleanupRun)

        if operation:
            query = query.filter(CleanupRun.operation == operation)

        return query.order_by(CleanupRun.started_at.desc(), CleanupRun.id.desc()).limit(limit).all()

    def get_last_run(self, operation: str) -> Optional[CleanupRun]:
        """Get the last run of a specific operation."""
        runs = self.get_recent_runs(operation=operation, limit=1)
        return runs[0] if runs else None

    def get_totals(self) -> Dict[str, Any]:
        """Get totals per operation, excluding dry runs."""
        rows = self.session.query(
            CleanupRun.operation,
            func.count(CleanupRun.id).label('runs'),
            func.sum(CleanupRun.succeeded).label('succeeded'),
            func.sum(CleanupRun.failed).label('failed')
        ).filter(
            CleanupRun.dry_run.is_(False)
        ).group_by(CleanupRun.operation).all()

        return {
            operation: {
                'runs': runs,
                'succeeded': succeeded or 0,
                'failed': failed or 0
            }
            for operation, runs, succeeded, failed in rows
        }

import logging
import threading
import uuid

from datetime import datetime
from typing import Dict, Optional

import pytz

from parking_violations.models.progress_info import ProgressInfo

LOG = logging.getLogger(__name__)


class ProgressTrackingService:
    """In-process store of aggregation progress, keyed by request id."""

    # seconds a finished company run still counts as processing
    COMPLETED_COOLDOWN_SECONDS = 30
    FAILED_COOLDOWN_SECONDS = 60

    def __init__(self):
        self._lock = threading.Lock()
        self._progress: Dict[str, ProgressInfo] = {}
        self._request_ids_by_company: Dict[str, str] = {}

    def create_progress_tracker(self, company_id: Optional[str] = None) -> str:
        with self._lock:
            request_id: str = self._create_locked(company_id)

        LOG.debug(f'created progress tracker {request_id}'
                  f'{f" for company {company_id}" if company_id else ""}')

        return request_id

    def try_start_company(self, company_id: str) -> Optional[str]:
        """Create a tracker for the company unless a run for it is still
        processing. Returns the new request id, or None when busy."""
        with self._lock:
            if self._is_company_processing_locked(company_id):
                return None

            request_id: str = self._create_locked(company_id)

        LOG.debug(f'created progress tracker {request_id} for company {company_id}')

        return request_id

    def update_progress(self, request_id: Optional[str], progress: int, status: Optional[str] = None) -> None:
        if not request_id:
            return

        progress = max(0, min(100, progress))
        now: datetime = self._now()

        with self._lock:
            info: Optional[ProgressInfo] = self._progress.get(request_id)

            if info is None:
                info = ProgressInfo(request_id=request_id, started_at=now)
                self._progress[request_id] = info

            info.progress = progress
            info.status = status or info.status
            info.last_updated = now

            if progress >= 100 and info.is_task_running:
                info.is_task_running = False
                info.completed_at = now

        LOG.debug(f'progress for {request_id}: {progress}% - {status or "Processing"}')

    def mark_failed(self, request_id: Optional[str], error: str) -> None:
        if not request_id:
            return

        now: datetime = self._now()

        with self._lock:
            info: Optional[ProgressInfo] = self._progress.get(request_id)
            if info is None:
                return

            info.error = error
            info.status = f'Error: {error}'
            info.is_task_running = False
            info.completed_at = now
            info.last_updated = now

    def mark_task_completed(self, request_id: Optional[str]) -> None:
        if not request_id:
            return

        now: datetime = self._now()

        with self._lock:
            info: Optional[ProgressInfo] = self._progress.get(request_id)
            if info is None:
                return

            info.is_task_running = False
            info.completed_at = now
            info.last_updated = now

    def get_progress(self, request_id: Optional[str]) -> Optional[ProgressInfo]:
        if not request_id:
            return None

        with self._lock:
            return self._progress.get(request_id)

    def get_progress_by_company_id(self, company_id: str) -> Optional[ProgressInfo]:
        with self._lock:
            request_id: Optional[str] = self._request_ids_by_company.get(company_id)
            return self._progress.get(request_id) if request_id else None

    def is_company_processing(self, company_id: str) -> bool:
        """True while a run for the company is going, and for a short
        cooldown after it ends so that a run is not restarted right away."""
        with self._lock:
            return self._is_company_processing_locked(company_id)

    def remove_progress(self, request_id: Optional[str]) -> bool:
        if not request_id:
            return False

        with self._lock:
            info: Optional[ProgressInfo] = self._progress.pop(request_id, None)
            if info is None:
                return False

            if info.company_id and self._request_ids_by_company.get(info.company_id) == request_id:
                del self._request_ids_by_company[info.company_id]

        LOG.debug(f'removed progress tracker {request_id}')
        return True

    def _now(self) -> datetime:
        return datetime.now(pytz.utc)

    def _create_locked(self, company_id: Optional[str]) -> str:
        request_id: str = str(uuid.uuid4())

        self._progress[request_id] = ProgressInfo(
            request_id=request_id,
            company_id=company_id,
            started_at=self._now())

        if company_id:
            self._request_ids_by_company[company_id] = request_id

        return request_id

    def _is_company_processing_locked(self, company_id: str) -> bool:
        request_id: Optional[str] = self._request_ids_by_company.get(company_id)
        if not request_id:
            return False

        info: Optional[ProgressInfo] = self._progress.get(request_id)
        if info is None:
            del self._request_ids_by_company[company_id]
            return False

        if info.is_task_running:
            return True

        if info.completed_at:
            cooldown: int = (self.FAILED_COOLDOWN_SECONDS if info.error
                             else self.COMPLETED_COOLDOWN_SECONDS)
            elapsed: float = (self._now() - info.completed_at).total_seconds()

            return elapsed < cooldown

        return False

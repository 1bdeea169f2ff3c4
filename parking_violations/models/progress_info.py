from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class ProgressInfo:
    """ Progress of one aggregation request """
    request_id: str
    started_at: datetime
    company_id: Optional[str] = None
    progress: int = 0
    status: str = 'Initializing'
    last_updated: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    is_task_running: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'requestId': self.request_id,
            'companyId': self.company_id,
            'progress': self.progress,
            'status': self.status,
            'startedAt': self.started_at.isoformat(),
            'lastUpdated': self.last_updated.isoformat() if self.last_updated else None,
            'completedAt': self.completed_at.isoformat() if self.completed_at else None,
            'error': self.error,
            'isTaskRunning': self.is_task_running,
        }

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from parking_violations.models.violation_record import ViolationRecord


@dataclass
class AggregationResponse:
    """ Represents the merged results of a fan-out across finders."""
    violations: List[ViolationRecord] = field(default_factory=list)
    request_id: Optional[str] = None

    @property
    def total_count(self) -> int:
        return len(self.violations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'violations': [violation.to_dict() for violation in self.violations],
            'totalCount': self.total_count,
            'requestId': self.request_id,
        }

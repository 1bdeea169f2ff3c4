from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class CompanyAggregationResponse:
    """ Represents the outcome of a company-scoped aggregation:

    · how many vehicles were looked up
    · how many violations fell within the date range
    · how those violations were persisted
    """
    company_id: str
    vehicles_processed: int = 0
    violations_found: int = 0
    violations_saved: int = 0
    violations_updated: int = 0
    violations_skipped: int = 0
    message: str = ''
    request_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'companyId': self.company_id,
            'vehiclesProcessed': self.vehicles_processed,
            'violationsFound': self.violations_found,
            'violationsSaved': self.violations_saved,
            'violationsUpdated': self.violations_updated,
            'violationsSkipped': self.violations_skipped,
            'message': self.message,
            'requestId': self.request_id,
        }

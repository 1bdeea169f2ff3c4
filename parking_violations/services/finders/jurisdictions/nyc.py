from decimal import Decimal
from typing import Any, Dict, List, Optional

from parking_violations.constants import endpoints
from parking_violations.constants.finders import NYC_DOF_PROVIDER
from parking_violations.constants.payment_statuses import FineType
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services import normalizer
from parking_violations.services.finders.socrata_finder import SocrataFinder
from parking_violations.utils import string_utils


class NycOpenParkingAndCameraViolationsFinder(SocrataFinder):
    """ NYC Department of Finance summonses from Open Parking and Camera Violations """

    name = 'NYC Open Parking and Camera Violations'
    link = endpoints.NYC_OPEN_PARKING_AND_CAMERA_VIOLATIONS_LINK
    state = 'NY'
    provider = NYC_DOF_PROVIDER

    base_url = endpoints.NYC_SOCRATA_BASE_URL
    dataset = endpoints.NYC_OPEN_PARKING_AND_CAMERA_VIOLATIONS_DATASET

    def map_record(self, row: Dict[str, Any]) -> ViolationRecord:
        fine_amount: Decimal = normalizer.parse_amount(row.get('fine_amount'))
        penalty_amount: Decimal = normalizer.parse_amount(row.get('penalty_amount'))
        interest_amount: Decimal = normalizer.parse_amount(row.get('interest_amount'))
        reduction_amount: Decimal = normalizer.parse_amount(row.get('reduction_amount'))
        amount_due: Decimal = normalizer.parse_amount(row.get('amount_due'))

        if amount_due > 0:
            amount = amount_due
        else:
            amount = fine_amount + penalty_amount + interest_amount - reduction_amount

        summons_number: Optional[str] = row.get('summons_number')

        return ViolationRecord(
            citation_number=summons_number,
            notice_number=summons_number,
            provider=self.provider,
            agency=f"NYC {row.get('issuing_agency') or 'DOF'}",
            address=f"Precinct {row.get('precinct') or ''}, {row.get('county') or ''} County",
            tag=row.get('plate'),
            state=row.get('state'),
            issue_date=normalizer.parse_date(row.get('issue_date')),
            amount=amount,
            payment_status=normalizer.classify_payment_status(
                amount_due, row.get('violation_status')),
            fine_type=FineType.PARKING,
            note=self._build_note(row, penalty_amount, interest_amount),
            link=(row.get('summons_image') or {}).get('url') or None,
            is_active=amount_due > 0)

    def _build_note(self,
                    row: Dict[str, Any],
                    penalty_amount: Decimal,
                    interest_amount: Decimal) -> str:
        parts: List[Optional[str]] = [
            f"Violation: {row['violation']}" if row.get('violation') else None,
            f"Time: {row['violation_time']}" if row.get('violation_time') else None,
            f"License Type: {row['license_type']}" if row.get('license_type') else None,
            f"Status: {row['violation_status']}" if row.get('violation_status') else None,
            f'Penalty: ${penalty_amount:.2f}' if penalty_amount > 0 else None,
            f'Interest: ${interest_amount:.2f}' if interest_amount > 0 else None,
        ]

        return string_utils.build_note(parts)

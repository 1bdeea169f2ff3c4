from decimal import Decimal
from typing import Any, Dict, Optional

from parking_violations.constants import endpoints
from parking_violations.constants.finders import LADOT_PROVIDER
from parking_violations.constants.payment_statuses import \
    FineType, PaymentStatus, PortalStatus
from parking_violations.models.portal_check import PortalCheck
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services import normalizer
from parking_violations.services.finders.hybrid_finder import HybridFinder
from parking_violations.utils import string_utils

PORTAL_STATUS_LABELS = {
    PortalStatus.PAID: 'Paid',
    PortalStatus.UNPAID: 'Unpaid',
    PortalStatus.DISPUTED: 'Disputed',
    PortalStatus.DISMISSED: 'Dismissed',
    PortalStatus.NOT_FOUND: 'NotFound',
}


class LosAngelesParkingCitationsFinder(HybridFinder):
    """ LADOT citations from open data, with live status from the eTIMS portal """

    name = 'Los Angeles LADOT'
    link = endpoints.LA_PARKING_CITATIONS_LINK
    state = 'CA'
    provider = LADOT_PROVIDER

    base_url = endpoints.LA_SOCRATA_BASE_URL
    dataset = endpoints.LA_PARKING_CITATIONS_DATASET

    portal_input_url = f'{endpoints.ETIMS_PAYMENTS_BASE_URL}{endpoints.LA_PAYMENT_INPUT_PATH}'
    portal_search_url = f'{endpoints.ETIMS_PAYMENTS_BASE_URL}{endpoints.ETIMS_SEARCH_PATH}'

    def build_portal_form(self, citation_number: str) -> Dict[str, str]:
        return {'citationNumber': citation_number, 'siteId': 'la'}

    def merge(self,
              row: Dict[str, Any],
              check: PortalCheck,
              plate: Optional[str],
              state: Optional[str]) -> ViolationRecord:
        fine_amount: Decimal = normalizer.parse_amount(row.get('fine_amount'))
        amount_due: Decimal = check.amount_due if check.amount_due is not None else fine_amount

        ticket_number: Optional[str] = row.get('ticket_number')

        return ViolationRecord(
            citation_number=ticket_number,
            notice_number=ticket_number,
            provider=self.provider,
            agency=row.get('agency') or 'LADOT',
            address=self._build_address(row),
            tag=plate,
            state=state,
            issue_date=normalizer.parse_issue_time(row.get('issue_date'), row.get('issue_time')),
            amount=amount_due,
            payment_status=self.payment_status_for(check.status, amount_due),
            fine_type=FineType.PARKING,
            note=self._build_note(row, check),
            link=self.portal_input_url,
            is_active=check.status in (PortalStatus.UNPAID, PortalStatus.UNKNOWN))

    @staticmethod
    def payment_status_for(status: PortalStatus, amount_due: Decimal) -> PaymentStatus:
        if status in (PortalStatus.PAID, PortalStatus.DISMISSED):
            return PaymentStatus.PAID
        elif status == PortalStatus.DISPUTED:
            return PaymentStatus.DISPUTED
        elif status == PortalStatus.NOT_FOUND:
            return PaymentStatus.NEW if amount_due > 0 else PaymentStatus.PAID

        return PaymentStatus.NEW

    def _build_address(self, row: Dict[str, Any]) -> str:
        street: Optional[str] = row.get('location') or row.get('street_name')
        return f'{street}, Los Angeles, CA' if street else 'Los Angeles, CA'

    def _build_note(self, row: Dict[str, Any], check: PortalCheck) -> str:
        return string_utils.build_note([
            f"Code: {row['violation_code']}" if row.get('violation_code') else None,
            f"Violation: {row['violation_description']}" if row.get('violation_description') else None,
            f"Vehicle: {row['make']}" if row.get('make') else None,
            f'Status: {PORTAL_STATUS_LABELS[check.status]}' if check.status in PORTAL_STATUS_LABELS else None,
        ])

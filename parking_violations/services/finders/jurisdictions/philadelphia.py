from datetime import datetime
from decimal import Decimal
from typing import Optional

from parking_violations.constants import endpoints
from parking_violations.constants.finders import PHILADELPHIA_PARKING_AUTHORITY_PROVIDER
from parking_violations.constants.payment_statuses import FineType
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services import normalizer
from parking_violations.services.finders.heuristic_finder import HeuristicFinder


class PhiladelphiaParkingAuthorityFinder(HeuristicFinder):
    """ Philadelphia Parking Authority tickets from its OnlineServicesHub portal """

    name = 'Philadelphia Parking Authority'
    link = endpoints.PHILADELPHIA_PORTAL_URL
    state = 'PA'
    provider = PHILADELPHIA_PARKING_AUTHORITY_PROVIDER

    base_url = endpoints.PHILADELPHIA_PORTAL_URL

    api_paths = ('/api/Ticket/Search', '/Ticket/Search', '/api/Citation/Search')
    form_paths = ('/Ticket/Search', '/Search')

    def build_record(self,
                     plate: str,
                     state: str,
                     citation_number: str,
                     amount: Optional[Decimal] = None,
                     status: Optional[str] = None,
                     issue_date: Optional[datetime] = None,
                     address: Optional[str] = None,
                     note: Optional[str] = None) -> ViolationRecord:
        payment_status = normalizer.classify_payment_status(amount, status)

        return ViolationRecord(
            citation_number=citation_number,
            provider=self.provider,
            agency=self.name,
            address=address,
            tag=plate,
            state=state,
            issue_date=issue_date,
            amount=amount or Decimal('0'),
            payment_status=payment_status,
            fine_type=FineType.PARKING,
            note=note,
            link=self.link,
            is_active=True)

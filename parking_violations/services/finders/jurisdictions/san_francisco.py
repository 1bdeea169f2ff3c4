import re

from decimal import Decimal
from typing import Dict, List, Optional

from parking_violations.constants import endpoints
from parking_violations.constants.finders import SFMTA_PROVIDER
from parking_violations.constants.payment_statuses import FineType, PaymentStatus
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services import normalizer
from parking_violations.services.finders.session_scraping_finder import \
    SessionScrapingFinder
from parking_violations.utils import string_utils

SAN_FRANCISCO_ADDRESS = 'San Francisco, CA'


class SanFranciscoCitationsFinder(SessionScrapingFinder):
    """ SFMTA citations searched by plate on the eTIMS payment portal """

    name = 'San Francisco SFMTA'
    link = endpoints.SF_PAYMENT_MAIN_LINK
    state = 'CA'
    provider = SFMTA_PROVIDER

    input_url = f'{endpoints.ETIMS_PAYMENTS_BASE_URL}{endpoints.SF_PAYMENT_INPUT_PATH}'
    search_url = f'{endpoints.ETIMS_PAYMENTS_BASE_URL}{endpoints.ETIMS_SEARCH_PATH}'

    # citation | issue date | violation | fine | due
    MIN_ROW_CELLS = 5

    AMOUNT_CELL_REGEX = re.compile(r'^\$?\s*[0-9,]*\.?[0-9]+$')

    def build_search_form(self, plate: str, state: str) -> Dict[str, str]:
        return {
            # L searches by license plate, C by citation number
            'searchby': 'L',
            'plateState': state or self.state,
            'plateNumber': plate,
            'siteId': 'sanfrancisco',
        }

    def is_result_row(self, cells: List[str]) -> bool:
        return (super().is_result_row(cells)
                and all(self.AMOUNT_CELL_REGEX.match(cell.strip()) for cell in cells[3:5]))

    def build_record(self,
                     plate: str,
                     state: str,
                     citation_number: str,
                     cells: Optional[List[str]] = None,
                     amount_text: Optional[str] = None) -> ViolationRecord:
        if cells:
            fine_amount: Decimal = normalizer.parse_amount(cells[3])
            amount_due: Decimal = normalizer.parse_amount(cells[4])

            return self._record(
                plate=plate,
                state=state,
                citation_number=citation_number,
                issue_date=normalizer.parse_date(cells[1]),
                amount=amount_due if amount_due > 0 else fine_amount,
                payment_status=self.payment_status_for(amount_due, fine_amount),
                note=string_utils.strip_html(cells[2]) or None,
                is_active=amount_due > 0)

        amount: Decimal = normalizer.parse_amount(amount_text)

        return self._record(
            plate=plate,
            state=state,
            citation_number=citation_number,
            amount=amount,
            payment_status=PaymentStatus.NEW if amount > 0 else PaymentStatus.PAID,
            is_active=amount > 0)

    @staticmethod
    def payment_status_for(amount_due: Decimal, fine_amount: Decimal) -> PaymentStatus:
        if amount_due == 0:
            return PaymentStatus.PAID
        elif amount_due < fine_amount:
            return PaymentStatus.PARTIAL

        return PaymentStatus.NEW

    def _record(self, plate: str, state: str, citation_number: str, **kwargs) -> ViolationRecord:
        return ViolationRecord(
            citation_number=citation_number,
            notice_number=citation_number,
            provider=self.provider,
            agency='SFMTA',
            address=SAN_FRANCISCO_ADDRESS,
            tag=plate,
            state=state,
            fine_type=FineType.PARKING,
            link=self.link,
            **kwargs)

import logging
import re
import time

from typing import Any, Dict, List, Optional, Tuple

from parking_violations import settings
from parking_violations.constants.payment_statuses import PortalStatus
from parking_violations.models.portal_check import PortalCheck
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services import normalizer
from parking_violations.services.finders.socrata_finder import SocrataFinder

LOG = logging.getLogger(__name__)


class HybridFinder(SocrataFinder):
    """Reads citations from open data, then asks the live payment portal
    for each citation's current status.

    Open data lags the portal by days, so paid or dismissed citations still
    show up there as outstanding. A portal check that fails leaves that one
    citation UNKNOWN; the rest of the lookup carries on.
    """

    portal_input_url: str = ''
    portal_search_url: str = ''

    citation_field: str = 'ticket_number'

    OPEN_DATA_LIMIT = 100

    NOT_FOUND_PHRASES: Tuple[str, ...] = ('not found', 'no citation', 'cannot be found')
    PAID_PHRASES: Tuple[str, ...] = ('paid in full', 'this citation has been paid')
    DISMISSED_PHRASES: Tuple[str, ...] = ('dismissed', 'voided')
    DISPUTED_PHRASES: Tuple[str, ...] = ('hearing', 'under review', 'contested')

    # $0 or $0.00, but not $0.50
    ZERO_BALANCE_REGEX = re.compile(
        r'(?:balance|amount\s*due)\s*:?\s*\$\s*0(?:\.0+)?(?![0-9.,])', re.IGNORECASE)

    AMOUNT_DUE_REGEX = re.compile(
        r'(?:amount\s*due|balance|total)[^\$]*\$\s*([0-9,.]+)', re.IGNORECASE)

    def __init__(self,
                 timeout: Optional[float] = None,
                 app_token: Optional[str] = None,
                 request_delay: Optional[float] = None):
        super().__init__(timeout=timeout, app_token=app_token)

        self.request_delay: float = (settings.HYBRID_REQUEST_DELAY_SECONDS
                                     if request_delay is None else request_delay)

    def _find(self, plate: str, state: str) -> List[ViolationRecord]:
        rows: List[Dict[str, Any]] = self._fetch_rows(
            plate=plate, state=state, limit=self.OPEN_DATA_LIMIT, offset=0)

        records: List[ViolationRecord] = []

        for index, row in enumerate(rows):
            if index > 0 and self.request_delay:
                # keep the portal from rate limiting us
                time.sleep(self.request_delay)

            check: PortalCheck = self.check_portal_status(row.get(self.citation_field))

            records.append(self.merge(row=row, check=check, plate=plate, state=state))

        return records

    def map_record(self, row: Dict[str, Any]) -> ViolationRecord:
        return self.merge(row=row,
                          check=PortalCheck(),
                          plate=row.get(self.plate_field),
                          state=row.get(self.state_field))

    def merge(self,
              row: Dict[str, Any],
              check: PortalCheck,
              plate: Optional[str],
              state: Optional[str]) -> ViolationRecord:
        raise NotImplementedError(
            'Subclassed finder must implement this method.')

    def build_portal_form(self, citation_number: str) -> Dict[str, str]:
        raise NotImplementedError(
            'Subclassed finder must implement this method.')

    def check_portal_status(self, citation_number: Optional[str]) -> PortalCheck:
        if not citation_number:
            return PortalCheck()

        try:
            # establishes the portal session
            self._perform_request('GET', self.portal_input_url)

            response = self._perform_request(
                'POST',
                self.portal_search_url,
                data=self.build_portal_form(citation_number),
                headers={'Referer': self.portal_input_url})

            return self.parse_portal_status(html=response.text,
                                            citation_number=citation_number)

        except Exception as exc:  # pylint: disable=broad-except
            LOG.warning(f'{self.name} could not check citation {citation_number}: {exc}')
            return PortalCheck()

    def parse_portal_status(self, html: str, citation_number: str) -> PortalCheck:
        lowered: str = (html or '').lower()

        if any(phrase in lowered for phrase in self.NOT_FOUND_PHRASES):
            return PortalCheck(status=PortalStatus.NOT_FOUND)

        if (any(phrase in lowered for phrase in self.PAID_PHRASES)
                or self.ZERO_BALANCE_REGEX.search(html or '')):
            return PortalCheck(status=PortalStatus.PAID,
                               amount_due=normalizer.parse_amount(0))

        if any(phrase in lowered for phrase in self.DISMISSED_PHRASES):
            return PortalCheck(status=PortalStatus.DISMISSED,
                               amount_due=normalizer.parse_amount(0))

        if any(phrase in lowered for phrase in self.DISPUTED_PHRASES):
            return PortalCheck(status=PortalStatus.DISPUTED)

        status: PortalStatus = PortalStatus.UNKNOWN
        amount_due = None

        amount_match = self.AMOUNT_DUE_REGEX.search(html or '')
        if amount_match and any(char.isdigit() for char in amount_match.group(1)):
            amount_due = normalizer.parse_amount(amount_match.group(1))
            status = PortalStatus.UNPAID if amount_due > 0 else PortalStatus.PAID

        if status == PortalStatus.UNKNOWN and citation_number in (html or ''):
            status = PortalStatus.UNPAID

        return PortalCheck(status=status, amount_due=amount_due)

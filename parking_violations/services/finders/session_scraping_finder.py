import logging
import re

from bs4 import BeautifulSoup
from typing import Dict, List, Optional, Tuple

from parking_violations.constants.finders import NO_RESULTS_PHRASES
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services.finders.base_finder import BaseFinder
from parking_violations.utils import html_utils

LOG = logging.getLogger(__name__)


class SessionScrapingFinder(BaseFinder):
    """Looks up violations through an html payment portal.

    The input page is fetched first so that the session holds the portal's
    cookies and the page's hidden form fields, then the search form is
    posted with those fields. The results page is read as a table or, when
    no table row yields a citation, with a regex over the page text.
    """

    input_url: str = ''
    search_url: str = ''

    no_results_phrases: Tuple[str, ...] = NO_RESULTS_PHRASES

    CITATION_REGEX = re.compile(r'citation[^0-9]*(\d{8,12})', re.IGNORECASE)
    DOLLAR_AMOUNT_REGEX = re.compile(r'\$\s*([0-9,.]+)')

    MIN_CITATION_LENGTH = 5
    MIN_ROW_CELLS = 1

    def _find(self, plate: str, state: str) -> List[ViolationRecord]:
        input_page = self._perform_request('GET', self.input_url)

        hidden_fields: Dict[str, str] = html_utils.collect_hidden_fields(
            html_utils.parse_html(input_page.text))

        form: Dict[str, str] = self.build_search_form(plate=plate, state=state)

        # explicit fields win over whatever the page carried
        data: Dict[str, str] = {**hidden_fields, **form}

        results_page = self._perform_request(
            'POST',
            self.search_url,
            data=data,
            headers={'Referer': self.input_url})

        html: str = results_page.text

        if self.has_no_results(html):
            LOG.debug(f'{self.name} reported no citations for {state}:{plate}')
            return []

        records: List[ViolationRecord] = self.parse_results_table(
            soup=html_utils.parse_html(html), plate=plate, state=state)

        if not records:
            records = self.parse_results_text(html=html, plate=plate, state=state)

        return records

    def build_search_form(self, plate: str, state: str) -> Dict[str, str]:
        raise NotImplementedError(
            'Subclassed finder must implement this method.')

    def build_record(self,
                     plate: str,
                     state: str,
                     citation_number: str,
                     cells: Optional[List[str]] = None,
                     amount_text: Optional[str] = None) -> ViolationRecord:
        raise NotImplementedError(
            'Subclassed finder must implement this method.')

    def has_no_results(self, html: str) -> bool:
        lowered: str = (html or '').lower()
        return any(phrase in lowered for phrase in self.no_results_phrases)

    def parse_results_table(self,
                            soup: BeautifulSoup,
                            plate: str,
                            state: str) -> List[ViolationRecord]:
        records: List[ViolationRecord] = []

        for cells in html_utils.table_rows(soup):
            if not self.is_result_row(cells):
                continue

            records.append(self.build_record(
                plate=plate,
                state=state,
                citation_number=cells[0].strip(),
                cells=cells))

        return records

    def is_result_row(self, cells: List[str]) -> bool:
        """Header and layout rows are not citations: the first cell must
        be long enough and hold at least one digit."""
        if len(cells) < self.MIN_ROW_CELLS:
            return False

        citation_number: str = cells[0].strip()

        return (len(citation_number) >= self.MIN_CITATION_LENGTH
                and any(char.isdigit() for char in citation_number))

    def parse_results_text(self, html: str, plate: str, state: str) -> List[ViolationRecord]:
        """Pair each citation number found in the page with the dollar amount
        at the same position. Citations without an amount are dropped."""
        citation_numbers: List[str] = self.CITATION_REGEX.findall(html)
        amounts: List[str] = self.DOLLAR_AMOUNT_REGEX.findall(html)

        records: List[ViolationRecord] = []

        for citation_number, amount_text in zip(citation_numbers, amounts):
            records.append(self.build_record(
                plate=plate,
                state=state,
                citation_number=citation_number,
                amount_text=amount_text))

        return records

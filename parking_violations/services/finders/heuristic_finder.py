import json
import logging
import re
import threading

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from parking_violations.constants.states import STATE_NAMES
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services import normalizer
from parking_violations.services.finders.base_finder import BaseFinder
from parking_violations.utils import html_utils

LOG = logging.getLogger(__name__)


class HeuristicFinder(BaseFinder):
    """Looks up violations on a portal whose api is undocumented.

    Approaches are tried in order and the first one that produces at least
    one record wins:

    · json search endpoints
    · html form search, read as a table
    · a single citation read from the form results with regular expressions
    """

    base_url: str = ''

    api_paths: Tuple[str, ...] = ()
    form_paths: Tuple[str, ...] = ()

    TOKEN_FIELD = '__RequestVerificationToken'
    TOKEN_HEADER = 'RequestVerificationToken'
    TOKEN_REGEX = re.compile(
        r'__RequestVerificationToken[\'"]?\s*(?:value|:)\s*[\'"]([^\'"]+)[\'"]')

    JSON_COLLECTION_KEYS = ('data', 'Data', 'results', 'Results', 'tickets', 'Tickets')

    CITATION_KEYS = ('citationNumber', 'CitationNumber', 'ticketNumber',
                     'TicketNumber', 'number', 'Number')
    AMOUNT_KEYS = ('totalDue', 'TotalDue', 'total', 'Total', 'amountDue',
                   'AmountDue', 'balance', 'Balance')
    DATE_KEYS = ('issueDate', 'IssueDate', 'date', 'Date', 'violationDate',
                 'ViolationDate')
    STATUS_KEYS = ('status', 'Status')
    ADDRESS_KEYS = ('location', 'Location', 'address', 'Address')
    NOTE_KEYS = ('violationDescription', 'ViolationDescription', 'violation',
                 'Violation', 'description', 'Description')

    ROW_AMOUNT_REGEX = re.compile(r'\$?([\d,]+\.?\d*)')

    SINGLE_CITATION_REGEX = re.compile(
        r'(?:Citation|Ticket)\s*(?:#|Number)?[:\s]*([A-Z0-9\-]*\d[A-Z0-9\-]*)', re.IGNORECASE)
    SINGLE_AMOUNT_REGEX = re.compile(
        r'(?:Total|Amount)\s*(?:Due)?[:\s]*\$?([\d,]+\.?\d*)', re.IGNORECASE)
    SINGLE_DATE_REGEX = re.compile(
        r'(?:Issue|Violation)\s*Date[:\s]*([\d/\-]+)', re.IGNORECASE)
    SINGLE_ADDRESS_REGEX = re.compile(
        r'(?:Location|Address)[:\s]*([^\n<]+)', re.IGNORECASE)
    SINGLE_NOTE_REGEX = re.compile(
        r'(?:Violation|Description)[:\s]*([^\n<]+)', re.IGNORECASE)
    SINGLE_STATUS_REGEX = re.compile(r'Status[:\s]*([^\n<]+)', re.IGNORECASE)

    def __init__(self, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)

        self.verification_token: Optional[str] = None
        self._initialized = False
        self._init_lock = threading.Lock()

    def _find(self, plate: str, state: str) -> List[ViolationRecord]:
        self.initialize()

        records: List[ViolationRecord] = self.search_api(plate=plate, state=state)
        if records:
            return records

        return self.search_form(plate=plate, state=state)

    def initialize(self) -> None:
        """Load the portal once per instance and keep its anti-forgery token."""
        with self._init_lock:
            if self._initialized:
                return

            response = self._perform_request('GET', self.base_url)
            html: str = response.text

            token: Optional[str] = None

            token_match = self.TOKEN_REGEX.search(html)
            if token_match:
                token = token_match.group(1)

            token = html_utils.input_value(
                html_utils.parse_html(html), self.TOKEN_FIELD) or token

            self.verification_token = token
            self._initialized = True

            LOG.debug(f'{self.name} initialized, token {"found" if token else "missing"}')

    def search_api(self, plate: str, state: str) -> List[ViolationRecord]:
        body: Dict[str, str] = {
            'LicensePlate': plate,
            'PlateState': state,
            'State': STATE_NAMES.get(state, state),
            'SearchType': 'Plate',
        }

        headers: Dict[str, str] = {'Content-Type': 'application/json'}
        if self.verification_token:
            headers[self.TOKEN_HEADER] = self.verification_token

        for path in self.api_paths:
            url: str = f'{self.base_url}{path}'

            try:
                response = self._perform_request(
                    'POST', url, data=json.dumps(body), headers=headers)
                payload: Any = response.json()
            except Exception as exc:  # pylint: disable=broad-except
                LOG.debug(f'{self.name} api search at {url} failed: {exc}')
                continue

            records: List[ViolationRecord] = self.parse_api_payload(
                payload=payload, plate=plate, state=state)

            if records:
                return records

        return []

    def search_form(self, plate: str, state: str) -> List[ViolationRecord]:
        data: Dict[str, str] = {
            'SearchType': 'Plate',
            'LicensePlate': plate,
            'PlateNumber': plate,
            'PlateState': state,
            'State': STATE_NAMES.get(state, state),
        }

        if self.verification_token:
            data[self.TOKEN_FIELD] = self.verification_token

        for url in [f'{self.base_url}{path}' for path in self.form_paths] + [self.base_url]:
            try:
                response = self._perform_request('POST', url, data=data)
            except Exception as exc:  # pylint: disable=broad-except
                LOG.debug(f'{self.name} form search at {url} failed: {exc}')
                continue

            records: List[ViolationRecord] = self.parse_html_results(
                html=response.text, plate=plate, state=state)

            if records:
                return records

        return []

    def parse_api_payload(self, payload: Any, plate: str, state: str) -> List[ViolationRecord]:
        items: Sequence[Any]

        if isinstance(payload, list):
            items = payload
        elif isinstance(payload, dict):
            collection_key: Optional[str] = next(
                (key for key in self.JSON_COLLECTION_KEYS if key in payload), None)

            if collection_key is None:
                items = [payload]
            else:
                collection = payload[collection_key]
                items = collection if isinstance(collection, list) else []
        else:
            items = []

        records: List[ViolationRecord] = []

        for item in items:
            if not isinstance(item, dict):
                continue

            record: Optional[ViolationRecord] = self.map_json_item(
                item=item, plate=plate, state=state)

            if record:
                records.append(record)

        return records

    def map_json_item(self,
                      item: Dict[str, Any],
                      plate: str,
                      state: str) -> Optional[ViolationRecord]:
        citation_number: Optional[str] = _first_string(item, self.CITATION_KEYS)
        if not citation_number:
            return None

        amount_value: Any = next(
            (item[key] for key in self.AMOUNT_KEYS if item.get(key) is not None), None)
        status: Optional[str] = _first_string(item, self.STATUS_KEYS)

        issue_date = None
        for key in self.DATE_KEYS:
            if isinstance(item.get(key), str):
                issue_date = normalizer.parse_date(item[key])
                if issue_date:
                    break

        return self.build_record(
            plate=plate,
            state=state,
            citation_number=citation_number,
            amount=_amount_or_none(amount_value),
            status=status,
            issue_date=issue_date,
            address=_first_string(item, self.ADDRESS_KEYS),
            note=_first_string(item, self.NOTE_KEYS))

    def parse_html_results(self, html: str, plate: str, state: str) -> List[ViolationRecord]:
        records: List[ViolationRecord] = []

        for cells in html_utils.table_rows(html_utils.parse_html(html), skip_first_row=True):
            if len(cells) < 2:
                continue

            citation_number: str = cells[0].strip()
            if not citation_number or 'citation' in citation_number.lower():
                continue

            amount_match = self.ROW_AMOUNT_REGEX.search(cells[-1])

            records.append(self.build_record(
                plate=plate,
                state=state,
                citation_number=citation_number,
                amount=_amount_or_none(amount_match.group(1) if amount_match else None)))

        if records:
            return records

        single: Optional[ViolationRecord] = self.parse_single_citation(
            html=html, plate=plate, state=state)

        return [single] if single else []

    def parse_single_citation(self, html: str, plate: str, state: str) -> Optional[ViolationRecord]:
        citation_match = self.SINGLE_CITATION_REGEX.search(html or '')
        if not citation_match:
            return None

        def _group(regex) -> Optional[str]:
            match = regex.search(html)
            return match.group(1).strip() if match else None

        amount_text: Optional[str] = _group(self.SINGLE_AMOUNT_REGEX)

        return self.build_record(
            plate=plate,
            state=state,
            citation_number=citation_match.group(1).strip(),
            amount=_amount_or_none(amount_text),
            status=_group(self.SINGLE_STATUS_REGEX),
            issue_date=normalizer.parse_date(_group(self.SINGLE_DATE_REGEX)),
            address=_group(self.SINGLE_ADDRESS_REGEX),
            note=_group(self.SINGLE_NOTE_REGEX))

    def build_record(self,
                     plate: str,
                     state: str,
                     citation_number: str,
                     amount: Optional[Decimal] = None,
                     status: Optional[str] = None,
                     issue_date=None,
                     address: Optional[str] = None,
                     note: Optional[str] = None) -> ViolationRecord:
        raise NotImplementedError(
            'Subclassed finder must implement this method.')


def _amount_or_none(value: Any) -> Optional[Decimal]:
    """None when the portal gave no amount at all, so it is not read as paid."""
    if value is None or value == '':
        return None
    return normalizer.parse_amount(value)


def _first_string(item: Dict[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value:
            return value
    return None

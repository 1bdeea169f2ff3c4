import logging

from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from parking_violations import settings
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services.finders.base_finder import BaseFinder

LOG = logging.getLogger(__name__)


class SocrataFinder(BaseFinder):
    """Looks up violations in a Socrata open-data dataset.

    Subclasses name the dataset and its plate, state and issue date fields,
    and map one row into a ViolationRecord.
    """

    base_url: str = ''
    dataset: str = ''

    plate_field: str = 'plate'
    state_field: str = 'state'
    order_field: str = 'issue_date'

    DEFAULT_LIMIT = 1000
    PAGE_SIZE = 1000
    MAX_RECORDS = 10_000

    def __init__(self, timeout: Optional[float] = None, app_token: Optional[str] = None):
        super().__init__(timeout=timeout)

        self.app_token: Optional[str] = app_token or settings.SOCRATA_APP_TOKEN

    @property
    def endpoint(self) -> str:
        return f'{self.base_url}/{self.dataset}.json'

    def build_query_url(self, plate: str, state: str, limit: int, offset: int = 0) -> str:
        where: str = (
            f"upper({self.plate_field})='{_escape_soql(plate.upper())}' AND "
            f"upper({self.state_field})='{_escape_soql(state.upper())}'")

        params: Dict[str, Any] = {
            '$where': where,
            '$limit': limit,
            '$order': f'{self.order_field} DESC',
        }

        if offset > 0:
            params['$offset'] = offset

        return f'{self.endpoint}?{urlencode(params)}'

    def find_with_paging(self,
                         plate: str,
                         state: str,
                         limit: int = DEFAULT_LIMIT,
                         offset: int = 0) -> List[ViolationRecord]:
        rows: List[Dict[str, Any]] = self._fetch_rows(
            plate=plate, state=state, limit=limit, offset=offset)

        return self._map_rows(rows)

    def find_all(self,
                 plate: str,
                 state: str,
                 max_records: int = MAX_RECORDS) -> List[ViolationRecord]:
        """Page through the dataset until a short page or max_records."""
        records: List[ViolationRecord] = []
        offset: int = 0

        while offset < max_records:
            limit: int = min(self.PAGE_SIZE, max_records - offset)

            rows: List[Dict[str, Any]] = self._fetch_rows(
                plate=plate, state=state, limit=limit, offset=offset)

            records.extend(self._map_rows(rows))

            if len(rows) < limit:
                break

            offset += limit

        return records

    def map_record(self, row: Dict[str, Any]) -> ViolationRecord:
        raise NotImplementedError(
            'Subclassed finder must implement this method.')

    def _find(self, plate: str, state: str) -> List[ViolationRecord]:
        return self.find_with_paging(plate=plate, state=state)

    def _fetch_rows(self, plate: str, state: str, limit: int, offset: int) -> List[Dict[str, Any]]:
        url: str = self.build_query_url(
            plate=plate, state=state, limit=limit, offset=offset)

        headers: Dict[str, str] = {'Accept': 'application/json'}
        if self.app_token:
            headers['X-App-Token'] = self.app_token

        LOG.debug(f'{self.name} querying {url}')

        response = self._perform_request('GET', url, headers=headers)

        rows = response.json()

        return rows if isinstance(rows, list) else []

    def _map_rows(self, rows: List[Dict[str, Any]]) -> List[ViolationRecord]:
        return [self.map_record(row) for row in rows]


def _escape_soql(value: str) -> str:
    return value.replace("'", "''")

import logging
import requests
import requests_futures.sessions
import threading

from requests.adapters import HTTPAdapter
from typing import Any, Callable, Dict, List, Optional
from urllib3.util.retry import Retry

from parking_violations import settings
from parking_violations.constants.finders import NATIONWIDE_STATE
from parking_violations.models.finder_error import FinderError
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services.constants.exceptions import \
    APIFailureException
from parking_violations.utils import string_utils

LOG = logging.getLogger(__name__)

ErrorListener = Callable[[FinderError], None]


class BaseFinder:
    """A jurisdiction's violation lookup.

    `find` never raises: any failure while looking up a plate is turned into
    a FinderError handed to every registered listener, and the lookup
    returns no records. An instance owns one http session for its whole
    lifetime, so cookies and tokens may be reused across lookups.
    """

    name: str = ''
    link: str = ''
    state: str = NATIONWIDE_STATE
    provider: int = 0

    def __init__(self, timeout: Optional[float] = None):
        self.timeout: float = timeout or settings.FINDER_TIMEOUT_SECONDS

        # Set up retry ability
        s_req = requests_futures.sessions.FuturesSession(
            max_workers=settings.FINDER_HTTP_WORKERS)

        retries = Retry(total=settings.FINDER_MAX_RETRIES,
                        backoff_factor=0.1,
                        status_forcelist=[403, 500, 502, 503, 504],
                        raise_on_status=False)

        s_req.mount('https://', HTTPAdapter(max_retries=retries))
        s_req.mount('http://', HTTPAdapter(max_retries=retries))
        s_req.headers.update({'User-Agent': settings.PORTAL_USER_AGENT})

        self.api = s_req

        self._error_listeners: List[ErrorListener] = []
        self._listener_lock = threading.Lock()

    def add_error_listener(self, listener: ErrorListener) -> None:
        with self._listener_lock:
            self._error_listeners.append(listener)

    def remove_error_listener(self, listener: ErrorListener) -> None:
        with self._listener_lock:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)

    def find(self, plate: Optional[str], state: Optional[str]) -> List[ViolationRecord]:
        normalized_plate: str = string_utils.normalize_plate(plate)
        normalized_state: str = string_utils.normalize_state(state)

        if not normalized_plate:
            return []

        try:
            records: List[ViolationRecord] = self._find(
                plate=normalized_plate, state=normalized_state)

            LOG.debug(
                f'{self.name} found {len(records)} violation(s) for '
                f'{normalized_state}:{normalized_plate}')

            return records

        except requests.exceptions.Timeout as exc:
            self._on_error(normalized_plate, normalized_state,
                           'Request timed out', exc)
        except (requests.exceptions.RequestException, APIFailureException) as exc:
            self._on_error(normalized_plate, normalized_state,
                           f'HTTP request failed: {exc}', exc)
        except Exception as exc:  # pylint: disable=broad-except
            self._on_error(normalized_plate, normalized_state,
                           f'Unexpected error: {exc}', exc)

        return []

    def close(self) -> None:
        self.api.close()

    def _find(self, plate: str, state: str) -> List[ViolationRecord]:
        raise NotImplementedError(
            'Subclassed finder must implement this method.')

    def _on_error(self,
                  plate: str,
                  state: str,
                  message: str,
                  exception: Optional[BaseException] = None) -> None:
        error = FinderError(finder_name=self.name,
                            plate=plate,
                            state=state,
                            message=message,
                            exception=exception)

        LOG.warning(f'{self.name} failed for {state}:{plate}: {message}')

        with self._listener_lock:
            listeners = list(self._error_listeners)

        for listener in listeners:
            try:
                listener(error)
            except Exception as exc:  # pylint: disable=broad-except
                LOG.error(f'error listener for {self.name} raised: {exc}')

    def _perform_request(self, method: str, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault('timeout', self.timeout)

        future = self.api.request(method, url, **kwargs)

        result: requests.Response = future.result()

        if result.status_code in range(200, 300):
            return result
        elif result.status_code in range(300, 400):
            raise APIFailureException(
                f'redirect error when accessing {url}')
        elif result.status_code in range(400, 500):
            raise APIFailureException(
                f'user error when accessing {url}')
        elif result.status_code in range(500, 600):
            raise APIFailureException(
                f'server error when accessing {url}')
        else:
            raise APIFailureException(
                f'unknown error when accessing {url}')

    def describe(self) -> Dict[str, Any]:
        return {'name': self.name,
                'link': self.link,
                'state': self.state,
                'provider': self.provider,
                'className': type(self).__name__}

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.name} ({self.state})>'

import logging
import threading

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from parking_violations.constants.finders import NATIONWIDE_STATE
from parking_violations.services.finders.base_finder import BaseFinder
from parking_violations.services.finders.jurisdictions.los_angeles import \
    LosAngelesParkingCitationsFinder
from parking_violations.services.finders.jurisdictions.nyc import \
    NycOpenParkingAndCameraViolationsFinder
from parking_violations.services.finders.jurisdictions.philadelphia import \
    PhiladelphiaParkingAuthorityFinder
from parking_violations.services.finders.jurisdictions.san_francisco import \
    SanFranciscoCitationsFinder
from parking_violations.utils import string_utils

LOG = logging.getLogger(__name__)

# every jurisdiction this service can look up
FINDER_CLASSES = (
    NycOpenParkingAndCameraViolationsFinder,
    LosAngelesParkingCitationsFinder,
    SanFranciscoCitationsFinder,
    PhiladelphiaParkingAuthorityFinder,
)

_DEFAULT_REGISTRY = None
_DEFAULT_REGISTRY_LOCK = threading.Lock()


class FinderRegistry:
    """Fixed set of finders, matched to requests by state.

    A finder whose state is the nationwide sentinel matches every request.
    The set never changes after construction, so lookups need no locking.
    """

    def __init__(self, finders: Iterable[BaseFinder]):
        self._finders: Tuple[BaseFinder, ...] = tuple(finders)

    def list_finders(self) -> List[BaseFinder]:
        return list(self._finders)

    def finders_for_states(self, states: Iterable[Optional[str]]) -> List[BaseFinder]:
        requested = {string_utils.normalize_state(state) for state in states}
        requested.discard('')

        return [finder for finder in self._finders
                if self._matches(finder, requested)]

    def finders_for_state(self, state: Optional[str]) -> List[BaseFinder]:
        return self.finders_for_states([state])

    def describe(self, finders: Optional[Sequence[BaseFinder]] = None) -> List[Dict[str, Any]]:
        return [finder.describe()
                for finder in (self._finders if finders is None else finders)]

    def close(self) -> None:
        for finder in self._finders:
            try:
                finder.close()
            except Exception as exc:  # pylint: disable=broad-except
                LOG.error(f'could not close {finder.name}: {exc}')

    def __len__(self) -> int:
        return len(self._finders)

    @staticmethod
    def _matches(finder: BaseFinder, requested: set) -> bool:
        finder_state: str = string_utils.normalize_state(finder.state)
        return finder_state == NATIONWIDE_STATE or finder_state in requested


def default_registry() -> FinderRegistry:
    global _DEFAULT_REGISTRY  # pylint: disable=global-statement
    with _DEFAULT_REGISTRY_LOCK:
        if _DEFAULT_REGISTRY is None:
            _DEFAULT_REGISTRY = FinderRegistry(
                finder_class() for finder_class in FINDER_CLASSES)

            LOG.info(f'registered {len(_DEFAULT_REGISTRY)} finders')

    return _DEFAULT_REGISTRY

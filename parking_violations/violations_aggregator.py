import concurrent.futures
import logging

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from parking_violations import settings
from parking_violations.constants.finders import NATIONWIDE_STATE
from parking_violations.models.persistence_result import PersistenceResult
from parking_violations.models.response.aggregation_response import AggregationResponse
from parking_violations.models.response.company_aggregation_response import \
    CompanyAggregationResponse
from parking_violations.models.vehicle import Vehicle
from parking_violations.models.violation_query import ViolationQuery
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services.constants.exceptions import ValidationException
from parking_violations.services.finder_registry import FinderRegistry, default_registry
from parking_violations.services.finders.base_finder import BaseFinder
from parking_violations.services.progress_tracking_service import ProgressTrackingService
from parking_violations.services.violation_persistence_service import \
    ViolationPersistenceService
from parking_violations.utils import string_utils

LOG = logging.getLogger(__name__)

FinderCall = Tuple[ViolationQuery, BaseFinder]


class ViolationsAggregator:
    """Fans plate lookups out to every matching finder and merges the results.

    Each (plate, finder) pair runs on a bounded thread pool. A finder never
    raises, so one jurisdiction being down only makes the result less
    complete. With a deadline set, pairs still running when it passes are
    abandoned and contribute nothing.
    """

    DATE_FORMAT = '%Y-%m-%d'

    def __init__(self,
                 registry: Optional[FinderRegistry] = None,
                 persistence_service: Optional[ViolationPersistenceService] = None,
                 progress_tracking_service: Optional[ProgressTrackingService] = None,
                 max_workers: Optional[int] = None,
                 deadline_seconds: Optional[float] = None):
        self.registry = registry or default_registry()
        self.persistence_service = persistence_service or ViolationPersistenceService()
        self.progress_tracking_service = progress_tracking_service or ProgressTrackingService()

        self.max_workers: int = max_workers or settings.AGGREGATION_MAX_WORKERS
        self.deadline_seconds: Optional[float] = (
            deadline_seconds if deadline_seconds is not None
            else settings.AGGREGATION_DEADLINE_SECONDS)

    def aggregate(self,
                  queries: Sequence[ViolationQuery],
                  states: Optional[Iterable[str]] = None,
                  requestor: Optional[str] = None,
                  request_id: Optional[str] = None) -> AggregationResponse:
        """Look up every plate against the finders for the requested states.

        States default to the queries' own states. Raises
        ValidationException before any lookup when there is nothing to look
        up or nowhere to look.
        """
        progress = self.progress_tracking_service
        request_id = request_id or progress.create_progress_tracker()

        try:
            progress.update_progress(request_id, 0, 'Validating request')

            if not queries:
                raise ValidationException('At least one car is required')

            normalized: List[ViolationQuery] = [
                ViolationQuery.create(query.plate, query.state) for query in queries]

            valid_queries: List[ViolationQuery] = [
                query for query in normalized if query.has_plate()]

            if not valid_queries:
                raise ValidationException(
                    'At least one car with a license plate is required')

            requested_states: Set[str] = self._normalize_states(states) or {
                query.state for query in valid_queries if query.state}

            if not requested_states:
                raise ValidationException('At least one state must be specified')

            LOG.info(f'searching violations for {len(valid_queries)} plate(s) '
                     f'in states: {", ".join(sorted(requested_states))}')

            progress.update_progress(request_id, 5, 'Loading finders')

            finders: List[BaseFinder] = self.registry.finders_for_states(requested_states)

            LOG.info(f'found {len(finders)} relevant finder(s)')

            calls: List[FinderCall] = [
                (query, finder) for query in valid_queries for finder in finders]

            progress.update_progress(request_id, 10, 'Starting violation search')

            violations: List[ViolationRecord] = self._fan_out(
                calls=calls,
                request_id=request_id,
                progress_start=10,
                progress_span=80)

            LOG.info(f'total violations found: {len(violations)}')

            progress.update_progress(request_id, 95, 'Saving request record')

            self.persistence_service.record_run(
                company_id=None,
                vehicle_count=len(valid_queries),
                requests_count=len(calls),
                finders_count=len(finders),
                violations_found=len(violations),
                requestor=requestor)

            progress.update_progress(request_id, 100, 'Completed')

            return AggregationResponse(violations=violations, request_id=request_id)

        except Exception as exc:
            progress.mark_failed(request_id, str(exc))
            raise

    def aggregate_company(self,
                          company_id: str,
                          start_date: Union[str, date, None],
                          end_date: Union[str, date, None],
                          states: Optional[Iterable[str]],
                          requestor: Optional[str] = None,
                          request_id: Optional[str] = None,
                          persist: bool = True) -> CompanyAggregationResponse:
        """Look up every vehicle of a company and store the violations dated
        within [start_date, end_date]. Undated violations are kept."""
        progress = self.progress_tracking_service
        request_id = request_id or progress.create_progress_tracker(company_id)

        try:
            progress.update_progress(request_id, 0, 'Validating request')

            range_start: date = self.parse_request_date(start_date, 'StartDate')
            range_end: date = self.parse_request_date(end_date, 'EndDate')

            if range_start > range_end:
                raise ValidationException('StartDate must be before or equal to EndDate')

            requested_states: Set[str] = self._normalize_states(states)
            if not requested_states:
                raise ValidationException('At least one state must be specified')

            LOG.info(f'searching violations for company {company_id} from '
                     f'{range_start:%Y-%m-%d} to {range_end:%Y-%m-%d} in states: '
                     f'{", ".join(sorted(requested_states))}')

            progress.update_progress(request_id, 5, 'Loading vehicles from database')

            vehicles: List[Vehicle] = self.persistence_service.vehicles_for_company(company_id)

            if not vehicles:
                LOG.warning(f'no vehicles found for company {company_id}')
                progress.update_progress(request_id, 100, 'Completed: No vehicles found')

                return CompanyAggregationResponse(
                    company_id=company_id,
                    message='No vehicles found for this company',
                    request_id=request_id)

            progress.update_progress(request_id, 10, 'Loading finders')

            finders: List[BaseFinder] = self.registry.finders_for_states(requested_states)

            calls: List[FinderCall] = self._calls_for_vehicles(vehicles, finders)

            progress.update_progress(request_id, 15, 'Starting violation search')

            violations: List[ViolationRecord] = [
                record for record in self._fan_out(calls=calls,
                                                   request_id=request_id,
                                                   progress_start=15,
                                                   progress_span=55)
                if self.is_within_range(record, range_start, range_end)]

            LOG.info(f'company {company_id}: {len(violations)} violation(s) within range')

            result = PersistenceResult()

            if persist:
                progress.update_progress(
                    request_id, 75, f'Saving {len(violations)} violations to database')

                result = self.persistence_service.upsert_violations(company_id, violations)

            progress.update_progress(request_id, 95, 'Saving request record')

            self.persistence_service.record_run(
                company_id=company_id,
                vehicle_count=len(vehicles),
                requests_count=len(calls),
                finders_count=len(finders),
                violations_found=len(violations),
                requestor=requestor)

            progress.update_progress(request_id, 100, 'Completed')

            return CompanyAggregationResponse(
                company_id=company_id,
                vehicles_processed=len(vehicles),
                violations_found=len(violations),
                violations_saved=result.created,
                violations_updated=result.updated,
                violations_skipped=result.skipped,
                message=(f'Processed {len(vehicles)} vehicles, found {len(violations)} '
                         f'violations ({result.created} new, {result.updated} updated)'),
                request_id=request_id)

        except Exception as exc:
            progress.mark_failed(request_id, str(exc))
            raise

    def parse_request_date(self, value: Union[str, date, None], field_name: str) -> date:
        if isinstance(value, datetime):
            return value.date()

        if isinstance(value, date):
            return value

        try:
            return datetime.strptime((value or '').strip(), self.DATE_FORMAT).date()
        except ValueError:
            raise ValidationException(
                f'Invalid {field_name} format. Expected YYYY-MM-DD')

    @staticmethod
    def is_within_range(record: ViolationRecord, range_start: date, range_end: date) -> bool:
        effective_date: Optional[datetime] = record.effective_date

        if effective_date is None:
            return True

        return range_start <= effective_date.date() <= range_end

    def _calls_for_vehicles(self,
                            vehicles: Sequence[Vehicle],
                            finders: Sequence[BaseFinder]) -> List[FinderCall]:
        calls: List[FinderCall] = []

        for vehicle in vehicles:
            query = ViolationQuery.create(vehicle.license_plate, vehicle.state)

            if not query.has_plate():
                continue

            vehicle_finders: List[BaseFinder] = [
                finder for finder in finders
                if string_utils.normalize_state(finder.state) in (query.state, NATIONWIDE_STATE)]

            LOG.debug(f'{query.state or "no state"}:{query.plate} '
                      f'will use {len(vehicle_finders)} finder(s)')

            calls.extend((query, finder) for finder in vehicle_finders)

        return calls

    def _fan_out(self,
                 calls: Sequence[FinderCall],
                 request_id: str,
                 progress_start: int,
                 progress_span: int) -> List[ViolationRecord]:
        if not calls:
            return []

        violations: List[ViolationRecord] = []

        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(calls)),
                                      thread_name_prefix='finder')

        futures: Dict[Future, FinderCall] = {
            executor.submit(self._invoke, query, finder): (query, finder)
            for query, finder in calls}

        collected: Set[Future] = set()

        try:
            for future in as_completed(futures, timeout=self.deadline_seconds):
                collected.add(future)
                violations.extend(future.result())

                done: int = len(collected)
                self.progress_tracking_service.update_progress(
                    request_id,
                    progress_start + int(done / len(calls) * progress_span),
                    f'Processed {done}/{len(calls)} lookups')

        except concurrent.futures.TimeoutError:
            for future, (query, finder) in futures.items():
                if future in collected:
                    continue

                if future.done():
                    violations.extend(future.result())
                    continue

                future.cancel()
                LOG.warning(f'{finder.name} did not finish for {query.state}:{query.plate} '
                            f'within {self.deadline_seconds}s, abandoning it')

        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return violations

    def _invoke(self, query: ViolationQuery, finder: BaseFinder) -> List[ViolationRecord]:
        # nationwide finders cannot stand in for a missing state
        state: str = query.state or (
            finder.state if finder.state != NATIONWIDE_STATE else '')

        try:
            records: List[ViolationRecord] = finder.find(query.plate, state)
        except Exception as exc:  # pylint: disable=broad-except
            LOG.warning(f'error searching with finder {finder.name} '
                        f'for plate {query.plate}: {exc}')
            return []

        if records:
            LOG.info(f'found {len(records)} violation(s) for {query.plate} using {finder.name}')

        return records or []

    @staticmethod
    def _normalize_states(states: Optional[Iterable[str]]) -> Set[str]:
        normalized: Set[str] = {
            string_utils.normalize_state(state) for state in (states or [])}
        normalized.discard('')
        return normalized

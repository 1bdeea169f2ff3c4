import ddt
import mock
import threading
import unittest

from datetime import date, datetime

from parking_violations.models.persistence_result import PersistenceResult
from parking_violations.models.vehicle import Vehicle
from parking_violations.models.violation_query import ViolationQuery
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.services.constants.exceptions import ValidationException
from parking_violations.services.finder_registry import FinderRegistry
from parking_violations.services.finders.base_finder import BaseFinder
from parking_violations.services.progress_tracking_service import \
    ProgressTrackingService
from parking_violations.services.violation_persistence_service import \
    ViolationPersistenceService
from parking_violations.violations_aggregator import ViolationsAggregator


class StubFinder(BaseFinder):
    """Serves canned records by plate; can fail or hold until released."""

    def __init__(self, name, state, records=None, exception=None, gate=None):
        super().__init__()
        self.name = name
        self.state = state
        self.records = records or []
        self.exception = exception
        self.gate = gate
        self.calls = []

    def _find(self, plate, state):
        self.calls.append((plate, state))

        if self.gate:
            self.gate.wait(5)

        if self.exception:
            raise self.exception

        return [record for record in self.records if record.tag == plate]


def _record(citation_number, tag, issue_date=None):
    return ViolationRecord(citation_number=citation_number,
                           tag=tag,
                           amount=65,
                           issue_date=issue_date)


@ddt.ddt
class TestViolationsAggregator(unittest.TestCase):

    def setUp(self):
        self.persistence_service = mock.MagicMock(spec=ViolationPersistenceService)
        self.persistence_service.upsert_violations.return_value = PersistenceResult(
            created=1, updated=0, skipped=0)

        self.progress_tracking_service = ProgressTrackingService()

        self.gates = []

    def tearDown(self):
        for gate in self.gates:
            gate.set()

    def _aggregator(self, finders, **kwargs):
        return ViolationsAggregator(
            registry=FinderRegistry(finders),
            persistence_service=self.persistence_service,
            progress_tracking_service=self.progress_tracking_service,
            **kwargs)

    def test_aggregate_only_uses_finders_for_requested_states(self):
        new_york = StubFinder('NY finder', 'NY', records=[_record('1', 'ABC1234')])
        california = StubFinder('CA finder', 'CA', records=[_record('2', 'ABC1234')])

        aggregator = self._aggregator([new_york, california])

        response = aggregator.aggregate(
            queries=[ViolationQuery.create('abc1234', 'ny')],
            states=['NY'],
            requestor='Bearer Token')

        self.assertEqual(response.total_count, 1)
        self.assertEqual(response.violations[0].citation_number, '1')
        self.assertEqual(california.calls, [])
        self.assertEqual(new_york.calls, [('ABC1234', 'NY')])

        self.persistence_service.record_run.assert_called_once_with(
            company_id=None,
            vehicle_count=1,
            requests_count=1,
            finders_count=1,
            violations_found=1,
            requestor='Bearer Token')

        info = self.progress_tracking_service.get_progress(response.request_id)
        self.assertEqual(info.progress, 100)
        self.assertEqual(info.status, 'Completed')
        self.assertFalse(info.is_task_running)

        self.assertEqual(response.to_dict()['totalCount'], 1)

    def test_aggregate_defaults_states_to_the_cars_states(self):
        new_york = StubFinder('NY finder', 'NY', records=[_record('1', 'ABC1234')])
        california = StubFinder('CA finder', 'CA', records=[_record('2', 'XYZ9876')])
        nationwide = StubFinder('Nationwide finder', 'USA')

        aggregator = self._aggregator([new_york, california, nationwide])

        response = aggregator.aggregate(queries=[
            ViolationQuery.create('ABC1234', 'NY'),
            ViolationQuery.create('XYZ9876', 'CA'),
            ViolationQuery.create('', 'TX'),
        ])

        self.assertEqual(sorted(record.citation_number for record in response.violations),
                         ['1', '2'])
        self.assertEqual(len(nationwide.calls), 2)

        _, kwargs = self.persistence_service.record_run.call_args
        self.assertEqual(kwargs['vehicle_count'], 2)
        self.assertEqual(kwargs['requests_count'], 6)
        self.assertEqual(kwargs['finders_count'], 3)

    def test_failing_finder_does_not_affect_the_others(self):
        errors = []

        healthy = StubFinder('Healthy', 'NY', records=[_record('1', 'ABC1234')])
        nationwide = StubFinder('Nationwide', 'USA', records=[_record('2', 'ABC1234')])
        failing = StubFinder('Failing', 'NY', exception=RuntimeError('portal is down'))
        failing.add_error_listener(errors.append)

        aggregator = self._aggregator([healthy, failing, nationwide])

        response = aggregator.aggregate(
            queries=[ViolationQuery.create('ABC1234', 'NY')], states=['NY'])

        self.assertEqual(sorted(record.citation_number for record in response.violations),
                         ['1', '2'])

        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].finder_name, 'Failing')
        self.assertEqual(errors[0].plate, 'ABC1234')
        self.assertEqual(errors[0].state, 'NY')
        self.assertEqual(errors[0].message, 'Unexpected error: portal is down')

    def test_finder_raising_out_of_find_is_contained(self):
        healthy = StubFinder('Healthy', 'NY', records=[_record('1', 'ABC1234')])
        broken = StubFinder('Broken', 'NY')

        aggregator = self._aggregator([healthy, broken])

        with mock.patch.object(broken, 'find', side_effect=RuntimeError('boom')):
            response = aggregator.aggregate(
                queries=[ViolationQuery.create('ABC1234', 'NY')])

        self.assertEqual(response.total_count, 1)

    def test_duplicates_across_finders_are_kept(self):
        first = StubFinder('First', 'NY', records=[_record('1', 'ABC1234')])
        second = StubFinder('Second', 'USA', records=[_record('1', 'ABC1234')])

        response = self._aggregator([first, second]).aggregate(
            queries=[ViolationQuery.create('ABC1234', 'NY')])

        self.assertEqual(response.total_count, 2)

    @ddt.data(
        ([], None, 'At least one car is required'),
        ([ViolationQuery.create('  ', 'NY')], None,
         'At least one car with a license plate is required'),
        ([ViolationQuery.create('ABC1234', '')], None,
         'At least one state must be specified'),
        ([ViolationQuery.create('ABC1234', '')], ['', ' '],
         'At least one state must be specified'),
    )
    @ddt.unpack
    def test_aggregate_validation(self, queries, states, message):
        finder = StubFinder('NY finder', 'NY')
        aggregator = self._aggregator([finder])

        with self.assertRaisesRegex(ValidationException, message):
            aggregator.aggregate(queries=queries, states=states, request_id='request-1')

        self.assertEqual(finder.calls, [])
        self.persistence_service.record_run.assert_not_called()

        info = self.progress_tracking_service.get_progress('request-1')
        self.assertEqual(info.error, message)
        self.assertFalse(info.is_task_running)

    def test_aggregate_without_matching_finders(self):
        aggregator = self._aggregator([StubFinder('CA finder', 'CA')])

        response = aggregator.aggregate(queries=[ViolationQuery.create('ABC1234', 'NY')])

        self.assertEqual(response.total_count, 0)
        self.persistence_service.record_run.assert_called_once()

    def test_deadline_abandons_only_unfinished_lookups(self):
        gate = threading.Event()
        self.gates.append(gate)

        fast = StubFinder('Fast', 'NY', records=[_record('1', 'ABC1234')])
        slow = StubFinder('Slow', 'NY', records=[_record('2', 'ABC1234')], gate=gate)

        aggregator = self._aggregator([fast, slow], deadline_seconds=0.2)

        response = aggregator.aggregate(queries=[ViolationQuery.create('ABC1234', 'NY')])

        self.assertEqual([record.citation_number for record in response.violations], ['1'])

    def test_bounded_pool_runs_every_lookup(self):
        finders = [StubFinder(f'Finder {index}', 'NY', records=[_record(str(index), 'ABC1234')])
                   for index in range(6)]

        aggregator = self._aggregator(finders, max_workers=2)

        response = aggregator.aggregate(queries=[ViolationQuery.create('ABC1234', 'NY')])

        self.assertEqual(sorted(record.citation_number for record in response.violations),
                         [str(index) for index in range(6)])

    @ddt.data(
        ('NY', 'NY', 'NY'),
        ('', 'NY', 'NY'),
        ('', 'USA', ''),
        ('CA', 'USA', 'CA'),
    )
    @ddt.unpack
    def test_invoke_passes_state(self, query_state, finder_state, expected_state):
        finder = StubFinder('Finder', finder_state)

        self._aggregator([finder])._invoke(ViolationQuery('ABC1234', query_state), finder)

        self.assertEqual(finder.calls, [('ABC1234', expected_state)])

    def test_aggregate_company_filters_by_date_and_saves(self):
        self.persistence_service.vehicles_for_company.return_value = [
            Vehicle(id='v1', company_id='company-1', license_plate='ABC1234', state='NY'),
            Vehicle(id='v2', company_id='company-1', license_plate='XYZ9876', state='CA'),
        ]

        new_york = StubFinder('NY finder', 'NY', records=[
            _record('in-range', 'ABC1234', datetime(2024, 3, 5, 8, 30)),
            _record('too-old', 'ABC1234', datetime(2024, 1, 5)),
            # the NY finder is never asked about the CA vehicle
            _record('wrong-state', 'XYZ9876', datetime(2024, 3, 5)),
        ])
        california = StubFinder('CA finder', 'CA')

        aggregator = self._aggregator([new_york, california])

        response = aggregator.aggregate_company(
            company_id='company-1',
            start_date='2024-03-01',
            end_date='2024-03-31',
            states=['NY', 'CA'],
            requestor='Job')

        self.assertEqual(response.vehicles_processed, 2)
        self.assertEqual(response.violations_found, 1)
        self.assertEqual(response.violations_saved, 1)
        self.assertEqual(response.message,
                         'Processed 2 vehicles, found 1 violations (1 new, 0 updated)')

        self.assertEqual(new_york.calls, [('ABC1234', 'NY')])
        self.assertEqual(california.calls, [('XYZ9876', 'CA')])

        company_id, saved = self.persistence_service.upsert_violations.call_args[0]
        self.assertEqual(company_id, 'company-1')
        self.assertEqual([record.citation_number for record in saved], ['in-range'])

        self.persistence_service.record_run.assert_called_once_with(
            company_id='company-1',
            vehicle_count=2,
            requests_count=2,
            finders_count=2,
            violations_found=1,
            requestor='Job')

        self.assertEqual(response.to_dict()['violationsFound'], 1)

    def test_aggregate_company_dry_run_does_not_save(self):
        self.persistence_service.vehicles_for_company.return_value = [
            Vehicle(id='v1', company_id='company-1', license_plate='ABC1234', state='NY')]

        finder = StubFinder('NY finder', 'NY', records=[_record('undated', 'ABC1234')])

        response = self._aggregator([finder]).aggregate_company(
            company_id='company-1',
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
            states=['NY'],
            persist=False)

        self.assertEqual(response.violations_found, 1)
        self.assertEqual(response.violations_saved, 0)
        self.persistence_service.upsert_violations.assert_not_called()

    def test_aggregate_company_without_vehicles(self):
        self.persistence_service.vehicles_for_company.return_value = []

        response = self._aggregator([StubFinder('NY finder', 'NY')]).aggregate_company(
            company_id='company-1',
            start_date='2024-03-01',
            end_date='2024-03-31',
            states=['NY'])

        self.assertEqual(response.message, 'No vehicles found for this company')
        self.assertEqual(response.vehicles_processed, 0)
        self.persistence_service.record_run.assert_not_called()

        info = self.progress_tracking_service.get_progress(response.request_id)
        self.assertEqual(info.progress, 100)
        self.assertEqual(info.company_id, 'company-1')

    @ddt.data(
        ('03/01/2024', '2024-03-31', ['NY'], 'Invalid StartDate format. Expected YYYY-MM-DD'),
        ('2024-03-01', None, ['NY'], 'Invalid EndDate format. Expected YYYY-MM-DD'),
        ('2024-04-01', '2024-03-31', ['NY'], 'StartDate must be before or equal to EndDate'),
        ('2024-03-01', '2024-03-31', [], 'At least one state must be specified'),
    )
    @ddt.unpack
    def test_aggregate_company_validation(self, start_date, end_date, states, message):
        aggregator = self._aggregator([StubFinder('NY finder', 'NY')])

        with self.assertRaises(ValidationException) as context:
            aggregator.aggregate_company(company_id='company-1',
                                         start_date=start_date,
                                         end_date=end_date,
                                         states=states)

        self.assertEqual(str(context.exception), message)
        self.persistence_service.vehicles_for_company.assert_not_called()

    @ddt.data(
        (None, True),
        (datetime(2024, 3, 1), True),
        (datetime(2024, 3, 31, 23, 59), True),
        (datetime(2024, 2, 29, 23, 59), False),
        (datetime(2024, 4, 1), False),
    )
    @ddt.unpack
    def test_is_within_range(self, issue_date, expected):
        record = ViolationRecord(citation_number='1', issue_date=issue_date)

        self.assertEqual(
            ViolationsAggregator.is_within_range(record, date(2024, 3, 1), date(2024, 3, 31)),
            expected)

    def test_is_within_range_falls_back_to_start_date(self):
        record = ViolationRecord(citation_number='1', start_date=datetime(2024, 2, 1))

        self.assertFalse(
            ViolationsAggregator.is_within_range(record, date(2024, 3, 1), date(2024, 3, 31)))

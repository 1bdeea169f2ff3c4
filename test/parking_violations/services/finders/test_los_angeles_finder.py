import ddt
import mock
import unittest

from datetime import datetime
from decimal import Decimal

from parking_violations.constants.payment_statuses import PaymentStatus, PortalStatus
from parking_violations.models.portal_check import PortalCheck
from parking_violations.services.finders.jurisdictions.los_angeles import \
    LosAngelesParkingCitationsFinder


def _row(**overrides):
    row = {
        'ticket_number': '4350012345',
        'issue_date': '2024-01-15T00:00:00.000',
        'issue_time': '1430',
        'plate': '7ABC123',
        'state': 'CA',
        'make': 'TOYT',
        'violation_code': '80.69BS',
        'violation_description': 'NO PARK/STREET CLEAN',
        'fine_amount': '73',
        'location': '1200 W 7TH ST',
        'agency': '54',
    }
    row.update(overrides)
    return row


@ddt.ddt
class TestLosAngelesParkingCitationsFinder(unittest.TestCase):

    def setUp(self):
        self.finder = LosAngelesParkingCitationsFinder(request_delay=0)

    @ddt.data(
        ('<p>Citation cannot be found</p>', PortalStatus.NOT_FOUND, None),
        ('<p>This citation has been paid</p>', PortalStatus.PAID, Decimal('0.00')),
        ('<p>Balance: $0.00</p>', PortalStatus.PAID, Decimal('0.00')),
        ('<p>Amount due: $0</p>', PortalStatus.PAID, Decimal('0.00')),
        ('<p>Balance: $0.50</p>', PortalStatus.UNPAID, Decimal('0.50')),
        ('<p>Amount Due: $ 0.05</p>', PortalStatus.UNPAID, Decimal('0.05')),
        ('<p>Status: DISMISSED</p>', PortalStatus.DISMISSED, Decimal('0.00')),
        ('<p>Under review by hearing officer</p>', PortalStatus.DISPUTED, None),
        ('<p>Amount Due: $ 1,073.00</p>', PortalStatus.UNPAID, Decimal('1073.00')),
        ('<p>Total owed</p><p>$0</p>', PortalStatus.PAID, Decimal('0.00')),
        ('<p>4350012345 LATE FEE APPLIED</p>', PortalStatus.UNPAID, None),
        ('<p>Please try again later</p>', PortalStatus.UNKNOWN, None),
    )
    @ddt.unpack
    def test_parse_portal_status(self, html, status, amount_due):
        self.assertEqual(self.finder.parse_portal_status(html, '4350012345'),
                         PortalCheck(status=status, amount_due=amount_due))

    @ddt.data(
        (PortalStatus.PAID, Decimal('0'), PaymentStatus.PAID),
        (PortalStatus.DISMISSED, Decimal('0'), PaymentStatus.PAID),
        (PortalStatus.DISPUTED, Decimal('73'), PaymentStatus.DISPUTED),
        (PortalStatus.UNPAID, Decimal('73'), PaymentStatus.NEW),
        (PortalStatus.NOT_FOUND, Decimal('73'), PaymentStatus.NEW),
        (PortalStatus.NOT_FOUND, Decimal('0'), PaymentStatus.PAID),
        (PortalStatus.UNKNOWN, Decimal('73'), PaymentStatus.NEW),
    )
    @ddt.unpack
    def test_payment_status_for(self, portal_status, amount_due, expected):
        self.assertEqual(
            LosAngelesParkingCitationsFinder.payment_status_for(portal_status, amount_due),
            expected)

    def test_merge_overlays_portal_status(self):
        record = self.finder.merge(
            row=_row(),
            check=PortalCheck(status=PortalStatus.PAID, amount_due=Decimal('0')),
            plate='7ABC123',
            state='CA')

        self.assertEqual(record.citation_number, '4350012345')
        self.assertEqual(record.notice_number, '4350012345')
        self.assertEqual(record.provider, 2)
        self.assertEqual(record.agency, '54')
        self.assertEqual(record.address, '1200 W 7TH ST, Los Angeles, CA')
        self.assertEqual(record.issue_date, datetime(2024, 1, 15, 14, 30))
        self.assertEqual(record.amount, Decimal('0.00'))
        self.assertEqual(record.payment_status, PaymentStatus.PAID)
        self.assertFalse(record.is_active)
        self.assertEqual(
            record.note,
            'Code: 80.69BS | Violation: NO PARK/STREET CLEAN | Vehicle: TOYT | Status: Paid')

    def test_merge_without_portal_status_keeps_open_data_fine(self):
        record = self.finder.merge(
            row=_row(location=None, street_name='MAIN ST', agency=None),
            check=PortalCheck(),
            plate='7ABC123',
            state='CA')

        self.assertEqual(record.amount, Decimal('73.00'))
        self.assertEqual(record.payment_status, PaymentStatus.NEW)
        self.assertEqual(record.address, 'MAIN ST, Los Angeles, CA')
        self.assertEqual(record.agency, 'LADOT')
        self.assertTrue(record.is_active)
        self.assertNotIn('Status', record.note)

    def test_merge_of_disputed_citation_is_not_active(self):
        record = self.finder.merge(
            row=_row(),
            check=PortalCheck(status=PortalStatus.DISPUTED),
            plate='7ABC123',
            state='CA')

        self.assertEqual(record.payment_status, PaymentStatus.DISPUTED)
        self.assertFalse(record.is_active)

    @mock.patch('parking_violations.services.finders.hybrid_finder.time.sleep')
    def test_find_checks_each_citation_on_the_portal(self, mocked_sleep):
        finder = LosAngelesParkingCitationsFinder(request_delay=0.2)

        rows = [_row(), _row(ticket_number='4350012346')]

        portal_pages = {
            '4350012345': '<p>Paid in full</p>',
            '4350012346': '<p>Amount due: $73.00</p>',
        }

        def perform_request(method, url, **kwargs):
            if url.startswith(finder.base_url):
                return mock.MagicMock(json=mock.MagicMock(return_value=rows))
            if method == 'GET':
                return mock.MagicMock(text='<form></form>')
            return mock.MagicMock(text=portal_pages[kwargs['data']['citationNumber']])

        with mock.patch.object(finder, '_perform_request', side_effect=perform_request) as mocked:
            records = finder.find('7abc123', 'ca')

        self.assertEqual([(record.citation_number, record.payment_status) for record in records], [
            ('4350012345', PaymentStatus.PAID),
            ('4350012346', PaymentStatus.NEW),
        ])

        socrata_url = mocked.call_args_list[0][0][1]
        self.assertIn('%24limit=100', socrata_url)

        portal_posts = [call for call in mocked.call_args_list if call[0][0] == 'POST']
        self.assertEqual(portal_posts[0][1]['data'],
                         {'citationNumber': '4350012345', 'siteId': 'la'})
        self.assertEqual(portal_posts[0][1]['headers'],
                         {'Referer': finder.portal_input_url})

        # one pause between the two citations
        mocked_sleep.assert_called_once_with(0.2)

    def test_failed_portal_check_leaves_citation_unknown(self):
        errors = []
        self.finder.add_error_listener(errors.append)

        def perform_request(method, url, **kwargs):
            if url.startswith(self.finder.base_url):
                return mock.MagicMock(json=mock.MagicMock(return_value=[_row()]))
            raise ConnectionError('portal down')

        with mock.patch.object(self.finder, '_perform_request', side_effect=perform_request):
            records = self.finder.find('7ABC123', 'CA')

        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].amount, Decimal('73.00'))
        self.assertEqual(records[0].payment_status, PaymentStatus.NEW)
        self.assertTrue(records[0].is_active)
        self.assertEqual(errors, [])

    def test_failed_open_data_lookup_is_reported(self):
        errors = []
        self.finder.add_error_listener(errors.append)

        with mock.patch.object(self.finder, '_perform_request',
                               side_effect=ValueError('bad json')):
            self.assertEqual(self.finder.find('7ABC123', 'CA'), [])

        self.assertEqual([error.message for error in errors], ['Unexpected error: bad json'])

    def test_check_portal_status_without_citation_number(self):
        with mock.patch.object(self.finder, '_perform_request') as mocked:
            self.assertEqual(self.finder.check_portal_status(None), PortalCheck())

        mocked.assert_not_called()

import ddt
import unittest

from parking_violations.utils import html_utils, string_utils


class TestHtmlUtils(unittest.TestCase):

    def test_collect_hidden_fields(self):
        soup = html_utils.parse_html('''
            <form>
              <input type="hidden" name="clientcode" value="19">
              <input type="hidden" name="empty">
              <input type="hidden" value="nameless">
              <input type="text" name="plateNumber" value="ABC">
            </form>''')

        self.assertEqual(html_utils.collect_hidden_fields(soup),
                         {'clientcode': '19', 'empty': ''})

    def test_input_value(self):
        soup = html_utils.parse_html('<input name="token" value="abc"><input name="blank">')

        self.assertEqual(html_utils.input_value(soup, 'token'), 'abc')
        self.assertIsNone(html_utils.input_value(soup, 'blank'))
        self.assertIsNone(html_utils.input_value(soup, 'missing'))

    def test_table_rows(self):
        soup = html_utils.parse_html('''
            <table>
              <tr><th>Citation</th><th>Amount</th></tr>
              <tr><td>123</td><td> $5.00 </td></tr>
            </table>
            <table>
              <tr><td>Header</td><td>Cell</td></tr>
              <tr><td>456</td><td><b>$6</b>.00</td></tr>
            </table>''')

        self.assertEqual(html_utils.table_rows(soup), [
            ['123', '$5.00'],
            ['Header', 'Cell'],
            ['456', '$6 .00'],
        ])
        self.assertEqual(html_utils.table_rows(soup, skip_first_row=True), [
            ['123', '$5.00'],
            ['456', '$6 .00'],
        ])

    def test_parse_html_of_nothing(self):
        self.assertEqual(html_utils.table_rows(html_utils.parse_html(None)), [])


@ddt.ddt
class TestStringUtils(unittest.TestCase):

    @ddt.data(
        (' abc 1234 ', 'ABC1234'),
        ('abc\t12', 'ABC12'),
        ('', ''),
        (None, ''),
        (1234567, '1234567'),
    )
    @ddt.unpack
    def test_normalize_plate(self, plate, expected):
        self.assertEqual(string_utils.normalize_plate(plate), expected)

    @ddt.data(
        (' ny ', 'NY'),
        ('usa', 'USA'),
        (None, ''),
        (5, '5'),
    )
    @ddt.unpack
    def test_normalize_state(self, state, expected):
        self.assertEqual(string_utils.normalize_state(state), expected)

    def test_strip_html(self):
        self.assertEqual(string_utils.strip_html('<b>NO</b>  PARKING<br/>'), 'NO PARKING')
        self.assertEqual(string_utils.strip_html(None), '')

    def test_build_note(self):
        self.assertEqual(string_utils.build_note(['Violation: METER', None, '', 'Status: Open']),
                         'Violation: METER | Status: Open')

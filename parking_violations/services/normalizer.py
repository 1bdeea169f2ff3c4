"""Shared parsing and classification used by every finder's mapper.

Nothing in here performs I/O and nothing in here raises on bad upstream
data: unparsable amounts become zero and unparsable dates become None.
"""

import logging
import re

from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Union

from parking_violations.constants.finders import \
    DISMISSED_KEYWORDS, DISPUTED_KEYWORDS, PAID_KEYWORDS
from parking_violations.constants.payment_statuses import PaymentStatus

LOG = logging.getLogger(__name__)

NON_NUMERIC_REGEX = re.compile(r'[^0-9.]')

TWO_PLACES = Decimal('0.01')

MM_DD_YYYY_FORMAT = '%m/%d/%Y'
ISO_WITH_MILLISECONDS_FORMAT = '%Y-%m-%dT%H:%M:%S.%f'

# tried after native iso parsing, in order
FALLBACK_DATE_FORMATS = (
    MM_DD_YYYY_FORMAT,
    ISO_WITH_MILLISECONDS_FORMAT,
    '%m/%d/%Y %I:%M %p',
    '%m/%d/%Y %H:%M:%S',
    '%m-%d-%Y',
    '%Y-%m-%d',
)


def parse_amount(value: Any) -> Decimal:
    if value is None:
        return Decimal('0.00')

    if isinstance(value, bool):
        return Decimal('0.00')

    if isinstance(value, (int, float, Decimal)):
        try:
            return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return Decimal('0.00')

    cleaned: str = NON_NUMERIC_REGEX.sub('', str(value))
    if not cleaned:
        return Decimal('0.00')

    try:
        return Decimal(cleaned).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        LOG.debug(f'could not parse amount from {value!r}')
        return Decimal('0.00')


def parse_date(value: Any) -> Optional[datetime]:
    if value is None:
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text: str = str(value).strip()
    if not text:
        return None

    try:
        parsed: datetime = datetime.fromisoformat(text)
        # comparisons elsewhere are against naive dates
        return parsed.replace(tzinfo=None)
    except ValueError:
        pass

    for date_format in FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(text, date_format)
        except ValueError:
            continue

    LOG.debug(f'could not parse date from {value!r}')
    return None


def parse_issue_time(issue_date: Any, issue_time: Optional[str]) -> Optional[datetime]:
    """Combine a date with an HHMM time string like '1430'."""
    parsed: Optional[datetime] = parse_date(issue_date)

    if parsed is None:
        return None

    if issue_time:
        digits: str = issue_time.strip()
        if len(digits) >= 4 and digits[:4].isdigit():
            parsed = parsed + timedelta(hours=int(digits[:2]),
                                        minutes=int(digits[2:4]))

    return parsed


def classify_payment_status(amount_due: Union[Decimal, float, int, str, None],
                            status: Optional[str] = None,
                            original_amount: Union[Decimal, float, int, str, None] = None
                            ) -> PaymentStatus:
    """Classify a citation's payment status.

    Precedence: a zero amount due wins over any status text, then 'paid',
    then dispute keywords, then dismissal keywords (no liability left, so
    treated as paid). A partly paid fine is PARTIAL only when the original
    fine is known.
    """
    due: Optional[Decimal] = None if amount_due is None else parse_amount(amount_due)

    if due is not None and due == 0:
        return PaymentStatus.PAID

    if status:
        upper_status: str = status.upper()

        if any(keyword in upper_status for keyword in PAID_KEYWORDS):
            return PaymentStatus.PAID

        if any(keyword in upper_status for keyword in DISPUTED_KEYWORDS):
            return PaymentStatus.DISPUTED

        if any(keyword in upper_status for keyword in DISMISSED_KEYWORDS):
            return PaymentStatus.PAID

    if due is not None and original_amount is not None:
        original: Decimal = parse_amount(original_amount)
        if 0 < due < original:
            return PaymentStatus.PARTIAL

    return PaymentStatus.NEW

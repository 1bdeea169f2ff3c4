from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from parking_violations.constants.finders import DEFAULT_CURRENCY
from parking_violations.constants.payment_statuses import FineType, PaymentStatus

TWO_PLACES = Decimal('0.01')


@dataclass
class ViolationRecord:
    """ A violation normalized from any jurisdiction's payload.

    · amount is never negative and always carries two decimal places
    · currency is always set when there is an amount
    · a paid violation is never active, whatever amount it still shows
    """

    citation_number: Optional[str] = None
    notice_number: Optional[str] = None

    provider: int = 0
    agency: Optional[str] = None
    link: Optional[str] = None

    tag: Optional[str] = None
    state: Optional[str] = None

    issue_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    amount: Decimal = field(default_factory=lambda: Decimal('0.00'))
    currency: Optional[str] = None

    payment_status: PaymentStatus = PaymentStatus.NEW
    fine_type: FineType = FineType.PARKING

    address: Optional[str] = None
    note: Optional[str] = None

    is_active: bool = True

    def __post_init__(self):
        self.citation_number = _identifier_or_none(self.citation_number)
        self.notice_number = _identifier_or_none(self.notice_number)

        amount = Decimal(str(self.amount)) if self.amount is not None else Decimal('0')
        if amount < 0:
            amount = Decimal('0')
        self.amount = amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

        if self.amount > 0 and not self.currency:
            self.currency = DEFAULT_CURRENCY

        self.payment_status = PaymentStatus(self.payment_status)
        self.fine_type = FineType(self.fine_type)

        if self.payment_status == PaymentStatus.PAID:
            self.is_active = False

    @property
    def dedup_key(self) -> Optional[str]:
        return self.notice_number or self.citation_number

    @property
    def effective_date(self) -> Optional[datetime]:
        return self.issue_date or self.start_date

    def to_dict(self) -> Dict[str, Any]:
        return {
            'citationNumber': self.citation_number,
            'noticeNumber': self.notice_number,
            'provider': self.provider,
            'agency': self.agency,
            'address': self.address,
            'tag': self.tag,
            'state': self.state,
            'issueDate': _isoformat(self.issue_date),
            'startDate': _isoformat(self.start_date),
            'endDate': _isoformat(self.end_date),
            'amount': float(self.amount),
            'currency': self.currency,
            'paymentStatus': int(self.payment_status),
            'fineType': int(self.fine_type),
            'note': self.note,
            'link': self.link,
            'isActive': self.is_active,
        }


def _identifier_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None

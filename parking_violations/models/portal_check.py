from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from parking_violations.constants.payment_statuses import PortalStatus


@dataclass(frozen=True)
class PortalCheck:
    """ Live status of one citation as read from a payment portal """
    status: PortalStatus = PortalStatus.UNKNOWN
    amount_due: Optional[Decimal] = None

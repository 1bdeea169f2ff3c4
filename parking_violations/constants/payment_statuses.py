from enum import Enum, IntEnum


class PaymentStatus(IntEnum):
    NEW = 0
    PAID = 1
    DISPUTED = 2
    PARTIAL = 3


class FineType(IntEnum):
    PARKING = 0
    TOLL = 1
    CAMERA = 2


class PortalStatus(Enum):
    """Status read from a live payment portal."""
    UNKNOWN = 'unknown'
    PAID = 'paid'
    UNPAID = 'unpaid'
    DISPUTED = 'disputed'
    DISMISSED = 'dismissed'
    NOT_FOUND = 'not_found'

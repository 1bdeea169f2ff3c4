from dataclasses import dataclass
from typing import Optional

@dataclass(frozen=True)
class Vehicle:
    """ Represents a company vehicle to be queried """

    id: str
    company_id: str
    license_plate: Optional[str] = None
    state: Optional[str] = None

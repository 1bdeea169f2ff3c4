from dataclasses import dataclass
from typing import Optional

from parking_violations.utils import string_utils


@dataclass(frozen=True)
class ViolationQuery:
    """ Represents a plate query to be submitted to the finders """
    plate: str
    state: str

    @classmethod
    def create(cls, plate: Optional[str], state: Optional[str]) -> 'ViolationQuery':
        return cls(plate=string_utils.normalize_plate(plate),
                   state=string_utils.normalize_state(state))

    def has_plate(self) -> bool:
        return bool(self.plate)

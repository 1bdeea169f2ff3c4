from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FinderError:
    """ Emitted by a finder whenever a lookup fails """
    finder_name: str
    plate: str
    state: str
    message: str
    exception: Optional[BaseException] = None

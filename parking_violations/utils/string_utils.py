import re

from typing import Any, Iterable, Optional

HTML_TAG_REGEX = re.compile(r'<[^>]*>')
WHITESPACE_REGEX = re.compile(r'\s+')


def build_note(parts: Iterable[Optional[str]]) -> str:
    return ' | '.join(part for part in parts if part)


def normalize_plate(plate: Any) -> str:
    if plate is None:
        return ''
    return WHITESPACE_REGEX.sub('', str(plate)).upper()


def normalize_state(state: Any) -> str:
    """JSON bodies may carry numbers where strings are expected."""
    if state is None:
        return ''
    return str(state).strip().upper()


def strip_html(text: Optional[str]) -> str:
    if not text:
        return ''
    return WHITESPACE_REGEX.sub(' ', HTML_TAG_REGEX.sub(' ', text)).strip()

from bs4 import BeautifulSoup
from typing import Dict, List, Optional


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or '', 'html.parser')


def collect_hidden_fields(soup: BeautifulSoup) -> Dict[str, str]:
    """Return name -> value for every hidden input on the page."""
    fields: Dict[str, str] = {}

    for inp in soup.select('input[type=hidden][name]'):
        fields[inp['name']] = inp.get('value', '')

    return fields


def input_value(soup: BeautifulSoup, name: str) -> Optional[str]:
    inp = soup.find('input', attrs={'name': name})
    if inp is None:
        return None
    return inp.get('value')


def table_rows(soup: BeautifulSoup, skip_first_row: bool = False) -> List[List[str]]:
    """Cell text for every data row of every table.

    Rows with no td cells are always left out. With skip_first_row the first
    row of each table is treated as a header whatever its cells are.
    """
    rows: List[List[str]] = []

    for table in soup.find_all('table'):
        for index, tr in enumerate(table.find_all('tr')):
            if skip_first_row and index == 0:
                continue
            cells = tr.find_all('td')
            if not cells:
                continue
            rows.append([cell.get_text(' ', strip=True) for cell in cells])

    return rows

import os

from typing import Optional


def _float_or_none(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


MYSQL_PASSWORD_STR = os.getenv('MYSQL_PASSWORD') or ''

if os.getenv('DATABASE_URI'):
    DATABASE_URI = os.getenv('DATABASE_URI')
elif os.getenv('MYSQL_DATABASE'):
    DATABASE_URI = (f"mysql+pymysql://{os.getenv('MYSQL_USER')}:"
                    f"{MYSQL_PASSWORD_STR}@{os.getenv('MYSQL_HOST') or 'localhost'}/"
                    f"{os.getenv('MYSQL_DATABASE')}?charset=utf8mb4")
else:
    DATABASE_URI = 'sqlite://'

SOCRATA_APP_TOKEN = os.getenv('SOCRATA_APP_TOKEN')

# per-finder http behavior
FINDER_TIMEOUT_SECONDS = float(os.getenv('FINDER_TIMEOUT_SECONDS') or 30)
FINDER_MAX_RETRIES = int(os.getenv('FINDER_MAX_RETRIES') or 3)
FINDER_HTTP_WORKERS = int(os.getenv('FINDER_HTTP_WORKERS') or 4)
HYBRID_REQUEST_DELAY_SECONDS = float(
    os.getenv('HYBRID_REQUEST_DELAY_SECONDS') or 0.2)

PORTAL_USER_AGENT = os.getenv('PORTAL_USER_AGENT') or (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36')

# engine-wide fan-out
AGGREGATION_MAX_WORKERS = int(os.getenv('AGGREGATION_MAX_WORKERS') or 16)
AGGREGATION_DEADLINE_SECONDS = _float_or_none('AGGREGATION_DEADLINE_SECONDS')

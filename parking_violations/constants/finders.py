NATIONWIDE_STATE = 'USA'

DEFAULT_CURRENCY = 'USD'

# provider codes stored on each violation
NYC_DOF_PROVIDER = 0
SFMTA_PROVIDER = 1
LADOT_PROVIDER = 2
PHILADELPHIA_PARKING_AUTHORITY_PROVIDER = 100

PAID_KEYWORDS = ('PAID',)
DISPUTED_KEYWORDS = ('HEARING', 'DISPUTE', 'CONTEST', 'APPEAL')
DISMISSED_KEYWORDS = ('DISMISS', 'VOID')

NO_RESULTS_PHRASES = (
    'no citations found',
    'no outstanding',
    '0 citation',
    'no records found',
    'no matching citations',
)

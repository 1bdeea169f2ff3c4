NYC_SOCRATA_BASE_URL = 'https://data.cityofnewyork.us/resource'
NYC_OPEN_PARKING_AND_CAMERA_VIOLATIONS_DATASET = 'nc67-uf89'
NYC_OPEN_PARKING_AND_CAMERA_VIOLATIONS_LINK = (
    'https://data.cityofnewyork.us/City-Government/'
    'Open-Parking-and-Camera-Violations/nc67-uf89')

LA_SOCRATA_BASE_URL = 'https://data.lacity.org/resource'
LA_PARKING_CITATIONS_DATASET = '4f5p-udkv'
LA_PARKING_CITATIONS_LINK = (
    'https://data.lacity.org/Transportation/Parking-Citations/4f5p-udkv')

ETIMS_PAYMENTS_BASE_URL = 'https://wmq.etimspayments.com'
ETIMS_SEARCH_PATH = '/pbw/inputAction.doh'
LA_PAYMENT_INPUT_PATH = '/pbw/include/la/input.jsp'
SF_PAYMENT_INPUT_PATH = '/pbw/include/sanfrancisco/input.jsp'
SF_PAYMENT_MAIN_LINK = (
    'https://wmq.etimspayments.com/pbw/include/sanfrancisco/main.jsp')

PHILADELPHIA_PORTAL_URL = (
    'https://onlineserviceshub.com/ParkingPortal/Philadelphia')

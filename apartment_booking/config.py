import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

DATA_DIR = os.environ.get('BOOKING_DATA_DIR', os.path.join(BASE_DIR, 'data'))
BACKUP_DIR = os.path.join(DATA_DIR, 'backups')
MAX_BACKUPS_TO_KEEP = int(os.environ.get('BOOKING_MAX_BACKUPS', 10))

RESERVATIONS_KEY = 'reservations'
APARTMENTS_KEY = 'apartments'

HOST = os.environ.get('BOOKING_HOST', '127.0.0.1')
PORT = int(os.environ.get('BOOKING_PORT', 5001))
# Der Controller ist ohnehin über ein Lock serialisiert
THREADS = int(os.environ.get('BOOKING_THREADS', 4))

LOG_LEVEL = os.environ.get('BOOKING_LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(threadName)s : %(message)s'

import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "dairy_attendance_test"),
}

PERSISTENCE_BACKEND = os.getenv("PERSISTENCE_BACKEND", "memory")

RECOGNIZER_URL = "http://recognizer.invalid/recognize/"
RECOGNIZER_TOKEN = ""
RECOGNIZER_TIMEOUT_SECONDS = 2.0
MIN_CONFIDENCE = 0.5

CHALLENGE_WINDOW_SECONDS = 4.0
SESSION_INACTIVITY_SECONDS = 60.0
SESSION_SWEEP_SECONDS = 5.0
MAX_RECOGNITION_ATTEMPTS = 3

OVERNIGHT_POLICY = "reject"
MAX_SHIFT_HOURS = 16.0

LOG_LEVEL = "WARNING"
DEBUG = False
TESTING = True

AUTO_INIT_DB = False
AUTO_SEED_DB = False

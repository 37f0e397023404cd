import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "attendance"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "dairy_attendance"),
}

PERSISTENCE_BACKEND = "mysql"

RECOGNIZER_URL = os.getenv("RECOGNIZER_URL", "http://localhost:8000/api/sa-daily-attendance/recognize/")
RECOGNIZER_TOKEN = os.getenv("RECOGNIZER_TOKEN", "")
RECOGNIZER_TIMEOUT_SECONDS = float(os.getenv("RECOGNIZER_TIMEOUT_SECONDS", "10"))
MIN_CONFIDENCE = float(os.getenv("MIN_CONFIDENCE", "0.5"))

CHALLENGE_WINDOW_SECONDS = float(os.getenv("CHALLENGE_WINDOW_SECONDS", "4"))
SESSION_INACTIVITY_SECONDS = float(os.getenv("SESSION_INACTIVITY_SECONDS", "60"))
SESSION_SWEEP_SECONDS = float(os.getenv("SESSION_SWEEP_SECONDS", "5"))
MAX_RECOGNITION_ATTEMPTS = int(os.getenv("MAX_RECOGNITION_ATTEMPTS", "3"))

OVERNIGHT_POLICY = os.getenv("OVERNIGHT_POLICY", "reject")
MAX_SHIFT_HOURS = float(os.getenv("MAX_SHIFT_HOURS", "16"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

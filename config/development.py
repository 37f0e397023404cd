import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "dairy_attendance"),
}

# "mysql" or "memory" (in-process store seeded with a demo roster)
PERSISTENCE_BACKEND = os.getenv("PERSISTENCE_BACKEND", "mysql")

RECOGNIZER_URL = os.getenv("RECOGNIZER_URL", "http://localhost:8000/api/sa-daily-attendance/recognize/")
RECOGNIZER_TOKEN = os.getenv("RECOGNIZER_TOKEN", "")
RECOGNIZER_TIMEOUT_SECONDS = float(os.getenv("RECOGNIZER_TIMEOUT_SECONDS", "10"))
MIN_CONFIDENCE = float(os.getenv("MIN_CONFIDENCE", "0.5"))

CHALLENGE_WINDOW_SECONDS = float(os.getenv("CHALLENGE_WINDOW_SECONDS", "4"))
SESSION_INACTIVITY_SECONDS = float(os.getenv("SESSION_INACTIVITY_SECONDS", "60"))
SESSION_SWEEP_SECONDS = float(os.getenv("SESSION_SWEEP_SECONDS", "5"))
MAX_RECOGNITION_ATTEMPTS = int(os.getenv("MAX_RECOGNITION_ATTEMPTS", "3"))

# Open question policies: see DESIGN.md
OVERNIGHT_POLICY = os.getenv("OVERNIGHT_POLICY", "reject")
MAX_SHIFT_HOURS = float(os.getenv("MAX_SHIFT_HOURS", "16"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed the demo roster on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

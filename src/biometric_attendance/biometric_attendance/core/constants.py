"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_CHALLENGE_WINDOW_SECONDS = 4
DEFAULT_SESSION_INACTIVITY_SECONDS = 60
DEFAULT_MAX_RECOGNITION_ATTEMPTS = 3
DEFAULT_MIN_CONFIDENCE = 0.5
DEFAULT_MAX_SHIFT_HOURS = 16
DEFAULT_RECOGNIZER_TIMEOUT_SECONDS = 10
DEFAULT_RESULT_WAIT_SECONDS = 30
DEFAULT_SESSION_SWEEP_SECONDS = 5

FACE_MARK_REMARK = "Auto-marked via face recognition"

"""Development entry point: `python app.py` (APP_ENV selects the settings module)."""

import os

from src.biometric_attendance.biometric_attendance.main import create_app

app = create_app()


if __name__ == "__main__":
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")), debug=app.config["DEBUG"])

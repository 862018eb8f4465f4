import os
import secrets
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/matchday.db")

# Security
SECRET_KEY = os.getenv("SECRET_KEY", secrets.token_hex(32))
SESSION_COOKIE_NAME = "matchday_session"
SESSION_EXPIRE_DAYS = int(os.getenv("SESSION_EXPIRE_DAYS", "7"))

# Bootstrap admin (in production, use environment variables)
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "password")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Match rules
MAX_EVENT_MINUTE = int(os.getenv("MAX_EVENT_MINUTE", "130"))

# "exact": starters must fill every formation slot
# "subset": any number of starters from 1 up to the slot count
LINEUP_SIZE_POLICY = os.getenv("LINEUP_SIZE_POLICY", "exact")

# When enabled, a level match decided on penalties counts as a win for the
# shootout winner. Shootout kicks never enter home_score/away_score.
SHOOTOUT_DECIDES_RESULT = os.getenv("SHOOTOUT_DECIDES_RESULT", "false").lower() in ("1", "true", "yes")

# Number of results kept in a standing's form string
FORM_LENGTH = int(os.getenv("FORM_LENGTH", "5"))
